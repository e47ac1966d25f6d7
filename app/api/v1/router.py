"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import result_imports, results, students

api_router = APIRouter()

# Bulk result imports
api_router.include_router(
    result_imports.router,
    prefix="/result-imports",
    tags=["Result Imports"],
)

# Stored results
api_router.include_router(
    results.router,
    prefix="/results",
    tags=["Results"],
)

# Student academic profiles
api_router.include_router(
    students.router,
    prefix="/students",
    tags=["Students"],
)
