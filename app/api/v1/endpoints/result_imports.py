"""Bulk result import endpoints."""

from fastapi import APIRouter, File, UploadFile
from fastapi.responses import Response

from app.core.config import settings
from app.core.database import DbSession
from app.core.dependencies import Catalog, ImportRegistry
from app.core.exceptions import UploadError
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.result import ImportRunResponse, SelectionUpdate, UploadOutcomeResponse
from app.services.error_report import render_error_report_csv
from app.services.import_run import ImportRun
from app.services.result_file import generate_template, parse_result_file

router = APIRouter()


@router.get("/template")
def download_template(catalog: Catalog):
    """Download the CSV import template."""
    return Response(
        content=generate_template(catalog),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=results_template.csv"},
    )


@router.post(
    "",
    response_model=ImportRunResponse,
    responses={400: {"model": ErrorResponse}},
)
def create_import(
    db: DbSession,
    registry: ImportRegistry,
    catalog: Catalog,
    file: UploadFile = File(...),
):
    """
    Upload a results file and validate every row.

    - Nothing is written to results at this stage
    - Valid and warning rows that are not duplicates are pre-selected
    - Error and duplicate rows can never be selected

    Expected columns (in order): matric_number, course_code, course_title,
    credit_units, grade, grade_points, session, semester, level
    """
    if not file.filename:
        raise UploadError("No file provided")

    if not any(file.filename.lower().endswith(ext) for ext in settings.ALLOWED_EXTENSIONS):
        raise UploadError(f"Only {', '.join(settings.ALLOWED_EXTENSIONS)} files are allowed")

    content = file.file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024:
        raise UploadError(f"File size exceeds {settings.MAX_UPLOAD_SIZE_MB}MB limit")

    rows = parse_result_file(content, file.filename)

    run = ImportRun(file_name=file.filename, catalog=catalog)
    run.validate(db, rows)
    registry.add(run)

    return run.to_response()


@router.get("/{run_id}", response_model=ImportRunResponse)
def get_import(run_id: str, registry: ImportRegistry):
    """Get an import run with every row's disposition."""
    return registry.get(run_id).to_response()


@router.post(
    "/{run_id}/selection",
    response_model=ImportRunResponse,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def update_selection(run_id: str, request: SelectionUpdate, registry: ImportRegistry):
    """Toggle individual rows, or all eligible rows at once."""
    run = registry.get(run_id)
    run.change_selection(request.row_numbers, toggle_all=request.toggle_all)
    return run.to_response()


@router.post(
    "/{run_id}/upload",
    response_model=UploadOutcomeResponse,
    responses={409: {"model": ErrorResponse}},
)
def upload_import(
    run_id: str,
    db: DbSession,
    registry: ImportRegistry,
):
    """
    Commit the selected rows in chunks and recompute affected profiles.

    A failing chunk stops the upload; earlier chunks stay committed. Re-running
    the same file afterwards flags the committed rows as duplicates.
    """
    run = registry.get(run_id)
    with registry.exclusive_upload():
        return run.upload(db)


@router.get("/{run_id}/error-log")
def download_error_log(run_id: str, registry: ImportRegistry):
    """Download rejected rows as CSV."""
    run = registry.get(run_id)
    return Response(
        content=render_error_report_csv(run.error_report()),
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=validation_errors.csv"},
    )


@router.delete("/{run_id}", response_model=MessageResponse)
def discard_import(run_id: str, registry: ImportRegistry):
    """Discard an import run."""
    registry.discard(run_id)
    return MessageResponse(message="Import discarded")
