"""HTTP API tests for result imports, stored results and student profiles."""

import csv
from io import StringIO

from app.schemas.result import ImportRunState
from tests.factories import csv_bytes, make_result, make_student

API = "/api/v1"

ROW = {
    "matric_number": "ND/2022/001",
    "course_code": "CSC 101",
    "course_title": "Introduction to Computing",
    "credit_units": "3",
    "grade": "A",
    "grade_points": "5.0",
    "session": "2024/2025",
    "semester": "first",
    "level": "ND1",
}


def upload_file(client, rows, file_name="results.csv"):
    return client.post(
        f"{API}/result-imports",
        files={"file": (file_name, csv_bytes(rows), "text/csv")},
    )


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})

    assert response.headers["X-Request-ID"] == "abc-123"


def test_template_download(client):
    response = client.get(f"{API}/result-imports/template")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "results_template.csv" in response.headers["content-disposition"]
    assert response.text.splitlines()[0] == ",".join(ROW)


def test_full_import_flow(client, db_session):
    ada = make_student(db_session, "ND/2022/001", "Ada Obi")
    rows = [
        ROW,
        dict(ROW, matric_number="ND/9999/999"),
        dict(ROW, course_code="MTH 101", grade="B", grade_points="4.0", credit_units="2"),
    ]

    response = upload_file(client, rows)

    assert response.status_code == 200
    run = response.json()
    assert run["state"] == "reviewing"
    assert run["can_upload"] is True
    assert run["stats"] == {
        "total": 3, "valid": 2, "warnings": 0, "errors": 1, "duplicates": 0, "selected": 2,
    }
    assert [r["disposition"] for r in run["rows"]] == ["accepted", "rejected", "accepted"]
    assert run["rows"][0]["verdict"]["student_name"] == "Ada Obi"
    assert run["rows"][1]["selectable"] is False
    run_id = run["run_id"]

    error_log = client.get(f"{API}/result-imports/{run_id}/error-log")
    assert error_log.status_code == 200
    lines = list(csv.reader(StringIO(error_log.text)))
    assert lines == [
        ["Row", "Matric Number", "Course Code", "Errors"],
        ["3", "ND/9999/999", "CSC 101", "Student with this matric number does not exist"],
    ]

    uploaded = client.post(f"{API}/result-imports/{run_id}/upload")
    assert uploaded.status_code == 200
    summary = uploaded.json()
    assert summary["outcome"] == "success"
    assert summary["successful_rows"] == 2
    assert summary["recomputed_students"] == [ada.id]

    status = client.get(f"{API}/result-imports/{run_id}").json()
    assert status["state"] == ImportRunState.DONE.value
    assert status["progress"] == 100
    assert [r["upload_state"] for r in status["rows"]] == ["committed", "not_selected", "committed"]

    profile = client.get(f"{API}/students/{ada.id}/profile").json()
    assert profile["total_credit_units"] == 5
    assert profile["cgpa_display"] == "4.60"

    listed = client.get(f"{API}/results", params={"student_id": ada.id}).json()
    assert listed["total"] == 2
    assert [r["course_code"] for r in listed["items"]] == ["CSC 101", "MTH 101"]


def test_reupload_flags_duplicates(client, db_session):
    ada = make_student(db_session, "ND/2022/001")
    make_result(db_session, ada, course_code="CSC 101")

    run = upload_file(client, [ROW]).json()

    assert run["rows"][0]["disposition"] == "duplicate"
    assert run["rows"][0]["verdict"]["warnings"] == ["A result for this course already exists (will be skipped)"]
    assert run["can_upload"] is False

    response = client.post(f"{API}/result-imports/{run['run_id']}/upload")
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_selection_endpoint(client, db_session):
    make_student(db_session, "ND/2022/001")
    run = upload_file(client, [ROW, dict(ROW, course_code="MTH 101")]).json()
    run_id = run["run_id"]

    response = client.post(f"{API}/result-imports/{run_id}/selection", json={"row_numbers": [2]})
    assert response.status_code == 200
    assert response.json()["stats"]["selected"] == 1

    response = client.post(f"{API}/result-imports/{run_id}/selection", json={"toggle_all": True})
    assert response.json()["stats"]["selected"] == 2

    response = client.post(f"{API}/result-imports/{run_id}/selection", json={"row_numbers": [50]})
    assert response.status_code == 404


def test_upload_twice_conflicts(client, db_session):
    make_student(db_session, "ND/2022/001")
    run_id = upload_file(client, [ROW]).json()["run_id"]
    client.post(f"{API}/result-imports/{run_id}/upload")

    response = client.post(f"{API}/result-imports/{run_id}/upload")

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "IMPORT_STATE_CONFLICT"
    assert body["error"]["details"] == {"state": "done"}


def test_upload_refused_while_another_is_running(client, db_session, registry):
    make_student(db_session, "ND/2022/001")
    run_id = upload_file(client, [ROW]).json()["run_id"]

    with registry.exclusive_upload():
        response = client.post(f"{API}/result-imports/{run_id}/upload")

    assert response.status_code == 409
    assert registry.get(run_id).state == ImportRunState.REVIEWING


def test_discard_import(client, db_session):
    make_student(db_session, "ND/2022/001")
    run_id = upload_file(client, [ROW]).json()["run_id"]

    response = client.delete(f"{API}/result-imports/{run_id}")
    assert response.status_code == 200
    assert response.json() == {"message": "Import discarded"}

    response = client.get(f"{API}/result-imports/{run_id}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_bad_extension_rejected(client):
    response = upload_file(client, [ROW], file_name="results.pdf")

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "UPLOAD_FAILED"


def test_header_only_file_rejected(client):
    response = upload_file(client, [])

    assert response.status_code == 400
    assert "header row" in response.json()["error"]["message"]


def test_missing_file_is_request_validation_error(client):
    response = client.post(f"{API}/result-imports")

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_profile_for_student_without_results(client, db_session):
    ada = make_student(db_session, "ND/2022/001")

    profile = client.get(f"{API}/students/{ada.id}/profile").json()

    assert profile["cgpa"] == "0"
    assert profile["cgpa_display"] == "0.00"
    assert profile["last_recomputed_at"] is None


def test_profile_recompute_after_manual_change(client, db_session):
    ada = make_student(db_session, "ND/2022/001")
    make_result(db_session, ada, grade_points="3.00", credit_units=3)
    make_result(db_session, ada, course_code="MTH 101", grade_points="4.00", credit_units=3)

    response = client.post(f"{API}/students/{ada.id}/profile/recompute")

    assert response.status_code == 200
    body = response.json()
    assert body["total_credit_units"] == 6
    assert body["cgpa_display"] == "3.50"


def test_profile_for_unknown_student(client):
    assert client.get(f"{API}/students/999/profile").status_code == 404
    assert client.post(f"{API}/students/999/profile/recompute").status_code == 404


def test_results_pagination(client, db_session):
    ada = make_student(db_session, "ND/2022/001")
    for i in range(5):
        make_result(db_session, ada, course_code=f"CSC {i}")

    body = client.get(f"{API}/results", params={"page": 2, "page_size": 2}).json()

    assert body["total"] == 5
    assert body["total_pages"] == 3
    assert [r["course_code"] for r in body["items"]] == ["CSC 2", "CSC 3"]


def test_rejected_selection_request_changes_nothing(client, db_session):
    make_student(db_session, "ND/2022/001")
    run = upload_file(client, [ROW, dict(ROW, matric_number="ND/9999/999")]).json()
    run_id = run["run_id"]
    assert run["stats"]["selected"] == 1

    response = client.post(f"{API}/result-imports/{run_id}/selection", json={"row_numbers": [2, 3]})

    assert response.status_code == 422
    assert response.json()["error"]["details"] == {"row": 3, "disposition": "rejected"}
    after = client.get(f"{API}/result-imports/{run_id}").json()
    assert after["stats"]["selected"] == 1
    assert after["rows"][0]["selected"] is True


def test_grade_points_with_extra_precision_are_rejected(client, db_session):
    make_student(db_session, "ND/2022/001")

    run = upload_file(client, [dict(ROW, grade_points="4.555")]).json()

    assert run["rows"][0]["disposition"] == "rejected"
    assert run["rows"][0]["verdict"]["errors"] == ["Grade points must have at most 2 decimal places"]
    assert run["can_upload"] is False
