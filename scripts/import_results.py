"""Import a results file from the command line.

Usage:
    python -m scripts.import_results results.csv [--dry-run] [--error-log errors.csv] [--chunk-size 100]

Validates every row, uploads the default selection (valid and warning rows that
are not duplicates) and recomputes CGPA for the affected students.
"""
import argparse
import logging
import sys
from pathlib import Path

from app.core.database import SessionLocal
from app.core.exceptions import AppException
from app.schemas.result import RunOutcome
from app.services.error_report import render_error_report_csv
from app.services.import_run import ImportRun
from app.services.result_file import parse_result_file


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Import course results from a CSV or XLSX file.")
    parser.add_argument("file", type=Path)
    parser.add_argument("--dry-run", action="store_true", help="Validate only, write nothing")
    parser.add_argument("--error-log", type=Path, help="Write rejected rows to this CSV file")
    parser.add_argument("--chunk-size", type=int, default=None)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)

    db = SessionLocal()
    try:
        rows = parse_result_file(args.file.read_bytes(), args.file.name)
        run = ImportRun(file_name=args.file.name)
        run.validate(db, rows)

        stats = run.stats()
        print(
            f"Rows: {stats.total}  valid: {stats.valid}  warnings: {stats.warnings}  "
            f"errors: {stats.errors}  duplicates: {stats.duplicates}  selected: {stats.selected}"
        )

        if args.error_log:
            args.error_log.write_text(render_error_report_csv(run.error_report()), encoding="utf-8")
            print(f"Error log written to {args.error_log}")

        if args.dry_run:
            print("Dry run: nothing uploaded.")
            return 0

        if not run.can_upload:
            print("No rows eligible for upload.")
            return 1

        summary = run.upload(db, chunk_size=args.chunk_size)
        print(summary.message)
        if summary.recomputed_students:
            print(f"Recomputed CGPA for {len(summary.recomputed_students)} students.")
        return 0 if summary.outcome == RunOutcome.SUCCESS else 2

    except AppException as e:
        print(f"Import failed: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
