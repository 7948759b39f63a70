#!/usr/bin/env python3
"""Validate local scheduler environment readiness."""

from __future__ import annotations

import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import datetime, time, timedelta
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.repository.data_repository import DataRepository
from backend.services.suggestion_service import SchedulingSuggestionService
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
EXPECTED_DEMO_LESSONS = 8


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def _next_weekday(reference: datetime, weekday: int) -> datetime:
    days_ahead = (weekday - reference.weekday()) % 7 or 7
    return datetime.combine(reference.date() + timedelta(days=days_ahead), time.min)


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="piano-env-")

    # CHECK 1 - Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2 - Required packages importable with versions
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("dotenv", "python-dotenv"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "piano_validation.db",
            seed_demo_data=True,
        )
        repository = DataRepository(validation_settings)

        # CHECK 3 - Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except RuntimeError as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4 - Demo data seeding
        try:
            seeded = repository.seed_demo_data()
            if seeded != EXPECTED_DEMO_LESSONS:
                raise RuntimeError(f"expected {EXPECTED_DEMO_LESSONS} lessons, got {seeded}")
            ok, line = _print_result("Demo data", True, f": {seeded} lessons")
        except RuntimeError as exc:
            ok, line = _print_result("Demo data", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5 - Suggestion run against seeded history
        try:
            student = repository.list_students()[0]
            window_start = _next_weekday(datetime.now(), 1)
            run = SchedulingSuggestionService(
                repository=repository,
                settings=validation_settings,
            ).get_suggestions(
                student.student_id,
                window_start,
                window_start + timedelta(days=7),
                45,
            )
            if not run.suggestions:
                raise RuntimeError("no suggestions returned")
            if any(not 0.0 <= item.confidence <= 1.0 for item in run.suggestions):
                raise RuntimeError("confidence values out of [0,1] bounds")
            best = run.suggestions[0]
            ok, line = _print_result(
                "Suggestion run",
                True,
                f": best={best.start.isoformat()} confidence={best.confidence:.2f}",
            )
        except Exception as exc:
            ok, line = _print_result("Suggestion run", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Piano Scheduler Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
