#!/usr/bin/env python3
"""Validate local booking portal environment readiness."""

from __future__ import annotations

import importlib
import sys
from datetime import date
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backend.domain.constraints import policy_from_settings
from backend.domain.models import Booking, BookingStatus, TimeSlot
from backend.repository.booking_api_repository import BookingApiRepository
from backend.services.availability_service import available_slots
from backend.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True

    # CHECK 1: Python version >= 3.11
    if sys.version_info >= (3, 11):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.11",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("requests", "requests"),
        ("pandas", "pandas"),
        ("streamlit", "streamlit"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    from importlib.metadata import PackageNotFoundError, version

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

    settings = get_settings()

    # CHECK 3: Booking policy from environment
    try:
        policy = policy_from_settings(settings)
        ok, line = _print_result(
            "Booking policy",
            True,
            f": max {policy.max_dates_per_booking} dates per booking",
        )
    except ValueError as exc:
        ok, line = _print_result("Booking policy", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 4: Booking timezone resolves
    try:
        ZoneInfo(settings.booking_timezone)
        ok, line = _print_result("Booking timezone", True, f": {settings.booking_timezone}")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        ok, line = _print_result("Booking timezone", False, str(exc))
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 5: Availability engine sanity
    sample_day = date(2026, 1, 15)
    sample = Booking(
        booking_id=1,
        room_id=1,
        dates=(sample_day,),
        time_slot=TimeSlot.MORNING,
        status=BookingStatus.APPROVED,
        booker_name="sample",
        department="sample",
        phone_number="12345",
        meeting_title="sample",
    )
    free = available_slots(sample_day, [sample])
    if free == (TimeSlot.AFTERNOON,):
        ok, line = _print_result("Availability engine", True)
    else:
        ok, line = _print_result(
            "Availability engine",
            False,
            f"expected afternoon only, got {[slot.value for slot in free]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 6: Booking API reachable (warning only; the portal starts without it)
    repository = BookingApiRepository(settings)
    try:
        reachable = repository.ping()
    finally:
        repository.close()
    if reachable:
        results.append(f"[PASS] Booking API reachable at {settings.booking_api_base_url}")
    else:
        results.append(f"[WARN] Booking API not reachable at {settings.booking_api_base_url}")

    print(SEPARATOR_LINE)
    print(" Booking Portal Environment Validation")
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
