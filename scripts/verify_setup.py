#!/usr/bin/env python3
"""
Setup Verification Script

Validates configuration and the Meevo connection before running the application.
Run this after setting up your .env file to ensure everything is configured correctly.

Usage:
    python scripts/verify_setup.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv
load_dotenv()


def print_header(title: str) -> None:
    """Print section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print(f"{'='*60}")


def print_result(name: str, success: bool, message: str = "") -> None:
    """Print check result."""
    status = "[PASS]" if success else "[FAIL]"
    color = "\033[92m" if success else "\033[91m"
    reset = "\033[0m"
    msg = f" - {message}" if message else ""
    print(f"  {color}{status}{reset} {name}{msg}")


def check_env_file() -> bool:
    """Check if .env file exists."""
    env_path = project_root / ".env"
    exists = env_path.exists()
    if not exists:
        print_result(".env file", False, "File not found. Variables must come from the environment")
    else:
        print_result(".env file", True, "Found")
    return exists


def check_required_vars() -> dict[str, bool]:
    """Check required environment variables."""
    results = {}

    required = [
        ("MEEVO_CLIENT_ID", "OAuth client id for the Meevo public API"),
        ("MEEVO_CLIENT_SECRET", "OAuth client secret for the Meevo public API"),
    ]

    for var, description in required:
        value = os.getenv(var, "")

        if not value:
            print_result(var, False, f"Not set - {description}")
            results[var] = False
        else:
            # Mask sensitive values
            if "SECRET" in var:
                masked = f"{value[:4]}...{value[-4:]}" if len(value) > 12 else "***"
            else:
                masked = value
            print_result(var, True, f"Set ({masked})")
            results[var] = True

    return results


def check_optional_vars() -> None:
    """Check optional environment variables."""
    optional = [
        ("APP_ENV", "development"),
        ("DEBUG", "false"),
        ("PORT", "3000"),
        ("MEEVO_TENANT_ID", "200507"),
        ("MEEVO_LOCATION_ID", "201664"),
        ("LOCATION_TIMEZONE", "America/Phoenix"),
    ]

    for var, default in optional:
        value = os.getenv(var, default)
        print_result(var, True, f"{value}")


def check_dependencies() -> bool:
    """Check if required Python packages are installed."""
    required_packages = [
        "fastapi",
        "uvicorn",
        "pydantic",
        "pydantic_settings",
        "httpx",
    ]

    missing = []
    for package in required_packages:
        try:
            __import__(package)
        except ImportError:
            missing.append(package)

    if missing:
        print_result("Python packages", False, f"Missing: {', '.join(missing)}")
        return False
    else:
        print_result("Python packages", True, "All required packages installed")
        return True


async def check_meevo() -> bool:
    """Acquire a token, load the roster and run one scan."""
    import httpx

    from app.core.scheduling.directory import ProviderDirectory
    from app.core.scheduling.engine import AvailabilityEngine
    from app.core.scheduling.scanner import WindowScanner
    from app.core.scheduling.services import get_service_resolver
    from app.infra.meevo import MeevoAuthError, MeevoClient

    client = MeevoClient()
    try:
        try:
            await client.get_token()
            print_result("Meevo token", True, "Access token acquired")
        except MeevoAuthError as e:
            print_result("Meevo token", False, str(e)[:60])
            return False

        try:
            employees = await client.list_employees()
        except httpx.HTTPError as e:
            print_result("Employee roster", False, str(e)[:60])
            return False

        directory = ProviderDirectory(client=client)
        roster = await directory.list_active_providers()
        print_result(
            "Employee roster",
            bool(roster),
            f"{len(roster)} bookable of {len(employees)} employees",
        )
        if not roster:
            return False

        service_id = get_service_resolver().resolve("haircut")
        date_range = AvailabilityEngine().date_range()
        slots = await WindowScanner(client=client).scan(roster[0], service_id, date_range)
        print_result(
            "Opening scan",
            True,
            f"{len(slots)} haircut openings for {roster[0].display_name} "
            f"({date_range.start}..{date_range.end})",
        )
        return True
    finally:
        await client.close()


async def main():
    """Run all verification checks."""
    print("\n" + "="*60)
    print(" Group Availability - Setup Verification")
    print("="*60)

    all_passed = True
    critical_failed = False

    # Check .env file (optional if variables are exported)
    print_header("Environment File")
    check_env_file()

    # Check dependencies
    print_header("Python Dependencies")
    if not check_dependencies():
        all_passed = False
        critical_failed = True

    # Check required variables
    print_header("Required Environment Variables")
    var_results = check_required_vars()
    if not all(var_results.values()):
        all_passed = False
        critical_failed = True

    # Check optional variables
    print_header("Optional Environment Variables")
    check_optional_vars()

    # Check upstream (only if we have the required config)
    print_header("Meevo Connection")
    if all(var_results.values()) and not critical_failed:
        if not await check_meevo():
            all_passed = False
            critical_failed = True
    else:
        print_result("Meevo", False, "Skipped - credentials not set")

    # Summary
    print_header("Summary")

    if critical_failed:
        print("\n  \033[91mCRITICAL: Some required checks failed.\033[0m")
        print("  Please fix the issues above before running the application.")
        print("\n  Quick fixes:")
        if not all(var_results.values()):
            print("  1. Add to .env: MEEVO_CLIENT_ID=... and MEEVO_CLIENT_SECRET=...")
        print()
        return 1
    elif not all_passed:
        print("\n  \033[93mWARNING: Some optional checks failed.\033[0m")
        print()
        return 0
    else:
        print("\n  \033[92mAll checks passed!\033[0m")
        print("  You can start the application with:")
        print("    uvicorn app.main:app --reload --port 3000")
        print()
        return 0


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
