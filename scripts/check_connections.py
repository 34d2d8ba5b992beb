#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database and the vision model are reachable.
Usage: python scripts/check_connections.py
"""
from placement_tracker.core.config import get_settings, validate_required_settings
from placement_tracker.core.logger import configure_logging
from placement_tracker.db.postgres import test_postgres_connection
from placement_tracker.services.vision_client import get_vision_client


def main() -> int:
    settings = get_settings()
    configure_logging(settings.log_level)
    ok = True

    print("=" * 50)
    print("PLACEMENT TRACKER - CONNECTION CHECK")
    print("=" * 50)

    missing = validate_required_settings(settings)
    if missing:
        print(f"\n⚠️  Missing configuration: {', '.join(m.upper() for m in missing)}")

    print("\n[1] PostgreSQL...")
    if settings.database_url and test_postgres_connection():
        print("    ✅ PostgreSQL: CONNECTED")
    else:
        print("    ❌ PostgreSQL: FAILED")
        ok = False

    print("\n[2] Vision model...")
    if settings.vision_api_key:
        print(f"    Base URL: {settings.vision_base_url}")
        print(f"    Model: {settings.vision_model}")
        if get_vision_client().test_connection():
            print("    ✅ Vision model: CONNECTED")
        else:
            print("    ❌ Vision model: FAILED")
            ok = False
    else:
        print("    ⚠️  Vision model: VISION_API_KEY not configured")
        ok = False

    print("\n" + "=" * 50)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
