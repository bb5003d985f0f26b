"""Seed today's baseline absent records ahead of the first scan."""

from __future__ import annotations

import importlib
import sys
from datetime import date

from dotenv import load_dotenv

from attendance_ledger.common.datetime_utils import parse_iso_date
from attendance_ledger.common.log import configure_logging
from attendance_ledger.config import get_settings_module
from attendance_ledger.container import build_container_from_settings


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    day = parse_iso_date(args[0]) if args else date.today()
    container = build_container_from_settings(settings)
    try:
        created = container.attendance_service.initialize_day(day)
    finally:
        container.sync_queue.close()
    print(f"OK: seeded {created} absent records for {day.isoformat()}")


if __name__ == "__main__":
    main()
