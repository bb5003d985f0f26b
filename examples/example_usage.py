"""Example: drive the attendance services directly (no Flask).

Controllers are thin; scan processing, seeding and reconciliation live in the
services wired by `build_container_from_settings`.
"""

import importlib
import json

from dotenv import load_dotenv

from attendance_ledger.config import get_settings_module
from attendance_ledger.container import build_container_from_settings


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container_from_settings(settings)
    try:
        record = container.attendance_service.log_scan(
            {"subject_id": 1, "subject_type": "student", "method": "manual"}
        )
        print(json.dumps(record.to_dict(), default=str, indent=2))
        print(container.attendance_service.get_summary({}))
        print(container.sync_service.list_unsynced().count, "records waiting for sync")
    finally:
        container.sync_queue.close()


if __name__ == "__main__":
    main()
