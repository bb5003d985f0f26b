"""Re-drive unsynced attendance records (for cron or another external scheduler).

Pulls records that are neither synced nor in flight and pushes them to the
configured sync endpoint, once per invocation.
"""

from __future__ import annotations

import importlib
import sys

from dotenv import load_dotenv

from attendance_ledger.common.log import configure_logging
from attendance_ledger.config import get_settings_module
from attendance_ledger.container import build_container_from_settings
from attendance_ledger.core.exceptions import StorageError, SyncTransportError


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    container = build_container_from_settings(settings)
    try:
        report = container.sync_service.reconcile()
    except (SyncTransportError, StorageError) as e:
        print(f"FAILED: {e}", file=sys.stderr)
        return 1
    finally:
        container.sync_queue.close()

    print(f"OK: {report.to_dict()['message']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
