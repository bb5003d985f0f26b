from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

import requests

from ..core.constants import SYNC_TIMEOUT_SECONDS
from ..core.exceptions import SyncTransportError


class SyncTransport(Protocol):
    def send(self, records: Sequence[dict]) -> list[dict]:
        """Deliver one batch; returns the per-record results of the ingest endpoint."""

        raise NotImplementedError


class HttpSyncTransport(SyncTransport):
    """POSTs batches to a remote `/attendance/sync` endpoint."""

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = SYNC_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self._endpoint = endpoint
        self._timeout = float(timeout)
        self._session = session or requests.Session()
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def send(self, records: Sequence[dict]) -> list[dict]:
        try:
            response = self._session.post(
                self._endpoint,
                json=list(records),
                headers=self._headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
            body: Any = response.json()
        except requests.RequestException as e:
            raise SyncTransportError(f"Sync request to {self._endpoint} failed: {e}") from e
        except ValueError as e:
            raise SyncTransportError(f"Sync endpoint returned invalid JSON: {e}") from e

        if isinstance(body, dict):
            return list(body.get("results") or [])
        return []
