from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence


class SettingsRepository(Protocol):
    """Externally owned settings store, read-only from this service."""

    def get_flat_row(self) -> Optional[Mapping[str, Any]]:
        """The single row of the flat settings table, or None."""

        raise NotImplementedError

    def get_key_values(self, keys: Sequence[str]) -> Mapping[str, Any]:
        """Values of the requested keys from the key-value settings table."""

        raise NotImplementedError
