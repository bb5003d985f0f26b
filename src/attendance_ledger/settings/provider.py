from __future__ import annotations

import logging
from typing import Optional

from ..core.exceptions import StorageError
from .model import SETTING_KEYS, AttendanceSettings
from .repository import SettingsRepository

logger = logging.getLogger(__name__)


class SettingsProvider:
    """Resolves attendance settings: flat row, then key-value rows, then defaults."""

    def __init__(self, settings: SettingsRepository, *, defaults: Optional[AttendanceSettings] = None):
        self._settings = settings
        self._defaults = defaults or AttendanceSettings.defaults()

    @property
    def defaults(self) -> AttendanceSettings:
        return self._defaults

    def get(self) -> AttendanceSettings:
        try:
            row = self._settings.get_flat_row()
            if row is None:
                row = self._settings.get_key_values(SETTING_KEYS)
        except StorageError as e:
            logger.error("Error fetching attendance settings, using defaults: %s", e)
            return self._defaults

        if not row:
            return self._defaults
        return AttendanceSettings.from_mapping(row, fallback=self._defaults)
