from __future__ import annotations

import logging
from datetime import date

from ..subjects.repository import SubjectRepository
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class DailyLedgerInitializer:
    """Seeds a baseline absent/system record for every subject of a day."""

    def __init__(self, attendance: AttendanceRepository, subjects: SubjectRepository):
        self._attendance = attendance
        self._subjects = subjects

    def initialize(self, day: date) -> int:
        """Create the missing baseline records for `day`; all-or-nothing."""

        return self._seed(day, only_if_day_empty=False)

    def ensure_seeded(self, day: date) -> int:
        """Seed `day` only when it has no record at all (first scan of the day).

        The emptiness check and the inserts are one atomic unit in storage, so
        concurrent first scans cannot both seed.
        """

        return self._seed(day, only_if_day_empty=True)

    def _seed(self, day: date, *, only_if_day_empty: bool) -> int:
        roster = list(self._subjects.list_all())
        if not roster:
            return 0

        created = self._attendance.seed_absent(day=day, subjects=roster, only_if_day_empty=only_if_day_empty)
        if created:
            logger.info("Initialized daily attendance for %d subjects on %s", created, day.isoformat())
        return created
