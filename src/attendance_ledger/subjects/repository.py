from __future__ import annotations

from typing import Protocol, Sequence

from .model import SubjectRef


class SubjectRepository(Protocol):
    """Read-only view of the subject roster (students + employees).

    Student/employee CRUD lives outside this service.
    """

    def list_all(self) -> Sequence[SubjectRef]:
        raise NotImplementedError

    def exists(self, subject: SubjectRef) -> bool:
        raise NotImplementedError
