from datetime import datetime

import pytest

from attendance_ledger.core.enums import AttendanceStatus, ScanMethod, SubjectType, SyncOutcome
from attendance_ledger.core.exceptions import StorageError, SyncTransportError, ValidationError
from attendance_ledger.subjects.model import SubjectRef
from attendance_ledger.sync.service import SyncService


def _payload(client_uuid="client-a-0001", **overrides):
    record = {
        "client_uuid": client_uuid,
        "subject_id": 3,
        "subject_type": "student",
        "timestamp": "2026-02-02T08:07:00",
        "status": "present",
        "method": "face_recognition",
        "match_confidence": 0.88,
    }
    record.update(overrides)
    return record


def test_ingest_is_idempotent(attendance_repo):
    service = SyncService(attendance_repo)

    first = service.ingest([_payload()])
    second = service.ingest([_payload()])

    assert first[0].status == SyncOutcome.SYNCED
    assert second[0].status == SyncOutcome.DUPLICATE
    assert first[0].record_id == second[0].record_id
    (stored,) = attendance_repo.all()
    assert stored.synced is True
    assert stored.subject == SubjectRef(3, SubjectType.STUDENT)
    assert stored.timestamp == datetime(2026, 2, 2, 8, 7)
    assert stored.method == ScanMethod.FACE_RECOGNITION


def test_ingest_keeps_client_status_verbatim(attendance_repo):
    SyncService(attendance_repo).ingest([_payload(status="late", timestamp="2026-02-02T07:00:00")])

    assert attendance_repo.all()[0].status == AttendanceStatus.LATE


def test_duplicates_within_one_batch(attendance_repo):
    results = SyncService(attendance_repo).ingest([_payload(), _payload()])

    assert [r.status for r in results] == [SyncOutcome.SYNCED, SyncOutcome.DUPLICATE]
    assert len(attendance_repo.all()) == 1


@pytest.mark.parametrize("payload", [{"client_uuid": "x"}, [], "records", None])
def test_ingest_requires_non_empty_list(attendance_repo, payload):
    with pytest.raises(ValidationError):
        SyncService(attendance_repo).ingest(payload)


def test_bad_records_are_reported_individually(attendance_repo):
    results = SyncService(attendance_repo).ingest(
        [
            _payload("good-1"),
            _payload("bad-1", subject_type="visitor"),
            "not a record",
            _payload("", status="present"),
            _payload("bad-2", timestamp="someday"),
            _payload("good-2"),
        ]
    )

    assert [r.status for r in results] == [
        SyncOutcome.SYNCED,
        SyncOutcome.ERROR,
        SyncOutcome.ERROR,
        SyncOutcome.ERROR,
        SyncOutcome.ERROR,
        SyncOutcome.SYNCED,
    ]
    assert results[1].to_dict()["client_uuid"] == "bad-1"
    assert "subject_type" in results[1].error
    assert {r.client_uuid for r in attendance_repo.all()} == {"good-1", "good-2"}


def test_storage_error_marks_only_that_record(attendance_repo, monkeypatch):
    original = attendance_repo.create_record

    def flaky(**kwargs):
        if kwargs["client_uuid"] == "boom":
            raise StorageError("Lost connection to MySQL server")
        return original(**kwargs)

    monkeypatch.setattr(attendance_repo, "create_record", flaky)

    results = SyncService(attendance_repo).ingest([_payload("boom"), _payload("fine")])

    assert [r.to_dict()["status"] for r in results] == ["error", "synced"]


def test_concurrent_insert_of_same_uuid_reports_duplicate(attendance_repo, monkeypatch):
    service = SyncService(attendance_repo)
    (winner,) = service.ingest([_payload()])

    original = attendance_repo.get_by_client_uuid
    lookups = []

    def stale_first_lookup(client_uuid):
        lookups.append(client_uuid)
        return None if len(lookups) == 1 else original(client_uuid)

    monkeypatch.setattr(attendance_repo, "get_by_client_uuid", stale_first_lookup)

    (loser,) = service.ingest([_payload()])

    assert loser.status == SyncOutcome.DUPLICATE
    assert loser.record_id == winner.record_id
    assert len(attendance_repo.all()) == 1


def test_result_dict_shape():
    from attendance_ledger.sync.model import SyncResult

    assert SyncResult("u", SyncOutcome.SYNCED, record_id=5).to_dict() == {"client_uuid": "u", "status": "synced", "id": 5}
    assert SyncResult(None, SyncOutcome.ERROR, error="bad").to_dict() == {
        "client_uuid": None,
        "status": "error",
        "error": "bad",
    }


def _unsynced(repo, client_uuid):
    repo.create_record(
        client_uuid=client_uuid,
        subject=SubjectRef(1, SubjectType.EMPLOYEE),
        timestamp=datetime(2026, 2, 2, 8, 30),
        status=AttendanceStatus.LATE,
        method=ScanMethod.MANUAL,
        synced=False,
    )


def test_list_unsynced_excludes_synced_and_in_flight(attendance_repo):
    _unsynced(attendance_repo, "u-1")
    _unsynced(attendance_repo, "u-2")
    _unsynced(attendance_repo, "u-3")
    attendance_repo.set_sync_state("u-2", syncing=True)
    attendance_repo.set_sync_state("u-3", syncing=False, synced=True)

    batch = SyncService(attendance_repo).list_unsynced()

    assert batch.count == 1
    assert batch.to_dict()["records"][0]["client_uuid"] == "u-1"


def test_list_unsynced_respects_limit(attendance_repo):
    for n in range(5):
        _unsynced(attendance_repo, f"u-{n}")

    assert SyncService(attendance_repo).list_unsynced(limit=2).count == 2


def test_reconcile_without_backlog(attendance_repo, transport):
    report = SyncService(attendance_repo, transport=transport).reconcile()

    assert report.to_dict() == {"message": "No unsynced records found", "count": 0}
    assert transport.batches == []


def test_reconcile_marks_only_confirmed_records(attendance_repo):
    _unsynced(attendance_repo, "u-1")
    _unsynced(attendance_repo, "u-2")
    _unsynced(attendance_repo, "u-3")

    class PartialTransport:
        def send(self, records):
            return [
                {"client_uuid": "u-1", "status": "synced", "id": 10},
                {"client_uuid": "u-2", "status": "duplicate", "id": 11},
                {"client_uuid": "u-3", "status": "error", "error": "bad subject"},
            ]

    report = SyncService(attendance_repo, transport=PartialTransport()).reconcile()

    assert (report.pulled, report.confirmed) == (3, 2)
    assert [r.client_uuid for r in SyncService(attendance_repo).list_unsynced().records] == ["u-3"]
    assert not any(r.syncing for r in attendance_repo.all())


def test_reconcile_transport_failure_releases_records(attendance_repo, transport):
    _unsynced(attendance_repo, "u-1")
    transport.fail = True

    with pytest.raises(SyncTransportError):
        SyncService(attendance_repo, transport=transport).reconcile()

    assert SyncService(attendance_repo).list_unsynced().count == 1


def test_reconcile_needs_a_transport(attendance_repo):
    _unsynced(attendance_repo, "u-1")

    with pytest.raises(ValidationError):
        SyncService(attendance_repo).reconcile()


def test_reconcile_skips_rows_it_cannot_mark_in_flight(attendance_repo, transport):
    for n in range(3):
        _unsynced(attendance_repo, f"u{n}")
    attendance_repo.fail_sync_state_for.add("u1")

    report = SyncService(attendance_repo, transport=transport).reconcile()

    assert (report.pulled, report.confirmed) == (3, 2)
    assert [p["client_uuid"] for p in transport.batches[0]] == ["u0", "u2"]
    assert [r.client_uuid for r in SyncService(attendance_repo).list_unsynced().records] == ["u1"]
    assert not any(r.syncing for r in attendance_repo.all())


def test_reconcile_transport_failure_releases_every_marked_row(attendance_repo, transport):
    for n in range(3):
        _unsynced(attendance_repo, f"u{n}")
    attendance_repo.fail_sync_state_for.add("u1")
    transport.fail = True

    with pytest.raises(SyncTransportError):
        SyncService(attendance_repo, transport=transport).reconcile()

    unsynced = [r.client_uuid for r in SyncService(attendance_repo).list_unsynced().records]
    assert unsynced == ["u0", "u1", "u2"]


def test_reconcile_releases_row_when_confirmation_write_fails(attendance_repo, transport, monkeypatch):
    for n in range(2):
        _unsynced(attendance_repo, f"u{n}")
    original = attendance_repo.set_sync_state

    def refuse_confirming_u0(client_uuid, *, syncing, synced=None):
        if client_uuid == "u0" and synced:
            raise StorageError("Deadlock found when trying to get lock")
        return original(client_uuid, syncing=syncing, synced=synced)

    monkeypatch.setattr(attendance_repo, "set_sync_state", refuse_confirming_u0)

    report = SyncService(attendance_repo, transport=transport).reconcile()

    assert report.confirmed == 1
    assert [r.client_uuid for r in SyncService(attendance_repo).list_unsynced().records] == ["u0"]


def test_reconcile_with_no_markable_rows_sends_nothing(attendance_repo, transport):
    _unsynced(attendance_repo, "u0")
    attendance_repo.fail_sync_state_for.add("u0")

    report = SyncService(attendance_repo, transport=transport).reconcile()

    assert (report.pulled, report.confirmed) == (1, 0)
    assert transport.batches == []
