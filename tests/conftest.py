"""Shared fixtures: in-memory storage, a ticking clock and a ready store."""

from datetime import datetime, timedelta, timezone

import pytest

from tabunganku.audit import AuditLogger
from tabunganku.ledger import IdGenerator, LedgerStore
from tabunganku.models import StudentCandidate
from tabunganku.services.storage import InMemoryAuditStorage, InMemoryStorage


class TickingClock:
    """Returns a new timestamp, one second later, on every call."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FailingStorage(InMemoryStorage):
    """Reads work, every write blows up."""

    def save(self, key: str, blob: str) -> bool:
        raise OSError("disk full")


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def clock():
    return TickingClock(datetime(2024, 7, 1, 8, 0, tzinfo=timezone.utc))


@pytest.fixture
def store(storage, audit_logger, clock):
    return LedgerStore(
        storage=storage,
        audit_logger=audit_logger,
        id_generator=IdGenerator(),
        clock=clock,
    )


@pytest.fixture
def ahmad(store):
    return store.add_student(StudentCandidate(name="Ahmad Rizky", class_name="10 IPA 1"))


@pytest.fixture
def failing_storage():
    return FailingStorage()
