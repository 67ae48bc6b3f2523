"""
credit_services.registry_store -- Persistence backends for the metric registry.

Responsibility:
    Store registry versions, their entries and per-bank pins, and perform
    the single compare-and-swap on status that guards publish and
    deprecate.

Architecture position:
    Services -- I/O boundary.  ``MetricRegistryService`` is the only caller.

Invariants enforced:
    - Status changes only through ``compare_and_set_status``: the update
      succeeds only if the row still holds the expected status.  A lost
      race returns False; it never raises.
    - Entries are written once, while the version is a draft.

Failure modes:
    - sqlalchemy errors propagate from ``SqlAlchemyRegistryStore``
      (the surrounding transaction is rolled back).
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from uuid import uuid4

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session, sessionmaker

from credit_kernel.db.engine import get_session_factory
from credit_kernel.domain.metrics import RegistryEntry, RegistryStatus, RegistryVersion
from credit_kernel.logging_config import get_logger
from credit_kernel.models.registry import (
    BankRegistryPinRecord,
    MetricRegistryEntryRecord,
    MetricRegistryVersionRecord,
)

logger = get_logger("services.registry_store")


class RegistryStore(ABC):
    """Storage contract of the metric registry."""

    @abstractmethod
    def create_version(self, version_name: str, created_at: datetime) -> RegistryVersion:
        """Insert a new draft version with the next version number."""

    @abstractmethod
    def find_version_by_name(self, version_name: str) -> RegistryVersion | None: ...

    @abstractmethod
    def add_entries(self, entries: Iterable[RegistryEntry]) -> None: ...

    @abstractmethod
    def get_version(self, version_id: str) -> RegistryVersion | None: ...

    @abstractmethod
    def get_entries(self, version_id: str) -> tuple[RegistryEntry, ...]:
        """Entries of a version, sorted by metric key."""

    @abstractmethod
    def latest_published(self) -> RegistryVersion | None: ...

    @abstractmethod
    def compare_and_set_status(
        self,
        version_id: str,
        expected: RegistryStatus,
        target: RegistryStatus,
        content_hash: str | None = None,
        published_at: datetime | None = None,
    ) -> bool:
        """Move ``expected`` -> ``target`` atomically; False if the row moved first."""

    @abstractmethod
    def set_bank_pin(self, bank_id: str, version_id: str, pinned_at: datetime) -> None: ...

    @abstractmethod
    def get_bank_pin(self, bank_id: str) -> str | None: ...


def _latest(versions: Iterable[RegistryVersion]) -> RegistryVersion | None:
    published = [v for v in versions if v.status is RegistryStatus.PUBLISHED]
    if not published:
        return None
    return max(published, key=lambda v: (v.published_at or v.created_at, v.version_number))


class InMemoryRegistryStore(RegistryStore):
    """Process-local store; a lock stands in for the database's row atomicity."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._versions: dict[str, RegistryVersion] = {}
        self._entries: dict[str, dict[str, RegistryEntry]] = {}
        self._pins: dict[str, str] = {}

    def create_version(self, version_name: str, created_at: datetime) -> RegistryVersion:
        with self._lock:
            version = RegistryVersion(
                id=str(uuid4()),
                version_name=version_name,
                version_number=len(self._versions) + 1,
                status=RegistryStatus.DRAFT,
                created_at=created_at,
            )
            self._versions[version.id] = version
            self._entries[version.id] = {}
            return version

    def find_version_by_name(self, version_name: str) -> RegistryVersion | None:
        for version in self._versions.values():
            if version.version_name == version_name:
                return version
        return None

    def add_entries(self, entries: Iterable[RegistryEntry]) -> None:
        with self._lock:
            for entry in entries:
                self._entries[entry.registry_version_id][entry.metric_key] = entry

    def get_version(self, version_id: str) -> RegistryVersion | None:
        return self._versions.get(version_id)

    def get_entries(self, version_id: str) -> tuple[RegistryEntry, ...]:
        entries = self._entries.get(version_id, {})
        return tuple(entries[key] for key in sorted(entries))

    def latest_published(self) -> RegistryVersion | None:
        return _latest(self._versions.values())

    def compare_and_set_status(
        self,
        version_id: str,
        expected: RegistryStatus,
        target: RegistryStatus,
        content_hash: str | None = None,
        published_at: datetime | None = None,
    ) -> bool:
        with self._lock:
            current = self._versions.get(version_id)
            if current is None or current.status is not expected:
                return False
            changes: dict = {"status": target}
            if content_hash is not None:
                changes["content_hash"] = content_hash
            if published_at is not None:
                changes["published_at"] = published_at
            self._versions[version_id] = replace(current, **changes)
            return True

    def set_bank_pin(self, bank_id: str, version_id: str, pinned_at: datetime) -> None:
        with self._lock:
            self._pins[bank_id] = version_id

    def get_bank_pin(self, bank_id: str) -> str | None:
        return self._pins.get(bank_id)


class SqlAlchemyRegistryStore(RegistryStore):
    """
    Relational store over ``metric_registry_versions``,
    ``metric_registry_entries`` and ``bank_registry_pins``.

    Each method runs in its own transaction.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None):
        self._session_factory = session_factory or get_session_factory()

    @contextmanager
    def _scope(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("registry_store_rolled_back", exc_info=True)
            raise
        finally:
            session.close()

    def create_version(self, version_name: str, created_at: datetime) -> RegistryVersion:
        with self._scope() as session:
            current_max = session.scalar(
                select(func.max(MetricRegistryVersionRecord.version_number))
            )
            record = MetricRegistryVersionRecord(
                version_name=version_name,
                version_number=(current_max or 0) + 1,
                status=RegistryStatus.DRAFT.value,
                created_at=created_at,
            )
            session.add(record)
            session.flush()
            return record.to_domain()

    def find_version_by_name(self, version_name: str) -> RegistryVersion | None:
        with self._scope() as session:
            record = session.scalar(
                select(MetricRegistryVersionRecord).where(
                    MetricRegistryVersionRecord.version_name == version_name
                )
            )
            return record.to_domain() if record is not None else None

    def add_entries(self, entries: Iterable[RegistryEntry]) -> None:
        with self._scope() as session:
            session.add_all(
                MetricRegistryEntryRecord(
                    registry_version_id=entry.registry_version_id,
                    metric_key=entry.metric_key,
                    definition_json=entry.definition.to_dict(),
                    definition_hash=entry.definition_hash,
                )
                for entry in entries
            )

    def get_version(self, version_id: str) -> RegistryVersion | None:
        with self._scope() as session:
            record = session.get(MetricRegistryVersionRecord, version_id)
            return record.to_domain() if record is not None else None

    def get_entries(self, version_id: str) -> tuple[RegistryEntry, ...]:
        with self._scope() as session:
            records = session.scalars(
                select(MetricRegistryEntryRecord)
                .where(MetricRegistryEntryRecord.registry_version_id == version_id)
                .order_by(MetricRegistryEntryRecord.metric_key)
            )
            return tuple(record.to_domain() for record in records)

    def latest_published(self) -> RegistryVersion | None:
        with self._scope() as session:
            record = session.scalar(
                select(MetricRegistryVersionRecord)
                .where(MetricRegistryVersionRecord.status == RegistryStatus.PUBLISHED.value)
                .order_by(
                    MetricRegistryVersionRecord.published_at.desc(),
                    MetricRegistryVersionRecord.version_number.desc(),
                )
                .limit(1)
            )
            return record.to_domain() if record is not None else None

    def compare_and_set_status(
        self,
        version_id: str,
        expected: RegistryStatus,
        target: RegistryStatus,
        content_hash: str | None = None,
        published_at: datetime | None = None,
    ) -> bool:
        values: dict = {"status": target.value}
        if content_hash is not None:
            values["content_hash"] = content_hash
        if published_at is not None:
            values["published_at"] = published_at
        with self._scope() as session:
            result = session.execute(
                update(MetricRegistryVersionRecord)
                .where(
                    MetricRegistryVersionRecord.id == version_id,
                    MetricRegistryVersionRecord.status == expected.value,
                )
                .values(**values)
            )
            return result.rowcount == 1

    def set_bank_pin(self, bank_id: str, version_id: str, pinned_at: datetime) -> None:
        with self._scope() as session:
            record = session.scalar(
                select(BankRegistryPinRecord).where(BankRegistryPinRecord.bank_id == bank_id)
            )
            if record is None:
                session.add(
                    BankRegistryPinRecord(
                        bank_id=bank_id,
                        registry_version_id=version_id,
                        pinned_at=pinned_at,
                    )
                )
            else:
                record.registry_version_id = version_id
                record.pinned_at = pinned_at

    def get_bank_pin(self, bank_id: str) -> str | None:
        with self._scope() as session:
            return session.scalar(
                select(BankRegistryPinRecord.registry_version_id).where(
                    BankRegistryPinRecord.bank_id == bank_id
                )
            )
