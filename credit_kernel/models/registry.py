"""
Module: credit_kernel.models.registry
Responsibility: ORM persistence for the versioned metric registry --
    versions, their entries, and per-bank version pins.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain value objects it converts to.

Invariants enforced:
    - (registry_version_id, metric_key) is unique: one definition per
      metric per version.
    - One pin per bank (uq_bank_registry_pin).
    - Status changes happen only through conditional UPDATEs issued by
      SqlAlchemyRegistryStore; rows are never edited in place otherwise.

Audit relevance:
    content_hash and definition_hash let a replay prove that the registry
    a historical computation was bound to is byte-for-byte unchanged.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_kernel.db.base import Base, UUIDString
from credit_kernel.domain.metrics import (
    MetricDefinition,
    RegistryEntry,
    RegistryStatus,
    RegistryVersion,
)


class MetricRegistryVersionRecord(Base):
    __tablename__ = "metric_registry_versions"

    __table_args__ = (
        UniqueConstraint("version_name", name="uq_registry_version_name"),
        Index("idx_registry_version_status", "status"),
    )

    version_name: Mapped[str] = mapped_column(String(100), nullable=False)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RegistryStatus.DRAFT.value
    )
    content_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_domain(self) -> RegistryVersion:
        return RegistryVersion(
            id=self.id,
            version_name=self.version_name,
            version_number=self.version_number,
            status=RegistryStatus(self.status),
            content_hash=self.content_hash,
            created_at=self.created_at,
            published_at=self.published_at,
        )


class MetricRegistryEntryRecord(Base):
    __tablename__ = "metric_registry_entries"

    __table_args__ = (
        UniqueConstraint(
            "registry_version_id", "metric_key", name="uq_registry_entry_metric"
        ),
    )

    registry_version_id: Mapped[str] = mapped_column(
        UUIDString(),
        ForeignKey("metric_registry_versions.id"),
        nullable=False,
    )
    metric_key: Mapped[str] = mapped_column(String(100), nullable=False)
    definition_json: Mapped[dict] = mapped_column(JSON, nullable=False)
    definition_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def to_domain(self) -> RegistryEntry:
        return RegistryEntry(
            registry_version_id=self.registry_version_id,
            metric_key=self.metric_key,
            definition=MetricDefinition.from_dict(self.definition_json),
            definition_hash=self.definition_hash,
        )


class BankRegistryPinRecord(Base):
    __tablename__ = "bank_registry_pins"

    __table_args__ = (UniqueConstraint("bank_id", name="uq_bank_registry_pin"),)

    bank_id: Mapped[str] = mapped_column(String(100), nullable=False)
    registry_version_id: Mapped[str] = mapped_column(
        UUIDString(),
        ForeignKey("metric_registry_versions.id"),
        nullable=False,
    )
    pinned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
