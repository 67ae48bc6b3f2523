"""
Metric registry value objects.

Responsibility:
    Define the versioned catalogue entries (``MetricDefinition``), the
    registry version lifecycle record, and the binding that records which
    registry a computation used.

Architecture position:
    Kernel > Domain -- pure value objects. Persistence lives in
    ``credit_kernel.models.registry``; orchestration in
    ``credit_services.registry_service``.

Invariants enforced:
    - One canonical definition per metric id per version.
    - ``compute_registry_content_hash`` is order-independent: entries are
      sorted by metric key before hashing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, unique
from typing import Any

from credit_kernel.utils.hashing import hash_payload


@unique
class RegistryStatus(str, Enum):
    """Lifecycle status of a metric registry version."""

    DRAFT = "draft"
    PUBLISHED = "published"
    DEPRECATED = "deprecated"


class BusinessModel(str, Enum):
    OPERATING_COMPANY = "OPERATING_COMPANY"
    REAL_ESTATE = "REAL_ESTATE"
    MIXED = "MIXED"


@dataclass(frozen=True)
class MetricDefinition:
    """A named formula over fact keys (and other metric ids)."""

    id: str
    label: str
    expr: str
    precision: int = 2
    is_percent: bool = False
    required_facts: tuple[str, ...] = ()
    applicable_to: tuple[BusinessModel, ...] = ()
    version: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "required_facts", tuple(self.required_facts))
        object.__setattr__(
            self,
            "applicable_to",
            tuple(BusinessModel(b) for b in self.applicable_to),
        )

    def applies_to(self, business_model: BusinessModel | str) -> bool:
        return not self.applicable_to or BusinessModel(business_model) in self.applicable_to

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "expr": self.expr,
            "precision": self.precision,
            "isPercent": self.is_percent,
            "requiredFacts": list(self.required_facts),
            "applicableTo": [b.value for b in self.applicable_to],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MetricDefinition:
        return cls(
            id=str(data["id"]),
            label=str(data.get("label", data["id"])),
            expr=str(data["expr"]),
            precision=int(data.get("precision", 2)),
            is_percent=bool(data.get("isPercent", data.get("is_percent", False))),
            required_facts=tuple(data.get("requiredFacts", data.get("required_facts", ()))),
            applicable_to=tuple(data.get("applicableTo", data.get("applicable_to", ()))),
            version=int(data.get("version", 1)),
        )


@dataclass(frozen=True)
class RegistryVersion:
    id: str
    version_name: str
    version_number: int
    status: RegistryStatus = RegistryStatus.DRAFT
    content_hash: str | None = None
    created_at: datetime | None = None
    published_at: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", RegistryStatus(self.status))


@dataclass(frozen=True)
class RegistryEntry:
    registry_version_id: str
    metric_key: str
    definition: MetricDefinition
    definition_hash: str


@dataclass(frozen=True)
class RegistryBinding:
    """
    Which registry a computation used.

    ``registry_version_id`` is None when the built-in seed catalogue was
    used because no published version exists.
    """

    registry_version_id: str | None
    version_name: str
    content_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "registryVersionId": self.registry_version_id,
            "versionName": self.version_name,
            "contentHash": self.content_hash,
        }


def hash_definition(definition: MetricDefinition) -> str:
    return hash_payload(definition.to_dict())


def compute_registry_content_hash(definitions: Iterable[MetricDefinition]) -> str:
    """SHA-256 over (metric_key, definition_json) pairs sorted by key."""
    pairs = sorted(
        ((d.id, d.to_dict()) for d in definitions),
        key=lambda pair: pair[0],
    )
    return hash_payload([[key, body] for key, body in pairs])
