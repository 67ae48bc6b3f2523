"""
credit_services.registry_service -- Versioned metric registry lifecycle.

Responsibility:
    Create draft registry versions, publish them (computing the content
    hash), deprecate them, pin banks to a version, and resolve which
    definitions a computation should use.

Architecture position:
    Services -- stateful orchestration over a ``RegistryStore``.  Callers
    obtain a ``LoadedRegistry`` value once via ``load()`` and thread it
    through their computation; there is no ambient "current registry".

Invariants enforced:
    - Published versions are immutable.  Publish requires status draft and
      is a single compare-and-swap in the store.
    - content_hash is SHA-256 over (metric_key, definition_json) pairs
      sorted by key.
    - Resolution order: bank pin, then latest published, then the
      built-in seed catalogue.

Failure modes:
    - Registry-state conflicts are returned as ``RegistryResult(ok=False,
      error=...)``, never raised: ``version_not_found``,
      ``REGISTRY_IMMUTABLE``, ``no_entries``, ``publish_failed``,
      ``already_deprecated``, ``only_published_can_be_deprecated``,
      ``only_published_can_be_pinned``, ``duplicate_version_name``.
    - RegistryWiringError for definitions that cannot form a registry
      (duplicate metric ids).

Audit relevance:
    Every loaded registry carries a ``RegistryBinding`` (version id, name
    and content hash) that the orchestrator records for replay.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Generic, TypeVar

from credit_config.lifecycle import validate_transition
from credit_config.loader import MetricSeed, default_metric_seed
from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.domain.metrics import (
    MetricDefinition,
    RegistryBinding,
    RegistryEntry,
    RegistryStatus,
    RegistryVersion,
    compute_registry_content_hash,
    hash_definition,
)
from credit_kernel.exceptions import RegistryWiringError
from credit_kernel.logging_config import get_logger
from credit_services.registry_store import RegistryStore

logger = get_logger("services.registry")

T = TypeVar("T")

VERSION_NOT_FOUND = "version_not_found"
REGISTRY_IMMUTABLE = "REGISTRY_IMMUTABLE"
NO_ENTRIES = "no_entries"
PUBLISH_FAILED = "publish_failed"
ALREADY_DEPRECATED = "already_deprecated"
ONLY_PUBLISHED_CAN_BE_DEPRECATED = "only_published_can_be_deprecated"
ONLY_PUBLISHED_CAN_BE_PINNED = "only_published_can_be_pinned"
DUPLICATE_VERSION_NAME = "duplicate_version_name"


@dataclass(frozen=True)
class RegistryResult(Generic[T]):
    ok: bool
    value: T | None = None
    error: str | None = None

    @classmethod
    def success(cls, value: T) -> RegistryResult[T]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> RegistryResult[T]:
        return cls(ok=False, error=error)


class RegistrySource(str, Enum):
    BANK_PIN = "bank_pin"
    PUBLISHED = "published"
    VERSION = "version"
    SEED = "seed"


@dataclass(frozen=True)
class LoadedRegistry:
    """Definitions resolved for one computation, plus the binding to record."""

    definitions: Mapping[str, MetricDefinition]
    binding: RegistryBinding
    source: RegistrySource

    def get(self, metric_id: str) -> MetricDefinition | None:
        return self.definitions.get(metric_id)

    def values(self) -> tuple[MetricDefinition, ...]:
        return tuple(self.definitions[key] for key in sorted(self.definitions))


def _loaded(
    definitions: Iterable[MetricDefinition],
    binding: RegistryBinding,
    source: RegistrySource,
) -> LoadedRegistry:
    return LoadedRegistry(
        definitions=MappingProxyType({d.id: d for d in sorted(definitions, key=lambda d: d.id)}),
        binding=binding,
        source=source,
    )


class MetricRegistryService:
    """
    Lifecycle and resolution of metric registry versions.

    Contract:
        Mutating operations return ``RegistryResult``; ``load`` always
        returns a usable registry (the seed catalogue at worst).
    """

    def __init__(
        self,
        store: RegistryStore,
        clock: Clock | None = None,
        seed: MetricSeed | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._seed = seed

    @property
    def seed(self) -> MetricSeed:
        return self._seed or default_metric_seed()

    # -- lifecycle -----------------------------------------------------------

    def create_draft(
        self,
        version_name: str,
        definitions: Iterable[MetricDefinition],
    ) -> RegistryResult[RegistryVersion]:
        definitions = list(definitions)
        ids = [d.id for d in definitions]
        if len(ids) != len(set(ids)):
            raise RegistryWiringError(f"duplicate metric ids in draft '{version_name}'")
        if self._store.find_version_by_name(version_name) is not None:
            return RegistryResult.failure(DUPLICATE_VERSION_NAME)

        version = self._store.create_version(version_name, self._clock.now())
        self._store.add_entries(
            RegistryEntry(
                registry_version_id=version.id,
                metric_key=d.id,
                definition=d,
                definition_hash=hash_definition(d),
            )
            for d in definitions
        )
        logger.info(
            "registry_draft_created",
            extra={
                "registry_version_id": version.id,
                "version_name": version_name,
                "entry_count": len(definitions),
            },
        )
        return RegistryResult.success(version)

    def publish(self, version_id: str) -> RegistryResult[RegistryVersion]:
        version = self._store.get_version(version_id)
        if version is None:
            return RegistryResult.failure(VERSION_NOT_FOUND)
        if not validate_transition(version.status, RegistryStatus.PUBLISHED):
            logger.warning(
                "registry_publish_rejected",
                extra={"registry_version_id": version_id, "status": version.status.value},
            )
            return RegistryResult.failure(REGISTRY_IMMUTABLE)

        entries = self._store.get_entries(version_id)
        if not entries:
            return RegistryResult.failure(NO_ENTRIES)

        content_hash = compute_registry_content_hash(e.definition for e in entries)
        swapped = self._store.compare_and_set_status(
            version_id,
            expected=RegistryStatus.DRAFT,
            target=RegistryStatus.PUBLISHED,
            content_hash=content_hash,
            published_at=self._clock.now(),
        )
        if not swapped:
            logger.warning("registry_publish_race_lost", extra={"registry_version_id": version_id})
            return RegistryResult.failure(PUBLISH_FAILED)

        published = self._store.get_version(version_id)
        logger.info(
            "registry_published",
            extra={
                "registry_version_id": version_id,
                "version_name": version.version_name,
                "content_hash": content_hash,
            },
        )
        return RegistryResult.success(published)

    def deprecate(self, version_id: str) -> RegistryResult[RegistryVersion]:
        version = self._store.get_version(version_id)
        if version is None:
            return RegistryResult.failure(VERSION_NOT_FOUND)
        if version.status is RegistryStatus.DEPRECATED:
            return RegistryResult.failure(ALREADY_DEPRECATED)
        if version.status is not RegistryStatus.PUBLISHED:
            return RegistryResult.failure(ONLY_PUBLISHED_CAN_BE_DEPRECATED)

        swapped = self._store.compare_and_set_status(
            version_id,
            expected=RegistryStatus.PUBLISHED,
            target=RegistryStatus.DEPRECATED,
        )
        if not swapped:
            return RegistryResult.failure(ALREADY_DEPRECATED)

        logger.info("registry_deprecated", extra={"registry_version_id": version_id})
        return RegistryResult.success(self._store.get_version(version_id))

    def pin_bank(self, bank_id: str, version_id: str) -> RegistryResult[RegistryVersion]:
        version = self._store.get_version(version_id)
        if version is None:
            return RegistryResult.failure(VERSION_NOT_FOUND)
        if version.status is not RegistryStatus.PUBLISHED:
            return RegistryResult.failure(ONLY_PUBLISHED_CAN_BE_PINNED)
        self._store.set_bank_pin(bank_id, version_id, self._clock.now())
        logger.info(
            "registry_bank_pinned",
            extra={"bank_id": bank_id, "registry_version_id": version_id},
        )
        return RegistryResult.success(version)

    # -- resolution ----------------------------------------------------------

    def _load_stored(self, version: RegistryVersion, source: RegistrySource) -> LoadedRegistry | None:
        entries = self._store.get_entries(version.id)
        if not entries:
            return None
        definitions = [e.definition for e in entries]
        return _loaded(
            definitions,
            RegistryBinding(
                registry_version_id=version.id,
                version_name=version.version_name,
                content_hash=version.content_hash or compute_registry_content_hash(definitions),
            ),
            source,
        )

    def load_seed(self) -> LoadedRegistry:
        seed = self.seed
        return _loaded(
            seed.definitions,
            RegistryBinding(
                registry_version_id=None,
                version_name=seed.version_name,
                content_hash=seed.content_hash,
            ),
            RegistrySource.SEED,
        )

    def load(self, bank_id: str | None = None) -> LoadedRegistry:
        """Resolve the registry for a computation: bank pin, latest published, seed."""
        if bank_id is not None:
            pinned_id = self._store.get_bank_pin(bank_id)
            pinned = self._store.get_version(pinned_id) if pinned_id else None
            if pinned is not None and pinned.status is not RegistryStatus.DRAFT:
                loaded = self._load_stored(pinned, RegistrySource.BANK_PIN)
                if loaded is not None:
                    return loaded

        latest = self._store.latest_published()
        if latest is not None:
            loaded = self._load_stored(latest, RegistrySource.PUBLISHED)
            if loaded is not None:
                return loaded

        logger.info("registry_seed_fallback", extra={"bank_id": bank_id})
        return self.load_seed()

    def load_version(self, version_id: str) -> RegistryResult[LoadedRegistry]:
        """Load a specific published or deprecated version, for replay."""
        version = self._store.get_version(version_id)
        if version is None or version.status is RegistryStatus.DRAFT:
            return RegistryResult.failure(VERSION_NOT_FOUND)
        loaded = self._load_stored(version, RegistrySource.VERSION)
        if loaded is None:
            return RegistryResult.failure(NO_ENTRIES)
        return RegistryResult.success(loaded)
