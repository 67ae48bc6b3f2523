"""
credit_services -- Stateful edges of the underwriting core.

Metric registry lifecycle over a pluggable store, the end-to-end
underwriting orchestrator, and the content hashes used for audit replay.
"""

from credit_services.registry_service import (
    LoadedRegistry,
    MetricRegistryService,
    RegistryResult,
    RegistrySource,
)
from credit_services.registry_store import (
    InMemoryRegistryStore,
    RegistryStore,
    SqlAlchemyRegistryStore,
)
from credit_services.snapshot_hash import compute_artifact_hashes, compute_snapshot_hash
from credit_services.underwrite import (
    UnderwriteDiagnostics,
    UnderwriteFailure,
    UnderwriteInput,
    UnderwriteResult,
    result_to_dict,
    run_full_underwrite,
)

__all__ = [
    "InMemoryRegistryStore",
    "LoadedRegistry",
    "MetricRegistryService",
    "RegistryResult",
    "RegistrySource",
    "RegistryStore",
    "SqlAlchemyRegistryStore",
    "UnderwriteDiagnostics",
    "UnderwriteFailure",
    "UnderwriteInput",
    "UnderwriteResult",
    "compute_artifact_hashes",
    "compute_snapshot_hash",
    "result_to_dict",
    "run_full_underwrite",
]
