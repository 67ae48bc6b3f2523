"""
credit_services.snapshot_hash -- Content hashes for audit replay.

Responsibility:
    Produce canonical SHA-256 digests over the inputs and outputs of an
    underwriting run so that a replay can prove it reproduced the same
    numbers.

Invariants enforced:
    - Key order never changes a hash (canonical JSON sorts keys).
    - Decimal normalization: 1.0 and 1 hash identically.
    - Volatile ``generated_at`` stamps are excluded from artifact hashes.

Audit relevance:
    The snapshot hash binds facts, model, metrics, registry version and
    policy version together.  Artifact hashes let an auditor pinpoint
    which stage of a replay diverged.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from credit_kernel.domain.financial_model import FinancialModel
from credit_kernel.utils.hashing import hash_payload, strip_volatile_fields
from credit_services.wire import to_wire

if TYPE_CHECKING:
    from credit_services.underwrite import UnderwriteResult

VOLATILE_FIELDS: frozenset[str] = frozenset({"generatedAt", "generated_at"})

ARTIFACTS: tuple[str, ...] = ("model", "snapshot", "policy", "stress", "pricing", "memo")


def compute_snapshot_hash(
    facts: Any,
    financial_model: Any,
    metrics: Any,
    registry_version: Any,
    policy_version: Any,
) -> str:
    """SHA-256 over the canonical JSON of the five audit components."""
    if isinstance(financial_model, FinancialModel):
        financial_model = financial_model.to_dict()
    return hash_payload(
        {
            "facts": facts,
            "financialModel": financial_model,
            "metrics": metrics,
            "registryVersion": registry_version,
            "policyVersion": policy_version,
        }
    )


def _artifact_hash(value: Any) -> str:
    return hash_payload(strip_volatile_fields(to_wire(value), VOLATILE_FIELDS))


def compute_artifact_hashes(result: UnderwriteResult) -> dict[str, str]:
    """Per-stage hashes of a successful run plus an ``overall`` hash over them."""
    hashes = {
        "model": hash_payload(result.model.to_dict()),
        "snapshot": _artifact_hash(result.snapshot),
        "policy": _artifact_hash(result.policy),
        "stress": _artifact_hash(result.stress),
        "pricing": _artifact_hash(result.pricing),
        "memo": _artifact_hash(result.memo),
    }
    hashes["overall"] = hash_payload([hashes[name] for name in ARTIFACTS])
    return hashes
