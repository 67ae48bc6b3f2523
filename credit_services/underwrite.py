"""
credit_services.underwrite -- End-to-end deterministic underwriting pipeline.

Responsibility:
    Compose Snapshot -> (Lens analysis, Policy) -> Stress -> Pricing ->
    Memo into one call, applying a bank configuration's overrides where
    given, and return either a complete result or a failure naming the
    stage that could not proceed.

Architecture position:
    Services -- orchestration over pure engines.  The only component that
    reads a Clock, and only when the caller did not supply
    ``generated_at``.

Invariants enforced:
    - Strictly sequential; every stage receives values, never shared
      mutable state.
    - Only two pipeline-fatal conditions: no analysis period
      (``failed_at="snapshot"``) and no stress baseline
      (``failed_at="stress"``).  Policy, pricing and memo always produce
      a result given a snapshot.
    - Same input and same ``generated_at``, deep-equal result.  When
      ``generated_at`` is omitted the stamp comes from the clock, so two
      such calls differ in ``generated_at`` alone; replay identity is then
      ``compute_artifact_hashes``, which excludes the stamp.

Failure modes:
    - Expected failures are returned as ``UnderwriteFailure``.
    - UnknownProductError for a product outside ProductType (programmer
      error, raised before any stage runs).

Audit relevance:
    Each successful result carries the snapshot hash over facts, model,
    metrics, registry binding and policy version.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from credit_config.loader import BankConfig
from credit_engines.lenses import ProductAnalysis
from credit_engines.memo import CreditMemo, build_credit_memo
from credit_engines.policy import PolicyResult, compute_policy_decision
from credit_engines.pricing import PricingResult, compute_pricing
from credit_engines.snapshot import (
    CreditSnapshot,
    SelectionStrategy,
    SnapshotOptions,
    compute_credit_snapshot,
)
from credit_engines.stress import StressResult, run_stress_scenarios
from credit_kernel.domain.clock import Clock, SystemClock
from credit_kernel.domain.financial_model import FinancialModel
from credit_kernel.domain.instruments import DebtInstrument
from credit_kernel.domain.metrics import RegistryBinding
from credit_kernel.domain.products import ProductType
from credit_kernel.logging_config import LogContext, get_logger
from credit_services.snapshot_hash import compute_snapshot_hash
from credit_services.wire import to_wire

logger = get_logger("services.underwrite")

STAGE_SNAPSHOT = "snapshot"
STAGE_STRESS = "stress"


@dataclass(frozen=True)
class UnderwriteInput:
    model: FinancialModel
    product: ProductType | str
    instruments: tuple[DebtInstrument, ...] | None = None
    strategy: SelectionStrategy = SelectionStrategy.LATEST_FY
    period_id: str | None = None
    bank_config: BankConfig | None = None
    generated_at: datetime | None = None
    registry_binding: RegistryBinding | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "product", ProductType.parse(self.product))
        object.__setattr__(self, "strategy", SelectionStrategy(self.strategy))
        if self.instruments is not None:
            object.__setattr__(self, "instruments", tuple(self.instruments))


@dataclass(frozen=True)
class UnderwriteDiagnostics:
    pipeline_complete: bool
    failed_at: str | None = None
    reason: str | None = None
    bank_config_id: str | None = None


@dataclass(frozen=True)
class UnderwriteResult:
    deal_id: str
    product: ProductType
    model: FinancialModel
    snapshot: CreditSnapshot
    analysis: ProductAnalysis
    policy: PolicyResult
    stress: StressResult
    pricing: PricingResult
    memo: CreditMemo
    snapshot_hash: str
    registry_binding: RegistryBinding | None
    generated_at: datetime
    diagnostics: UnderwriteDiagnostics


@dataclass(frozen=True)
class UnderwriteFailure:
    deal_id: str
    product: ProductType
    generated_at: datetime
    diagnostics: UnderwriteDiagnostics


def _failure(
    request: UnderwriteInput,
    generated_at: datetime,
    stage: str,
    reason: str,
) -> UnderwriteFailure:
    logger.warning(
        "underwrite_failed",
        extra={"deal_id": request.model.deal_id, "failed_at": stage, "reason": reason},
    )
    return UnderwriteFailure(
        deal_id=request.model.deal_id,
        product=request.product,
        generated_at=generated_at,
        diagnostics=UnderwriteDiagnostics(
            pipeline_complete=False,
            failed_at=stage,
            reason=reason,
            bank_config_id=request.bank_config.id if request.bank_config else None,
        ),
    )


def run_full_underwrite(
    request: UnderwriteInput,
    clock: Clock | None = None,
) -> UnderwriteResult | UnderwriteFailure:
    """Run the whole pipeline for one deal."""
    generated_at = request.generated_at or (clock or SystemClock()).now()
    bank = request.bank_config

    with LogContext.bind(
        deal_id=request.model.deal_id,
        bank_id=bank.bank_id if bank else None,
    ):
        options = SnapshotOptions(
            strategy=request.strategy,
            period_id=request.period_id,
            instruments=request.instruments,
            generated_at=generated_at,
        )
        snapshot = compute_credit_snapshot(request.model, options)
        if snapshot is None:
            return _failure(
                request,
                generated_at,
                STAGE_SNAPSHOT,
                f"No analysis period found for strategy {request.strategy.value}",
            )

        analysis, policy = compute_policy_decision(
            snapshot, request.product, bank.policy if bank else None
        )

        stress = run_stress_scenarios(
            request.model,
            options,
            request.product,
            bank.policy if bank else None,
            bank.stress if bank else None,
        )
        if stress is None:
            return _failure(
                request,
                generated_at,
                STAGE_STRESS,
                "Stress engine could not build a baseline snapshot",
            )

        pricing = compute_pricing(
            request.product,
            policy.tier,
            stressed_tier=stress.worst_tier,
            config=bank.pricing if bank else None,
        )
        memo = build_credit_memo(snapshot, analysis, policy, stress, pricing)

        period = request.model.period(snapshot.period.period_id)
        snapshot_hash = compute_snapshot_hash(
            facts=period.facts() if period is not None else {},
            financial_model=request.model,
            metrics={name: metric.value for name, metric in snapshot.ratios.items()},
            registry_version=request.registry_binding.to_dict()
            if request.registry_binding
            else None,
            policy_version=policy.policy_version,
        )

        logger.info(
            "underwrite_completed",
            extra={
                "deal_id": request.model.deal_id,
                "product": request.product.value,
                "tier": policy.tier.value,
                "worst_tier": stress.worst_tier.value,
                "recommendation": memo.recommendation.value,
                "snapshot_hash": snapshot_hash,
            },
        )
        return UnderwriteResult(
            deal_id=request.model.deal_id,
            product=request.product,
            model=request.model,
            snapshot=snapshot,
            analysis=analysis,
            policy=policy,
            stress=stress,
            pricing=pricing,
            memo=memo,
            snapshot_hash=snapshot_hash,
            registry_binding=request.registry_binding,
            generated_at=generated_at,
            diagnostics=UnderwriteDiagnostics(
                pipeline_complete=True,
                bank_config_id=bank.id if bank else None,
            ),
        )


def result_to_dict(result: UnderwriteResult | UnderwriteFailure) -> dict[str, Any]:
    """JSON-safe, camelCase rendering of a result or failure."""
    return to_wire(result)
