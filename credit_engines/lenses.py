"""
credit_engines.lenses -- Product-specific qualitative reading of a snapshot.

Responsibility:
    Turn a credit snapshot into strengths, weaknesses, risk signals and
    data gaps framed for one credit product (SBA, LOC, EQUIPMENT,
    ACQUISITION, CRE).

Architecture position:
    Engines -- pure calculation layer.  Consumes CreditSnapshot; consumed by
    the policy decision, the memo and the underwriting orchestrator.

Invariants enforced:
    - Messages are qualitative: they never quote numbers or threshold
      language.  Policy thresholds belong to credit_engines.policy.
    - ``key_metrics`` values are the snapshot ratio values, unchanged.
    - Deterministic: same snapshot and product, same analysis.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from types import MappingProxyType

from credit_engines.snapshot.types import SOURCE_INTEREST_PROXY, CreditSnapshot
from credit_engines.tracer import traced_engine
from credit_kernel.domain.products import ProductType

# Key metric name -> snapshot ratio name
KEY_METRICS: Mapping[str, str] = MappingProxyType(
    {
        "dscr": "dscr",
        "leverage": "leverageDebtToEbitda",
        "currentRatio": "currentRatio",
        "quickRatio": "quickRatio",
        "workingCapital": "workingCapital",
        "ebitdaMargin": "ebitdaMargin",
        "netMargin": "netMargin",
    }
)

_GAP_LABELS = {
    "dscr": "Debt service coverage not computable from available data",
    "leverage": "Leverage not computable from available debt and EBITDA data",
    "currentRatio": "Current ratio not computable from balance sheet data",
    "quickRatio": "Quick ratio not computable from balance sheet data",
    "workingCapital": "Working capital not computable from balance sheet data",
    "ebitdaMargin": "EBITDA margin not computable from income data",
    "netMargin": "Net margin not computable from income data",
}

# Internal reading anchors; never surfaced in messages
_COVERAGE_ANCHOR = Decimal("1")
_LIQUIDITY_ANCHOR = Decimal("1")
_LEVERAGE_ANCHOR = Decimal("3")


@dataclass(frozen=True)
class LensDiagnostics:
    missing_metrics: tuple[str, ...] = ()
    notes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ProductAnalysis:
    product: ProductType
    period_id: str
    period_end: date
    strengths: tuple[str, ...]
    weaknesses: tuple[str, ...]
    risk_signals: tuple[str, ...]
    data_gaps: tuple[str, ...]
    key_metrics: Mapping[str, Decimal | None]
    diagnostics: LensDiagnostics


class _Reading:
    """Accumulates lens findings for one snapshot."""

    def __init__(self, snapshot: CreditSnapshot):
        self.snapshot = snapshot
        self.metrics = {
            name: snapshot.metric_value(ratio) for name, ratio in KEY_METRICS.items()
        }
        self.strengths: list[str] = []
        self.weaknesses: list[str] = []
        self.risk_signals: list[str] = []
        self.data_gaps: list[str] = []
        self.notes: list[str] = [
            f"Debt service source: {snapshot.debt_service.diagnostics.source}"
        ]

    def coverage(self) -> None:
        dscr = self.metrics["dscr"]
        if dscr is None:
            self.weaknesses.append("Debt service coverage ratio unavailable")
        elif dscr >= _COVERAGE_ANCHOR:
            self.strengths.append(
                "Debt service coverage ratio shows cash flow covering debt service"
            )
        else:
            self.weaknesses.append(
                "Debt service coverage ratio shows cash flow short of debt service"
            )

    def ebitda(self, missing_message: str | None = None) -> None:
        margin = self.metrics["ebitdaMargin"]
        if margin is None:
            if missing_message:
                self.weaknesses.append(missing_message)
        elif margin > 0:
            self.strengths.append("Positive EBITDA generation")
        else:
            self.weaknesses.append("Negative or zero EBITDA")

    def net_income(self) -> None:
        margin = self.metrics["netMargin"]
        if margin is None:
            return
        if margin > 0:
            self.strengths.append("Profitable operations with positive net income")
        elif margin < 0:
            self.weaknesses.append("Negative net income")

    def leverage(self) -> None:
        leverage = self.metrics["leverage"]
        if leverage is None:
            return
        if leverage <= _LEVERAGE_ANCHOR:
            self.strengths.append("Leverage is moderate relative to EBITDA")
        else:
            self.weaknesses.append("Leverage is elevated relative to EBITDA")

    def working_capital(self) -> None:
        working_capital = self.metrics["workingCapital"]
        if working_capital is None:
            return
        if working_capital > 0:
            self.strengths.append("Positive working capital position")
        elif working_capital < 0:
            self.weaknesses.append("Negative working capital position")

    def current_ratio(self) -> None:
        ratio = self.metrics["currentRatio"]
        if ratio is None:
            return
        if ratio >= _LIQUIDITY_ANCHOR:
            self.strengths.append("Current ratio indicates liquid assets cover short-term debt")
        else:
            self.weaknesses.append("Current ratio indicates short-term debt exceeds liquid assets")

    def quick_ratio(self) -> None:
        ratio = self.metrics["quickRatio"]
        if ratio is None:
            return
        if ratio >= _LIQUIDITY_ANCHOR:
            self.strengths.append("Quick ratio shows cash and receivables cover short-term debt")
        else:
            self.risk_signals.append("Liquidity depends on converting inventory to cash")

    def debt_service_signals(self) -> None:
        debt_service = self.snapshot.debt_service
        if debt_service.total_debt_service is None:
            self.risk_signals.append("Debt service data unavailable")
        elif debt_service.diagnostics.source == SOURCE_INTEREST_PROXY:
            self.risk_signals.append(
                "Debt service approximated from interest expense; principal payments not reflected"
            )
        if debt_service.diagnostics.invalid_instruments:
            self.risk_signals.append("Some debt instruments could not be evaluated")

    def gaps(self, relevant: tuple[str, ...]) -> None:
        for name in relevant:
            if self.metrics[name] is None:
                self.data_gaps.append(_GAP_LABELS[name])

    def result(self, product: ProductType) -> ProductAnalysis:
        period = self.snapshot.period
        return ProductAnalysis(
            product=product,
            period_id=period.period_id,
            period_end=period.period_end,
            strengths=tuple(self.strengths),
            weaknesses=tuple(self.weaknesses),
            risk_signals=tuple(self.risk_signals),
            data_gaps=tuple(self.data_gaps),
            key_metrics=MappingProxyType(dict(self.metrics)),
            diagnostics=LensDiagnostics(
                missing_metrics=tuple(n for n, v in self.metrics.items() if v is None),
                notes=tuple(self.notes),
            ),
        )


def compute_sba_lens(snapshot: CreditSnapshot) -> ProductAnalysis:
    reading = _Reading(snapshot)
    reading.coverage()
    reading.ebitda()
    reading.net_income()
    reading.leverage()
    reading.debt_service_signals()
    reading.gaps(("dscr", "leverage", "ebitdaMargin", "netMargin"))
    return reading.result(ProductType.SBA)


def compute_loc_lens(snapshot: CreditSnapshot) -> ProductAnalysis:
    reading = _Reading(snapshot)
    reading.working_capital()
    reading.current_ratio()
    reading.quick_ratio()
    reading.net_income()
    reading.gaps(("currentRatio", "quickRatio", "workingCapital"))
    return reading.result(ProductType.LOC)


def compute_equipment_lens(snapshot: CreditSnapshot) -> ProductAnalysis:
    reading = _Reading(snapshot)
    reading.coverage()
    reading.ebitda()
    reading.leverage()
    reading.debt_service_signals()
    reading.gaps(("dscr", "leverage", "ebitdaMargin"))
    return reading.result(ProductType.EQUIPMENT)


def compute_acquisition_lens(snapshot: CreditSnapshot) -> ProductAnalysis:
    reading = _Reading(snapshot)
    reading.ebitda(missing_message="EBITDA unavailable; cannot assess acquisition cash flow")
    reading.leverage()
    reading.coverage()
    reading.debt_service_signals()
    reading.gaps(("leverage", "ebitdaMargin", "dscr"))
    return reading.result(ProductType.ACQUISITION)


def compute_cre_lens(snapshot: CreditSnapshot) -> ProductAnalysis:
    reading = _Reading(snapshot)
    reading.coverage()
    reading.net_income()
    reading.leverage()
    reading.debt_service_signals()
    reading.gaps(("dscr", "netMargin", "leverage"))
    return reading.result(ProductType.CRE)


_LENSES: Mapping[ProductType, Callable[[CreditSnapshot], ProductAnalysis]] = MappingProxyType(
    {
        ProductType.SBA: compute_sba_lens,
        ProductType.LOC: compute_loc_lens,
        ProductType.EQUIPMENT: compute_equipment_lens,
        ProductType.ACQUISITION: compute_acquisition_lens,
        ProductType.CRE: compute_cre_lens,
    }
)


@traced_engine("credit_lens", "1.0", fingerprint_fields=("product",))
def compute_product_analysis(
    snapshot: CreditSnapshot, product: ProductType | str
) -> ProductAnalysis:
    return _LENSES[ProductType.parse(product)](snapshot)
