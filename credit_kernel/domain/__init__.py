"""
Pure domain layer.

Immutable value objects with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- Wall-clock time (Clock is injected)
- I/O
"""

from credit_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from credit_kernel.domain.financial_model import (
    FinancialModel,
    FinancialPeriod,
    PeriodType,
    Statement,
)
from credit_kernel.domain.instruments import (
    DebtInstrument,
    InstrumentSource,
    PaymentFrequency,
)
from credit_kernel.domain.metrics import (
    BusinessModel,
    MetricDefinition,
    RegistryBinding,
    RegistryEntry,
    RegistryStatus,
    RegistryVersion,
    compute_registry_content_hash,
)
from credit_kernel.domain.products import (
    ProductType,
    RiskTier,
    compare_tiers,
    worst_tier,
)

__all__ = [
    "BusinessModel",
    "Clock",
    "DebtInstrument",
    "DeterministicClock",
    "FinancialModel",
    "FinancialPeriod",
    "InstrumentSource",
    "MetricDefinition",
    "PaymentFrequency",
    "PeriodType",
    "ProductType",
    "RegistryBinding",
    "RegistryEntry",
    "RegistryStatus",
    "RegistryVersion",
    "RiskTier",
    "Statement",
    "SystemClock",
    "compare_tiers",
    "compute_registry_content_hash",
    "worst_tier",
]
