"""ORM models for the credit kernel."""

from credit_kernel.models.registry import (
    BankRegistryPinRecord,
    MetricRegistryEntryRecord,
    MetricRegistryVersionRecord,
)

__all__ = [
    "BankRegistryPinRecord",
    "MetricRegistryEntryRecord",
    "MetricRegistryVersionRecord",
]
