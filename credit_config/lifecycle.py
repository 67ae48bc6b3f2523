"""
Metric registry lifecycle status.

Registry versions are append-only. A draft becomes published exactly once
and is immutable afterwards. Deprecated versions remain loadable by id for
replay/audit.
"""

from credit_kernel.domain.metrics import RegistryStatus
from credit_kernel.exceptions import InvalidStatusTransitionError

# Allowed status transitions (from -> set of valid next states)
ALLOWED_TRANSITIONS: dict[RegistryStatus, frozenset[RegistryStatus]] = {
    RegistryStatus.DRAFT: frozenset({RegistryStatus.PUBLISHED}),
    RegistryStatus.PUBLISHED: frozenset({RegistryStatus.DEPRECATED}),
    RegistryStatus.DEPRECATED: frozenset(),  # Terminal
}


def validate_transition(current: RegistryStatus, target: RegistryStatus) -> bool:
    """Check if a status transition is valid."""
    return RegistryStatus(target) in ALLOWED_TRANSITIONS.get(
        RegistryStatus(current), frozenset()
    )


def require_transition(current: RegistryStatus, target: RegistryStatus) -> None:
    if not validate_transition(current, target):
        raise InvalidStatusTransitionError(
            RegistryStatus(current).value, RegistryStatus(target).value
        )
