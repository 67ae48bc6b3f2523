"""
Typed Exception Hierarchy for the Credit Kernel.

===============================================================================
WHAT RAISES AND WHAT RETURNS
===============================================================================

The underwriting core separates two kinds of failure:

  1. Expected, data-driven failures (missing facts, invalid loan structures,
     no analysis period, registry state conflicts). These are NEVER raised.
     They are returned inline as diagnostics, warnings, or typed result
     values (``UnderwriteFailure``, ``RegistryResult``).

  2. Programmer errors (malformed shapes handed to constructors, metric
     definitions wired into a cycle, a bank configuration naming an unknown
     product). These raise the typed exceptions defined here and are meant
     to fail fast in development.

Every exception:
  - Has a CODE class attribute (machine-readable, API-safe)
  - Carries structured DATA attributes (not just a message string)

Example:
    try:
        config = load_bank_config(path)
    except InvalidBankConfigError as e:
        log.error("bank_config_rejected", extra={"code": e.code, "field": e.field})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    CreditKernelError (base)
    |
    +-- DomainError
    |   +-- InvalidFinancialModelError
    |   +-- InvalidInstrumentError
    |
    +-- RegistryError
    |   +-- RegistryWiringError
    |   +-- MetricCycleError
    |
    +-- ConfigError
    |   +-- UnknownProductError
    |   +-- UnknownScenarioError
    |   +-- InvalidBankConfigError
    |   +-- ConfigIntegrityError
    |
    +-- InvalidStatusTransitionError
"""


class CreditKernelError(Exception):
    """
    Base exception for all credit kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "CREDIT_KERNEL_ERROR"


# Domain value errors


class DomainError(CreditKernelError):
    """Base exception for malformed domain values."""

    code: str = "DOMAIN_ERROR"


class InvalidFinancialModelError(DomainError):
    """A financial model payload could not be parsed."""

    code: str = "INVALID_FINANCIAL_MODEL"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid financial model field '{field}': {reason}")


class InvalidInstrumentError(DomainError):
    """
    A debt instrument payload has the wrong shape.

    Economic validity (negative principal, zero amortization) is NOT an
    error: the amortization engine reports it as a diagnostic.
    """

    code: str = "INVALID_INSTRUMENT"

    def __init__(self, instrument_id: str | None, field: str, reason: str):
        self.instrument_id = instrument_id
        self.field = field
        self.reason = reason
        super().__init__(
            f"Invalid debt instrument {instrument_id or '<unknown>'} "
            f"field '{field}': {reason}"
        )


# Metric registry errors


class RegistryError(CreditKernelError):
    """Base exception for metric registry wiring errors."""

    code: str = "REGISTRY_ERROR"


class RegistryWiringError(RegistryError):
    """The registry store or service was wired incorrectly."""

    code: str = "REGISTRY_WIRING_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Metric registry wiring error: {reason}")


class MetricCycleError(RegistryError):
    """Metric definitions reference each other in a cycle."""

    code: str = "CYCLE_DETECTED"

    def __init__(self, metric_ids: list[str]):
        self.metric_ids = list(metric_ids)
        super().__init__(f"Cycle detected: {' -> '.join(self.metric_ids)}")


# Configuration errors


class ConfigError(CreditKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIG_ERROR"


class UnknownProductError(ConfigError):
    """Product type is not one of the supported credit products."""

    code: str = "UNKNOWN_PRODUCT"

    def __init__(self, product: str):
        self.product = product
        super().__init__(f"Unknown credit product: {product}")


class UnknownScenarioError(ConfigError):
    """Stress scenario key is not defined."""

    code: str = "UNKNOWN_SCENARIO"

    def __init__(self, scenario_key: str):
        self.scenario_key = scenario_key
        super().__init__(f"Unknown stress scenario: {scenario_key}")


class InvalidBankConfigError(ConfigError):
    """A bank configuration document failed validation."""

    code: str = "INVALID_BANK_CONFIG"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid bank config field '{field}': {reason}")


class ConfigIntegrityError(ConfigError):
    """A content hash does not match its approved pin."""

    code: str = "CONFIG_INTEGRITY_ERROR"

    def __init__(self, subject: str, expected_hash: str, actual_hash: str):
        self.subject = subject
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Content hash mismatch for {subject}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Lifecycle errors


class InvalidStatusTransitionError(CreditKernelError):
    """Requested lifecycle transition is not allowed."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")
