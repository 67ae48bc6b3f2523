"""
credit_config -- YAML-driven configuration for the underwriting core.

Responsibility:
    Provide the built-in metric seed catalogue, parse per-bank
    configuration files into the engines' override value objects, and
    own the metric registry lifecycle rules and content-hash pinning.

Architecture position:
    Configuration -- sits above ``credit_kernel`` and ``credit_engines``
    and below ``credit_services``.  Engines MUST NEVER import from
    ``credit_config``; they receive plain override values instead.

Invariants enforced:
    - Loaded configuration is deeply immutable.
    - Registry status moves draft -> published -> deprecated only.
    - Pinned content hashes must match what is loaded.

Failure modes:
    - ``InvalidBankConfigError`` -- structural problems in a bank config.
    - ``ConfigIntegrityError`` -- content hash mismatch against a pin.
    - ``InvalidStatusTransitionError`` -- disallowed lifecycle transition.
"""

from credit_config.integrity import verify_content_hash
from credit_config.lifecycle import (
    ALLOWED_TRANSITIONS,
    require_transition,
    validate_transition,
)
from credit_config.loader import (
    METRIC_REGISTRY_VERSION,
    BankConfig,
    MetricSeed,
    default_metric_seed,
    load_bank_config,
    load_metric_seed,
    load_yaml_file,
    parse_bank_config,
)
from credit_kernel.domain.metrics import RegistryStatus

__all__ = [
    "ALLOWED_TRANSITIONS",
    "METRIC_REGISTRY_VERSION",
    "BankConfig",
    "MetricSeed",
    "RegistryStatus",
    "default_metric_seed",
    "load_bank_config",
    "load_metric_seed",
    "load_yaml_file",
    "parse_bank_config",
    "require_transition",
    "validate_transition",
    "verify_content_hash",
]
