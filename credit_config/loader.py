"""
Configuration Loader (``credit_config.loader``).

Responsibility
--------------
Loads YAML documents (the built-in metric seed catalogue and per-bank
configuration files) and parses them into frozen dataclasses: metric
definitions and the policy, stress and pricing overrides the engines
accept.

Architecture position
---------------------
**Config layer** -- sits above ``credit_engines`` (it builds the engines'
override value objects) and below ``credit_services``.  Engines never
import this module.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass; bank configs are deeply
  immutable once loaded.
* Unknown products, tiers or scenario keys are rejected at load time,
  never silently ignored.
* The stress scenario list always starts with BASELINE.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Structurally invalid bank config  -> ``InvalidBankConfigError``.
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from credit_engines.policy import PolicyConfigOverride, PolicyThreshold
from credit_engines.pricing import PricingConfigOverride
from credit_engines.stress import (
    BASELINE_KEY,
    StressConfigOverride,
    StressScenario,
    get_scenario_definition,
)
from credit_kernel.domain.metrics import MetricDefinition, compute_registry_content_hash
from credit_kernel.domain.values import to_decimal
from credit_kernel.exceptions import (
    CreditKernelError,
    InvalidBankConfigError,
    UnknownScenarioError,
)
from credit_kernel.logging_config import get_logger

logger = get_logger("config.loader")

DEFAULTS_DIR = Path(__file__).parent / "defaults"
METRIC_SEED_PATH = DEFAULTS_DIR / "metrics.yaml"
METRIC_REGISTRY_VERSION = 1


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


# ---------------------------------------------------------------------------
# Metric seed catalogue
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MetricSeed:
    registry_version: int
    version_name: str
    definitions: tuple[MetricDefinition, ...]

    @property
    def content_hash(self) -> str:
        return compute_registry_content_hash(self.definitions)


def load_metric_seed(path: Path | None = None) -> MetricSeed:
    """Parse a metric catalogue YAML (the built-in seed by default)."""
    data = load_yaml_file(path or METRIC_SEED_PATH)
    definitions = tuple(MetricDefinition.from_dict(m) for m in data.get("metrics") or ())
    ids = [d.id for d in definitions]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ValueError(f"Duplicate metric ids in catalogue: {duplicates}")
    return MetricSeed(
        registry_version=int(data.get("registry_version", METRIC_REGISTRY_VERSION)),
        version_name=str(data.get("version_name", f"seed-v{METRIC_REGISTRY_VERSION}")),
        definitions=definitions,
    )


@functools.lru_cache(maxsize=1)
def default_metric_seed() -> MetricSeed:
    """The built-in seed catalogue, parsed once per process."""
    return load_metric_seed(METRIC_SEED_PATH)


# ---------------------------------------------------------------------------
# Bank configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BankConfig:
    """Bank-specific overrides of the engine defaults."""

    id: str
    bank_id: str
    version: int
    policy: PolicyConfigOverride
    stress: StressConfigOverride
    pricing: PricingConfigOverride


def _mapping(data: Any, field: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise InvalidBankConfigError(field, "expected a mapping")
    return data


def parse_policy_override(data: Any) -> PolicyConfigOverride:
    data = _mapping(data, "policy")
    thresholds = []
    for index, raw in enumerate(data.get("thresholds") or ()):
        raw = _mapping(raw, f"policy.thresholds[{index}]")
        if not raw.get("metric"):
            raise InvalidBankConfigError(f"policy.thresholds[{index}].metric", "required")
        if raw.get("minimum") is None and raw.get("maximum") is None:
            raise InvalidBankConfigError(
                f"policy.thresholds[{index}]", "needs a minimum or a maximum"
            )
        thresholds.append(
            PolicyThreshold(
                metric=str(raw["metric"]),
                minimum=to_decimal(raw.get("minimum")),
                maximum=to_decimal(raw.get("maximum")),
            )
        )
    band = data.get("minor_breach_band")
    if band is not None and to_decimal(band) is None:
        raise InvalidBankConfigError("policy.minor_breach_band", f"not a number: {band!r}")
    return PolicyConfigOverride(minor_breach_band=to_decimal(band), thresholds=tuple(thresholds))


def _parse_scenario(raw: Any, index: int) -> StressScenario:
    field = f"stress.scenarios[{index}]"
    if isinstance(raw, str):
        try:
            return get_scenario_definition(raw)
        except UnknownScenarioError:
            raise InvalidBankConfigError(field, f"unknown scenario key: {raw!r}") from None
    raw = _mapping(raw, field)
    if not raw.get("key"):
        raise InvalidBankConfigError(f"{field}.key", "required")
    return StressScenario(
        key=str(raw["key"]),
        label=str(raw.get("label", raw["key"])),
        ebitda_haircut=to_decimal(raw.get("ebitda_haircut", 0)),
        revenue_haircut=to_decimal(raw.get("revenue_haircut", 0)),
        rate_shock_bps=int(raw.get("rate_shock_bps", 0)),
    )


def parse_stress_override(data: Any) -> StressConfigOverride:
    data = _mapping(data, "stress")
    scenarios = [_parse_scenario(raw, i) for i, raw in enumerate(data.get("scenarios") or ())]
    if scenarios and all(s.key != BASELINE_KEY for s in scenarios):
        scenarios.insert(0, get_scenario_definition(BASELINE_KEY))
    return StressConfigOverride(scenarios=tuple(scenarios))


def parse_pricing_override(data: Any) -> PricingConfigOverride:
    data = _mapping(data, "pricing")
    try:
        return PricingConfigOverride(
            spreads=dict(_mapping(data.get("spreads"), "pricing.spreads")),
            tier_premiums=dict(_mapping(data.get("tier_premiums"), "pricing.tier_premiums")),
            stress_adjust_bps_per_tier=data.get("stress_adjust_bps_per_tier"),
        )
    except (CreditKernelError, ValueError) as exc:
        raise InvalidBankConfigError("pricing", str(exc)) from exc


def parse_bank_config(data: Mapping[str, Any]) -> BankConfig:
    for required in ("id", "bank_id"):
        if not data.get(required):
            raise InvalidBankConfigError(required, "required")
    return BankConfig(
        id=str(data["id"]),
        bank_id=str(data["bank_id"]),
        version=int(data.get("version", 1)),
        policy=parse_policy_override(data.get("policy")),
        stress=parse_stress_override(data.get("stress")),
        pricing=parse_pricing_override(data.get("pricing")),
    )


def load_bank_config(path: Path) -> BankConfig:
    config = parse_bank_config(load_yaml_file(path))
    logger.info(
        "bank_config_loaded",
        extra={
            "config_id": config.id,
            "bank_id": config.bank_id,
            "version": config.version,
            "path": str(path),
        },
    )
    return config

