"""Credit products and risk tiers."""

from __future__ import annotations

from enum import Enum

from credit_kernel.exceptions import UnknownProductError


class ProductType(str, Enum):
    SBA = "SBA"
    LOC = "LOC"
    EQUIPMENT = "EQUIPMENT"
    ACQUISITION = "ACQUISITION"
    CRE = "CRE"

    @classmethod
    def parse(cls, value: ProductType | str) -> ProductType:
        try:
            return cls(str(value.value if isinstance(value, Enum) else value).upper())
        except ValueError:
            raise UnknownProductError(str(value)) from None


class RiskTier(str, Enum):
    """Ordinal risk classification; A is strongest, D weakest."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = (RiskTier.A, RiskTier.B, RiskTier.C, RiskTier.D)


def compare_tiers(left: RiskTier | str, right: RiskTier | str) -> int:
    """Negative if ``left`` is stronger than ``right``, 0 if equal, positive if weaker."""
    return RiskTier(left).rank - RiskTier(right).rank


def worst_tier(*tiers: RiskTier | str) -> RiskTier:
    return max((RiskTier(t) for t in tiers), key=lambda t: t.rank)
