"""
Buyer-to-property match scoring.

Ranks buyers on the dispositions list against a lead's property using a
weighted heuristic over the buyer's first preference record:

- price range overlap (40)
- target area vs. city/state (30)
- property type (20)
- cash buyer bonus (10)

Buyers without a preference record get a flat score as general investors.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from src.wholesale_crm.utils.logger import get_logger

logger = get_logger(__name__)

GENERAL_INVESTOR_SCORE = 10
GENERAL_INVESTOR_REASON = "General investor"


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_float(value: Any) -> Optional[float]:
    """Numeric columns come back as Decimal; zero counts as missing."""
    if not value:
        return None
    return float(value)


def _money(value: float) -> str:
    if math.isinf(value):
        return "∞"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


@dataclass(frozen=True)
class PropertyCriteria:
    """Property attributes consumed by the scorer. Any of them may be missing."""
    price: Optional[float] = None
    property_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None

    @classmethod
    def from_property(cls, prop: Any) -> "PropertyCriteria":
        return cls(
            price=_as_float(prop.price),
            property_type=prop.property_type,
            city=prop.city,
            state=prop.state,
        )


@dataclass
class MatchResult:
    buyer: Any
    match_score: int
    match_reasons: List[str]
    components: Dict[str, float] = field(default_factory=dict)

    @property
    def buyer_id(self) -> Optional[int]:
        return getattr(self.buyer, "id", None)

    @property
    def buyer_name(self) -> str:
        return getattr(self.buyer, "name", "") or ""

    @property
    def label(self) -> str:
        return match_label(self.match_score)


def match_label(score: float) -> str:
    """Human-readable band for a match score."""
    if score >= 80:
        return "Excellent Match"
    if score >= 60:
        return "Good Match"
    if score >= 40:
        return "Fair Match"
    return "Poor Match"


class BuyerMatchScorer:
    """
    Weighted buyer/property compatibility scorer.

    Works on any buyer object exposing ``preferences`` (list, first one is
    used), ``cash_buyer``, ``proof_of_funds``, ``name`` and ``id``; ORM
    ``Buyer`` rows qualify.
    """

    WEIGHTS = {"price": 40, "location": 30, "state": 15, "property_type": 20, "cash_buyer": 10}

    def score(self, buyer: Any, criteria: PropertyCriteria) -> MatchResult:
        preferences = getattr(buyer, "preferences", None) or []
        preference = preferences[0] if preferences else None

        if preference is None:
            return MatchResult(
                buyer=buyer,
                match_score=GENERAL_INVESTOR_SCORE,
                match_reasons=[GENERAL_INVESTOR_REASON],
            )

        reasons: List[str] = []
        components = {
            "price": self._price_component(preference, criteria, reasons),
            "location": self._location_component(preference, criteria, reasons),
            "property_type": self._type_component(preference, criteria, reasons),
            "cash_buyer": 0.0,
        }

        if buyer.cash_buyer:
            components["cash_buyer"] = float(self.WEIGHTS["cash_buyer"])
            reasons.append("Cash buyer")

        # Informational only, does not move the score
        funds = _as_float(buyer.proof_of_funds)
        price = _as_float(criteria.price)
        if funds is not None and price is not None:
            reasons.append("Sufficient funds" if funds >= price else "May need financing")

        raw = sum(components.values())
        return MatchResult(
            buyer=buyer,
            match_score=int(_clamp(_round_half_up(raw))),
            match_reasons=reasons,
            components=components,
        )

    def _price_component(self, preference: Any, criteria: PropertyCriteria, reasons: List[str]) -> float:
        price = _as_float(criteria.price)
        if price is None:
            return 0.0

        weight = self.WEIGHTS["price"]
        low = _as_float(preference.min_price) or 0.0
        high = _as_float(preference.max_price) or math.inf

        if low <= price <= high:
            reasons.append(f"Price range match (${_money(low)} - ${_money(high)})")
            return float(weight)
        if price < low:
            reasons.append("Below preferred price range")
            return max(0.0, price / low * weight)
        reasons.append("Above preferred price range")
        return max(0.0, high / price * weight)

    def _location_component(self, preference: Any, criteria: PropertyCriteria, reasons: List[str]) -> float:
        areas = [area.lower() for area in (preference.areas or []) if area]
        if not criteria.city or not areas:
            return 0.0

        city = criteria.city.lower()
        if any(area in city or city in area for area in areas):
            reasons.append(f"Location match ({criteria.city})")
            return float(self.WEIGHTS["location"])

        if criteria.state:
            state = criteria.state.lower()
            if any(state in area for area in areas):
                reasons.append(f"State match ({criteria.state})")
                return float(self.WEIGHTS["state"])

        return 0.0

    def _type_component(self, preference: Any, criteria: PropertyCriteria, reasons: List[str]) -> float:
        types = preference.property_types or []
        if not criteria.property_type or not types:
            return 0.0

        wanted = criteria.property_type.lower()
        if any(t.lower() == wanted for t in types if t):
            reasons.append(f"Property type match ({criteria.property_type})")
            return float(self.WEIGHTS["property_type"])
        return 0.0

    def rank(self, buyers: Iterable[Any], criteria: PropertyCriteria) -> List[MatchResult]:
        """
        Score every buyer and sort best match first.

        Ties are ordered by buyer name (case-insensitive), then id.
        """
        results = [self.score(buyer, criteria) for buyer in buyers]
        results.sort(key=lambda r: (-r.match_score, r.buyer_name.lower(), r.buyer_id or 0))
        logger.info(
            "buyers_scored",
            buyer_count=len(results),
            top_score=results[0].match_score if results else None,
            city=criteria.city,
        )
        return results


def score_buyers(buyers: Iterable[Any], criteria: PropertyCriteria) -> List[MatchResult]:
    """Rank buyers against a property with the default weights."""
    return BuyerMatchScorer().rank(buyers, criteria)
