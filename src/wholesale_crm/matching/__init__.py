"""
Matching Module

Buyer-to-property compatibility scoring for dispositions.
"""
from src.wholesale_crm.matching.buyer_match import (
    BuyerMatchScorer,
    MatchResult,
    PropertyCriteria,
    match_label,
    score_buyers,
)

__all__ = [
    "BuyerMatchScorer",
    "MatchResult",
    "PropertyCriteria",
    "match_label",
    "score_buyers",
]
