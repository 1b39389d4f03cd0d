"""Prize tier matching and payout helpers."""

from .tier_matcher import (
    ORDINAL_WORDS,
    ensure_unique_ranks,
    extract_rank,
    find_duplicate_ranks,
    find_missing_ranks,
    find_tier_for_rank,
    matches_rank,
    ordinal_suffix,
)
from .distribution import (
    total_prize_pool,
    validate_escrow_can_be_updated,
    validate_winner_payouts,
    winner_milestone,
)

__all__ = [
    "ORDINAL_WORDS",
    "ensure_unique_ranks",
    "extract_rank",
    "find_duplicate_ranks",
    "find_missing_ranks",
    "find_tier_for_rank",
    "matches_rank",
    "ordinal_suffix",
    "total_prize_pool",
    "validate_escrow_can_be_updated",
    "validate_winner_payouts",
    "winner_milestone",
]
