"""Prize tier position matching.

Prize tiers are labelled with free text ("1st Place", "2", "Third"). These
helpers resolve a label to an integer rank and look up the tier for a rank.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence, TypeVar

from ..errors import DuplicatePrizeTierError
from ..models.publication import PrizeTier

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=PrizeTier)

_LEADING_NUMBER = re.compile(r"^(\d+)")

ORDINAL_WORDS: dict[str, int] = {
    "first": 1,
    "second": 2,
    "third": 3,
    "fourth": 4,
    "fifth": 5,
    "sixth": 6,
    "seventh": 7,
    "eighth": 8,
    "ninth": 9,
    "tenth": 10,
    "eleventh": 11,
    "twelfth": 12,
    "thirteenth": 13,
    "fourteenth": 14,
    "fifteenth": 15,
}


def extract_rank(position: Any) -> Optional[int]:
    """Resolve a position label to a rank.

    Handles "2", "2nd", "2nd Place", "Second Place" (case-insensitive).
    Returns None for anything else; never raises.

    Examples:
        >>> extract_rank("2nd Place")
        2
        >>> extract_rank("Third")
        3
        >>> extract_rank("banana") is None
        True
    """
    if not isinstance(position, str) or not position:
        return None

    cleaned = position.lower().replace("place", "").strip()

    # Covers both bare numbers and ordinals like "1st", "22nd".
    number = _LEADING_NUMBER.match(cleaned)
    if number:
        return int(number.group(1))

    for word, rank in ORDINAL_WORDS.items():
        if word in cleaned:
            return rank

    return None


def matches_rank(tier: PrizeTier, rank: int) -> bool:
    return extract_rank(tier.position) == rank


def find_tier_for_rank(tiers: Sequence[T], rank: int) -> Optional[T]:
    """First tier whose label resolves to ``rank``, or None."""
    for tier in tiers:
        if matches_rank(tier, rank):
            return tier
    return None


def find_missing_ranks(tiers: Sequence[PrizeTier], ranks: Iterable[Optional[int]]) -> list[int]:
    """Ranks (sorted, unique) that no tier resolves to. Unranked entries are ignored."""
    missing = {rank for rank in ranks if rank and find_tier_for_rank(tiers, rank) is None}
    return sorted(missing)


def find_duplicate_ranks(tiers: Sequence[PrizeTier]) -> dict[int, list[str]]:
    """Ranks claimed by more than one tier, with the offending labels."""
    by_rank: dict[int, list[str]] = {}
    for tier in tiers:
        rank = extract_rank(tier.position)
        if rank is not None:
            by_rank.setdefault(rank, []).append(tier.position)
    return {rank: labels for rank, labels in by_rank.items() if len(labels) > 1}


def ensure_unique_ranks(tiers: Sequence[PrizeTier]) -> None:
    """Raise DuplicatePrizeTierError if two tiers resolve to the same rank."""
    duplicates = find_duplicate_ranks(tiers)
    if duplicates:
        logger.warning("duplicate_prize_tiers ranks=%s", sorted(duplicates))
        raise DuplicatePrizeTierError(duplicates)


def ordinal_suffix(rank: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    if 10 <= rank % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(rank % 10, "th")
    return f"{rank}{suffix}"
