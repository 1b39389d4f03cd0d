"""Milestone schedule validation.

Checks a milestone list and a funding amount against the campaign rules:

Per milestone:
- start date strictly in the future (at least tomorrow)
- end date after start date
- duration of at least one week
- start date no more than 2 years out

Across the list:
- milestone i+1 may start at most 1 day before milestone i ends
- first start to last end spans at most 3 years (1095 days)

All violations are collected so the caller can show every problem at once.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Sequence, Union

from ..models.funding_draft import Milestone
from ..models.validation import ValidationResult

logger = logging.getLogger(__name__)

MIN_DURATION_DAYS = 7
MAX_START_YEARS_AHEAD = 2
MAX_OVERLAP_DAYS = 1
MAX_TOTAL_SPAN_DAYS = 1095


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # Feb 29 rolls forward to Mar 1 in a non-leap target year.
        return date(day.year + years, 3, 1)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


@dataclass
class FundingSplit:
    """Equal split of a funding total across milestones.

    Attributes:
        per_milestone: floor(total / count), identical for every milestone.
        amounts: One entry per milestone.
        rounding_loss: The remainder that no milestone receives.
    """

    per_milestone: int
    amounts: list[int]
    rounding_loss: float


def distribute_funding(total_funding: float, milestone_count: int) -> FundingSplit:
    """Split ``total_funding`` equally, flooring each share.

    The remainder is not redistributed; it is reported as ``rounding_loss``.
    A zero count is treated as one milestone.

    Raises:
        ValueError: ``total_funding`` is NaN or infinite.
    """
    if not math.isfinite(total_funding):
        raise ValueError(f"Cannot split a non-finite funding amount: {total_funding}")
    count = milestone_count or 1
    per_milestone = int(total_funding // count)
    loss = total_funding - per_milestone * count
    if loss:
        logger.info(
            "funding_split total=%s count=%d per_milestone=%d rounding_loss=%s",
            total_funding,
            count,
            per_milestone,
            loss,
        )
    return FundingSplit(
        per_milestone=per_milestone,
        amounts=[per_milestone] * count,
        rounding_loss=loss,
    )


class ScheduleValidator:
    """Validates milestone schedules against a fixed "now"."""

    def __init__(self, now: Optional[Union[date, datetime]] = None) -> None:
        self._now = now

    @property
    def today(self) -> date:
        if self._now is None:
            return datetime.now().date()
        return _as_date(self._now)

    def validate(
        self,
        milestones: Sequence[Milestone],
        total_funding: float,
    ) -> ValidationResult:
        """Validate funding amount, each milestone, and the list as a whole.

        Paths are relative to the funding step:
        ``["funding_amount"]``, ``["milestones", i, "start_date"]``,
        ``["milestones"]``.
        """
        result = ValidationResult()

        amount_ok = False
        if total_funding is None or total_funding <= 0:
            result.add(["funding_amount"], "Funding amount must be greater than zero")
        elif not math.isfinite(total_funding):
            result.add(["funding_amount"], "Funding amount must be a finite number")
        else:
            amount_ok = True

        if not milestones:
            result.add(["milestones"], "At least one milestone is required")
            return result

        if amount_ok and total_funding // len(milestones) < 1:
            result.add(
                ["funding_amount"],
                f"Funding amount is too small to split across {len(milestones)} milestones",
            )

        for i, milestone in enumerate(milestones):
            result.extend(self.validate_milestone(milestone), prefix=["milestones", i])

        result.extend(self.validate_ordering(milestones))
        return result

    def validate_milestone(self, milestone: Milestone) -> ValidationResult:
        """Apply the four temporal rules to one milestone."""
        result = ValidationResult()
        today = self.today
        start, end = milestone.start_date, milestone.end_date

        if not milestone.title.strip():
            result.add(["title"], "Title is required")
        if not milestone.description.strip():
            result.add(["description"], "Description is required")
        if start is None:
            result.add(["start_date"], "Start date is required")
        if end is None:
            result.add(["end_date"], "End date is required")
        if start is None or end is None:
            return result

        if start <= today:
            result.add(["start_date"], "Start date must be at least tomorrow")

        if end <= start:
            result.add(["end_date"], "End date must be after start date")

        if (end - start).days < MIN_DURATION_DAYS:
            result.add(["end_date"], "Milestone duration must be at least 1 week")

        if start > _add_years(today, MAX_START_YEARS_AHEAD):
            result.add(["start_date"], "Start date cannot be more than 2 years in the future")

        return result

    def validate_ordering(self, milestones: Sequence[Milestone]) -> ValidationResult:
        """Cross-milestone rules: chronological order with 1 day slack, 3 year span."""
        result = ValidationResult()

        for i in range(len(milestones) - 1):
            current_end = milestones[i].end_date
            next_start = milestones[i + 1].start_date
            if current_end is None or next_start is None:
                continue
            if (next_start - current_end).days < -MAX_OVERLAP_DAYS:
                result.add(
                    ["milestones", i + 1, "start_date"],
                    f"Milestone {i + 2} start date should be after milestone {i + 1} end date",
                )

        first_start = milestones[0].start_date
        last_end = milestones[-1].end_date
        if first_start is not None and last_end is not None:
            if (last_end - first_start).days > MAX_TOTAL_SPAN_DAYS:
                result.add(["milestones"], "Total project timeline cannot exceed 3 years")

        return result
