"""Per-step validation of a FundingDraft.

Each wizard step is a small descriptor with a pure ``validate(draft)``; the
set of steps is a closed union so callers can dispatch on ``step.key``
without any UI object in the loop.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Literal, Optional, Union

from ..models.funding_draft import FundingDraft
from ..models.validation import ValidationResult
from .schedule import ScheduleValidator

VISION_MAX_LENGTH = 300
BACKUP_TYPES = ("discord", "whatsapp")

_URL_WITH_SCHEME = re.compile(r"^https?://.+", re.IGNORECASE)
_BARE_DOMAIN = re.compile(r"^[\w.-]+\.[a-z]{2,}$", re.IGNORECASE)
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_url(value: Optional[str]) -> bool:
    """Accepts 'https://github.com' and bare 'github.com'. Empty is valid (optional field)."""
    value = (value or "").strip()
    return not value or bool(_URL_WITH_SCHEME.match(value) or _BARE_DOMAIN.match(value))


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL.match(value.strip()))


@dataclass(frozen=True)
class BasicStep:
    key: Literal["basic"] = "basic"

    def validate(self, draft: FundingDraft) -> ValidationResult:
        result = ValidationResult()
        basic = draft.basic
        if not basic.project_name.strip():
            result.add(["basic", "project_name"], "Project name is required")
        vision = basic.vision.strip()
        if not vision:
            result.add(["basic", "vision"], "Vision is required")
        elif len(vision) > VISION_MAX_LENGTH:
            result.add(["basic", "vision"], f"Vision must be at most {VISION_MAX_LENGTH} characters")
        if not basic.category.strip():
            result.add(["basic", "category"], "Category is required")
        for field_name in ("github_url", "website_url", "demo_video_url"):
            if not is_valid_url(getattr(basic, field_name)):
                result.add(
                    ["basic", field_name],
                    "Please enter a valid URL (with or without https), e.g., https://github.com or github.com",
                )
        if not [link for link in basic.social_links if link.strip()]:
            result.add(["basic", "social_links"], "At least one social link is required")
        return result


@dataclass(frozen=True)
class DetailsStep:
    key: Literal["details"] = "details"

    def validate(self, draft: FundingDraft) -> ValidationResult:
        result = ValidationResult()
        if not draft.details.description.strip():
            result.add(["details", "description"], "Project details are required")
        return result


@dataclass(frozen=True)
class MilestonesStep:
    key: Literal["milestones"] = "milestones"
    now: Optional[Union[date, datetime]] = None

    def validate(self, draft: FundingDraft) -> ValidationResult:
        schedule = ScheduleValidator(now=self.now).validate(draft.milestones, draft.funding_amount)
        return ValidationResult().extend(schedule, prefix=["funding"])


@dataclass(frozen=True)
class TeamStep:
    key: Literal["team"] = "team"

    def validate(self, draft: FundingDraft) -> ValidationResult:
        result = ValidationResult()
        for i, member in enumerate(draft.team.members):
            if not is_valid_email(member.email):
                result.add(["team", "members", i, "email"], "Invalid email address")
        return result


@dataclass(frozen=True)
class ContactStep:
    key: Literal["contact"] = "contact"

    def validate(self, draft: FundingDraft) -> ValidationResult:
        result = ValidationResult()
        contact = draft.contact
        if not contact.telegram.strip():
            result.add(["contact", "telegram"], "Telegram handle is required")
        if contact.backup_type not in BACKUP_TYPES:
            result.add(["contact", "backup_type"], "Backup contact must be discord or whatsapp")
        if not contact.backup_contact.strip():
            result.add(["contact", "backup_contact"], "Backup contact is required")
        return result


Step = Union[BasicStep, DetailsStep, MilestonesStep, TeamStep, ContactStep]


def draft_steps(now: Optional[Union[date, datetime]] = None) -> tuple[Step, ...]:
    """The five steps in wizard order."""
    return (BasicStep(), DetailsStep(), MilestonesStep(now=now), TeamStep(), ContactStep())


def validate_draft(draft: FundingDraft, now: Optional[Union[date, datetime]] = None) -> ValidationResult:
    """Validate every step and merge the results."""
    return ValidationResult.merge(*(step.validate(draft) for step in draft_steps(now)))
