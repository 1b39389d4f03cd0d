"""Winner publication models - ranked submissions, prize tiers and wizard state."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class WinnerSubmission(BaseModel):
    """A judged submission. Only ranked ones take part in publication."""

    id: str
    name: str
    project_name: str = ""
    score: float = 0.0
    max_score: float = 0.0
    rank: Optional[int] = None
    participant_id: Optional[str] = None
    wallet_address: Optional[str] = Field(None, description="Pre-fills the wallets step when known")


class PrizeTier(BaseModel):
    """A configured rank-to-amount mapping, keyed by a free-text position label."""

    model_config = ConfigDict(populate_by_name=True)

    position: str = Field(..., alias="place", description="Free text, e.g. '1st Place', 'Second'")
    prize_amount: float = Field(default=0.0, description="Amount paid to the winner at this position")
    currency: str = Field(default="USDC")
    description: Optional[str] = None
    pass_mark: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("prize_amount", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> float:
        # Form input arrives as text; unparsable amounts count as zero.
        if value is None or value == "":
            return 0.0
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    @field_validator("currency", mode="before")
    @classmethod
    def _default_currency(cls, value: Any) -> str:
        return value or "USDC"


class PublicationStep(str, Enum):
    WALLETS = "wallets"
    ANNOUNCEMENT = "announcement"
    PREVIEW = "preview"


class PublicationState(BaseModel):
    """Wizard state for one publication attempt."""

    current_step: PublicationStep = PublicationStep.WALLETS
    wallet_addresses: dict[str, str] = Field(default_factory=dict, description="Winner id -> wallet address")
    wallet_errors: dict[str, str] = Field(default_factory=dict, description="Winner id -> field error")
    announcement: str = ""
    milestones_created: bool = Field(default=False, description="One-way latch")
    published: bool = False


class ResolvedWinner(BaseModel):
    """A winner with the tier amount and destination that will be committed."""

    winner_id: str
    name: str
    project_name: str
    rank: int
    position: str
    amount: float
    currency: str
    wallet_address: Optional[str] = None


class WinnerPreview(BaseModel):
    winners: list[ResolvedWinner]
    announcement: str
    prize_pool: float = Field(default=0.0, description="Sum of every configured tier")
    escrow_notices: list[str] = Field(default_factory=list, description="Why winner milestones will not be created")


class WinnerOutcome(BaseModel):
    winner_id: str
    succeeded: bool
    error: Optional[str] = None


class PublicationResult(BaseModel):
    """Outcome of ``publish()``: per-winner results plus the announcement status."""

    outcomes: list[WinnerOutcome] = Field(default_factory=list)
    milestones_skipped: bool = False
    announced: bool = False

    @property
    def succeeded_ids(self) -> list[str]:
        return [o.winner_id for o in self.outcomes if o.succeeded]

    @property
    def failed_ids(self) -> list[str]:
        return [o.winner_id for o in self.outcomes if not o.succeeded]


class BackendResponse(BaseModel):
    """Generic ``{success, message?, data?}`` envelope used by the backend API."""

    success: bool
    message: Optional[str] = None
    data: Optional[dict[str, Any]] = None
