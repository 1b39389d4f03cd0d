"""FundingDraft - the campaign proposal an organizer edits before escrow deployment.

Every field has a default so a half-filled draft can be held by the editing
session; completeness is checked by ``validation.draft_steps``.
"""

from datetime import date
from typing import Optional
from pydantic import BaseModel, Field


class Milestone(BaseModel):
    """A dated, amount-bound unit of work."""

    title: str = Field(default="", description="Milestone title")
    description: str = Field(default="", description="What will be delivered")
    start_date: Optional[date] = Field(None, description="First day of work")
    end_date: Optional[date] = Field(None, description="Delivery date")
    amount: Optional[int] = Field(None, description="Equal-split share, set when the escrow is built")


class BasicInfo(BaseModel):
    project_name: str = Field(default="", description="Public campaign title")
    vision: str = Field(default="", description="Short pitch, max 300 characters")
    category: str = Field(default="")
    logo_url: str = Field(default="")
    github_url: Optional[str] = None
    website_url: Optional[str] = None
    demo_video_url: Optional[str] = None
    social_links: list[str] = Field(default_factory=list)


class DetailsInfo(BaseModel):
    description: str = Field(default="", description="Long-form project description")


class FundingPlan(BaseModel):
    funding_amount: float = Field(default=0.0, allow_inf_nan=False, description="Total amount requested")
    milestones: list[Milestone] = Field(default_factory=list, description="Ordered milestones (earliest first)")


class TeamMember(BaseModel):
    email: str
    role: Optional[str] = None


class TeamInfo(BaseModel):
    members: list[TeamMember] = Field(default_factory=list)


class ContactInfo(BaseModel):
    telegram: str = Field(default="", description="Primary contact handle, without '@'")
    backup_type: str = Field(default="whatsapp", description="'discord' or 'whatsapp'")
    backup_contact: str = Field(default="")


class FundingDraft(BaseModel):
    """Aggregate edited across the Basic/Details/Milestones/Team/Contact steps."""

    basic: BasicInfo = Field(default_factory=BasicInfo)
    details: DetailsInfo = Field(default_factory=DetailsInfo)
    funding: FundingPlan = Field(default_factory=FundingPlan)
    team: TeamInfo = Field(default_factory=TeamInfo)
    contact: ContactInfo = Field(default_factory=ContactInfo)

    @property
    def title(self) -> str:
        return self.basic.project_name

    @property
    def description(self) -> str:
        return self.basic.vision or self.details.description

    @property
    def category(self) -> str:
        return self.basic.category

    @property
    def milestones(self) -> list[Milestone]:
        return self.funding.milestones

    @property
    def funding_amount(self) -> float:
        return self.funding.funding_amount
