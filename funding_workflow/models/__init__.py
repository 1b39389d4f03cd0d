"""Shared Pydantic models for the funding workflows."""

from .validation import ValidationIssue, ValidationResult
from .funding_draft import (
    BasicInfo,
    ContactInfo,
    DetailsInfo,
    FundingDraft,
    FundingPlan,
    Milestone,
    TeamInfo,
    TeamMember,
)
from .escrow import (
    EscrowDeployment,
    EscrowInitResponse,
    EscrowRoles,
    EscrowSnapshot,
    MilestoneRequest,
    TransactionSubmissionResponse,
)
from .publication import (
    BackendResponse,
    PrizeTier,
    PublicationResult,
    PublicationState,
    PublicationStep,
    ResolvedWinner,
    WinnerOutcome,
    WinnerPreview,
    WinnerSubmission,
)

__all__ = [
    "ValidationIssue",
    "ValidationResult",
    "BasicInfo",
    "ContactInfo",
    "DetailsInfo",
    "FundingDraft",
    "FundingPlan",
    "Milestone",
    "TeamInfo",
    "TeamMember",
    "EscrowDeployment",
    "EscrowInitResponse",
    "EscrowRoles",
    "EscrowSnapshot",
    "MilestoneRequest",
    "TransactionSubmissionResponse",
    "BackendResponse",
    "PrizeTier",
    "PublicationResult",
    "PublicationState",
    "PublicationStep",
    "ResolvedWinner",
    "WinnerOutcome",
    "WinnerPreview",
    "WinnerSubmission",
]
