"""Escrow models - deployment request, collaborator responses and escrow snapshots."""

from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field

SUCCESS = "SUCCESS"


class EscrowRoles(BaseModel):
    """Escrow role bindings. In the single-creator flow all five are the creator."""

    model_config = ConfigDict(frozen=True)

    approver: str
    service_provider: str
    platform_address: str
    release_signer: str
    dispute_resolver: str

    @classmethod
    def single_signer(cls, address: str) -> "EscrowRoles":
        return cls(
            approver=address,
            service_provider=address,
            platform_address=address,
            release_signer=address,
            dispute_resolver=address,
        )

    def to_payload(self) -> dict[str, str]:
        return {
            "approver": self.approver,
            "serviceProvider": self.service_provider,
            "platformAddress": self.platform_address,
            "releaseSigner": self.release_signer,
            "disputeResolver": self.dispute_resolver,
        }


class MilestoneRequest(BaseModel):
    """One escrow milestone: who gets paid how much for what."""

    model_config = ConfigDict(frozen=True)

    description: str
    amount: float = Field(..., gt=0)
    receiver: str

    def to_payload(self) -> dict[str, Any]:
        return {"description": self.description, "amount": self.amount, "receiver": self.receiver}


class EscrowDeployment(BaseModel):
    """Everything sent to the escrow service for one deployment attempt.

    Frozen: each workflow step produces an updated copy with ``model_copy``,
    so the record cannot be changed in place once submission has completed.
    """

    model_config = ConfigDict(frozen=True)

    engagement_id: str = Field(..., description="Unique per attempt")
    title: str
    description: str
    platform_fee_percent: float = Field(default=4.0)
    trustline_address: str
    signer: str
    roles: EscrowRoles
    milestone_requests: list[MilestoneRequest] = Field(default_factory=list)
    unsigned_transaction: Optional[str] = Field(None, description="Set after initialization")
    contract_id: Optional[str] = Field(None, description="Set after submission")

    def to_payload(self) -> dict[str, Any]:
        """Request body for the escrow initialization contract."""
        return {
            "signer": self.signer,
            "engagementId": self.engagement_id,
            "title": self.title,
            "description": self.description,
            "platformFee": self.platform_fee_percent,
            "trustline": {"address": self.trustline_address},
            "roles": self.roles.to_payload(),
            "milestones": [m.to_payload() for m in self.milestone_requests],
        }


class EscrowInitResponse(BaseModel):
    status: str
    unsigned_transaction: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


class TransactionSubmissionResponse(BaseModel):
    status: str
    contract_id: Optional[str] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


class EscrowSnapshot(BaseModel):
    """What the ledger currently reports about a hackathon prize escrow."""

    contract_id: str
    balance: float = 0.0
    is_funded: bool = False
    can_update: bool = False
    has_approved_milestones: bool = False
    is_disputed: bool = False
