"""Escrow creation workflow for crowdfunding campaigns.

    form -> initializing -> signing -> confirming -> success
               |                          |
               +--> form                  +--> signing

``initializing`` falls back to ``form`` and ``confirming`` falls back to
``signing``; nothing ever skips forward. The draft is kept on every failure
so the operator can fix it and resubmit. Once a transaction has been
submitted and a contract id obtained, the deployment is never repeated:
a retry from ``signing`` only re-attempts persistence.
"""

from __future__ import annotations

import logging
import time
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from ..adapters.base import EscrowService, FundingBackend, WalletSigner
from ..config.config import USDC_TRUSTLINE_ADDRESS
from ..errors import (
    CollaboratorRejectedError,
    InvalidTransitionError,
    MalformedResponseError,
    WalletNotConnectedError,
    WorkflowError,
)
from ..models.escrow import EscrowDeployment, EscrowRoles, MilestoneRequest
from ..models.funding_draft import FundingDraft
from ..models.validation import ValidationResult
from ..validation.draft_steps import validate_draft
from ..validation.schedule import distribute_funding

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_FEE_PERCENT = 4.0


class CreationState(str, Enum):
    FORM = "form"
    INITIALIZING = "initializing"
    SIGNING = "signing"
    CONFIRMING = "confirming"
    SUCCESS = "success"


ALLOWED_TRANSITIONS: dict[CreationState, frozenset[CreationState]] = {
    CreationState.FORM: frozenset({CreationState.INITIALIZING}),
    CreationState.INITIALIZING: frozenset({CreationState.SIGNING, CreationState.FORM}),
    CreationState.SIGNING: frozenset({CreationState.CONFIRMING}),
    CreationState.CONFIRMING: frozenset({CreationState.SUCCESS, CreationState.SIGNING}),
    CreationState.SUCCESS: frozenset(),
}


def new_engagement_id() -> str:
    return f"project-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _social_platform(link: str) -> str:
    if link.startswith("https://twitter.com/"):
        return "twitter"
    if link.startswith("https://discord.gg/"):
        return "discord"
    if link.startswith("https://t.me/"):
        return "telegram"
    return "other"


def to_funding_record(draft: FundingDraft, contract_id: str) -> dict[str, Any]:
    """Backend request for a campaign whose escrow lives at ``contract_id``.

    On Stellar the contract id is the escrow address; it also stands in for
    the transaction hash, which the submission response does not return.
    """
    split = distribute_funding(draft.funding_amount, len(draft.milestones))
    links = [link.strip() for link in draft.basic.social_links if link.strip()]
    return {
        "title": draft.basic.project_name,
        "logo": draft.basic.logo_url,
        "vision": draft.basic.vision,
        "category": draft.basic.category,
        "details": draft.details.description,
        "fundingAmount": draft.funding_amount,
        "githubUrl": draft.basic.github_url or None,
        "projectWebsite": draft.basic.website_url or None,
        "demoVideo": draft.basic.demo_video_url or None,
        "milestones": [
            {
                "name": m.title,
                "description": m.description,
                "startDate": m.start_date.isoformat() if m.start_date else None,
                "endDate": m.end_date.isoformat() if m.end_date else None,
                "amount": split.per_milestone,
            }
            for m in draft.milestones
        ],
        "team": [
            {"name": member.email.split("@")[0], "role": "MEMBER", "email": member.email}
            for member in draft.team.members
        ],
        "contact": {
            "primary": f"@{draft.contact.telegram}",
            "backup": draft.contact.backup_contact,
        },
        "socialLinks": [{"platform": _social_platform(link), "url": link} for link in links],
        "contractId": contract_id,
        "escrowAddress": contract_id,
        "transactionHash": contract_id,
        "escrowDetails": {},
    }


class EscrowCreationMachine:
    """Drives one campaign draft through escrow deployment.

    Args:
        draft: The draft being submitted; kept across failures.
        escrow_service: Escrow initialization and transaction submission.
        wallet: Signs the unsigned deployment transaction.
        backend: Persists the campaign once a contract id exists.
        signer_address: The creator's wallet address; bound to every escrow role.
        platform_fee_percent: Fee recorded in the escrow.
        trustline_address: Asset trustline the escrow holds (USDC by default).
        clock: Returns "now" for schedule validation.
    """

    def __init__(
        self,
        draft: FundingDraft,
        escrow_service: EscrowService,
        wallet: WalletSigner,
        backend: FundingBackend,
        signer_address: Optional[str],
        *,
        platform_fee_percent: float = DEFAULT_PLATFORM_FEE_PERCENT,
        trustline_address: str = USDC_TRUSTLINE_ADDRESS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.draft = draft
        self.escrow_service = escrow_service
        self.wallet = wallet
        self.backend = backend
        self.signer_address = signer_address
        self.platform_fee_percent = platform_fee_percent
        self.trustline_address = trustline_address
        self._clock = clock or datetime.now

        self.state = CreationState.FORM
        self.deployment: Optional[EscrowDeployment] = None
        self.validation = ValidationResult()
        self.errors: list[str] = []
        self.last_error: Optional[WorkflowError] = None
        self.history: list[tuple[CreationState, CreationState]] = []
        self.is_submitting = False
        self._is_signing = False

    # ------------------------------------------------------------------
    # Form
    # ------------------------------------------------------------------

    def update_draft(self, draft: FundingDraft) -> None:
        """Replace the draft. Only the form is editable."""
        if self.state is not CreationState.FORM:
            raise InvalidTransitionError("edit the draft", self.state.value)
        self.draft = draft

    def build_deployment(self) -> EscrowDeployment:
        """Escrow request for the current draft; all roles bound to the creator."""
        if not self.signer_address:
            raise WalletNotConnectedError()
        split = distribute_funding(self.draft.funding_amount, len(self.draft.milestones))
        return EscrowDeployment(
            engagement_id=new_engagement_id(),
            title=self.draft.title or "Crowdfunding Project",
            description=self.draft.description,
            platform_fee_percent=self.platform_fee_percent,
            trustline_address=self.trustline_address,
            signer=self.signer_address,
            roles=EscrowRoles.single_signer(self.signer_address),
            milestone_requests=[
                MilestoneRequest(
                    description=f"{m.title}: {m.description}",
                    amount=split.per_milestone,
                    receiver=self.signer_address,
                )
                for m in self.draft.milestones
            ],
        )

    async def submit(self) -> Optional[CreationState]:
        """form -> initializing -> signing (or back to form).

        Returns the resulting state, or None when an attempt is already in
        flight for this draft.
        """
        if self.is_submitting:
            logger.info("submit ignored: attempt already in flight state=%s", self.state.value)
            return None
        if self.state is not CreationState.FORM:
            raise InvalidTransitionError("submit", self.state.value)

        self.is_submitting = True
        try:
            return await self._submit()
        finally:
            # The attempt stays in flight only once a transaction awaits signing.
            if self.state is CreationState.FORM:
                self.is_submitting = False

    async def _submit(self) -> CreationState:
        self._clear_errors()

        self.validation = validate_draft(self.draft, now=self._clock())
        if not self.validation.is_valid:
            self.errors = self.validation.messages()
            logger.info("submit rejected: %d validation issue(s)", len(self.validation.issues))
            return self.state

        try:
            deployment = self.build_deployment()
        except Exception as exc:
            self._fail(self._classify(exc))
            return self.state

        self.deployment = deployment
        self._transition(CreationState.INITIALIZING)

        try:
            response = await self.escrow_service.initialize_escrow(deployment)
            if not response.ok:
                raise CollaboratorRejectedError(
                    response.message or "Failed to initialize escrow",
                    collaborator="escrow_service",
                )
            if not response.unsigned_transaction:
                raise MalformedResponseError(
                    "Escrow initialization returned no unsigned transaction",
                    collaborator="escrow_service",
                    user_message="Failed to initialize escrow. Please try again.",
                )
        except Exception as exc:
            self._fail(self._classify(exc))
            self._transition(CreationState.FORM)
            return self.state

        self.deployment = deployment.model_copy(update={"unsigned_transaction": response.unsigned_transaction})
        self._transition(CreationState.SIGNING)
        return self.state

    # ------------------------------------------------------------------
    # Signing and confirmation
    # ------------------------------------------------------------------

    def retry(self) -> None:
        """Clear the last error and stay ready to sign again."""
        if self.state is not CreationState.SIGNING:
            raise InvalidTransitionError("retry", self.state.value)
        self._clear_errors()

    async def sign_and_submit(self) -> Optional[CreationState]:
        """signing -> confirming -> success (or back to signing).

        Triggered by the operator. Signs, submits, then persists the campaign
        with the resulting contract id. Returns None if already confirming.
        """
        if self._is_signing:
            logger.info("sign ignored: confirmation already in flight")
            return None
        if self.state is not CreationState.SIGNING:
            raise InvalidTransitionError("sign", self.state.value)
        if self.deployment is None or not self.deployment.unsigned_transaction:
            self._fail(MalformedResponseError("No transaction to sign", user_message="No transaction to sign"))
            return self.state

        self._is_signing = True
        self._clear_errors()
        self._transition(CreationState.CONFIRMING)
        try:
            if self.deployment.contract_id is None:
                await self._sign_and_send()
            await self._persist(self.deployment.contract_id)
        except Exception as exc:
            self._fail(self._classify(exc))
            self._transition(CreationState.SIGNING)
            return self.state
        finally:
            self._is_signing = False

        self._transition(CreationState.SUCCESS)
        self.is_submitting = False
        return self.state

    async def _sign_and_send(self) -> None:
        deployment = self.deployment
        signed = await self.wallet.sign_transaction(deployment.unsigned_transaction, self.signer_address)
        response = await self.escrow_service.send_transaction(signed)
        if not response.ok:
            raise CollaboratorRejectedError(
                response.message or "Failed to send transaction",
                collaborator="escrow_service",
            )
        if not response.contract_id:
            raise MalformedResponseError(
                "Response does not contain contractId",
                collaborator="escrow_service",
            )
        self.deployment = deployment.model_copy(update={"contract_id": response.contract_id})
        logger.info(
            "escrow_deployed engagement_id=%s contract_id=%s",
            deployment.engagement_id,
            response.contract_id,
        )

    async def _persist(self, contract_id: str) -> None:
        response = await self.backend.create_funding_record(to_funding_record(self.draft, contract_id))
        if not response.success:
            raise CollaboratorRejectedError(
                response.message or "Failed to create project",
                collaborator="backend_api",
            )
        logger.info("funding_record_saved contract_id=%s", contract_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def abandon(self) -> None:
        """Called when the surrounding UI closes. Deployed escrows are not rolled back."""
        if self.state is CreationState.SUCCESS:
            return
        if self.deployment is not None and self.deployment.unsigned_transaction:
            logger.warning(
                "attempt abandoned state=%s engagement_id=%s contract_id=%s (escrow left orphaned)",
                self.state.value,
                self.deployment.engagement_id,
                self.deployment.contract_id,
            )
        else:
            logger.info("attempt abandoned state=%s", self.state.value)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _transition(self, target: CreationState) -> None:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"move to '{target.value}'", self.state.value)
        logger.info(
            "transition from=%s to=%s engagement_id=%s",
            self.state.value,
            target.value,
            self.deployment.engagement_id if self.deployment else None,
        )
        self.history.append((self.state, target))
        self.state = target

    def _clear_errors(self) -> None:
        self.errors = []
        self.last_error = None

    def _fail(self, error: WorkflowError) -> None:
        self.last_error = error
        self.errors = [error.user_message]
        logger.error(
            "step_failed state=%s error_type=%s error=%s",
            self.state.value,
            type(error).__name__,
            error,
        )

    @staticmethod
    def _classify(exc: Exception) -> WorkflowError:
        if isinstance(exc, WorkflowError):
            return exc
        logger.exception("Unexpected collaborator failure")
        return WorkflowError(str(exc))
