"""Winner publication wizard for hackathon results.

Steps: wallets -> announcement -> preview -> publish.

The wallets step only appears while milestones still have to be created on
the prize escrow. Publishing creates one escrow milestone per eligible
winner, each attempted independently, then latches ``milestones_created``
in the store so a reopened wizard never pays a winner twice.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..adapters.base import FundingBackend
from ..database.client import PublicationLatchStore
from ..errors import (
    CollaboratorRejectedError,
    EscrowNotFundedError,
    EscrowNotUpdatableError,
    InvalidTransitionError,
    MissingPrizeTierError,
    PerWinnerMilestoneError,
    WorkflowError,
)
from ..models.escrow import EscrowSnapshot
from ..models.publication import (
    PrizeTier,
    PublicationResult,
    PublicationState,
    PublicationStep,
    ResolvedWinner,
    WinnerOutcome,
    WinnerPreview,
    WinnerSubmission,
)
from ..models.validation import ValidationResult
from ..prizes.distribution import (
    total_prize_pool,
    validate_escrow_can_be_updated,
    validate_winner_payouts,
    winner_milestone,
)
from ..prizes.tier_matcher import ensure_unique_ranks, find_missing_ranks, find_tier_for_rank, ordinal_suffix
from ..validation.wallet_address import ADDRESS_INVALID, ADDRESS_REQUIRED, WalletAddressValidator

logger = logging.getLogger(__name__)


def eligible_winners(submissions: Sequence[WinnerSubmission], tier_count: int) -> list[WinnerSubmission]:
    """Ranked submissions whose rank has a prize slot, best rank first."""
    ranked = [s for s in submissions if s.rank is not None and 1 <= s.rank <= tier_count]
    return sorted(ranked, key=lambda s: s.rank)


class WinnerPublicationMachine:
    """Collects wallets and an announcement, then publishes results.

    Args:
        submissions: Judged submissions; only ranked ones within the tier count take part.
        prize_tiers: Configured prize tiers.
        escrow: Snapshot of the hackathon prize escrow, or None when there is none.
        backend: Creates winner milestones and stores the announcement.
        latch_store: Persists the milestones-created latch per escrow.
        organization_id: Owning organization.
        hackathon_id: Hackathon being published.
    """

    def __init__(
        self,
        submissions: Sequence[WinnerSubmission],
        prize_tiers: Sequence[PrizeTier],
        escrow: Optional[EscrowSnapshot],
        backend: FundingBackend,
        latch_store: PublicationLatchStore,
        organization_id: str,
        hackathon_id: str,
    ) -> None:
        self.prize_tiers = list(prize_tiers)
        self.escrow = escrow
        self.backend = backend
        self.latch_store = latch_store
        self.organization_id = organization_id
        self.hackathon_id = hackathon_id
        self.winners = eligible_winners(submissions, len(self.prize_tiers))
        self.address_validator = WalletAddressValidator()

        latched = False
        if escrow is not None and escrow.contract_id:
            latched = latch_store.is_milestones_created(escrow.contract_id)

        self.state = PublicationState(
            wallet_addresses={w.id: (w.wallet_address or "").strip() for w in self.winners},
            milestones_created=latched,
        )
        self.state.current_step = PublicationStep.WALLETS if self.needs_milestones else PublicationStep.ANNOUNCEMENT

        self.latch_persisted = latched
        self.is_publishing = False
        self.result: Optional[PublicationResult] = None
        self.winner_errors: dict[str, PerWinnerMilestoneError] = {}
        self.errors: list[str] = []
        self.last_error: Optional[WorkflowError] = None

        logger.info(
            "publication_opened hackathon_id=%s winners=%d tiers=%d step=%s latched=%s",
            hackathon_id,
            len(self.winners),
            len(self.prize_tiers),
            self.state.current_step.value,
            latched,
        )

    @property
    def step(self) -> PublicationStep:
        return self.state.current_step

    @property
    def needs_milestones(self) -> bool:
        """True while winner milestones still have to be created on the escrow."""
        return self.escrow is not None and self.escrow.can_update and not self.state.milestones_created

    @property
    def escrow_notices(self) -> list[str]:
        """Why milestone creation will be skipped for an escrow that cannot be updated."""
        if self.escrow is None or self.escrow.can_update or self.state.milestones_created:
            return []
        reasons = [issue.message for issue in validate_escrow_can_be_updated(self.escrow).issues]
        return reasons or ["Escrow cannot be updated."]

    # ------------------------------------------------------------------
    # Wallets
    # ------------------------------------------------------------------

    def set_wallet_address(self, winner_id: str, address: str) -> None:
        self._require_step(PublicationStep.WALLETS, "edit wallet addresses")
        if winner_id not in self.state.wallet_addresses:
            raise ValueError(f"Unknown winner: {winner_id}")

        cleaned = (address or "").strip()
        self.state.wallet_addresses[winner_id] = cleaned
        if cleaned and not self.address_validator.validate(cleaned):
            self.state.wallet_errors[winner_id] = ADDRESS_INVALID
        else:
            self.state.wallet_errors.pop(winner_id, None)

    def complete_wallets(self) -> ValidationResult:
        """Validate the wallets step and advance to announcement when clean.

        Raises:
            EscrowNotFundedError: the escrow holds no funds; addresses are not checked.
            EscrowNotUpdatableError: the escrow has approved milestones or is in dispute.
            MissingPrizeTierError: a winner's rank has no configured tier.
            DuplicatePrizeTierError: two tiers claim the same rank.
        """
        self._require_step(PublicationStep.WALLETS, "complete the wallets step")
        self._clear_errors()
        try:
            self._check_escrow()
            self._check_tiers()
        except WorkflowError as exc:
            self._fail(exc)
            raise

        result = ValidationResult()
        self.state.wallet_errors = {}
        for winner in self.winners:
            address = self.state.wallet_addresses.get(winner.id, "")
            field_result = self.address_validator.validate_field(address)
            if not field_result.is_valid:
                self.state.wallet_errors[winner.id] = field_result.issues[0].message
            result.extend(field_result, prefix=["winners", winner.id])

        result.extend(validate_winner_payouts(self.resolve_winners()))

        if result.is_valid:
            self._move(PublicationStep.ANNOUNCEMENT)
        else:
            self.errors = result.messages()
            logger.info("wallets step blocked: %d issue(s)", len(result.issues))
        return result

    # ------------------------------------------------------------------
    # Announcement / navigation
    # ------------------------------------------------------------------

    def set_announcement(self, text: str) -> None:
        self._require_step(PublicationStep.ANNOUNCEMENT, "edit the announcement")
        self.state.announcement = text or ""

    def next(self) -> Optional[ValidationResult]:
        if self.step is PublicationStep.WALLETS:
            return self.complete_wallets()
        if self.step is PublicationStep.ANNOUNCEMENT:
            self._move(PublicationStep.PREVIEW)
            return None
        raise InvalidTransitionError("go forward", self.step.value)

    def back(self) -> None:
        if self.step is PublicationStep.PREVIEW:
            self._move(PublicationStep.ANNOUNCEMENT)
        elif self.step is PublicationStep.ANNOUNCEMENT and self.needs_milestones:
            self._move(PublicationStep.WALLETS)
        else:
            raise InvalidTransitionError("go back", self.step.value)

    def go_to_announcement(self) -> None:
        """Jump back from preview to edit the message."""
        self._require_step(PublicationStep.PREVIEW, "edit the announcement")
        self._move(PublicationStep.ANNOUNCEMENT)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def resolve_winners(self) -> list[ResolvedWinner]:
        """Eligible winners with the tier amount and wallet that will be committed."""
        resolved = []
        for winner in self.winners:
            tier = find_tier_for_rank(self.prize_tiers, winner.rank)
            resolved.append(
                ResolvedWinner(
                    winner_id=winner.id,
                    name=winner.name,
                    project_name=winner.project_name,
                    rank=winner.rank,
                    position=tier.position if tier else ordinal_suffix(winner.rank),
                    amount=tier.prize_amount if tier else 0.0,
                    currency=tier.currency if tier else "USDC",
                    wallet_address=self.state.wallet_addresses.get(winner.id) or None,
                )
            )
        return resolved

    def preview(self) -> WinnerPreview:
        return WinnerPreview(
            winners=self.resolve_winners(),
            announcement=self.state.announcement,
            prize_pool=total_prize_pool(self.prize_tiers),
            escrow_notices=self.escrow_notices,
        )

    # ------------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------------

    async def publish(self) -> Optional[PublicationResult]:
        """Create winner milestones (once per escrow) and publish the announcement.

        Returns None when a publish is already in flight. Per-winner failures
        are reported in the result; batch-level failures raise.
        """
        if self.is_publishing:
            logger.info("publish ignored: already in flight hackathon_id=%s", self.hackathon_id)
            return None
        self._require_step(PublicationStep.PREVIEW, "publish")
        if self.state.published and self.result is not None:
            return self.result

        self.is_publishing = True
        self._clear_errors()
        try:
            self._check_tiers()
            result = self.result or PublicationResult()
            if self.needs_milestones:
                self._check_escrow()
                result.outcomes = await self._create_milestones()
                self.state.milestones_created = True
            elif not result.outcomes:
                result.milestones_skipped = True
                logger.info(
                    "milestone creation skipped hackathon_id=%s reasons=%s",
                    self.hackathon_id,
                    self.escrow_notices,
                )
            self.result = result

            if self.state.milestones_created and not self.latch_persisted:
                self._latch(result)
            await self._announce()
            result.announced = True
            self.state.published = True
        except Exception as exc:
            error = self._classify(exc)
            self._fail(error)
            if error is exc:
                raise
            raise error from exc
        finally:
            self.is_publishing = False

        logger.info(
            "publication_complete hackathon_id=%s succeeded=%d failed=%d skipped=%s",
            self.hackathon_id,
            len(result.succeeded_ids),
            len(result.failed_ids),
            result.milestones_skipped,
        )
        return result

    async def _create_milestones(self) -> list[WinnerOutcome]:
        outcomes = []
        for winner in self.resolve_winners():
            try:
                await self._create_milestone(winner)
            except PerWinnerMilestoneError as exc:
                self.winner_errors[winner.winner_id] = exc
                outcomes.append(WinnerOutcome(winner_id=winner.winner_id, succeeded=False, error=exc.reason))
                logger.warning(
                    "winner_milestone_failed winner_id=%s rank=%d reason=%s",
                    winner.winner_id,
                    winner.rank,
                    exc.reason,
                )
            else:
                outcomes.append(WinnerOutcome(winner_id=winner.winner_id, succeeded=True))
                logger.info("winner_milestone_created winner_id=%s rank=%d", winner.winner_id, winner.rank)
        return outcomes

    async def _create_milestone(self, winner: ResolvedWinner) -> None:
        # complete_wallets already rejects these; they only trip if state changed after that step.
        address = winner.wallet_address or ""
        if not address:
            raise PerWinnerMilestoneError(winner.winner_id, ADDRESS_REQUIRED)
        if not self.address_validator.validate(address):
            raise PerWinnerMilestoneError(winner.winner_id, ADDRESS_INVALID)
        if winner.amount <= 0:
            raise PerWinnerMilestoneError(winner.winner_id, "Prize amount must be greater than zero")

        submission = next(s for s in self.winners if s.id == winner.winner_id)
        try:
            milestone = winner_milestone(winner.position, winner.amount, address)
            response = await self.backend.submit_winner_milestone(
                self.organization_id,
                self.hackathon_id,
                self.escrow.contract_id,
                submission.participant_id or submission.id,
                winner.rank,
                milestone,
                winner.currency,
            )
            if not response.success:
                raise CollaboratorRejectedError(
                    response.message or "Failed to create milestone",
                    collaborator="backend_api",
                )
        except Exception as exc:
            error = self._classify(exc)
            raise PerWinnerMilestoneError(winner.winner_id, error.user_message, cause=error) from exc

    def _latch(self, result: PublicationResult) -> None:
        self.latch_store.mark_milestones_created(
            self.escrow.contract_id,
            self.hackathon_id,
            result.succeeded_ids,
            result.failed_ids,
        )
        self.latch_persisted = True

    async def _announce(self) -> None:
        winners = [{"submissionId": w.id, "rank": w.rank} for w in self.winners]
        response = await self.backend.announce_winners(
            self.organization_id,
            self.hackathon_id,
            winners,
            self.state.announcement,
        )
        if not response.success:
            raise CollaboratorRejectedError(
                response.message or "Failed to announce winners",
                collaborator="backend_api",
            )
        if self.escrow is not None and self.escrow.contract_id:
            try:
                self.latch_store.mark_announced(self.escrow.contract_id, self.hackathon_id)
            except WorkflowError as exc:
                logger.warning(
                    "announcement_record_failed hackathon_id=%s escrow=%s error=%s",
                    self.hackathon_id,
                    self.escrow.contract_id,
                    exc,
                )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _check_escrow(self) -> None:
        check = validate_escrow_can_be_updated(self.escrow)
        if check.is_valid:
            return
        if self.escrow is None or check.for_path("escrow", "balance"):
            raise EscrowNotFundedError()
        raise EscrowNotUpdatableError([issue.message for issue in check.issues])

    def _check_tiers(self) -> None:
        ensure_unique_ranks(self.prize_tiers)
        missing = find_missing_ranks(self.prize_tiers, [w.rank for w in self.winners])
        if missing:
            raise MissingPrizeTierError(missing)

    def _require_step(self, step: PublicationStep, operation: str) -> None:
        if self.step is not step:
            raise InvalidTransitionError(operation, self.step.value)

    def _move(self, step: PublicationStep) -> None:
        logger.info("publication_step from=%s to=%s hackathon_id=%s", self.step.value, step.value, self.hackathon_id)
        self.state.current_step = step

    def _clear_errors(self) -> None:
        self.errors = []
        self.last_error = None

    def _fail(self, error: WorkflowError) -> None:
        self.last_error = error
        self.errors = [error.user_message]
        logger.error(
            "publication_failed hackathon_id=%s step=%s error_type=%s error=%s",
            self.hackathon_id,
            self.step.value,
            type(error).__name__,
            error,
        )

    @staticmethod
    def _classify(exc: Exception) -> WorkflowError:
        if isinstance(exc, WorkflowError):
            return exc
        logger.exception("Unexpected collaborator failure")
        return WorkflowError(str(exc))
