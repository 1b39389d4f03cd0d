"""Error taxonomy for the funding workflows.

Validation problems are never raised; they travel as ``ValidationResult``
data (see ``models.validation``). Everything below is raised at the
collaborator boundary or by the state machines and carries a
``user_message`` that is safe to show to an operator.
"""

from __future__ import annotations

from typing import Optional


class WorkflowError(Exception):
    """Base class for all workflow failures."""

    user_message = "Something went wrong. Please try again."

    def __init__(self, message: str = "", *, user_message: Optional[str] = None) -> None:
        super().__init__(message or self.user_message)
        if user_message is not None:
            self.user_message = user_message


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class CollaboratorError(WorkflowError):
    """A call to an external collaborator did not produce a usable result."""

    def __init__(
        self,
        message: str = "",
        *,
        collaborator: str = "unknown",
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.collaborator = collaborator


class CollaboratorUnavailableError(CollaboratorError):
    """Network error, timeout or 5xx after retries were exhausted."""

    user_message = "Network error. Please check your connection and try again."


class CollaboratorRejectedError(CollaboratorError):
    """The collaborator answered with an explicit failure status."""

    user_message = "The request was rejected. Please review your details and try again."

    def __init__(
        self,
        message: str = "",
        *,
        collaborator: str = "unknown",
        user_message: Optional[str] = None,
    ) -> None:
        # Collaborator messages are shown to the operator as-is.
        super().__init__(
            message,
            collaborator=collaborator,
            user_message=user_message or message or None,
        )


class MalformedResponseError(CollaboratorError):
    """Success was reported but a required field is missing."""

    user_message = "Received an incomplete response. Please try signing again."


# ---------------------------------------------------------------------------
# Wallet / signer failures
# ---------------------------------------------------------------------------


class SignerError(WorkflowError):
    """The wallet could not produce a signature."""

    user_message = "Failed to sign transaction. Please try again."


class UserCancelledError(SignerError):
    user_message = "Transaction signing was cancelled. Please try again."


class InvalidTransactionFormatError(SignerError):
    user_message = "Invalid transaction format. Please contact support."


class WalletDisconnectedError(SignerError):
    user_message = "Wallet is not connected. Please reconnect your wallet."


class WalletNotConnectedError(WorkflowError):
    """No signer address was supplied to the machine."""

    user_message = "Wallet not connected. Please connect your wallet first."


# ---------------------------------------------------------------------------
# State machine / publication failures
# ---------------------------------------------------------------------------


class InvalidTransitionError(WorkflowError):
    """An operation was requested from a state that does not allow it."""

    def __init__(self, operation: str, state: str) -> None:
        super().__init__(
            f"Cannot {operation} from state '{state}'",
            user_message="This action is not available right now.",
        )
        self.operation = operation
        self.state = state


class EscrowNotFundedError(WorkflowError):
    user_message = "Escrow is not funded. Please fund the escrow first."


class EscrowNotUpdatableError(WorkflowError):
    """The escrow has approved milestones or is in dispute."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        message = " ".join(self.reasons) or "Escrow cannot be updated."
        super().__init__(message, user_message=message)


class MissingPrizeTierError(WorkflowError):
    """At least one ranked winner has no prize tier; blocks the whole batch."""

    def __init__(self, missing_ranks: list[int]) -> None:
        from .prizes.tier_matcher import ordinal_suffix

        self.missing_ranks = sorted(set(missing_ranks))
        plural = "s" if len(self.missing_ranks) > 1 else ""
        ranks_str = ", ".join(ordinal_suffix(r) for r in self.missing_ranks)
        message = (
            f"No prize tier found for rank{plural} {ranks_str}. "
            "Please configure prize tiers in the Rewards tab before creating milestones."
        )
        super().__init__(message, user_message=message)


class DuplicatePrizeTierError(WorkflowError):
    """Two or more prize tiers resolve to the same rank."""

    def __init__(self, duplicates: dict[int, list[str]]) -> None:
        self.duplicates = duplicates
        parts = [
            f"rank {rank}: {', '.join(repr(label) for label in labels)}"
            for rank, labels in sorted(duplicates.items())
        ]
        message = "Prize tiers resolve to the same rank (" + "; ".join(parts) + ")"
        super().__init__(message, user_message=message)


class PerWinnerMilestoneError(WorkflowError):
    """One winner's milestone could not be created; other winners are unaffected."""

    def __init__(self, winner_id: str, reason: str, *, cause: Optional[Exception] = None) -> None:
        super().__init__(f"Milestone for winner {winner_id} failed: {reason}", user_message=reason)
        self.winner_id = winner_id
        self.reason = reason
        self.cause = cause
