"""Prize pool and winner payout helpers."""

from __future__ import annotations

from typing import Optional, Sequence

from ..models.escrow import EscrowSnapshot, MilestoneRequest
from ..models.publication import PrizeTier, ResolvedWinner
from ..models.validation import ValidationResult


def total_prize_pool(tiers: Sequence[PrizeTier]) -> float:
    """Sum of every tier's prize amount."""
    return sum(tier.prize_amount for tier in tiers)


def winner_milestone(position: str, amount: float, receiver: str) -> MilestoneRequest:
    """Milestone paying ``amount`` to ``receiver`` for finishing at ``position``."""
    return MilestoneRequest(
        description=f"{position} Prize",
        amount=amount,
        receiver=receiver.strip(),
    )


def validate_escrow_can_be_updated(escrow: Optional[EscrowSnapshot]) -> ValidationResult:
    """Check the escrow state allows adding winner milestones."""
    result = ValidationResult()
    if escrow is None:
        result.add(["escrow"], "Escrow not found")
        return result
    if not escrow.is_funded or not escrow.balance:
        result.add(["escrow", "balance"], "Escrow is not funded. Please fund the escrow first.")
    if escrow.has_approved_milestones:
        result.add(
            ["escrow", "milestones"],
            "Cannot update escrow: Some milestones are already approved. "
            "Escrow cannot be updated after milestones are approved.",
        )
    if escrow.is_disputed:
        result.add(
            ["escrow", "flags"],
            "Cannot update escrow: Escrow is in dispute. Please resolve the dispute first.",
        )
    return result


def validate_winner_payouts(winners: Sequence[ResolvedWinner]) -> ValidationResult:
    """Batch-level payout checks: at least one winner, positive amounts, unique wallets."""
    result = ValidationResult()
    if not winners:
        result.add(["winners"], "At least one winner is required")
        return result

    addresses = [(w.wallet_address or "").strip().lower() for w in winners if w.wallet_address]
    if len(addresses) != len(set(addresses)):
        result.add(
            ["winners"],
            "Duplicate wallet addresses found. Each winner must have a unique address.",
        )

    for i, winner in enumerate(winners):
        if not winner.position.strip():
            result.add(["winners", i, "position"], f"Winner {i + 1}: Position is required")
        if winner.amount <= 0:
            result.add(["winners", i, "amount"], f"Winner {i + 1}: Amount must be greater than zero")
    return result
