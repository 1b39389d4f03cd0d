"""State machines for escrow creation and winner publication."""

from .escrow_creation import CreationState, EscrowCreationMachine, to_funding_record
from .winner_publication import WinnerPublicationMachine, eligible_winners

__all__ = [
    "CreationState",
    "EscrowCreationMachine",
    "to_funding_record",
    "WinnerPublicationMachine",
    "eligible_winners",
]
