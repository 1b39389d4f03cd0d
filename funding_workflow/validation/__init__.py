"""Pure validators for funding drafts, schedules and wallet addresses."""

from .schedule import ScheduleValidator, FundingSplit, distribute_funding
from .wallet_address import WalletAddressValidator, is_valid_stellar_address
from .draft_steps import (
    BasicStep,
    ContactStep,
    DetailsStep,
    MilestonesStep,
    Step,
    TeamStep,
    draft_steps,
    validate_draft,
)

__all__ = [
    "ScheduleValidator",
    "FundingSplit",
    "distribute_funding",
    "WalletAddressValidator",
    "is_valid_stellar_address",
    "BasicStep",
    "ContactStep",
    "DetailsStep",
    "MilestonesStep",
    "Step",
    "TeamStep",
    "draft_steps",
    "validate_draft",
]
