"""Wiring: builds collaborator clients and state machines from Config."""

import logging
import sys
from typing import Optional, Sequence

import httpx

from .adapters import BackendApiClient, EscrowServiceClient, RemoteWalletSigner
from .config import Config, load_config
from .database import SupabaseClient
from .models.funding_draft import FundingDraft
from .models.publication import PrizeTier, WinnerSubmission
from .workflows import EscrowCreationMachine, WinnerPublicationMachine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def _timeout(config: Config) -> httpx.Timeout:
    return httpx.Timeout(connect=30.0, read=config.request_timeout_seconds, write=30.0, pool=30.0)


def build_escrow_service(config: Config) -> EscrowServiceClient:
    return EscrowServiceClient(config.escrow_api_url, config.escrow_api_key, timeout=_timeout(config))


def build_wallet_signer(config: Config) -> RemoteWalletSigner:
    return RemoteWalletSigner(config.signer_bridge_url, network_passphrase=config.network_passphrase)


def build_backend(config: Config) -> BackendApiClient:
    return BackendApiClient(config.backend_api_url, token=config.backend_api_token, timeout=_timeout(config))


def build_latch_store(config: Config) -> SupabaseClient:
    """Supabase-backed latch store. Publication cannot run without it."""
    missing = [
        name
        for name, value in (("SUPABASE_URL", config.supabase_url), ("SUPABASE_KEY", config.supabase_key))
        if not value
    ]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}. "
            "Winner publication needs Supabase to store the milestones-created latch."
        )
    return SupabaseClient(config.supabase_url, config.supabase_key)


def create_escrow_machine(
    draft: FundingDraft,
    signer_address: Optional[str],
    config: Optional[Config] = None,
) -> EscrowCreationMachine:
    """EscrowCreationMachine wired to the configured collaborators."""
    config = config or load_config()
    return EscrowCreationMachine(
        draft,
        escrow_service=build_escrow_service(config),
        wallet=build_wallet_signer(config),
        backend=build_backend(config),
        signer_address=signer_address,
        platform_fee_percent=config.platform_fee_percent,
        trustline_address=config.trustline_address,
    )


async def create_publication_machine(
    submissions: Sequence[WinnerSubmission],
    prize_tiers: Sequence[PrizeTier],
    organization_id: str,
    hackathon_id: str,
    escrow_contract_id: Optional[str] = None,
    config: Optional[Config] = None,
) -> WinnerPublicationMachine:
    """WinnerPublicationMachine with a fresh escrow snapshot.

    Without ``escrow_contract_id`` the hackathon has no prize escrow and
    publication only announces results.
    """
    config = config or load_config()
    escrow = None
    if escrow_contract_id:
        escrow = await build_escrow_service(config).get_escrow(escrow_contract_id)
        logger.info(
            "Loaded escrow %s: funded=%s can_update=%s",
            escrow_contract_id,
            escrow.is_funded,
            escrow.can_update,
        )
    return WinnerPublicationMachine(
        submissions,
        prize_tiers,
        escrow,
        backend=build_backend(config),
        latch_store=build_latch_store(config),
        organization_id=organization_id,
        hackathon_id=hackathon_id,
    )
