"""Adapters for the external collaborators: escrow service, wallet signer, backend."""

from .base import ADAPTER_TIMEOUT, EscrowService, FundingBackend, WalletSigner
from .escrow_service import EscrowServiceClient
from .wallet import RemoteWalletSigner
from .backend_api import BackendApiClient

__all__ = [
    "ADAPTER_TIMEOUT",
    "EscrowService",
    "FundingBackend",
    "WalletSigner",
    "EscrowServiceClient",
    "RemoteWalletSigner",
    "BackendApiClient",
]
