"""Wallet signing adapter.

Signing happens on the operator's device. The core reaches it through a
signing bridge that holds the request open until the operator approves or
declines, so reads have no timeout and a sign request is never retried.
"""

import logging
from typing import Any

import httpx

from ..errors import (
    InvalidTransactionFormatError,
    MalformedResponseError,
    SignerError,
    UserCancelledError,
    WalletDisconnectedError,
)
from .base import BaseCollaboratorClient

logger = logging.getLogger(__name__)

# The operator may take arbitrarily long to approve.
SIGNER_TIMEOUT = httpx.Timeout(connect=30.0, read=None, write=30.0, pool=30.0)

SIGNER_ERROR_CODES: dict[str, type[SignerError]] = {
    "USER_REJECTED": UserCancelledError,
    "INVALID_TRANSACTION": InvalidTransactionFormatError,
    "WALLET_NOT_CONNECTED": WalletDisconnectedError,
}


class RemoteWalletSigner(BaseCollaboratorClient):
    """Asks the operator's wallet, via the signing bridge, to sign a transaction."""

    collaborator_name = "wallet_signer"
    max_attempts = 1

    SIGN_PATH = "/sign"

    def __init__(self, base_url: str, network_passphrase: str = "", **kwargs: Any) -> None:
        kwargs.setdefault("timeout", SIGNER_TIMEOUT)
        super().__init__(base_url, headers={"Content-Type": "application/json"}, **kwargs)
        self.network_passphrase = network_passphrase

    async def sign_transaction(self, unsigned_transaction: str, signer_address: str) -> str:
        payload = {"unsignedTransaction": unsigned_transaction, "address": signer_address}
        if self.network_passphrase:
            payload["networkPassphrase"] = self.network_passphrase
        data = await self._request("POST", self.SIGN_PATH, json=payload)

        # Some bridges report rejection in a 200 body rather than a 4xx.
        if data.get("error"):
            raise self._signer_error(data["error"])

        signed = data.get("signedTransaction") or data.get("signedTxXdr")
        if not isinstance(signed, str) or not signed:
            raise MalformedResponseError(
                "Signer response did not contain a signed transaction",
                collaborator=self.collaborator_name,
            )
        logger.info("Transaction signed by %s", signer_address)
        return signed

    def _rejection_error(self, response: httpx.Response) -> Exception:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return self._signer_error(body["error"])
        return super()._rejection_error(response)

    @staticmethod
    def _signer_error(error: Any) -> SignerError:
        if isinstance(error, dict):
            code = str(error.get("code", "")).upper()
            message = str(error.get("message", ""))
        else:
            code, message = str(error).upper(), str(error)
        error_cls = SIGNER_ERROR_CODES.get(code, SignerError)
        return error_cls(message or code)
