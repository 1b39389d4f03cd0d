"""Escrow service adapter - multi-release escrow deployment on Stellar."""

import logging
from typing import Any, Optional

from ..models.escrow import (
    EscrowDeployment,
    EscrowInitResponse,
    EscrowSnapshot,
    TransactionSubmissionResponse,
)
from .base import BaseCollaboratorClient

logger = logging.getLogger(__name__)


class EscrowServiceClient(BaseCollaboratorClient):
    """Client for the escrow service REST API.

    The service builds unsigned Soroban transactions for escrow deployment and
    relays signed transactions to the network. It never holds keys.
    """

    collaborator_name = "escrow_service"

    DEPLOY_PATH = "/deployer/multi-release"
    SEND_PATH = "/helper/send-transaction"
    ESCROW_PATH = "/escrow/multi-release/get-escrow"

    def __init__(self, base_url: str, api_key: str, **kwargs: Any) -> None:
        super().__init__(
            base_url,
            headers={"x-api-key": api_key, "Content-Type": "application/json"},
            **kwargs,
        )

    async def initialize_escrow(self, deployment: EscrowDeployment) -> EscrowInitResponse:
        """Request an unsigned deployment transaction for ``deployment``."""
        logger.info(
            "Initializing escrow engagement_id=%s milestones=%d",
            deployment.engagement_id,
            len(deployment.milestone_requests),
        )
        data = await self._request("POST", self.DEPLOY_PATH, json=deployment.to_payload())
        return EscrowInitResponse(
            status=str(data.get("status", "FAILED")),
            unsigned_transaction=data.get("unsignedTransaction"),
            message=data.get("message"),
        )

    async def send_transaction(self, signed_transaction: str) -> TransactionSubmissionResponse:
        """Submit a signed transaction; a successful deployment yields the contract id."""
        data = await self._request("POST", self.SEND_PATH, json={"signedXdr": signed_transaction})
        return TransactionSubmissionResponse(
            status=str(data.get("status", "FAILED")),
            contract_id=data.get("contractId"),
            message=data.get("message"),
        )

    async def get_escrow(self, contract_id: str) -> EscrowSnapshot:
        """Fetch the current state of an escrow for the publication wizard."""
        data = await self._request("GET", self.ESCROW_PATH, params={"contractId": contract_id})
        return self._to_snapshot(contract_id, data)

    def _to_snapshot(self, contract_id: str, data: dict[str, Any]) -> EscrowSnapshot:
        balance = self._parse_balance(data.get("balance"))
        milestones = data.get("milestones") or []
        has_approved = any(
            (m.get("flags") or {}).get("approved") is True for m in milestones if isinstance(m, dict)
        )
        is_disputed = (data.get("flags") or {}).get("disputed") is True
        return EscrowSnapshot(
            contract_id=contract_id,
            balance=balance,
            is_funded=balance > 0,
            can_update=not has_approved and not is_disputed,
            has_approved_milestones=has_approved,
            is_disputed=is_disputed,
        )

    @staticmethod
    def _parse_balance(value: Optional[Any]) -> float:
        try:
            return float(value or 0)
        except (TypeError, ValueError):
            logger.warning("Could not parse escrow balance: %r", value)
            return 0.0
