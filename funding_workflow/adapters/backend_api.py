"""Backend API adapter - persists campaigns, winner milestones and announcements."""

import logging
from typing import Any, Optional

from ..models.escrow import MilestoneRequest
from ..models.publication import BackendResponse
from .base import BaseCollaboratorClient

logger = logging.getLogger(__name__)


class BackendApiClient(BaseCollaboratorClient):
    """Client for the platform backend.

    All endpoints answer with a ``{success, message?, data?}`` envelope.
    """

    collaborator_name = "backend_api"

    PROJECTS_PATH = "/crowdfunding/projects"
    WINNER_MILESTONES_PATH = "/organizations/{organization_id}/hackathons/{hackathon_id}/winners/milestones"
    ANNOUNCE_PATH = "/organizations/{organization_id}/hackathons/{hackathon_id}/winners/announce"

    def __init__(self, base_url: str, token: Optional[str] = None, **kwargs: Any) -> None:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        super().__init__(base_url, headers=headers, **kwargs)

    async def create_funding_record(self, record: dict[str, Any]) -> BackendResponse:
        """Persist a crowdfunding campaign once its escrow contract exists."""
        data = await self._request("POST", self.PROJECTS_PATH, json=record)
        return self._envelope(data)

    async def submit_winner_milestone(
        self,
        organization_id: str,
        hackathon_id: str,
        escrow_address: str,
        participant_id: str,
        rank: int,
        milestone: MilestoneRequest,
        currency: str,
    ) -> BackendResponse:
        """Add one winner's payout milestone to the hackathon escrow."""
        path = self.WINNER_MILESTONES_PATH.format(organization_id=organization_id, hackathon_id=hackathon_id)
        payload = {
            "escrowAddress": escrow_address,
            "winners": [
                {
                    "participantId": participant_id,
                    "rank": rank,
                    "walletAddress": milestone.receiver,
                    "amount": milestone.amount,
                    "currency": currency,
                    "description": milestone.description,
                }
            ],
        }
        data = await self._request("POST", path, json=payload)
        return self._envelope(data)

    async def announce_winners(
        self,
        organization_id: str,
        hackathon_id: str,
        winners: list[dict[str, Any]],
        announcement: str,
    ) -> BackendResponse:
        path = self.ANNOUNCE_PATH.format(organization_id=organization_id, hackathon_id=hackathon_id)
        data = await self._request("POST", path, json={"winners": winners, "announcement": announcement})
        return self._envelope(data)

    @staticmethod
    def _envelope(data: dict[str, Any]) -> BackendResponse:
        payload = data.get("data")
        return BackendResponse(
            success=bool(data.get("success", False)),
            message=data.get("message"),
            data=payload if isinstance(payload, dict) else None,
        )
