"""Supabase client for winner publication records.

Holds the "milestones created" latch per escrow so a reopened wizard (or a
reload) cannot create a second set of winner milestones.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from supabase import Client, create_client

from ..errors import CollaboratorUnavailableError

logger = logging.getLogger(__name__)

PUBLICATIONS_TABLE = "winner_publications"
COLLABORATOR = "supabase"


class PublicationLatchStore(Protocol):
    def is_milestones_created(self, escrow_address: str) -> bool: ...

    def mark_milestones_created(
        self,
        escrow_address: str,
        hackathon_id: str,
        succeeded_winner_ids: List[str],
        failed_winner_ids: List[str],
    ) -> Dict[str, Any]: ...

    def mark_announced(self, escrow_address: str, hackathon_id: str) -> Dict[str, Any]: ...


class SupabaseClient:
    """Client for the winner_publications table.

    Any failure talking to Supabase surfaces as CollaboratorUnavailableError.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase anon/service key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_milestones_created(self, escrow_address: str) -> bool:
        """Return True once milestones have been created for this escrow.

        Args:
            escrow_address: Contract id of the hackathon prize escrow.
        """
        query = (
            self._client.table(PUBLICATIONS_TABLE)
            .select("milestones_created")
            .eq("escrow_address", escrow_address)
        )
        response = self._execute(query, "read latch", escrow_address)
        return any(row.get("milestones_created") for row in response.data)

    def mark_milestones_created(
        self,
        escrow_address: str,
        hackathon_id: str,
        succeeded_winner_ids: List[str],
        failed_winner_ids: List[str],
    ) -> Dict[str, Any]:
        """Set the latch for an escrow. Never cleared by this client.

        Args:
            escrow_address: Contract id of the hackathon prize escrow.
            hackathon_id: Owning hackathon.
            succeeded_winner_ids: Winners whose milestone was created.
            failed_winner_ids: Winners whose milestone submission failed.

        Returns:
            The upserted row as a dict.
        """
        record = {
            "escrow_address": escrow_address,
            "hackathon_id": hackathon_id,
            "milestones_created": True,
            "milestones_created_at": datetime.now(timezone.utc).isoformat(),
            "succeeded_winner_ids": succeeded_winner_ids,
            "failed_winner_ids": failed_winner_ids,
        }
        query = self._client.table(PUBLICATIONS_TABLE).upsert(record, on_conflict="escrow_address")
        response = self._execute(query, "write latch", escrow_address)
        logger.info(
            "Latched milestones_created for %s: %d succeeded, %d failed",
            escrow_address,
            len(succeeded_winner_ids),
            len(failed_winner_ids),
        )
        return response.data[0] if response.data else {}

    def mark_announced(self, escrow_address: str, hackathon_id: str) -> Dict[str, Any]:
        """Record that the winners announcement was published."""
        query = (
            self._client.table(PUBLICATIONS_TABLE)
            .update({"announced_at": datetime.now(timezone.utc).isoformat(), "hackathon_id": hackathon_id})
            .eq("escrow_address", escrow_address)
        )
        response = self._execute(query, "mark announced", escrow_address)
        logger.info("Marked %s announced", escrow_address)
        return response.data[0] if response.data else {}

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _execute(query: Any, action: str, escrow_address: str) -> Any:
        try:
            return query.execute()
        except Exception as exc:
            logger.error("Supabase %s failed for %s: %s", action, escrow_address, exc)
            raise CollaboratorUnavailableError(
                f"Supabase {action} failed: {exc}",
                collaborator=COLLABORATOR,
            ) from exc
