"""Collaborator contracts and the shared HTTP client base.

The state machines depend only on the Protocols below. The concrete clients
talk HTTP through httpx, retry transient failures with tenacity, and turn
every transport problem into the error taxonomy in ``funding_workflow.errors``
before it leaves this package.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional, Protocol

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..errors import (
    CollaboratorRejectedError,
    CollaboratorUnavailableError,
    MalformedResponseError,
)
from ..models.escrow import EscrowDeployment, EscrowInitResponse, MilestoneRequest, TransactionSubmissionResponse
from ..models.publication import BackendResponse

logger = logging.getLogger(__name__)

# Standard timeout for all collaborators: 30s connect, 60s read
ADAPTER_TIMEOUT = httpx.Timeout(connect=30.0, read=60.0, write=30.0, pool=30.0)

MAX_ATTEMPTS = 3


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------


class EscrowService(Protocol):
    async def initialize_escrow(self, deployment: EscrowDeployment) -> EscrowInitResponse: ...

    async def send_transaction(self, signed_transaction: str) -> TransactionSubmissionResponse: ...


class WalletSigner(Protocol):
    async def sign_transaction(self, unsigned_transaction: str, signer_address: str) -> str:
        """Return the signed transaction or raise a SignerError subclass."""
        ...


class FundingBackend(Protocol):
    async def create_funding_record(self, record: dict[str, Any]) -> BackendResponse: ...

    async def submit_winner_milestone(
        self,
        organization_id: str,
        hackathon_id: str,
        escrow_address: str,
        participant_id: str,
        rank: int,
        milestone: MilestoneRequest,
        currency: str,
    ) -> BackendResponse: ...

    async def announce_winners(
        self,
        organization_id: str,
        hackathon_id: str,
        winners: list[dict[str, Any]],
        announcement: str,
    ) -> BackendResponse: ...


# ---------------------------------------------------------------------------
# HTTP base
# ---------------------------------------------------------------------------


class RetryableStatusError(Exception):
    """Raised on 429 / 5xx so tenacity retries."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"HTTP {status_code}: {body[:200]}")
        self.status_code = status_code


class BaseCollaboratorClient:
    """JSON-over-HTTP client with retry, structured logging and error classification."""

    collaborator_name = "collaborator"
    max_attempts = MAX_ATTEMPTS

    def __init__(
        self,
        base_url: str,
        headers: Optional[dict[str, str]] = None,
        timeout: httpx.Timeout = ADAPTER_TIMEOUT,
        retry_wait: Optional[wait_base] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self.timeout = timeout
        self.retry_wait = retry_wait or wait_exponential(multiplier=1, min=1, max=10)

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[dict[str, Any]] = None,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON object.

        Raises:
            CollaboratorUnavailableError: transport error or 429/5xx after all retries.
            CollaboratorRejectedError: 4xx answer.
            MalformedResponseError: 2xx answer that is not a JSON object.
        """
        url = f"{self.base_url}{path}"
        start = time.monotonic()
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=self.retry_wait,
                retry=retry_if_exception_type((httpx.TransportError, RetryableStatusError)),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    response = await self._send(method, url, json=json, params=params)
        except (httpx.RequestError, RetryableStatusError, RetryError) as exc:
            self._log_complete(method, url, start, "failure", error=exc)
            raise CollaboratorUnavailableError(
                f"{self.collaborator_name} unavailable: {exc}",
                collaborator=self.collaborator_name,
            ) from exc

        if response.status_code >= 400:
            error = self._rejection_error(response)
            self._log_complete(method, url, start, "failure", status=response.status_code, error=error)
            raise error

        try:
            data = response.json()
        except ValueError as exc:
            self._log_complete(method, url, start, "failure", status=response.status_code, error="invalid json")
            raise MalformedResponseError(
                f"{self.collaborator_name} returned a non-JSON body",
                collaborator=self.collaborator_name,
            ) from exc
        if not isinstance(data, dict):
            self._log_complete(method, url, start, "failure", status=response.status_code, error="not an object")
            raise MalformedResponseError(
                f"{self.collaborator_name} returned {type(data).__name__}, expected an object",
                collaborator=self.collaborator_name,
            )

        self._log_complete(method, url, start, "success", status=response.status_code)
        return data

    async def _send(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]],
        params: Optional[dict[str, Any]],
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(method, url, json=json, params=params, headers=self.headers)
        if response.status_code == 429 or response.status_code >= 500:
            raise RetryableStatusError(response.status_code, response.text)
        return response

    def _rejection_error(self, response: httpx.Response) -> Exception:
        """Exception for a 4xx answer. Subclasses map collaborator error codes here."""
        return CollaboratorRejectedError(self._error_message(response), collaborator=self.collaborator_name)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return f"Request failed with status {response.status_code}"
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return f"Request failed with status {response.status_code}"

    def _log_complete(
        self,
        method: str,
        url: str,
        start: float,
        result: str,
        status: Optional[int] = None,
        error: Any = None,
    ) -> None:
        duration_ms = (time.monotonic() - start) * 1000
        if result == "success":
            logger.info(
                "request_complete collaborator=%s method=%s url=%s status=%s result=success duration_ms=%.0f",
                self.collaborator_name,
                method,
                url,
                status,
                duration_ms,
            )
        else:
            logger.error(
                "request_complete collaborator=%s method=%s url=%s status=%s result=failure error=%s duration_ms=%.0f",
                self.collaborator_name,
                method,
                url,
                status,
                error,
                duration_ms,
            )
