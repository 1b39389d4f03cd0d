"""Pytest configuration and fixtures.

The fakes below stand in for the three collaborators and the latch store.
Each one records its calls so tests can assert on ordering and payloads,
and exposes attributes for scripting failures.
"""

from datetime import date, datetime
from typing import Any, Optional

import pytest

from funding_workflow.models import (
    BackendResponse,
    BasicInfo,
    ContactInfo,
    DetailsInfo,
    EscrowInitResponse,
    EscrowSnapshot,
    FundingDraft,
    FundingPlan,
    Milestone,
    PrizeTier,
    TeamInfo,
    TeamMember,
    TransactionSubmissionResponse,
    WinnerSubmission,
)

NOW = datetime(2026, 1, 15, 12, 0, 0)

CREATOR_ADDRESS = "G" + "A" * 55
CONTRACT_ID = "CDEPLOYEDCONTRACT7XQ2"
ESCROW_CONTRACT_ID = "CPRIZEESCROW4KD9"


def stellar_address(char: str) -> str:
    return "G" + char * 55


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeEscrowService:
    def __init__(self, calls: list):
        self.calls = calls
        self.init_response = EscrowInitResponse(status="SUCCESS", unsigned_transaction="AAAA-unsigned-xdr")
        self.send_response = TransactionSubmissionResponse(status="SUCCESS", contract_id=CONTRACT_ID)
        self.init_error: Optional[Exception] = None
        self.send_error: Optional[Exception] = None
        self.deployments = []
        self.init_gate = None

    async def initialize_escrow(self, deployment):
        self.calls.append("initialize_escrow")
        self.deployments.append(deployment)
        if self.init_gate is not None:
            await self.init_gate.wait()
        if self.init_error is not None:
            raise self.init_error
        return self.init_response

    async def send_transaction(self, signed_transaction):
        self.calls.append("send_transaction")
        if self.send_error is not None:
            raise self.send_error
        return self.send_response


class FakeWallet:
    def __init__(self, calls: list):
        self.calls = calls
        self.errors: list[Exception] = []
        self.signed: list[tuple[str, str]] = []

    async def sign_transaction(self, unsigned_transaction, signer_address):
        self.calls.append("sign_transaction")
        if self.errors:
            raise self.errors.pop(0)
        self.signed.append((unsigned_transaction, signer_address))
        return f"signed:{unsigned_transaction}"


class FakeBackend:
    def __init__(self, calls: list):
        self.calls = calls
        self.records: list[dict[str, Any]] = []
        self.create_response = BackendResponse(success=True, message="Project created")
        self.create_error: Optional[Exception] = None
        self.milestones: list[dict[str, Any]] = []
        self.milestone_failures: dict[str, Any] = {}
        self.announcements: list[dict[str, Any]] = []
        self.announce_response = BackendResponse(success=True)
        self.announce_gate = None

    async def create_funding_record(self, record):
        self.calls.append("create_funding_record")
        if self.create_error is not None:
            raise self.create_error
        self.records.append(record)
        return self.create_response

    async def submit_winner_milestone(
        self, organization_id, hackathon_id, escrow_address, participant_id, rank, milestone, currency
    ):
        self.calls.append("submit_winner_milestone")
        failure = self.milestone_failures.get(participant_id)
        if isinstance(failure, Exception):
            raise failure
        if isinstance(failure, BackendResponse):
            return failure
        self.milestones.append(
            {
                "organization_id": organization_id,
                "hackathon_id": hackathon_id,
                "escrow_address": escrow_address,
                "participant_id": participant_id,
                "rank": rank,
                "milestone": milestone,
                "currency": currency,
            }
        )
        return BackendResponse(success=True)

    async def announce_winners(self, organization_id, hackathon_id, winners, announcement):
        self.calls.append("announce_winners")
        if self.announce_gate is not None:
            await self.announce_gate.wait()
        self.announcements.append({"winners": winners, "announcement": announcement})
        return self.announce_response


class InMemoryLatchStore:
    def __init__(self):
        self.rows: dict[str, dict[str, Any]] = {}
        self.write_error: Optional[Exception] = None
        self.announce_error: Optional[Exception] = None

    def is_milestones_created(self, escrow_address):
        return bool(self.rows.get(escrow_address, {}).get("milestones_created"))

    def mark_milestones_created(self, escrow_address, hackathon_id, succeeded_winner_ids, failed_winner_ids):
        if self.write_error is not None:
            raise self.write_error
        row = self.rows.setdefault(escrow_address, {})
        row.update(
            {
                "hackathon_id": hackathon_id,
                "milestones_created": True,
                "succeeded_winner_ids": list(succeeded_winner_ids),
                "failed_winner_ids": list(failed_winner_ids),
            }
        )
        return row

    def mark_announced(self, escrow_address, hackathon_id):
        if self.announce_error is not None:
            raise self.announce_error
        row = self.rows.setdefault(escrow_address, {})
        row["announced"] = True
        return row


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def calls() -> list:
    """Shared, ordered log of collaborator calls."""
    return []


@pytest.fixture
def escrow_service(calls):
    return FakeEscrowService(calls)


@pytest.fixture
def wallet(calls):
    return FakeWallet(calls)


@pytest.fixture
def backend(calls):
    return FakeBackend(calls)


@pytest.fixture
def latch_store():
    return InMemoryLatchStore()


@pytest.fixture
def creator_address() -> str:
    return CREATOR_ADDRESS


@pytest.fixture
def milestones() -> list[Milestone]:
    return [
        Milestone(
            title="Design",
            description="Site surveys and panel layout",
            start_date=date(2026, 2, 1),
            end_date=date(2026, 3, 1),
        ),
        Milestone(
            title="Build",
            description="Install panels at three schools",
            start_date=date(2026, 3, 1),
            end_date=date(2026, 5, 1),
        ),
        Milestone(
            title="Launch",
            description="Grid connection and handover",
            start_date=date(2026, 5, 1),
            end_date=date(2026, 6, 1),
        ),
    ]


@pytest.fixture
def draft(milestones) -> FundingDraft:
    return FundingDraft(
        basic=BasicInfo(
            project_name="Solar Commons",
            vision="Community solar for rural schools",
            category="Energy",
            logo_url="https://cdn.example.com/solar.png",
            github_url="https://github.com/solar-commons",
            social_links=["https://twitter.com/solarcommons", "https://t.me/solarcommons", "https://example.org"],
        ),
        details=DetailsInfo(description="We install and maintain solar arrays for off-grid schools."),
        funding=FundingPlan(funding_amount=1000, milestones=milestones),
        team=TeamInfo(members=[TeamMember(email="ana.lopez@example.com"), TeamMember(email="kwame@example.org")]),
        contact=ContactInfo(telegram="solarcommons", backup_type="discord", backup_contact="solar#1234"),
    )


@pytest.fixture
def prize_tiers() -> list[PrizeTier]:
    return [
        PrizeTier(place="1st Place", prize_amount="500"),
        PrizeTier(place="Second", prize_amount=300),
        PrizeTier(place="3", prize_amount="100", currency="USDC"),
    ]


@pytest.fixture
def submissions() -> list[WinnerSubmission]:
    return [
        WinnerSubmission(id="sub-2", name="Team Beta", project_name="Ledger Lens", rank=2, participant_id="p-2"),
        WinnerSubmission(id="sub-1", name="Team Alpha", project_name="Soroswap UI", rank=1, participant_id="p-1"),
        WinnerSubmission(id="sub-3", name="Team Gamma", project_name="Anchor Kit", rank=3, participant_id="p-3"),
        WinnerSubmission(id="sub-4", name="Team Delta", project_name="Too Far Down", rank=4, participant_id="p-4"),
        WinnerSubmission(id="sub-5", name="Team Epsilon", project_name="Unranked"),
    ]


@pytest.fixture
def funded_escrow() -> EscrowSnapshot:
    return EscrowSnapshot(contract_id=ESCROW_CONTRACT_ID, balance=900.0, is_funded=True, can_update=True)


@pytest.fixture
def winner_addresses() -> dict[str, str]:
    return {"sub-1": stellar_address("B"), "sub-2": stellar_address("C"), "sub-3": stellar_address("D")}
