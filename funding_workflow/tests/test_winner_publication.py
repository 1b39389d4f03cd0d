"""Tests for workflows.winner_publication (wallets -> announcement -> preview -> publish)."""

import asyncio

import pytest

from funding_workflow.errors import (
    CollaboratorRejectedError,
    CollaboratorUnavailableError,
    EscrowNotFundedError,
    EscrowNotUpdatableError,
    InvalidTransitionError,
    MissingPrizeTierError,
    WorkflowError,
)
from funding_workflow.models import BackendResponse, EscrowSnapshot, PrizeTier, PublicationStep
from funding_workflow.workflows import WinnerPublicationMachine, eligible_winners

ORG_ID = "org-stellar"
HACKATHON_ID = "hack-2026"


@pytest.fixture
def make_machine(submissions, prize_tiers, funded_escrow, backend, latch_store):
    def _make(escrow=funded_escrow, tiers=None, subs=None):
        return WinnerPublicationMachine(
            subs if subs is not None else submissions,
            tiers if tiers is not None else prize_tiers,
            escrow,
            backend=backend,
            latch_store=latch_store,
            organization_id=ORG_ID,
            hackathon_id=HACKATHON_ID,
        )

    return _make


@pytest.fixture
def machine(make_machine):
    return make_machine()


def _fill_wallets(machine, addresses):
    for winner_id, address in addresses.items():
        machine.set_wallet_address(winner_id, address)


async def _publish_ready(machine, addresses, announcement="Congrats to all winners!"):
    _fill_wallets(machine, addresses)
    assert machine.complete_wallets().is_valid
    machine.set_announcement(announcement)
    machine.next()
    assert machine.step == PublicationStep.PREVIEW
    return machine


# ---------------------------------------------------------------------------
# Eligibility and opening step
# ---------------------------------------------------------------------------


def test_eligible_winners_are_ranked_within_tier_count(submissions):
    winners = eligible_winners(submissions, 3)
    assert [w.id for w in winners] == ["sub-1", "sub-2", "sub-3"]


def test_opens_on_wallets_when_milestones_are_needed(machine):
    assert machine.needs_milestones is True
    assert machine.step == PublicationStep.WALLETS
    assert set(machine.state.wallet_addresses) == {"sub-1", "sub-2", "sub-3"}


def test_opens_on_announcement_when_already_latched(make_machine, latch_store, funded_escrow):
    latch_store.mark_milestones_created(funded_escrow.contract_id, HACKATHON_ID, ["sub-1"], [])
    machine = make_machine()
    assert machine.state.milestones_created is True
    assert machine.step == PublicationStep.ANNOUNCEMENT


def test_opens_on_announcement_without_escrow(make_machine):
    assert make_machine(escrow=None).step == PublicationStep.ANNOUNCEMENT


def test_opens_on_announcement_when_escrow_cannot_be_updated(make_machine):
    escrow = EscrowSnapshot(contract_id="CLOCKED", balance=900, is_funded=True, has_approved_milestones=True)
    assert make_machine(escrow=escrow).step == PublicationStep.ANNOUNCEMENT


def test_known_wallets_are_prefilled(make_machine, submissions, winner_addresses):
    submissions[0].wallet_address = f" {winner_addresses['sub-2']} "
    machine = make_machine(subs=submissions)
    assert machine.state.wallet_addresses["sub-2"] == winner_addresses["sub-2"]


# ---------------------------------------------------------------------------
# Wallets step
# ---------------------------------------------------------------------------


def test_set_wallet_address_trims_and_flags_invalid(machine, winner_addresses):
    machine.set_wallet_address("sub-1", "GNOTREAL")
    assert machine.state.wallet_errors == {"sub-1": "Invalid Stellar address format"}

    machine.set_wallet_address("sub-1", f"  {winner_addresses['sub-1']}  ")
    assert machine.state.wallet_addresses["sub-1"] == winner_addresses["sub-1"]
    assert machine.state.wallet_errors == {}


def test_set_wallet_address_for_unknown_winner(machine):
    with pytest.raises(ValueError):
        machine.set_wallet_address("sub-5", "G" + "A" * 55)


def test_unfunded_escrow_blocks_wallets_regardless_of_addresses(make_machine, winner_addresses):
    escrow = EscrowSnapshot(contract_id="CEMPTY", balance=0, is_funded=False, can_update=True)
    machine = make_machine(escrow=escrow)
    assert machine.step == PublicationStep.WALLETS
    _fill_wallets(machine, winner_addresses)

    with pytest.raises(EscrowNotFundedError):
        machine.complete_wallets()

    assert machine.step == PublicationStep.WALLETS
    assert machine.errors == ["Escrow is not funded. Please fund the escrow first."]


def test_escrow_with_approved_milestones_blocks_wallets(make_machine, winner_addresses):
    escrow = EscrowSnapshot(
        contract_id="CSTALE", balance=900, is_funded=True, can_update=True, has_approved_milestones=True
    )
    machine = make_machine(escrow=escrow)
    _fill_wallets(machine, winner_addresses)

    with pytest.raises(EscrowNotUpdatableError):
        machine.complete_wallets()

    assert machine.step == PublicationStep.WALLETS
    assert machine.errors == [
        "Cannot update escrow: Some milestones are already approved. "
        "Escrow cannot be updated after milestones are approved."
    ]


@pytest.mark.asyncio
async def test_disputed_escrow_is_explained_in_preview(make_machine, backend, calls):
    escrow = EscrowSnapshot(contract_id="CDISPUTE", balance=900, is_funded=True, is_disputed=True)
    machine = make_machine(escrow=escrow)
    assert machine.step == PublicationStep.ANNOUNCEMENT
    machine.next()

    preview = machine.preview()
    assert preview.prize_pool == 900.0
    assert preview.escrow_notices == ["Cannot update escrow: Escrow is in dispute. Please resolve the dispute first."]

    result = await machine.publish()
    assert result.milestones_skipped is True
    assert calls == ["announce_winners"]


def test_missing_tier_blocks_the_whole_batch(make_machine, winner_addresses):
    tiers = [PrizeTier(place="1st", prize_amount=500), PrizeTier(place="Runner up", prize_amount=300), PrizeTier(place="3rd", prize_amount=100)]
    machine = make_machine(tiers=tiers)
    _fill_wallets(machine, winner_addresses)

    with pytest.raises(MissingPrizeTierError) as exc_info:
        machine.complete_wallets()

    assert exc_info.value.missing_ranks == [2]
    assert machine.step == PublicationStep.WALLETS


def test_missing_and_invalid_addresses_are_reported_per_winner(machine, winner_addresses):
    machine.set_wallet_address("sub-1", winner_addresses["sub-1"])
    machine.set_wallet_address("sub-2", "GBAD")

    result = machine.complete_wallets()

    assert not result.is_valid
    assert machine.step == PublicationStep.WALLETS
    assert machine.state.wallet_errors == {
        "sub-2": "Invalid Stellar address format",
        "sub-3": "Wallet address is required",
    }
    assert [issue.path[:2] for issue in result.issues[:2]] == [["winners", "sub-2"], ["winners", "sub-3"]]


def test_duplicate_wallets_block_the_step(machine, winner_addresses):
    _fill_wallets(machine, {**winner_addresses, "sub-3": winner_addresses["sub-1"]})
    result = machine.complete_wallets()
    assert not result.is_valid
    assert machine.step == PublicationStep.WALLETS


# ---------------------------------------------------------------------------
# Navigation and preview
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_navigation_and_preview(machine, winner_addresses):
    await _publish_ready(machine, winner_addresses, announcement="Well played")

    preview = machine.preview()
    assert preview.announcement == "Well played"
    assert [(w.name, w.rank, w.amount, w.currency) for w in preview.winners] == [
        ("Team Alpha", 1, 500.0, "USDC"),
        ("Team Beta", 2, 300.0, "USDC"),
        ("Team Gamma", 3, 100.0, "USDC"),
    ]
    assert preview.winners[0].wallet_address == winner_addresses["sub-1"]

    machine.go_to_announcement()
    assert machine.step == PublicationStep.ANNOUNCEMENT
    machine.back()
    assert machine.step == PublicationStep.WALLETS


def test_back_from_announcement_when_wallets_skipped(make_machine):
    machine = make_machine(escrow=None)
    with pytest.raises(InvalidTransitionError):
        machine.back()


def test_next_from_preview_is_invalid(make_machine):
    machine = make_machine(escrow=None)
    machine.next()
    with pytest.raises(InvalidTransitionError):
        machine.next()


# ---------------------------------------------------------------------------
# Publish
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_publish_creates_one_milestone_per_winner(machine, backend, latch_store, winner_addresses, calls):
    await _publish_ready(machine, winner_addresses)

    result = await machine.publish()

    assert result.succeeded_ids == ["sub-1", "sub-2", "sub-3"]
    assert result.failed_ids == []
    assert result.announced is True
    assert calls == ["submit_winner_milestone"] * 3 + ["announce_winners"]

    first = backend.milestones[0]
    assert first["escrow_address"] == "CPRIZEESCROW4KD9"
    assert first["participant_id"] == "p-1"
    assert first["milestone"].description == "1st Place Prize"
    assert first["milestone"].amount == 500.0
    assert first["milestone"].receiver == winner_addresses["sub-1"]
    assert backend.milestones[1]["milestone"].description == "Second Prize"

    row = latch_store.rows["CPRIZEESCROW4KD9"]
    assert row["milestones_created"] is True
    assert row["announced"] is True
    assert backend.announcements == [
        {
            "winners": [
                {"submissionId": "sub-1", "rank": 1},
                {"submissionId": "sub-2", "rank": 2},
                {"submissionId": "sub-3", "rank": 3},
            ],
            "announcement": "Congrats to all winners!",
        }
    ]
    assert machine.state.published is True


@pytest.mark.asyncio
async def test_invalid_address_only_fails_that_winner(machine, backend, winner_addresses):
    await _publish_ready(machine, winner_addresses)
    # An address that went bad after the wallets step was completed.
    machine.state.wallet_addresses["sub-2"] = "GNOTVALID"

    result = await machine.publish()

    assert result.succeeded_ids == ["sub-1", "sub-3"]
    assert result.failed_ids == ["sub-2"]
    assert [m["participant_id"] for m in backend.milestones] == ["p-1", "p-3"]
    error = machine.winner_errors["sub-2"]
    assert error.winner_id == "sub-2"
    assert error.reason == "Invalid Stellar address format"
    assert error.cause is None


@pytest.mark.asyncio
async def test_collaborator_failure_is_attached_to_that_winner(machine, backend, latch_store, winner_addresses):
    backend.milestone_failures["p-1"] = CollaboratorUnavailableError("503", collaborator="backend_api")
    backend.milestone_failures["p-3"] = BackendResponse(success=False, message="Receiver has no trustline")
    await _publish_ready(machine, winner_addresses)

    result = await machine.publish()

    assert result.succeeded_ids == ["sub-2"]
    assert result.failed_ids == ["sub-1", "sub-3"]
    assert isinstance(machine.winner_errors["sub-1"].cause, CollaboratorUnavailableError)
    assert machine.winner_errors["sub-3"].reason == "Receiver has no trustline"
    assert result.announced is True

    row = latch_store.rows["CPRIZEESCROW4KD9"]
    assert row["milestones_created"] is True
    assert row["succeeded_winner_ids"] == ["sub-2"]
    assert row["failed_winner_ids"] == ["sub-1", "sub-3"]


@pytest.mark.asyncio
async def test_unexpected_error_only_fails_that_winner(machine, backend, latch_store, winner_addresses):
    backend.milestone_failures["p-2"] = RuntimeError("response body could not be decoded")
    await _publish_ready(machine, winner_addresses)

    result = await machine.publish()

    assert result.succeeded_ids == ["sub-1", "sub-3"]
    assert result.failed_ids == ["sub-2"]
    assert isinstance(machine.winner_errors["sub-2"].cause, WorkflowError)
    assert result.announced is True
    assert latch_store.rows["CPRIZEESCROW4KD9"]["failed_winner_ids"] == ["sub-2"]


@pytest.mark.asyncio
async def test_latch_write_failure_keeps_outcomes_and_retry_only_persists(
    machine, backend, latch_store, winner_addresses, calls
):
    latch_store.write_error = CollaboratorUnavailableError("connection refused", collaborator="supabase")
    await _publish_ready(machine, winner_addresses)

    with pytest.raises(CollaboratorUnavailableError):
        await machine.publish()

    assert machine.result.succeeded_ids == ["sub-1", "sub-2", "sub-3"]
    assert machine.result.announced is False
    assert machine.state.milestones_created is True
    assert isinstance(machine.last_error, CollaboratorUnavailableError)
    assert machine.errors == ["Network error. Please check your connection and try again."]
    assert "announce_winners" not in calls

    latch_store.write_error = None
    result = await machine.publish()

    assert result.milestones_skipped is False
    assert result.succeeded_ids == ["sub-1", "sub-2", "sub-3"]
    assert result.announced is True
    assert latch_store.rows["CPRIZEESCROW4KD9"]["milestones_created"] is True
    assert calls.count("submit_winner_milestone") == 3


@pytest.mark.asyncio
async def test_unclassified_store_failure_is_recorded(machine, latch_store, winner_addresses):
    latch_store.write_error = ConnectionError("connection reset")
    await _publish_ready(machine, winner_addresses)

    with pytest.raises(WorkflowError):
        await machine.publish()

    assert isinstance(machine.last_error, WorkflowError)
    assert machine.errors == [machine.last_error.user_message]
    assert machine.result is not None
    assert len(machine.result.outcomes) == 3
    assert machine.is_publishing is False


@pytest.mark.asyncio
async def test_announcement_record_failure_does_not_fail_publish(machine, latch_store, winner_addresses):
    latch_store.announce_error = CollaboratorUnavailableError("timeout", collaborator="supabase")
    await _publish_ready(machine, winner_addresses)

    result = await machine.publish()

    assert result.announced is True
    assert machine.state.published is True
    assert latch_store.rows["CPRIZEESCROW4KD9"]["milestones_created"] is True


@pytest.mark.asyncio
async def test_latch_prevents_second_milestone_run(make_machine, backend, winner_addresses, calls):
    first = make_machine()
    await _publish_ready(first, winner_addresses)
    await first.publish()

    reopened = make_machine()
    assert reopened.step == PublicationStep.ANNOUNCEMENT
    reopened.set_announcement("Updated announcement")
    reopened.next()
    result = await reopened.publish()

    assert result.milestones_skipped is True
    assert calls.count("submit_winner_milestone") == 3
    assert calls.count("announce_winners") == 2


@pytest.mark.asyncio
async def test_announce_failure_keeps_latch_and_retry_only_announces(machine, backend, winner_addresses, calls):
    backend.announce_response = BackendResponse(success=False, message="Hackathon is archived")
    await _publish_ready(machine, winner_addresses)

    with pytest.raises(CollaboratorRejectedError):
        await machine.publish()

    assert machine.state.milestones_created is True
    assert machine.result.announced is False
    assert machine.errors == ["Hackathon is archived"]

    backend.announce_response = BackendResponse(success=True)
    result = await machine.publish()

    assert result.announced is True
    assert result.succeeded_ids == ["sub-1", "sub-2", "sub-3"]
    assert calls.count("submit_winner_milestone") == 3


@pytest.mark.asyncio
async def test_reentrant_publish_is_a_no_op(make_machine, backend):
    machine = make_machine(escrow=None)
    machine.next()
    backend.announce_gate = asyncio.Event()

    first = asyncio.create_task(machine.publish())
    await asyncio.sleep(0)
    assert machine.is_publishing is True

    assert await machine.publish() is None

    backend.announce_gate.set()
    result = await first
    assert result.announced is True
    assert len(backend.announcements) == 1


@pytest.mark.asyncio
async def test_publish_outside_preview_is_invalid(machine):
    with pytest.raises(InvalidTransitionError):
        await machine.publish()


@pytest.mark.asyncio
async def test_publish_rechecks_missing_tiers(make_machine, backend, calls):
    machine = make_machine(escrow=None)
    machine.prize_tiers = [PrizeTier(place="1st", prize_amount=500), PrizeTier(place="2nd", prize_amount=300), PrizeTier(place="Bonus", prize_amount=50)]
    machine.next()

    with pytest.raises(MissingPrizeTierError):
        await machine.publish()

    assert calls == []
    assert machine.is_publishing is False
