"""
Approval Coordinator Test Suite
End-to-end create/approve/tally against the in-memory log, plus error
conversion at the operation boundary.
"""

from __future__ import annotations

import pytest

from quorum import service
from quorum.ledger import InMemoryConsensusLog
from quorum.normalizer import IdShape
from quorum.service import (
    ApprovalCoordinator,
    CreateProposalResult,
    Status,
    TallyApprovalsResult,
)


class FlakyLog(InMemoryConsensusLog):
    """In-memory log whose operations can be made to fail."""

    def __init__(self, fail_on: set[str] | None = None, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on or set()

    def create_log(self, memo):
        if "create" in self.fail_on:
            raise ConnectionError("network unreachable")
        return super().create_log(memo)

    def append_message(self, log_id, content):
        if "append" in self.fail_on:
            raise TimeoutError("submit timed out")
        return super().append_message(log_id, content)

    def read_messages(self, log_id):
        if "read" in self.fail_on:
            raise ConnectionError("mirror node down")
        return super().read_messages(log_id)


class CannedLog:
    """Log service that answers every call with fixed raw responses."""

    def __init__(self, create=None, read=None):
        self._create = create
        self._read = read
        self.appended: list[tuple[str, str]] = []

    def create_log(self, memo):
        return self._create

    def append_message(self, log_id, content):
        self.appended.append((log_id, content))
        return {"status": "SUCCESS"}

    def read_messages(self, log_id):
        return self._read


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

def test_create_records_proposal_first(coordinator, memory_log, approvers):
    result = coordinator.create_proposal("Buy gear", approvers, 2)

    assert result.status == Status.SUCCESS
    assert result.log_id == "0.0.1001"
    assert result.message == "Proposal created. Share this Log ID: 0.0.1001"
    assert memory_log.memo("0.0.1001") == "Approvr Proposal: Buy gear"
    [entry] = memory_log.entries("0.0.1001")
    assert entry.message == (
        "Proposal: Buy gear\n"
        "Approvers: 0.0.1001, 0.0.1002, 0.0.1003\n"
        "Threshold: 2"
    )


def test_long_description_is_truncated_only_in_memo(coordinator, memory_log, approvers):
    description = "Migrate the treasury multisig to the new custody provider before Q4"
    log_id = coordinator.create_proposal(description, approvers, 2).log_id
    assert memory_log.memo(log_id).endswith("...")
    assert memory_log.entries(log_id)[0].message.startswith(f"Proposal: {description}\n")


def test_submit_approval_appends_record(coordinator, memory_log, approvers):
    log_id = coordinator.create_proposal("Buy gear", approvers, 2).log_id
    result = coordinator.submit_approval(log_id, "0.0.1002")

    assert result.status == Status.SUCCESS
    assert result.message == "Approval recorded for 0.0.1002."
    assert memory_log.entries(log_id)[-1].message == "APPROVE:0.0.1002"


def test_full_flow_reaches_quorum(coordinator, approvers):
    log_id = coordinator.create_proposal("Buy gear", approvers, 2).log_id

    coordinator.submit_approval(log_id, "0.0.1001")
    pending = coordinator.tally_approvals(log_id, approvers, 2)
    assert pending == TallyApprovalsResult(
        status=Status.SUCCESS,
        approval_count=1,
        is_approved=False,
        message="Current tally: 1/2 approvals. Need 1 more approval(s).",
    )

    coordinator.submit_approval(log_id, "0.0.1001")
    coordinator.submit_approval(log_id, "0.0.9999")
    coordinator.submit_approval(log_id, "0.0.1003")
    final = coordinator.tally_approvals(log_id, approvers, 2)

    assert final.status == Status.SUCCESS
    assert final.approval_count == 2
    assert final.is_approved is True
    assert "Proposal Details:\nBuy gear\n" in final.message
    assert "- 0.0.1002 (not approved)" in final.message
    assert "https://hashscan.io/testnet/topic/0.0.1001" in final.message


def test_tally_of_fresh_log(coordinator, approvers):
    log_id = coordinator.create_proposal("Buy gear", approvers, 1).log_id
    result = coordinator.tally_approvals(log_id, approvers, 1)
    assert result.approval_count == 0
    assert result.is_approved is False


@pytest.mark.parametrize("shape", list(IdShape))
@pytest.mark.parametrize("as_json", [False, True])
def test_flow_is_shape_independent(shape, as_json, approvers):
    log = InMemoryConsensusLog(id_shape=shape, as_json=as_json, wrap_messages=not as_json)
    coordinator = ApprovalCoordinator(log)
    log_id = coordinator.create_proposal("Buy gear", approvers, 1).log_id
    coordinator.submit_approval(log_id, "0.0.1003")
    result = coordinator.tally_approvals(log_id, approvers, 1)
    assert result.is_approved is True


def test_scenario_json_string_read_response(approvers):
    coordinator = ApprovalCoordinator(
        CannedLog(read='{"messages":[{"message":"APPROVE:0.0.1001"}]}')
    )
    result = coordinator.tally_approvals("0.0.1", approvers, 1)
    assert result.status == Status.SUCCESS
    assert result.approval_count == 1


# ---------------------------------------------------------------------------
# Error conversion
# ---------------------------------------------------------------------------

def test_create_failure_returns_error(approvers):
    coordinator = ApprovalCoordinator(FlakyLog(fail_on={"create"}))
    result = coordinator.create_proposal("Buy gear", approvers, 2)
    assert result == CreateProposalResult(
        log_id=None,
        status=Status.ERROR,
        message="Failed to create proposal: create_log failed: network unreachable",
    )


def test_create_without_identifier_returns_error(approvers):
    log = CannedLog(create={"status": "SUCCESS"})
    result = ApprovalCoordinator(log).create_proposal("Buy gear", approvers, 2)
    assert result.status == Status.ERROR
    assert result.log_id is None
    assert "Failed to extract a log ID" in result.message
    assert log.appended == []


def test_create_with_unparsable_response_returns_error(approvers):
    result = ApprovalCoordinator(CannedLog(create="created ok")).create_proposal(
        "Buy gear", approvers, 2
    )
    assert result.status == Status.ERROR
    assert "could not be parsed as JSON" in result.message


def test_details_failure_is_an_error_by_default(approvers):
    log = FlakyLog(fail_on={"append"})
    result = ApprovalCoordinator(log, tolerate_details_failure=False).create_proposal(
        "Buy gear", approvers, 2
    )
    assert result.status == Status.ERROR
    assert result.log_id is None
    assert "submit timed out" in result.message


def test_details_failure_can_be_tolerated(approvers):
    log = FlakyLog(fail_on={"append"})
    result = ApprovalCoordinator(log, tolerate_details_failure=True).create_proposal(
        "Buy gear", approvers, 2
    )
    assert result.status == Status.SUCCESS
    assert result.log_id == "0.0.1001"
    assert "details could not be recorded" in result.message


def test_tolerance_defaults_to_module_setting(monkeypatch):
    monkeypatch.setattr(service, "TOLERATE_DETAILS_FAILURE", True)
    assert ApprovalCoordinator(InMemoryConsensusLog()).tolerate_details_failure is True


def test_submit_failure_returns_error():
    result = ApprovalCoordinator(FlakyLog(fail_on={"append"})).submit_approval("0.0.1", "0.0.2")
    assert result.status == Status.ERROR
    assert result.message == "Failed to submit approval: append_message failed: submit timed out"


def test_submit_to_unknown_log_returns_error(coordinator):
    result = coordinator.submit_approval("0.0.404", "0.0.1001")
    assert result.status == Status.ERROR


def test_read_failure_returns_safe_defaults(approvers):
    result = ApprovalCoordinator(FlakyLog(fail_on={"read"})).tally_approvals("0.0.1", approvers, 2)
    assert result == TallyApprovalsResult(
        status=Status.ERROR,
        approval_count=0,
        is_approved=False,
        message="Failed to tally approvals: read_messages failed: mirror node down",
    )


def test_unreadable_log_returns_error(approvers):
    coordinator = ApprovalCoordinator(CannedLog(read={"messages": None}))
    result = coordinator.tally_approvals("0.0.1", approvers, 2)
    assert result.status == Status.ERROR
    assert result.approval_count == 0
    assert result.is_approved is False


def test_status_serializes_as_plain_string(coordinator, approvers):
    body = coordinator.create_proposal("Buy gear", approvers, 2).model_dump(mode="json")
    assert body == {
        "log_id": "0.0.1001",
        "status": "success",
        "message": "Proposal created. Share this Log ID: 0.0.1001",
    }
