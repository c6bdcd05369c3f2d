"""
Record Codec Test Suite
Encoding, decoding and classification of plain-text log records.
"""

from __future__ import annotations

import pytest

from quorum import codec
from quorum.codec import (
    ApprovalRecord,
    Proposal,
    ProposalRecord,
    Unclassified,
    check_threshold,
    decode,
    encode_approval,
    encode_proposal,
    memo_for,
)


def test_encode_proposal_layout():
    proposal = Proposal("Buy gear", ("0.0.1", "0.0.2"), 2)
    assert encode_proposal(proposal) == (
        "Proposal: Buy gear\n"
        "Approvers: 0.0.1, 0.0.2\n"
        "Threshold: 2"
    )


@pytest.mark.parametrize(
    "description",
    [
        "Buy gear",
        "Send 100 HBAR to 0.0.4242 for the Q3 marketing push, see thread",
        "Mentions Approvers: inline",
    ],
)
def test_proposal_description_round_trip(description):
    encoded = encode_proposal(Proposal(description, ("a", "b"), 1))
    record = decode(encoded)
    assert isinstance(record, ProposalRecord)
    assert record.description == description


@pytest.mark.parametrize(
    "description, expected",
    [
        ("  padded  ", "padded"),
        ("Line one\nLine two", "Line one"),
    ],
)
def test_proposal_description_is_first_line_trimmed(description, expected):
    record = decode(encode_proposal(Proposal(description, ("a", "b"), 1)))
    assert record.description == expected


def test_trailing_text_is_not_part_of_description():
    record = decode("Proposal:   Buy gear  \nauditor note\nApprovers: a\nThreshold: 1")
    assert record == ProposalRecord(
        description="Buy gear",
        recorded_approvers=("a",),
        recorded_threshold=1,
    )


def test_proposal_records_parameters_for_audit():
    record = decode("Proposal: Buy gear\nApprovers: a,b, c\nThreshold: 2")
    assert record == ProposalRecord(
        description="Buy gear",
        recorded_approvers=("a", "b", "c"),
        recorded_threshold=2,
    )


def test_proposal_with_unreadable_threshold():
    record = decode("Proposal: x\nThreshold: two")
    assert isinstance(record, ProposalRecord)
    assert record.recorded_threshold is None
    assert record.recorded_approvers is None


def test_proposal_description_only():
    assert decode("Proposal: bare") == ProposalRecord(description="bare")


def test_encode_approval():
    assert encode_approval("0.0.1001") == "APPROVE:0.0.1001"


@pytest.mark.parametrize(
    "content, account_id",
    [
        ("APPROVE:0.0.1001", "0.0.1001"),
        ("APPROVE: 0.0.1001 ", "0.0.1001"),
        ("APPROVE:0.0.1001\n", "0.0.1001"),
    ],
)
def test_decode_approval_trims_identifier(content, account_id):
    assert decode(content) == ApprovalRecord(account_id=account_id)


@pytest.mark.parametrize(
    "content",
    [
        "",
        "approve:0.0.1001",
        " APPROVE:0.0.1001",
        "hello world",
        "Threshold: 2",
        "proposal: lowercase",
    ],
)
def test_other_content_is_unclassified(content):
    assert decode(content) == Unclassified(content=content)


def test_memo_is_truncated_with_ellipsis():
    description = "x" * 80
    assert memo_for(description) == "Approvr Proposal: " + "x" * 50 + "..."


def test_short_memo_is_not_truncated():
    assert memo_for("Buy gear") == "Approvr Proposal: Buy gear"


def test_memo_limit_is_configurable(monkeypatch):
    monkeypatch.setattr(codec, "MEMO_DESCRIPTION_LIMIT", 3)
    assert memo_for("Buy gear") == "Approvr Proposal: Buy..."


def test_check_threshold_bounds():
    check_threshold(["a", "b"], 1)
    check_threshold(["a", "b"], 2)
    with pytest.raises(ValueError):
        check_threshold(["a", "b"], 0)
    with pytest.raises(ValueError):
        check_threshold(["a", "b"], 3)
    with pytest.raises(ValueError):
        check_threshold([], 1)
