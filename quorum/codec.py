"""
Record Codec

Encodes proposals and approvals as plain-text log messages and decodes log
messages back into typed records. Payloads are prefixed lines so an auditor
can read the raw log without any tooling.

    Proposal: Buy gear
    Approvers: 0.0.1001, 0.0.1002, 0.0.1003
    Threshold: 2

    APPROVE:0.0.1001

Decoding never raises: content that matches neither prefix is Unclassified.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Sequence, Union

# ---------------------------------------------------------------------------
# Configuration (from env vars with defaults)
# ---------------------------------------------------------------------------

MEMO_PREFIX = os.environ.get("APPROVR_MEMO_PREFIX", "Approvr Proposal: ")
MEMO_DESCRIPTION_LIMIT = int(os.environ.get("APPROVR_MEMO_DESCRIPTION_LIMIT", "50"))

PROPOSAL_PREFIX = "Proposal:"
APPROVERS_PREFIX = "Approvers:"
THRESHOLD_PREFIX = "Threshold:"
APPROVAL_PREFIX = "APPROVE:"


# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Proposal:
    """A proposal as supplied by the caller.

    Precondition (caller's responsibility): 1 <= threshold <= len(approvers).
    """
    description: str
    approvers: tuple[str, ...]
    threshold: int


@dataclass(frozen=True)
class ProposalRecord:
    description: str
    # Parsed for audit display only; never used for tallying.
    recorded_approvers: Optional[tuple[str, ...]] = None
    recorded_threshold: Optional[int] = None


@dataclass(frozen=True)
class ApprovalRecord:
    account_id: str


@dataclass(frozen=True)
class Unclassified:
    content: str


Record = Union[ProposalRecord, ApprovalRecord, Unclassified]


def check_threshold(approvers: Sequence[str], threshold: int) -> None:
    """Validate the proposal precondition. Raises ValueError if violated."""
    if not approvers:
        raise ValueError("At least one approver is required")
    if threshold < 1 or threshold > len(approvers):
        raise ValueError(
            f"Threshold must be between 1 and {len(approvers)}, got {threshold}"
        )


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------

def encode_proposal(proposal: Proposal) -> str:
    return (
        f"{PROPOSAL_PREFIX} {proposal.description}\n"
        f"{APPROVERS_PREFIX} {', '.join(proposal.approvers)}\n"
        f"{THRESHOLD_PREFIX} {proposal.threshold}"
    )


def encode_approval(account_id: str) -> str:
    return f"{APPROVAL_PREFIX}{account_id}"


def memo_for(description: str) -> str:
    """Human-readable label for the log itself, truncated for storage."""
    if len(description) > MEMO_DESCRIPTION_LIMIT:
        return f"{MEMO_PREFIX}{description[:MEMO_DESCRIPTION_LIMIT]}..."
    return f"{MEMO_PREFIX}{description}"


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------

def decode(content: str) -> Record:
    if content.startswith(APPROVAL_PREFIX):
        return ApprovalRecord(account_id=content[len(APPROVAL_PREFIX):].strip())
    if content.startswith(PROPOSAL_PREFIX):
        return _decode_proposal(content)
    return Unclassified(content=content)


def _decode_proposal(content: str) -> ProposalRecord:
    lines = content[len(PROPOSAL_PREFIX):].split("\n")

    # Only the first line is the description; later lines never reach a report.
    description = lines[0].strip()

    recorded_approvers = None
    recorded_threshold = None
    for line in lines[1:]:
        if line.startswith(APPROVERS_PREFIX):
            raw = line[len(APPROVERS_PREFIX):]
            recorded_approvers = tuple(a.strip() for a in raw.split(",") if a.strip())
        elif line.startswith(THRESHOLD_PREFIX):
            try:
                recorded_threshold = int(line[len(THRESHOLD_PREFIX):].strip())
            except ValueError:
                recorded_threshold = None

    return ProposalRecord(
        description=description,
        recorded_approvers=recorded_approvers,
        recorded_threshold=recorded_threshold,
    )
