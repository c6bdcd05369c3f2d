"""
Tally Engine

Computes quorum status from a log's full message history. Approvals are
deduplicated by account ID at read time, so concurrent or repeated
submissions by the same approver count once regardless of arrival order.

The engine is a pure function over already-read messages; reading the log
is the caller's job (see quorum.service).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Sequence

from quorum.codec import ApprovalRecord, ProposalRecord, decode
from quorum.report import render_report

logger = logging.getLogger("approvr.tally")


@dataclass(frozen=True)
class TallyResult:
    approval_count: int
    is_approved: bool
    approved: frozenset[str]
    description: Optional[str] = None
    report: str = ""


def count_approvals(
    messages: Iterable[str],
    approvers: Sequence[str],
    threshold: int,
) -> TallyResult:
    """Decode messages and count distinct approvals from listed approvers.

    The first ProposalRecord in log order supplies the description; later
    Proposal-shaped messages are ignored.
    """
    allowed = set(approvers)
    approved: set[str] = set()
    proposal: Optional[ProposalRecord] = None

    for content in messages:
        record = decode(content)
        if isinstance(record, ApprovalRecord):
            if record.account_id in allowed:
                approved.add(record.account_id)
            else:
                logger.warning(
                    "Approval from non-listed account %s ignored", record.account_id
                )
        elif isinstance(record, ProposalRecord) and proposal is None:
            proposal = record
            _check_recorded_parameters(proposal, approvers, threshold)

    approval_count = len(approved)
    return TallyResult(
        approval_count=approval_count,
        is_approved=approval_count >= threshold,
        approved=frozenset(approved),
        description=proposal.description if proposal is not None else None,
    )


def tally(
    messages: Iterable[str],
    approvers: Sequence[str],
    threshold: int,
    log_id: str,
) -> TallyResult:
    """Count approvals and attach the rendered status report."""
    result = count_approvals(messages, approvers, threshold)
    logger.info(
        "Tally result for %s: %d/%d approvals. Approved: %s",
        log_id, result.approval_count, threshold, result.is_approved,
    )
    return replace(
        result,
        report=render_report(result, approvers, threshold, log_id),
    )


def _check_recorded_parameters(
    record: ProposalRecord,
    approvers: Sequence[str],
    threshold: int,
) -> None:
    # The log copy is for human audit; a mismatch is worth flagging but the
    # caller's parameters stay authoritative.
    if record.recorded_approvers is not None and set(record.recorded_approvers) != set(approvers):
        logger.warning(
            "Approvers recorded in the log %s differ from the tally request %s",
            list(record.recorded_approvers), list(approvers),
        )
    if record.recorded_threshold is not None and record.recorded_threshold != threshold:
        logger.warning(
            "Threshold recorded in the log (%d) differs from the tally request (%d)",
            record.recorded_threshold, threshold,
        )
