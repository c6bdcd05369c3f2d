"""
Report Builder

Renders the status text for a tally. Both branches are pure functions of
their inputs so the output can be asserted as an exact string.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from quorum.tally import TallyResult

# ---------------------------------------------------------------------------
# Configuration (from env vars with defaults)
# ---------------------------------------------------------------------------

EXPLORER_URL_TEMPLATE = os.environ.get(
    "APPROVR_EXPLORER_URL", "https://hashscan.io/testnet/topic/{log_id}"
)

DESCRIPTION_PLACEHOLDER = "Proposal details not found."


def explorer_url(log_id: str) -> str:
    """Externally verifiable reference for a log."""
    return EXPLORER_URL_TEMPLATE.format(log_id=log_id)


def render_pending(approval_count: int, threshold: int) -> str:
    needed = threshold - approval_count
    return (
        f"Current tally: {approval_count}/{threshold} approvals. "
        f"Need {needed} more approval(s)."
    )


def render_approved(
    result: "TallyResult",
    approvers: Sequence[str],
    threshold: int,
    log_id: str,
) -> str:
    description = result.description
    if description is None or not description.strip():
        description = DESCRIPTION_PLACEHOLDER

    lines = [
        "Proposal Approved!",
        "",
        f"The required number of approvals ({result.approval_count}/{threshold}) "
        f"has been reached for the proposal in log `{log_id}`.",
        "",
        "Proposal Details:",
        description,
        "",
        "Approvers:",
    ]
    for approver in sorted(set(approvers)):
        status = "(approved)" if approver in result.approved else "(not approved)"
        lines.append(f"- {approver} {status}")
    lines += [
        "",
        "Next Steps:",
        "The action described in the proposal can now be executed manually "
        "by the relevant party, as consensus has been recorded on the ledger.",
        f"View the immutable approval record: {explorer_url(log_id)}",
        "The log messages provide cryptographic proof of consensus.",
    ]
    return "\n".join(lines)


def render_report(
    result: "TallyResult",
    approvers: Sequence[str],
    threshold: int,
    log_id: str,
) -> str:
    if result.is_approved:
        return render_approved(result, approvers, threshold, log_id)
    return render_pending(result.approval_count, threshold)
