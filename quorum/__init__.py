"""
Approvr -- quorum tallying over an append-only consensus log.
"""

from quorum.service import (
    ApprovalCoordinator,
    CreateProposalResult,
    Status,
    SubmitApprovalResult,
    TallyApprovalsResult,
)

__all__ = [
    "ApprovalCoordinator",
    "CreateProposalResult",
    "Status",
    "SubmitApprovalResult",
    "TallyApprovalsResult",
]
