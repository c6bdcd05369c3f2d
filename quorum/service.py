"""
Approval Coordinator
Core-exposed operations: create a proposal, submit an approval, tally.

Each operation is a self-contained read/compute/(optional)write against the
external log. The coordinator holds no mutable state between calls, so it
is safe to share between concurrent callers. Every operation is total over
its result type: failures come back as status=error with a readable cause.
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from pydantic import BaseModel

from quorum.codec import Proposal, encode_approval, encode_proposal, memo_for
from quorum.errors import CollaboratorFailure, QuorumError
from quorum.ledger import ConsensusLogService
from quorum.normalizer import extract_log_id, extract_messages
from quorum.tally import tally

logger = logging.getLogger("approvr.service")

# ---------------------------------------------------------------------------
# Configuration (from env vars with defaults)
# ---------------------------------------------------------------------------

TOLERATE_DETAILS_FAILURE = os.environ.get(
    "APPROVR_TOLERATE_DETAILS_FAILURE", "false"
).lower() in ("1", "true", "yes")


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class Status(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class CreateProposalResult(BaseModel):
    """Result of create_proposal."""
    log_id: str | None = None
    status: Status
    message: str


class SubmitApprovalResult(BaseModel):
    """Result of submit_approval."""
    status: Status
    message: str


class TallyApprovalsResult(BaseModel):
    """Result of tally_approvals."""
    status: Status
    approval_count: int = 0
    is_approved: bool = False
    message: str


# ---------------------------------------------------------------------------
# Coordinator
# ---------------------------------------------------------------------------

class ApprovalCoordinator:
    """
    Drives proposals and approvals through a ConsensusLogService.

    The log service is treated as blocking: each call either completes or
    raises. The coordinator does not retry; retry policy belongs to the
    log service.
    """

    def __init__(
        self,
        log_service: ConsensusLogService,
        tolerate_details_failure: Optional[bool] = None,
    ):
        self.log_service = log_service
        if tolerate_details_failure is None:
            tolerate_details_failure = TOLERATE_DETAILS_FAILURE
        self.tolerate_details_failure = tolerate_details_failure

    def _call(self, operation: str, fn: Callable[..., Any], *args: Any) -> Any:
        """Invoke the log service, wrapping any failure as CollaboratorFailure."""
        try:
            return fn(*args)
        except Exception as exc:
            raise CollaboratorFailure(operation, exc) from exc

    # ----- create -----

    def create_proposal(
        self,
        description: str,
        approvers: Sequence[str],
        threshold: int,
    ) -> CreateProposalResult:
        """
        Create a log for a proposal and record its details as the first message.

        Flow:
          1. Create the log with a truncated memo.
          2. Normalize the response to a log ID.
          3. Append the full proposal record.
        """
        logger.info("Creating proposal log for: %s", description)

        try:
            proposal = Proposal(
                description=description,
                approvers=tuple(approvers),
                threshold=threshold,
            )
            response = self._call("create_log", self.log_service.create_log, memo_for(description))
            log_id = extract_log_id(response)
        except Exception as exc:
            if not isinstance(exc, QuorumError):
                logger.exception("Unexpected error in create_proposal")
            logger.error("Error in create_proposal: %s", exc)
            return CreateProposalResult(
                status=Status.ERROR,
                message=f"Failed to create proposal: {exc}",
            )

        logger.info("Proposal log created with ID: %s", log_id)

        try:
            self._call(
                "append_message",
                self.log_service.append_message,
                log_id,
                encode_proposal(proposal),
            )
        except Exception as exc:
            if not isinstance(exc, QuorumError):
                logger.exception("Unexpected error recording proposal details")
            # The log exists and is durable even though its details are missing.
            logger.error("Proposal details not recorded on log %s: %s", log_id, exc)
            if self.tolerate_details_failure:
                return CreateProposalResult(
                    log_id=log_id,
                    status=Status.SUCCESS,
                    message=(
                        f"Proposal created, but its details could not be recorded: {exc}. "
                        f"Share this Log ID: {log_id}"
                    ),
                )
            return CreateProposalResult(
                status=Status.ERROR,
                message=f"Failed to create proposal: {exc}",
            )

        return CreateProposalResult(
            log_id=log_id,
            status=Status.SUCCESS,
            message=f"Proposal created. Share this Log ID: {log_id}",
        )

    # ----- approve -----

    def submit_approval(self, log_id: str, account_id: str) -> SubmitApprovalResult:
        """Append an approval record. Deduplication happens at tally time."""
        logger.info("Submitting approval for log %s by %s", log_id, account_id)
        try:
            self._call(
                "append_message",
                self.log_service.append_message,
                log_id,
                encode_approval(account_id),
            )
        except Exception as exc:
            if not isinstance(exc, QuorumError):
                logger.exception("Unexpected error in submit_approval")
            logger.error("Error in submit_approval: %s", exc)
            return SubmitApprovalResult(
                status=Status.ERROR,
                message=f"Failed to submit approval: {exc}",
            )

        return SubmitApprovalResult(
            status=Status.SUCCESS,
            message=f"Approval recorded for {account_id}.",
        )

    # ----- tally -----

    def tally_approvals(
        self,
        log_id: str,
        approvers: Sequence[str],
        threshold: int,
    ) -> TallyApprovalsResult:
        """
        Recompute approval status from the log's full history.

        Flow:
          1. Read every message on the log.
          2. Normalize to an ordered list of contents.
          3. Decode, deduplicate, count and render the report.
        """
        logger.info("Tallying approvals for log %s", log_id)
        try:
            response = self._call("read_messages", self.log_service.read_messages, log_id)
            messages = extract_messages(response)
            result = tally(messages, approvers, threshold, log_id)
        except Exception as exc:
            if not isinstance(exc, QuorumError):
                logger.exception("Unexpected error in tally_approvals")
            logger.error("Error in tally_approvals: %s", exc)
            return TallyApprovalsResult(
                status=Status.ERROR,
                message=f"Failed to tally approvals: {exc}",
            )

        return TallyApprovalsResult(
            status=Status.SUCCESS,
            approval_count=result.approval_count,
            is_approved=result.is_approved,
            message=result.report,
        )
