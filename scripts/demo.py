#!/usr/bin/env python3
"""
Approvr -- End-to-End Demo Script

Walks through the full approval loop: create a proposal log, submit
approvals (including a duplicate and a non-listed account), tally before
and after quorum, and re-verify the log's hash chain.

Usage:
    python scripts/demo.py                 # in-memory consensus log
    python scripts/demo.py --gateway URL   # live Consensus Log Service

Requires: httpx, pydantic
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ledger_sdk import ConsensusLogClient
from quorum.codec import check_threshold
from quorum.ledger import InMemoryConsensusLog
from quorum.service import ApprovalCoordinator, Status

LOG_LEVEL = os.environ.get("APPROVR_LOG_LEVEL", "WARNING")

APPROVERS = ["0.0.1001", "0.0.1002", "0.0.1003"]
THRESHOLD = 2
OUTSIDER = "0.0.9999"

# ---------------------------------------------------------------------------
# Terminal colors (ANSI)
# ---------------------------------------------------------------------------

class C:
    RESET   = "\033[0m"
    BOLD    = "\033[1m"
    DIM     = "\033[2m"
    RED     = "\033[91m"
    GREEN   = "\033[92m"
    YELLOW  = "\033[93m"
    BLUE    = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN    = "\033[96m"
    WHITE   = "\033[97m"


def banner(text: str, color: str = C.CYAN):
    width = 64
    print()
    print(f"{color}{C.BOLD}{'=' * width}{C.RESET}")
    print(f"{color}{C.BOLD}  {text}{C.RESET}")
    print(f"{color}{C.BOLD}{'=' * width}{C.RESET}")
    print()


def step(n: int, text: str):
    print(f"  {C.BOLD}{C.WHITE}[Step {n}]{C.RESET} {text}")


def ok(text: str):
    print(f"  {C.GREEN}{C.BOLD}OK{C.RESET} {text}")


def fail(text: str):
    print(f"  {C.RED}{C.BOLD}FAIL{C.RESET} {text}")


def info(text: str):
    for line in text.split("\n"):
        print(f"    {C.DIM}{line}{C.RESET}")


# ---------------------------------------------------------------------------
# Demo steps
# ---------------------------------------------------------------------------

def main() -> int:
    parser = argparse.ArgumentParser(description="Approvr end-to-end demo")
    parser.add_argument("--gateway", help="Consensus Log Service URL (default: in-memory)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    check_threshold(APPROVERS, THRESHOLD)

    memory_log = None
    if args.gateway:
        service = ConsensusLogClient(gateway_url=args.gateway)
    else:
        memory_log = InMemoryConsensusLog()
        service = memory_log
    coordinator = ApprovalCoordinator(service)

    banner("APPROVR  --  Multi-party approval on a consensus log", C.MAGENTA)
    print(f"  {C.DIM}Backend: {args.gateway or 'in-memory consensus log'}{C.RESET}")
    print(f"  {C.DIM}Approvers: {', '.join(APPROVERS)} (threshold {THRESHOLD}){C.RESET}")

    # -----------------------------------------------------------------------
    # 1. Create
    # -----------------------------------------------------------------------
    banner("1. Create Proposal", C.BLUE)
    step(1, "create_proposal('Buy gear', ...)")
    created = coordinator.create_proposal("Buy gear", APPROVERS, THRESHOLD)
    if created.status != Status.SUCCESS or created.log_id is None:
        fail(created.message)
        return 3
    ok(created.message)
    log_id = created.log_id

    # -----------------------------------------------------------------------
    # 2. First approval, tally below quorum
    # -----------------------------------------------------------------------
    banner("2. Partial Approval", C.BLUE)
    step(2, f"submit_approval({log_id}, {APPROVERS[0]})")
    ok(coordinator.submit_approval(log_id, APPROVERS[0]).message)

    step(3, f"submit_approval({log_id}, {OUTSIDER})  -- not a listed approver")
    ok(coordinator.submit_approval(log_id, OUTSIDER).message)

    step(4, "tally_approvals")
    pending = coordinator.tally_approvals(log_id, APPROVERS, THRESHOLD)
    info(pending.message)
    if pending.is_approved:
        fail("Proposal should not be approved yet")
        return 1

    # -----------------------------------------------------------------------
    # 3. Quorum
    # -----------------------------------------------------------------------
    banner("3. Quorum Reached", C.BLUE)
    step(5, f"submit_approval({log_id}, {APPROVERS[1]})")
    ok(coordinator.submit_approval(log_id, APPROVERS[1]).message)

    step(6, f"submit_approval({log_id}, {APPROVERS[0]})  -- duplicate")
    ok(coordinator.submit_approval(log_id, APPROVERS[0]).message)

    step(7, "tally_approvals")
    final = coordinator.tally_approvals(log_id, APPROVERS, THRESHOLD)
    info(final.message)
    if not final.is_approved or final.approval_count != THRESHOLD:
        fail(f"Expected {THRESHOLD} distinct approvals, got {final.approval_count}")
        return 1
    ok(f"{final.approval_count}/{THRESHOLD} distinct approvals")

    # -----------------------------------------------------------------------
    # 4. Chain verification
    # -----------------------------------------------------------------------
    if memory_log is not None:
        banner("4. Chain Verification", C.BLUE)
        step(8, f"verify_chain({log_id})")
        for entry in memory_log.entries(log_id):
            first_line = entry.message.split("\n", 1)[0]
            info(f"#{entry.sequence_number} {entry.running_hash[:16]}...  {first_line}")
        if not memory_log.verify_chain(log_id):
            fail("CHAIN INTEGRITY: BROKEN")
            return 1
        ok("CHAIN INTEGRITY: VALID")

    banner("Demo complete", C.GREEN)
    return 0


if __name__ == "__main__":
    sys.exit(main())
