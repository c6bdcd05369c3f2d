#!/usr/bin/env python3
"""
Approvr CLI

Create proposals, submit approvals and tally quorum against a Consensus
Log Service gateway.

Exit codes:
    0 -- success (for tally: proposal approved)
    1 -- tally succeeded but the proposal is not yet approved
    2 -- invalid arguments
    3 -- error communicating with the log service

Usage:
    python scripts/approvr_cli.py create "Buy gear" 0.0.1001,0.0.1002 2
    python scripts/approvr_cli.py approve 0.0.5005 0.0.1001
    python scripts/approvr_cli.py tally 0.0.5005 0.0.1001,0.0.1002 2
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
from quorum.service import ApprovalCoordinator, Status

LOG_LEVEL = os.environ.get("APPROVR_LOG_LEVEL", "INFO")


def _approver_list(raw: str) -> list[str]:
    return [a.strip() for a in raw.split(",") if a.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="approvr", description=__doc__.split("\n\n")[1])
    parser.add_argument("--gateway", help="Gateway URL (default: $CONSENSUS_GATEWAY_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Create a proposal log")
    create.add_argument("description")
    create.add_argument("approvers", type=_approver_list, help="Comma-separated account IDs")
    create.add_argument("threshold", type=int)

    approve = sub.add_parser("approve", help="Submit an approval")
    approve.add_argument("log_id")
    approve.add_argument("account_id")

    tally = sub.add_parser("tally", help="Tally approvals on a log")
    tally.add_argument("log_id")
    tally.add_argument("approvers", type=_approver_list, help="Comma-separated account IDs")
    tally.add_argument("threshold", type=int)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if args.command in ("create", "tally"):
        try:
            check_threshold(args.approvers, args.threshold)
        except ValueError as exc:
            print(f"[approvr] ERROR: {exc}", file=sys.stderr)
            return 2

    client_kwargs = {"gateway_url": args.gateway} if args.gateway else {}
    with ConsensusLogClient(**client_kwargs) as client:
        coordinator = ApprovalCoordinator(client)

        if args.command == "create":
            result = coordinator.create_proposal(args.description, args.approvers, args.threshold)
            print(result.message)
            return 0 if result.status == Status.SUCCESS else 3

        if args.command == "approve":
            result = coordinator.submit_approval(args.log_id, args.account_id)
            print(result.message)
            return 0 if result.status == Status.SUCCESS else 3

        result = coordinator.tally_approvals(args.log_id, args.approvers, args.threshold)
        print(result.message)
        if result.status != Status.SUCCESS:
            return 3
        return 0 if result.is_approved else 1


if __name__ == "__main__":
    sys.exit(main())
