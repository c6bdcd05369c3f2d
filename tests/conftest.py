from __future__ import annotations

import pytest

from quorum.ledger import InMemoryConsensusLog
from quorum.service import ApprovalCoordinator

APPROVERS = ["0.0.1001", "0.0.1002", "0.0.1003"]


@pytest.fixture()
def approvers() -> list[str]:
    return list(APPROVERS)


@pytest.fixture()
def memory_log() -> InMemoryConsensusLog:
    return InMemoryConsensusLog()


@pytest.fixture()
def coordinator(memory_log: InMemoryConsensusLog) -> ApprovalCoordinator:
    return ApprovalCoordinator(memory_log, tolerate_details_failure=False)
