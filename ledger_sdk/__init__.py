"""
Ledger SDK -- REST adapter for a Consensus Log Service.
"""

from ledger_sdk.client import ConsensusLogClient, LogServiceError

__all__ = ["ConsensusLogClient", "LogServiceError"]
