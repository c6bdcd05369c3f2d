"""
Consensus Log Service Interface
Append-only, ordered, tamper-evident message logs.

The tallying core consumes exactly three operations from its log service:
create a log, append a message, read all messages. Responses are returned
raw; quorum.normalizer turns them into canonical values.

InMemoryConsensusLog is a process-local stand-in used by the demo and the
test suite. Each message carries a SHA-256 running hash over its
predecessor so the chain can be re-verified independently.
"""

from __future__ import annotations

import hashlib
import itertools
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Protocol

from quorum.normalizer import IdShape

logger = logging.getLogger("approvr.ledger")

GENESIS_HASH = "0" * 64


class ConsensusLogService(Protocol):
    def create_log(self, memo: str) -> Any: ...

    def append_message(self, log_id: str, content: str) -> Any: ...

    def read_messages(self, log_id: str) -> Any: ...


# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LogId:
    """SDK-style identifier object; renders as shard.realm.num."""
    shard: int
    realm: int
    num: int

    def __str__(self) -> str:
        return f"{self.shard}.{self.realm}.{self.num}"


@dataclass
class LogEntry:
    sequence_number: int
    message: str
    running_hash: str
    previous_hash: str


@dataclass
class _Log:
    memo: str
    entries: list[LogEntry] = field(default_factory=list)


def compute_running_hash(prev_hash: str, log_id: str, sequence_number: int,
                         message: str) -> str:
    """Hash formula shared by append and verify_chain."""
    material = f"{prev_hash}|{log_id}|{sequence_number}|{message}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class InMemoryConsensusLog:
    """
    Process-local consensus log service.

    Appends are serialized with a lock, matching the atomic-append contract
    of a real ledger. Responses can be produced in any of the shapes the
    normalizer recognises:

        id_shape       -- where the identifier sits in create responses
        wrap_messages  -- {"messages": [...]} instead of a bare array
        as_json        -- return JSON text instead of structured values
    """

    def __init__(
        self,
        shard: int = 0,
        realm: int = 0,
        first_num: int = 1001,
        id_shape: IdShape = IdShape.RECEIPT_STRING,
        wrap_messages: bool = True,
        as_json: bool = False,
    ):
        self.shard = shard
        self.realm = realm
        self.id_shape = id_shape
        self.wrap_messages = wrap_messages
        self.as_json = as_json
        self._numbers = itertools.count(first_num)
        self._logs: dict[str, _Log] = {}
        self._lock = threading.Lock()

    # ----- ConsensusLogService -----

    def create_log(self, memo: str) -> Any:
        with self._lock:
            log_id = LogId(self.shard, self.realm, next(self._numbers))
            self._logs[str(log_id)] = _Log(memo=memo)
        logger.info("Created log %s (%s)", log_id, memo)
        return self._shape_id(log_id)

    def append_message(self, log_id: str, content: str) -> Any:
        with self._lock:
            log = self._get(log_id)
            prev_hash = log.entries[-1].running_hash if log.entries else GENESIS_HASH
            seq = len(log.entries) + 1
            entry = LogEntry(
                sequence_number=seq,
                message=content,
                running_hash=compute_running_hash(prev_hash, log_id, seq, content),
                previous_hash=prev_hash,
            )
            log.entries.append(entry)
        body = {
            "status": "SUCCESS",
            "topicId": log_id,
            "sequenceNumber": entry.sequence_number,
            "runningHash": entry.running_hash,
        }
        return json.dumps(body) if self.as_json else body

    def read_messages(self, log_id: str) -> Any:
        with self._lock:
            entries = list(self._get(log_id).entries)
        messages = [
            {
                "sequence_number": e.sequence_number,
                "message": e.message,
                "running_hash": e.running_hash,
            }
            for e in entries
        ]
        body: Any = {"topicId": log_id, "messages": messages} if self.wrap_messages else messages
        return json.dumps(body) if self.as_json else body

    # ----- Inspection -----

    def memo(self, log_id: str) -> str:
        return self._get(log_id).memo

    def entries(self, log_id: str) -> list[LogEntry]:
        with self._lock:
            return list(self._get(log_id).entries)

    def verify_chain(self, log_id: str) -> bool:
        """Recompute every running hash and confirm the chain is unbroken."""
        expected_prev = GENESIS_HASH
        for entry in self.entries(log_id):
            if entry.previous_hash != expected_prev:
                logger.error("Chain break in %s at message %d", log_id, entry.sequence_number)
                return False
            expected = compute_running_hash(
                entry.previous_hash, log_id, entry.sequence_number, entry.message
            )
            if expected != entry.running_hash:
                logger.error("Tampered message in %s at %d", log_id, entry.sequence_number)
                return False
            expected_prev = entry.running_hash
        return True

    # ----- Internals -----

    def _get(self, log_id: str) -> _Log:
        try:
            return self._logs[log_id]
        except KeyError:
            raise KeyError(f"Unknown log: {log_id}") from None

    def _shape_id(self, log_id: LogId) -> Any:
        text = str(log_id)
        if self.id_shape == IdShape.RECEIPT_STRING:
            body: dict[str, Any] = {"status": "SUCCESS", "receipt": {"topicId": text}}
        elif self.id_shape == IdShape.TOP_LEVEL_STRING:
            body = {"status": "SUCCESS", "topicId": text}
        elif self.id_shape == IdShape.TOP_LEVEL_OBJECT:
            body = {"status": "SUCCESS", "topicId": log_id}
        else:
            body = {"status": "SUCCESS", "receipt": {"topicId": log_id}}

        if self.as_json:
            return json.dumps(body, default=_json_identifier)
        return body


def _json_identifier(value: Any) -> Any:
    if isinstance(value, LogId):
        return {"shard": value.shard, "realm": value.realm, "num": value.num}
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
