"""
Ledger SDK -- Client
Thin synchronous wrapper over a REST Consensus Log Service gateway.
"""

from __future__ import annotations

import json
import os
from typing import Optional

import httpx

DEFAULT_GATEWAY_URL = os.environ.get("CONSENSUS_GATEWAY_URL", "http://localhost:8000")


class LogServiceError(Exception):
    """The gateway answered with an HTTP error status."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Consensus log gateway error {status_code}: {detail}")


class ConsensusLogClient:
    """
    Client for a Consensus Log Service gateway.

    Implements the three operations the tallying core consumes. Responses
    are returned as raw JSON text; quorum.normalizer decides what shape
    they are in.
    """

    def __init__(
        self,
        gateway_url: str = DEFAULT_GATEWAY_URL,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            gateway_url: Base URL of the gateway (e.g. "http://localhost:8000")
            api_key: Bearer token for the gateway (or set CONSENSUS_API_KEY)
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.gateway_url = gateway_url.rstrip("/")
        self.api_key = api_key or os.environ.get("CONSENSUS_API_KEY", "")
        self._client = httpx.Client(
            base_url=self.gateway_url,
            timeout=timeout,
            headers=self._headers(),
            transport=transport,
        )

    def _headers(self) -> dict[str, str]:
        h = {"Accept": "application/json"}
        if self.api_key:
            h["Authorization"] = f"Bearer {self.api_key}"
        return h

    def _request(self, method: str, path: str, **kwargs) -> str:
        resp = self._client.request(method, path, **kwargs)
        if resp.status_code >= 400:
            detail = resp.text
            if resp.headers.get("content-type", "").startswith("application/json"):
                try:
                    detail = resp.json().get("detail", resp.text)
                except (ValueError, AttributeError):
                    pass
            raise LogServiceError(resp.status_code, str(detail))
        return resp.text

    def create_log(self, memo: str) -> str:
        """Create a new log via POST /topics. Returns the raw response body."""
        return self._request("POST", "/topics", json={"memo": memo})

    def append_message(self, log_id: str, content: str) -> str:
        """Append a message via POST /topics/{log_id}/messages."""
        return self._request(
            "POST", f"/topics/{log_id}/messages", json={"message": content}
        )

    def read_messages(self, log_id: str) -> str:
        """Read every message via GET /topics/{log_id}/messages, in log order."""
        return self._request("GET", f"/topics/{log_id}/messages")

    def health(self) -> dict:
        """Check gateway health via GET /health."""
        return json.loads(self._request("GET", "/health"))

    # ----- Context manager -----

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
