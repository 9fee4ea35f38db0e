"""
Async client for the Tezos node RPC endpoints BakerPay depends on.

Built on ``aiohttp``.  Only the handful of calls the payout engine needs are
wrapped:

    GET  /chains/main/blocks/head
    GET  /chains/main/blocks/head/context/contracts/<addr>/counter
    POST /chains/main/blocks/head/helpers/forge/operations
    POST /chains/main/blocks/head/helpers/preapply/operations
    POST /injection/operation?chain=main
    GET  /chains/main/blocks/head/operation_hashes

Usage:
    async with NodeClient("http://127.0.0.1:8732") as node:
        head = await node.head()
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

from bakerpay_core.errors import NodeRequestError, ValidationError

logger = logging.getLogger("bakerpay.rpc")

HEAD_PATH = "/chains/main/blocks/head"


@dataclass(frozen=True)
class BlockHead:
    """The parts of the head block the payout engine cares about."""
    hash: str
    protocol: str
    level: int
    cycle: int

    @classmethod
    def from_json(cls, data: Any) -> BlockHead:
        try:
            metadata = data["metadata"]
            level_info = metadata.get("level_info") or metadata["level"]
            return cls(
                hash=data["hash"],
                protocol=data["protocol"],
                level=int(level_info["level"]),
                cycle=int(level_info["cycle"]),
            )
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise NodeRequestError(f"Malformed head block: {exc!r}") from exc


def _operation_results(op: Any) -> list[tuple[dict, dict]]:
    """Pair each content of a pre-applied operation with its operation_result."""
    if not isinstance(op, dict) or not isinstance(op.get("contents", []), list):
        raise NodeRequestError(f"Pre-apply returned malformed operation: {op!r}")
    pairs = []
    for content in op.get("contents", []):
        metadata = content.get("metadata", {}) if isinstance(content, dict) else None
        result = metadata.get("operation_result", {}) if isinstance(metadata, dict) else None
        if not isinstance(result, dict):
            raise NodeRequestError(f"Pre-apply returned malformed content: {content!r}")
        pairs.append((content, result))
    return pairs


class NodeClient:
    """Thin aiohttp wrapper around a node's RPC interface."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session: aiohttp.ClientSession | None = None

    # ── lifecycle ────────────────────────────────────────────────

    async def __aenter__(self) -> NodeClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    # ── transport ────────────────────────────────────────────────

    async def _request(self, method: str, path: str, payload: Any = None) -> tuple[int, Any]:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            async with self._get_session().request(method, url, json=payload) as resp:
                text = await resp.text()
                status = resp.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise NodeRequestError(f"{method} {path} failed: {exc!r}") from exc

        try:
            body = json.loads(text) if text else None
        except ValueError:
            body = text
        return status, body

    async def _call(self, method: str, path: str, payload: Any = None) -> Any:
        status, body = await self._request(method, path, payload)
        if status >= 400:
            raise NodeRequestError(f"{method} {path} returned HTTP {status}: {body}", status=status)
        return body

    # ── endpoints ────────────────────────────────────────────────

    async def head(self) -> BlockHead:
        return BlockHead.from_json(await self._call("GET", HEAD_PATH))

    async def counter(self, address: str) -> int:
        body = await self._call("GET", f"{HEAD_PATH}/context/contracts/{address}/counter")
        try:
            return int(body)
        except (TypeError, ValueError) as exc:
            raise NodeRequestError(f"Malformed counter for {address}: {body!r}") from exc

    async def forge_operations(self, branch: str, contents: list[dict]) -> str:
        body = await self._call(
            "POST", f"{HEAD_PATH}/helpers/forge/operations",
            {"branch": branch, "contents": contents},
        )
        if not isinstance(body, str):
            raise NodeRequestError(f"Forge returned non-string payload: {body!r}")
        try:
            bytes.fromhex(body)
        except ValueError as exc:
            raise NodeRequestError(f"Forge returned non-hex payload: {body[:32]!r}") from exc
        return body

    async def preapply_operations(
        self,
        protocol: str,
        branch: str,
        contents: list[dict],
        signature: str,
    ) -> list[dict]:
        """
        Simulate a signed operation group.

        Raises ValidationError when the node rejects the group or any
        operation result is not ``applied``.
        """
        payload = [{
            "protocol": protocol,
            "branch": branch,
            "contents": contents,
            "signature": signature,
        }]
        status, body = await self._request("POST", f"{HEAD_PATH}/helpers/preapply/operations", payload)
        if status >= 400:
            raise ValidationError(f"Pre-apply rejected with HTTP {status}: {body}")
        if not isinstance(body, list):
            raise NodeRequestError(f"Pre-apply returned malformed payload: {body!r}")

        for op in body:
            for content, result in _operation_results(op):
                status_str = result.get("status")
                if status_str != "applied":
                    raise ValidationError(
                        f"Pre-apply {content.get('kind', '?')} to "
                        f"{content.get('destination', '?')} was {status_str}: {result.get('errors', [])}"
                    )
        return body

    async def inject_operation(self, signed_payload: str) -> str:
        body = await self._call("POST", "/injection/operation?chain=main", signed_payload)
        if not isinstance(body, str):
            raise NodeRequestError(f"Injection returned non-string payload: {body!r}")
        return body

    async def operation_hashes(self) -> list[str]:
        body = await self._call("GET", f"{HEAD_PATH}/operation_hashes")
        if not isinstance(body, list):
            raise NodeRequestError(f"Malformed operation hashes: {body!r}")
        return [h for group in body for h in group]
