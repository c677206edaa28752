"""
Outbound HTTP for calls to third-party APIs.

Failures never raise out of ``ServiceClient``: transport errors, unexpected status codes
and bodies that are not JSON all come back as ``ServiceResponse(success=False, ...)`` and
are logged once, with whatever context the caller tagged the call with.

    async with ServiceClient(timeout=10.0) as http:
        resp = await http.get(url, params={"date": "2025-09-01"}, provider="sunrise-sunset")
        if resp.success:
            payload = resp.data
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

logger = structlog.get_logger(__name__)


@dataclass
class ServiceResponse:
    success: bool
    data: Any = None
    status_code: int | None = None
    error: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def failed(cls, error: str, status_code: int | None = None) -> ServiceResponse:
        return cls(success=False, status_code=status_code, error=error)


class ServiceClient:
    """
    Shared ``httpx.AsyncClient`` with a bounded lifetime.

    Entered once by the application lifespan and handed to services; ``transport``
    lets tests route requests to an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        timeout: float | httpx.Timeout = 20.0,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._timeout = timeout if isinstance(timeout, httpx.Timeout) else httpx.Timeout(timeout)
        self._transport = transport
        self._headers = headers or {}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ServiceClient:
        self._client = httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
            headers=self._headers,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        expected_status: int | tuple[int, ...] = 200,
        **log_context: Any,
    ) -> ServiceResponse:
        """GET ``url`` and decode the JSON body."""
        return await self._request("GET", url, params=params, headers=headers, expected=expected_status, **log_context)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        expected: int | tuple[int, ...],
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ) -> ServiceResponse:
        if self._client is None:
            raise RuntimeError("ServiceClient used outside of its context manager")
        accepted = (expected,) if isinstance(expected, int) else expected
        log = logger.bind(method=method, url=url, **log_context)

        started = time.perf_counter()
        try:
            response = await self._client.request(method, url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            log.error("outbound_request_failed", error=str(exc) or exc.__class__.__name__)
            return ServiceResponse.failed(str(exc) or exc.__class__.__name__)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        if response.status_code not in accepted:
            log.error(
                "outbound_unexpected_status",
                status_code=response.status_code,
                expected=accepted,
                elapsed_ms=elapsed_ms,
                body_preview=response.text[:500],
            )
            return ServiceResponse.failed(f"Unexpected status {response.status_code}", response.status_code)

        try:
            data = response.json()
        except ValueError:
            log.error("outbound_json_invalid", status_code=response.status_code, body_preview=response.text[:500])
            return ServiceResponse.failed("JSON parse failed", response.status_code)

        log.debug("outbound_request_ok", status_code=response.status_code, elapsed_ms=elapsed_ms)
        return ServiceResponse(
            success=True,
            data=data,
            status_code=response.status_code,
            headers=dict(response.headers),
        )
