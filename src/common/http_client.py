"""Async HTTP client shared by the registry pinner and the package fetcher.

Wraps a single aiohttp session so every request in a run shares one
connection pool, one timeout policy and one in-memory response cache. Transport
failures surface as ``aiohttp.ClientError`` / ``asyncio.TimeoutError``; callers
translate them into the error kind that fits their step.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HttpResponse:
    """Status and fully buffered body of a GET request."""

    status: int
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpClient:
    """Thin aiohttp session wrapper with per-run caching of successful GETs.

    Bodies stay cached until the client is stopped, tarballs included, so peak
    memory grows with the total size of the packages installed in one run. That
    keeps every archive a single download across the resolution and linking
    phases.
    """

    def __init__(
        self,
        timeout: Optional[int] = None,
        max_connections: Optional[int] = None,
    ):
        """Initialize the client.

        Args:
            timeout: Total request timeout in seconds.
            max_connections: Connection pool size.
        """
        self._timeout = aiohttp.ClientTimeout(
            total=timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        )
        self._max_connections = max_connections or Constants.HTTP_MAX_CONNECTIONS
        self._session: Optional[aiohttp.ClientSession] = None
        self._cache: Dict[str, bytes] = {}
        self._inflight: Dict[str, "asyncio.Future[HttpResponse]"] = {}

    async def start(self) -> None:
        """Start the HTTP session."""
        if self._session is None:
            connector = aiohttp.TCPConnector(limit=self._max_connections)
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                connector=connector,
                headers={"User-Agent": Constants.USER_AGENT},
            )

    async def stop(self) -> None:
        """Stop the HTTP session."""
        for task in list(self._inflight.values()):
            task.cancel()
        if self._session:
            await self._session.close()
            self._session = None

    async def get(self, url: str, *, context: str) -> HttpResponse:
        """GET ``url`` and buffer the body.

        Successful responses are cached for the lifetime of the client, so the
        resolution and installation phases download each resource once.
        Concurrent callers asking for the same URL share one in-flight request;
        a failed or non-2xx request is forgotten so the next caller retries.
        """
        cached = self._cache.get(url)
        if cached is not None:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP cache hit",
                    extra=extra_context(
                        event="cache_hit",
                        component="http_client",
                        action="GET",
                        target=safe_url(url),
                        context=context,
                    ),
                )
            return HttpResponse(200, cached)

        task = self._inflight.get(url)
        if task is None:
            task = asyncio.ensure_future(self._fetch(url, context))
            self._inflight[url] = task
            task.add_done_callback(lambda done, key=url: self._settle(key, done))
        # One caller being cancelled must not cancel the request for the others
        return await asyncio.shield(task)

    def _settle(self, url: str, task: "asyncio.Future[HttpResponse]") -> None:
        self._inflight.pop(url, None)
        if task.cancelled() or task.exception() is not None:
            return
        result = task.result()
        if result.ok:
            self._cache[url] = result.body

    async def _fetch(self, url: str, context: str) -> HttpResponse:
        safe_target = safe_url(url)
        if self._session is None:
            await self.start()
        assert self._session is not None

        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        context=context,
                    ),
                )
            async with self._session.get(url) as response:
                body = await response.read()
                status = response.status

        if is_debug_enabled(logger):
            logger.debug(
                "HTTP response",
                extra=extra_context(
                    event="http_response",
                    component="http_client",
                    action="GET",
                    status_code=status,
                    duration_ms=t.duration_ms(),
                    target=safe_target,
                    context=context,
                ),
            )
        return HttpResponse(status, body)

    async def get_json(self, url: str, *, context: str) -> Tuple[int, Optional[Any]]:
        """GET ``url`` and parse a JSON body.

        Returns:
            Tuple of (status_code, parsed_json_or_none). The body is None for
            non-2xx responses and for payloads that are not valid JSON.
        """
        response = await self.get(url, context=context)
        if not response.ok or not response.body:
            return response.status, None
        try:
            return response.status, json.loads(response.body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            if is_debug_enabled(logger):
                logger.debug(
                    "JSON decode error",
                    extra=extra_context(
                        event="parse",
                        component="http_client",
                        action="get_json",
                        outcome="json_decode_error",
                        status_code=response.status,
                        target=safe_url(url),
                    ),
                )
            return response.status, None

    async def __aenter__(self) -> "HttpClient":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.stop()
