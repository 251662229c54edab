"""
Thin aiohttp wrapper for the backend API.

Every request carries the ``X-API-Key`` header when a key is configured.
Non-2xx answers raise ``ApiError``; transport failures propagate as
``aiohttp.ClientError`` or ``asyncio.TimeoutError``.
"""
import json
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from crawler.interfaces import ApiError


class ApiClient:
    """JSON client for one API base URL."""

    def __init__(self, base_url: str, api_key: str = "", timeout_seconds: float = 30,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = base_url.rstrip("/") + "/"
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._owns_session = session is None

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def url_for(self, path: str) -> str:
        return self.base_url + path.lstrip("/")

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                      payload: Any = None) -> Any:
        """Send a request and return the decoded JSON body (None when the body is empty)."""
        session = await self._get_session()
        url = self.url_for(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}

        async with session.request(method, url, params=query or None, json=payload,
                                   headers=self.headers, timeout=self.timeout) as response:
            body = await response.text()
            if response.status < 200 or response.status >= 300:
                logger.warning(f"{method} {url} returned HTTP {response.status}")
                raise ApiError(f"{method} {url} failed with HTTP {response.status}",
                               status=response.status, body=body[:500])

        if not body or not body.strip():
            return None
        try:
            return json.loads(body)
        except ValueError as e:
            raise ApiError(f"{method} {url} returned invalid JSON: {e}", status=response.status,
                           body=body[:500]) from e

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post_json(self, path: str, payload: Any) -> Any:
        return await self.request("POST", path, payload=payload)

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
