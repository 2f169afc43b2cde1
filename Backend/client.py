"""
Async client for the WebGuard AI API.

    async with WebGuardClient("http://localhost:8000", token=jwt) as client:
        result = await client.scan_website("example.com")
        async for text in client.ask_assistant("How do I add a CSP?", result["recommendations"]):
            print(text, end="")
"""
import logging
from typing import AsyncIterator, List, Optional

import aiohttp

from assistant import SSEStreamParser

logger = logging.getLogger(__name__)


class WebGuardAPIError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class WebGuardClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 120):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        self._session = self._create_session()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _create_session(self) -> aiohttp.ClientSession:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return aiohttp.ClientSession(headers=headers, timeout=self.timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = self._create_session()
        return self._session

    @staticmethod
    async def _raise_for_error(response) -> None:
        if response.status < 400:
            return
        try:
            data = await response.json(content_type=None)
            message = data.get("error") or data.get("detail") or "Request failed"
        except (aiohttp.ContentTypeError, ValueError, AttributeError):
            message = await response.text()
        raise WebGuardAPIError(response.status, str(message))

    async def scan_website(self, url: str, user_id: Optional[str] = None) -> dict:
        payload = {"url": url}
        if user_id:
            payload["userId"] = user_id

        async with self.session.post(f"{self.base_url}/scan-website", json=payload) as response:
            await self._raise_for_error(response)
            return await response.json()

    async def get_scan(self, scan_id: str) -> dict:
        async with self.session.get(f"{self.base_url}/scans/{scan_id}") as response:
            await self._raise_for_error(response)
            return await response.json()

    async def list_scans(self, limit: int = 20) -> List[dict]:
        async with self.session.get(f"{self.base_url}/scans", params={"limit": limit}) as response:
            await self._raise_for_error(response)
            return await response.json()

    async def ask_assistant(
        self,
        message: str,
        recommendations: List[str],
        scan_data: Optional[dict] = None
    ) -> AsyncIterator[str]:
        """Yield assistant text deltas as they arrive."""
        payload = {
            "message": message,
            "recommendations": recommendations,
            "scanData": scan_data,
        }
        parser = SSEStreamParser()

        async with self.session.post(f"{self.base_url}/security-assistant", json=payload) as response:
            await self._raise_for_error(response)
            async for chunk in response.content.iter_any():
                for delta in parser.feed(chunk):
                    yield delta

        for delta in parser.flush():
            yield delta
