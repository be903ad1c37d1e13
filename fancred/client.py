"""HTTP client for the score API, used by the session controller."""

import logging
from typing import Optional

import httpx

from fancred.errors import ScoreApiError
from fancred.models import FanAction, ScoreActionResponse, ScoreBreakdown

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15.0


class ScoreApiClient:
    """
    Thin async client over GET/POST /score.

    Non-2xx answers and transport failures are raised as ScoreApiError
    carrying the server's human-readable detail where there is one.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e!r}")
            raise ScoreApiError("Could not reach the score service", status_code=0) from e

        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = None
            raise ScoreApiError(
                detail or f"Score service returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    async def get_score(self, wallet_address: str) -> ScoreBreakdown:
        data = await self._request("GET", "/score", params={"walletAddress": wallet_address})
        return ScoreBreakdown.model_validate(data)

    async def apply_action(self, wallet_address: str, action: FanAction) -> ScoreActionResponse:
        data = await self._request(
            "POST",
            "/score",
            json={"walletAddress": wallet_address, "action": FanAction.parse(action).value},
        )
        return ScoreActionResponse.model_validate(data)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
