"""HTTP client for the co-deployed marketplace backend.

The scheduler never owns listings, orders or payouts; it reads and
creates them through this client. Any transport failure or non-2xx
response is raised as BackendUnavailableError so job bodies can treat
"backend down" as a soft condition.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from arbi_cli.exceptions import BackendUnavailableError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:3000"


class BackendClient:
    """Async JSON client for the marketplace and payout API.

    Example:
        async with BackendClient("http://localhost:3000") as backend:
            orders = await backend.get_orders()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize the backend client.

        Args:
            base_url: Root URL of the backend API
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx client (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    async def create_listing(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Create a marketplace listing for an opportunity."""
        return await self._request("POST", "/api/marketplace/list", json=payload)

    async def get_orders(self) -> Dict[str, Any]:
        """Fetch marketplace orders (``{"orders": [...]}``)."""
        return await self._request("GET", "/api/marketplace/orders")

    async def get_active_listings(self) -> Dict[str, Any]:
        """Fetch active listings (``{"listings": [...]}``)."""
        return await self._request(
            "GET", "/api/marketplace/listings", params={"status": "active"}
        )

    async def get_payout_history(self) -> Dict[str, Any]:
        """Fetch payout history and aggregate stats (``{"stats": {...}}``)."""
        return await self._request("GET", "/api/payout/history")

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Send a request and decode the JSON body.

        Raises:
            BackendUnavailableError: On connection errors, timeouts,
                non-2xx responses or undecodable bodies
        """
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendUnavailableError(
                f"Backend returned {e.response.status_code} for {method} {path}",
                status_code=e.response.status_code,
                url=url,
            ) from e
        except httpx.HTTPError as e:
            raise BackendUnavailableError(
                f"Backend unreachable for {method} {path}: {e}",
                url=url,
            ) from e

        logger.debug(f"{method} {url} -> {response.status_code}")

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            raise BackendUnavailableError(
                f"Backend returned invalid JSON for {method} {path}",
                status_code=response.status_code,
                url=url,
            ) from e
        return data if isinstance(data, dict) else {"data": data}
