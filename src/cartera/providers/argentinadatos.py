"""Historical dollar quotes from the ArgentinaDatos public API."""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class ArgentinaDatosFxProvider:
    """
    FxHistoryProvider backed by api.argentinadatos.com.

    Returns every house (bolsa, contadoconliqui, blue, oficial, ...) for every
    day; the engine picks the preferred house per date.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._client = client

    async def fetch_fx_history(self) -> list[dict[str, Any]]:
        """Fetch the full historical series; raises httpx.HTTPError on failure."""
        logger.debug(f"GET {self._url}")
        if self._client is not None:
            response = await self._client.get(self._url, timeout=self._timeout)
        else:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(self._url)
        response.raise_for_status()

        data = response.json()
        if not isinstance(data, list):
            raise ValueError(f"Unexpected FX history payload type: {type(data).__name__}")
        return data
