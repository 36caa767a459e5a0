"""
Unit tests for the ArgentinaDatos FX history provider.

Uses httpx.MockTransport so no network access is needed.
"""

import httpx
import pytest

from cartera.providers import ArgentinaDatosFxProvider

URL = "https://api.argentinadatos.com/v1/cotizaciones/dolares"


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestArgentinaDatosFxProvider:
    """Tests for fetching the historical dollar series."""

    @pytest.mark.asyncio
    async def test_returns_rows(self):
        """
        GIVEN the API answers with a list of quotes
        WHEN the history is fetched
        THEN the rows are returned unchanged
        """
        rows = [{"casa": "bolsa", "compra": 890, "venta": 910, "fecha": "2024-01-01"}]
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, json=rows)

        async with _client(handler) as client:
            result = await ArgentinaDatosFxProvider(URL, client=client).fetch_fx_history()

        assert result == rows
        assert seen == [URL]

    @pytest.mark.asyncio
    async def test_http_error_propagates(self):
        """
        GIVEN the API answers 503
        WHEN the history is fetched
        THEN httpx.HTTPStatusError is raised
        """
        async with _client(lambda request: httpx.Response(503)) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await ArgentinaDatosFxProvider(URL, client=client).fetch_fx_history()

    @pytest.mark.asyncio
    async def test_unexpected_payload(self):
        """
        GIVEN the API answers with an object instead of a list
        WHEN the history is fetched
        THEN ValueError is raised
        """
        async with _client(lambda request: httpx.Response(200, json={"error": "x"})) as client:
            with pytest.raises(ValueError):
                await ArgentinaDatosFxProvider(URL, client=client).fetch_fx_history()
