"""
AlphaVantage HTTP Adapter
Thin async wrapper around the ``/query`` REST endpoint.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from Finance.Domain.errors import ApiError, NetworkError, ParseError
from Finance.Ports.Outbound.market_api_interface import MarketDataApi

logger = logging.getLogger(__name__)

ALPHA_BASE = "https://www.alphavantage.co/query"


def _redact(params: Dict[str, str]) -> Dict[str, str]:
    return {k: ("***" if k == "apikey" else v) for k, v in params.items()}


class AlphaVantageAdapter(MarketDataApi):
    base_url: str = ALPHA_BASE
    timeout: float = 30.0
    transport: Optional[httpx.AsyncBaseTransport] = None

    _client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self.transport)
        return self._client

    async def query(self, params: Dict[str, str]) -> Dict[str, Any]:
        """
        GET ``base_url`` with ``params``.

        Raises:
            NetworkError: transport failure or timeout
            ApiError: non-2xx status, or an ``Error`` / ``Error Message`` field
            ParseError: body is not a JSON object
        """
        params_clean = {k: v for k, v in params.items() if v is not None}
        logger.debug(f"GET {self.base_url} {_redact(params_clean)}")

        try:
            response = await self._get_client().get(self.base_url, params=params_clean)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ApiError(
                f"API request failed with status {status}: {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise NetworkError(f"Failed to reach Alpha Vantage: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"Failed to parse API response as JSON: {e}") from e

        if not isinstance(data, dict):
            raise ParseError("Invalid API response: expected a JSON object")

        error = data.get("Error") or data.get("Error Message")
        if error:
            raise ApiError(f"Alpha Vantage API error: {error}")

        return data

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("AlphaVantage adapter closed")
