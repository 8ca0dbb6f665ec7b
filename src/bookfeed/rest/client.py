"""Deribit trading REST client.

Thin call-and-return wrappers over Deribit's JSON-RPC-over-HTTP API. The
streaming core does not depend on anything here.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)

MAINNET_URL = "https://www.deribit.com/api/v2"
TESTNET_URL = "https://test.deribit.com/api/v2"

ORDER_SIDES = ("buy", "sell")
ORDER_TYPES = ("limit", "market", "stop_limit", "stop_market", "take_limit", "take_market")


class DeribitApiError(Exception):
    """Deribit returned an error object, a non-JSON body or an HTTP failure."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(f"{message} (code {code})" if code is not None else message)
        self.code = code
        self.message = message


@dataclass(slots=True)
class AccessToken:
    access_token: str
    refresh_token: str | None
    expires_in: int
    scope: str
    obtained_at: float

    @property
    def expired(self) -> bool:
        return time.time() >= self.obtained_at + self.expires_in


class DeribitRestClient:
    """Deribit REST client."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        *,
        testnet: bool = True,
        timeout: float = 10.0,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.testnet = testnet
        self.timeout = timeout
        self.session: aiohttp.ClientSession | None = None
        self.token: AccessToken | None = None

    def get_base_url(self) -> str:
        if self.testnet:
            return TESTNET_URL
        return MAINNET_URL

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": "bookfeed/1.0"},
            )
        return self.session

    def _auth_headers(self) -> dict[str, str]:
        if self.token is None:
            raise DeribitApiError("not authenticated; call authenticate first")
        return {"Authorization": f"Bearer {self.token.access_token}"}

    async def _call(self, method: str, params: dict[str, Any], *, private: bool = False) -> Any:
        headers = self._auth_headers() if private else {}
        session = await self._ensure_session()
        url = f"{self.get_base_url()}/{method}"
        query = {k: v for k, v in params.items() if v is not None}

        logger.debug("GET %s params=%s", method, sorted(query))
        try:
            async with session.get(url, params=query, headers=headers) as resp:
                try:
                    data = await resp.json(content_type=None)
                except ValueError as exc:
                    raise DeribitApiError(f"{method}: invalid JSON response (HTTP {resp.status})") from exc
        except TimeoutError as exc:
            raise DeribitApiError(f"{method}: timed out after {self.timeout:g}s") from exc
        except aiohttp.ClientError as exc:
            raise DeribitApiError(f"{method}: {exc}") from exc

        if not isinstance(data, dict):
            raise DeribitApiError(f"{method}: unexpected response shape")
        error = data.get("error")
        if error:
            raise DeribitApiError(
                f"{method}: {error.get('message', 'unknown error')}",
                code=error.get("code"),
            )
        if "result" not in data:
            raise DeribitApiError(f"{method}: missing result (HTTP {resp.status})")
        return data["result"]

    async def authenticate(self) -> AccessToken:
        """Obtain an access token with the client-credentials grant."""
        if not self.client_id or not self.client_secret:
            raise DeribitApiError("client_id and client_secret are required to authenticate")

        result = await self._call(
            "public/auth",
            {
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
            },
        )
        self.token = AccessToken(
            access_token=result["access_token"],
            refresh_token=result.get("refresh_token"),
            expires_in=int(result.get("expires_in", 0)),
            scope=result.get("scope", ""),
            obtained_at=time.time(),
        )
        logger.info("authenticated (scope=%s)", self.token.scope)
        return self.token

    async def place_order(
        self,
        instrument: str,
        side: str,
        amount: float,
        *,
        order_type: str = "limit",
        price: float | None = None,
        label: str | None = None,
    ) -> dict[str, Any]:
        side = side.lower()
        if side not in ORDER_SIDES:
            raise ValueError(f"Invalid side: {side}. Must be one of {', '.join(ORDER_SIDES)}")
        if order_type not in ORDER_TYPES:
            raise ValueError(f"Invalid order type: {order_type}")
        if order_type == "limit" and price is None:
            raise ValueError("limit orders require a price")

        return await self._call(
            f"private/{side}",
            {
                "instrument_name": instrument,
                "amount": amount,
                "type": order_type,
                "price": price,
                "label": label,
            },
            private=True,
        )

    async def get_positions(self, currency: str = "BTC", kind: str | None = "future") -> list[dict[str, Any]]:
        return await self._call(
            "private/get_positions",
            {"currency": currency.upper(), "kind": kind},
            private=True,
        )

    async def get_order_book(self, instrument: str, depth: int | None = None) -> dict[str, Any]:
        return await self._call(
            "public/get_order_book",
            {"instrument_name": instrument, "depth": depth},
        )

    async def modify_order(self, order_id: str, amount: float, price: float | None = None) -> dict[str, Any]:
        return await self._call(
            "private/edit",
            {"order_id": order_id, "amount": amount, "price": price},
            private=True,
        )

    async def cancel_order(self, order_id: str) -> dict[str, Any]:
        return await self._call("private/cancel", {"order_id": order_id}, private=True)

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None
