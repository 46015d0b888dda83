"""Async client for the remote restaurant API.

Every public coroutine returns an :class:`ApiResult` and never raises: network
errors, rejected requests and unusable payloads are all reported as tagged
failures so that the store can decide whether to fall back to its cache.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Literal, Mapping, Optional, TypeVar, Union
from urllib.parse import quote

import httpx

from app.config.settings import get_settings
from app.schemas import Dish, Ingredient, Order, Prediction, SalesData, SyncResult
from app.services.normalization import (
    dish_to_backend,
    map_dish,
    map_ingredient,
    map_many,
    map_order,
    map_prediction,
    map_sales_data,
    map_sync_result,
    order_to_backend,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorKind = Literal["transport-failure", "server-rejected", "decode-failure"]

TRANSPORT_FAILURE: ErrorKind = "transport-failure"
SERVER_REJECTED: ErrorKind = "server-rejected"
DECODE_FAILURE: ErrorKind = "decode-failure"

_UNDECODABLE = object()


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Outcome of a gateway call."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "ApiResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "ApiResult[T]":
        return cls(success=False, error=message, kind=kind)


def extract_error_message(payload: Any, fallback: str) -> str:
    """Prefer the server-provided ``error`` then ``detail`` string."""

    if isinstance(payload, Mapping):
        for key in ("error", "detail"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return fallback


def _decode_json(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return _UNDECODABLE


class RemoteGateway:
    """Thin wrapper around ``httpx.AsyncClient`` speaking the restaurant API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        resolved = base_url if base_url is not None else get_settings().api_base_url
        self.base_url = resolved.rstrip("/")
        self._transport = transport
        self._headers = {"Accept": "application/json", **(headers or {})}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        mapper: Optional[Callable[[Any], T]] = None,
    ) -> ApiResult[T]:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers,
                transport=self._transport,
            ) as client:
                response = await client.request(method, path, params=params, json=json_body)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("%s %s unreachable: %s", method, path, exc)
            return ApiResult.failure(TRANSPORT_FAILURE, str(exc) or "Network request failed")

        decoded = _decode_json(response)
        payload = None if decoded is _UNDECODABLE else decoded

        if not response.is_success:
            message = extract_error_message(payload, f"Request failed with status {response.status_code}")
            logger.warning("%s %s rejected (%s): %s", method, path, response.status_code, message)
            return ApiResult.failure(SERVER_REJECTED, message)

        raw = payload
        if isinstance(payload, dict) and "success" in payload:
            if not payload.get("success"):
                message = extract_error_message(payload, "Request failed")
                logger.warning("%s %s reported failure: %s", method, path, message)
                return ApiResult.failure(SERVER_REJECTED, message)
            raw = payload.get("data")

        if mapper is None:
            return ApiResult.ok(raw)

        if raw is None:
            message = (
                "Response body is not valid JSON"
                if decoded is _UNDECODABLE
                else "Response did not include any data"
            )
            logger.warning("%s %s: %s", method, path, message)
            return ApiResult.failure(DECODE_FAILURE, message)

        try:
            return ApiResult.ok(mapper(raw))
        except (TypeError, ValueError) as exc:
            logger.warning("%s %s returned an unexpected payload: %s", method, path, exc)
            return ApiResult.failure(DECODE_FAILURE, str(exc) or "Unexpected response payload")

    # Dishes

    async def get_dishes(self) -> ApiResult[List[Dish]]:
        return await self._request("GET", "/api/dishes", mapper=map_many(map_dish))

    async def create_dish(self, dish: Union[Dish, Mapping[str, Any]]) -> ApiResult[Dish]:
        return await self._request("POST", "/api/dishes", json_body=dish_to_backend(dish), mapper=map_dish)

    async def update_dish(self, dish_id: str, changes: Union[Dish, Mapping[str, Any]]) -> ApiResult[Dish]:
        return await self._request(
            "PUT",
            f"/api/dishes/{quote(dish_id, safe='')}",
            json_body=dish_to_backend(changes),
            mapper=map_dish,
        )

    async def delete_dish(self, dish_id: str) -> ApiResult[None]:
        return await self._request("DELETE", f"/api/dishes/{quote(dish_id, safe='')}")

    # Ingredients

    async def get_ingredients(self) -> ApiResult[List[Ingredient]]:
        return await self._request("GET", "/api/ingredients", mapper=map_many(map_ingredient))

    async def update_ingredient_quantity(self, ingredient_id: str, quantity: float) -> ApiResult[Ingredient]:
        return await self._request(
            "PUT",
            f"/api/ingredients/{quote(ingredient_id, safe='')}/quantity",
            json_body={"quantity": quantity},
            mapper=map_ingredient,
        )

    # Orders

    async def create_order(self, order: Union[Order, Mapping[str, Any]]) -> ApiResult[Order]:
        return await self._request("POST", "/api/orders", json_body=order_to_backend(order), mapper=map_order)

    async def get_orders(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> ApiResult[List[Order]]:
        params: Dict[str, str] = {}
        if start_date:
            params["start_date"] = start_date
        if end_date:
            params["end_date"] = end_date
        return await self._request("GET", "/api/orders", params=params or None, mapper=map_many(map_order))

    # Analytics

    async def get_sales_data(self, start_date: str, end_date: str) -> ApiResult[List[SalesData]]:
        return await self._request(
            "GET",
            "/api/analytics/sales",
            params={"start_date": start_date, "end_date": end_date},
            mapper=map_many(map_sales_data),
        )

    async def get_daily_sales(self, date: str) -> ApiResult[SalesData]:
        return await self._request(
            "GET",
            "/api/analytics/daily-sales",
            params={"date": date},
            mapper=map_sales_data,
        )

    # Predictions

    async def get_predictions(self, date: str) -> ApiResult[List[Prediction]]:
        return await self._request(
            "GET",
            "/api/predictions",
            params={"date": date},
            mapper=map_many(map_prediction),
        )

    async def generate_predictions(self) -> ApiResult[Any]:
        return await self._request("POST", "/api/predictions/generate")

    # Sync

    async def sync_data(self) -> ApiResult[SyncResult]:
        return await self._request("POST", "/api/sync", mapper=map_sync_result)


__all__ = [
    "ApiResult",
    "DECODE_FAILURE",
    "RemoteGateway",
    "SERVER_REJECTED",
    "TRANSPORT_FAILURE",
    "extract_error_message",
]
