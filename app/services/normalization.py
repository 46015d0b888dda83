"""Mapping between the remote API payloads and the canonical entities.

The remote service is inconsistent about key casing: the same logical field
may arrive as ``quantityToday`` or ``quantity_today`` and optional fields may
be missing entirely. Every mapper below reads its fields through
:func:`first_present` so that all entities resolve aliases the same way
(camelCase first, snake_case second) and coerce values with the same
fallbacks. Outbound writes are encoded back into the snake_case wire format.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from app.schemas import (
    DAY_PERIODS,
    ORDER_STATUSES,
    Dish,
    DishIngredient,
    Ingredient,
    Order,
    OrderItem,
    PeriodStats,
    Prediction,
    RecordsSynced,
    SalesData,
    SubIngredient,
    SyncResult,
)

T = TypeVar("T")

DISH_WRITE_FIELDS = (
    "name",
    "price",
    "category",
    "description",
    "preparation_time",
    "difficulty_level",
    "is_active",
)


class PayloadShapeError(ValueError):
    """Raised when a payload cannot be mapped onto the expected entity shape."""


def first_present(source: Any, *keys: str, default: Any = None) -> Any:
    """Return the first non-null value found under ``keys`` in ``source``."""

    if not isinstance(source, Mapping):
        return default
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return default


def to_number(value: Any, fallback: float = 0.0) -> float:
    if value is None:
        return fallback
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    return parsed if math.isfinite(parsed) else fallback


def to_optional_number(value: Any) -> Optional[float]:
    if value is None:
        return None
    parsed = to_number(value, fallback=math.nan)
    return None if math.isnan(parsed) else parsed


def to_string(value: Any, fallback: str = "") -> str:
    return value if isinstance(value, str) else fallback


def to_optional_string(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def to_timestamp(value: Any) -> str:
    """Pass non-empty strings through, otherwise stamp the current UTC time."""

    if isinstance(value, str) and value:
        return value
    return utc_now_iso()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def map_sub_ingredient(raw: Any) -> Optional[SubIngredient]:
    if not isinstance(raw, Mapping):
        return None
    return SubIngredient(
        name=to_optional_string(raw.get("name")),
        description=to_optional_string(raw.get("description")),
        preparation_method=to_optional_string(
            first_present(raw, "preparationMethod", "preparation_method")
        ),
        cooking_time=to_optional_number(first_present(raw, "cookingTime", "cooking_time")),
        temperature=to_optional_string(raw.get("temperature")),
        notes=to_optional_string(raw.get("notes")),
    )


def map_dish_ingredient(raw: Any) -> DishIngredient:
    return DishIngredient(
        ingredient_id=to_string(first_present(raw, "ingredientId", "ingredient_id")),
        quantity=to_number(first_present(raw, "quantity")),
        unit=to_string(first_present(raw, "unit")),
        sub_ingredient=map_sub_ingredient(first_present(raw, "subIngredient", "sub_ingredient")),
    )


def map_dish(raw: Any) -> Dish:
    return Dish(
        id=to_string(first_present(raw, "id")),
        name=to_string(first_present(raw, "name")),
        # A negative price is treated like any other unusable number.
        price=max(to_number(first_present(raw, "price")), 0.0),
        category=to_string(first_present(raw, "category")),
        description=to_optional_string(first_present(raw, "description")),
        preparation_time=to_optional_number(first_present(raw, "preparationTime", "preparation_time")),
        difficulty_level=to_optional_string(first_present(raw, "difficultyLevel", "difficulty_level")),
        ingredients=[map_dish_ingredient(item) for item in to_list(first_present(raw, "ingredients"))],
        is_active=bool(first_present(raw, "isActive", "is_active", default=True)),
        created_at=to_timestamp(first_present(raw, "createdAt", "created_at")),
        updated_at=to_timestamp(first_present(raw, "updatedAt", "updated_at")),
    )


def map_ingredient(raw: Any) -> Ingredient:
    return Ingredient(
        id=to_string(first_present(raw, "id")),
        name=to_string(first_present(raw, "name")),
        unit=to_string(first_present(raw, "unit")),
        quantity_today=to_number(first_present(raw, "quantityToday", "quantity_today")),
        min_threshold=to_number(first_present(raw, "minThreshold", "min_threshold")),
        cost_per_unit=to_number(first_present(raw, "costPerUnit", "cost_per_unit")),
        supplier=to_optional_string(first_present(raw, "supplier")),
        created_at=to_timestamp(first_present(raw, "createdAt", "created_at")),
        updated_at=to_timestamp(first_present(raw, "updatedAt", "updated_at")),
    )


def map_order_item(raw: Any) -> OrderItem:
    return OrderItem(
        dish_id=to_string(first_present(raw, "dishId", "dish_id")),
        quantity=int(to_number(first_present(raw, "quantity"))),
        price=to_number(first_present(raw, "price")),
        notes=to_optional_string(first_present(raw, "notes")),
    )


def map_order(raw: Any) -> Order:
    status = first_present(raw, "status")
    return Order(
        id=to_string(first_present(raw, "id")),
        items=[map_order_item(item) for item in to_list(first_present(raw, "items"))],
        total=to_number(first_present(raw, "total")),
        subtotal=to_number(first_present(raw, "subtotal")),
        tax=to_number(first_present(raw, "tax")),
        timestamp=to_timestamp(first_present(raw, "timestamp")),
        status=status if status in ORDER_STATUSES else "pending",
        payment_method=to_string(first_present(raw, "paymentMethod", "payment_method")),
        customer_id=to_optional_string(first_present(raw, "customerId", "customer_id")),
        cashier_id=to_string(first_present(raw, "cashierId", "cashier_id")),
    )


def map_period_stats(raw: Any) -> PeriodStats:
    return PeriodStats(
        orders=int(to_number(first_present(raw, "orders"))),
        revenue=to_number(first_present(raw, "revenue")),
        avg_order=to_number(first_present(raw, "avgOrder", "avg_order")),
    )


def map_sales_data(raw: Any) -> SalesData:
    return SalesData(
        date=to_string(first_present(raw, "date")),
        morning=map_period_stats(first_present(raw, "morning")),
        afternoon=map_period_stats(first_present(raw, "afternoon")),
        evening=map_period_stats(first_present(raw, "evening")),
        total=map_period_stats(first_present(raw, "total")),
    )


def map_prediction(raw: Any) -> Prediction:
    period = first_present(raw, "period")
    factors = to_list(first_present(raw, "factors"))
    return Prediction(
        dish_id=to_string(first_present(raw, "dishId", "dish_id")),
        dish_name=to_optional_string(first_present(raw, "dishName", "dish_name")),
        period=period if period in DAY_PERIODS else "morning",
        predicted_demand=to_number(first_present(raw, "predictedDemand", "predicted_demand")),
        confidence=to_number(first_present(raw, "confidence")),
        recommended_prep=to_number(first_present(raw, "recommendedPrep", "recommended_prep")),
        factors=[factor for factor in factors if isinstance(factor, str)],
    )


def map_sync_result(raw: Any) -> SyncResult:
    counts = first_present(raw, "recordsSynced", "records_synced")
    return SyncResult(
        last_sync=to_timestamp(first_present(raw, "lastSync", "last_sync")),
        records_synced=RecordsSynced(
            dishes=int(to_number(first_present(counts, "dishes"))),
            ingredients=int(to_number(first_present(counts, "ingredients"))),
            orders=int(to_number(first_present(counts, "orders"))),
            analytics=int(to_number(first_present(counts, "analytics"))),
        ),
    )


def map_many(mapper: Callable[[Any], T]) -> Callable[[Any], List[T]]:
    """Lift an entity mapper to a top-level list payload."""

    def _map(raw: Any) -> List[T]:
        if not isinstance(raw, list):
            raise PayloadShapeError(f"Expected a list payload, got {type(raw).__name__}")
        return [mapper(item) for item in raw]

    return _map


def _present_fields(entity: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
    """Return the fields explicitly supplied on ``entity`` keyed by snake_case name."""

    if isinstance(entity, BaseModel):
        return entity.model_dump(exclude_unset=True)
    return {to_snake(str(key)): value for key, value in entity.items()}


def dish_ingredient_to_backend(ingredient: Union[DishIngredient, Mapping[str, Any]]) -> Dict[str, Any]:
    fields = _present_fields(ingredient)
    body: Dict[str, Any] = {
        "ingredient_id": fields.get("ingredient_id", ""),
        "quantity": fields.get("quantity", 0),
        "unit": fields.get("unit", ""),
    }
    sub_ingredient = fields.get("sub_ingredient")
    if sub_ingredient:
        sub_fields = _present_fields(sub_ingredient)
        body["sub_ingredient"] = {key: value for key, value in sub_fields.items() if value is not None}
    return body


def dish_to_backend(dish: Union[Dish, Mapping[str, Any]]) -> Dict[str, Any]:
    """Encode the supplied dish fields; absent or null fields are left out."""

    fields = _present_fields(dish)
    body = {name: fields[name] for name in DISH_WRITE_FIELDS if fields.get(name) is not None}
    ingredients = fields.get("ingredients")
    if ingredients is not None:
        body["ingredients"] = [dish_ingredient_to_backend(item) for item in ingredients]
    return body


def order_item_to_backend(item: Union[OrderItem, Mapping[str, Any]]) -> Dict[str, Any]:
    fields = _present_fields(item)
    body = {
        "dish_id": fields.get("dish_id", ""),
        "quantity": fields.get("quantity", 0),
        "price": fields.get("price", 0),
    }
    if fields.get("notes") is not None:
        body["notes"] = fields["notes"]
    return body


def order_to_backend(order: Union[Order, Mapping[str, Any]]) -> Dict[str, Any]:
    """Encode an order for creation; identifier and timestamp are never sent."""

    fields = _present_fields(order)
    items: Sequence[Any] = fields.get("items") or []
    body: Dict[str, Any] = {
        "items": [order_item_to_backend(item) for item in items],
        "subtotal": fields.get("subtotal", 0),
        "tax": fields.get("tax", 0),
        "total": fields.get("total", 0),
        "payment_method": fields.get("payment_method", ""),
        "cashier_id": fields.get("cashier_id", ""),
    }
    if fields.get("customer_id") is not None:
        body["customer_id"] = fields["customer_id"]
    return body


__all__ = [
    "PayloadShapeError",
    "dish_to_backend",
    "first_present",
    "map_dish",
    "map_ingredient",
    "map_many",
    "map_order",
    "map_prediction",
    "map_sales_data",
    "map_sync_result",
    "order_to_backend",
    "to_number",
    "to_string",
    "to_timestamp",
]
