"""In-memory source of truth kept in step with the remote API and the local cache."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import ValidationError

from app.schemas import (
    CanonicalModel,
    Dish,
    Ingredient,
    Order,
    OrderItem,
    Prediction,
    SalesData,
    StoreSnapshot,
)
from app.services import inventory
from app.services.gateway import ApiResult, RemoteGateway
from app.services.local_cache import DISHES_KEY, INGREDIENTS_KEY, ORDERS_KEY, LocalCache

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=CanonicalModel)

INSUFFICIENT_STOCK_ERROR = "Insufficient ingredients for some dishes"
EMPTY_ORDER_ERROR = "Order has no items"


class LoadOutcome(str, Enum):
    """Result of a read-through load."""

    FRESH = "fresh"
    STALE = "stale"
    EMPTY = "empty"


class SyncStore:
    """Owns the canonical dishes, ingredients and orders.

    Loads read through the gateway and fall back to the local cache when the
    remote service fails. Writes are only applied locally once the server has
    confirmed them, using the entity the server returned. Actions never raise;
    failures are reported through :attr:`error`.

    Calls are not serialized: if two loads for the same collection overlap,
    whichever response arrives last is the one that is kept.
    """

    def __init__(self, gateway: RemoteGateway, cache: LocalCache):
        self.gateway = gateway
        self.cache = cache

        self.dishes: List[Dish] = []
        self.ingredients: List[Ingredient] = []
        self.orders: List[Order] = []
        self.sales_data: List[SalesData] = []
        self.predictions: List[Prediction] = []

        self.is_loading = False
        self.error: Optional[str] = None
        self.last_sync: Optional[str] = None
        self.load_outcomes: Dict[str, LoadOutcome] = {}

    # State helpers

    def _begin(self) -> None:
        self.is_loading = True
        self.error = None

    def _fail(self, result: ApiResult[Any], fallback: str) -> None:
        self.error = result.error or fallback
        self.is_loading = False

    def _persist(self, key: str, items: Sequence[CanonicalModel]) -> None:
        """Mirror a collection to the cache; a failed write leaves memory as is."""

        try:
            self.cache.write_list(key, [item.to_cache() for item in items])
        except OSError as exc:
            logger.error("Could not write %s to the local cache: %s", key, exc)
            return
        self.save_snapshot()

    def _read_cache(self, key: str, model: Type[M]) -> List[M]:
        entities: List[M] = []
        for row in self.cache.read_list(key):
            try:
                entities.append(model.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping invalid cached %s entry: %s", key, exc)
        return entities

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            dishes=list(self.dishes),
            ingredients=list(self.ingredients),
            orders=list(self.orders),
            last_sync=self.last_sync,
        )

    def save_snapshot(self) -> None:
        try:
            self.cache.write_snapshot(self.snapshot().to_cache())
        except OSError as exc:
            logger.error("Could not write the store snapshot: %s", exc)

    def restore(self) -> bool:
        """Adopt the combined snapshot persisted by a previous session."""

        raw = self.cache.read_snapshot()
        if raw is None:
            return False
        try:
            snapshot = StoreSnapshot.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Ignoring invalid store snapshot: %s", exc)
            return False
        self.dishes = snapshot.dishes
        self.ingredients = snapshot.ingredients
        self.orders = snapshot.orders
        self.last_sync = snapshot.last_sync
        return True

    # Read-through loads

    async def _read_through(
        self,
        key: str,
        model: Type[M],
        fetch: Callable[[], Awaitable[ApiResult[List[M]]]],
    ) -> LoadOutcome:
        self._begin()
        result = await fetch()

        if result.success and result.data is not None:
            items = list(result.data)
            setattr(self, key, items)
            self._persist(key, items)
            self.is_loading = False
            outcome = LoadOutcome.FRESH
        else:
            message = result.error or f"Failed to load {key}"
            fallback = self._read_cache(key, model)
            if fallback:
                logger.warning("Serving %d cached %s: %s", len(fallback), key, message)
                setattr(self, key, fallback)
                outcome = LoadOutcome.STALE
            else:
                logger.warning("No %s available: %s", key, message)
                outcome = LoadOutcome.EMPTY
            self.error = message
            self.is_loading = False

        self.load_outcomes[key] = outcome
        return outcome

    async def load_dishes(self) -> LoadOutcome:
        return await self._read_through(DISHES_KEY, Dish, self.gateway.get_dishes)

    async def load_ingredients(self) -> LoadOutcome:
        return await self._read_through(INGREDIENTS_KEY, Ingredient, self.gateway.get_ingredients)

    async def load_orders(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> LoadOutcome:
        return await self._read_through(
            ORDERS_KEY,
            Order,
            lambda: self.gateway.get_orders(start_date, end_date),
        )

    # Dishes

    async def add_dish(self, dish: Union[Dish, Mapping[str, Any]]) -> Optional[Dish]:
        self._begin()
        result = await self.gateway.create_dish(dish)
        if not result.success or result.data is None:
            self._fail(result, "Failed to add dish")
            return None
        self.dishes = [*self.dishes, result.data]
        self._persist(DISHES_KEY, self.dishes)
        self.is_loading = False
        return result.data

    async def update_dish(self, dish_id: str, changes: Union[Dish, Mapping[str, Any]]) -> Optional[Dish]:
        self._begin()
        result = await self.gateway.update_dish(dish_id, changes)
        if not result.success or result.data is None:
            self._fail(result, "Failed to update dish")
            return None
        updated = result.data
        self.dishes = [updated if dish.id == dish_id else dish for dish in self.dishes]
        self._persist(DISHES_KEY, self.dishes)
        self.is_loading = False
        return updated

    async def delete_dish(self, dish_id: str) -> bool:
        self._begin()
        result = await self.gateway.delete_dish(dish_id)
        if not result.success:
            self._fail(result, "Failed to delete dish")
            return False
        self.dishes = [dish for dish in self.dishes if dish.id != dish_id]
        self._persist(DISHES_KEY, self.dishes)
        self.is_loading = False
        return True

    # Ingredients

    async def update_ingredient_quantity(self, ingredient_id: str, quantity: float) -> Optional[Ingredient]:
        self._begin()
        result = await self.gateway.update_ingredient_quantity(ingredient_id, quantity)
        if not result.success or result.data is None:
            self._fail(result, "Failed to update ingredient")
            return None
        updated = result.data
        self.ingredients = [
            updated if ingredient.id == ingredient_id else ingredient for ingredient in self.ingredients
        ]
        self._persist(INGREDIENTS_KEY, self.ingredients)
        self.is_loading = False
        return updated

    def low_stock_ingredients(self) -> List[Ingredient]:
        return inventory.low_stock_ingredients(self.ingredients)

    # Orders

    async def create_order(self, order: Union[Order, Mapping[str, Any]]) -> Optional[Order]:
        self._begin()
        result = await self.gateway.create_order(order)
        if not result.success or result.data is None:
            self._fail(result, "Failed to create order")
            return None
        self.orders = [*self.orders, result.data]
        self._persist(ORDERS_KEY, self.orders)
        self.is_loading = False
        return result.data

    async def complete_order(
        self,
        items: Sequence[OrderItem],
        *,
        cashier_id: str,
        payment_method: str = "cash",
        customer_id: Optional[str] = None,
        tax_rate: float = 0.0,
    ) -> Optional[Order]:
        """Record an order and draw its ingredients from stock.

        Nothing is sent when the order is empty, a dish is unknown or today's
        stock cannot cover the combined demand of all lines. Ingredient
        quantities are updated one by one after the order has been accepted;
        a rejected update leaves the order in place and keeps its error.
        """

        if not items:
            self.error = EMPTY_ORDER_ERROR
            return None

        if not inventory.can_fulfil(items, self.dishes, self.ingredients):
            self.error = INSUFFICIENT_STOCK_ERROR
            return None

        priced_items = [
            item.model_copy(update={"price": inventory.find_dish(self.dishes, item.dish_id).price})
            for item in items
        ]
        subtotal = inventory.order_subtotal(priced_items, self.dishes)
        tax = round(subtotal * tax_rate, 2)
        order = Order(
            items=priced_items,
            subtotal=subtotal,
            tax=tax,
            total=subtotal + tax,
            status="completed",
            payment_method=payment_method,
            customer_id=customer_id,
            cashier_id=cashier_id,
        )

        created = await self.create_order(order)
        if created is None:
            return None

        stock_errors: List[str] = []
        for ingredient_id, used in inventory.ingredient_consumption(priced_items, self.dishes).items():
            ingredient = inventory.find_ingredient(self.ingredients, ingredient_id)
            if ingredient is None:
                continue
            if await self.update_ingredient_quantity(ingredient_id, ingredient.quantity_today - used) is None:
                stock_errors.append(self.error or f"Failed to update stock for {ingredient_id}")
        if stock_errors:
            # The order stands; the first rejected stock update is reported.
            self.error = stock_errors[0]
        return created

    # Analytics

    async def load_sales_data(self, start_date: str, end_date: str) -> bool:
        self._begin()
        result = await self.gateway.get_sales_data(start_date, end_date)
        if not result.success or result.data is None:
            self._fail(result, "Failed to load sales data")
            return False
        self.sales_data = list(result.data)
        self.is_loading = False
        return True

    async def get_daily_sales(self, date: str) -> Optional[SalesData]:
        result = await self.gateway.get_daily_sales(date)
        if result.success and result.data is not None:
            return result.data
        return None

    async def load_predictions(self, date: str) -> bool:
        self._begin()
        result = await self.gateway.get_predictions(date)
        if not result.success or result.data is None:
            self._fail(result, "Failed to load predictions")
            return False
        self.predictions = list(result.data)
        self.is_loading = False
        return True

    async def generate_predictions(self) -> bool:
        self._begin()
        result = await self.gateway.generate_predictions()
        if not result.success:
            self._fail(result, "Failed to generate predictions")
            return False
        self.is_loading = False
        return True

    # Sync

    async def sync_with_database(self) -> bool:
        """Ask the backend to sync, then reload every collection in turn."""

        self._begin()
        result = await self.gateway.sync_data()
        if not result.success or result.data is None:
            self._fail(result, "Failed to sync")
            return False

        self.last_sync = result.data.last_sync
        self.is_loading = False
        logger.info("Sync completed at %s, reloading collections.", self.last_sync)
        await self.load_dishes()
        await self.load_ingredients()
        await self.load_orders()
        return True


__all__ = ["EMPTY_ORDER_ERROR", "INSUFFICIENT_STOCK_ERROR", "LoadOutcome", "SyncStore"]
