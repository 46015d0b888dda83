"""Stock level helpers shared by the store and its consumers."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from app.schemas import Dish, Ingredient, OrderItem


def low_stock_ingredients(ingredients: Iterable[Ingredient]) -> List[Ingredient]:
    """Return ingredients at or below their minimum threshold."""

    return [ingredient for ingredient in ingredients if ingredient.is_low_stock]


def find_dish(dishes: Iterable[Dish], dish_id: str) -> Optional[Dish]:
    return next((dish for dish in dishes if dish.id == dish_id), None)


def find_ingredient(ingredients: Iterable[Ingredient], ingredient_id: str) -> Optional[Ingredient]:
    return next((ingredient for ingredient in ingredients if ingredient.id == ingredient_id), None)


def can_prepare(dish: Dish, quantity: float, ingredients: Sequence[Ingredient]) -> bool:
    """Whether every recipe line of ``dish`` is covered by today's stock."""

    for line in dish.ingredients:
        available = find_ingredient(ingredients, line.ingredient_id)
        if available is None or available.quantity_today < line.quantity * quantity:
            return False
    return True


def ingredient_consumption(items: Iterable[OrderItem], dishes: Sequence[Dish]) -> Dict[str, float]:
    """Total quantity of each ingredient used by ``items``; unknown dishes are skipped."""

    consumed: Dict[str, float] = defaultdict(float)
    for item in items:
        dish = find_dish(dishes, item.dish_id)
        if dish is None:
            continue
        for line in dish.ingredients:
            if not line.ingredient_id:
                continue
            consumed[line.ingredient_id] += line.quantity * item.quantity
    return dict(consumed)


def can_fulfil(items: Iterable[OrderItem], dishes: Sequence[Dish], ingredients: Sequence[Ingredient]) -> bool:
    """Whether today's stock covers every line of an order taken together.

    An unknown dish makes the whole order unfulfillable.
    """

    items = list(items)
    if any(find_dish(dishes, item.dish_id) is None for item in items):
        return False
    for ingredient_id, needed in ingredient_consumption(items, dishes).items():
        available = find_ingredient(ingredients, ingredient_id)
        if available is None or available.quantity_today < needed:
            return False
    return True


def order_subtotal(items: Iterable[OrderItem], dishes: Sequence[Dish]) -> float:
    total = 0.0
    for item in items:
        dish = find_dish(dishes, item.dish_id)
        if dish is not None:
            total += dish.price * item.quantity
    return total


__all__ = [
    "can_fulfil",
    "can_prepare",
    "find_dish",
    "find_ingredient",
    "ingredient_consumption",
    "low_stock_ingredients",
    "order_subtotal",
]
