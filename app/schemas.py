from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OrderStatus = Literal["pending", "completed", "cancelled"]
DayPeriod = Literal["morning", "afternoon", "evening"]

ORDER_STATUSES = ("pending", "completed", "cancelled")
DAY_PERIODS = ("morning", "afternoon", "evening")


class CanonicalModel(BaseModel):
    """Base for entities kept in memory and mirrored to the local cache.

    Attributes are snake_case in Python and serialized with camelCase aliases,
    which is also the shape written to the cache files. Both spellings are
    accepted on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_cache(self) -> Dict:
        return self.model_dump(by_alias=True, mode="json")


class SubIngredient(CanonicalModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")
    name: Optional[str] = None
    description: Optional[str] = None
    preparation_method: Optional[str] = None
    cooking_time: Optional[float] = None
    temperature: Optional[str] = None
    notes: Optional[str] = None


class DishIngredient(CanonicalModel):
    ingredient_id: str = ""
    quantity: float = 0.0
    unit: str = ""
    sub_ingredient: Optional[SubIngredient] = None


class Dish(CanonicalModel):
    id: str = ""
    name: str = ""
    price: float = Field(default=0.0, ge=0)
    category: str = ""
    description: Optional[str] = None
    preparation_time: Optional[float] = None
    difficulty_level: Optional[str] = None
    ingredients: List[DishIngredient] = Field(default_factory=list)
    is_active: bool = True
    created_at: str = ""
    updated_at: str = ""


class Ingredient(CanonicalModel):
    id: str = ""
    name: str = ""
    unit: str = ""
    quantity_today: float = 0.0
    min_threshold: float = 0.0
    cost_per_unit: float = 0.0
    supplier: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_low_stock(self) -> bool:
        return self.quantity_today <= self.min_threshold


class OrderItem(CanonicalModel):
    dish_id: str = ""
    quantity: int = 0
    price: float = 0.0
    notes: Optional[str] = None


class Order(CanonicalModel):
    id: str = ""
    items: List[OrderItem] = Field(default_factory=list)
    total: float = 0.0
    subtotal: float = 0.0
    tax: float = 0.0
    timestamp: str = ""
    status: OrderStatus = "pending"
    payment_method: str = ""
    customer_id: Optional[str] = None
    cashier_id: str = ""


class PeriodStats(CanonicalModel):
    orders: int = 0
    revenue: float = 0.0
    avg_order: float = 0.0


class SalesData(CanonicalModel):
    date: str = ""
    morning: PeriodStats = Field(default_factory=PeriodStats)
    afternoon: PeriodStats = Field(default_factory=PeriodStats)
    evening: PeriodStats = Field(default_factory=PeriodStats)
    total: PeriodStats = Field(default_factory=PeriodStats)


class Prediction(CanonicalModel):
    dish_id: str = ""
    dish_name: Optional[str] = None
    period: DayPeriod = "morning"
    predicted_demand: float = 0.0
    confidence: float = 0.0
    recommended_prep: float = 0.0
    factors: List[str] = Field(default_factory=list)


class RecordsSynced(CanonicalModel):
    dishes: int = 0
    ingredients: int = 0
    orders: int = 0
    analytics: int = 0


class SyncResult(CanonicalModel):
    last_sync: str
    records_synced: RecordsSynced = Field(default_factory=RecordsSynced)


class StoreSnapshot(CanonicalModel):
    dishes: List[Dish] = Field(default_factory=list)
    ingredients: List[Ingredient] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    last_sync: Optional[str] = None
