import asyncio
import json

import httpx

from app.services.gateway import (
    DECODE_FAILURE,
    SERVER_REJECTED,
    TRANSPORT_FAILURE,
    RemoteGateway,
    extract_error_message,
)


def test_get_dishes_normalizes_plain_list(backend):
    backend.on(
        "GET",
        "/api/dishes",
        json=[
            {"id": "d-1", "name": "Margherita", "price": "11.5", "category": "Pizza"},
            {"id": "d-2", "name": "Tiramisu", "price": 6, "is_active": False},
        ],
    )

    result = asyncio.run(backend.gateway().get_dishes())

    assert result.success
    assert [dish.id for dish in result.data] == ["d-1", "d-2"]
    assert result.data[0].price == 11.5
    assert result.data[1].is_active is False


def test_success_envelope_is_unwrapped(backend):
    backend.on(
        "GET",
        "/api/ingredients",
        json={"success": True, "data": [{"id": "i-1", "quantity_today": 3, "minThreshold": 5}]},
    )

    result = asyncio.run(backend.gateway().get_ingredients())

    assert result.success
    assert result.data[0].quantity_today == 3
    assert result.data[0].min_threshold == 5


def test_logical_failure_on_http_200_is_a_rejection(backend):
    backend.on("GET", "/api/dishes", json={"success": False, "error": "Database offline"})

    result = asyncio.run(backend.gateway().get_dishes())

    assert not result.success
    assert result.kind == SERVER_REJECTED
    assert result.error == "Database offline"


def test_http_error_uses_detail_then_generic_message(backend):
    backend.on("GET", "/api/dishes", status=422, json={"detail": "Invalid filter"})
    backend.on("GET", "/api/ingredients", status=503, content=b"<html>down</html>")

    gateway = backend.gateway()
    detailed = asyncio.run(gateway.get_dishes())
    generic = asyncio.run(gateway.get_ingredients())

    assert detailed.kind == SERVER_REJECTED
    assert detailed.error == "Invalid filter"
    assert generic.kind == SERVER_REJECTED
    assert generic.error == "Request failed with status 503"


def test_transport_error_is_reported_not_raised(backend):
    backend.fail("GET", "/api/orders", "Connection refused")

    result = asyncio.run(backend.gateway().get_orders())

    assert not result.success
    assert result.kind == TRANSPORT_FAILURE
    assert result.error == "Connection refused"


def test_transport_error_without_text_gets_generic_message(backend):
    backend.fail("GET", "/api/orders", "")

    result = asyncio.run(backend.gateway().get_orders())

    assert result.error == "Network request failed"


def test_invalid_json_body_is_a_decode_failure(backend):
    backend.on("GET", "/api/dishes", content=b"not json")

    result = asyncio.run(backend.gateway().get_dishes())

    assert not result.success
    assert result.kind == DECODE_FAILURE


def test_unexpected_shape_is_a_decode_failure(backend):
    backend.on("GET", "/api/dishes", json={"id": "d-1"})

    result = asyncio.run(backend.gateway().get_dishes())

    assert result.kind == DECODE_FAILURE


def test_delete_succeeds_without_body(backend):
    backend.on("DELETE", "/api/dishes/d-1", status=204)

    result = asyncio.run(backend.gateway().delete_dish("d-1"))

    assert result.success
    assert result.data is None


def test_update_dish_sends_only_supplied_fields(backend):
    backend.on("PUT", "/api/dishes/d-1", json={"id": "d-1", "name": "Margherita", "price": 12})

    result = asyncio.run(backend.gateway().update_dish("d-1", {"price": 12}))

    assert result.success
    assert result.data.price == 12
    sent = json.loads(backend.requests[-1].content)
    assert sent == {"price": 12}


def test_update_ingredient_quantity_body(backend):
    backend.on("PUT", "/api/ingredients/i-1/quantity", json={"id": "i-1", "quantityToday": 4})

    result = asyncio.run(backend.gateway().update_ingredient_quantity("i-1", 4))

    assert result.data.quantity_today == 4
    assert json.loads(backend.requests[-1].content) == {"quantity": 4}


def test_get_orders_passes_date_filters(backend):
    backend.on("GET", "/api/orders", json=[])

    result = asyncio.run(backend.gateway().get_orders("2024-05-01", "2024-05-07"))

    assert result.success
    assert result.data == []
    params = backend.requests[-1].url.params
    assert params["start_date"] == "2024-05-01"
    assert params["end_date"] == "2024-05-07"


def test_analytics_and_predictions_endpoints(backend):
    backend.on("GET", "/api/analytics/sales", json=[{"date": "2024-05-01", "total": {"orders": 4}}])
    backend.on("GET", "/api/analytics/daily-sales", json={"date": "2024-05-01"})
    backend.on("GET", "/api/predictions", json=[{"dishId": "d-1", "period": "evening"}])
    backend.on("POST", "/api/predictions/generate", json={"success": True, "data": {"generated": 3}})

    gateway = backend.gateway()
    sales = asyncio.run(gateway.get_sales_data("2024-05-01", "2024-05-07"))
    daily = asyncio.run(gateway.get_daily_sales("2024-05-01"))
    predictions = asyncio.run(gateway.get_predictions("2024-05-01"))
    generated = asyncio.run(gateway.generate_predictions())

    assert sales.data[0].total.orders == 4
    assert daily.data.date == "2024-05-01"
    assert predictions.data[0].period == "evening"
    assert generated.data == {"generated": 3}


def test_base_url_trailing_slash_is_stripped():
    gateway = RemoteGateway("http://api.test/", transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    assert gateway.base_url == "http://api.test"


def test_extract_error_message_ignores_non_string_fields():
    assert extract_error_message({"error": {"code": 1}, "detail": "bad"}, "fallback") == "bad"
    assert extract_error_message(None, "fallback") == "fallback"
