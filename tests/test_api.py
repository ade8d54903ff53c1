from datetime import datetime
import httpx
import pytest
from unittest.mock import AsyncMock
from storefront.main import app, get_credentials, get_gateway, get_store, get_dispatcher
from storefront.gateway import MockGateway
from storefront.messaging import NotificationDispatcher
from storefront.models import Order, User
from storefront.store import OrderStore

AUTH = {"X-User-Id": "user-1"}


@pytest.fixture
def mock_store():
    store = AsyncMock(spec=OrderStore)
    store.set_status.return_value = True
    store.get_user.return_value = User(id="user-1", fcm_token="device-token")
    return store

@pytest.fixture
def mock_dispatcher():
    return AsyncMock(spec=NotificationDispatcher)

@pytest.fixture
def overrides(mock_store, mock_dispatcher, mock_credentials):
    app.dependency_overrides[get_credentials] = lambda: mock_credentials
    app.dependency_overrides[get_gateway] = lambda: MockGateway(base_url="https://accept.paymob.com", iframe_id="123")
    app.dependency_overrides[get_store] = lambda: mock_store
    app.dependency_overrides[get_dispatcher] = lambda: mock_dispatcher
    yield
    app.dependency_overrides.clear()

def api_client():
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

def stored_order(status="processing"):
    now = datetime(2026, 1, 1, 12, 0, 0)
    return Order(
        id="order-1", user_id="user-1", items='[{"product_id": "croissant", "quantity": 2}]',
        total=30.0, status=status, created_at=now, updated_at=now,
    )


@pytest.mark.asyncio
async def test_create_payment_endpoint_mock_mode(overrides):
    """
    Test case 1: Mock mode returns the canned payment key and checkout URL.
    """
    async with api_client() as client:
        response = await client.post("/api/payments", json={"amount": 49.99, "orderId": "order-1", "method": "card"}, headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "isMock": True,
        "paymentKey": "mock_payment_key",
        "checkoutUrl": "https://accept.paymob.com/api/acceptance/iframes/123?payment_token=mock_payment_key",
    }

@pytest.mark.asyncio
async def test_create_payment_endpoint_requires_identity(overrides):
    async with api_client() as client:
        response = await client.post("/api/payments", json={"amount": 10, "orderId": "order-1", "method": "card"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "unauthenticated"

@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"amount": 0, "orderId": "x", "method": "card"},
    {"amount": 10, "orderId": "", "method": "card"},
    {"amount": 10, "orderId": "x", "method": "bitcoin"},
    {"orderId": "x", "method": "card"},
])
async def test_create_payment_endpoint_invalid_argument(overrides, body):
    async with api_client() as client:
        response = await client.post("/api/payments", json=body, headers=AUTH)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid-argument"

@pytest.mark.asyncio
async def test_verify_callback_endpoint(overrides):
    async with api_client() as client:
        response = await client.post("/api/payments/verify", json={"hmacPayload": "anything", "orderId": "order-1"})

    assert response.status_code == 200
    assert response.json() == {
        "verified": True,
        "isMock": True,
        "transactionId": "mock_transaction_id",
        "orderId": "order-1",
    }

@pytest.mark.asyncio
async def test_verify_callback_endpoint_requires_payload(overrides):
    async with api_client() as client:
        response = await client.post("/api/payments/verify", json={})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "invalid-argument"

@pytest.mark.asyncio
async def test_advance_order_status_endpoint(overrides, mock_store, mock_dispatcher):
    """
    Test case 2: Advancing an order returns the transition and notifies the owner.
    """
    mock_store.get_order.return_value = stored_order("baking")

    async with api_client() as client:
        response = await client.post("/api/orders/order-1/advance", headers=AUTH)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "orderId": "order-1",
        "previousStatus": "baking",
        "newStatus": "out_for_delivery",
        "message": "Your order is out for delivery!",
    }
    mock_dispatcher.send_to_device.assert_awaited_once()

@pytest.mark.asyncio
@pytest.mark.parametrize("order, status_code, code", [
    (None, 404, "not-found"),
    (stored_order("delivered"), 412, "failed-precondition"),
    (stored_order("unknown_status"), 400, "invalid-argument"),
])
async def test_advance_order_status_endpoint_errors(overrides, mock_store, order, status_code, code):
    mock_store.get_order.return_value = order

    async with api_client() as client:
        response = await client.post("/api/orders/order-1/advance", headers=AUTH)

    assert response.status_code == status_code
    assert response.json()["error"]["code"] == code

@pytest.mark.asyncio
async def test_advance_order_status_endpoint_hides_storage_errors(overrides, mock_store):
    mock_store.get_order.side_effect = RuntimeError("password=hunter2")

    async with api_client() as client:
        response = await client.post("/api/orders/order-1/advance", headers=AUTH)

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "internal"
    assert "hunter2" not in response.text

@pytest.mark.asyncio
async def test_create_order_endpoint(overrides, mock_store, mock_dispatcher):
    """
    Test case 3: A placed order starts in processing and is announced.
    """
    created = {}

    async def add_order(order):
        order.created_at = order.updated_at = datetime(2026, 1, 1)
        created["order"] = order
        return order

    mock_store.add_order.side_effect = add_order

    async with api_client() as client:
        response = await client.post(
            "/api/orders",
            json={"items": [{"product_id": "croissant", "quantity": 2}], "total": 30.0},
            headers=AUTH,
        )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "processing"
    assert body["userId"] == "user-1"
    assert body["items"] == [{"product_id": "croissant", "quantity": 2}]
    assert created["order"].user_id == "user-1"
    mock_dispatcher.send_to_topic.assert_awaited_once()
    mock_store.mark_notification_sent.assert_awaited_once_with(body["id"])

@pytest.mark.asyncio
async def test_get_order_endpoint(overrides, mock_store):
    mock_store.get_order.return_value = stored_order()

    async with api_client() as client:
        response = await client.get("/api/orders/order-1", headers=AUTH)

    assert response.status_code == 200
    assert response.json()["total"] == 30.0

@pytest.mark.asyncio
async def test_get_order_endpoint_not_found(overrides, mock_store):
    mock_store.get_order.return_value = None

    async with api_client() as client:
        response = await client.get("/api/orders/missing", headers=AUTH)

    assert response.status_code == 404
