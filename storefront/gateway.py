"""
Payment gateway client.

A live payment setup is three ordered calls against the gateway (authenticate,
create the remote order, mint a payment key). Without real credentials the
mock gateway hands back canned values and never touches the network. Which
one is used is decided once, by ``select_gateway``.
"""
import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional
from urllib.parse import quote

import httpx

from storefront import config
from storefront.config import GatewayCredentials, is_mock
from storefront.errors import GatewayError, InvalidArgument

logger = logging.getLogger(__name__)

AUTH_PATH = "/api/auth/tokens"
ORDER_PATH = "/api/ecommerce/orders"
PAYMENT_KEY_PATH = "/api/acceptance/payment_keys"

MOCK_PAYMENT_KEY = "mock_payment_key"

# Real billing details are not collected yet.
BILLING_DATA = {
    "apartment": "NA",
    "email": "customer@example.com",
    "floor": "NA",
    "first_name": "Nory",
    "street": "NA",
    "building": "NA",
    "phone_number": "+201000000000",
    "shipping_method": "NA",
    "postal_code": "NA",
    "city": "Cairo",
    "country": "Egypt",
    "last_name": "Shop",
    "state": "NA",
}


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    WALLET = "wallet"


@dataclass(frozen=True)
class PaymentRequest:
    amount: Decimal
    amount_cents: int
    order_id: str
    method: PaymentMethod

    @classmethod
    def parse(cls, amount, order_id, method) -> "PaymentRequest":
        if isinstance(amount, bool) or not isinstance(amount, (int, float, Decimal)):
            raise InvalidArgument("Amount must be a positive number.")
        try:
            value = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidArgument("Amount must be a positive number.")
        if not value.is_finite() or value <= 0:
            raise InvalidArgument("Amount must be a positive number.")
        # Converted here so an unpayable amount never reaches the gateway
        try:
            amount_cents = to_minor_units(value)
        except InvalidOperation:
            raise InvalidArgument("Amount is too large.")
        if amount_cents <= 0:
            raise InvalidArgument("Amount must be at least one minor currency unit.")

        if not isinstance(order_id, str) or not order_id:
            raise InvalidArgument("Order ID is required.")

        try:
            payment_method = PaymentMethod(method)
        except ValueError:
            raise InvalidArgument('Payment method must be either "card" or "wallet".')

        return cls(amount=value, amount_cents=amount_cents, order_id=order_id, method=payment_method)


@dataclass(frozen=True)
class RemoteOrder:
    id: int
    token: str


@dataclass(frozen=True)
class PaymentResult:
    payment_key: str
    checkout_url: Optional[str]
    is_mock: bool


def to_minor_units(amount) -> int:
    """Convert to whole cents, rounding half up at the cent boundary (49.995 -> 5000)."""
    cents = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(cents * 100)


def checkout_url_for(method: PaymentMethod, payment_key: str,
                     base_url: str = config.PAYMOB_BASE_URL,
                     iframe_id: str = config.PAYMOB_IFRAME_ID) -> Optional[str]:
    # Wallet checkouts are completed by the mobile client with the raw key.
    if method is not PaymentMethod.CARD:
        return None
    return f"{base_url.rstrip('/')}/api/acceptance/iframes/{iframe_id}?payment_token={quote(payment_key, safe='')}"


class GatewayClient(ABC):
    """Strategy interface: produces a checkout artifact for a validated payment request."""

    is_mock = False

    @abstractmethod
    async def create_payment(self, request: PaymentRequest) -> PaymentResult:
        raise NotImplementedError


class MockGateway(GatewayClient):
    is_mock = True

    def __init__(self, base_url: str = config.PAYMOB_BASE_URL, iframe_id: str = config.PAYMOB_IFRAME_ID):
        self.base_url = base_url
        self.iframe_id = iframe_id

    async def create_payment(self, request: PaymentRequest) -> PaymentResult:
        logger.info("Mock payment created for order %s", request.order_id)
        # Canned card iframe URL whatever the method; the wallet rule applies to live payments only
        return PaymentResult(
            payment_key=MOCK_PAYMENT_KEY,
            checkout_url=checkout_url_for(PaymentMethod.CARD, MOCK_PAYMENT_KEY, self.base_url, self.iframe_id),
            is_mock=True,
        )


class PaymobGateway(GatewayClient):
    def __init__(
        self,
        credentials: GatewayCredentials,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: str = config.PAYMOB_BASE_URL,
        iframe_id: str = config.PAYMOB_IFRAME_ID,
        timeout: float = config.GATEWAY_TIMEOUT,
    ):
        self.credentials = credentials
        self.http_client = http_client
        self.base_url = base_url.rstrip("/")
        self.iframe_id = iframe_id
        self.timeout = timeout

    async def create_payment(self, request: PaymentRequest) -> PaymentResult:
        if self.http_client is not None:
            return await self._create_payment(self.http_client, request)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await self._create_payment(client, request)

    async def _create_payment(self, client: httpx.AsyncClient, request: PaymentRequest) -> PaymentResult:
        auth_token = await self.authenticate(client)
        remote_order = await self.create_remote_order(client, auth_token, request)
        payment_key = await self.mint_payment_key(client, auth_token, remote_order, request)
        logger.info("Payment key minted for order %s (remote order %s)", request.order_id, remote_order.id)
        return PaymentResult(
            payment_key=payment_key,
            checkout_url=checkout_url_for(request.method, payment_key, self.base_url, self.iframe_id),
            is_mock=False,
        )

    async def authenticate(self, client: httpx.AsyncClient) -> str:
        data = await self._post(client, "authenticate", AUTH_PATH, {"api_key": self.credentials.api_key})
        return self._field(data, "token", str, "authenticate")

    async def create_remote_order(self, client: httpx.AsyncClient, auth_token: str,
                                  request: PaymentRequest) -> RemoteOrder:
        data = await self._post(client, "create_remote_order", ORDER_PATH, {
            "auth_token": auth_token,
            "delivery_needed": False,
            "amount_cents": request.amount_cents,
            "currency": config.CURRENCY,
            "merchant_order_id": request.order_id,
            "items": [],
        })
        return RemoteOrder(
            id=self._field(data, "id", int, "create_remote_order"),
            token=self._field(data, "token", str, "create_remote_order"),
        )

    async def mint_payment_key(self, client: httpx.AsyncClient, auth_token: str,
                               remote_order: RemoteOrder, request: PaymentRequest) -> str:
        if request.method is PaymentMethod.CARD:
            integration_id = self.credentials.integration_id_card
        else:
            integration_id = self.credentials.integration_id_wallet

        data = await self._post(client, "mint_payment_key", PAYMENT_KEY_PATH, {
            "auth_token": auth_token,
            "amount_cents": request.amount_cents,
            "expiration": config.PAYMENT_KEY_EXPIRATION,
            "order_id": remote_order.id,
            "billing_data": BILLING_DATA,
            "currency": config.CURRENCY,
            "integration_id": integration_id,
            "lock_order_when_paid": False,
        })
        return self._field(data, "token", str, "mint_payment_key")

    async def _post(self, client: httpx.AsyncClient, step: str, path: str, payload: dict) -> dict:
        try:
            response = await client.post(f"{self.base_url}{path}", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("Gateway step %s failed with status %s", step, e.response.status_code)
            raise GatewayError() from e
        except httpx.HTTPError as e:
            logger.error("Gateway step %s failed: %s", step, type(e).__name__)
            raise GatewayError() from e
        except ValueError as e:
            logger.error("Gateway step %s returned a non-JSON body", step)
            raise GatewayError() from e

        if not isinstance(data, dict):
            logger.error("Gateway step %s returned an unexpected body", step)
            raise GatewayError()
        return data

    @staticmethod
    def _field(data: dict, name: str, kind: type, step: str):
        value = data.get(name)
        if kind is int and isinstance(value, str) and value.isdigit():
            value = int(value)
        if not isinstance(value, kind) or isinstance(value, bool) or value == "":
            logger.error("Gateway step %s response is missing %r", step, name)
            raise GatewayError()
        return value


def select_gateway(credentials: GatewayCredentials, http_client: Optional[httpx.AsyncClient] = None) -> GatewayClient:
    if is_mock(credentials):
        return MockGateway()
    return PaymobGateway(credentials, http_client=http_client)
