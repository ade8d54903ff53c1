"""
Callable operations: create a payment, verify a payment callback, advance an
order through its lifecycle, and announce a newly placed order.

Every collaborator (gateway, credentials, store, dispatcher) is passed in by
the caller. Validation errors are raised before any external call; downstream
failures are logged here and re-raised as Internal with a safe message.
"""
import logging
from typing import Optional
from storefront.config import GatewayCredentials
from storefront.errors import ServiceError, Unauthenticated, InvalidArgument, NotFound, FailedPrecondition, Internal
from storefront.gateway import GatewayClient, PaymentRequest
from storefront.hmac_verifier import verify_callback as verify_callback_payload
from storefront.messaging import NotificationDispatcher
from storefront.models import Order
from storefront.state_machine import advance
from storefront.store import OrderStore

logger = logging.getLogger(__name__)

ORDERS_TOPIC = "orders"


def require_caller(caller_id: Optional[str], message: str) -> str:
    if not caller_id:
        raise Unauthenticated(message)
    return caller_id


async def create_payment(caller_id: Optional[str], amount, order_id, method, gateway: GatewayClient) -> dict:
    require_caller(caller_id, "User must be authenticated to create a payment.")
    request = PaymentRequest.parse(amount, order_id, method)

    try:
        result = await gateway.create_payment(request)
    except ServiceError:
        raise
    except Exception:
        logger.exception("create_payment failed for order %s", request.order_id)
        raise Internal("Failed to create payment. Please try again later.")

    return {
        "success": True,
        "isMock": result.is_mock,
        "paymentKey": result.payment_key,
        "checkoutUrl": result.checkout_url,
    }


def verify_callback(hmac_payload, order_id: Optional[str], credentials: GatewayCredentials) -> dict:
    if not hmac_payload or not isinstance(hmac_payload, str):
        raise InvalidArgument("HMAC payload is required.")

    try:
        result = verify_callback_payload(hmac_payload, credentials, order_id=order_id)
    except Exception:
        logger.exception("verify_callback failed for order %s", order_id or "unknown")
        raise Internal("Failed to verify payment. Please try again later.")

    return {
        "verified": result.verified,
        "isMock": result.is_mock,
        "transactionId": result.transaction_id,
        "orderId": result.order_id,
    }


async def advance_order_status(caller_id: Optional[str], order_id, store: OrderStore,
                               dispatcher: NotificationDispatcher) -> dict:
    """
    Move an order one step along its lifecycle and tell the owner.

    Any authenticated caller may advance any order; non-owners are only
    logged. Concurrent advances of the same order are settled by the store's
    compare-and-set, and the loser gets FailedPrecondition.
    """
    caller_id = require_caller(caller_id, "User must be authenticated to update order status.")
    if not order_id or not isinstance(order_id, str):
        raise InvalidArgument("Order ID is required.")

    try:
        order = await store.get_order(order_id)
        if order is None:
            raise NotFound("Order not found.")

        if order.user_id != caller_id:
            logger.warning("Non-owner %s updating status of order %s (demo mode)", caller_id, order_id)

        previous_status = order.status
        transition = advance(previous_status)
        new_status = transition.next_status.value

        if not await store.set_status(order_id, previous_status, new_status):
            raise FailedPrecondition("Order status changed concurrently; please retry.")
        logger.info("Order %s status updated from %s to %s", order_id, previous_status, new_status)

        if order.user_id:
            user = await store.get_user(order.user_id)
            if user is not None and user.fcm_token:
                await dispatcher.send_to_device(
                    user.fcm_token,
                    "Order Status Updated",
                    transition.message,
                    {"orderId": order_id, "status": new_status},
                )
    except ServiceError:
        raise
    except Exception:
        logger.exception("advance_order_status failed for order %s", order_id)
        raise Internal("Failed to update order status.")

    return {
        "success": True,
        "orderId": order_id,
        "previousStatus": previous_status,
        "newStatus": new_status,
        "message": transition.message,
    }


async def notify_order_created(order: Order, store: OrderStore, dispatcher: NotificationDispatcher) -> dict:
    short_id = order.id[:8]
    try:
        await dispatcher.send_to_topic(
            ORDERS_TOPIC,
            "New Order",
            f"Order #{short_id} has been placed.",
            {"orderId": order.id, "status": order.status, "userId": order.user_id, "amount": order.total},
        )

        user = await store.get_user(order.user_id)
        if user is not None and user.fcm_token:
            await dispatcher.send_to_device(
                user.fcm_token,
                "New Order Received",
                f"Your order #{short_id} has been received and is being processed.",
                {"orderId": order.id, "status": order.status},
            )

        await store.mark_notification_sent(order.id)
        return {"success": True}
    except Exception as e:
        logger.exception("Error sending order notification for order %s", order.id)
        return {"success": False, "error": str(e)}
