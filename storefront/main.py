import json
import uvicorn
from functools import lru_cache
from typing import Optional
from uuid import uuid4
from fastapi import FastAPI, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from storefront import services
from storefront.config import GatewayCredentials, resolve_credentials, configure_logging
from storefront.database import init_db, get_session
from storefront.errors import ServiceError, InvalidArgument, NotFound
from storefront.gateway import GatewayClient, select_gateway
from storefront.messaging import NotificationDispatcher, setup_rabbitmq, close_rabbitmq
from storefront.models import Order
from storefront.schemas import (
    PaymentCreate, PaymentRead, CallbackVerify, CallbackRead, StatusAdvanceRead, OrderCreate, OrderRead,
)
from storefront.state_machine import OrderStatus
from storefront.store import OrderStore

app = FastAPI(title="Storefront Service")

@app.on_event("startup")
async def startup_event():
    configure_logging()
    await init_db()
    await setup_rabbitmq()

@app.on_event("shutdown")
async def shutdown_event():
    await close_rabbitmq()

@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidArgument("Request body is malformed.")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())

# --- Dependencies ---

def get_caller(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    # Demo-grade identity: the caller's user id is trusted from the header
    return x_user_id

@lru_cache
def get_credentials() -> GatewayCredentials:
    return resolve_credentials()

def get_gateway(credentials: GatewayCredentials = Depends(get_credentials)) -> GatewayClient:
    return select_gateway(credentials)

def get_store(db: AsyncSession = Depends(get_session)) -> OrderStore:
    return OrderStore(db)

def get_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher()

# --- Payments ---

@app.post("/api/payments", response_model=PaymentRead)
async def create_payment(
    body: PaymentCreate,
    caller: Optional[str] = Depends(get_caller),
    gateway: GatewayClient = Depends(get_gateway),
):
    return await services.create_payment(caller, body.amount, body.order_id, body.method, gateway)

@app.post("/api/payments/verify", response_model=CallbackRead)
async def verify_callback(body: CallbackVerify, credentials: GatewayCredentials = Depends(get_credentials)):
    return services.verify_callback(body.hmac_payload, body.order_id, credentials)

# --- Orders ---

@app.post("/api/orders", response_model=OrderRead, status_code=201)
async def create_order(
    order_data: OrderCreate,
    caller: Optional[str] = Depends(get_caller),
    store: OrderStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    user_id = services.require_caller(caller, "User must be authenticated to place an order.")
    new_order = Order(
        id=str(uuid4()),
        user_id=user_id,
        items=json.dumps([item.model_dump() for item in order_data.items]),
        total=order_data.total,
        status=OrderStatus.PROCESSING.value,
    )
    new_order = await store.add_order(new_order)
    await services.notify_order_created(new_order, store, dispatcher)
    return OrderRead.model_validate(new_order)

@app.get("/api/orders/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: str,
    caller: Optional[str] = Depends(get_caller),
    store: OrderStore = Depends(get_store),
):
    services.require_caller(caller, "User must be authenticated to read an order.")
    order = await store.get_order(order_id)
    if not order:
        raise NotFound("Order not found.")
    return OrderRead.model_validate(order)

@app.post("/api/orders/{order_id}/advance", response_model=StatusAdvanceRead)
async def advance_order_status(
    order_id: str,
    caller: Optional[str] = Depends(get_caller),
    store: OrderStore = Depends(get_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    return await services.advance_order_status(caller, order_id, store, dispatcher)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
