from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Any, Optional
import json
from datetime import datetime


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Payment inputs are checked by PaymentRequest.parse so HTTP and direct callers share one rule set
class PaymentCreate(CamelModel):
    amount: Any = Field(None, examples=[49.99])
    order_id: Any = Field(None, examples=["order-123"])
    method: Any = Field(None, examples=["card"])


class PaymentRead(CamelModel):
    success: bool
    is_mock: bool
    payment_key: str
    checkout_url: Optional[str]


class CallbackVerify(CamelModel):
    hmac_payload: Any = None
    order_id: Optional[str] = None


class CallbackRead(CamelModel):
    verified: bool
    is_mock: bool
    transaction_id: str
    order_id: str


class StatusAdvanceRead(CamelModel):
    success: bool
    order_id: str
    previous_status: str
    new_status: str
    message: str


class Item(BaseModel):
    product_id: str = Field(..., examples=["croissant"])
    quantity: int = Field(..., gt=0, examples=[2])


class OrderCreate(CamelModel):
    items: List[Item]
    total: float = Field(..., gt=0.0)


class OrderRead(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    user_id: str
    items: List[Item]
    total: float
    status: str
    created_at: datetime
    updated_at: datetime

    @field_validator('items', mode='before')
    @classmethod
    def parse_items(cls, v: Any) -> List[Item]:
        if isinstance(v, str):
            return json.loads(v)
        return v
