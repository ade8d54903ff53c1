from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.models import Order, User


class OrderStore:
    """Reads and writes order and user rows for one request-scoped session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_order(self, order_id: str) -> Optional[Order]:
        return await self.session.get(Order, order_id)

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.session.get(User, user_id)

    async def add_order(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.commit()
        await self.session.refresh(order)
        return order

    async def set_status(self, order_id: str, expected_status: str, new_status: str) -> bool:
        """
        Compare-and-set the order status.

        Only ``status`` and ``updated_at`` are written, and only while the row
        still holds ``expected_status``. Returns False when another writer got
        there first.
        """
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected_status)
            .values(status=new_status, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount == 1

    async def mark_notification_sent(self, order_id: str):
        await self.session.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(notification_sent_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
