from sqlalchemy import Column, String, Float, DateTime
from sqlalchemy.orm import declarative_base
from datetime import datetime
from storefront.state_machine import OrderStatus

Base = declarative_base()

class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    items = Column(String, nullable=False) # Storing as JSON string for simplicity
    total = Column(Float, nullable=False)
    # Plain string so legacy or hand-edited values load and are rejected by the state machine
    status = Column(String, default=OrderStatus.PROCESSING.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    notification_sent_at = Column(DateTime, nullable=True)

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    fcm_token = Column(String, nullable=True) # Push token; no device notification when absent
