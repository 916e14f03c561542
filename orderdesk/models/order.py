import enum

from sqlalchemy import Column, String, Float, Integer, Text, Boolean, DateTime, ForeignKey, Enum as SAEnum, Index
from sqlalchemy.orm import relationship, validates

from .base import BaseModel
from ..core.exceptions import ValidationError


class OrderStatus(str, enum.Enum):
    NEW = "NEW"
    CONFIRMED = "CONFIRMED"
    DISPATCHED = "DISPATCHED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"


class Order(BaseModel):
    __tablename__ = "orders"

    order_number = Column(Integer, unique=True, nullable=False, index=True)
    status = Column(SAEnum(OrderStatus, name="order_status", native_enum=False, length=20),
                    nullable=False, default=OrderStatus.NEW, index=True)

    # Ownership is fixed when the order is created
    assigned_to_id = Column(Integer, ForeignKey("sales_reps.id"), nullable=False, index=True)
    agent_id = Column(Integer, ForeignKey("delivery_agents.id"), nullable=True)
    delivery_slot = Column(String(50), nullable=True)

    # Customer
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(30), nullable=False)
    customer_whatsapp = Column(String(30), nullable=True)
    delivery_address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    source = Column(String(50), nullable=True)

    currency = Column(String(3), nullable=False)
    total_amount = Column(Float, nullable=False, default=0.0)

    # First entry into each status; never overwritten
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    dispatched_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False)

    assigned_to = relationship("Representative", back_populates="orders")
    agent = relationship("DeliveryAgent", back_populates="orders")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")
    notes = relationship("OrderNote", back_populates="order", order_by="OrderNote.id")
    inventory_effect = relationship("InventoryEffect", back_populates="order", uselist=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("idx_order_assignee_status", "assigned_to_id", "status"),
    )

    @validates("assigned_to_id", "total_amount")
    def _validate_immutable(self, key, value):
        current = getattr(self, key)
        if current is not None and value != current:
            raise ValidationError(f"Order {key} cannot be changed once set", field=key)
        return value

    def __repr__(self):
        return f"<Order(id={self.id}, number={self.order_number}, status={self.status})>"


class OrderItem(BaseModel):
    """Line item with price and cost captured at order time."""

    __tablename__ = "order_items"

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    cost = Column(Float, nullable=False, default=0.0)

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class OrderNote(BaseModel):
    __tablename__ = "order_notes"

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    note = Column(Text, nullable=False)
    is_follow_up = Column(Boolean, default=False, nullable=False)
    follow_up_date = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(100), nullable=True)

    order = relationship("Order", back_populates="notes")
