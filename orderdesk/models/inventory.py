from sqlalchemy import Column, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..config.database import Base
from .base import TimestampMixin


class InventoryEffect(Base, TimestampMixin):
    """
    Whether an order's stock deduction is currently in effect.

    One row per order, created with the order. ``applied`` flips to True on
    deduction and back to False on restore; each direction is refused when the
    flag is already in the target state. ``agent_id`` is the agent whose stock
    was touched, so a later reassignment restores to the right agent.
    """

    __tablename__ = "inventory_effects"

    order_id = Column(Integer, ForeignKey("orders.id"), primary_key=True)
    applied = Column(Boolean, nullable=False, default=False)
    agent_id = Column(Integer, ForeignKey("delivery_agents.id"), nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=True)
    restored_at = Column(DateTime(timezone=True), nullable=True)
    times_applied = Column(Integer, nullable=False, default=0)

    order = relationship("Order", back_populates="inventory_effect")

    def __repr__(self):
        return f"<InventoryEffect(order_id={self.order_id}, applied={self.applied})>"
