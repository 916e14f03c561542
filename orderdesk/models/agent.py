from sqlalchemy import Column, String, Boolean
from sqlalchemy.orm import relationship

from .base import BaseModel


class DeliveryAgent(BaseModel):
    __tablename__ = "delivery_agents"

    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=True)
    region = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    stock = relationship("AgentStock", back_populates="agent")
    orders = relationship("Order", back_populates="agent", lazy="dynamic")
