from sqlalchemy import Column, String, Float, Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Product(BaseModel):
    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    sku = Column(String(50), unique=True, nullable=True, index=True)
    price = Column(Float, nullable=False, default=0.0)
    cost = Column(Float, nullable=False, default=0.0)

    # Shared counter; only the inventory ledger writes it
    current_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    agent_stock = relationship("AgentStock", back_populates="product")

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', stock={self.current_stock})>"


class AgentStock(BaseModel):
    """Units of a product held by a delivery agent."""

    __tablename__ = "agent_stock"

    agent_id = Column(Integer, ForeignKey("delivery_agents.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=0)

    agent = relationship("DeliveryAgent", back_populates="stock")
    product = relationship("Product", back_populates="agent_stock")

    __table_args__ = (
        UniqueConstraint("agent_id", "product_id", name="uq_agent_product"),
    )
