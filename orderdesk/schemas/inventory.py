from pydantic import BaseModel, Field
from typing import Optional


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    sku: Optional[str] = Field(None, max_length=50)
    price: float = Field(..., ge=0)
    cost: float = Field(0.0, ge=0)
    current_stock: int = 0


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    price: Optional[float] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None


class DeliveryAgentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)
    region: Optional[str] = Field(None, max_length=100)


class AgentStockCreate(BaseModel):
    agent_id: int
    product_id: int
    quantity: int = Field(0, ge=0)
