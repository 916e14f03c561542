from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from ..models.order import OrderStatus


class OrderItemCreate(BaseModel):
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str = Field(..., min_length=3, max_length=30)
    customer_whatsapp: Optional[str] = Field(None, max_length=30)
    delivery_address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    source: Optional[str] = Field(None, max_length=50)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    items: List[OrderItemCreate] = Field(..., min_length=1)

    @field_validator("customer_name", "customer_phone")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class StatusChangeRequest(BaseModel):
    status: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=1000)
    expected_version: Optional[int] = Field(None, ge=1)
    expected_status: Optional[str] = None


class AgentAssignmentRequest(BaseModel):
    agent_id: int = Field(..., gt=0)
    delivery_slot: Optional[str] = Field(None, max_length=50)


class OrderNoteCreate(BaseModel):
    note: str = Field(..., min_length=1, max_length=2000)
    follow_up_date: Optional[datetime] = None


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    quantity: int
    price: float
    cost: float
    line_total: float

    class Config:
        from_attributes = True


class OrderNoteResponse(BaseModel):
    id: int
    note: str
    is_follow_up: bool
    follow_up_date: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    order_number: int
    status: OrderStatus
    assigned_to_id: int
    agent_id: Optional[int] = None
    delivery_slot: Optional[str] = None
    customer_name: str
    customer_phone: str
    customer_whatsapp: Optional[str] = None
    delivery_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    source: Optional[str] = None
    currency: str
    total_amount: float
    confirmed_at: Optional[datetime] = None
    dispatched_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int
    created_at: datetime
    items: List[OrderItemResponse] = []
    notes: List[OrderNoteResponse] = []

    class Config:
        from_attributes = True
