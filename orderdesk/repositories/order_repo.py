from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session, selectinload
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from .base import CRUDBase
from ..models.order import Order, OrderItem, OrderNote, OrderStatus
from ..models.inventory import InventoryEffect
from ..schemas.order import OrderCreate
from ..core.exceptions import ConflictError
from ..config.settings import get_settings

# Status -> timestamp column stamped on first entry
STATUS_TIMESTAMP_FIELDS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.DISPATCHED: "dispatched_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


class OrderStore(CRUDBase[Order, OrderCreate, OrderCreate]):
    """Persistence for orders, their line items, notes and inventory effect rows."""

    def __init__(self):
        super().__init__(Order)

    def get(self, db: Session, id: Any) -> Optional[Order]:
        return (
            db.query(Order)
            .options(selectinload(Order.items), selectinload(Order.notes))
            .filter(Order.id == id)
            .populate_existing()
            .first()
        )

    def get_for_update(self, db: Session, order_id: int) -> Optional[Order]:
        """Load the current row under a row lock, discarding any cached state."""
        return (
            db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )

    def current_status(self, db: Session, order_id: int) -> Optional[OrderStatus]:
        """Stored status read straight from the row, bypassing the identity map."""
        return db.query(Order.status).filter(Order.id == order_id).scalar()

    def next_order_number(self, db: Session) -> int:
        start = get_settings().ORDER_NUMBER_START
        current = db.query(func.max(Order.order_number)).scalar()
        return start if current is None else max(current + 1, start)

    def create_with_items(
        self,
        db: Session,
        *,
        fields: Dict[str, Any],
        items: List[Dict[str, Any]],
    ) -> Order:
        """
        Insert an order with its line items and an unapplied inventory effect.

        Flushes but does not commit. A duplicate order number from a
        concurrent insert surfaces as ConflictError.
        """
        order = Order(order_number=self.next_order_number(db), status=OrderStatus.NEW, **fields)
        order.items = [OrderItem(**item) for item in items]
        order.inventory_effect = InventoryEffect(applied=False, times_applied=0)
        db.add(order)
        try:
            db.flush()
        except IntegrityError as e:
            raise ConflictError(f"Order number allocation collided: {e.orig}", resource="order") from e
        return order

    def update_status(
        self,
        db: Session,
        order: Order,
        new_status: OrderStatus,
        at: datetime,
    ) -> Order:
        """
        Write a new status, stamping its timestamp only if it was never set.

        The UPDATE is guarded by the order's version column; if another writer
        committed since ``order`` was loaded, ConflictError is raised.
        """
        order.status = new_status
        field = STATUS_TIMESTAMP_FIELDS.get(new_status)
        if field and getattr(order, field) is None:
            setattr(order, field, at)
        return self.save(db, order)

    def save(self, db: Session, order: Order) -> Order:
        """Flush pending changes to ``order`` under its version check."""
        try:
            db.flush()
        except StaleDataError as e:
            raise ConflictError(f"Order {order.id} was modified concurrently", resource="order") from e
        return order

    def add_note(
        self,
        db: Session,
        order: Order,
        note: str,
        created_by: Optional[str] = None,
        follow_up_date: Optional[datetime] = None,
    ) -> OrderNote:
        entry = OrderNote(
            order_id=order.id,
            note=note,
            is_follow_up=follow_up_date is not None,
            follow_up_date=follow_up_date,
            created_by=created_by,
        )
        db.add(entry)
        db.flush()
        return entry


order_store = OrderStore()
