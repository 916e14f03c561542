import logging
from datetime import datetime
from typing import Dict, FrozenSet, Optional, Union

from sqlalchemy.orm import Session

from ..config.database import DatabaseTransaction
from ..config.settings import get_settings
from ..core.exceptions import ConflictError, InvalidOrderStatusError, NotFoundError, ValidationError
from ..models.order import Order, OrderNote, OrderStatus
from ..repositories.order_repo import order_store
from ..repositories.product_repo import product_repo, agent_repo
from ..schemas.actor import Actor, SYSTEM_ACTOR
from ..schemas.order import OrderCreate
from ..utils.date_utils import ensure_utc, utcnow
from .inventory_service import InventoryLedger
from .notification_service import ADMIN_RECIPIENT, Notifier, get_default_notifier, notify_safely
from .rotation_service import RoundRobinAssigner

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: FrozenSet[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Forward moves. Terminal statuses may go anywhere as a correction.
ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.NEW: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED, OrderStatus.POSTPONED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.DISPATCHED, OrderStatus.CANCELLED, OrderStatus.POSTPONED}),
    OrderStatus.DISPATCHED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.POSTPONED}),
    OrderStatus.POSTPONED: frozenset({OrderStatus.CONFIRMED, OrderStatus.DISPATCHED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(OrderStatus) - {OrderStatus.DELIVERED},
    OrderStatus.CANCELLED: frozenset(OrderStatus) - {OrderStatus.CANCELLED},
}


def parse_status(value: Union[str, OrderStatus]) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown order status: {value}", field="status")


class OrderFulfillmentMachine:
    """
    Owns order creation and every status change.

    A transition, its timestamp, its audit note and its stock effect commit
    together or not at all. Notifications go out after the commit and never
    affect the outcome.
    """

    def __init__(
        self,
        db: Session,
        assigner: Optional[RoundRobinAssigner] = None,
        ledger: Optional[InventoryLedger] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.settings = get_settings()
        self.assigner = assigner or RoundRobinAssigner(db)
        self.ledger = ledger or InventoryLedger(db)
        self.notifier = notifier or get_default_notifier()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_order(self, draft: OrderCreate, acting_user: Optional[Actor] = None) -> Order:
        """Create an order in NEW, owned by the next representative in rotation."""
        if not draft.items:
            raise ValidationError("An order needs at least one item", field="items")

        with DatabaseTransaction(self.db):
            items = []
            total = 0.0
            for line in draft.items:
                if line.quantity < 1:
                    raise ValidationError("Item quantity must be at least 1", field="quantity")
                product = product_repo.get(self.db, line.product_id)
                if product is None:
                    raise NotFoundError("Product", line.product_id)
                items.append({
                    "product_id": product.id,
                    "quantity": line.quantity,
                    "price": product.price,
                    "cost": product.cost,
                })
                total += product.price * line.quantity

            rep_id = self.assigner.next(commit=False)

            fields = draft.model_dump(exclude={"items", "currency"})
            fields.update(
                assigned_to_id=rep_id,
                currency=draft.currency or self.settings.DEFAULT_CURRENCY,
                total_amount=round(total, 2),
            )
            order = order_store.create_with_items(self.db, fields=fields, items=items)
            order_id, order_number = order.id, order.order_number

        actor = acting_user.label if acting_user else "public form"
        logger.info(f"Order {order_number} created by {actor}, assigned to rep {rep_id}")
        notify_safely(self.notifier, rep_id, {
            "title": "New Order Assigned",
            "body": f"Order #{order_number} for {draft.customer_name} has been assigned to you",
            "order_id": order_id,
            "type": "ORDER_ASSIGNED",
        })
        return order

    def get_order(self, order_id: int) -> Order:
        order = order_store.get(self.db, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        order_id: int,
        new_status: Union[str, OrderStatus],
        acting_user: Actor = SYSTEM_ACTOR,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
        expected_status: Optional[Union[str, OrderStatus]] = None,
    ) -> Order:
        """
        Move an order to ``new_status``.

        Entering DELIVERED deducts stock; leaving DELIVERED restores it. Leaving
        DELIVERED or CANCELLED is a correction and needs a reason unless the
        REQUIRE_CORRECTION_REASON setting is off.

        The status is compared and swapped: without ``expected_status`` the
        status read just before the row lock is taken is the expected one, so
        a writer that committed in between makes this call raise
        ConflictError and nothing changes. ``expected_version`` adds a check
        on the version the caller saw.
        """
        target = parse_status(new_status)
        expected = parse_status(expected_status) if expected_status is not None else None
        reason = reason.strip() if reason and reason.strip() else None
        if expected is None:
            expected = self._observe_status(order_id)

        with DatabaseTransaction(self.db):
            order = order_store.get_for_update(self.db, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            if order.status != expected:
                raise ConflictError(
                    f"Order {order.order_number} is {order.status.value}, expected {expected.value}",
                    resource="order",
                )
            if expected_version is not None and order.version != expected_version:
                raise ConflictError(
                    f"Order {order.order_number} changed since it was read "
                    f"(version {expected_version}, now {order.version})",
                    resource="order",
                )

            previous = order.status
            self._check_transition(order, previous, target, reason)

            now = utcnow()
            order_store.update_status(self.db, order, target, now)

            if target == OrderStatus.DELIVERED:
                self.ledger.deduct(order)
            elif previous == OrderStatus.DELIVERED:
                self.ledger.restore(order)

            if reason:
                order_store.add_note(
                    self.db,
                    order,
                    f"Status changed from {previous.value} to {target.value}. Reason: {reason}",
                    created_by=acting_user.label,
                )
            order_number = order.order_number

        logger.info(f"Order {order_number}: {previous.value} -> {target.value} by {acting_user.label}")
        if target == OrderStatus.DELIVERED:
            notify_safely(self.notifier, ADMIN_RECIPIENT, {
                "title": "Order Delivered",
                "body": f"Order #{order_number} has been marked as delivered",
                "order_id": order_id,
                "type": "ORDER_DELIVERED",
            })
        return order

    def _observe_status(self, order_id: int) -> OrderStatus:
        with DatabaseTransaction(self.db):
            status = order_store.current_status(self.db, order_id)
        if status is None:
            raise NotFoundError("Order", order_id)
        return status

    def _check_transition(self, order: Order, current: OrderStatus, target: OrderStatus, reason: Optional[str]):
        if current == target:
            raise InvalidOrderStatusError(
                order.order_number, current.value, target.value,
                reason=f"Order {order.order_number} is already {current.value}",
            )
        if target not in ALLOWED_TRANSITIONS[current]:
            raise InvalidOrderStatusError(order.order_number, current.value, target.value)
        if current in TERMINAL_STATUSES and self.settings.REQUIRE_CORRECTION_REASON and not reason:
            raise ValidationError(
                f"Changing order {order.order_number} out of {current.value} requires a reason",
                field="reason",
            )

    # ------------------------------------------------------------------
    # Agent assignment and notes
    # ------------------------------------------------------------------

    def assign_agent(
        self,
        order_id: int,
        agent_id: int,
        acting_user: Actor = SYSTEM_ACTOR,
        delivery_slot: Optional[str] = None,
    ) -> Order:
        with DatabaseTransaction(self.db):
            order = order_store.get_for_update(self.db, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            agent = agent_repo.get(self.db, agent_id)
            if agent is None:
                raise NotFoundError("Delivery agent", agent_id)
            if not agent.is_active:
                raise ValidationError(f"Delivery agent {agent.name} is not active", field="agent_id")

            order.agent_id = agent.id
            if delivery_slot is not None:
                order.delivery_slot = delivery_slot
            order_store.save(self.db, order)
            logger.info(f"Order {order.order_number} assigned to agent {agent.id} by {acting_user.label}")
        return order

    def add_note(
        self,
        order_id: int,
        note: str,
        acting_user: Actor = SYSTEM_ACTOR,
        follow_up_date: Optional[datetime] = None,
    ) -> OrderNote:
        if not note or not note.strip():
            raise ValidationError("Note must not be empty", field="note")

        with DatabaseTransaction(self.db):
            order = order_store.get(self.db, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            entry = order_store.add_note(
                self.db, order, note.strip(),
                created_by=acting_user.label,
                follow_up_date=ensure_utc(follow_up_date),
            )
        return entry
