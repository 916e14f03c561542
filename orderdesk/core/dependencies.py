# orderdesk/core/dependencies.py
from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Optional

from ..config.database import get_db
from ..config.logging import get_logger
from ..core.exceptions import ForbiddenError, ValidationError
from ..models.order import Order
from ..schemas.actor import Actor, ActorRole
from ..services.inventory_service import InventoryLedger
from ..services.notification_service import Notifier, get_default_notifier
from ..services.order_service import OrderFulfillmentMachine
from ..services.rotation_service import RoundRobinAssigner

logger = get_logger(__name__)

# Acting user. Authentication happens upstream; the gateway forwards who the
# caller is in these headers.
def get_current_actor(
    request: Request,
    x_user_id: Optional[int] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
) -> Actor:
    """Resolve the acting user from the forwarded identity headers."""
    if x_user_id is None:
        raise ForbiddenError("Missing acting user")
    try:
        role = ActorRole((x_user_role or ActorRole.SALES_REP.value).upper())
    except ValueError:
        raise ValidationError(f"Unknown role: {x_user_role}", field="X-User-Role")
    request.state.user_id = str(x_user_id)
    return Actor(id=x_user_id, role=role, name=x_user_name or "")

def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Only admins may operate the rotation."""
    if not actor.is_admin:
        raise ForbiddenError("Administrator role required")
    return actor

def ensure_order_access(order: Order, actor: Actor) -> None:
    """A non-admin may only act on orders assigned to them."""
    if not actor.is_admin and order.assigned_to_id != actor.id:
        logger.warning(f"Actor {actor.id} denied access to order {order.id}")
        raise ForbiddenError("You can only update orders assigned to you")

# Service dependencies
def get_notifier() -> Notifier:
    return get_default_notifier()

def get_assigner(db: Session = Depends(get_db)) -> RoundRobinAssigner:
    return RoundRobinAssigner(db)

def get_order_machine(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> OrderFulfillmentMachine:
    return OrderFulfillmentMachine(
        db,
        assigner=RoundRobinAssigner(db),
        ledger=InventoryLedger(db),
        notifier=notifier,
    )
