import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..config.settings import get_settings
from ..core.exceptions import InsufficientStockError, InvalidDeductionError, InvalidReversalError, NotFoundError
from ..models.inventory import InventoryEffect
from ..models.order import Order
from ..repositories.product_repo import product_repo, agent_stock_repo
from ..utils.date_utils import utcnow

logger = logging.getLogger(__name__)


class InventoryLedger:
    """
    Applies and reverses an order's stock deduction.

    Whether the deduction is in effect is recorded on the order's
    InventoryEffect row, which is read under a row lock and flipped in the
    same transaction as the stock counters. Neither method commits; they run
    inside the caller's status transition.
    """

    def __init__(self, db: Session, allow_oversell: Optional[bool] = None):
        self.db = db
        self.allow_oversell = get_settings().ALLOW_OVERSELL if allow_oversell is None else allow_oversell

    def is_applied(self, order_id: int) -> bool:
        effect = (
            self.db.query(InventoryEffect)
            .filter(InventoryEffect.order_id == order_id)
            .populate_existing()
            .one_or_none()
        )
        return bool(effect and effect.applied)

    def deduct(self, order: Order) -> InventoryEffect:
        effect = self._lock_effect(order)
        if effect.applied:
            raise InvalidDeductionError(order.id)

        for item in order.items:
            self._take_stock(item.product_id, item.quantity)
            if order.agent_id is not None:
                agent_stock_repo.adjust(self.db, order.agent_id, item.product_id, -item.quantity)

        effect.applied = True
        effect.agent_id = order.agent_id
        effect.applied_at = utcnow()
        effect.times_applied = (effect.times_applied or 0) + 1
        self.db.flush()
        logger.info(f"Deducted stock for order {order.id} ({len(order.items)} items)")
        return effect

    def restore(self, order: Order) -> InventoryEffect:
        effect = self._lock_effect(order, create=False)
        if effect is None or not effect.applied:
            raise InvalidReversalError(order.id)

        for item in order.items:
            if not product_repo.adjust_stock(self.db, item.product_id, item.quantity):
                raise NotFoundError("Product", item.product_id)
            if effect.agent_id is not None:
                agent_stock_repo.adjust(self.db, effect.agent_id, item.product_id, item.quantity)

        effect.applied = False
        effect.restored_at = utcnow()
        self.db.flush()
        logger.info(f"Restored stock for order {order.id} ({len(order.items)} items)")
        return effect

    def _lock_effect(self, order: Order, create: bool = True) -> Optional[InventoryEffect]:
        effect = (
            self.db.query(InventoryEffect)
            .filter(InventoryEffect.order_id == order.id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if effect is None and create:
            # orders written before effect rows existed
            effect = InventoryEffect(order_id=order.id, applied=False, times_applied=0)
            self.db.add(effect)
            self.db.flush()
        return effect

    def _take_stock(self, product_id: int, quantity: int) -> None:
        floor = None if self.allow_oversell else 0
        if product_repo.adjust_stock(self.db, product_id, -quantity, floor=floor):
            if self.allow_oversell:
                remaining = product_repo.current_stock(self.db, product_id)
                if remaining is not None and remaining < 0:
                    logger.warning(f"Product {product_id} oversold: stock is now {remaining}")
            return

        available = product_repo.current_stock(self.db, product_id)
        if available is None:
            raise NotFoundError("Product", product_id)
        raise InsufficientStockError(product_id, quantity, available)
