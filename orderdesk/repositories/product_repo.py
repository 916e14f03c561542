from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import update, select

from .base import CRUDBase
from ..models.product import Product, AgentStock
from ..models.agent import DeliveryAgent
from ..schemas.inventory import ProductCreate, ProductUpdate, DeliveryAgentCreate, AgentStockCreate
from ..config.logging import log_database_operation


class ProductRepository(CRUDBase[Product, ProductCreate, ProductUpdate]):
    def __init__(self):
        super().__init__(Product)

    def current_stock(self, db: Session, product_id: int) -> Optional[int]:
        return db.execute(
            select(Product.current_stock).where(Product.id == product_id)
        ).scalar_one_or_none()

    def adjust_stock(self, db: Session, product_id: int, delta: int, floor: Optional[int] = None) -> bool:
        """
        Atomically add ``delta`` to a product's stock counter.

        The arithmetic runs in the database (``current_stock = current_stock
        + :delta``), so concurrent adjustments never lose an update. With a
        ``floor`` the row is only updated when the result stays at or above
        it. Returns False when no row was updated.
        """
        stmt = (
            update(Product)
            .where(Product.id == product_id)
            .values(current_stock=Product.current_stock + delta)
            .execution_options(synchronize_session=False)
        )
        if floor is not None:
            stmt = stmt.where(Product.current_stock + delta >= floor)
        result = db.execute(stmt)
        log_database_operation("adjust_stock", Product.__tablename__, row_count=result.rowcount,
                               details=f"product={product_id} delta={delta:+d}")
        return result.rowcount == 1


class DeliveryAgentRepository(CRUDBase[DeliveryAgent, DeliveryAgentCreate, DeliveryAgentCreate]):
    def __init__(self):
        super().__init__(DeliveryAgent)


class AgentStockRepository(CRUDBase[AgentStock, AgentStockCreate, AgentStockCreate]):
    def __init__(self):
        super().__init__(AgentStock)

    def get_for_agent(self, db: Session, agent_id: int, product_id: int) -> Optional[AgentStock]:
        return (
            db.query(AgentStock)
            .filter(AgentStock.agent_id == agent_id, AgentStock.product_id == product_id)
            .first()
        )

    def adjust(self, db: Session, agent_id: int, product_id: int, delta: int) -> bool:
        """Atomically adjust an agent's holding; agents not holding the product are left alone."""
        result = db.execute(
            update(AgentStock)
            .where(AgentStock.agent_id == agent_id, AgentStock.product_id == product_id)
            .values(quantity=AgentStock.quantity + delta)
            .execution_options(synchronize_session=False)
        )
        log_database_operation("adjust_agent_stock", AgentStock.__tablename__, row_count=result.rowcount,
                               details=f"agent={agent_id} product={product_id} delta={delta:+d}")
        return result.rowcount == 1


product_repo = ProductRepository()
agent_repo = DeliveryAgentRepository()
agent_stock_repo = AgentStockRepository()
