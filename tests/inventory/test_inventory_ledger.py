"""InventoryLedger: at-most-once deduction and restore per order, oversell policy, agent stock."""

import pytest

from orderdesk.config.database import DatabaseTransaction
from orderdesk.core.exceptions import InsufficientStockError, InvalidDeductionError, InvalidReversalError
from orderdesk.repositories.order_repo import order_store
from orderdesk.services.inventory_service import InventoryLedger


@pytest.fixture
def order_for(db, machine, add_reps, draft):
    add_reps("Alice")

    def _order(*lines):
        order = machine.create_order(draft(*lines))
        return order_store.get(db, order.id)
    return _order


def _deduct(db, ledger, order):
    with DatabaseTransaction(db):
        ledger.deduct(order)


def _restore(db, ledger, order):
    with DatabaseTransaction(db):
        ledger.restore(order)


class TestDeduct:
    def test_deduct_decrements_each_line(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        p2 = add_product("Black Soap", stock=5, price=150)
        order = order_for((p1, 2), (p2, 1))
        ledger = InventoryLedger(db)

        _deduct(db, ledger, order)

        assert stock_of(p1) == 8
        assert stock_of(p2) == 4
        assert ledger.is_applied(order.id)

    def test_second_deduct_fails_without_touching_stock(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        order = order_for((p1, 3))
        ledger = InventoryLedger(db)
        _deduct(db, ledger, order)

        with pytest.raises(InvalidDeductionError):
            _deduct(db, ledger, order)

        assert stock_of(p1) == 7

    def test_effect_records_times_applied(self, db, order_for, add_product):
        p1 = add_product("Shea Butter", stock=10, price=50)
        order = order_for((p1, 1))
        ledger = InventoryLedger(db)

        _deduct(db, ledger, order)
        _restore(db, ledger, order)
        _deduct(db, ledger, order)

        db.refresh(order.inventory_effect)
        assert order.inventory_effect.times_applied == 2
        assert order.inventory_effect.restored_at is not None


class TestRestore:
    def test_restore_without_deduct_is_rejected(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        order = order_for((p1, 2))

        with pytest.raises(InvalidReversalError):
            _restore(db, InventoryLedger(db), order)

        assert stock_of(p1) == 10

    def test_restore_returns_stock_exactly(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        p2 = add_product("Black Soap", stock=5, price=150)
        order = order_for((p1, 2), (p2, 1))
        ledger = InventoryLedger(db)
        _deduct(db, ledger, order)

        _restore(db, ledger, order)

        assert stock_of(p1) == 10
        assert stock_of(p2) == 5
        assert not ledger.is_applied(order.id)

    def test_double_restore_is_rejected(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        order = order_for((p1, 2))
        ledger = InventoryLedger(db)
        _deduct(db, ledger, order)
        _restore(db, ledger, order)

        with pytest.raises(InvalidReversalError):
            _restore(db, ledger, order)

        assert stock_of(p1) == 10


class TestOversellPolicy:
    def test_oversell_allowed_goes_negative(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=1, price=50)
        order = order_for((p1, 3))

        _deduct(db, InventoryLedger(db, allow_oversell=True), order)

        assert stock_of(p1) == -2

    def test_oversell_blocked_raises_and_rolls_back_every_line(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        p2 = add_product("Black Soap", stock=1, price=150)
        order = order_for((p1, 2), (p2, 4))
        ledger = InventoryLedger(db, allow_oversell=False)

        with pytest.raises(InsufficientStockError) as exc_info:
            _deduct(db, ledger, order)

        assert exc_info.value.available_qty == 1
        assert stock_of(p1) == 10
        assert stock_of(p2) == 1
        assert not ledger.is_applied(order.id)

    def test_exact_stock_is_allowed_when_blocking(self, db, order_for, add_product, stock_of):
        p1 = add_product("Shea Butter", stock=2, price=50)
        order = order_for((p1, 2))

        _deduct(db, InventoryLedger(db, allow_oversell=False), order)

        assert stock_of(p1) == 0


class TestAgentStock:
    def test_agent_holding_is_deducted_and_restored(
        self, db, machine, order_for, add_product, add_agent, agent_stock_of
    ):
        p1 = add_product("Shea Butter", stock=10, price=50)
        agent = add_agent("Kofi", {p1: 6})
        order = order_for((p1, 2))
        machine.assign_agent(order.id, agent)
        ledger = InventoryLedger(db)

        _deduct(db, ledger, order)
        assert agent_stock_of(agent, p1) == 4

        _restore(db, ledger, order)
        assert agent_stock_of(agent, p1) == 6

    def test_restore_goes_to_agent_recorded_at_deduction(
        self, db, machine, order_for, add_product, add_agent, agent_stock_of
    ):
        p1 = add_product("Shea Butter", stock=10, price=50)
        first = add_agent("Kofi", {p1: 6})
        second = add_agent("Esi", {p1: 6})
        order = order_for((p1, 2))
        machine.assign_agent(order.id, first)
        ledger = InventoryLedger(db)
        _deduct(db, ledger, order)

        machine.assign_agent(order.id, second)
        _restore(db, ledger, order)

        assert agent_stock_of(first, p1) == 6
        assert agent_stock_of(second, p1) == 6

    def test_agent_without_holding_is_left_alone(self, db, machine, order_for, add_product, add_agent, stock_of):
        p1 = add_product("Shea Butter", stock=10, price=50)
        agent = add_agent("Kofi")
        order = order_for((p1, 2))
        machine.assign_agent(order.id, agent)

        _deduct(db, InventoryLedger(db), order)

        assert stock_of(p1) == 8
