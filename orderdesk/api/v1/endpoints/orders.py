from fastapi import APIRouter, Depends, status

from ....core.dependencies import get_current_actor, get_order_machine, ensure_order_access
from ....schemas.actor import Actor
from ....schemas.order import (
    OrderCreate, OrderResponse, StatusChangeRequest,
    AgentAssignmentRequest, OrderNoteCreate, OrderNoteResponse,
)
from ....services.order_service import OrderFulfillmentMachine
from ....utils.retry import call_with_conflict_retry

router = APIRouter()


@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    draft: OrderCreate,
    machine: OrderFulfillmentMachine = Depends(get_order_machine),
):
    """Place an order; it is assigned to the next representative in rotation."""
    order = call_with_conflict_retry(machine.create_order, draft)
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    machine: OrderFulfillmentMachine = Depends(get_order_machine),
    actor: Actor = Depends(get_current_actor),
):
    order = machine.get_order(order_id)
    ensure_order_access(order, actor)
    return OrderResponse.model_validate(order)


@router.post("/{order_id}/status", response_model=OrderResponse)
def change_order_status(
    order_id: int,
    change: StatusChangeRequest,
    machine: OrderFulfillmentMachine = Depends(get_order_machine),
    actor: Actor = Depends(get_current_actor),
):
    """
    Change an order's status.

    Requests that name the version or status they observed are not retried
    on conflict; the caller has to look at the order again.
    """
    ensure_order_access(machine.get_order(order_id), actor)
    kwargs = dict(
        acting_user=actor,
        reason=change.reason,
        expected_version=change.expected_version,
        expected_status=change.expected_status,
    )
    if change.expected_version is None and change.expected_status is None:
        order = call_with_conflict_retry(machine.transition, order_id, change.status, **kwargs)
    else:
        order = machine.transition(order_id, change.status, **kwargs)
    return OrderResponse.model_validate(machine.get_order(order.id))


@router.post("/{order_id}/agent", response_model=OrderResponse)
def assign_delivery_agent(
    order_id: int,
    assignment: AgentAssignmentRequest,
    machine: OrderFulfillmentMachine = Depends(get_order_machine),
    actor: Actor = Depends(get_current_actor),
):
    ensure_order_access(machine.get_order(order_id), actor)
    order = call_with_conflict_retry(
        machine.assign_agent, order_id, assignment.agent_id,
        acting_user=actor, delivery_slot=assignment.delivery_slot,
    )
    return OrderResponse.model_validate(machine.get_order(order.id))


@router.post("/{order_id}/notes", response_model=OrderNoteResponse, status_code=status.HTTP_201_CREATED)
def add_order_note(
    order_id: int,
    note: OrderNoteCreate,
    machine: OrderFulfillmentMachine = Depends(get_order_machine),
    actor: Actor = Depends(get_current_actor),
):
    ensure_order_access(machine.get_order(order_id), actor)
    entry = machine.add_note(order_id, note.note, acting_user=actor, follow_up_date=note.follow_up_date)
    return OrderNoteResponse.model_validate(entry)
