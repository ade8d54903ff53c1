import pytest
from storefront.errors import FailedPrecondition, InvalidArgument
from storefront.state_machine import advance, OrderStatus, TRANSITIONS, TERMINAL_STATUSES

@pytest.mark.parametrize("current, expected_status, expected_message", [
    ("processing", OrderStatus.BAKING, "Your order is now being baked!"),
    ("baking", OrderStatus.OUT_FOR_DELIVERY, "Your order is out for delivery!"),
    ("out_for_delivery", OrderStatus.DELIVERED, "Your order has been delivered!"),
])
def test_advance_moves_one_step_forward(current, expected_status, expected_message):
    transition = advance(current)
    assert transition.next_status == expected_status
    assert transition.message == expected_message

def test_advance_accepts_enum_members():
    assert advance(OrderStatus.BAKING).next_status == OrderStatus.OUT_FOR_DELIVERY

def test_advance_from_delivered_is_a_precondition_failure():
    with pytest.raises(FailedPrecondition) as exc_info:
        advance("delivered")
    assert exc_info.value.code == "failed-precondition"

@pytest.mark.parametrize("current", ["unknown_status", "", None, "PROCESSING", "cancelled"])
def test_advance_rejects_unrecognized_status(current):
    with pytest.raises(InvalidArgument) as exc_info:
        advance(current)
    assert exc_info.value.message == "Invalid order status."

def test_advance_is_pure():
    """
    Repeated calls against the same status always give the same answer.
    """
    assert advance("processing") == advance("processing") == advance("processing")

def test_transition_table_covers_every_non_terminal_status():
    for status in OrderStatus:
        assert (status in TRANSITIONS) != (status in TERMINAL_STATUSES)

def test_transition_chain_reaches_delivered_without_cycles():
    status, seen = OrderStatus.PROCESSING, []
    while status not in TERMINAL_STATUSES:
        seen.append(status)
        status = TRANSITIONS[status].next_status
    assert seen == [OrderStatus.PROCESSING, OrderStatus.BAKING, OrderStatus.OUT_FOR_DELIVERY]
    assert status == OrderStatus.DELIVERED

def test_transition_table_is_read_only():
    with pytest.raises(TypeError):
        TRANSITIONS[OrderStatus.DELIVERED] = TRANSITIONS[OrderStatus.PROCESSING]
