import pytest
from fastapi import HTTPException

from app.auth.dependencies import AuthContext
from app.dependencies import build_rating_code_registry
from app.models.order import OrderStatus
from app.schemas.order import OrderCreate, OrderUpdate
from app.services.orders_service import (
    assign_courier,
    cancel_order,
    complete_delivery,
    create_order,
    delete_order,
    get_order,
    issue_order_code,
    list_orders,
    lookup_order_by_code,
    rating_link,
    start_delivery,
    submit_rating,
    update_order,
)
from app.services.rating_codes import CODE_SPACE_SIZE, RatingCodeRegistry


def _payload(**overrides) -> OrderCreate:
    values = {
        "address": "123 Main St",
        "phone_number": "555-0100",
        "delivery_time": "2025-01-01T10:00",
    }
    values.update(overrides)
    return OrderCreate(**values)


def _actor(user) -> AuthContext:
    return AuthContext(user_id=user.id, role=user.role.value, name=user.name)


class _ScriptedRng:
    def __init__(self, draws: str) -> None:
        self._draws = list(draws)

    def choice(self, _sequence):
        return self._draws.pop(0)


def test_create_order_starts_pending_without_code(storage, registry):
    order = create_order(storage, registry, _payload(comments="Ring twice"))

    assert order.status == OrderStatus.PENDING
    assert order.code is None
    assert order.comments == "Ring twice"
    assert get_order(storage, order.id).id == order.id


def test_create_order_with_code_and_pending_status_is_stored_assigned(storage, registry):
    order = create_order(storage, registry, _payload(code="b7", status=OrderStatus.PENDING))

    assert order.status == OrderStatus.ASSIGNED
    assert order.code == "B7"
    assert get_order(storage, order.id).status == OrderStatus.ASSIGNED


def test_create_order_with_courier_assigns_and_issues_code(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    assert order.status == OrderStatus.ASSIGNED
    assert order.courier_id == courier_user.id
    assert order.courier_name == "Jane"
    assert registry.is_valid(order.code)


def test_create_order_rejects_non_initial_status(storage, registry):
    with pytest.raises(HTTPException) as exc:
        create_order(storage, registry, _payload(status=OrderStatus.COMPLETED))

    assert exc.value.status_code == 400


def test_create_order_rejects_unknown_courier(storage, registry, admin_user):
    with pytest.raises(HTTPException) as exc:
        create_order(storage, registry, _payload(courier_id=admin_user.id))

    assert exc.value.status_code == 400
    assert exc.value.detail == "Unknown courier"


def test_rating_flow_completes_order_and_invalidates_code(storage, registry, courier_user):
    order = create_order(storage, registry, _payload())
    assert order.status == OrderStatus.PENDING
    assert order.code is None

    assigned = assign_courier(storage, registry, order.id, courier_user.id)
    assert assigned.status == OrderStatus.ASSIGNED
    assert assigned.courier_name == "Jane"
    assert len(assigned.code) == 2

    rated = submit_rating(storage, registry, assigned.code, 5, feedback="Great!")

    assert rated.status == OrderStatus.COMPLETED
    assert rated.rating == 5
    assert rated.is_positive is True
    assert rated.feedback == "Great!"
    assert rated.completed_at is not None
    assert not registry.is_valid(assigned.code)

    with pytest.raises(HTTPException) as exc:
        submit_rating(storage, registry, assigned.code, 4)
    assert exc.value.status_code == 404
    assert exc.value.detail == "Invalid or expired code"


@pytest.mark.parametrize(("rating", "positive"), [(1, False), (3, False), (4, True), (5, True)])
def test_positive_flag_follows_rating(storage, registry, courier_user, rating, positive):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    rated = submit_rating(storage, registry, order.code.lower(), rating)

    assert rated.is_positive is positive


def test_rating_out_of_range_is_rejected(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    with pytest.raises(HTTPException) as exc:
        submit_rating(storage, registry, order.code, 6)

    assert exc.value.status_code == 400
    assert get_order(storage, order.id).status == OrderStatus.ASSIGNED


def test_rating_with_mismatched_order_id_is_rejected(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    with pytest.raises(HTTPException) as exc:
        submit_rating(storage, registry, order.code, 5, order_id="someone-else")

    assert exc.value.status_code == 404
    assert registry.is_valid(order.code)


def test_rating_an_in_progress_order(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))
    start_delivery(storage, registry, order.id, _actor(courier_user))

    rated = submit_rating(storage, registry, order.code, 2, feedback="  Late  ")

    assert rated.status == OrderStatus.COMPLETED
    assert rated.feedback == "Late"
    assert rated.is_positive is False


def test_courier_manual_completion_leaves_rating_unset(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))
    actor = _actor(courier_user)

    started = start_delivery(storage, registry, order.id, actor)
    assert started.status == OrderStatus.IN_PROGRESS

    completed = complete_delivery(storage, registry, order.id, actor)

    assert completed.status == OrderStatus.COMPLETED
    assert completed.rating is None
    assert completed.is_positive is None
    assert completed.completed_at is not None

    with pytest.raises(HTTPException) as exc:
        lookup_order_by_code(storage, registry, order.code)
    assert exc.value.status_code == 409
    assert exc.value.detail == "Order not in a ratable state"


def test_courier_cannot_touch_another_couriers_order(storage, registry, courier_user, other_courier):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    with pytest.raises(HTTPException) as exc:
        start_delivery(storage, registry, order.id, _actor(other_courier))

    assert exc.value.status_code == 403


def test_completing_an_assigned_order_skips_a_state(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    with pytest.raises(HTTPException) as exc:
        complete_delivery(storage, registry, order.id, _actor(courier_user))

    assert exc.value.status_code == 409


def test_cancelled_order_code_is_not_ratable(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    cancelled = cancel_order(storage, registry, order.id)

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.code == order.code
    with pytest.raises(HTTPException) as exc:
        submit_rating(storage, registry, order.code, 5)
    assert exc.value.status_code == 409


def test_completed_order_cannot_be_cancelled(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))
    submit_rating(storage, registry, order.code, 5)

    with pytest.raises(HTTPException) as exc:
        cancel_order(storage, registry, order.id)

    assert exc.value.status_code == 409


def test_expired_code_is_rejected(storage, registry, courier_user, clock):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    clock.advance(days=6)
    assert lookup_order_by_code(storage, registry, order.code).id == order.id

    clock.advance(days=2)
    with pytest.raises(HTTPException) as exc:
        lookup_order_by_code(storage, registry, order.code)
    assert exc.value.status_code == 404


def test_fresh_registry_recovers_codes_from_the_order_store(storage, registry, courier_user, clock):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    restarted = build_rating_code_registry(storage, clock=clock)

    assert lookup_order_by_code(storage, restarted, order.code).id == order.id
    assert order.code in restarted.live_codes()


def test_unknown_code_is_rejected(storage, registry):
    with pytest.raises(HTTPException) as exc:
        lookup_order_by_code(storage, registry, "Q5")

    assert exc.value.status_code == 404


def test_issue_order_code_skips_codes_held_by_ratable_orders(storage, registry, clock):
    create_order(storage, registry, _payload(code="B7"))
    scripted = RatingCodeRegistry(clock=clock, rng=_ScriptedRng("B7C4"))

    assert issue_order_code(storage, scripted) == "C4"


def test_code_space_exhaustion_is_reported_as_unavailable(storage, registry, courier_user):
    for _ in range(CODE_SPACE_SIZE):
        registry.issue_code()

    with pytest.raises(HTTPException) as exc:
        create_order(storage, registry, _payload(courier_id=courier_user.id))

    assert exc.value.status_code == 503


def test_assigned_orders_hold_distinct_codes(storage, registry, courier_user):
    codes = {
        create_order(storage, registry, _payload(courier_id=courier_user.id)).code
        for _ in range(25)
    }

    assert len(codes) == 25


def test_reassigning_keeps_code_and_refreshes_courier_name(
    storage, registry, courier_user, other_courier
):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    reassigned = assign_courier(storage, registry, order.id, other_courier.id)

    assert reassigned.code == order.code
    assert reassigned.courier_id == other_courier.id
    assert reassigned.courier_name == "Omar"
    assert reassigned.status == OrderStatus.ASSIGNED


def test_assigning_a_terminal_order_is_rejected(storage, registry, courier_user):
    order = create_order(storage, registry, _payload())
    cancel_order(storage, registry, order.id)

    with pytest.raises(HTTPException) as exc:
        assign_courier(storage, registry, order.id, courier_user.id)

    assert exc.value.status_code == 409


def test_update_order_edits_fields_and_keeps_code_implied_status(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    updated = update_order(
        storage,
        registry,
        order.id,
        OrderUpdate(address="9 Side Rd", comments="", status=OrderStatus.PENDING),
    )

    assert updated.address == "9 Side Rd"
    assert updated.comments is None
    assert updated.status == OrderStatus.ASSIGNED
    assert updated.code == order.code


def test_update_order_to_assigned_issues_code(storage, registry):
    order = create_order(storage, registry, _payload())

    updated = update_order(storage, registry, order.id, OrderUpdate(status=OrderStatus.ASSIGNED))

    assert updated.status == OrderStatus.ASSIGNED
    assert registry.is_valid(updated.code)


def test_completed_order_cannot_be_edited(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))
    submit_rating(storage, registry, order.code, 5)

    with pytest.raises(HTTPException) as exc:
        update_order(storage, registry, order.id, OrderUpdate(address="elsewhere"))

    assert exc.value.status_code == 409


def test_delete_order_removes_it_and_invalidates_code(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    delete_order(storage, registry, order.id)

    with pytest.raises(HTTPException) as exc:
        get_order(storage, order.id)
    assert exc.value.status_code == 404
    assert not registry.is_valid(order.code)


def test_list_orders_filters_by_status_and_courier(storage, registry, courier_user, other_courier):
    pending = create_order(storage, registry, _payload())
    mine = create_order(storage, registry, _payload(courier_id=courier_user.id))
    create_order(storage, registry, _payload(courier_id=other_courier.id))

    assert [order.id for order in list_orders(storage, OrderStatus.PENDING)] == [pending.id]
    assert [order.id for order in list_orders(storage, courier_id=courier_user.id)] == [mine.id]
    assert len(list_orders(storage)) == 3


def test_rating_link_points_at_rate_page(storage, registry, courier_user):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))

    link = rating_link(storage, registry, order.id, _actor(courier_user))

    assert link == {"order_id": order.id, "code": order.code, "path": f"/rate?code={order.code}"}


def test_rating_link_requires_an_active_code(storage, registry, admin_user):
    order = create_order(storage, registry, _payload())

    with pytest.raises(HTTPException) as exc:
        rating_link(storage, registry, order.id, _actor(admin_user))

    assert exc.value.status_code == 409


def test_rejected_status_change_leaves_fields_untouched(storage, registry):
    order = create_order(storage, registry, _payload())

    with pytest.raises(HTTPException) as exc:
        update_order(
            storage,
            registry,
            order.id,
            OrderUpdate(address="9 Side Rd", status=OrderStatus.COMPLETED),
        )

    assert exc.value.status_code == 409
    stored = get_order(storage, order.id)
    assert stored.address == "123 Main St"
    assert stored.status == OrderStatus.PENDING


def test_field_edit_and_status_change_are_saved_together(storage, registry):
    order = create_order(storage, registry, _payload())

    updated = update_order(
        storage,
        registry,
        order.id,
        OrderUpdate(address="9 Side Rd", status=OrderStatus.ASSIGNED),
    )

    stored = get_order(storage, order.id)
    assert stored.address == updated.address == "9 Side Rd"
    assert stored.status == OrderStatus.ASSIGNED
    assert stored.code == updated.code


def test_rating_link_refuses_an_expired_code(storage, registry, courier_user, clock):
    order = create_order(storage, registry, _payload(courier_id=courier_user.id))
    clock.advance(days=7, seconds=1)

    with pytest.raises(HTTPException) as exc:
        rating_link(storage, registry, order.id, _actor(courier_user))

    assert exc.value.status_code == 409
