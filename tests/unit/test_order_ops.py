"""Unit tests for order placement, cancellation and fulfilment transitions."""

import uuid
from decimal import Decimal

import pytest
from libs.auth.models import UserRole
from libs.common.errors import (
    BusinessRuleViolation,
    Forbidden,
    InsufficientBalance,
    InvalidStatusTransition,
    NotFound,
    OutOfStock,
    ValidationFailed,
)
from libs.common.events import (
    NEW_ORDER,
    ORDER_CANCELLED,
    ORDER_STATUS_UPDATED,
    order_room,
)
from services.store_service.models import (
    InventoryMovement,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    StoreAuditLog,
)
from services.store_service.services import order_ops, stock_ledger
from services.store_service.services.order_ops import CartLine
from services.wallet_service.models import (
    TransactionDirection,
    TransactionType,
    WalletTransaction,
)
from services.wallet_service.services.wallet_ops import get_balance
from sqlalchemy import func, select
from tests.conftest import RecordingPublisher, make_admin_user, make_user
from tests.factories import AddressFactory, CouponFactory


async def _count(db, model):
    return (await db.execute(select(func.count()).select_from(model))).scalar()


async def _wallet_txns(db, user_id="customer-1"):
    result = await db.execute(
        select(WalletTransaction)
        .where(WalletTransaction.user_id == user_id)
        .order_by(WalletTransaction.created_at)
    )
    return result.scalars().all()


async def _place(
    db, publisher, world, *, quantity=2, method=PaymentMethod.WALLET, **kwargs
):
    lines = kwargs.pop(
        "lines", [CartLine(product_id=world.product_id, quantity=quantity)]
    )
    total = kwargs.pop("total_price", Decimal("50.00") * quantity)
    address_id = kwargs.pop("address_id", world.address_id)
    return await order_ops.place_order(
        db,
        publisher,
        user_id=world.user_id,
        lines=lines,
        address_id=address_id,
        payment_method=method,
        total_price=total,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# place_order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_wallet_order_debits_once_and_takes_stock_from_nearest_store(
    db_session, world, publisher
):
    order = await _place(db_session, publisher, world, quantity=2)

    assert order.dark_store_id == world.near_store_id
    assert order.status == OrderStatus.PENDING
    assert order.total_price == Decimal("100.00")
    assert order.is_paid is True
    assert order.paid_at is not None
    assert order.order_number.startswith("QC-")

    assert len(order.items) == 1
    item = order.items[0]
    assert item.product_name == "Product X"
    assert item.quantity == 2
    assert item.unit_price == Decimal("50.00")
    assert item.line_total == Decimal("100.00")

    assert await get_balance(db_session, "customer-1") == Decimal("900")
    txns = await _wallet_txns(db_session)
    assert len(txns) == 1
    assert txns[0].direction == TransactionDirection.DEBIT
    assert txns[0].transaction_type == TransactionType.PURCHASE
    assert txns[0].amount == Decimal("100")
    assert txns[0].idempotency_key == f"order-{order.id}-payment"

    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 8
    )
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.far_store_id)
        == 10
    )

    assert publisher.names() == [NEW_ORDER]
    event, payload, room = publisher.events[0]
    assert payload["order_id"] == order.id
    assert payload["order_number"] == order.order_number
    assert room is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cod_order_is_unpaid_and_leaves_wallet_alone(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    assert order.is_paid is False
    assert order.paid_at is None
    assert await get_balance(db_session, "customer-1") == Decimal("1000")
    assert await _wallet_txns(db_session) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_upi_order_is_prepaid_without_wallet_debit(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.UPI)

    assert order.is_paid is True
    assert await _wallet_txns(db_session) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_catalog_price_is_captured_not_client_price(db_session, world, publisher):
    lines = [
        CartLine(product_id=world.product_id, quantity=1, unit_price=Decimal("1.00"))
    ]
    order = await _place(
        db_session, publisher, world, method=PaymentMethod.COD, lines=lines
    )

    assert order.items[0].unit_price == Decimal("50.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_out_of_stock_creates_nothing(db_session, world, publisher):
    lines = [
        CartLine(product_id=world.product_id, quantity=2),
        CartLine(product_id=world.second_product_id, quantity=4),
    ]

    with pytest.raises(OutOfStock) as exc_info:
        await _place(
            db_session, publisher, world, lines=lines, total_price=Decimal("180")
        )

    assert exc_info.value.product_name == "Product Y"
    assert await _count(db_session, Order) == 0
    assert await _count(db_session, OrderItem) == 0
    assert await _count(db_session, InventoryMovement) == 0
    assert await get_balance(db_session, "customer-1") == Decimal("1000")
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 10
    )
    assert publisher.events == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failure_after_partial_writes_rolls_everything_back(
    db_session, world, publisher, monkeypatch
):
    """Stock runs out between the check and the decrement of the second line."""

    async def always_available(*args, **kwargs):
        return True

    monkeypatch.setattr(stock_ledger, "check_available", always_available)
    lines = [
        CartLine(product_id=world.product_id, quantity=2),
        CartLine(product_id=world.second_product_id, quantity=4),
    ]

    with pytest.raises(OutOfStock):
        await _place(
            db_session, publisher, world, lines=lines, total_price=Decimal("180")
        )

    assert await _count(db_session, Order) == 0
    assert await _count(db_session, OrderItem) == 0
    assert await _count(db_session, InventoryMovement) == 0
    assert await _wallet_txns(db_session) == []
    assert await get_balance(db_session, "customer-1") == Decimal("1000")
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 10
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_insufficient_wallet_balance_creates_nothing(db_session, world, publisher):
    lines = [CartLine(product_id=world.product_id, quantity=10)]

    with pytest.raises(InsufficientBalance):
        await _place(
            db_session, publisher, world, lines=lines, total_price=Decimal("1500")
        )

    assert await _count(db_session, Order) == 0
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 10
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_zero_total_wallet_order_skips_debit(db_session, world, publisher):
    order = await _place(db_session, publisher, world, total_price=Decimal("0"))

    assert order.total_price == Decimal("0")
    assert await _wallet_txns(db_session) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_empty_cart_is_rejected(db_session, world, publisher):
    with pytest.raises(ValidationFailed, match="No order items"):
        await _place(db_session, publisher, world, lines=[])


@pytest.mark.asyncio
@pytest.mark.unit
async def test_negative_total_is_rejected(db_session, world, publisher):
    with pytest.raises(ValidationFailed):
        await _place(db_session, publisher, world, total_price=Decimal("-1"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_someone_elses_address_is_not_found(db_session, world, publisher):
    other = AddressFactory.create(user_id="customer-2")
    db_session.add(other)
    await db_session.commit()
    other_id = other.id

    with pytest.raises(NotFound, match="Address not found"):
        await _place(db_session, publisher, world, address_id=other_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_product_is_not_found(db_session, world, publisher):
    lines = [CartLine(product_id=uuid.uuid4(), quantity=1)]

    with pytest.raises(NotFound):
        await _place(db_session, publisher, world, lines=lines)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_valid_coupon_is_linked(db_session, world, publisher):
    coupon = CouponFactory.create(code="WELCOME10")
    db_session.add(coupon)
    await db_session.commit()
    coupon_id = coupon.id

    order = await _place(
        db_session, publisher, world, method=PaymentMethod.COD, coupon_code="welcome10"
    )

    assert order.coupon_id == coupon_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_coupon_does_not_fail_the_order(db_session, world, publisher):
    order = await _place(
        db_session, publisher, world, method=PaymentMethod.COD, coupon_code="NOPE"
    )

    assert order.coupon_id is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_publisher_failure_does_not_fail_the_order(db_session, world):
    order = await _place(db_session, RecordingPublisher(fail=True), world)

    assert await _count(db_session, Order) == 1
    assert order.status == OrderStatus.PENDING


# ---------------------------------------------------------------------------
# cancel_order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_wallet_order_restores_stock_and_refunds_exactly(
    db_session, world, publisher
):
    order = await _place(db_session, publisher, world, quantity=3)

    cancelled = await order_ops.cancel_order(
        db_session, publisher, order_id=order.id, acting_user=make_user()
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 10
    )
    assert await get_balance(db_session, "customer-1") == Decimal("1000")

    refunds = [
        t for t in await _wallet_txns(db_session)
        if t.direction == TransactionDirection.CREDIT
    ]
    assert len(refunds) == 1
    assert refunds[0].amount == Decimal("150")
    assert refunds[0].transaction_type == TransactionType.REFUND
    assert refunds[0].description == f"Refund for Order #{order.order_number}"

    assert publisher.names() == [NEW_ORDER, ORDER_CANCELLED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_upi_order_refunds_to_wallet(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.UPI)

    await order_ops.cancel_order(
        db_session, publisher, order_id=order.id, acting_user=make_user()
    )

    txns = await _wallet_txns(db_session)
    assert len(txns) == 1
    assert txns[0].description.endswith("(UPI Reversal)")
    assert await get_balance(db_session, "customer-1") == Decimal("1100")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_cod_order_has_no_refund(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    await order_ops.cancel_order(
        db_session, publisher, order_id=order.id, acting_user=make_user()
    )

    assert await _wallet_txns(db_session) == []
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 10
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_writes_audit_row(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    await order_ops.cancel_order(
        db_session, publisher, order_id=order.id, acting_user=make_admin_user()
    )

    result = await db_session.execute(
        select(StoreAuditLog).where(StoreAuditLog.entity_id == str(order.id))
    )
    entry = result.scalar_one()
    assert entry.action == "cancelled"
    assert entry.performed_by == "admin-1"
    assert entry.new_value == {"status": "cancelled"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_other_customer_cannot_cancel(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)
    order_id = order.id

    with pytest.raises(Forbidden):
        await order_ops.cancel_order(
            db_session,
            publisher,
            order_id=order_id,
            acting_user=make_user("customer-2"),
        )

    reloaded = await order_ops.load_order(db_session, order_id)
    assert reloaded.status == OrderStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "status", [OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED]
)
async def test_cancel_after_dispatch_fails_and_changes_nothing(
    db_session, world, publisher, status
):
    order = await _place(db_session, publisher, world, quantity=2)
    order_id = order.id
    await order_ops.update_status(
        db_session,
        publisher,
        order_id=order_id,
        new_status=status,
        performed_by="admin-1",
    )

    with pytest.raises(InvalidStatusTransition) as exc_info:
        await order_ops.cancel_order(
            db_session, publisher, order_id=order_id, acting_user=make_user()
        )

    assert exc_info.value.detail == f"Cannot cancel order that is {status.value}"
    reloaded = await order_ops.load_order(db_session, order_id)
    assert reloaded.status == status
    assert reloaded.cancelled_at is None
    assert (
        await stock_ledger.get_quantity(db_session, world.product_id, world.near_store_id)
        == 8
    )
    assert await get_balance(db_session, "customer-1") == Decimal("900")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_twice_fails(db_session, world, publisher):
    order = await _place(db_session, publisher, world)
    order_id = order.id
    await order_ops.cancel_order(
        db_session, publisher, order_id=order_id, acting_user=make_user()
    )

    with pytest.raises(InvalidStatusTransition):
        await order_ops.cancel_order(
            db_session, publisher, order_id=order_id, acting_user=make_user()
        )

    assert await get_balance(db_session, "customer-1") == Decimal("1000")


# ---------------------------------------------------------------------------
# update_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_status_update_publishes_to_order_room(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    updated = await order_ops.update_status(
        db_session,
        publisher,
        order_id=order.id,
        new_status=OrderStatus.CONFIRMED,
        performed_by="admin-1",
    )

    assert updated.status == OrderStatus.CONFIRMED
    assert updated.delivery is None
    event, payload, room = publisher.events[-1]
    assert event == ORDER_STATUS_UPDATED
    assert payload == {"order_id": order.id, "status": OrderStatus.CONFIRMED}
    assert room == order_room(order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_same_status_is_a_silent_no_op(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    await order_ops.update_status(
        db_session,
        publisher,
        order_id=order.id,
        new_status=OrderStatus.PENDING,
        performed_by="admin-1",
    )

    assert publisher.names() == [NEW_ORDER]
    assert await _count(db_session, StoreAuditLog) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_backwards_status_update_is_rejected(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)
    order_id = order.id
    await order_ops.update_status(
        db_session,
        publisher,
        order_id=order_id,
        new_status=OrderStatus.PACKING,
        performed_by="admin-1",
    )

    with pytest.raises(InvalidStatusTransition):
        await order_ops.update_status(
            db_session,
            publisher,
            order_id=order_id,
            new_status=OrderStatus.CONFIRMED,
            performed_by="admin-1",
        )

    reloaded = await order_ops.load_order(db_session, order_id)
    assert reloaded.status == OrderStatus.PACKING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_cod_order_is_mirrored_and_marked_paid(
    db_session, world, publisher
):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    dispatched = await order_ops.update_status(
        db_session,
        publisher,
        order_id=order.id,
        new_status=OrderStatus.OUT_FOR_DELIVERY,
        performed_by="admin-1",
    )
    assert dispatched.delivery is not None
    assert dispatched.delivery.status == OrderStatus.OUT_FOR_DELIVERY
    assert dispatched.delivery.picked_up_at is not None
    assert dispatched.is_paid is False

    delivered = await order_ops.update_status(
        db_session,
        publisher,
        order_id=order.id,
        new_status=OrderStatus.DELIVERED,
        performed_by="admin-1",
    )
    assert delivered.delivery.status == OrderStatus.DELIVERED
    assert delivered.delivery.delivered_at is not None
    assert delivered.is_paid is True
    assert delivered.paid_at is not None


# ---------------------------------------------------------------------------
# Driver flow
# ---------------------------------------------------------------------------


async def _ready_order(db, publisher, world):
    order = await _place(db, publisher, world, method=PaymentMethod.COD)
    await order_ops.update_status(
        db,
        publisher,
        order_id=order.id,
        new_status=OrderStatus.READY_FOR_PICKUP,
        performed_by="packer-1",
    )
    return order.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_driver_accepts_and_completes(db_session, world, publisher):
    order_id = await _ready_order(db_session, publisher, world)
    driver = make_user("driver-1", role=UserRole.DRIVER)

    accepted = await order_ops.accept_delivery(
        db_session, publisher, order_id=order_id, driver=driver
    )
    assert accepted.status == OrderStatus.OUT_FOR_DELIVERY
    assert accepted.delivery.driver_id == "driver-1"
    assert accepted.delivery.accepted_at is not None

    completed = await order_ops.complete_delivery(
        db_session, publisher, order_id=order_id, driver=driver
    )
    assert completed.status == OrderStatus.DELIVERED
    assert completed.is_paid is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_driver_cannot_take_an_assigned_order(db_session, world, publisher):
    order_id = await _ready_order(db_session, publisher, world)
    await order_ops.accept_delivery(
        db_session,
        publisher,
        order_id=order_id,
        driver=make_user("driver-1", role=UserRole.DRIVER),
    )

    with pytest.raises(BusinessRuleViolation, match="already assigned"):
        await order_ops.accept_delivery(
            db_session,
            publisher,
            order_id=order_id,
            driver=make_user("driver-2", role=UserRole.DRIVER),
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_driver_cannot_accept_an_unready_order(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    with pytest.raises(BusinessRuleViolation, match="not ready for pickup"):
        await order_ops.accept_delivery(
            db_session,
            publisher,
            order_id=order.id,
            driver=make_user("driver-1", role=UserRole.DRIVER),
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_assigned_driver_can_complete(db_session, world, publisher):
    order_id = await _ready_order(db_session, publisher, world)
    await order_ops.accept_delivery(
        db_session,
        publisher,
        order_id=order_id,
        driver=make_user("driver-1", role=UserRole.DRIVER),
    )

    with pytest.raises(Forbidden):
        await order_ops.complete_delivery(
            db_session,
            publisher,
            order_id=order_id,
            driver=make_user("driver-2", role=UserRole.DRIVER),
        )

    completed = await order_ops.complete_delivery(
        db_session, publisher, order_id=order_id, driver=make_admin_user()
    )
    assert completed.status == OrderStatus.DELIVERED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_completing_a_delivered_order_again_changes_nothing(
    db_session, world, publisher
):
    order_id = await _ready_order(db_session, publisher, world)
    driver = make_user("driver-1", role=UserRole.DRIVER)
    await order_ops.accept_delivery(
        db_session, publisher, order_id=order_id, driver=driver
    )
    await order_ops.complete_delivery(
        db_session, publisher, order_id=order_id, driver=driver
    )
    announced = publisher.names().count(ORDER_STATUS_UPDATED)
    audit_rows = await _count(db_session, StoreAuditLog)

    again = await order_ops.complete_delivery(
        db_session, publisher, order_id=order_id, driver=driver
    )

    assert again.status == OrderStatus.DELIVERED
    assert publisher.names().count(ORDER_STATUS_UPDATED) == announced
    assert await _count(db_session, StoreAuditLog) == audit_rows



# ---------------------------------------------------------------------------
# mark_paid / visibility
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mark_paid_is_idempotent(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    first = await order_ops.mark_paid(db_session, order.id, make_user())
    paid_at = first.paid_at
    second = await order_ops.mark_paid(db_session, order.id, make_user())

    assert second.is_paid is True
    assert second.paid_at == paid_at


@pytest.mark.asyncio
@pytest.mark.unit
async def test_paying_a_pending_order_confirms_it(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)
    order_id = order.id

    paid = await order_ops.mark_paid(db_session, order_id, make_user(), publisher)

    assert paid.is_paid is True
    assert paid.status == OrderStatus.CONFIRMED
    event, payload, room = publisher.events[-1]
    assert event == ORDER_STATUS_UPDATED
    assert payload["status"] == OrderStatus.CONFIRMED
    assert room == order_room(order_id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_paying_keeps_a_later_status(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)
    order_id = order.id
    await order_ops.update_status(
        db_session,
        publisher,
        order_id=order_id,
        new_status=OrderStatus.PACKING,
        performed_by="admin-1",
    )
    announced = len(publisher.events)

    paid = await order_ops.mark_paid(db_session, order_id, make_user(), publisher)

    assert paid.is_paid is True
    assert paid.status == OrderStatus.PACKING
    assert len(publisher.events) == announced



@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancelled_order_cannot_be_paid(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)
    await order_ops.cancel_order(
        db_session, publisher, order_id=order.id, acting_user=make_user()
    )

    with pytest.raises(BusinessRuleViolation, match="cancelled"):
        await order_ops.mark_paid(db_session, order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_order_visibility(db_session, world, publisher):
    order = await _place(db_session, publisher, world, method=PaymentMethod.COD)

    assert (await order_ops.get_order_for_user(db_session, order.id, make_user())).id == order.id
    assert (
        await order_ops.get_order_for_user(db_session, order.id, make_admin_user())
    ).id == order.id
    with pytest.raises(Forbidden):
        await order_ops.get_order_for_user(db_session, order.id, make_user("customer-2"))
    with pytest.raises(NotFound):
        await order_ops.get_order_for_user(db_session, uuid.uuid4(), make_user())
