"""Order placement, cancellation and status changes.

Every public function here owns its transaction: it either commits all of its
writes (order rows, stock ledger, wallet ledger, audit rows) or rolls back
and re-raises. Notifications go out only after a successful commit and are
best-effort.
"""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    BusinessRuleViolation,
    Forbidden,
    NotFound,
    OutOfStock,
    ValidationFailed,
)
from libs.common.events import (
    NEW_ORDER,
    ORDER_CANCELLED,
    ORDER_STATUS_UPDATED,
    EventPublisher,
    order_room,
    publish_safely,
)
from libs.common.logging import get_logger
from services.store_service.models import (
    Address,
    AuditEntityType,
    Delivery,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    Product,
    SubstitutionPreference,
)
from services.store_service.services import stock_ledger
from services.store_service.services.audit import log_audit
from services.store_service.services.coupons import resolve_coupon_for_order
from services.store_service.services.order_state import (
    ensure_cancellable,
    validate_transition,
)
from services.store_service.services.routing import resolve_dark_store
from services.wallet_service.models import TransactionType
from services.wallet_service.services.wallet_ops import credit_wallet, debit_wallet
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

PREPAID_METHODS = (PaymentMethod.WALLET, PaymentMethod.UPI)


@dataclass(frozen=True)
class CartLine:
    product_id: uuid.UUID
    quantity: int
    substitution: SubstitutionPreference = SubstitutionPreference.REFUND
    # Price the client displayed; the catalog price is what gets charged.
    unit_price: Optional[Decimal] = None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


async def load_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    """Fetch an order with its items, address and delivery, or raise NotFound."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .execution_options(populate_existing=True)
    )
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


def _can_view(order: Order, user: AuthUser) -> bool:
    return user.is_admin or order.user_id == user.user_id


async def get_order_for_user(
    db: AsyncSession, order_id: uuid.UUID, user: AuthUser
) -> Order:
    order = await load_order(db, order_id)
    if not _can_view(order, user):
        raise Forbidden("Not authorized to view this order")
    return order


async def _get_owned_address(
    db: AsyncSession, address_id: uuid.UUID, user_id: str
) -> Address:
    address = await db.get(Address, address_id)
    # Someone else's address is reported the same as a missing one.
    if not address or address.user_id != user_id:
        raise NotFound("Address not found")
    return address


async def _load_products(
    db: AsyncSession, lines: Sequence[CartLine]
) -> dict[uuid.UUID, Product]:
    product_ids = {line.product_id for line in lines}
    result = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {product.id: product for product in result.scalars().all()}

    for product_id in product_ids:
        product = products.get(product_id)
        if not product or not product.is_active:
            raise NotFound(f"Product {product_id} not found")
    return products


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


async def place_order(
    db: AsyncSession,
    publisher: EventPublisher,
    *,
    user_id: str,
    lines: Sequence[CartLine],
    address_id: uuid.UUID,
    payment_method: PaymentMethod,
    total_price: Decimal,
    coupon_code: Optional[str] = None,
) -> Order:
    """Create an order atomically.

    Steps, all inside one transaction:
    1. Resolve the delivery address (must belong to the user)
    2. Route to the nearest dark store
    3. Check stock for every line; the first shortfall aborts
    4. Debit the wallet for wallet payments
    5. Resolve the coupon (best-effort)
    6. Create the order, then its items, decrementing stock per item
    7. Commit
    """
    if not lines:
        raise ValidationFailed("No order items")
    total_price = Decimal(total_price)
    if total_price < 0:
        raise ValidationFailed("Total price cannot be negative")

    order_id = uuid.uuid4()
    try:
        address = await _get_owned_address(db, address_id, user_id)
        selection = await resolve_dark_store(db, address)
        dark_store_id = selection.dark_store_id
        products = await _load_products(db, lines)

        for line in lines:
            available = await stock_ledger.check_available(
                db, line.product_id, dark_store_id, line.quantity
            )
            if not available:
                raise OutOfStock(products[line.product_id].name)

        if payment_method == PaymentMethod.WALLET and total_price > 0:
            await debit_wallet(
                db,
                user_id=user_id,
                amount=total_price,
                description="Payment for grocery order",
                transaction_type=TransactionType.PURCHASE,
                idempotency_key=f"order-{order_id}-payment",
                reference_type="order",
                reference_id=str(order_id),
                initiated_by=user_id,
            )

        coupon = await resolve_coupon_for_order(db, coupon_code)

        prepaid = payment_method in PREPAID_METHODS
        order = Order(
            id=order_id,
            order_number=Order.generate_order_number(),
            user_id=user_id,
            dark_store_id=dark_store_id,
            address_id=address.id,
            payment_method=payment_method,
            status=OrderStatus.PENDING,
            total_price=total_price,
            coupon_id=coupon.id if coupon else None,
            is_paid=prepaid,
            paid_at=utc_now() if prepaid else None,
        )
        db.add(order)
        await db.flush()

        for line in lines:
            product = products[line.product_id]
            if line.unit_price is not None and Decimal(line.unit_price) != product.price:
                logger.warning(
                    "Cart price %s for %s differs from catalog price %s",
                    line.unit_price,
                    product.sku,
                    product.price,
                )
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product.id,
                    product_name=product.name,
                    sku=product.sku,
                    quantity=line.quantity,
                    unit_price=product.price,
                    substitution=line.substitution,
                )
            )
            await stock_ledger.decrement(
                db, product.id, dark_store_id, line.quantity, reference_id=order.id
            )

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    order = await load_order(db, order_id)
    logger.info(
        "Order %s placed by %s at store %s (%s, %s)",
        order.order_number,
        user_id,
        dark_store_id,
        payment_method.value,
        total_price,
    )

    await publish_safely(
        publisher,
        NEW_ORDER,
        {
            "order_id": order.id,
            "order_number": order.order_number,
            "total_price": order.total_price,
        },
    )
    return order


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


def _refund_description(order: Order) -> str:
    description = f"Refund for Order #{order.order_number}"
    if order.payment_method == PaymentMethod.UPI:
        description += " (UPI Reversal)"
    return description


async def cancel_order(
    db: AsyncSession,
    publisher: EventPublisher,
    *,
    order_id: uuid.UUID,
    acting_user: AuthUser,
) -> Order:
    """Cancel a pre-dispatch order, restoring stock and refunding prepaid orders."""
    try:
        order = await load_order(db, order_id, for_update=True)
        if not _can_view(order, acting_user):
            raise Forbidden("Not authorized to cancel this order")
        ensure_cancellable(order.status)

        old_status = order.status
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = utc_now()

        for item in order.items:
            await stock_ledger.increment(
                db,
                item.product_id,
                order.dark_store_id,
                item.quantity,
                reference_id=order.id,
            )

        if order.payment_method in PREPAID_METHODS and order.total_price > 0:
            await credit_wallet(
                db,
                user_id=order.user_id,
                amount=order.total_price,
                description=_refund_description(order),
                transaction_type=TransactionType.REFUND,
                idempotency_key=f"order-{order.id}-refund",
                reference_type="order",
                reference_id=str(order.id),
                initiated_by=acting_user.user_id,
            )

        log_audit(
            db,
            AuditEntityType.ORDER,
            order.id,
            "cancelled",
            acting_user.user_id,
            old_value={"status": old_status.value},
            new_value={"status": OrderStatus.CANCELLED.value},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    order = await load_order(db, order_id)
    logger.info("Order %s cancelled by %s", order.order_number, acting_user.user_id)

    await publish_safely(
        publisher,
        ORDER_CANCELLED,
        {"order_id": order.id, "order_number": order.order_number},
    )
    return order


# ---------------------------------------------------------------------------
# Status updates
# ---------------------------------------------------------------------------


def _mirror_onto_delivery(order: Order, new_status: OrderStatus) -> None:
    """Keep the delivery timestamps in step with the order status."""
    if new_status not in (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED):
        return

    now = utc_now()
    if order.delivery is None:
        order.delivery = Delivery(order_id=order.id)
    delivery = order.delivery

    if delivery.picked_up_at is None:
        delivery.picked_up_at = now
    if new_status == OrderStatus.DELIVERED:
        delivery.delivered_at = now
        if not order.is_paid:
            # Cash collected at the door
            order.is_paid = True
            order.paid_at = now


def _apply_status(
    db: AsyncSession, order: Order, new_status: OrderStatus, performed_by: str
) -> bool:
    """Validate and stage a status change. Returns False for a no-op."""
    if not validate_transition(order.status, new_status):
        return False

    old_status = order.status
    order.status = new_status
    _mirror_onto_delivery(order, new_status)

    log_audit(
        db,
        AuditEntityType.ORDER,
        order.id,
        "status_changed",
        performed_by,
        old_value={"status": old_status.value},
        new_value={"status": new_status.value},
    )
    return True


async def _commit_and_announce(
    db: AsyncSession, publisher: EventPublisher, order_id: uuid.UUID
) -> Order:
    await db.commit()
    order = await load_order(db, order_id)
    await publish_safely(
        publisher,
        ORDER_STATUS_UPDATED,
        {"order_id": order.id, "status": order.status},
        room=order_room(order.id),
    )
    return order


async def update_status(
    db: AsyncSession,
    publisher: EventPublisher,
    *,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    performed_by: str,
) -> Order:
    """Move an order forward through the fulfilment pipeline."""
    try:
        order = await load_order(db, order_id, for_update=True)
        changed = _apply_status(db, order, new_status, performed_by)
        if not changed:
            return order
        order = await _commit_and_announce(db, publisher, order_id)
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Order %s moved to %s by %s",
        order.order_number,
        order.status.value,
        performed_by,
    )
    return order


async def accept_delivery(
    db: AsyncSession,
    publisher: EventPublisher,
    *,
    order_id: uuid.UUID,
    driver: AuthUser,
) -> Order:
    """Assign ``driver`` to a ready order and dispatch it."""
    try:
        order = await load_order(db, order_id, for_update=True)
        if order.delivery is not None and order.delivery.driver_id:
            raise BusinessRuleViolation("Order already assigned to a driver")
        if order.status != OrderStatus.READY_FOR_PICKUP:
            raise BusinessRuleViolation(
                f"Order is {order.status.value}, not ready for pickup"
            )

        if order.delivery is None:
            order.delivery = Delivery(order_id=order.id)
        order.delivery.driver_id = driver.user_id
        order.delivery.accepted_at = utc_now()

        _apply_status(db, order, OrderStatus.OUT_FOR_DELIVERY, driver.user_id)
        order = await _commit_and_announce(db, publisher, order_id)
    except Exception:
        await db.rollback()
        raise

    logger.info("Driver %s accepted order %s", driver.user_id, order.order_number)
    return order


async def complete_delivery(
    db: AsyncSession,
    publisher: EventPublisher,
    *,
    order_id: uuid.UUID,
    driver: AuthUser,
) -> Order:
    """Mark a dispatched order delivered by its assigned driver."""
    try:
        order = await load_order(db, order_id, for_update=True)
        delivery = order.delivery
        if delivery is None or (
            delivery.driver_id != driver.user_id and not driver.is_admin
        ):
            raise Forbidden("This delivery is not assigned to you")

        if not _apply_status(db, order, OrderStatus.DELIVERED, driver.user_id):
            return order
        order = await _commit_and_announce(db, publisher, order_id)
    except Exception:
        await db.rollback()
        raise

    logger.info("Driver %s delivered order %s", driver.user_id, order.order_number)
    return order


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


async def mark_paid(
    db: AsyncSession,
    order_id: uuid.UUID,
    user: Optional[AuthUser] = None,
    publisher: Optional[EventPublisher] = None,
) -> Order:
    """Flag an order as paid. Re-marking a paid order changes nothing.

    Payment confirms a pending order; orders already further along keep
    their status.
    """
    try:
        order = await load_order(db, order_id, for_update=True)
        if user is not None and not _can_view(order, user):
            raise Forbidden("Not authorized to pay for this order")
        if order.is_paid:
            return order
        if order.status == OrderStatus.CANCELLED:
            raise BusinessRuleViolation("Cannot pay for a cancelled order")

        order.is_paid = True
        order.paid_at = utc_now()
        confirmed = order.status == OrderStatus.PENDING and _apply_status(
            db,
            order,
            OrderStatus.CONFIRMED,
            user.user_id if user is not None else "system",
        )
        if confirmed and publisher is not None:
            return await _commit_and_announce(db, publisher, order_id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return await load_order(db, order_id)

