# Prices and totals come from catalog rows; placement is one transaction

import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from storefront.models import ORDER_STATUSES, Order, OrderItem, Product, ProductVariant, User, utcnow
from storefront.schemas import OrderCreate
from storefront.validation import has_min_length, is_valid_email, is_valid_phone

logger = logging.getLogger(__name__)


def _reject(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def validate_order_request(data: OrderCreate) -> None:
    customer = data.customer_info
    if not has_min_length(customer.name):
        raise _reject("Customer name must be at least 2 characters")
    if not is_valid_phone(customer.phone):
        raise _reject("Invalid phone number format")
    if customer.email and not is_valid_email(customer.email):
        raise _reject("Invalid email format")
    if not data.items:
        raise _reject("Order must contain at least one item")
    for item in data.items:
        if not item.product_id or item.quantity <= 0:
            raise _reject("All items must have valid product ID and quantity > 0")


def _price_item(db: Session, item, now) -> OrderItem:
    product = db.query(Product).filter(Product.id == item.product_id).first()
    if not product:
        raise _reject(f"Product with ID {item.product_id} not found")
    if not product.in_stock:
        raise _reject(f'Product "{product.name}" is out of stock')

    line = OrderItem(
        product_id=product.id,
        product_name=product.name,
        quantity=item.quantity,
        price=product.price,
    )
    if item.variant_id is None:
        return line

    variant = db.query(ProductVariant).filter(ProductVariant.id == item.variant_id).first()
    if not variant:
        raise _reject(f"Variant with ID {item.variant_id} not found")
    if variant.product_id != product.id:
        raise _reject(f"Variant {item.variant_id} does not belong to product {item.product_id}")
    insufficient = (
        f'Variant "{variant.size}" only has {variant.stock} items in stock, '
        f"but {item.quantity} were requested"
    )
    if variant.stock < item.quantity:
        raise _reject(insufficient)

    # Re-checked in SQL so a concurrent order cannot take the same units
    updated = (
        db.query(ProductVariant)
        .filter(ProductVariant.id == variant.id, ProductVariant.stock >= item.quantity)
        .update(
            {ProductVariant.stock: ProductVariant.stock - item.quantity, ProductVariant.updated_at: now},
            synchronize_session=False,
        )
    )
    if not updated:
        raise _reject(insufficient)

    line.price = product.price + (variant.price_adjustment or 0)
    line.variant_id = variant.id
    line.variant_size = variant.size
    db.expire(variant)
    return line


def create_order(db: Session, data: OrderCreate, user: Optional[User] = None) -> Order:
    validate_order_request(data)
    now = utcnow()
    try:
        lines = [_price_item(db, item, now) for item in data.items]
        customer = data.customer_info
        order = Order(
            user_id=user.id if user else None,
            total_amount=sum(line.price * line.quantity for line in lines),
            status="pending",
            customer_name=customer.name.strip(),
            customer_phone=customer.phone,
            customer_email=customer.email or None,
            customer_address=customer.address or None,
            notes=data.notes or None,
            created_at=now,
            updated_at=now,
            items=lines,
        )
        db.add(order)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(order)
    logger.info("Created order %s with %d items, total %.2f", order.id, len(lines), order.total_amount)
    return order


def get_order(db: Session, order_id: int) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return order


def update_order_status(db: Session, order_id: int, new_status: str) -> Order:
    if new_status not in ORDER_STATUSES:
        raise _reject("Invalid order status")
    order = get_order(db, order_id)
    order.status = new_status
    db.commit()
    db.refresh(order)
    logger.info("Order %s moved to %s", order.id, new_status)
    return order
