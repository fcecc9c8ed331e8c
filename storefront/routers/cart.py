from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import CartItem, User
from storefront.rate_limit import RELAXED, RateLimiter
from storefront.schemas import CartItemIn, CartItemOut, CartQuantityUpdate, CartSave
from storefront.security import get_current_user

router = APIRouter(prefix="/api/cart", tags=["Cart"], dependencies=[Depends(RateLimiter(RELAXED))])


def _line(db: Session, user: User, product_id: int, variant_id: Optional[int]):
    return (
        db.query(CartItem)
        .filter(
            CartItem.user_id == user.id,
            CartItem.product_id == product_id,
            CartItem.variant_id.is_(None) if variant_id is None else CartItem.variant_id == variant_id,
        )
        .first()
    )


def _new_line(user: User, item: CartItemIn) -> CartItem:
    return CartItem(user_id=user.id, **item.model_dump())


def _cart(db: Session, user: User) -> dict:
    items = (
        db.query(CartItem)
        .filter(CartItem.user_id == user.id)
        .order_by(CartItem.created_at.desc(), CartItem.id.desc())
        .all()
    )
    return {"items": [CartItemOut.model_validate(i) for i in items]}


@router.get("", summary="Get the current cart")
def read_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"success": True, "data": _cart(db, user)}


@router.post("", summary="Replace the current cart")
def save_cart(data: CartSave, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
    db.add_all([_new_line(user, item) for item in data.items])
    db.commit()
    return {"success": True, "message": "Cart saved successfully"}


@router.delete("", summary="Clear the current cart")
def clear_cart(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    db.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    return {"success": True, "message": "Cart cleared successfully"}


@router.post("/items", status_code=status.HTTP_201_CREATED, summary="Add an item to the cart")
def add_item(item: CartItemIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    line = _line(db, user, item.product_id, item.variant_id)
    if line:
        line.quantity += item.quantity
    else:
        db.add(_new_line(user, item))
    db.commit()
    return {"success": True, "data": _cart(db, user)}


@router.put("/items/{product_id}", summary="Change the quantity of a cart item")
def update_item(
    product_id: int,
    data: CartQuantityUpdate,
    variant_id: Optional[int] = Query(None, alias="variantId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    line = _line(db, user, product_id, variant_id)
    if not line:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    if data.quantity <= 0:
        db.delete(line)
    else:
        line.quantity = data.quantity
    db.commit()
    return {"success": True, "data": _cart(db, user)}


@router.delete("/items/{product_id}", summary="Remove an item from the cart")
def remove_item(
    product_id: int,
    variant_id: Optional[int] = Query(None, alias="variantId"),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    line = _line(db, user, product_id, variant_id)
    if not line:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cart item not found")
    db.delete(line)
    db.commit()
    return {"success": True, "data": _cart(db, user)}
