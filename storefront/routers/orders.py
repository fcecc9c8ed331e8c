from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from storefront.database import get_db
from storefront.models import User
from storefront.ordering import create_order, get_order
from storefront.rate_limit import MODERATE, RateLimiter
from storefront.schemas import OrderCreate, OrderOut
from storefront.security import get_optional_user

router = APIRouter(prefix="/api/orders", tags=["Orders"], dependencies=[Depends(RateLimiter(MODERATE))])


@router.post("", status_code=status.HTTP_201_CREATED, summary="Place an order")
def place_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
    user: Optional[User] = Depends(get_optional_user),
):
    order = create_order(db, data, user)
    return {"success": True, "data": OrderOut.from_order(order), "message": "Order created successfully"}


@router.get("/{order_id}", summary="Get an order")
def read_order(order_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": OrderOut.from_order(get_order(db, order_id))}
