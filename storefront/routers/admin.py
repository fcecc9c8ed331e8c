from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from storefront.catalog import create_product, delete_product, update_product
from storefront.database import get_db
from storefront.models import Order, Product, User
from storefront.ordering import update_order_status
from storefront.pagination import paginate, paginated_response
from storefront.rate_limit import ADMIN, RateLimiter
from storefront.schemas import OrderOut, OrderStatusUpdate, ProductCreate, ProductOut, ProductUpdate, UploadOut, UserOut
from storefront.security import require_admin
from storefront.storage import ObjectStorage, get_storage, public_url, save_upload

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(RateLimiter(ADMIN)), Depends(require_admin)],
)


# Products
@router.get("/products", summary="List all products")
def list_products(cursor: Optional[str] = None, limit: Optional[int] = None, db: Session = Depends(get_db)):
    page = paginate(db.query(Product), Product, cursor, limit)
    return paginated_response(page, [ProductOut.model_validate(p) for p in page.items])


@router.post("/products", status_code=status.HTTP_201_CREATED, summary="Add a new product")
def add_product(data: ProductCreate, db: Session = Depends(get_db)):
    product = create_product(db, data)
    return {"success": True, "data": ProductOut.model_validate(product), "message": "Product created successfully"}


@router.put("/products/{product_id}", summary="Update an existing product")
def edit_product(product_id: int, data: ProductUpdate, db: Session = Depends(get_db)):
    product = update_product(db, product_id, data)
    return {"success": True, "data": ProductOut.model_validate(product), "message": "Product updated successfully"}


@router.delete("/products/{product_id}", summary="Delete a product")
def remove_product(product_id: int, db: Session = Depends(get_db)):
    delete_product(db, product_id)
    return {"success": True, "data": True, "message": "Product deleted successfully"}


# Orders
@router.get("/orders", summary="List all orders")
def list_orders(cursor: Optional[str] = None, limit: Optional[int] = None, db: Session = Depends(get_db)):
    page = paginate(db.query(Order), Order, cursor, limit)
    return paginated_response(page, [OrderOut.from_order(o) for o in page.items])


@router.put("/orders/{order_id}/status", summary="Update the status of an order")
def set_order_status(order_id: int, data: OrderStatusUpdate, db: Session = Depends(get_db)):
    order = update_order_status(db, order_id, data.status)
    return {"success": True, "data": OrderOut.from_order(order), "message": "Order status updated successfully"}


# Users
@router.get("/users", summary="List all users")
def list_users(cursor: Optional[str] = None, limit: Optional[int] = None, db: Session = Depends(get_db)):
    page = paginate(db.query(User), User, cursor, limit)
    return paginated_response(page, [UserOut.model_validate(u) for u in page.items])


# Uploads
@router.post("/uploads", status_code=status.HTTP_201_CREATED, summary="Upload an image")
async def upload_image(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form("products", pattern=r"^[A-Za-z0-9_-]+$"),
    storage: ObjectStorage = Depends(get_storage),
):
    stored = await save_upload(storage, file, folder=folder)
    data = UploadOut(url=public_url(request.base_url, stored.key), key=stored.key)
    return {"success": True, "data": data}
