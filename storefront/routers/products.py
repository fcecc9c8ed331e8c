from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from storefront.catalog import filter_products, get_product
from storefront.database import get_db
from storefront.models import Product
from storefront.pagination import paginate, paginated_response
from storefront.rate_limit import MODERATE, RateLimiter
from storefront.schemas import ProductOut

router = APIRouter(prefix="/api/products", tags=["Products"], dependencies=[Depends(RateLimiter(MODERATE))])


@router.get("", summary="List products")
def list_products(
    category: Optional[str] = None,
    in_stock: Optional[bool] = Query(None, alias="inStock"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    cursor: Optional[str] = None,
    limit: Optional[int] = None,
    db: Session = Depends(get_db),
):
    query = filter_products(db.query(Product), category, in_stock, min_price, max_price)
    page = paginate(query, Product, cursor, limit)
    return paginated_response(page, [ProductOut.model_validate(p) for p in page.items])


@router.get("/{product_id}", summary="Get a product")
def read_product(product_id: int, db: Session = Depends(get_db)):
    return {"success": True, "data": ProductOut.model_validate(get_product(db, product_id))}
