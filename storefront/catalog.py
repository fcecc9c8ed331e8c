import logging
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from storefront.models import PRODUCT_CATEGORIES, Product, ProductImage, ProductVariant
from storefront.schemas import ImageIn, ProductCreate, ProductUpdate, VariantIn
from storefront.validation import has_min_length

logger = logging.getLogger(__name__)


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _validate(name: Optional[str], price: Optional[float], category: Optional[str]) -> None:
    if name is not None and not has_min_length(name):
        raise _bad_request("Product name must be at least 2 characters")
    if price is not None and price <= 0:
        raise _bad_request("Product price must be greater than 0")
    if category is not None and category not in PRODUCT_CATEGORIES:
        raise _bad_request("Invalid product category")


def filter_products(query, category=None, in_stock=None, min_price=None, max_price=None):
    if category:
        query = query.filter(Product.category == category)
    if in_stock is not None:
        query = query.filter(Product.in_stock == in_stock)
    if min_price is not None:
        query = query.filter(Product.price >= min_price)
    if max_price is not None:
        query = query.filter(Product.price <= max_price)
    return query


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return product


def _images(images: List[ImageIn]) -> List[ProductImage]:
    return [ProductImage(image_url=i.image_url, display_order=i.display_order) for i in images]


def _sync_variants(product: Product, variants: List[VariantIn]) -> None:
    """Update variants matched by id, add new ones and drop the rest."""
    existing = {v.id: v for v in product.variants}
    kept = []
    for data in variants:
        variant = existing.get(data.id) if data.id is not None else None
        if variant is None:
            variant = ProductVariant()
        variant.size = data.size
        variant.stock = data.stock
        variant.price_adjustment = data.price_adjustment
        kept.append(variant)
    product.variants = kept


def create_product(db: Session, data: ProductCreate) -> Product:
    _validate(data.name, data.price, data.category)
    product = Product(
        name=data.name.strip(),
        description=data.description,
        price=data.price,
        category=data.category,
        image_url=data.image_url,
        in_stock=data.in_stock,
        variants=[
            ProductVariant(size=v.size, stock=v.stock, price_adjustment=v.price_adjustment)
            for v in data.variants
        ],
        images=_images(data.images),
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(db: Session, product_id: int, data: ProductUpdate) -> Product:
    _validate(data.name, data.price, data.category)
    product = get_product(db, product_id)

    fields = data.model_dump(exclude_unset=True, exclude={"variants", "images"})
    if "name" in fields and fields["name"] is not None:
        fields["name"] = fields["name"].strip()
    for key, value in fields.items():
        if value is None and key in ("name", "price", "category", "in_stock"):
            continue
        setattr(product, key, value)
    if data.variants is not None:
        _sync_variants(product, data.variants)
    if data.images is not None:
        product.images = _images(data.images)

    db.commit()
    db.refresh(product)
    logger.info("Updated product %s", product.id)
    return product


def delete_product(db: Session, product_id: int) -> None:
    product = get_product(db, product_id)
    db.delete(product)
    db.commit()
    logger.info("Deleted product %s", product_id)
