from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .database import get_db
from .models import Product
from .schemas import ProductCreate, StockUpdate, Product as ProductSchema
from .exceptions import ResourceNotFoundError
from .logging_config import audit_log

product_router = APIRouter()

@product_router.post("/", response_model=ProductSchema, status_code=201)
async def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db)
):
    product = Product(**payload.model_dump())

    try:
        db.add(product)
        db.commit()
        db.refresh(product)
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f"Product number {payload.product_number} already exists"
        )

    audit_log(action="product_created", product_id=product.id, stock=product.stock)
    return product

@product_router.get("/{product_id}", response_model=ProductSchema)
async def get_product(
    product_id: int,
    db: Session = Depends(get_db)
):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise ResourceNotFoundError("Product", product_id)
    return product

@product_router.patch("/{product_id}/stock", response_model=ProductSchema)
async def update_stock(
    product_id: int,
    payload: StockUpdate,
    db: Session = Depends(get_db)
):
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise ResourceNotFoundError("Product", product_id)

    was_sold_out = product.is_sold_out

    # Update fields if provided
    if payload.stock is not None:
        product.stock = payload.stock
    if payload.is_closeout is not None:
        product.is_closeout = payload.is_closeout

    db.commit()
    db.refresh(product)

    audit_log(
        action="product_stock_updated",
        product_id=product.id,
        stock=product.stock,
        is_closeout=product.is_closeout,
        sold_out_changed=was_sold_out != product.is_sold_out
    )
    return product
