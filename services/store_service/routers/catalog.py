"""Store catalog router: categories and products."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.db.session import get_async_db
from services.store_service.models import Category, Product, StockItem
from services.store_service.schemas import (
    CategoryResponse,
    ProductListResponse,
    ProductResponse,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["catalog"])


# ============================================================================
# CATALOG - CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_async_db),
):
    """List all categories."""
    result = await db.execute(select(Category).order_by(Category.name))
    return result.scalars().all()


# ============================================================================
# CATALOG - PRODUCTS
# ============================================================================


async def _stock_map(
    db: AsyncSession, dark_store_id: uuid.UUID, product_ids: list[uuid.UUID]
) -> dict[uuid.UUID, int]:
    if not product_ids:
        return {}
    result = await db.execute(
        select(StockItem.product_id, StockItem.quantity).where(
            StockItem.dark_store_id == dark_store_id,
            StockItem.product_id.in_(product_ids),
        )
    )
    return {row.product_id: row.quantity for row in result.all()}


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    q: Optional[str] = Query(None, description="Search by name"),
    category_id: Optional[uuid.UUID] = None,
    dark_store_id: Optional[uuid.UUID] = Query(
        None, description="Include stock levels at this dark store"
    ),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List active products with optional filters."""
    query = select(Product).where(Product.is_active.is_(True))

    if category_id:
        query = query.where(Product.category_id == category_id)
    if q:
        query = query.where(Product.name.ilike(f"%{q}%"))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Product.name)
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    products = result.scalars().all()

    items = [ProductResponse.model_validate(p) for p in products]
    if dark_store_id:
        stock = await _stock_map(db, dark_store_id, [p.id for p in products])
        for item in items:
            item.stock = stock.get(item.id, 0)

    return ProductListResponse(
        items=items, total=total, page=page, page_size=page_size
    )


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Get a single active product."""
    product = await db.get(Product, product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
