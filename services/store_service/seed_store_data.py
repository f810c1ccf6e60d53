"""Seed script for QuickCart demo data.

Creates categories (with subcategories), products, two Jaipur dark stores
stocked with 100 units of everything, and a welcome coupon, so the checkout
flow can be tried end-to-end.

Usage:
    python -m services.store_service.seed_store_data
"""

import asyncio
from datetime import timedelta
from decimal import Decimal

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.config import AsyncSessionLocal, engine
from services.store_service.models import (
    Category,
    Coupon,
    DarkStore,
    DiscountType,
    Product,
    StockItem,
)
from sqlalchemy import func, select

INITIAL_STOCK = 100

CATEGORIES = {
    "Vegetables": ["Leafy Greens", "Root Vegetables", "Exotic", "Organic"],
    "Fruits": ["Citrus", "Berries", "Tropical", "Seasonal"],
    "Dairy & Eggs": ["Milk", "Cheese", "Butter", "Eggs", "Yogurt"],
    "Bakery": ["Bread", "Pastries", "Cakes", "Cookies"],
    "Beverages": ["Soda", "Juice", "Water", "Tea", "Coffee"],
    "Snacks": ["Chips", "Chocolates", "Nuts", "Biscuits"],
    "Pantry": ["Rice", "Pasta", "Spices", "Oil", "Sauces"],
}

# (sku, name, price, subcategory)
PRODUCTS = [
    ("VEG-SPIN-250", "Spinach 250g", "30.00", "Leafy Greens"),
    ("VEG-POTA-1KG", "Potatoes 1kg", "40.00", "Root Vegetables"),
    ("VEG-ONIO-1KG", "Onions 1kg", "45.00", "Root Vegetables"),
    ("FRU-BANA-6", "Bananas (6 pcs)", "50.00", "Tropical"),
    ("FRU-ORAN-1KG", "Nagpur Oranges 1kg", "90.00", "Citrus"),
    ("DAI-MILK-500", "Toned Milk 500ml", "27.00", "Milk"),
    ("DAI-PANE-200", "Paneer 200g", "85.00", "Cheese"),
    ("DAI-EGGS-12", "Farm Eggs (12 pcs)", "84.00", "Eggs"),
    ("BAK-BRWN-400", "Brown Bread 400g", "45.00", "Bread"),
    ("BEV-COLA-750", "Cola 750ml", "40.00", "Soda"),
    ("BEV-TEA-250", "Assam Tea 250g", "140.00", "Tea"),
    ("SNK-CHIP-52", "Salted Chips 52g", "20.00", "Chips"),
    ("SNK-DARK-100", "Dark Chocolate 100g", "99.00", "Chocolates"),
    ("PAN-RICE-1KG", "Basmati Rice 1kg", "120.00", "Rice"),
    ("PAN-OIL-1L", "Mustard Oil 1L", "175.00", "Oil"),
]

DARK_STORES = [
    DarkStore(
        name="Malviya Nagar Dark Store",
        address="Plot 12, Malviya Nagar, Jaipur",
        lat=26.8530,
        lng=75.8047,
    ),
    DarkStore(
        name="Vaishali Nagar Dark Store",
        address="B-45, Vaishali Nagar, Jaipur",
        lat=26.9115,
        lng=75.7436,
    ),
]


async def seed_store_data():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("Seeding QuickCart data...")

        # Check if data already exists
        count = (await db.execute(select(func.count(Category.id)))).scalar()
        if count and count > 0:
            print(f"Store data already exists ({count} categories). Skipping seed.")
            return

        # =========================================================================
        # 1. CATEGORIES
        # =========================================================================
        subcategories: dict[str, Category] = {}
        for name, subs in CATEGORIES.items():
            parent = Category(name=name)
            db.add(parent)
            await db.flush()
            for sub_name in subs:
                sub = Category(name=sub_name, parent_id=parent.id)
                db.add(sub)
                subcategories[sub_name] = sub
        await db.flush()

        # =========================================================================
        # 2. PRODUCTS
        # =========================================================================
        products = [
            Product(
                sku=sku,
                name=name,
                price=Decimal(price),
                category_id=subcategories[sub_name].id,
            )
            for sku, name, price, sub_name in PRODUCTS
        ]
        db.add_all(products)

        # =========================================================================
        # 3. DARK STORES AND STOCK
        # =========================================================================
        db.add_all(DARK_STORES)
        await db.flush()

        for store in DARK_STORES:
            for product in products:
                db.add(
                    StockItem(
                        product_id=product.id,
                        dark_store_id=store.id,
                        quantity=INITIAL_STOCK,
                    )
                )

        # =========================================================================
        # 4. COUPONS
        # =========================================================================
        db.add(
            Coupon(
                code="WELCOME10",
                discount=Decimal("10"),
                discount_type=DiscountType.PERCENTAGE,
                min_order=Decimal("199"),
                expiry=utc_now() + timedelta(days=365),
            )
        )

        await db.commit()
        print("=" * 60)
        print("QuickCart data seeded successfully!")
        print("=" * 60)
        print(f"  Categories: {len(CATEGORIES) + len(subcategories)}")
        print(f"  Products: {len(products)}")
        print(f"  Dark stores: {len(DARK_STORES)}")
        print(f"  Stock rows: {len(products) * len(DARK_STORES)}")
        print("=" * 60)


if __name__ == "__main__":
    asyncio.run(seed_store_data())
