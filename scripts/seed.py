"""
Deterministic seed script for dev/demo environments.

Creates an admin, an approved affiliate with a referral code and a product
link, and a handful of paid orders at different ages so the nightly
approval run has something to mature and something to skip.
"""

from __future__ import annotations

import os
import sys
from datetime import timedelta
from decimal import Decimal

from app import models  # noqa: F401
from app.core.commissions import record_order_commission
from app.core.db import Base, SessionLocal, engine
from app.core.time import utcnow
from app.crud.affiliates import (
    create_affiliate,
    create_affiliate_link,
    create_referral_code,
    get_affiliate_for_user,
    get_link_by_slug,
    get_referral_code,
)
from app.crud.banks import create_bank, get_bank_for_user
from app.crud.users import create_user, get_user_by_email
from app.models.orders import Order, OrderItem
from app.models.products import Product


def ensure_not_production():
    env = os.getenv("ENV", "").lower()
    allow_prod = os.getenv("ALLOW_SEED_PROD", "0").lower() in {"1", "true", "yes"}
    if env == "production" and not allow_prod:
        print("Refusing to seed in production. Set ALLOW_SEED_PROD=1 to override.", file=sys.stderr)
        sys.exit(1)


def get_or_create_user(db, email, first_name, last_name, role="user"):
    return get_user_by_email(db, email) or create_user(
        db, email=email, first_name=first_name, last_name=last_name, role=role
    )


def get_or_create_product(db, name, price, commission=None):
    product = db.query(Product).filter(Product.name == name).first()
    if product:
        return product
    product = Product(name=name, price=Decimal(price), commission=commission)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def get_or_create_order(db, order_number, *, buyer, product, age_days, shipment_status, **attribution):
    order = db.query(Order).filter(Order.order_number == order_number).first()
    if order:
        return order
    order = Order(
        order_number=order_number,
        user_id=buyer.id,
        total_amount=product.price,
        payment_reference=f"PSK-{order_number}",
        order_payment_status="paid",
        shipment_status=shipment_status,
        **attribution,
    )
    order.items.append(OrderItem(product_id=product.id, quantity=1, unit_price=product.price))
    order.created_at = utcnow() - timedelta(days=age_days)
    db.add(order)
    db.commit()
    db.refresh(order)
    return order


def seed():
    ensure_not_production()
    Base.metadata.create_all(bind=engine)

    with SessionLocal() as db:
        # Users
        get_or_create_user(db, "admin@bookshop.test", "Kemi", "Ade", role="admin")
        tola = get_or_create_user(db, "tola@bookshop.test", "Tola", "Bello")
        chidi = get_or_create_user(db, "chidi@bookshop.test", "Chidi", "Eze")

        # Affiliate membership, referral code and payout bank
        if get_affiliate_for_user(db, tola.id) is None:
            create_affiliate(db, user_id=tola.id, status="approved", category="books", reason="Book club host")
            tola.is_affiliate = True
            tola.affiliate_status = "approved"
            db.commit()
        if get_referral_code(db, "ref_tola2024") is None:
            create_referral_code(db, user_id=tola.id, code="ref_tola2024")
        if get_bank_for_user(db, user_id=tola.id, bank_code="058") is None:
            create_bank(
                db,
                user_id=tola.id,
                bank_name="GTBank",
                bank_code="058",
                account_number="0123456789",
                account_name="Tola Bello",
            )

        # Catalog and a product link
        novel = get_or_create_product(db, "Things Fall Apart", "8000", commission="12.5")
        poetry = get_or_create_product(db, "Half of a Yellow Sun", "10000")
        if get_link_by_slug(db, "tola-novel-demo") is None:
            create_affiliate_link(db, user_id=tola.id, product_id=novel.id, slug="tola-novel-demo")

        # Orders: one matured and delivered, one too young, one still in transit
        orders = [
            get_or_create_order(
                db, "ORD-DEMO-1", buyer=chidi, product=novel, age_days=45,
                shipment_status="delivered", referral_slug="tola-novel-demo",
            ),
            get_or_create_order(
                db, "ORD-DEMO-2", buyer=chidi, product=poetry, age_days=5,
                shipment_status="delivered", referral_code="ref_tola2024",
            ),
            get_or_create_order(
                db, "ORD-DEMO-3", buyer=chidi, product=poetry, age_days=40,
                shipment_status="shipped", referral_code="ref_tola2024",
            ),
        ]
        for order in orders:
            record_order_commission(db, order)
    print("Seed complete.")


if __name__ == "__main__":
    seed()
