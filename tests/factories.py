"""
Builders for test data and session tokens.
"""

import os
import time
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from authlib.jose import jwt

from marketplace.models import ArtisanProfile, Product, ProductImage, Profile, Review, User

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_token(user, expires_in=3600, secret=None, **claims):
    now = int(time.time())
    payload = {
        "id": user.id,
        "sub": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "firstLogin": False,
        "hasProfile": False,
        "iat": now,
        "exp": now + expires_in,
    }
    payload.update(claims)
    token = jwt.encode({"alg": "HS256"}, payload, secret or os.environ["AUTH_SECRET"])
    return token.decode("utf-8")


def auth_headers(user, **claims):
    return {"Authorization": f"Bearer {make_token(user, **claims)}"}


async def create_user(db, role="buyer", name=None, email=None):
    user = User(
        role=role,
        name=name or f"{role.title()} User",
        email=email or f"{uuid.uuid4().hex}@example.com",
    )
    db.add(user)
    await db.flush()
    return user


async def create_artisan(db, shop_name="Clay & Kiln", name=None, **fields):
    user = await create_user(db, role="artisan", name=name or f"{shop_name} Owner")
    artisan = ArtisanProfile(user_id=user.id, shop_name=shop_name, **fields)
    db.add(artisan)
    await db.flush()
    return user, artisan


async def create_profile(db, user, **fields):
    profile = Profile(user_id=user.id, **fields)
    db.add(profile)
    await db.flush()
    return profile


async def create_product(db, seller_id, index=0, image_url=None, **fields):
    fields.setdefault("name", f"Product {index:02d}")
    fields.setdefault("description", "Handmade item")
    fields.setdefault("price", Decimal("10.00"))
    fields.setdefault("created_at", BASE_TIME + timedelta(minutes=index))
    fields.setdefault("updated_at", BASE_TIME + timedelta(minutes=index))
    product = Product(seller_id=seller_id, **fields)
    db.add(product)
    await db.flush()
    if image_url:
        db.add(ProductImage(product_id=product.id, image_url=image_url, is_primary=True))
        await db.flush()
    return product


async def create_review(db, product, user, rating, approved=True, **fields):
    review = Review(
        product_id=product.id,
        user_id=user.id,
        rating=rating,
        is_approved=approved,
        **fields,
    )
    db.add(review)
    await db.flush()
    return review
