from sqlalchemy import select

from marketplace.models import Product
from marketplace.services.artisan import ArtisanProfileService
from marketplace.services.rating import get_seller_rating, refresh_product_rating, round_rating
from tests.factories import create_artisan, create_product, create_review, create_user


def test_round_rating_half_up():
    assert round_rating(13, 3) == 4.3
    assert round_rating(9, 2) == 4.5
    # 4.25 rounds up, not to even
    assert round_rating(17, 4) == 4.3
    assert round_rating(5, 1) == 5.0


def test_round_rating_without_reviews_is_zero():
    assert round_rating(None, 0) == 0.0
    assert round_rating(0, None) == 0.0


async def test_adding_a_review_updates_the_simple_average(db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    mug = await create_product(db, seller.id, 1)
    bowl = await create_product(db, seller.id, 2)
    await create_review(db, mug, buyer, 3)
    await create_review(db, bowl, buyer, 5)

    assert await get_seller_rating(db, seller.id) == (4.0, 2)

    await create_review(db, bowl, buyer, 5)

    assert await get_seller_rating(db, seller.id) == (4.3, 3)


async def test_seller_rating_is_stable_without_review_changes(db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 4)
    await create_review(db, product, buyer, 5)

    first = await get_seller_rating(db, seller.id)
    second = await get_seller_rating(db, seller.id)

    assert first == second == (4.5, 2)


async def test_seller_rating_approval_filter(db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 5)
    await create_review(db, product, buyer, 1, approved=False)

    assert await get_seller_rating(db, seller.id) == (5.0, 1)
    assert await get_seller_rating(db, seller.id, approved_only=False) == (3.0, 2)


async def test_artisan_display_rating_counts_every_review(db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 5)
    await create_review(db, product, buyer, 2, approved=False)

    details = await ArtisanProfileService().get_profile_and_user_details(db, seller.id)

    assert details["average_rating"] == 3.5
    assert details["total_sales"] == 2


async def test_refresh_product_rating_uses_approved_reviews(db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 4)
    await create_review(db, product, buyer, 5)
    await create_review(db, product, buyer, 1, approved=False)

    assert await refresh_product_rating(db, product.id) == (4.5, 2)

    result = await db.execute(
        select(Product.average_rating, Product.review_count).where(Product.id == product.id)
    )
    assert result.one() == (4.5, 2)


async def test_refresh_product_rating_without_reviews(db):
    seller, _ = await create_artisan(db)
    product = await create_product(db, seller.id)

    assert await refresh_product_rating(db, product.id) == (0.0, 0)
