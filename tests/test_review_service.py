import pytest
from sqlalchemy import select

from marketplace.api.v1.schemas.review import ReviewCreate
from marketplace.models import Product
from marketplace.services.review import ReviewService
from tests.factories import create_artisan, create_product, create_review, create_user


@pytest.fixture
def service():
    return ReviewService()


async def cached_rating(db, product_id):
    result = await db.execute(
        select(Product.average_rating, Product.review_count).where(Product.id == product_id)
    )
    return tuple(result.one())


async def test_new_review_awaits_approval(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)

    review = await service.create_review(
        db, product.id, buyer.id, ReviewCreate(rating=5, title="Lovely")
    )

    assert review.is_approved is False
    assert review.helpful_count == 0
    assert await cached_rating(db, product.id) == (0.0, 0)


async def test_approval_refreshes_cached_rating(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    other_buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, other_buyer, 4)
    review = await service.create_review(db, product.id, buyer.id, ReviewCreate(rating=5))

    approved = await service.approve_review(db, review.id)

    assert approved.is_approved is True
    assert await cached_rating(db, product.id) == (4.5, 2)


async def test_cannot_review_inactive_or_missing_product(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    hidden = await create_product(db, seller.id, is_active=False)

    with pytest.raises(ValueError):
        await service.create_review(db, hidden.id, buyer.id, ReviewCreate(rating=4))
    with pytest.raises(ValueError):
        await service.create_review(db, "missing", buyer.id, ReviewCreate(rating=4))


async def test_cannot_review_same_product_twice(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await service.create_review(db, product.id, buyer.id, ReviewCreate(rating=4))

    with pytest.raises(ValueError):
        await service.create_review(db, product.id, buyer.id, ReviewCreate(rating=2))


async def test_reviews_for_product_hide_unapproved_by_default(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db, name="Bea Buyer")
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 5)
    await create_review(db, product, buyer, 1, approved=False)

    public = await service.get_reviews_for_product(db, product.id)
    everything = await service.get_reviews_for_product(db, product.id, include_unapproved=True)

    assert [r["rating"] for r in public] == [5]
    assert public[0]["user_name"] == "Bea Buyer"
    assert len(everything) == 2


async def test_mark_helpful_increments(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    review = await create_review(db, product, buyer, 5)

    await service.mark_helpful(db, review.id)
    updated = await service.mark_helpful(db, review.id)

    assert updated.helpful_count == 2
    assert await service.mark_helpful(db, "missing") is None


async def test_delete_review_by_author_refreshes_rating(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    product = await create_product(db, seller.id)
    await create_review(db, product, await create_user(db), 2)
    review = await create_review(db, product, buyer, 5)
    await service.approve_review(db, review.id)
    assert await cached_rating(db, product.id) == (3.5, 2)

    assert await service.delete_review(db, review.id, buyer.id) is True

    assert await cached_rating(db, product.id) == (2.0, 1)
    assert await service.delete_review(db, review.id, buyer.id) is False


async def test_delete_review_requires_author_or_admin(db, service):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    stranger = await create_user(db)
    admin = await create_user(db, role="admin")
    product = await create_product(db, seller.id)
    review = await create_review(db, product, buyer, 5)

    with pytest.raises(PermissionError):
        await service.delete_review(db, review.id, stranger.id)

    assert await service.delete_review(db, review.id, admin.id, is_admin=True) is True
