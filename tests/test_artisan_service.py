import pytest
from pydantic import ValidationError

from marketplace.api.v1.schemas.profile import ArtisanProfileCreate, ArtisanProfileUpdate
from marketplace.core.exceptions import ProfileExistsError
from marketplace.services.artisan import ArtisanProfileService
from tests.factories import (
    create_artisan,
    create_product,
    create_profile,
    create_review,
    create_user,
)


@pytest.fixture
def service():
    return ArtisanProfileService()


async def test_create_and_fetch_artisan_profile(db, service):
    user = await create_user(db, role="artisan")
    assert await service.get_artisan_profile(db, user.id) is None

    await service.create_artisan_profile(
        db, user.id, ArtisanProfileCreate(shop_name="  Woodgrain  ", location="Boise")
    )
    artisan = await service.get_artisan_profile(db, user.id)

    assert artisan.shop_name == "Woodgrain"
    assert artisan.location == "Boise"
    assert artisan.is_top_artisan is False


async def test_create_twice_raises_profile_exists(db, service):
    user, _ = await create_artisan(db)

    with pytest.raises(ProfileExistsError):
        await service.create_artisan_profile(db, user.id, ArtisanProfileCreate(shop_name="Other"))


async def test_create_requires_existing_user(db, service):
    with pytest.raises(ValueError):
        await service.create_artisan_profile(
            db, "missing-user", ArtisanProfileCreate(shop_name="Ghost Shop")
        )


async def test_partial_update_keeps_shop_name(db, service):
    user, _ = await create_artisan(db, shop_name="Clay & Kiln", location="Provo")

    artisan = await service.update_artisan_profile(
        db, user.id, ArtisanProfileUpdate(location="Logan")
    )

    assert artisan.location == "Logan"
    assert artisan.shop_name == "Clay & Kiln"


async def test_delete_artisan_profile(db, service):
    user, _ = await create_artisan(db)

    assert await service.delete_artisan_profile(db, user.id) is True
    assert await service.delete_artisan_profile(db, user.id) is False


async def test_get_all_profiles_is_paginated_with_owner_details(db, service):
    for index in range(5):
        await create_artisan(db, shop_name=f"Shop {index}", name=f"Owner {index}")

    first = await service.get_all_profiles(db, page=1, limit=2)
    last = await service.get_all_profiles(db, page=3, limit=2)

    assert first["total_profiles"] == 5
    assert first["total_pages"] == 3
    assert len(first["profiles"]) == 2
    assert len(last["profiles"]) == 1
    assert first["profiles"][0]["name"].startswith("Owner ")
    assert first["profiles"][0]["email"].endswith("@example.com")


async def test_profiles_for_list_ordered_by_shop_name(db, service):
    for shop_name in ("Weaver", "Anvil", "Moss"):
        await create_artisan(db, shop_name=shop_name)

    page = await service.get_profiles_for_list(db, page=1, limit=10)

    assert [p["shop_name"] for p in page["profiles"]] == ["Anvil", "Moss", "Weaver"]
    assert all(p["average_rating"] == 0.0 for p in page["profiles"])


async def test_top_artisans_ranked_by_average_rating(db, service):
    buyer = await create_user(db)
    artisan_a, _ = await create_artisan(db, shop_name="A Shop")
    artisan_b, _ = await create_artisan(db, shop_name="B Shop")
    await create_artisan(db, shop_name="C Shop")

    product_a = await create_product(db, artisan_a.id, 1)
    for rating in (5, 5):
        await create_review(db, product_a, buyer, rating)
    product_b1 = await create_product(db, artisan_b.id, 2)
    product_b2 = await create_product(db, artisan_b.id, 3)
    await create_review(db, product_b1, buyer, 1)
    await create_review(db, product_b1, buyer, 2)
    await create_review(db, product_b2, buyer, 3)

    top = await service.get_top_artisans(db, limit=3)

    assert [a["shop_name"] for a in top] == ["A Shop", "B Shop", "C Shop"]
    assert [a["average_rating"] for a in top] == [5.0, 2.0, 0.0]
    assert [a["total_sales"] for a in top] == [2, 3, 0]


async def test_top_artisans_respects_limit(db, service):
    for index in range(5):
        await create_artisan(db, shop_name=f"Shop {index}")

    assert len(await service.get_top_artisans(db)) == 3


async def test_profile_and_user_details(db, service):
    user, _ = await create_artisan(db, shop_name="Loom", name="Ada Weaver")
    await create_profile(
        db,
        user,
        phone_number="801-555-0199",
        profile_image_url="https://cdn.example.com/ada.png",
    )

    details = await service.get_profile_and_user_details(db, user.id)

    assert details["shop_name"] == "Loom"
    assert details["user_name"] == "Ada Weaver"
    assert details["phone_number"] == "801-555-0199"
    assert details["profile_image_url"] == "https://cdn.example.com/ada.png"
    assert details["average_rating"] == 0.0


async def test_profile_and_user_details_absent(db, service):
    buyer = await create_user(db)

    assert await service.get_profile_and_user_details(db, buyer.id) is None


def test_update_schema_strips_and_rejects_blank_shop_name():
    assert ArtisanProfileUpdate(shop_name="  Loom  ").shop_name == "Loom"
    assert ArtisanProfileUpdate(location="Boise").shop_name is None

    with pytest.raises(ValidationError):
        ArtisanProfileUpdate(shop_name="   ")


async def test_top_artisans_equal_displayed_average_ordered_by_shop_name(db, service):
    buyer = await create_user(db)
    birch, _ = await create_artisan(db, shop_name="Birch")
    anvil, _ = await create_artisan(db, shop_name="Anvil")

    # Birch averages 13 / 3 = 4.33 and Anvil 43 / 10 = 4.3; both display as 4.3
    birch_product = await create_product(db, birch.id, 1)
    for rating in (4, 4, 5):
        await create_review(db, birch_product, buyer, rating)
    anvil_product = await create_product(db, anvil.id, 2)
    for rating in (4, 4, 5, 5, 4, 4, 4, 4, 5, 4):
        await create_review(db, anvil_product, buyer, rating)

    top = await service.get_top_artisans(db, limit=2)

    assert [a["shop_name"] for a in top] == ["Anvil", "Birch"]
    assert [a["average_rating"] for a in top] == [4.3, 4.3]
