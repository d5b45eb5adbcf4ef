import pytest

from marketplace.api.v1.schemas.profile import ProfileCreate, ProfileUpdate
from marketplace.core.exceptions import DataAccessError, ProfileExistsError
from marketplace.services.profile import ProfileService
from tests.factories import create_artisan, create_user


@pytest.fixture
def service():
    return ProfileService()


async def test_get_profile_before_create_returns_none(db, service):
    user = await create_user(db)

    assert await service.get_profile(db, user.id) is None


async def test_create_then_get_returns_written_fields(db, service):
    user = await create_user(db)

    await service.create_profile(
        db,
        user.id,
        ProfileCreate(bio="Potter", city="Provo", phone_number="+1 801-555-0100"),
    )
    profile = await service.get_profile(db, user.id)

    assert profile.bio == "Potter"
    assert profile.city == "Provo"
    assert profile.phone_number == "+1 801-555-0100"
    assert profile.country is None
    assert profile.created_at is not None


async def test_create_twice_raises_profile_exists(db, service):
    user = await create_user(db)
    await service.create_profile(db, user.id, ProfileCreate(bio="First"))

    with pytest.raises(ProfileExistsError) as exc_info:
        await service.create_profile(db, user.id, ProfileCreate(bio="Second"))

    assert isinstance(exc_info.value, DataAccessError)
    assert exc_info.value.message == "Failed to create profile."


async def test_create_for_missing_user_raises_value_error(db, service):
    with pytest.raises(ValueError):
        await service.create_profile(db, "missing-user", ProfileCreate())


async def test_update_only_touches_provided_fields(db, service):
    user = await create_user(db)
    await service.create_profile(db, user.id, ProfileCreate(bio="Potter", city="Provo"))

    profile = await service.update_profile(db, user.id, ProfileUpdate(city="Ogden"))

    assert profile.city == "Ogden"
    assert profile.bio == "Potter"


async def test_update_missing_profile_returns_none(db, service):
    user = await create_user(db)

    assert await service.update_profile(db, user.id, ProfileUpdate(city="Ogden")) is None


async def test_delete_profile(db, service):
    user = await create_user(db)
    await service.create_profile(db, user.id, ProfileCreate(bio="Potter"))

    assert await service.delete_profile(db, user.id) is True
    assert await service.delete_profile(db, user.id) is False
    assert await service.get_profile(db, user.id) is None


async def test_has_artisan_profile(db, service):
    buyer = await create_user(db)
    artisan, _ = await create_artisan(db)

    assert await service.has_artisan_profile(db, buyer.id) is False
    assert await service.has_artisan_profile(db, artisan.id) is True
