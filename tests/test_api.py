import logging

from marketplace.core.config import settings
from tests.factories import auth_headers, create_artisan, create_product, create_review, create_user


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


async def test_health(client):
    live = await client.get("/api/v1/health")
    ready = await client.get("/api/v1/health/ready")

    assert live.json()["status"] == "healthy"
    assert ready.status_code == 200


async def test_profile_form_requires_session(client):
    response = await client.post("/api/profile", data={"bio": "Potter"})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}
    assert response.headers["cache-control"] == "no-store"


async def test_profile_form_create_then_read(client, db):
    user = await create_user(db)
    await db.commit()
    headers = auth_headers(user)

    created = await client.post(
        "/api/profile",
        data={"bio": "Potter", "zipCode": "84601", "phoneNumber": "801-555-0100"},
        headers=headers,
    )
    profile = await client.get("/api/v1/profile", headers=headers)

    assert created.status_code == 200
    assert created.json() == {"success": True}
    assert created.headers["cache-control"] == "no-store"
    assert profile.status_code == 200
    assert profile.json()["zip_code"] == "84601"
    assert profile.json()["phone_number"] == "801-555-0100"


async def test_profile_form_reports_field_errors(client, db):
    user = await create_user(db)
    await db.commit()

    response = await client.post(
        "/api/profile", data={"phoneNumber": "call me"}, headers=auth_headers(user)
    )

    assert response.status_code == 422
    assert response.json() == {"errors": {"phone_number": ["Invalid phone number"]}}


async def test_profile_form_create_twice_conflicts(client, db):
    user = await create_user(db)
    await db.commit()
    headers = auth_headers(user)

    await client.post("/api/profile", data={"bio": "Potter"}, headers=headers)
    response = await client.post("/api/profile", data={"bio": "Again"}, headers=headers)

    assert response.status_code == 409
    assert "error" in response.json()


async def test_profile_form_update_is_partial(client, db):
    user = await create_user(db)
    await db.commit()
    headers = auth_headers(user)
    await client.post("/api/profile", data={"bio": "Potter", "city": "Provo"}, headers=headers)

    updated = await client.put("/api/profile", data={"city": "Ogden"}, headers=headers)
    profile = (await client.get("/api/v1/profile", headers=headers)).json()

    assert updated.json() == {"success": True}
    assert profile["city"] == "Ogden"
    assert profile["bio"] == "Potter"


async def test_profile_form_update_without_profile(client, db):
    user = await create_user(db)
    await db.commit()

    response = await client.put("/api/profile", data={"city": "Ogden"}, headers=auth_headers(user))

    assert response.status_code == 404


async def test_profile_status_reads_database(client, db):
    user, _ = await create_artisan(db)
    await db.commit()

    # The token still claims a first login without a profile
    response = await client.get("/api/v1/profile/status", headers=auth_headers(user, hasProfile=False))

    assert response.json() == {
        "user_id": user.id,
        "role": "artisan",
        "has_profile": False,
        "has_artisan_profile": True,
    }


async def test_profile_requires_session(client):
    response = await client.get("/api/v1/profile")

    assert response.status_code == 401


async def test_product_listing_endpoint(client, db):
    seller, _ = await create_artisan(db, shop_name="Loom")
    for index in range(3):
        await create_product(db, seller.id, index)
    await db.commit()

    response = await client.get("/api/v1/products", params={"limit": 2, "page": 2})

    body = response.json()
    assert response.status_code == 200
    assert body["total_products"] == 3
    assert body["total_pages"] == 2
    assert [p["name"] for p in body["products"]] == ["Product 00"]
    assert body["products"][0]["seller"]["shop_name"] == "Loom"


async def test_product_listing_rejects_unknown_sort(client):
    response = await client.get("/api/v1/products", params={"sort_by": "popular"})

    assert response.status_code == 422


async def test_artisan_creates_and_deletes_product(client, db):
    seller, _ = await create_artisan(db, shop_name="Loom")
    await db.commit()
    headers = auth_headers(seller)

    created = await client.post(
        "/api/v1/products",
        json={
            "name": "Scarf",
            "price": "45.00",
            "tags": ["wool"],
            "image_url": "https://cdn.example.com/scarf.png",
        },
        headers=headers,
    )
    product_id = created.json()["id"]
    first = await client.delete(f"/api/v1/products/{product_id}", headers=headers)
    second = await client.delete(f"/api/v1/products/{product_id}", headers=headers)
    missing = await client.get(f"/api/v1/products/{product_id}")

    assert created.status_code == 201
    assert created.json()["images"][0]["is_primary"] is True
    assert first.json() == {"message": "Product deleted successfully.", "deleted": True}
    assert second.json() == {"message": "Product not found or already deleted.", "deleted": False}
    assert missing.status_code == 404


async def test_buyer_cannot_create_product(client, db):
    buyer = await create_user(db)
    await db.commit()

    response = await client.post(
        "/api/v1/products", json={"name": "Mug", "price": "5.00"}, headers=auth_headers(buyer)
    )

    assert response.status_code == 403


async def test_artisan_cannot_edit_someone_elses_product(client, db):
    owner, _ = await create_artisan(db, shop_name="Loom")
    other, _ = await create_artisan(db, shop_name="Forge")
    product = await create_product(db, owner.id)
    await db.commit()

    response = await client.patch(
        f"/api/v1/products/{product.id}", json={"name": "Mine now"}, headers=auth_headers(other)
    )

    assert response.status_code == 403


async def test_review_flow(client, db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db, name="Bea Buyer")
    admin = await create_user(db, role="admin")
    product = await create_product(db, seller.id)
    await db.commit()

    created = await client.post(
        f"/api/v1/products/{product.id}/reviews",
        json={"rating": 5, "title": "Lovely"},
        headers=auth_headers(buyer),
    )
    review_id = created.json()["id"]
    before = await client.get(f"/api/v1/products/{product.id}/reviews")
    hidden = await client.get(
        f"/api/v1/products/{product.id}/reviews",
        params={"include_unapproved": True},
        headers=auth_headers(buyer),
    )
    approved = await client.post(
        f"/api/v1/reviews/{review_id}/approve", headers=auth_headers(admin)
    )
    after = await client.get(f"/api/v1/products/{product.id}/reviews")
    listed = await client.get(f"/api/v1/products/{product.id}")

    assert created.status_code == 201
    assert created.json()["is_approved"] is False
    assert before.json() == []
    assert hidden.status_code == 403
    assert approved.json()["is_approved"] is True
    assert [r["user_name"] for r in after.json()] == ["Bea Buyer"]
    assert listed.json()["average_rating"] == 5.0
    assert listed.json()["review_count"] == 1


async def test_only_author_or_admin_deletes_review(client, db):
    seller, _ = await create_artisan(db)
    author = await create_user(db)
    stranger = await create_user(db)
    product = await create_product(db, seller.id)
    await db.commit()

    created = await client.post(
        f"/api/v1/products/{product.id}/reviews", json={"rating": 3}, headers=auth_headers(author)
    )
    review_id = created.json()["id"]

    forbidden = await client.delete(f"/api/v1/reviews/{review_id}", headers=auth_headers(stranger))
    deleted = await client.delete(f"/api/v1/reviews/{review_id}", headers=auth_headers(author))
    gone = await client.delete(f"/api/v1/reviews/{review_id}", headers=auth_headers(author))

    assert forbidden.status_code == 403
    assert deleted.status_code == 204
    assert gone.status_code == 404


async def test_artisan_pages(client, db):
    seller, _ = await create_artisan(db, shop_name="Loom", name="Ada Weaver")
    await create_product(db, seller.id, 1, name="Shown")
    await create_product(db, seller.id, 2, name="Draft", is_active=False)
    await db.commit()

    profile = await client.get(f"/api/v1/artisans/{seller.id}")
    public_products = await client.get(f"/api/v1/artisans/{seller.id}/products")
    own_products = await client.get(
        f"/api/v1/artisans/{seller.id}/products", headers=auth_headers(seller)
    )
    top = await client.get("/api/v1/artisans/top")

    assert profile.json()["shop_name"] == "Loom"
    assert [p["name"] for p in public_products.json()] == ["Shown"]
    assert {p["name"] for p in own_products.json()} == {"Shown", "Draft"}
    assert [a["shop_name"] for a in top.json()] == ["Loom"]


async def test_patch_null_description_keeps_current_value(client, db):
    seller, _ = await create_artisan(db)
    product = await create_product(db, seller.id, description="Stoneware")
    await db.commit()

    response = await client.patch(
        f"/api/v1/products/{product.id}",
        json={"description": None, "quantity_available": 3},
        headers=auth_headers(seller),
    )

    assert response.status_code == 200
    assert response.json()["description"] == "Stoneware"
    assert response.json()["quantity_available"] == 3


async def test_unapproved_reviews_hidden_from_public_product_views(client, db):
    seller, _ = await create_artisan(db)
    buyer = await create_user(db)
    spammer = await create_user(db)
    admin = await create_user(db, role="admin")
    product = await create_product(db, seller.id)
    await create_review(db, product, buyer, 5, title="Lovely")
    await create_review(db, product, spammer, 1, title="Unmoderated", approved=False)
    await db.commit()

    def titles(item):
        return sorted(review["title"] for review in item["reviews"])

    detail = (await client.get(f"/api/v1/products/{product.id}")).json()
    listed = (await client.get("/api/v1/products")).json()["products"][0]
    by_artisan = (await client.get(f"/api/v1/artisans/{seller.id}/products")).json()[0]
    as_buyer = (
        await client.get(f"/api/v1/products/{product.id}", headers=auth_headers(buyer))
    ).json()
    as_owner = (
        await client.get(f"/api/v1/products/{product.id}", headers=auth_headers(seller))
    ).json()
    as_admin = (await client.get("/api/v1/products", headers=auth_headers(admin))).json()

    assert titles(detail) == ["Lovely"]
    assert titles(listed) == ["Lovely"]
    assert titles(by_artisan) == ["Lovely"]
    assert titles(as_buyer) == ["Lovely"]
    assert titles(as_owner) == ["Lovely", "Unmoderated"]
    assert titles(as_admin["products"][0]) == ["Lovely", "Unmoderated"]


async def test_blank_shop_name_rejected_on_update(client, db):
    seller, _ = await create_artisan(db, shop_name="Loom")
    await db.commit()

    response = await client.patch(
        "/api/v1/artisans/me", json={"shop_name": "   "}, headers=auth_headers(seller)
    )
    profile = await client.get("/api/v1/artisans/me", headers=auth_headers(seller))

    assert response.status_code == 422
    assert profile.json()["shop_name"] == "Loom"


async def test_profile_status_logs_token_flags_in_development(client, db, caplog, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "development")
    caplog.set_level(logging.DEBUG, logger="marketplace.api.v1.routes.profile")
    user = await create_user(db)
    await db.commit()

    await client.get("/api/v1/profile/status", headers=auth_headers(user, firstLogin=True))

    assert "token firstLogin=True" in caplog.text
    assert "database has_profile=False" in caplog.text
