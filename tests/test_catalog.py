import pytest
from backend.schema.full_schema import Review
from backend.db.connection import async_session
from tests.conftest import create_product, url_prefix


@pytest.mark.asyncio
async def test_product_listing_paginates_and_filters(ac_client):
    shawl = await create_product("Kani Shawl", price=1200.0, is_featured=True)
    await create_product("Sozni Stole", price=800.0)
    await create_product("Hidden Wrap", price=500.0, is_active=False)

    resp = await ac_client.get(f"{url_prefix}/products", params={"sort": "price", "order": "asc", "limit": 1})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["total"] == 2
    assert [p["name"] for p in data["products"]] == ["Sozni Stole"]

    featured = await ac_client.get(f"{url_prefix}/products", params={"featured": "true"})
    assert [p["id"] for p in featured.json()["data"]["products"]] == [shawl]


@pytest.mark.asyncio
async def test_product_listing_rejects_unknown_sort(ac_client):
    resp = await ac_client.get(f"{url_prefix}/products", params={"sort": "password"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "HTTP_400"


@pytest.mark.asyncio
async def test_filters_default_range_on_empty_catalog(ac_client):
    resp = await ac_client.get(f"{url_prefix}/filters")
    assert resp.json()["data"] == {"colors": [], "sizes": [], "min_price": 0, "max_price": 2000}


@pytest.mark.asyncio
async def test_filters_collect_distinct_options(ac_client):
    await create_product("Kani Shawl", price=1200.0, colors=["red", "ivory"], sizes=["L"])
    await create_product("Sozni Stole", price=800.0, colors=["red"], sizes=["M", "L"])

    data = (await ac_client.get(f"{url_prefix}/filters")).json()["data"]
    assert data["colors"] == ["ivory", "red"]
    assert data["sizes"] == ["L", "M"]
    assert (data["min_price"], data["max_price"]) == (800.0, 1200.0)


@pytest.mark.asyncio
async def test_search_requires_query_and_matches_names(ac_client):
    await create_product("Kani Shawl")
    await create_product("Sozni Stole")

    assert (await ac_client.get(f"{url_prefix}/products/search")).status_code == 400
    resp = await ac_client.get(f"{url_prefix}/products/search", params={"q": "kani"})
    assert [p["name"] for p in resp.json()["data"]["products"]] == ["Kani Shawl"]


@pytest.mark.asyncio
async def test_admin_product_lifecycle(ac_client, admin_headers):
    cat = await ac_client.post(f"{url_prefix}/admin/categories", json={"name": "Shawls"}, headers=admin_headers)
    assert cat.status_code == 201
    category_id = cat.json()["data"]["id"]
    assert cat.json()["data"]["slug"] == "shawls"

    missing = await ac_client.post(f"{url_prefix}/admin/products", headers=admin_headers,
                                   json={"name": "Orphan", "price": 10, "category_id": 9999})
    assert missing.status_code == 400

    created = await ac_client.post(f"{url_prefix}/admin/products", headers=admin_headers,
                                   json={"name": "Kani Shawl", "price": 1500, "category_id": category_id,
                                         "stock": 4})
    assert created.status_code == 201
    product_id = created.json()["data"]["id"]
    assert created.json()["data"]["category"]["slug"] == "shawls"

    updated = await ac_client.put(f"{url_prefix}/admin/products/{product_id}", headers=admin_headers,
                                  json={"price": 1400})
    assert updated.json()["data"]["price"] == 1400

    unknown_field = await ac_client.put(f"{url_prefix}/admin/products/{product_id}", headers=admin_headers,
                                        json={"sku": "X"})
    assert unknown_field.status_code == 422

    deleted = await ac_client.delete(f"{url_prefix}/admin/products/{product_id}", headers=admin_headers)
    assert deleted.status_code == 200
    assert (await ac_client.get(f"{url_prefix}/products/{product_id}")).status_code == 404


@pytest.mark.asyncio
async def test_admin_routes_require_admin_role(ac_client, user_headers):
    resp = await ac_client.post(f"{url_prefix}/admin/categories", json={"name": "Shawls"}, headers=user_headers)
    assert resp.status_code == 403
    assert (await ac_client.post(f"{url_prefix}/admin/categories", json={"name": "Shawls"})).status_code == 401


@pytest.mark.asyncio
async def test_category_duplicates_and_delete_unlinks_products(ac_client, admin_headers):
    product_id = await create_product("Kani Shawl")
    category_id = (await ac_client.get(f"{url_prefix}/products/{product_id}")).json()["data"]["category_id"]

    dup = await ac_client.post(f"{url_prefix}/admin/categories", headers=admin_headers,
                               json={"name": "Other", "slug": "kani-shawl-cat"})
    assert dup.status_code == 409

    resp = await ac_client.delete(f"{url_prefix}/admin/categories/{category_id}", headers=admin_headers)
    assert resp.status_code == 200
    product = (await ac_client.get(f"{url_prefix}/products/{product_id}")).json()["data"]
    assert product["category_id"] is None
    assert (await ac_client.get(f"{url_prefix}/categories")).json()["data"]["categories"] == []


@pytest.mark.asyncio
async def test_catalogue_product_membership(ac_client, admin_headers):
    shawl = await create_product("Kani Shawl")
    stole = await create_product("Sozni Stole")

    created = await ac_client.post(f"{url_prefix}/admin/catalogues", headers=admin_headers,
                                   json={"name": "Winter Edit", "product_ids": [shawl, 9999]})
    assert created.status_code == 201
    catalogue_id = created.json()["data"]["id"]
    assert [p["id"] for p in created.json()["data"]["products"]] == [shawl]

    added = await ac_client.post(f"{url_prefix}/admin/catalogues/{catalogue_id}/products", headers=admin_headers,
                                 json={"product_ids": [stole, shawl]})
    assert sorted(p["id"] for p in added.json()["data"]["products"]) == sorted([shawl, stole])

    removed = await ac_client.request("DELETE", f"{url_prefix}/admin/catalogues/{catalogue_id}/products",
                                      headers=admin_headers, json={"product_ids": [shawl]})
    assert [p["id"] for p in removed.json()["data"]["products"]] == [stole]

    listing = await ac_client.get(f"{url_prefix}/catalogues", params={"search": "winter"})
    assert [c["id"] for c in listing.json()["data"]["catalogues"]] == [catalogue_id]

    await ac_client.delete(f"{url_prefix}/admin/catalogues/{catalogue_id}", headers=admin_headers)
    assert (await ac_client.get(f"{url_prefix}/catalogues/{catalogue_id}")).status_code == 404


@pytest.mark.asyncio
async def test_newsletter_subscription_is_idempotent(ac_client):
    first = await ac_client.post(f"{url_prefix}/newsletter/subscribe", json={"email": "Reader@Example.com"})
    again = await ac_client.post(f"{url_prefix}/newsletter/subscribe", json={"email": "reader@example.com"})
    bad = await ac_client.post(f"{url_prefix}/newsletter/subscribe", json={"email": "not-an-email"})

    assert first.status_code == 201
    assert again.status_code == 200
    assert again.json()["data"]["message"] == "Already subscribed"
    assert bad.status_code in (400, 422)


@pytest.mark.asyncio
async def test_wishlist_add_list_remove(ac_client, user_headers):
    product_id = await create_product("Kani Shawl")

    assert (await ac_client.post(f"{url_prefix}/wishlist", json={"product_id": 9999},
                                 headers=user_headers)).status_code == 404
    first = await ac_client.post(f"{url_prefix}/wishlist", json={"product_id": product_id}, headers=user_headers)
    second = await ac_client.post(f"{url_prefix}/wishlist", json={"product_id": product_id}, headers=user_headers)
    assert (first.status_code, second.status_code) == (201, 200)

    items = (await ac_client.get(f"{url_prefix}/wishlist", headers=user_headers)).json()["data"]["items"]
    assert [i["product"]["id"] for i in items] == [product_id]

    assert (await ac_client.delete(f"{url_prefix}/wishlist/{product_id}", headers=user_headers)).status_code == 200
    assert (await ac_client.delete(f"{url_prefix}/wishlist/{product_id}", headers=user_headers)).status_code == 404


@pytest.mark.asyncio
async def test_reviews_one_per_user_and_moderation(ac_client, user_headers, admin_headers):
    product_id = await create_product("Kani Shawl")

    bad = await ac_client.post(f"{url_prefix}/reviews", headers=user_headers,
                               json={"product_id": product_id, "rating": 6})
    assert bad.status_code == 400

    created = await ac_client.post(f"{url_prefix}/reviews", headers=user_headers,
                                   json={"product_id": product_id, "rating": 5, "title": "Lovely"})
    assert created.status_code == 201
    review_id = created.json()["data"]["id"]

    again = await ac_client.post(f"{url_prefix}/reviews", headers=user_headers,
                                 json={"product_id": product_id, "rating": 4})
    assert again.status_code == 409

    # hide it , only approved reviews are public
    async with async_session() as session:
        review = await session.get(Review, review_id)
        review.is_approved = False
        await session.commit()

    public = await ac_client.get(f"{url_prefix}/products/{product_id}/reviews")
    assert public.json()["data"]["reviews"] == []

    pending = await ac_client.get(f"{url_prefix}/admin/reviews", params={"approved": "false"}, headers=admin_headers)
    assert [r["id"] for r in pending.json()["data"]["reviews"]] == [review_id]

    approved = await ac_client.put(f"{url_prefix}/admin/reviews/{review_id}/approve", headers=admin_headers)
    assert approved.status_code == 200
    public = await ac_client.get(f"{url_prefix}/products/{product_id}/reviews")
    reviews = public.json()["data"]["reviews"]
    assert [r["user_name"] for r in reviews] == ["Buyer"]

    mine = await ac_client.get(f"{url_prefix}/reviews", headers=user_headers)
    assert mine.json()["data"]["reviews"][0]["product_name"] == "Kani Shawl"
    assert (await ac_client.delete(f"{url_prefix}/reviews/{review_id}", headers=user_headers)).status_code == 200
