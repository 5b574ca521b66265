"""Category + product API tests.

Learn: Tests cover:
1. Admin-only writes (401 anonymous, 403 shopper)
2. Category lookup by id or slug, delete guarded by products
3. Product listing: filters, sorting, pagination clamps, search
4. Product view counter and partial updates (images, price)
"""

import uuid

import pytest

from catalog.db.models import Product
from conftest import IMAGE, create_category, create_product, login, register_user


# ═══════════════════════════════════════════════════════════
# Categories
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_category(client, admin_headers):
    category = await create_category(client, admin_headers, name="Hand Made Bags!")
    assert category["slug"] == "hand-made-bags"
    assert category["image"] == {
        "url": "https://res.cloudinary.com/demo/cat.jpg",
        "publicId": "catalog/hand-made-bags!",
    }
    assert category["isActive"] is True


@pytest.mark.asyncio
async def test_create_category_requires_image(client, admin_headers):
    r = await client.post("/api/category", json={"name": "No Image"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["message"] == "imageUrl and public_id are required"


@pytest.mark.asyncio
async def test_category_writes_need_admin(client, user_tokens):
    body = {"name": "Sneaky", "imageUrl": "https://x/y.jpg", "publicId": "p"}

    r = await client.post("/api/category", json=body)
    assert r.status_code == 401

    r = await client.post(
        "/api/category",
        json=body,
        headers={"Authorization": f"Bearer {user_tokens['accessToken']}"},
    )
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied: admin privileges required"


@pytest.mark.asyncio
async def test_duplicate_category_name(client, admin_headers):
    await create_category(client, admin_headers, name="Wallets")
    r = await client.post(
        "/api/category",
        json={"name": "Wallets", "imageUrl": "https://x/y.jpg", "publicId": "other"},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Category name already exists"


@pytest.mark.asyncio
async def test_get_category_by_id_or_slug(client, admin_headers):
    category = await create_category(client, admin_headers, name="Belts")

    by_id = await client.get(f"/api/category/{category['id']}")
    by_slug = await client.get("/api/category/belts")

    assert by_id.status_code == by_slug.status_code == 200
    assert by_id.json()["data"]["id"] == by_slug.json()["data"]["id"]


@pytest.mark.asyncio
async def test_inactive_category_hidden(client, admin_headers):
    category = await create_category(client, admin_headers, name="Old Stock")
    r = await client.put(
        f"/api/category/{category['id']}",
        json={"isActive": False},
        headers=admin_headers,
    )
    assert r.status_code == 200

    assert (await client.get("/api/category/old-stock")).status_code == 404
    listing = await client.get("/api/categories")
    assert listing.json()["count"] == 0


@pytest.mark.asyncio
async def test_rename_category_updates_slug(client, admin_headers):
    category = await create_category(client, admin_headers, name="Purses")
    r = await client.put(
        f"/api/category/{category['id']}",
        json={"name": "Clutch Purses"},
        headers=admin_headers,
    )
    assert r.status_code == 200
    assert r.json()["data"]["slug"] == "clutch-purses"


@pytest.mark.asyncio
async def test_list_categories_sorted(client, admin_headers):
    await create_category(client, admin_headers, name="Second", sortOrder=2)
    await create_category(client, admin_headers, name="First", sortOrder=1)

    r = await client.get("/api/categories")
    assert r.status_code == 200
    assert [c["name"] for c in r.json()["data"]] == ["First", "Second"]


@pytest.mark.asyncio
async def test_delete_category_with_products_refused(client, admin_headers):
    category = await create_category(client, admin_headers)
    await create_product(client, admin_headers, category["id"])

    r = await client.delete(f"/api/category/{category['id']}", headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["message"] == (
        "Cannot delete category. 1 products belong to this category."
    )


@pytest.mark.asyncio
async def test_delete_empty_category(client, admin_headers):
    category = await create_category(client, admin_headers)
    r = await client.delete(f"/api/category/{category['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["message"] == "Category deleted successfully"

    r = await client.delete(f"/api/category/{category['id']}", headers=admin_headers)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Product writes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_product(client, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(
        client,
        admin_headers,
        category["id"],
        price={"original": 1000, "discounted": 750},
        tags=[" Leather ", "Gift"],
    )

    assert product["sku"] == "PROD0001"
    assert product["tags"] == ["leather", "gift"]
    assert product["category"] == {
        "id": category["id"],
        "name": category["name"],
        "slug": category["slug"],
    }
    assert product["effectivePrice"] == 750
    assert product["discountPercentage"] == 25
    assert product["images"][0]["publicId"] == "catalog/bag"
    assert product["whatsappLink"].startswith("https://wa.me/919876543210?text=")


@pytest.mark.asyncio
async def test_create_product_requires_image(client, admin_headers):
    category = await create_category(client, admin_headers)
    r = await client.post(
        "/api/product",
        json={
            "name": "Ghost",
            "description": "No pictures",
            "category": category["id"],
            "price": {"original": 10},
            "whatsappNumber": "919876543210",
        },
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "At least one product image is required"


@pytest.mark.asyncio
async def test_create_product_unknown_category(client, admin_headers):
    r = await client.post(
        "/api/product",
        json={
            "name": "Orphan",
            "description": "No category",
            "category": "00000000-0000-0000-0000-000000000000",
            "price": {"original": 10},
            "images": [IMAGE],
            "whatsappNumber": "919876543210",
        },
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Category does not exist"


@pytest.mark.asyncio
async def test_discount_above_original_rejected(client, admin_headers):
    category = await create_category(client, admin_headers)
    r = await client.post(
        "/api/product",
        json={
            "name": "Bad Price",
            "description": "Discount too high",
            "category": category["id"],
            "price": {"original": 10, "discounted": 20},
            "images": [IMAGE],
            "whatsappNumber": "919876543210",
        },
        headers=admin_headers,
    )
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_update_product_images(client, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(client, admin_headers, category["id"])

    r = await client.put(
        f"/api/product/{product['id']}",
        json={
            "removeImages": ["catalog/bag"],
            "newImages": [{"url": "https://res.cloudinary.com/demo/new.jpg", "publicId": "new"}],
            "price": {"original": 1200, "discounted": 900},
        },
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert [img["publicId"] for img in data["images"]] == ["new"]
    assert data["price"] == {"original": 1200, "discounted": 900}
    assert data["name"] == product["name"]


@pytest.mark.asyncio
async def test_update_cannot_remove_last_image(client, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(client, admin_headers, category["id"])

    r = await client.put(
        f"/api/product/{product['id']}",
        json={"removeImages": ["catalog/bag"]},
        headers=admin_headers,
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Product must have at least one image"


@pytest.mark.asyncio
async def test_delete_product(client, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(client, admin_headers, category["id"])

    r = await client.delete(f"/api/product/{product['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert (await client.get(f"/api/product/{product['id']}")).status_code == 404


# ═══════════════════════════════════════════════════════════
# Product reads
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_get_product_counts_views(client, db_session, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(client, admin_headers, category["id"])

    for _ in range(2):
        r = await client.get(f"/api/product/{product['id']}")
        assert r.status_code == 200

    row = await db_session.get(
        Product, uuid.UUID(product["id"]), populate_existing=True
    )
    assert row.views == 2


@pytest.mark.asyncio
async def test_get_product_bad_id(client):
    r = await client.get("/api/product/not-a-uuid")
    assert r.status_code == 404
    assert r.json()["message"] == "Product not found"


@pytest.mark.asyncio
async def test_list_products_filters_and_sort(client, admin_headers):
    category = await create_category(client, admin_headers)
    await create_product(client, admin_headers, category["id"], name="Cheap", price={"original": 100})
    await create_product(
        client,
        admin_headers,
        category["id"],
        name="Mid",
        price={"original": 500},
        isFeatured=True,
        tags=["gift"],
    )
    await create_product(client, admin_headers, category["id"], name="Pricey", price={"original": 5000})

    r = await client.get("/api/products", params={"sort": "price"})
    data = r.json()
    assert data["total"] == 3
    assert [p["name"] for p in data["data"]] == ["Cheap", "Mid", "Pricey"]

    r = await client.get("/api/products", params={"minPrice": 200, "maxPrice": 1000})
    assert [p["name"] for p in r.json()["data"]] == ["Mid"]

    r = await client.get("/api/products", params={"featured": "true"})
    assert [p["name"] for p in r.json()["data"]] == ["Mid"]

    r = await client.get("/api/products", params={"tag": "Gift"})
    assert [p["name"] for p in r.json()["data"]] == ["Mid"]

    r = await client.get("/api/products", params={"sort": "-name"})
    assert [p["name"] for p in r.json()["data"]] == ["Pricey", "Mid", "Cheap"]


@pytest.mark.asyncio
async def test_list_products_pagination(client, admin_headers):
    category = await create_category(client, admin_headers)
    for i in range(3):
        await create_product(client, admin_headers, category["id"], name=f"Item {i}")

    r = await client.get("/api/products", params={"page": 2, "limit": 2})
    data = r.json()
    assert data["page"] == 2
    assert data["pages"] == 2
    assert data["count"] == 1
    assert data["total"] == 3


@pytest.mark.asyncio
async def test_pagination_is_clamped(client):
    r = await client.get("/api/products", params={"page": 0, "limit": 500})
    data = r.json()
    assert data["page"] == 1
    assert data["pages"] == 0


@pytest.mark.asyncio
async def test_inactive_products_hidden(client, admin_headers):
    category = await create_category(client, admin_headers)
    product = await create_product(client, admin_headers, category["id"])
    r = await client.put(
        f"/api/product/{product['id']}", json={"isActive": False}, headers=admin_headers
    )
    assert r.status_code == 200

    assert (await client.get("/api/products")).json()["total"] == 0
    assert (await client.get(f"/api/product/{product['id']}")).status_code == 404


@pytest.mark.asyncio
async def test_featured_products(client, admin_headers):
    category = await create_category(client, admin_headers)
    await create_product(client, admin_headers, category["id"], name="Plain")
    await create_product(client, admin_headers, category["id"], name="Star", isFeatured=True)

    r = await client.get("/api/products/featured")
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["data"][0]["name"] == "Star"


@pytest.mark.asyncio
async def test_search_products(client, admin_headers):
    category = await create_category(client, admin_headers)
    await create_product(client, admin_headers, category["id"], name="Leather Tote")
    await create_product(client, admin_headers, category["id"], name="Canvas Bag", tags=["beach"])

    r = await client.get("/api/products/search", params={"q": "LEATHER"})
    data = r.json()
    assert data["query"] == "LEATHER"
    assert [p["name"] for p in data["data"]] == ["Leather Tote"]

    r = await client.get("/api/products/search", params={"q": "beach"})
    assert [p["name"] for p in r.json()["data"]] == ["Canvas Bag"]


@pytest.mark.asyncio
async def test_non_ascii_tags_match(client, admin_headers):
    category = await create_category(client, admin_headers)
    await create_product(
        client, admin_headers, category["id"], name="Jute Bag", tags=["हस्तनिर्मित", "Café"]
    )
    await create_product(client, admin_headers, category["id"], name="Plain Bag", tags=["cafe"])

    r = await client.get("/api/products", params={"tag": "हस्तनिर्मित"})
    assert [p["name"] for p in r.json()["data"]] == ["Jute Bag"]

    r = await client.get("/api/products", params={"tag": "café"})
    assert [p["name"] for p in r.json()["data"]] == ["Jute Bag"]

    r = await client.get("/api/products/search", params={"q": "café"})
    assert [p["name"] for p in r.json()["data"]] == ["Jute Bag"]


@pytest.mark.asyncio
async def test_search_requires_query(client):
    r = await client.get("/api/products/search")
    assert r.status_code == 400
    assert r.json()["message"] == "Search query (q) is required"


@pytest.mark.asyncio
async def test_products_by_category_slug(client, admin_headers):
    bags = await create_category(client, admin_headers, name="Bags")
    belts = await create_category(client, admin_headers, name="Belts")
    await create_product(client, admin_headers, bags["id"], name="Tote")
    await create_product(client, admin_headers, belts["id"], name="Buckle Belt")

    r = await client.get("/api/products/category/belts")
    data = r.json()
    assert data["category"]["slug"] == "belts"
    assert [p["name"] for p in data["data"]] == ["Buckle Belt"]

    assert (await client.get("/api/products/category/nope")).status_code == 404


@pytest.mark.asyncio
async def test_shopper_cannot_create_product(client, admin_headers):
    category = await create_category(client, admin_headers)
    creds = await register_user(client)
    r = await login(client, creds["email"], creds["password"])
    token = r.json()["accessToken"]

    r = await client.post(
        "/api/product",
        json={
            "name": "Sneaky",
            "description": "Not an admin",
            "category": category["id"],
            "price": {"original": 10},
            "images": [IMAGE],
            "whatsappNumber": "919876543210",
        },
        headers={"Authorization": f"Bearer {token}"},
    )
    assert r.status_code == 403
