"""HTTP-level tests for the v1 API."""

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.main import app
from app.services.auth_service import create_access_token
from app.services.cache_service import get_cache
from app.services.email_service import EmailService, get_email_service


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, fake_cache, email_service: EmailService):
    """API client bound to the test session, fake cache and mocked mailer."""

    async def override_get_db():
        try:
            yield test_db
            await test_db.commit()
        except Exception:
            await test_db.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: fake_cache
    app.dependency_overrides[get_email_service] = lambda: email_service

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(admin_user)}"}


@pytest.fixture
def customer_headers(customer_user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(customer_user)}"}


async def _create_category(client: AsyncClient, headers: dict, **payload) -> dict:
    response = await client.post("/api/v1/categories", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


# ============================================================================
# AUTH
# ============================================================================

class TestAuthApi:
    """Tests for registration, login and permission checks."""

    async def test_register_then_me(self, client: AsyncClient):
        """Test a registered user can call /me with the returned token."""
        response = await client.post("/api/v1/auth/register", json={
            "email": "new@example.com",
            "first_name": "New",
            "last_name": "User",
            "password": "secret123",
        })
        assert response.status_code == 201
        token = response.json()["data"]["token"]["access_token"]

        me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["data"]["email"] == "new@example.com"
        assert me.json()["data"]["role"] == "customer"

    async def test_login_wrong_password(self, client: AsyncClient, customer_user):
        """Test bad credentials return 401 in the error envelope."""
        response = await client.post("/api/v1/auth/login", json={
            "email": "buyer@example.com",
            "password": "wrong-password",
        })

        assert response.status_code == 401
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == "authentication_failed"

    async def test_failed_logins_persist(self, client: AsyncClient, test_db: AsyncSession, customer_user):
        """Test the failure counter survives the request rollback."""
        for _ in range(2):
            await client.post("/api/v1/auth/login", json={"email": "buyer@example.com", "password": "wrong"})

        await test_db.refresh(customer_user)
        assert customer_user.login_attempts == 2

    async def test_write_requires_token(self, client: AsyncClient):
        response = await client.post("/api/v1/categories", json={"name": "Farines"})

        assert response.status_code == 401

    async def test_write_requires_permission(self, client: AsyncClient, customer_headers):
        """Test a customer cannot manage the catalog."""
        response = await client.post("/api/v1/categories", json={"name": "Farines"}, headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "permission_denied"


# ============================================================================
# CATEGORIES
# ============================================================================

class TestCategoriesApi:
    """Tests for category endpoints."""

    async def test_create_and_tree(self, client: AsyncClient, admin_headers):
        """Test created categories show up nested in the tree."""
        root = await _create_category(client, admin_headers, name="Céréales")
        child = await _create_category(client, admin_headers, name="Riz", parent_id=root["id"])

        assert child["level"] == 1
        assert child["ancestors"] == [root["id"]]

        response = await client.get("/api/v1/categories/tree")

        assert response.status_code == 200
        tree = response.json()["data"]
        assert [node["slug"] for node in tree] == ["cereales"]
        assert [c["slug"] for c in tree[0]["children"]] == ["riz"]

    async def test_tree_cache_invalidated_by_write(self, client: AsyncClient, admin_headers, fake_cache):
        """Test a cached tree is dropped when a category is created."""
        await _create_category(client, admin_headers, name="Céréales")
        await client.get("/api/v1/categories/tree")
        assert "categories:tree" in fake_cache.store

        await _create_category(client, admin_headers, name="Épices")
        assert "categories:tree" not in fake_cache.store

        tree = (await client.get("/api/v1/categories/tree")).json()["data"]
        assert {node["slug"] for node in tree} == {"cereales", "epices"}

    async def test_duplicate_slug_conflict(self, client: AsyncClient, admin_headers):
        """Test a duplicate slug is a 409 with its error code."""
        await _create_category(client, admin_headers, name="Farines")

        response = await client.post("/api/v1/categories", json={"name": "farines"}, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "duplicate_slug"

    async def test_max_depth_rejected(self, client: AsyncClient, admin_headers):
        """Test a sixth level is refused with 400."""
        parent_id = None
        for level in range(5):
            node = await _create_category(client, admin_headers, name=f"Level {level}", parent_id=parent_id)
            parent_id = node["id"]

        response = await client.post(
            "/api/v1/categories",
            json={"name": "Level 5", "parent_id": parent_id},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "max_depth_exceeded"

    async def test_cycle_rejected(self, client: AsyncClient, admin_headers):
        """Test moving a category under its descendant is refused."""
        food = await _create_category(client, admin_headers, name="Food")
        grains = await _create_category(client, admin_headers, name="Grains", parent_id=food["id"])

        response = await client.put(
            f"/api/v1/categories/{food['id']}",
            json={"parent_id": grains["id"]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "category_cycle"

    async def test_path_and_unknown_id(self, client: AsyncClient, admin_headers):
        """Test the breadcrumb endpoint and a 404 on unknown ids."""
        food = await _create_category(client, admin_headers, name="Food")
        grains = await _create_category(client, admin_headers, name="Grains", parent_id=food["id"])

        path = await client.get(f"/api/v1/categories/{grains['id']}/path")
        assert [c["slug"] for c in path.json()["data"]] == ["food", "grains"]

        missing = await client.get("/api/v1/categories/00000000-0000-0000-0000-000000000000")
        assert missing.status_code == 404

    async def test_delete_subtree(self, client: AsyncClient, admin_headers):
        food = await _create_category(client, admin_headers, name="Food")
        await _create_category(client, admin_headers, name="Grains", parent_id=food["id"])

        response = await client.delete(f"/api/v1/categories/{food['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"deleted_categories": 2, "products_uncategorized": 0}


# ============================================================================
# PRODUCTS
# ============================================================================

class TestProductsApi:
    """Tests for product endpoints."""

    async def test_publish_flow(self, client: AsyncClient, admin_headers):
        """Test a published product is listed publicly and counted on its category."""
        category = await _create_category(client, admin_headers, name="Farines")
        response = await client.post("/api/v1/products", json={
            "name": "Farine de manioc",
            "description": "Farine de manioc du Cameroun",
            "category_id": category["id"],
            "base_price": "1500.00",
            "stock_quantity": 40,
            "status": "published",
            "bulk_pricing": [{"min_quantity": 100, "price": "1200.00"}],
        }, headers=admin_headers)
        assert response.status_code == 201, response.text
        product = response.json()["data"]

        listing = await client.get("/api/v1/products")
        assert [p["slug"] for p in listing.json()["data"]] == ["farine-de-manioc"]

        fetched = await client.get(f"/api/v1/categories/{category['id']}")
        assert fetched.json()["data"]["product_count"] == 1

        quote = await client.get(f"/api/v1/products/{product['id']}/price", params={"quantity": 100})
        assert quote.json()["data"]["unit_price"] == "1200.00"
        assert quote.json()["data"]["available"] is False

    async def test_draft_hidden_publicly(self, client: AsyncClient, admin_headers):
        """Test drafts are neither listed nor reachable by slug."""
        category = await _create_category(client, admin_headers, name="Farines")
        await client.post("/api/v1/products", json={
            "name": "Farine de maïs",
            "description": "Farine de maïs",
            "category_id": category["id"],
            "base_price": "900",
        }, headers=admin_headers)

        listing = await client.get("/api/v1/products")
        assert listing.json()["data"] == []

        by_slug = await client.get("/api/v1/products/slug/farine-de-mais")
        assert by_slug.status_code == 404

    async def test_catalog_highlights(self, client: AsyncClient, admin_headers):
        """Test origins, trending and category highlight routes."""
        category = await _create_category(client, admin_headers, name="Farines")
        response = await client.post("/api/v1/products", json={
            "name": "Farine de manioc",
            "description": "Farine de manioc",
            "category_id": category["id"],
            "base_price": "1500",
            "stock_quantity": 3,
            "status": "published",
            "trending": True,
            "origin_country": "Ghana",
        }, headers=admin_headers)
        assert response.status_code == 201, response.text

        origins = await client.get("/api/v1/products/origins")
        assert origins.json()["data"] == ["Ghana"]

        trending = await client.get("/api/v1/products/trending")
        assert [p["trending"] for p in trending.json()["data"]] == [True]

        bestsellers = await client.get("/api/v1/products/bestsellers")
        assert bestsellers.json()["data"] == []

        popular = await client.get("/api/v1/categories/popular-products")
        assert popular.json()["data"][0]["top_products"][0]["slug"] == "farine-de-manioc"

        low_stock = await client.get("/api/v1/categories/low-stock", headers=admin_headers)
        assert low_stock.json()["data"][0]["low_stock_count"] == 1

    async def test_invalid_sale_price(self, client: AsyncClient, admin_headers):
        category = await _create_category(client, admin_headers, name="Farines")

        response = await client.post("/api/v1/products", json={
            "name": "Farine",
            "description": "Farine",
            "category_id": category["id"],
            "base_price": "900",
            "sale_price": "950",
        }, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_price"


# ============================================================================
# MESSAGES AND DASHBOARD
# ============================================================================

class TestMessagesApi:
    """Tests for the public form and admin inbox."""

    async def test_public_submission(self, client: AsyncClient, mailer: AsyncMock):
        """Test anyone can submit a message and the admin is notified."""
        response = await client.post("/api/v1/messages", json={
            "name": "Jean Kamga",
            "email": "jean@example.com",
            "subject": "Demande de devis",
            "message": "Je souhaite 2 tonnes de farine de manioc.",
            "type": "quote",
        })

        assert response.status_code == 201
        assert response.json()["data"]["type"] == "quote"
        mailer.send_message.assert_awaited_once()

    async def test_invalid_submission(self, client: AsyncClient):
        response = await client.post("/api/v1/messages", json={"name": "J", "email": "nope"})

        assert response.status_code == 422

    async def test_inbox_requires_permission(self, client: AsyncClient, customer_headers):
        response = await client.get("/api/v1/messages", headers=customer_headers)

        assert response.status_code == 403

    async def test_open_marks_read_and_reply_failure(
        self, client: AsyncClient, admin_headers, mailer: AsyncMock
    ):
        """Test opening marks a message read and a failed reply is a 502."""
        created = await client.post("/api/v1/messages", json={
            "name": "Jean Kamga",
            "email": "jean@example.com",
            "subject": "Demande de devis",
            "message": "Je souhaite 2 tonnes de farine de manioc.",
        })
        message_id = created.json()["data"]["id"]

        opened = await client.get(f"/api/v1/messages/{message_id}", headers=admin_headers)
        assert opened.json()["data"]["status"] == "read"

        mailer.send_message.side_effect = RuntimeError("smtp down")
        reply = await client.post(
            f"/api/v1/messages/{message_id}/reply",
            json={"body": "Merci pour votre demande."},
            headers=admin_headers,
        )

        assert reply.status_code == 502
        assert reply.json()["error"]["code"] == "email_delivery_failed"

        again = await client.get(f"/api/v1/messages/{message_id}", headers=admin_headers)
        assert again.json()["data"]["status"] == "read"

    async def test_dashboard_overview(self, client: AsyncClient, admin_headers):
        """Test the overview combines category, product and message stats."""
        await _create_category(client, admin_headers, name="Farines")

        response = await client.get("/api/v1/dashboard/overview", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["categories"]["total_categories"] == 1
        assert data["products"]["total_products"] == 0
        assert data["messages"]["total"] == 0


class TestHealthApi:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
