"""
Warden API - User Endpoint Tests
==================================

How:   Full HTTP round trips through the middleware stack with the user
       store replaced by InMemoryUserStore (see conftest.py).

What we test:
    ✅ Registration: 200 + token, isAdmin always false, duplicate → 400
    ✅ Login: success, wrong password 401, unknown email 401
    ✅ Input validation messages
    ✅ Profile read and partial update, email conflicts
    ✅ Admin lookup by id, 404 envelopes
    ✅ Strict limiter on login/registration, standard limiter headers
    ✅ Responses never contain a password field
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import API, bearer, build_test_app, register


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_then_duplicate(self, test_client):
        response = await register(test_client, name="A", email="a@example.com", password="123456")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully"
        data = body["data"]
        assert data["name"] == "A"
        assert data["email"] == "a@example.com"
        assert data["isAdmin"] is False
        assert data["token"]
        uuid.UUID(data["_id"])
        assert "password" not in data

        again = await register(test_client, name="A", email="a@example.com", password="123456")
        assert again.status_code == 400
        assert again.json()["success"] is False
        assert again.json()["message"] == "User already exists"

    @pytest.mark.asyncio
    async def test_email_normalized(self, test_client):
        response = await register(test_client, email="  Alice@Example.COM ")
        assert response.json()["data"]["email"] == "alice@example.com"

        duplicate = await register(test_client, email="ALICE@example.com")
        assert duplicate.status_code == 400

    @pytest.mark.asyncio
    async def test_password_stored_hashed(self, test_client, user_store):
        await register(test_client, password="123456")
        stored = next(iter(user_store.users.values()))
        assert stored.password != "123456"
        assert stored.password.startswith("$2b$")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body, message",
        [
            ({"email": "a@example.com", "password": "123456"}, "Please provide name, email, and password"),
            ({"name": "A", "password": "123456"}, "Please provide name, email, and password"),
            ({"name": "A", "email": "a@example.com"}, "Please provide name, email, and password"),
            ({"name": "   ", "email": "a@example.com", "password": "123456"}, "Please provide name, email, and password"),
            ({"name": "A", "email": "not-an-email", "password": "123456"}, "Please provide a valid email"),
            ({"name": "A", "email": "a@example.com", "password": "12345"}, "Password must be at least 6 characters"),
            ({"name": "A", "email": "a@example.com", "password": "x" * 73}, "Password must be at most 72 bytes"),
        ],
    )
    async def test_invalid_input(self, test_client, body, message):
        response = await test_client.post(f"{API}/users", json=body)
        assert response.status_code == 400
        assert response.json()["message"] == message

    @pytest.mark.asyncio
    async def test_malformed_json(self, test_client):
        response = await test_client.post(
            f"{API}/users", content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["success"] is False


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, test_client):
        await register(test_client, email="a@example.com", password="123456")
        response = await test_client.post(
            f"{API}/users/login", json={"email": "A@example.com", "password": "123456"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User logged in successfully"
        assert body["data"]["email"] == "a@example.com"

        profile = await test_client.get(f"{API}/users/profile", headers=bearer(body["data"]["token"]))
        assert profile.status_code == 200

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email(self, test_client):
        await register(test_client, email="a@example.com", password="123456")

        wrong = await test_client.post(
            f"{API}/users/login", json={"email": "a@example.com", "password": "654321"}
        )
        assert wrong.status_code == 401
        assert wrong.json()["message"] == "Invalid credentials"

        unknown = await test_client.post(
            f"{API}/users/login", json={"email": "nobody@example.com", "password": "123456"}
        )
        assert unknown.status_code == 401
        assert unknown.json()["message"] == "No user found with this email"

    @pytest.mark.asyncio
    async def test_missing_fields(self, test_client):
        response = await test_client.post(f"{API}/users/login", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Please provide an email and password"


class TestProfile:
    @pytest.mark.asyncio
    async def test_get_profile(self, test_client, user_token):
        response = await test_client.get(f"{API}/users/profile", headers=bearer(user_token))
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "alice@example.com"
        assert user["isAdmin"] is False
        assert "createdAt" in user and "updatedAt" in user
        assert "password" not in response.text

    @pytest.mark.asyncio
    async def test_update_name_only(self, test_client, user_store, user_token):
        before = next(iter(user_store.users.values())).password
        response = await test_client.put(
            f"{API}/users/profile", headers=bearer(user_token), json={"name": "Alicia"}
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "Alicia"
        assert user["email"] == "alice@example.com"
        assert set(user) == {"_id", "name", "email", "isAdmin"}
        assert next(iter(user_store.users.values())).password == before

    @pytest.mark.asyncio
    async def test_update_password_then_login(self, test_client, user_token):
        response = await test_client.put(
            f"{API}/users/profile", headers=bearer(user_token), json={"password": "new-secret"}
        )
        assert response.status_code == 200

        old = await test_client.post(
            f"{API}/users/login", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert old.status_code == 401
        new = await test_client.post(
            f"{API}/users/login", json={"email": "alice@example.com", "password": "new-secret"}
        )
        assert new.status_code == 200

    @pytest.mark.asyncio
    async def test_update_email_conflict(self, test_client, user_token):
        await register(test_client, name="Bob", email="bob@example.com")
        response = await test_client.put(
            f"{API}/users/profile", headers=bearer(user_token), json={"email": "BOB@example.com"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Email already in use"

    @pytest.mark.asyncio
    async def test_update_to_own_email(self, test_client, user_token):
        response = await test_client.put(
            f"{API}/users/profile", headers=bearer(user_token), json={"email": "alice@example.com"}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_invalid_update_leaves_user_untouched(self, test_client, user_store, user_token):
        response = await test_client.put(
            f"{API}/users/profile",
            headers=bearer(user_token),
            json={"name": "Changed", "password": "123"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Password must be at least 6 characters"
        assert next(iter(user_store.users.values())).name == "Alice"

    @pytest.mark.asyncio
    async def test_update_ignores_admin_flag(self, test_client, user_token):
        response = await test_client.put(
            f"{API}/users/profile", headers=bearer(user_token), json={"isAdmin": True}
        )
        assert response.status_code == 200
        assert response.json()["user"]["isAdmin"] is False


class TestAdminLookup:
    @pytest.mark.asyncio
    async def test_get_user_by_id(self, test_client, user_token, admin_token):
        users = (await test_client.get(f"{API}/users", headers=bearer(admin_token))).json()["users"]
        alice = next(u for u in users if u["email"] == "alice@example.com")

        response = await test_client.get(f"{API}/users/{alice['_id']}", headers=bearer(admin_token))
        assert response.status_code == 200
        assert response.json()["user"]["name"] == "Alice"
        assert "password" not in response.text

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [str(uuid.uuid4()), "not-a-uuid"])
    async def test_unknown_user(self, test_client, admin_token, user_id):
        response = await test_client.get(f"{API}/users/{user_id}", headers=bearer(admin_token))
        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, test_client, user_token):
        response = await test_client.get(f"{API}/users/{uuid.uuid4()}", headers=bearer(user_token))
        assert response.status_code == 403


class TestRateLimits:
    @pytest.mark.asyncio
    async def test_sixth_login_rejected(self, strict_client):
        statuses = []
        for _ in range(6):
            response = await strict_client.post(
                f"{API}/users/login", json={"email": "x@example.com", "password": "123456"}
            )
            statuses.append(response.status_code)
        assert statuses == [401, 401, 401, 401, 401, 429]
        assert response.json() == {
            "success": False,
            "message": "Too many attempts, please try again after 15 minutes.",
        }
        assert int(response.headers["Retry-After"]) > 0
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    @pytest.mark.asyncio
    async def test_register_and_login_share_budget(self, strict_client):
        for i in range(5):
            await register(strict_client, email=f"user{i}@example.com")
        response = await strict_client.post(
            f"{API}/users/login", json={"email": "user0@example.com", "password": "secret123"}
        )
        assert response.status_code == 429

    @pytest.mark.asyncio
    async def test_strict_limit_per_client(self, strict_client):
        for _ in range(5):
            await strict_client.post(
                f"{API}/users/login",
                json={"email": "x@example.com", "password": "123456"},
                headers={"X-Forwarded-For": "10.0.0.1"},
            )
        other = await strict_client.post(
            f"{API}/users/login",
            json={"email": "x@example.com", "password": "123456"},
            headers={"X-Forwarded-For": "10.0.0.2"},
        )
        assert other.status_code == 401

    @pytest.mark.asyncio
    async def test_strict_headers_win_on_limited_routes(self, strict_client):
        response = await register(strict_client)
        assert response.headers["X-RateLimit-Limit"] == "5"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    @pytest.mark.asyncio
    async def test_standard_headers_elsewhere(self, test_client):
        response = await test_client.get(f"{API}/users/profile")
        assert response.headers["X-RateLimit-Limit"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "59"

    @pytest.mark.asyncio
    async def test_standard_limit(self, user_store):
        app = build_test_app(user_store, rate_limit_max=3)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            statuses = [(await client.get(f"{API}/users/profile")).status_code for _ in range(4)]
            assert statuses == [401, 401, 401, 429]
            docs_exempt = await client.get("/docs")
            assert docs_exempt.status_code == 200


class TestEnvelopes:
    @pytest.mark.asyncio
    async def test_unknown_route(self, test_client):
        response = await test_client.get(f"{API}/nothing-here")
        assert response.status_code == 404
        assert response.json()["message"] == f"Not Found - [GET]:[{API}/nothing-here]"

    @pytest.mark.asyncio
    async def test_security_headers(self, test_client):
        response = await test_client.get(f"{API}/users/profile")
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert "Content-Security-Policy" not in response.headers
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_route_index(self, test_client):
        response = await test_client.get(API)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert f"{API}/users/login" in response.text

    @pytest.mark.asyncio
    async def test_route_index_trailing_slash(self, test_client):
        response = await test_client.get(f"{API}/")
        assert response.status_code == 200
        assert f"{API}/users/profile" in response.text

    @pytest.mark.asyncio
    async def test_production_hides_stack(self, user_store):
        app = build_test_app(user_store, environment="production", log_to_file="console")
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get(f"{API}/users/profile")
        assert response.status_code == 401
        assert "stack" not in response.json()
        assert "Content-Security-Policy" in response.headers
