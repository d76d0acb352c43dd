"""注册 / 登录 / 个人资料 / 修改与找回密码"""

from datetime import timedelta

from sqlalchemy import select, update

from app.core.credentials import RESET_REQUESTED_MESSAGE
from app.models.base import utcnow
from app.models.user import User

from conftest import PASSWORD


async def test_register_returns_user_token_and_cookie(client):
    resp = await client.post(
        "/api/auth/register",
        json={"name": "Asha", "email": "Asha@Example.com", "password": "secret1"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "asha@example.com"
    assert user["role"] == "user"
    assert "password_hash" not in user
    assert "password_reset_token" not in user
    assert body["data"]["token"]
    assert "token" in resp.cookies


async def test_register_duplicate_email_is_case_insensitive(client):
    payload = {"name": "Asha", "email": "asha@example.com", "password": "secret1"}
    assert (await client.post("/api/auth/register", json=payload)).status_code == 201

    client.cookies.clear()
    payload["email"] = "ASHA@example.COM"
    resp = await client.post("/api/auth/register", json=payload)
    assert resp.status_code == 400
    assert resp.json()["success"] is False


async def test_register_validation_errors_have_field_details(client):
    resp = await client.post(
        "/api/auth/register", json={"name": "A", "email": "nope", "password": "123"}
    )
    assert resp.status_code == 400
    fields = {d["field"] for d in resp.json()["details"]}
    assert {"name", "email", "password"} <= fields


async def test_login_success_sets_last_login(client, make_user, session):
    user = await make_user(email="reader@example.com")
    resp = await client.post(
        "/api/auth/login", json={"email": "READER@example.com", "password": PASSWORD}
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["user"]["id"] == user.id

    stored = await session.get(User, user.id)
    assert stored.last_login is not None


async def test_login_failures_are_indistinguishable(client, make_user):
    await make_user(email="reader@example.com")
    await make_user(email="sleeper@example.com", is_active=False)

    wrong_password = await client.post(
        "/api/auth/login", json={"email": "reader@example.com", "password": "wrong-pass"}
    )
    unknown_email = await client.post(
        "/api/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
    )
    inactive = await client.post(
        "/api/auth/login", json={"email": "sleeper@example.com", "password": PASSWORD}
    )

    assert wrong_password.status_code == unknown_email.status_code == inactive.status_code == 401
    assert wrong_password.json() == unknown_email.json() == inactive.json()


async def test_me_requires_token(client):
    resp = await client.get("/api/auth/me")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


async def test_me_with_bearer_token(client, user, auth):
    resp = await client.get("/api/auth/me", headers=auth(user))
    assert resp.status_code == 200
    assert resp.json()["data"]["email"] == user.email


async def test_me_with_garbage_token(client):
    resp = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401


async def test_logout_clears_cookie(client):
    await client.post(
        "/api/auth/register",
        json={"name": "Asha", "email": "asha@example.com", "password": "secret1"},
    )
    resp = await client.post("/api/auth/logout")
    assert resp.status_code == 200
    assert "token=" in resp.headers["set-cookie"]
    assert "Max-Age=0" in resp.headers["set-cookie"]


async def test_change_password(client, user, auth):
    bad = await client.put(
        "/api/auth/password",
        json={"currentPassword": "wrong-pass", "newPassword": "newpass1"},
        headers=auth(user),
    )
    assert bad.status_code == 400

    ok = await client.put(
        "/api/auth/password",
        json={"currentPassword": PASSWORD, "newPassword": "newpass1"},
        headers=auth(user),
    )
    assert ok.status_code == 200

    login = await client.post(
        "/api/auth/login", json={"email": user.email, "password": "newpass1"}
    )
    assert login.status_code == 200


async def test_forgot_password_for_unknown_email(client, session):
    resp = await client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
    assert resp.status_code == 200
    assert resp.json()["message"] == RESET_REQUESTED_MESSAGE

    tokens = (
        await session.execute(select(User.id).where(User.password_reset_token.is_not(None)))
    ).all()
    assert tokens == []


async def test_forgot_password_same_message_for_known_email(client, user):
    resp = await client.post("/api/auth/forgot-password", json={"email": user.email})
    assert resp.status_code == 200
    assert resp.json()["message"] == RESET_REQUESTED_MESSAGE


async def test_reset_password_flow(client, user, session):
    await client.post("/api/auth/forgot-password", json={"email": user.email})
    token = (
        await session.execute(select(User.password_reset_token).where(User.id == user.id))
    ).scalar_one()
    assert token

    resp = await client.post(
        "/api/auth/reset-password", json={"token": token, "password": "brandnew1"}
    )
    assert resp.status_code == 200

    # 令牌只能使用一次
    again = await client.post(
        "/api/auth/reset-password", json={"token": token, "password": "another1"}
    )
    assert again.status_code == 400

    login = await client.post(
        "/api/auth/login", json={"email": user.email, "password": "brandnew1"}
    )
    assert login.status_code == 200


async def test_reset_password_with_expired_token(client, user, session):
    await client.post("/api/auth/forgot-password", json={"email": user.email})
    await session.execute(
        update(User)
        .where(User.id == user.id)
        .values(password_reset_expires=utcnow() - timedelta(minutes=1))
    )
    await session.commit()
    token = (
        await session.execute(select(User.password_reset_token).where(User.id == user.id))
    ).scalar_one()

    resp = await client.post(
        "/api/auth/reset-password", json={"token": token, "password": "brandnew1"}
    )
    assert resp.status_code == 400


async def test_profile_update_allow_list(client, user, auth):
    resp = await client.put(
        "/api/auth/profile",
        json={"name": "New Name", "bio": "Hello", "social_links": {"twitter": "@me"}},
        headers=auth(user),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["name"] == "New Name"
    assert data["bio"] == "Hello"
    assert data["social_links"]["twitter"] == "@me"
    assert data["role"] == "user"


async def test_profile_update_rejects_unknown_fields(client, user, auth):
    resp = await client.put("/api/auth/profile", json={"role": "admin"}, headers=auth(user))
    assert resp.status_code == 400

    me = await client.get("/api/auth/me", headers=auth(user))
    assert me.json()["data"]["role"] == "user"


async def test_saved_articles_are_idempotent(client, user, editor, auth, make_article):
    article = await make_article(editor, title="Worth keeping")

    for _ in range(2):
        resp = await client.post(f"/api/auth/saved/{article.id}", headers=auth(user))
        assert resp.status_code == 200

    listing = await client.get("/api/auth/saved", headers=auth(user))
    data = listing.json()["data"]
    assert data["pagination"]["total"] == 1
    assert data["articles"][0]["id"] == article.id

    for _ in range(2):
        resp = await client.delete(f"/api/auth/saved/{article.id}", headers=auth(user))
        assert resp.status_code == 200

    listing = await client.get("/api/auth/saved", headers=auth(user))
    assert listing.json()["data"]["pagination"]["total"] == 0


async def test_save_missing_article_is_404(client, user, auth):
    resp = await client.post("/api/auth/saved/9999", headers=auth(user))
    assert resp.status_code == 404
