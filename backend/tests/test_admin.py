"""后台管理：分类、用户、文章列表、统计、分类文章数重算"""

from app.core.task_scheduler import MaintenanceScheduler
from app.models.article import ArticleStatus
from app.models.user import Role


async def _create_category(client, admin, auth, **overrides):
    payload = {"name": "Sports", **overrides}
    resp = await client.post("/admin/api/categories", json=payload, headers=auth(admin))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_category_crud(client, admin, auth):
    created = await _create_category(client, admin, auth, name="Sports News")
    assert created["slug"] == "sports-news"
    assert created["color"] == "#3B82F6"
    assert created["article_count"] == 0

    dup = await client.post(
        "/admin/api/categories", json={"name": "Sports News"}, headers=auth(admin)
    )
    assert dup.status_code == 409

    updated = await client.put(
        f"/admin/api/categories/{created['id']}",
        json={"description": "All about sports", "color": "#FF0000"},
        headers=auth(admin),
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["description"] == "All about sports"
    assert updated.json()["data"]["slug"] == "sports-news"

    bad_color = await client.put(
        f"/admin/api/categories/{created['id']}", json={"color": "red"}, headers=auth(admin)
    )
    assert bad_color.status_code == 400

    removed = await client.delete(f"/admin/api/categories/{created['id']}", headers=auth(admin))
    assert removed.status_code == 200
    missing = await client.delete(f"/admin/api/categories/{created['id']}", headers=auth(admin))
    assert missing.status_code == 404


async def test_category_cannot_be_its_own_parent(client, admin, auth):
    created = await _create_category(client, admin, auth)
    resp = await client.put(
        f"/admin/api/categories/{created['id']}",
        json={"parent_id": created["id"]},
        headers=auth(admin),
    )
    assert resp.status_code == 400


async def test_recount_updates_cached_counts(client, admin, editor, auth, make_article):
    sports = await _create_category(client, admin, auth, name="Sports", slug="sports")
    await _create_category(client, admin, auth, name="World", slug="world")
    await make_article(editor, category="sports")
    await make_article(editor, category="sports")
    await make_article(editor, category="sports", status=ArticleStatus.DRAFT)

    # 写文章不会同步更新缓存
    public = (await client.get("/api/categories")).json()["data"]
    by_slug = {c["slug"]: c for c in public}
    assert by_slug["sports"]["article_count"] == 0
    assert by_slug["sports"]["published_count"] == 2

    first = await client.post("/admin/api/categories/recount", headers=auth(admin))
    assert first.json()["data"] == {"categories": 2, "updated": 1}

    second = await client.post("/admin/api/categories/recount", headers=auth(admin))
    assert second.json()["data"] == {"categories": 2, "updated": 0}

    listing = (await client.get("/admin/api/categories", headers=auth(admin))).json()["data"]
    assert {c["id"]: c["article_count"] for c in listing}[sports["id"]] == 2


async def test_scheduled_recount_job(database, client, admin, editor, auth, make_article):
    await _create_category(client, admin, auth, name="Health", slug="health")
    await make_article(editor, category="health")

    scheduler = MaintenanceScheduler()
    scheduler.database = database
    await scheduler._recount_categories()

    public = (await client.get("/api/categories")).json()["data"]
    assert public[0]["article_count"] == 1


async def test_user_management(client, admin, auth):
    created = await client.post(
        "/admin/api/users",
        json={"name": "New Editor", "email": "Editor@Example.com", "password": "secret1", "role": "editor"},
        headers=auth(admin),
    )
    assert created.status_code == 201
    new_user = created.json()["data"]
    assert new_user["email"] == "editor@example.com"
    assert new_user["role"] == "editor"

    dup = await client.post(
        "/admin/api/users",
        json={"name": "Again", "email": "editor@example.com", "password": "secret1"},
        headers=auth(admin),
    )
    assert dup.status_code == 400

    no_password_update = await client.put(
        f"/admin/api/users/{new_user['id']}", json={"password": "hacked1"}, headers=auth(admin)
    )
    assert no_password_update.status_code == 400

    updated = await client.put(
        f"/admin/api/users/{new_user['id']}",
        json={"role": "admin", "is_active": False},
        headers=auth(admin),
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["role"] == "admin"
    assert updated.json()["data"]["is_active"] is False

    active = (await client.get("/admin/api/users", headers=auth(admin))).json()["data"]
    assert new_user["id"] not in [u["id"] for u in active["items"]]
    everyone = (
        await client.get("/admin/api/users", params={"include_inactive": True}, headers=auth(admin))
    ).json()["data"]
    assert new_user["id"] in [u["id"] for u in everyone["items"]]

    removed = await client.delete(f"/admin/api/users/{new_user['id']}", headers=auth(admin))
    assert removed.status_code == 200


async def test_admin_cannot_delete_self(client, admin, auth):
    resp = await client.delete(f"/admin/api/users/{admin.id}", headers=auth(admin))
    assert resp.status_code == 400


async def test_deleting_author_keeps_articles(client, admin, make_user, auth, make_article):
    author = await make_user(Role.EDITOR)
    article = await make_article(author, title="Orphaned")

    resp = await client.delete(f"/admin/api/users/{author.id}", headers=auth(admin))
    assert resp.status_code == 200

    detail = (await client.get(f"/api/articles/{article.id}")).json()["data"]["article"]
    assert detail["author_id"] is None
    assert detail["author_name"] is None


async def test_admin_article_listing_includes_all_statuses(client, editor, auth, make_article):
    await make_article(editor, title="Draft", status=ArticleStatus.DRAFT)
    await make_article(editor, title="Archived", status=ArticleStatus.ARCHIVED)
    await make_article(editor, title="Live")

    resp = await client.get("/admin/api/articles", headers=auth(editor))
    titles = [a["title"] for a in resp.json()["data"]["articles"]]
    assert titles == ["Live", "Archived", "Draft"]

    drafts = await client.get("/admin/api/articles", params={"status": "draft"}, headers=auth(editor))
    assert [a["title"] for a in drafts.json()["data"]["articles"]] == ["Draft"]


async def test_dashboard_stats(client, admin, editor, user, auth, make_article):
    await make_article(editor, title="Live")
    await make_article(editor, title="Draft", status=ArticleStatus.DRAFT)

    stats = (await client.get("/admin/api/stats", headers=auth(admin))).json()["data"]
    assert stats["total_articles"] == 2
    assert stats["published_articles"] == 1
    assert stats["draft_articles"] == 1
    assert stats["total_views"] == 0
    assert stats["total_users"] == 3
    assert stats["users"] == {"total": 3, "users": 1, "editors": 1, "admins": 1}
