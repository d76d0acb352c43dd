"""评论：发表、回复层级、点赞/举报幂等、编辑删除权限、审核可见性"""

from app.core import comments as comment_service
from app.models.article import ArticleStatus
from app.models.comment import CommentLike
from app.models.user import Role, User


async def _comment(client, auth, author, article_id, content="Nice piece", parent_id=None):
    payload = {"content": content}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    resp = await client.post(
        f"/api/comments/article/{article_id}", json=payload, headers=auth(author)
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


async def test_create_comment_requires_login(client, editor, make_article):
    article = await make_article(editor)
    resp = await client.post(f"/api/comments/article/{article.id}", json={"content": "Hi"})
    assert resp.status_code == 401


async def test_comment_on_draft_is_404(client, user, editor, auth, make_article):
    draft = await make_article(editor, status=ArticleStatus.DRAFT)
    resp = await client.post(
        f"/api/comments/article/{draft.id}", json={"content": "Hi"}, headers=auth(user)
    )
    assert resp.status_code == 404


async def test_comment_on_closed_article_is_forbidden(client, user, editor, auth, make_article):
    article = await make_article(editor, allow_comments=False)
    resp = await client.post(
        f"/api/comments/article/{article.id}", json={"content": "Hi"}, headers=auth(user)
    )
    assert resp.status_code == 403


async def test_comment_is_visible_with_author(client, user, editor, auth, make_article):
    article = await make_article(editor)
    created = await _comment(client, auth, user, article.id)
    assert created["status"] == "approved"
    assert created["user"]["name"] == user.name
    assert created["like_count"] == 0

    threads = (await client.get(f"/api/articles/{article.id}/comments")).json()["data"]
    assert [t["id"] for t in threads] == [created["id"]]


async def test_reply_to_reply_attaches_to_top_level(client, user, editor, auth, make_article):
    article = await make_article(editor)
    top = await _comment(client, auth, user, article.id, "Top")
    first = await _comment(client, auth, editor, article.id, "First reply", parent_id=top["id"])

    resp = await client.post(
        f"/api/comments/{first['id']}/reply", json={"content": "Second reply"}, headers=auth(user)
    )
    assert resp.status_code == 201
    assert resp.json()["data"]["parent_id"] == top["id"]

    threads = (await client.get(f"/api/articles/{article.id}/comments")).json()["data"]
    assert len(threads) == 1
    assert [r["content"] for r in threads[0]["replies"]] == ["First reply", "Second reply"]


async def test_reply_parent_must_be_on_same_article(client, user, editor, auth, make_article):
    one = await make_article(editor, title="One")
    two = await make_article(editor, title="Two")
    parent = await _comment(client, auth, user, one.id)

    resp = await client.post(
        f"/api/comments/article/{two.id}",
        json={"content": "Wrong place", "parent_id": parent["id"]},
        headers=auth(user),
    )
    assert resp.status_code == 400


async def test_like_is_idempotent(client, user, editor, auth, make_article):
    article = await make_article(editor)
    comment = await _comment(client, auth, editor, article.id)

    for _ in range(2):
        resp = await client.post(f"/api/comments/{comment['id']}/like", headers=auth(user))
        assert resp.status_code == 200
    assert resp.json()["data"]["like_count"] == 1

    resp = await client.delete(f"/api/comments/{comment['id']}/like", headers=auth(user))
    assert resp.json()["data"]["like_count"] == 0
    resp = await client.delete(f"/api/comments/{comment['id']}/like", headers=auth(user))
    assert resp.json()["data"]["like_count"] == 0


async def test_report_is_recorded_once_per_user(client, make_user, editor, auth, make_article):
    article = await make_article(editor)
    comment = await _comment(client, auth, editor, article.id)
    reader = await make_user(Role.USER)
    other = await make_user(Role.USER)

    for _ in range(2):
        resp = await client.post(
            f"/api/comments/{comment['id']}/report", json={"reason": "spam"}, headers=auth(reader)
        )
        assert resp.status_code == 200
    assert resp.json()["data"]["report_count"] == 1

    resp = await client.post(
        f"/api/comments/{comment['id']}/report", json={}, headers=auth(other)
    )
    assert resp.json()["data"]["report_count"] == 2


async def test_edit_requires_owner_or_admin(client, make_user, editor, admin, auth, make_article):
    article = await make_article(editor)
    owner = await make_user(Role.USER)
    stranger = await make_user(Role.USER)
    comment = await _comment(client, auth, owner, article.id, "Original")

    denied = await client.put(
        f"/api/comments/{comment['id']}", json={"content": "Hijack"}, headers=auth(stranger)
    )
    assert denied.status_code == 403

    edited = await client.put(
        f"/api/comments/{comment['id']}", json={"content": "Fixed typo"}, headers=auth(owner)
    )
    assert edited.status_code == 200
    data = edited.json()["data"]
    assert data["content"] == "Fixed typo"
    assert data["is_edited"] is True
    assert data["edited_at"] is not None

    by_admin = await client.put(
        f"/api/comments/{comment['id']}", json={"content": "Moderated"}, headers=auth(admin)
    )
    assert by_admin.status_code == 200


async def test_delete_comment_removes_replies(client, user, editor, auth, make_article):
    article = await make_article(editor)
    top = await _comment(client, auth, user, article.id, "Top")
    await _comment(client, auth, editor, article.id, "Reply", parent_id=top["id"])

    denied = await client.delete(f"/api/comments/{top['id']}", headers=auth(editor))
    assert denied.status_code == 403

    resp = await client.delete(f"/api/comments/{top['id']}", headers=auth(user))
    assert resp.status_code == 200

    threads = (await client.get(f"/api/articles/{article.id}/comments")).json()["data"]
    assert threads == []


async def test_moderated_comments_are_hidden(client, user, editor, admin, auth, make_article):
    article = await make_article(editor)
    keep = await _comment(client, auth, user, article.id, "Keep")
    hide = await _comment(client, auth, user, article.id, "Hide")

    resp = await client.put(
        f"/admin/api/comments/{hide['id']}/status", json={"status": "rejected"}, headers=auth(admin)
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "rejected"

    threads = (await client.get(f"/api/articles/{article.id}/comments")).json()["data"]
    assert [t["id"] for t in threads] == [keep["id"]]

    stats = (await client.get("/admin/api/comments/stats", headers=auth(admin))).json()["data"]
    assert stats == {"total": 2, "approved": 1, "pending": 0, "rejected": 1, "spam": 0}


async def test_pending_queue(client, user, editor, admin, auth, make_article):
    article = await make_article(editor)
    comment = await _comment(client, auth, user, article.id)
    await client.put(
        f"/admin/api/comments/{comment['id']}/status", json={"status": "pending"}, headers=auth(admin)
    )

    pending = (await client.get("/admin/api/comments/pending", headers=auth(admin))).json()["data"]
    assert [c["id"] for c in pending] == [comment["id"]]


async def test_duplicate_like_conflict_keeps_other_changes(
    database, session, user, editor, auth, client, make_article
):
    article = await make_article(editor)
    created = await _comment(client, auth, editor, article.id)

    comment = await comment_service.get_comment_or_404(session, created["id"])
    reader = await session.get(User, user.id)

    # 另一个请求抢先点赞，本会话里的点赞列表已过时
    async with database.session() as other:
        other.add(CommentLike(comment_id=created["id"], user_id=user.id))
        await other.commit()

    reader.bio = "Still here"
    liked = await comment_service.add_like(session, comment, reader)
    assert liked.like_count == 1
    assert reader.bio == "Still here"
    await session.commit()

    async with database.session() as check:
        stored = await check.get(User, user.id)
        assert stored.bio == "Still here"
