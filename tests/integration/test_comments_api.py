from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from academy.db.models import ActivityLog, Comment
from academy.email.dispatcher import get_dispatcher
from helpers import auth_headers, make_assignment, make_participant, make_submission, new_session


async def _thread(db):
    author = await make_participant(db, name="Author", github_username="author")
    submission = await make_submission(db, author, await make_assignment(db))
    return author, submission


class TestCreateComment:
    @pytest.mark.asyncio
    async def test_top_level(self, client, db):
        author, submission = await _thread(db)

        response = await client.post(
            "/api/comments",
            json={"submission_id": str(submission.id), "content": "<p>Nice</p> approach"},
            headers=auth_headers(author),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["content"] == "Nice approach"
        assert body["author"]["github_username"] == "author"
        assert body["replies"] == []
        async with new_session() as s:
            log = (await s.execute(select(ActivityLog).where(ActivityLog.action == "comment"))).scalar_one()
            assert log.details["comment_id"] == body["id"]

    @pytest.mark.asyncio
    async def test_empty_after_sanitizing(self, client, db):
        author, submission = await _thread(db)
        response = await client.post(
            "/api/comments",
            json={"submission_id": str(submission.id), "content": "<b></b>"},
            headers=auth_headers(author),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_submission(self, client, db):
        author, _submission = await _thread(db)
        response = await client.post(
            "/api/comments",
            json={"submission_id": str(uuid.uuid4()), "content": "hello"},
            headers=auth_headers(author),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_parent_on_other_submission(self, client, db):
        author, submission = await _thread(db)
        other = await make_submission(db, author, await make_assignment(db, day=2))
        parent = Comment(submission_id=other.id, author_id=author.id, content="elsewhere")
        db.add(parent)
        await db.commit()

        response = await client.post(
            "/api/comments",
            json={"submission_id": str(submission.id), "content": "reply", "parent_id": str(parent.id)},
            headers=auth_headers(author),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_reply_and_mentions_notify_once_each(self, client, db, outbox):
        author, submission = await _thread(db)
        replier = await make_participant(db, name="Replier", github_username="replier")
        bystander = await make_participant(db, name="Bystander", github_username="bystander")
        parent = Comment(submission_id=submission.id, author_id=author.id, content="first")
        db.add(parent)
        await db.commit()

        response = await client.post(
            "/api/comments",
            json={
                "submission_id": str(submission.id),
                "parent_id": str(parent.id),
                "content": "@author @bystander @replier @ghost see this",
            },
            headers=auth_headers(replier),
        )
        await get_dispatcher().drain()

        assert response.status_code == 201
        assert [m["subject"] for m in outbox.to(author.email)] == ["Replier replied to your comment"]
        assert [m["subject"] for m in outbox.to(bystander.email)] == ["Replier mentioned you in a comment"]
        assert outbox.to(replier.email) == []


class TestThread:
    @pytest.mark.asyncio
    async def test_nested_replies(self, client, db):
        author, submission = await _thread(db)
        root = Comment(submission_id=submission.id, author_id=author.id, content="root")
        db.add(root)
        await db.flush()
        child = Comment(submission_id=submission.id, author_id=author.id, content="child", parent_id=root.id)
        db.add(child)
        await db.flush()
        db.add(Comment(submission_id=submission.id, author_id=author.id, content="grandchild", parent_id=child.id))
        await db.commit()

        response = await client.get(
            "/api/comments", params={"submission_id": str(submission.id)}, headers=auth_headers(author)
        )

        body = response.json()
        assert body["total_count"] == 3
        (top,) = body["comments"]
        assert top["content"] == "root"
        assert top["replies"][0]["content"] == "child"
        assert top["replies"][0]["replies"][0]["content"] == "grandchild"

    @pytest.mark.asyncio
    async def test_requires_participant(self, client, db):
        _author, submission = await _thread(db)
        response = await client.get("/api/comments", params={"submission_id": str(submission.id)})
        assert response.status_code == 401


class TestEditDelete:
    @pytest.mark.asyncio
    async def test_author_edits(self, client, db):
        author, submission = await _thread(db)
        comment = Comment(submission_id=submission.id, author_id=author.id, content="draft")
        db.add(comment)
        await db.commit()

        response = await client.patch(
            "/api/comments", json={"comment_id": str(comment.id), "content": "final"}, headers=auth_headers(author)
        )

        assert response.json()["content"] == "final"
        assert response.json()["is_edited"] is True

    @pytest.mark.asyncio
    async def test_others_cannot_edit_or_delete(self, client, db):
        author, submission = await _thread(db)
        intruder = await make_participant(db)
        comment = Comment(submission_id=submission.id, author_id=author.id, content="mine")
        db.add(comment)
        await db.commit()

        patch = await client.patch(
            "/api/comments", json={"comment_id": str(comment.id), "content": "x"}, headers=auth_headers(intruder)
        )
        delete = await client.delete(
            "/api/comments", params={"comment_id": str(comment.id)}, headers=auth_headers(intruder)
        )
        assert patch.status_code == 403
        assert delete.status_code == 403

    @pytest.mark.asyncio
    async def test_delete_cascades_to_replies(self, client, db):
        author, submission = await _thread(db)
        root = Comment(submission_id=submission.id, author_id=author.id, content="root")
        db.add(root)
        await db.flush()
        reply = Comment(submission_id=submission.id, author_id=author.id, content="reply", parent_id=root.id)
        sibling = Comment(submission_id=submission.id, author_id=author.id, content="sibling")
        db.add_all([reply, sibling])
        await db.commit()

        response = await client.delete(
            "/api/comments", params={"comment_id": str(root.id)}, headers=auth_headers(author)
        )

        assert response.json() == {"success": True, "deleted": 2}
        async with new_session() as s:
            remaining = (await s.execute(select(Comment.content))).scalars().all()
            assert remaining == ["sibling"]

    @pytest.mark.asyncio
    async def test_delete_unknown(self, client, db):
        author, _submission = await _thread(db)
        response = await client.delete(
            "/api/comments", params={"comment_id": str(uuid.uuid4())}, headers=auth_headers(author)
        )
        assert response.status_code == 404
