"""Threaded comments on submissions, with mention and reply notifications."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy.activity import record_activity
from academy.comments.schemas import CommentAuthor, CommentCreate, CommentResponse, CommentUpdate
from academy.db.models import Comment, Participant, Submission
from academy.email.dispatcher import NotificationDispatcher, get_dispatcher
from academy.errors import AcademyError, ForbiddenError, NotFoundError
from academy.utils.text import extract_mentions
from academy.utils.time import utcnow

logger = structlog.get_logger()


def build_tree(comments: list[Comment]) -> list[CommentResponse]:
    """Nest replies under their parents. Roots and replies keep creation order."""
    nodes: dict[uuid.UUID, CommentResponse] = {}
    for comment in comments:
        nodes[comment.id] = CommentResponse(
            id=comment.id,
            submission_id=comment.submission_id,
            parent_id=comment.parent_id,
            content=comment.content,
            is_edited=comment.is_edited,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            author=CommentAuthor.model_validate(comment.author) if comment.author else None,
            replies=[],
        )

    roots: list[CommentResponse] = []
    for comment in comments:
        node = nodes[comment.id]
        parent = nodes.get(comment.parent_id) if comment.parent_id else None
        if parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


async def list_thread(db: AsyncSession, submission_id: uuid.UUID) -> tuple[list[CommentResponse], int]:
    comments = list(
        (
            await db.execute(
                select(Comment).where(Comment.submission_id == submission_id).order_by(Comment.created_at, Comment.id)
            )
        ).scalars()
    )
    return build_tree(comments), len(comments)


async def _get_comment(db: AsyncSession, comment_id: uuid.UUID) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        msg = "Comment not found"
        raise NotFoundError(msg)
    return comment


async def create_comment(
    db: AsyncSession,
    author: Participant,
    body: CommentCreate,
    *,
    notifier: NotificationDispatcher | None = None,
) -> Comment:
    notifier = notifier or get_dispatcher()
    submission = await db.get(Submission, body.submission_id)
    if submission is None:
        msg = "Submission not found"
        raise NotFoundError(msg)

    parent = None
    if body.parent_id is not None:
        parent = await db.get(Comment, body.parent_id)
        if parent is None or parent.submission_id != submission.id:
            msg = "Parent comment does not belong to this submission"
            raise AcademyError(msg)

    comment = Comment(
        submission_id=submission.id,
        author_id=author.id,
        parent_id=parent.id if parent else None,
        content=body.content,
        is_edited=False,
    )
    db.add(comment)
    await db.flush()

    mentions = extract_mentions(body.content)
    mentioned: list[Participant] = []
    if mentions:
        mentioned = [
            p
            for p in (
                await db.execute(select(Participant).where(Participant.github_username.in_(mentions)))
            ).scalars()
            if p.id != author.id
        ]

    record_activity(
        db,
        "comment",
        author.id,
        {
            "comment_id": str(comment.id),
            "submission_id": str(submission.id),
            "parent_id": str(parent.id) if parent else None,
            "mentions": [p.github_username for p in mentioned],
        },
    )
    await db.commit()
    await db.refresh(comment, ["author"])

    notified: set[uuid.UUID] = set()
    if parent is not None and parent.author_id != author.id:
        parent_author = await db.get(Participant, parent.author_id)
        if parent_author is not None:
            notifier.dispatch(
                parent_author.email,
                "reply",
                {
                    "recipient_name": parent_author.name,
                    "author_name": author.name,
                    "comment_content": comment.content,
                    "submission_id": str(submission.id),
                },
            )
            notified.add(parent_author.id)

    for recipient in mentioned:
        if recipient.id in notified:
            continue
        notifier.dispatch(
            recipient.email,
            "mention",
            {
                "recipient_name": recipient.name,
                "author_name": author.name,
                "comment_content": comment.content,
                "submission_id": str(submission.id),
            },
        )
        notified.add(recipient.id)

    logger.info("comment_created", comment_id=str(comment.id), notified=len(notified))
    return comment


async def update_comment(db: AsyncSession, author: Participant, body: CommentUpdate) -> Comment:
    comment = await _get_comment(db, body.comment_id)
    if comment.author_id != author.id:
        msg = "Only the author can edit this comment"
        raise ForbiddenError(msg)
    comment.content = body.content
    comment.is_edited = True
    comment.updated_at = utcnow()
    await db.commit()
    return comment


async def _descendant_ids(db: AsyncSession, root_id: uuid.UUID) -> list[uuid.UUID]:
    found: list[uuid.UUID] = []
    frontier = [root_id]
    while frontier:
        children = list((await db.execute(select(Comment.id).where(Comment.parent_id.in_(frontier)))).scalars())
        found.extend(children)
        frontier = children
    return found


async def delete_comment(db: AsyncSession, author: Participant, comment_id: uuid.UUID) -> int:
    """Delete a comment and every reply beneath it. Returns rows removed."""
    comment = await _get_comment(db, comment_id)
    if comment.author_id != author.id:
        msg = "Only the author can delete this comment"
        raise ForbiddenError(msg)
    ids = [comment.id, *await _descendant_ids(db, comment.id)]
    await db.execute(delete(Comment).where(Comment.id.in_(ids)))
    await db.commit()
    logger.info("comment_deleted", comment_id=str(comment_id), removed=len(ids))
    return len(ids)
