import html
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import bleach
from google.api_core import exceptions as gexc
from google.cloud import firestore

from models.post import Post, AccountRef, Like, Comment, MAX_POST_TEXT, MAX_COMMENT_TEXT
from models.user import Account
from services.accounts import AccountStore
from services.errors import ValidationError, NotFoundError
from services.firestore import FirestoreDB
from utils.retry import retry_once

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_text(text: Optional[str]) -> str:
    if not text:
        return ""
    # Drop markup, keep plain characters such as & and < as typed
    return html.unescape(bleach.clean(text, tags=set(), strip=True)).strip()


def resolve_post(
        post_id: str,
        data: Dict[str, Any],
        accounts: AccountStore,
        cache: Dict[str, Optional[Account]],
) -> Post:
    """
    Build the API view of a stored post.

    The author and each commenter are looked up for their current username.
    Like usernames are kept as stored.
    """

    def lookup(account_id: str) -> Optional[Account]:
        if account_id not in cache:
            cache[account_id] = accounts.find_account(account_id)
        return cache[account_id]

    author_id = data.get("author_id", "")
    author = lookup(author_id)

    comments = []
    for c in data.get("comments", []):
        commenter = lookup(c.get("account_id", ""))
        comments.append(Comment(
            id=c.get("id", ""),
            account=AccountRef(
                id=c.get("account_id", ""),
                username=commenter.username if commenter else c.get("username", "Unknown"),
            ),
            username=c.get("username", "Unknown"),
            text=c.get("text", ""),
            created_at=c["created_at"],
        ))

    return Post(
        id=post_id,
        author=AccountRef(id=author_id, username=author.username if author else "Unknown"),
        text=data.get("text") or None,
        image=data.get("image") or None,
        likes=[Like(account_id=like["account_id"], username=like.get("username", "Unknown"))
               for like in data.get("likes", [])],
        comments=comments,
        created_at=data["created_at"],
        updated_at=data.get("updated_at", data["created_at"]),
    )


class PostRepository:
    def __init__(self, db: FirestoreDB, accounts: AccountStore):
        self.db = db
        self.accounts = accounts

    def _require_account(self, account_id: str) -> Account:
        account = self.accounts.find_account(account_id)
        if account is None:
            raise NotFoundError("User", account_id)
        return account

    def _get_snapshot(self, post_id: str):
        snapshot = retry_once(
            lambda: self.db.posts().document(post_id).get(),
            description="post lookup",
        )
        if not snapshot.exists:
            raise NotFoundError("Post", post_id)
        return snapshot

    def _update(self, post_id: str, changes: Dict[str, Any]):
        post_ref = self.db.posts().document(post_id)
        try:
            retry_once(lambda: post_ref.update(changes), description="post update")
        except gexc.NotFound:
            raise NotFoundError("Post", post_id)

    def _resolved(self, post_id: str, known: Account = None) -> Post:
        snapshot = self._get_snapshot(post_id)
        cache = {known.id: known} if known else {}
        return resolve_post(snapshot.id, snapshot.to_dict(), self.accounts, cache)

    def get(self, post_id: str) -> Post:
        """Get a single post by ID"""
        return self._resolved(post_id)

    def create(self, author_id: str, text: Optional[str] = None, image: Optional[str] = None) -> Post:
        """
        Create a new post with no likes or comments.

        Args:
            author_id: ID of the authoring account
            text: optional post text, at most 500 characters
            image: optional image URL or inline data URI

        Returns:
            The stored post with its author resolved

        Raises:
            ValidationError: both text and image are empty, or text is too long
            NotFoundError: the author account does not exist
        """
        text = _clean_text(text)
        image = (image or "").strip()

        if not text and not image:
            raise ValidationError("Either text or image must be provided", field="text")
        if len(text) > MAX_POST_TEXT:
            raise ValidationError(
                f"Post text must be at most {MAX_POST_TEXT} characters",
                field="text",
                details={"max_length": MAX_POST_TEXT},
            )

        author = self._require_account(author_id)

        now = _now()
        post_ref = self.db.posts().document()
        post_data = {
            "author_id": author.id,
            "text": text or None,
            "image": image or None,
            "likes": [],
            "comments": [],
            "created_at": now,
            "updated_at": now,
        }
        retry_once(lambda: post_ref.set(post_data), description="post create")
        logger.info("Post %s created by %s", post_ref.id, author.id)

        return resolve_post(post_ref.id, post_data, self.accounts, {author.id: author})

    def toggle_like(self, post_id: str, account_id: str) -> Post:
        """Like the post if the account has not liked it yet, otherwise unlike it"""
        snapshot = self._get_snapshot(post_id)
        account = self._require_account(account_id)

        likes = snapshot.to_dict().get("likes", [])
        existing = [like for like in likes if like.get("account_id") == account_id]

        # Array transforms apply atomically on the server, so concurrent
        # likes from other accounts are never overwritten.
        if existing:
            self._update(post_id, {
                "likes": firestore.ArrayRemove(existing),
                "updated_at": _now(),
            })
            logger.info("Post %s unliked by %s", post_id, account_id)
        else:
            self._update(post_id, {
                "likes": firestore.ArrayUnion([{"account_id": account.id, "username": account.username}]),
                "updated_at": _now(),
            })
            logger.info("Post %s liked by %s", post_id, account_id)

        return self._resolved(post_id, account)

    def add_comment(self, post_id: str, account_id: str, text: Optional[str]) -> Post:
        """Append a comment to a post"""
        text = _clean_text(text)
        if not text:
            raise ValidationError("Comment text is required", field="text")
        if len(text) > MAX_COMMENT_TEXT:
            raise ValidationError(
                f"Comment text must be at most {MAX_COMMENT_TEXT} characters",
                field="text",
                details={"max_length": MAX_COMMENT_TEXT},
            )

        self._get_snapshot(post_id)
        account = self._require_account(account_id)

        now = _now()
        comment_data = {
            "id": uuid.uuid4().hex,
            "account_id": account.id,
            "username": account.username,
            "text": text,
            "created_at": now,
        }
        self._update(post_id, {
            "comments": firestore.ArrayUnion([comment_data]),
            "updated_at": now,
        })
        logger.info("Comment %s added to post %s by %s", comment_data["id"], post_id, account_id)

        return self._resolved(post_id, account)
