from typing import List, Dict, Optional

from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter

from models.post import Post
from models.user import Account
from services.accounts import AccountStore
from services.firestore import FirestoreDB
from services.posts import resolve_post
from utils.retry import retry_once


class FeedAssembler:
    """Read-only, newest-first views over stored posts"""

    def __init__(self, db: FirestoreDB, accounts: AccountStore):
        self.db = db
        self.accounts = accounts

    def _assemble(self, query) -> List[Post]:
        docs = retry_once(lambda: list(query.stream()), description="feed query")

        cache: Dict[str, Optional[Account]] = {}
        posts = [resolve_post(doc.id, doc.to_dict(), self.accounts, cache) for doc in docs]

        # Break created_at ties by id so repeated reads come back in the same order
        posts.sort(key=lambda p: (p.created_at, p.id), reverse=True)
        return posts

    def list_all(self) -> List[Post]:
        """Get all posts sorted by creation date descending"""
        query = self.db.posts().order_by("created_at", direction=firestore.Query.DESCENDING)
        return self._assemble(query)

    def list_by_account(self, account_id: str) -> List[Post]:
        """Get the posts authored by one account, newest first"""
        query = self.db.posts().where(
            filter=FieldFilter("author_id", "==", account_id)
        )
        return self._assemble(query)

    def list_mine(self, caller_id: str) -> List[Post]:
        return self.list_by_account(caller_id)
