import logging
from datetime import datetime, timezone
from typing import Optional

from google.cloud.firestore_v1 import FieldFilter

from models.user import Account
from services.errors import ValidationError
from services.firestore import FirestoreDB
from utils.retry import retry_once

logger = logging.getLogger(__name__)


class AccountStore:
    def __init__(self, db: FirestoreDB):
        self.db = db

    def find_account(self, account_id: str) -> Optional[Account]:
        """Get an account by ID, or None if it does not exist"""
        if not account_id:
            return None

        snapshot = retry_once(
            lambda: self.db.users().document(account_id).get(),
            description="account lookup",
        )
        if not snapshot.exists:
            return None

        data = snapshot.to_dict()
        return Account(
            id=snapshot.id,
            username=data.get("username", "Unknown"),
            email=data.get("email"),
            created_at=data.get("created_at"),
        )

    def username_taken(self, username: str) -> bool:
        query = self.db.users().where(
            filter=FieldFilter("username", "==", username)
        ).limit(1)
        docs = retry_once(lambda: list(query.stream()), description="username lookup")
        return len(docs) > 0

    def create_account(self, account_id: str, username: str, email: str) -> Account:
        """Create the profile document for a newly registered auth user"""
        username = username.strip()
        if not username:
            raise ValidationError("Username is required", field="username")
        if self.username_taken(username):
            raise ValidationError("Username is already taken", field="username")

        account_data = {
            "username": username,
            "email": email,
            "created_at": datetime.now(timezone.utc),
        }
        retry_once(
            lambda: self.db.users().document(account_id).set(account_data),
            description="account create",
        )
        logger.info("Created account %s (%s)", account_id, username)

        return Account(id=account_id, **account_data)
