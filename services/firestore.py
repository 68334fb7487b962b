import logging

import firebase_admin
from firebase_admin import firestore as fs
from google.cloud import firestore

logger = logging.getLogger(__name__)

POSTS = "posts"
USERS = "users"


class FirestoreDB:
    """
    Storage handle shared by the account store, post repository and feed.

    Created once at startup and closed at shutdown.
    """

    def __init__(self, client: firestore.Client):
        self.db = client

    @classmethod
    def from_app(cls, app: firebase_admin.App) -> "FirestoreDB":
        """Open a Firestore client for an initialized Firebase app"""
        return cls(fs.client(app))

    def collection(self, name: str):
        return self.db.collection(name)

    def posts(self):
        return self.collection(POSTS)

    def users(self):
        return self.collection(USERS)

    def close(self):
        """Release the underlying client"""
        logger.info("Closing Firestore client")
        self.db.close()
