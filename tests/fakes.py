"""
In-memory stand-in for the subset of the Firestore client the services use.
"""
import copy
import threading
import uuid
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore
from google.cloud.firestore_v1.transforms import ArrayUnion, ArrayRemove


class FakeSnapshot:
    def __init__(self, doc_id: str, data: Optional[Dict[str, Any]]):
        self.id = doc_id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)


class FakeDocumentReference:
    def __init__(self, client: "FakeFirestoreClient", collection: str, doc_id: str):
        self._client = client
        self._collection = collection
        self.id = doc_id

    @property
    def _store(self) -> Dict[str, Dict[str, Any]]:
        return self._client.data.setdefault(self._collection, {})

    def get(self):
        self._client.before_call("get", self._collection)
        with self._client.lock:
            return FakeSnapshot(self.id, copy.deepcopy(self._store.get(self.id)))

    def set(self, data: Dict[str, Any]):
        self._client.before_call("set", self._collection)
        with self._client.lock:
            self._store[self.id] = copy.deepcopy(data)

    def update(self, changes: Dict[str, Any]):
        self._client.before_call("update", self._collection)
        with self._client.lock:
            if self.id not in self._store:
                raise gexc.NotFound(f"No document to update: {self.id}")
            doc = self._store[self.id]
            for field, value in changes.items():
                if isinstance(value, ArrayUnion):
                    current = doc.setdefault(field, [])
                    for item in value.values:
                        if item not in current:
                            current.append(copy.deepcopy(item))
                elif isinstance(value, ArrayRemove):
                    doc[field] = [item for item in doc.get(field, []) if item not in value.values]
                else:
                    doc[field] = copy.deepcopy(value)


class FakeQuery:
    def __init__(self, client: "FakeFirestoreClient", collection: str):
        self._client = client
        self._collection = collection
        self._filters = []
        self._orders = []
        self._limit = None

    def _copy(self) -> "FakeQuery":
        query = FakeQuery(self._client, self._collection)
        query._filters = list(self._filters)
        query._orders = list(self._orders)
        query._limit = self._limit
        return query

    def where(self, filter):
        assert filter.op_string == "==", "only equality filters are faked"
        query = self._copy()
        query._filters.append((filter.field_path, filter.value))
        return query

    def order_by(self, field: str, direction=firestore.Query.ASCENDING):
        query = self._copy()
        query._orders.append((field, direction))
        return query

    def limit(self, count: int):
        query = self._copy()
        query._limit = count
        return query

    def stream(self):
        self._client.before_call("stream", self._collection)
        filtered = {field for field, _ in self._filters}
        if filtered and any(field not in filtered for field, _ in self._orders):
            # Firestore wants a composite index for an equality filter plus a sort on another field
            raise gexc.FailedPrecondition("The query requires an index")
        with self._client.lock:
            docs = [
                FakeSnapshot(doc_id, copy.deepcopy(data))
                for doc_id, data in self._client.data.get(self._collection, {}).items()
                if all(data.get(field) == value for field, value in self._filters)
            ]
        for field, direction in reversed(self._orders):
            docs.sort(key=lambda d: d.to_dict()[field], reverse=direction == firestore.Query.DESCENDING)
        if self._limit is not None:
            docs = docs[:self._limit]
        return iter(docs)


class FakeCollectionReference(FakeQuery):
    def document(self, doc_id: Optional[str] = None) -> FakeDocumentReference:
        return FakeDocumentReference(self._client, self._collection, doc_id or uuid.uuid4().hex[:20])


class FakeFirestoreClient:
    def __init__(self):
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.lock = threading.Lock()
        self.failures: List[Exception] = []
        self.calls: List[str] = []
        self.post_read_barrier: Optional[threading.Barrier] = None
        self.closed = False

    def before_call(self, op: str, collection: str):
        self.calls.append(f"{collection}.{op}")
        if self.failures:
            raise self.failures.pop(0)
        if op == "get" and collection == "posts" and self.post_read_barrier is not None:
            self.post_read_barrier.wait()

    def collection(self, name: str) -> FakeCollectionReference:
        return FakeCollectionReference(self, name)

    def close(self):
        self.closed = True
