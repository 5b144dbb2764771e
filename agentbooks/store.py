"""
Document Stores

In-process stand-ins for the hosted document database. Documents are plain
dicts grouped by collection and owned by a user id.
"""

import copy
import logging
import threading
import uuid

from .models import CommissionProfile

logger = logging.getLogger(__name__)

DEALS = "deals"
EXPENSES = "expenses"
MILEAGE = "mileage"
PROFILES = "profiles"


class DocumentStore:
    """Thread-safe in-memory key-value document store."""

    def __init__(self):
        self._collections: dict[str, dict[str, dict]] = {}
        self._lock = threading.Lock()

    def add(self, collection: str, document: dict, doc_id: str | None = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)
        logger.debug(f"Stored {collection}/{doc_id}")
        return doc_id

    def get(self, collection: str, doc_id: str) -> dict:
        """Return a copy of the document. Raises KeyError if it does not exist."""
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise KeyError(f"{collection}/{doc_id} not found")
            return copy.deepcopy(documents[doc_id])

    def update(self, collection: str, doc_id: str, changes: dict) -> dict:
        """Merge `changes` into an existing document and return the result."""
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise KeyError(f"{collection}/{doc_id} not found")
            documents[doc_id].update(copy.deepcopy(changes))
            return copy.deepcopy(documents[doc_id])

    def set(self, collection: str, doc_id: str, document: dict) -> None:
        """Create or fully replace a document."""
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(document)

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            documents = self._collections.get(collection, {})
            if doc_id not in documents:
                raise KeyError(f"{collection}/{doc_id} not found")
            del documents[doc_id]

    def query(self, collection: str, user_id: str) -> list[tuple[str, dict]]:
        """All (id, document) pairs owned by `user_id`."""
        with self._lock:
            documents = self._collections.get(collection, {})
            return [
                (doc_id, copy.deepcopy(document))
                for doc_id, document in documents.items()
                if document.get("user_id") == user_id
            ]


class ProfileStore:
    """Singleton commission profile per user, defaults when absent."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents

    def get(self, user_id: str) -> CommissionProfile:
        try:
            data = self.documents.get(PROFILES, user_id)
        except KeyError:
            return CommissionProfile()
        return CommissionProfile.from_dict(data)

    def save(self, user_id: str, profile: CommissionProfile) -> None:
        """Last write wins; no merge with the stored profile."""
        self.documents.set(PROFILES, user_id, {"user_id": user_id, **profile.to_dict()})
