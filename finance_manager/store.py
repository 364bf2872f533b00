"""Document-store backends.

The application never talks to a database directly; it lists, creates,
updates and deletes documents in named collections of a hosted store.
:class:`SupabaseDocumentStore` is the production backend and
:class:`InMemoryDocumentStore` backs the tests and the offline demo mode.

Every document returned by a backend is a plain ``dict`` that carries an
``id`` and a ``created_at`` ISO timestamp alongside its fields.  Any backend
failure surfaces as :class:`~finance_manager.exceptions.RemoteCallError`.
"""

from __future__ import annotations

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

try:
    from .exceptions import ConfigurationError, RemoteCallError
except ImportError:  # pragma: no cover - fallback for direct execution
    from exceptions import ConfigurationError, RemoteCallError

Record = Dict[str, Any]


def new_document_id() -> str:
    return uuid.uuid4().hex


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class DocumentStore:
    """Interface shared by the store backends."""

    def list_documents(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Record]:
        raise NotImplementedError

    def create_document(self, collection: str, document_id: Optional[str], fields: Dict[str, Any]) -> Record:
        raise NotImplementedError

    def update_document(self, collection: str, document_id: str, fields: Dict[str, Any]) -> Record:
        raise NotImplementedError

    def delete_document(self, collection: str, document_id: str) -> None:
        raise NotImplementedError


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store with the same semantics as the hosted one."""

    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Record]] = {}

    def _collection(self, name: str) -> Dict[str, Record]:
        return self._collections.setdefault(name, {})

    def list_documents(self, collection, filters=None, order_by=None, descending=True):
        documents = [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if all(doc.get(key) == value for key, value in (filters or {}).items())
        ]
        if order_by:
            # Documents missing the ordering field sort last either way.
            present = [d for d in documents if d.get(order_by) is not None]
            missing = [d for d in documents if d.get(order_by) is None]
            present.sort(key=lambda d: d[order_by], reverse=descending)
            documents = present + missing
        return documents

    def create_document(self, collection, document_id, fields):
        documents = self._collection(collection)
        document_id = document_id or new_document_id()
        if document_id in documents:
            raise RemoteCallError(f"Document '{document_id}' already exists in '{collection}'")
        record = dict(copy.deepcopy(fields), id=document_id, created_at=_utc_now_iso())
        documents[document_id] = record
        return copy.deepcopy(record)

    def update_document(self, collection, document_id, fields):
        documents = self._collection(collection)
        if document_id not in documents:
            raise RemoteCallError(f"Document '{document_id}' not found in '{collection}'")
        documents[document_id].update(copy.deepcopy(fields))
        return copy.deepcopy(documents[document_id])

    def delete_document(self, collection, document_id):
        documents = self._collection(collection)
        if document_id not in documents:
            raise RemoteCallError(f"Document '{document_id}' not found in '{collection}'")
        del documents[document_id]


class SupabaseDocumentStore(DocumentStore):
    """Store backed by Supabase tables through the ``supabase`` client.

    Tables are expected to have a text ``id`` primary key and a
    ``created_at`` timestamp column defaulting to ``now()``.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> "SupabaseDocumentStore":
        if not url or not key:
            raise ConfigurationError(
                "Supabase is not configured. Set FINANCE_SUPABASE_URL and FINANCE_SUPABASE_KEY."
            )
        from supabase import create_client

        return cls(create_client(url, key))

    def _execute(self, action: str, collection: str, query) -> List[Record]:
        try:
            response = query.execute()
        except Exception as exc:
            raise RemoteCallError(f"{action} failed for '{collection}': {exc}", cause=exc) from exc
        return list(response.data or [])

    def list_documents(self, collection, filters=None, order_by=None, descending=True):
        query = self.client.table(collection).select("*")
        for key, value in (filters or {}).items():
            query = query.eq(key, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        return self._execute("List", collection, query)

    def create_document(self, collection, document_id, fields):
        payload = dict(fields, id=document_id or new_document_id())
        rows = self._execute("Create", collection, self.client.table(collection).insert(payload))
        if not rows:
            raise RemoteCallError(f"Create failed for '{collection}': no row returned")
        return rows[0]

    def update_document(self, collection, document_id, fields):
        query = self.client.table(collection).update(dict(fields)).eq("id", document_id)
        rows = self._execute("Update", collection, query)
        if not rows:
            raise RemoteCallError(f"Update failed for '{collection}': document '{document_id}' not found")
        return rows[0]

    def delete_document(self, collection, document_id):
        query = self.client.table(collection).delete().eq("id", document_id)
        self._execute("Delete", collection, query)
