# scheduler/infrastructure/memory/memory_ops.py
"""
In-process document service.

Implements the same document contract as the Google Sheets service, keeping
collections in dictionaries. Used for local demos (DOCUMENT_BACKEND=memory)
and tests.

Change notifications are queued when a document is created or deleted. They are
delivered right after the mutation when auto_notify is on, otherwise on
flush_notifications(). A queued notification is delivered to the listener that
was registered when the change happened, even if it has unsubscribed since,
the same way an event already on the wire still arrives.
"""

import copy
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from scheduler.core.errors import NotFound, RemoteUnavailable
from scheduler.utils.config import collection_channel
from scheduler.utils.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

EventListener = Callable[[Dict[str, Any]], None]


class MemoryDocumentService:
    """
    Dictionary-backed document service with queued change notifications.
    """

    def __init__(
        self,
        database_id: str,
        collections: Optional[List[str]] = None,
        auto_notify: bool = True,
    ):
        self.database_id = database_id
        self.auto_notify = auto_notify
        self.available = True
        self.calls: List[Tuple[str, ...]] = []
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: {} for name in (collections or [])
        }
        self._listeners: Dict[str, List[EventListener]] = {}
        self._pending: Deque[Tuple[EventListener, Dict[str, Any]]] = deque()

    # -------------------------------------------------------------------------
    # Collection management
    # -------------------------------------------------------------------------

    def add_collection(self, collection_id: str) -> None:
        self._collections.setdefault(collection_id, {})

    def _collection(self, collection_id: str) -> Dict[str, Dict[str, Any]]:
        if not self.available:
            raise RemoteUnavailable(
                f"Document service for database '{self.database_id}' is unavailable"
            )
        if collection_id not in self._collections:
            raise NotFound(
                f"Collection '{collection_id}' not found in database '{self.database_id}'"
            )
        return self._collections[collection_id]

    # -------------------------------------------------------------------------
    # Document contract
    # -------------------------------------------------------------------------

    def list_documents(
        self, collection_id: str, order_by: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        self.calls.append(("list", collection_id))
        documents = [
            copy.deepcopy(doc) for doc in self._collection(collection_id).values()
        ]
        if order_by:
            documents.sort(key=lambda doc: str(doc.get(order_by, "")))
        logger.debug(f"Listed {len(documents)} documents from {collection_id}")
        return documents

    def create_document(
        self, collection_id: str, document_id: str, payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        self.calls.append(("create", collection_id, document_id))
        documents = self._collection(collection_id)
        if document_id in documents:
            raise RemoteUnavailable(f"Document id already exists: {document_id}")

        document = {"id": document_id, **copy.deepcopy(payload)}
        documents[document_id] = document
        logger.info(f"Created document {document_id} in {collection_id}")
        self._queue_change(collection_id, "create", document_id)
        return copy.deepcopy(document)

    def delete_document(self, collection_id: str, document_id: str) -> None:
        self.calls.append(("delete", collection_id, document_id))
        documents = self._collection(collection_id)
        if document_id not in documents:
            raise NotFound(f"Document '{document_id}' not found in {collection_id}")

        del documents[document_id]
        logger.info(f"Deleted document {document_id} from {collection_id}")
        self._queue_change(collection_id, "delete", document_id)

    def subscribe(self, channel: str, on_event: EventListener) -> Callable[[], None]:
        self.calls.append(("subscribe", channel))
        listeners = self._listeners.setdefault(channel, [])
        listeners.append(on_event)
        logger.info(f"Listener subscribed to {channel}")

        subscribed = [True]

        def unsubscribe() -> None:
            if subscribed[0] and on_event in listeners:
                listeners.remove(on_event)
                logger.info(f"Listener unsubscribed from {channel}")
            subscribed[0] = False

        return unsubscribe

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    def channel_for(self, collection_id: str) -> str:
        return collection_channel(self.database_id, collection_id)

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, []))

    @property
    def pending_notifications(self) -> int:
        return len(self._pending)

    def _queue_change(self, collection_id: str, action: str, document_id: str) -> None:
        channel = self.channel_for(collection_id)
        event = {
            "channel": channel,
            "events": [f"{channel}.{document_id}.{action}"],
            "document_id": document_id,
        }
        for listener in list(self._listeners.get(channel, [])):
            self._pending.append((listener, event))

        if self.auto_notify:
            self.flush_notifications()

    def emit_external_change(self, collection_id: str, document_id: str = "*") -> None:
        """Simulate a change made by another client."""
        self._queue_change(collection_id, "update", document_id)

    def flush_notifications(self) -> int:
        """
        Deliver queued notifications in order.

        Returns:
            Number of notifications delivered
        """
        delivered = 0
        while self._pending:
            listener, event = self._pending.popleft()
            listener(event)
            delivered += 1
        return delivered

    def seed(self, collection_id: str, documents: List[Dict[str, Any]]) -> None:
        """Load documents directly, without notifications."""
        self.add_collection(collection_id)
        for document in documents:
            self._collections[collection_id][document["id"]] = copy.deepcopy(document)
