"""
Session-scoped chat message history stored in a search index.
"""

from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from vecsearch.index.search_index import SearchIndex
from vecsearch.models.index_schema import IndexSchema
from vecsearch.models.messages import ChatMessage, MessageRole
from vecsearch.query.filter import Filter
from vecsearch.query.filter_query import FilterQuery
from vecsearch.utils.logger import LoggerMixin
from vecsearch.utils.utils import current_timestamp

ID_FIELD = "entry_id"
ROLE_FIELD = "role"
CONTENT_FIELD = "content"
TOOL_FIELD = "tool_call_id"
TIMESTAMP_FIELD = "timestamp"
SESSION_FIELD = "session_tag"

RETURN_FIELDS = [ID_FIELD, SESSION_FIELD, ROLE_FIELD, CONTENT_FIELD, TOOL_FIELD, TIMESTAMP_FIELD]


def message_history_schema(name: str, prefix: Optional[str] = None) -> IndexSchema:
    """Hash-backed schema holding one row per message."""
    return IndexSchema.from_dict({
        "index": {"name": name, "prefix": prefix or name, "storage_type": "hash"},
        "fields": [
            {"name": ROLE_FIELD, "type": "tag"},
            {"name": CONTENT_FIELD, "type": "text"},
            {"name": TOOL_FIELD, "type": "tag"},
            {"name": TIMESTAMP_FIELD, "type": "numeric", "attrs": {"sortable": True}},
            {"name": SESSION_FIELD, "type": "tag"},
            {"name": ID_FIELD, "type": "tag"},
        ],
    })


class MessageHistory(LoggerMixin):
    """
    Ordered chat log for one or more sessions.

    Usage:
        history = MessageHistory("chat", redis_url="redis://localhost:6379")
        history.store("What is Redis?", "An in-memory data store.")
        context = history.get_recent(top_k=4)
    """

    def __init__(
        self,
        name: str,
        session_tag: Optional[str] = None,
        prefix: Optional[str] = None,
        redis_client: Optional[Any] = None,
        redis_url: Optional[str] = None,
        connection_kwargs: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the history, creating its index if missing.

        Args:
            name: Index name
            session_tag: Default session; a random one is generated when omitted
            prefix: Key prefix; defaults to ``name``
            redis_client: Existing redis-py client
            redis_url: URL used when no client is supplied
            connection_kwargs: Extra redis-py options used with ``redis_url``
        """
        self.name = name
        self.session_tag = session_tag or uuid4().hex
        self._index = SearchIndex(
            message_history_schema(name, prefix),
            redis_client=redis_client,
            redis_url=redis_url,
            connection_kwargs=connection_kwargs
        )
        self._index.create(overwrite=False)

    @property
    def index(self) -> SearchIndex:
        return self._index

    def _session_filter(self, session_tag: Optional[str] = None) -> Filter:
        return Filter.tag(SESSION_FIELD, session_tag or self.session_tag)

    # Writes

    def add_messages(
        self,
        messages: List[Dict[str, str]],
        session_tag: Optional[str] = None
    ) -> List[str]:
        """
        Append messages to a session in the given order.

        Args:
            messages: Dicts with ``role``, ``content`` and, for tool
                messages, ``tool_call_id``
            session_tag: Session to write to; defaults to the history's own

        Returns:
            Keys written

        Raises:
            ValueError: If a role is unknown or a tool message has no call id
        """
        session_tag = session_tag or self.session_tag
        documents = []
        last_timestamp = 0.0
        for message in messages:
            # strictly increasing timestamps keep entry ids unique and ordered
            timestamp = max(current_timestamp(), last_timestamp + 1e-6)
            last_timestamp = timestamp
            chat_message = ChatMessage(
                role=message.get(ROLE_FIELD),
                content=message.get(CONTENT_FIELD),
                session_tag=session_tag,
                timestamp=timestamp,
                tool_call_id=message.get(TOOL_FIELD),
            )
            documents.append(chat_message.to_document())

        keys = self._index.load(documents, id_field=ID_FIELD)
        self.logger.debug(f"Added {len(keys)} messages to session '{session_tag}'")
        return keys

    def add_message(self, message: Dict[str, str], session_tag: Optional[str] = None) -> List[str]:
        return self.add_messages([message], session_tag)

    def store(self, prompt: str, response: str, session_tag: Optional[str] = None) -> List[str]:
        """Record a user prompt followed by the model's response."""
        return self.add_messages(
            [
                {ROLE_FIELD: MessageRole.USER.value, CONTENT_FIELD: prompt},
                {ROLE_FIELD: MessageRole.LLM.value, CONTENT_FIELD: response},
            ],
            session_tag
        )

    # Reads

    @property
    def messages(self) -> List[Dict[str, str]]:
        """Every message of the default session, oldest first."""
        query = FilterQuery(
            filter_expression=self._session_filter(),
            return_fields=RETURN_FIELDS,
            sort_by=TIMESTAMP_FIELD,
            ascending=True
        )
        rows = self._index.paginate(query, page_size=100).all()
        return self._format(rows, as_text=False)

    def get_recent(
        self,
        top_k: int = 5,
        as_text: bool = False,
        raw: bool = False,
        session_tag: Optional[str] = None
    ) -> Union[List[str], List[Dict[str, Any]]]:
        """
        The ``top_k`` most recent messages, oldest first.

        Args:
            top_k: Number of messages to return
            as_text: Return only message contents
            raw: Return the stored rows unformatted
            session_tag: Session to read; defaults to the history's own

        Raises:
            ValueError: If top_k is negative
        """
        if not isinstance(top_k, int) or top_k < 0:
            raise ValueError("top_k must be an integer greater than or equal to 0")
        if top_k == 0:
            return []

        query = FilterQuery(
            filter_expression=self._session_filter(session_tag),
            return_fields=RETURN_FIELDS,
            num_results=top_k,
            sort_by=TIMESTAMP_FIELD,
            ascending=False
        )
        rows = list(reversed(self._index.query(query)))
        if raw:
            return rows
        return self._format(rows, as_text)

    @staticmethod
    def _format(rows: List[Dict[str, Any]], as_text: bool) -> Union[List[str], List[Dict[str, str]]]:
        if as_text:
            return [row[CONTENT_FIELD] for row in rows]
        formatted = []
        for row in rows:
            message = {ROLE_FIELD: row[ROLE_FIELD], CONTENT_FIELD: row[CONTENT_FIELD]}
            if row.get(TOOL_FIELD):
                message[TOOL_FIELD] = row[TOOL_FIELD]
            formatted.append(message)
        return formatted

    # Deletes

    def drop(self, id: Optional[str] = None) -> None:
        """Remove one message by entry id, or the most recent one when omitted."""
        if id is None:
            recent = self.get_recent(top_k=1, raw=True)
            if not recent:
                return
            id = recent[0][ID_FIELD]
        self._index.drop_documents(id)

    def clear(self) -> int:
        """Remove every stored message, keeping the index."""
        return self._index.clear()

    def delete(self) -> None:
        """Drop the index and every stored message."""
        self._index.delete(drop=True)
