"""
Chat message models used by the message history extension.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

from vecsearch.utils.utils import current_timestamp


class MessageRole(str, Enum):
    """Allowed message roles."""
    SYSTEM = "system"
    USER = "user"
    LLM = "llm"
    TOOL = "tool"


class ChatMessage(BaseModel):
    """A single stored chat message."""
    entry_id: Optional[str] = None
    role: MessageRole
    content: str
    session_tag: str
    timestamp: float = Field(default_factory=current_timestamp)
    tool_call_id: Optional[str] = None

    @model_validator(mode='after')
    def fill_entry_id(self):
        if self.entry_id is None:
            self.entry_id = f"{self.session_tag}:{self.timestamp}"
        return self

    @model_validator(mode='after')
    def tool_messages_need_call_id(self):
        if self.role == MessageRole.TOOL and not self.tool_call_id:
            raise ValueError('Tool messages require a tool_call_id')
        return self

    def to_document(self) -> Dict[str, Any]:
        """Flatten into a hash-storable document."""
        return self.model_dump(mode='json', exclude_none=True)
