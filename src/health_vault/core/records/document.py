# ============================================================================
# src/health_vault/core/records/document.py
# ============================================================================
"""
Persisted Entities
- UploadedFile: a file as submitted to the upload flow
- MediDocument: one confirmed upload with its extracted record
- Profile: the single user profile
- ChatMessage / Conversation: stored chat history
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import base64
import uuid

from .enums import FileType
from .extracted_record import ExtractedRecord, record_from_dict


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class UploadedFile:
    """A file handed to the upload flow, before any processing."""
    file_name: str
    mime_type: str
    data: bytes

    @property
    def file_type(self) -> FileType:
        return FileType.from_mime_type(self.mime_type)


@dataclass
class MediDocument:
    """
    A document the user confirmed through the upload flow.

    uploaded_at and raw_text never change after creation. document_date and
    extracted are replaced when the user re-edits the record.
    """
    file_name: str
    file_type: FileType
    file_mime_type: str
    document_date: str
    raw_text: str
    extracted: ExtractedRecord
    file_data: bytes = b""
    id: str = field(default_factory=new_id)
    uploaded_at: str = field(default_factory=utc_now_iso)

    @property
    def source_date(self) -> str:
        """Date used when citing this document."""
        return self.document_date or self.uploaded_at

    def to_dict(self, include_file_data: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "file_name": self.file_name,
            "file_type": self.file_type.value,
            "file_mime_type": self.file_mime_type,
            "uploaded_at": self.uploaded_at,
            "document_date": self.document_date,
            "raw_text": self.raw_text,
            "extracted": self.extracted.to_dict(),
        }
        if include_file_data:
            data["file_data"] = base64.b64encode(self.file_data).decode("ascii")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], file_data: Optional[bytes] = None) -> "MediDocument":
        if file_data is None:
            encoded = data.get("file_data")
            file_data = base64.b64decode(encoded) if encoded else b""
        return cls(
            id=data["id"],
            file_name=data["file_name"],
            file_type=FileType(data.get("file_type", FileType.IMAGE.value)),
            file_mime_type=data.get("file_mime_type", ""),
            uploaded_at=data["uploaded_at"],
            document_date=data.get("document_date", ""),
            raw_text=data.get("raw_text", ""),
            extracted=record_from_dict(data.get("extracted")),
            file_data=file_data,
        )


@dataclass
class Profile:
    age: Optional[int] = None
    gender: Optional[str] = None
    name: Optional[str] = None
    known_conditions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "age": self.age,
            "gender": self.gender,
            "known_conditions": list(self.known_conditions),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Profile":
        return cls(
            name=data.get("name"),
            age=data.get("age"),
            gender=data.get("gender"),
            known_conditions=list(data.get("known_conditions") or []),
        )


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            id=data["id"],
            role=data["role"],
            content=data.get("content", ""),
            timestamp=data.get("timestamp", ""),
        )


@dataclass
class Conversation:
    title: str = "New conversation"
    messages: List[ChatMessage] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    TITLE_LENGTH = 40

    def add_message(self, role: str, content: str) -> ChatMessage:
        """Append a message, naming the conversation after its first question."""
        message = ChatMessage(role=role, content=content)
        if role == "user" and not any(m.role == "user" for m in self.messages):
            title = content.strip().replace("\n", " ")
            if len(title) > self.TITLE_LENGTH:
                title = title[:self.TITLE_LENGTH].rstrip() + "..."
            self.title = title or self.title
        self.messages.append(message)
        self.updated_at = message.timestamp
        return message

    def history(self) -> List[Dict[str, str]]:
        """Messages in the {role, content} shape the chat request takes."""
        return [{"role": m.role, "content": m.content} for m in self.messages]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )
