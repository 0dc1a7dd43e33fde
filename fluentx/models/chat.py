"""Models for classroom chat events."""

from typing import Literal, Optional

from pydantic import Field

from .common import WireModel

FileKind = Literal["image", "file"]


class FileAttachment(WireModel):
    """Descriptor for a file shared in chat (the file itself lives on the server)."""
    url: str = Field(..., description="Download URL")
    name: str = Field(..., description="Original file name")
    type: FileKind = Field("file", description="'image' renders inline, 'file' as a link")
    size: Optional[int] = Field(None, ge=0, description="Size in bytes")


class ChatMessage(WireModel):
    """A chat message as relayed by the server (`chat:message`, `chat:history`)."""
    id: str
    session_id: str = ""
    sender_id: str
    sender_type: Literal["tutor", "student"]
    text: str = ""
    timestamp: str
    correction: Optional[str] = Field(None, description="Tutor's corrected version of the text")
    is_system_message: bool = False
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[FileKind] = None
    file_size: Optional[int] = None

    @property
    def attachment(self) -> Optional[FileAttachment]:
        if not self.file_url:
            return None
        return FileAttachment(
            url=self.file_url,
            name=self.file_name or "",
            type=self.file_type or "file",
            size=self.file_size,
        )


class SendMessage(WireModel):
    """Outbound `chat:send` payload."""
    session_id: str
    text: str
    correction: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[FileKind] = None
    file_size: Optional[int] = None

    @classmethod
    def build(
        cls,
        session_id: str,
        text: str,
        correction: Optional[str] = None,
        attachment: Optional[FileAttachment] = None,
    ) -> "SendMessage":
        fields = {}
        if attachment is not None:
            fields = {
                "file_url": attachment.url,
                "file_name": attachment.name,
                "file_type": attachment.type,
                "file_size": attachment.size,
            }
        return cls(session_id=session_id, text=text, correction=correction, **fields)


class TypingIndicator(WireModel):
    """Inbound `chat:typing` payload."""
    user_id: str
    is_typing: bool
