"""
Session Models - Sessions and the messages exchanged inside them.
"""

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Sender = Literal["user", "bot"]
SessionStatus = Literal["active", "ended"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """One turn in a session, authored by the user or the bot."""
    model_config = ConfigDict(extra="forbid")

    text: str
    sender: Sender
    timestamp: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _user_text_not_blank(self) -> "Message":
        if self.sender == "user" and not self.text.strip():
            raise ValueError("user message text must not be empty")
        return self

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Session(BaseModel):
    """A bounded conversation between a user and the assistant."""
    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    messages: List[Message] = Field(default_factory=list)
    status: SessionStatus = "active"
    summary: Optional[str] = None
    ended_at: Optional[datetime] = None
    related_sessions: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def _check_invariants(self) -> "Session":
        ended = self.status == "ended"
        if ended != (self.summary is not None) or ended != (self.ended_at is not None):
            raise ValueError("summary and ended_at must be set exactly when status is 'ended'")
        for earlier, later in zip(self.messages, self.messages[1:]):
            if later.timestamp < earlier.timestamp:
                raise ValueError("message timestamps must be non-decreasing")
        return self

    @property
    def is_ended(self) -> bool:
        return self.status == "ended"

    @property
    def pending_message(self) -> Optional[Message]:
        """Trailing user message whose bot reply was never stored."""
        if self.messages and self.messages[-1].sender == "user":
            return self.messages[-1]
        return None

    def next_timestamp(self) -> datetime:
        """Current time, clamped so stored order stays chronological."""
        now = utc_now()
        if self.messages and self.messages[-1].timestamp > now:
            return self.messages[-1].timestamp
        return now
