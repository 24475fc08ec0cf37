"""
app/models/user.py

Purpose: User document model

- WhatsApp identity (unique key)
- Payment flag
- Current conversation state
- Collected onboarding profile
"""

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.flow.states import ConversationState, INITIAL_STATE, parse_state


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """
    A messaging contact and its onboarding progress.

    Field aliases are the keys stored in MongoDB.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    identity: str = Field(..., alias="whatsappNumber", description="Messaging identity")
    is_paid: bool = Field(default=False, alias="isPaid")
    conversation_state: ConversationState = Field(default=INITIAL_STATE, alias="conversationState")
    profile: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @field_validator("conversation_state", mode="before")
    @classmethod
    def coerce_state(cls, v):
        """Stored values outside the enum fall back to the initial state."""
        return parse_state(v)

    @classmethod
    def new(cls, identity: str) -> "User":
        """Default record for a first-contact identity."""
        return cls(identity=identity, created_at=utcnow())

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        data = {k: v for k, v in document.items() if k != "_id"}
        return cls.model_validate(data)

    def to_document(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        data["conversationState"] = self.conversation_state.value
        return data

    def mutable_fields(self) -> Dict[str, Any]:
        """Fields replaced by a save; identity and createdAt are excluded."""
        return {
            "isPaid": self.is_paid,
            "conversationState": self.conversation_state.value,
            "profile": dict(self.profile),
        }
