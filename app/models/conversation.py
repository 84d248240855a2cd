"""
app/models/conversation.py

Purpose: Conversation state document model

- One logical state per (tenant_id, customer_phone)
- current_step is a ConversationStep value
- state_data is step-scoped (pending items + total while awaiting an address)
"""

from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from app.flow.states import ConversationStep, coerce_step


class ConversationState(BaseModel):
    current_step: ConversationStep = ConversationStep.IDLE
    state_data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("current_step", mode="before")
    @classmethod
    def known_step(cls, v):
        if isinstance(v, ConversationStep):
            return v
        return coerce_step(v)
