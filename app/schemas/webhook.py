"""
app/schemas/webhook.py

Purpose: WAHA webhook payload schemas

- Validates the event envelope posted by the WAHA gateway
- Extracts session, sender and text for the message router
- Anything that is not an inbound text message is ignored
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional

from utils.whatsapp_utils import phone_from_chat_id

MESSAGE_EVENT = "message"


class WahaMessagePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from", description="Sender chat id, e.g. 27820000000@c.us")
    body: Optional[str] = None
    from_me: bool = Field(default=False, alias="fromMe")


class WahaWebhookEvent(BaseModel):
    """
    Envelope posted by WAHA for every session event.
    """
    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "event": "message",
                "session": "pizza-palace",
                "payload": {
                    "from": "27820000000@c.us",
                    "body": "menu"
                }
            }
        }
    )

    event: Optional[str] = None
    session: Optional[str] = None
    payload: Optional[WahaMessagePayload] = None

    @property
    def is_processable(self) -> bool:
        """Only inbound text messages with a session and a sender are routed."""
        return (
            self.event == MESSAGE_EVENT
            and bool(self.session)
            and self.payload is not None
            and not self.payload.from_me
            and bool(self.payload.from_)
            and bool((self.payload.body or "").strip())
        )

    @property
    def customer_phone(self) -> str:
        return phone_from_chat_id(self.payload.from_ if self.payload else None)

    @property
    def text(self) -> str:
        return (self.payload.body or "") if self.payload else ""
