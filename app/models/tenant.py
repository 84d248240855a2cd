"""
app/models/tenant.py

Purpose: Tenant document model

- One onboarded business account
- Business type selects the conversational handler
- Usage counters and free-form branding/config
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TenantStatus(str, Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


# Statuses allowed to receive and answer messages
SERVING_STATUSES = frozenset({TenantStatus.ACTIVE, TenantStatus.TRIAL})


class Tenant(BaseModel):
    id: str
    business_name: str
    business_type: str = Field(..., description="Handler tag, e.g. 'restaurant'")
    status: TenantStatus = TenantStatus.TRIAL
    whatsapp_session_id: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    monthly_message_count: int = 0
    monthly_message_limit: int = 1000
    branding: Dict[str, Any] = Field(default_factory=dict)
    config: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_serving(self) -> bool:
        return self.status in SERVING_STATUSES

    @property
    def limit_reached(self) -> bool:
        return self.monthly_message_count >= self.monthly_message_limit

    def emoji(self, default: str) -> str:
        return self.branding.get("emoji") or default

    def summary(self) -> Dict[str, Any]:
        """Public subset returned to callers of the router."""
        return {
            "id": self.id,
            "business_name": self.business_name,
            "phone_number": self.phone_number,
        }
