"""
app/api/deps.py

Purpose: FastAPI dependencies shared by the routers

- Router and gateway client live on app.state (built in the lifespan)
- Admin key check for the control surface
"""

from typing import Optional

from fastapi import Header, HTTPException, Request

from app.core.config import settings
from app.flow.dispatcher import MessageRouter
from app.services.waha_service import WahaService


def get_message_router(request: Request) -> MessageRouter:
    router = getattr(request.app.state, "message_router", None)
    if router is None:
        raise HTTPException(status_code=503, detail="Message router not initialized")
    return router


def get_waha_service(request: Request) -> WahaService:
    service = getattr(request.app.state, "waha_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="WhatsApp gateway not initialized")
    return service


async def require_admin_key(x_admin_key: Optional[str] = Header(default=None)):
    """Admin routes are open when ADMIN_API_KEY is unset (development only)."""
    if settings.ADMIN_API_KEY and x_admin_key != settings.ADMIN_API_KEY:
        raise HTTPException(status_code=401, detail="Invalid admin key")
