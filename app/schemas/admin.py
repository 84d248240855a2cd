"""
app/schemas/admin.py

Purpose: Request bodies for the admin control surface
"""

from pydantic import BaseModel, Field

from app.models.order import OrderStatus


class OrderStatusUpdate(BaseModel):
    tenant_id: str
    status: OrderStatus
    notify: bool = Field(default=True, description="Send the status notification to the customer")


class NotificationRequest(BaseModel):
    tenant_id: str
    customer_phone: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
