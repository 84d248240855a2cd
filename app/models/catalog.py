"""
app/models/catalog.py

Purpose: Catalog item document model

- Tenant-scoped, code-addressable product
- Code is unique within a tenant and matched case-insensitively
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CatalogItem(BaseModel):
    id: str
    tenant_id: str
    item_code: str
    name: str
    description: Optional[str] = None
    price: float = Field(..., ge=0)
    category: str = "Other"
    available: bool = True

    @field_validator("item_code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()
