"""Pydantic schemas for delivery templates"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..submissions.schemas import ShipFromAddress


class DeliveryTemplateCreate(BaseModel):
    owner_id: str = Field(..., min_length=1, max_length=200)
    address: ShipFromAddress


class DeliveryTemplateResponse(BaseModel):
    id: int
    owner_id: str
    name: Optional[str] = None
    address_line1: str
    address_line2: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""

    model_config = ConfigDict(from_attributes=True)


class DeliveryTemplateSaveResponse(BaseModel):
    template: DeliveryTemplateResponse
    created: bool
