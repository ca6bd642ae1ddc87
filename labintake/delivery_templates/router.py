"""Delivery template endpoints"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..dependencies import get_template_repository, require_actor
from ..domain.submissions.models import Actor
from ..infrastructure.repositories.delivery_template_repository import DeliveryTemplateRepository
from .schemas import DeliveryTemplateCreate, DeliveryTemplateResponse, DeliveryTemplateSaveResponse

router = APIRouter(prefix="/delivery-templates", tags=["Delivery Templates"])


@router.get("", response_model=List[DeliveryTemplateResponse])
async def list_templates(
    owner_id: str = Query(..., min_length=1),
    templates: DeliveryTemplateRepository = Depends(get_template_repository),
):
    return await templates.list_for_owner(owner_id)


@router.post("", response_model=DeliveryTemplateSaveResponse)
async def save_template(
    body: DeliveryTemplateCreate,
    response: Response,
    actor: Actor = Depends(require_actor),
    templates: DeliveryTemplateRepository = Depends(get_template_repository),
):
    """Save an address unless the owner already has an identical one.

    Returns 201 when a template was created, 200 when an existing one matched.
    """
    try:
        template, created = await templates.save_if_absent(
            body.owner_id, body.address.lines(), name=body.address.name
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return DeliveryTemplateSaveResponse(
        template=DeliveryTemplateResponse.model_validate(template),
        created=created,
    )
