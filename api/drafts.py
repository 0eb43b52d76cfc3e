"""
API Endpoints for Draft Orders
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from linkdesk.client import OrderAPIClient, OrderAPIError
from linkdesk.drafts import DraftAutosaver

from api.dependencies import get_order_client

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/orders/drafts",
    tags=["Drafts"],
)


class AutosaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    draft_id: Optional[str] = Field(default=None, alias="draftId")
    order_data: Dict[str, Any] = Field(..., alias="orderData")


class AutosaveResponse(BaseModel):
    draft_id: Optional[str] = None
    status: str
    saved_at: Optional[str] = None


class DraftListResponse(BaseModel):
    drafts: List[Dict[str, Any]]
    total: int


@router.post("/autosave", response_model=AutosaveResponse)
async def autosave_draft(
    request: AutosaveRequest,
    client: OrderAPIClient = Depends(get_order_client),
):
    """
    Save a draft order now.

    The debounce lives with the editor; this endpoint is what it calls when
    the window closes. Creates the draft on first save.
    """
    saver = DraftAutosaver.from_settings(client, draft_id=request.draft_id)
    await saver.save(request.order_data)

    if saver.last_error is not None:
        raise HTTPException(status_code=502, detail=f"Failed to save draft: {saver.last_error}")

    return AutosaveResponse(
        draft_id=saver.draft_id,
        status=saver.status.value,
        saved_at=saver.last_saved_at.isoformat() if saver.last_saved_at else None,
    )


@router.get("", response_model=DraftListResponse)
async def list_drafts(client: OrderAPIClient = Depends(get_order_client)):
    try:
        drafts = await client.list_drafts()
    except (OrderAPIError, httpx.HTTPError) as e:
        logger.error(f"Failed to list drafts: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to list drafts: {e}")
    return DraftListResponse(drafts=drafts, total=len(drafts))
