"""
API Endpoints for Bulk Analysis Qualification

Handles:
1. Qualification status updates (validated before they are forwarded)
2. DataForSEO analysis status and result summaries
"""

import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from linkdesk.client import OrderAPIClient, OrderAPIError
from linkdesk.qualification import (
    SOURCE_DROPDOWN,
    InvalidTransitionError,
    QualificationService,
    QualificationStatus,
)

from api.dependencies import get_order_client

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/clients",
    tags=["Qualification"],
)


# =============================================================================
# REQUEST / RESPONSE MODELS
# =============================================================================

class StatusUpdateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: QualificationStatus
    current_status: QualificationStatus = Field(
        default=QualificationStatus.PENDING, alias="currentStatus"
    )
    is_manual: bool = Field(default=False, alias="isManual")
    source: str = SOURCE_DROPDOWN
    notes: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")


class StatusUpdateResponse(BaseModel):
    domain_id: str
    previous_status: str
    qualification_status: str


class RankedKeywordResponse(BaseModel):
    keyword: str
    position: int
    search_volume: int
    url: str


class DataForSeoResponse(BaseModel):
    domain_id: str
    analyzed: bool
    last_analyzed: Optional[str] = None
    total_rankings: int
    avg_position: float
    top_keywords: List[RankedKeywordResponse]


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.put(
    "/{client_id}/bulk-analysis/{domain_id}/status",
    response_model=StatusUpdateResponse,
)
async def update_domain_status(
    client_id: str,
    domain_id: str,
    request: StatusUpdateRequest,
    client: OrderAPIClient = Depends(get_order_client),
):
    """Move a domain to a new qualification status."""
    service = QualificationService(client, client_id)
    try:
        new_status = await service.update_status_by_id(
            domain_id,
            request.current_status,
            request.status,
            is_manual=request.is_manual,
            user_id=request.user_id,
            notes=request.notes,
            source=request.source,
        )
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (OrderAPIError, httpx.HTTPError) as e:
        logger.error(f"Failed to update status for domain {domain_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to update status: {e}")

    return StatusUpdateResponse(
        domain_id=domain_id,
        previous_status=request.current_status.value,
        qualification_status=new_status.value,
    )


@router.get(
    "/{client_id}/bulk-analysis/{domain_id}/dataforseo",
    response_model=DataForSeoResponse,
)
async def get_dataforseo_summary(
    client_id: str,
    domain_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    client: OrderAPIClient = Depends(get_order_client),
):
    """Whether the domain was analyzed, plus a summary of its stored rankings."""
    service = QualificationService(client, client_id)
    try:
        check = await service.check_analyzed(domain_id)
        analyzed = bool(check.get("analyzed"))
        summary = await service.load_results(domain_id, limit=limit) if analyzed else None
    except (OrderAPIError, httpx.HTTPError) as e:
        logger.error(f"Failed to load DataForSEO results for domain {domain_id}: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to load results: {e}")

    return DataForSeoResponse(
        domain_id=domain_id,
        analyzed=analyzed,
        last_analyzed=check.get("lastAnalyzed"),
        total_rankings=summary.total_rankings if summary else 0,
        avg_position=round(summary.avg_position, 1) if summary else 0.0,
        top_keywords=[
            RankedKeywordResponse(
                keyword=k.keyword,
                position=k.position,
                search_volume=k.search_volume,
                url=k.url,
            )
            for k in (summary.top_keywords if summary else [])
        ],
    )
