"""GET /v1/suggestions - proactive questions tailored to the owner's records"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from finsight.api.v1.schemas import SuggestionsResponse
from finsight.api.dependencies import get_engine, get_owner_id, get_request_id
from finsight.config import settings
from finsight.domain.engine import ReasoningEngine
from finsight.domain.exceptions import DataUnavailable
from finsight.infrastructure.observability.metrics import record_store_failure

router = APIRouter()


@router.get("/suggestions", response_model=SuggestionsResponse)
def get_suggestions(
    request: Request,
    owner_id: str = Depends(get_owner_id),
    requested_owner: Optional[str] = Query(None, alias="owner_id", description="Must match the caller when given"),
    limit: Optional[int] = Query(None, ge=1, le=20, description="Maximum number of suggestions"),
    engine: ReasoningEngine = Depends(get_engine),
):
    """Personalized follow-up questions for the calling owner, each answerable by POST /v1/query"""
    request_id = get_request_id(request)

    if requested_owner is not None and requested_owner.strip() != owner_id:
        logging.warning("Suggestions requested for another owner", extra={"request_id": request_id})
        raise HTTPException(status_code=403, detail="Suggestions are only available for the calling owner")

    try:
        suggestions = engine.suggestions(owner_id, limit)
    except DataUnavailable as e:
        record_store_failure(settings.record_store_backend)
        logging.error(f"Record store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial records unavailable")

    return SuggestionsResponse(owner_id=owner_id, suggestions=suggestions)
