"""POST /v1/query - answer a natural-language finance question"""

import time
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from finsight.api.v1.schemas import EngineResponseSchema, QueryRequest
from finsight.api.dependencies import get_engine, get_owner_id, get_request_id
from finsight.config import settings
from finsight.domain.engine import ReasoningEngine
from finsight.domain.exceptions import DataUnavailable
from finsight.infrastructure.observability.metrics import record_query, record_store_failure
from finsight.infrastructure.observability.logging import log_query

router = APIRouter()


@router.post("/query", response_model=EngineResponseSchema)
def answer_query(
    request_body: QueryRequest,
    request: Request,
    owner_id: str = Depends(get_owner_id),
    engine: ReasoningEngine = Depends(get_engine),
):
    """
    Answer one question from the caller's own records.

    Flow:
    1. Classify the text (with history for short follow-ups)
    2. Aggregate the records the intent needs
    3. Run the intent's calculator
    4. Compose text, response type, quick actions and sources
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        response = engine.answer(
            owner_id,
            request_body.text,
            history=[message.to_domain() for message in request_body.history],
        )

    except DataUnavailable as e:
        record_store_failure(settings.record_store_backend)
        logging.error(f"Record store error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Financial records unavailable")

    except Exception as e:
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Record metrics and logs
    duration_ms = (time.time() - start_time) * 1000
    record_query(response.intent.value, response.type.value)
    log_query(request_id, owner_id, response.intent.value, response.type.value, duration_ms)

    return EngineResponseSchema.from_domain(response)
