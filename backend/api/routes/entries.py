"""
Entry API Routes

Endpoint for free-text entries.
"""

from fastapi import APIRouter, HTTPException

from api.schemas.requests import TextEntryRequest
from api.schemas.responses import TextEntryResponse
from core.dataset_store import StorageUnavailableError, dataset_store
from core.logging_config import upload_logger as logger
from extraction.text_processor import TextValidationError, text_processor


router = APIRouter()


@router.post("/entries/text", response_model=TextEntryResponse)
async def create_text_entry(request: TextEntryRequest) -> TextEntryResponse:
    """
    Process a free-text entry and store it as a dataset.

    Extraction uses the Ollama backend when reachable and the local
    rule-based extractor otherwise.
    """
    try:
        text = text_processor.validate_text(request.text)
    except TextValidationError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e))

    result = await text_processor.process(text)
    dataset = result.to_dataset(name=request.name)

    try:
        dataset_store.save(dataset)
    except StorageUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    logger.info(f"Stored text entry {dataset.id} ({result.domain.value})")
    return TextEntryResponse(
        dataset_id=dataset.id,
        domain=result.domain,
        metrics=result.extracted.metrics,
        entities=result.extracted.entities,
        sentiment=result.extracted.sentiment.value,
        confidence=result.extracted.confidence,
        insights=result.insights,
        recommendations=result.recommendations,
        ai_response=result.summary_reply(),
    )
