"""
NoteLens Backend — Language Route Handlers
============================================

What:  JSON endpoints for the text operations, run through the user's
       interaction controller.
"""

from fastapi import APIRouter, Depends

from notelens.routes.interaction import get_controller
from notelens.schemas.analysis import (
    EntityResult,
    ModerationResult,
    SentimentResult,
    SummarizeRequest,
    SummaryResult,
    TextRequest,
    TranslateRequest,
    TranslationResult,
)
from notelens.schemas.note import ErrorResponse
from notelens.services.interaction import AIInteractionController

router = APIRouter(prefix="/api/language", tags=["Language"])

ERROR_RESPONSES = {
    400: {"description": "Empty or too long text", "model": ErrorResponse},
    401: {"description": "Not signed in", "model": ErrorResponse},
    502: {"description": "Remote function failed", "model": ErrorResponse},
    503: {"description": "AI service unavailable", "model": ErrorResponse},
}


@router.post("/sentiment", response_model=SentimentResult, responses=ERROR_RESPONSES,
             summary="Analyze sentiment")
async def analyze_sentiment(
    body: TextRequest,
    controller: AIInteractionController = Depends(get_controller),
) -> SentimentResult:
    return await controller.analyze_sentiment(body.text)


@router.post("/translate", response_model=TranslationResult, responses=ERROR_RESPONSES,
             summary="Translate text")
async def translate_text(
    body: TranslateRequest,
    controller: AIInteractionController = Depends(get_controller),
) -> TranslationResult:
    return await controller.translate_text(body.text, body.target_language)


@router.post("/moderate", response_model=ModerationResult, responses=ERROR_RESPONSES,
             summary="Moderate content")
async def moderate_content(
    body: TextRequest,
    controller: AIInteractionController = Depends(get_controller),
) -> ModerationResult:
    return await controller.moderate_content(body.text)


@router.post("/entities", response_model=EntityResult, responses=ERROR_RESPONSES,
             summary="Extract named entities")
async def extract_entities(
    body: TextRequest,
    controller: AIInteractionController = Depends(get_controller),
) -> EntityResult:
    return await controller.extract_entities(body.text)


@router.post("/summarize", response_model=SummaryResult, responses=ERROR_RESPONSES,
             summary="Summarize text")
async def summarize_text(
    body: SummarizeRequest,
    controller: AIInteractionController = Depends(get_controller),
) -> SummaryResult:
    return await controller.summarize_text(body.text, body.max_sentences)
