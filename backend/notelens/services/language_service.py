"""
NoteLens Backend — Language Service
=====================================

What:  Text AI operations: sentiment, translation, moderation, entity
       extraction, summarization.
How:   validate → call remote function → normalize/enrich the response
       (sentiment description from score, entities partitioned by type).
Who:   Called by the AI interaction controller.

No local caching: calling twice with the same text makes two remote calls.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError

from notelens.exceptions import MalformedResponseError, ValidationError
from notelens.schemas.analysis import (
    EntitiesResponse,
    Entity,
    EntityResult,
    ModerationResponse,
    ModerationResult,
    SentimentResponse,
    SentimentResult,
    SummaryResponse,
    SummaryResult,
    TranslateResponse,
    TranslationResult,
)
from notelens.session import BackendSession

logger = logging.getLogger(__name__)


def sentiment_description(score: float) -> str:
    """Qualitative label for a sentiment score; boundaries fall to the lower bracket."""
    if score > 0.5:
        return "Muito Positivo"
    if score > 0.1:
        return "Positivo"
    if score > -0.1:
        return "Neutro"
    if score > -0.5:
        return "Negativo"
    return "Muito Negativo"


def filter_entities_by_type(entities: Optional[List[Entity]], entity_type: str) -> List[Entity]:
    if not entities:
        return []
    return [entity for entity in entities if entity.type == entity_type]


class LanguageService:
    """Language request adapter bound to one backend session."""

    def __init__(self, session: BackendSession):
        self.session = session
        self.settings = session.settings

    def validate_text(self, text: Optional[str]) -> bool:
        """
        Raises:
            ValidationError: text empty/whitespace-only or longer than max_text_length.
        """
        if not text or not text.strip():
            raise ValidationError(message="Text is empty", field="text")
        if len(text) > self.settings.max_text_length:
            raise ValidationError(
                message=f"Text is too long. Maximum {self.settings.max_text_length} characters",
                field="text",
                context={"max_length": self.settings.max_text_length, "length": len(text)},
            )
        return True

    async def _invoke(self, function: str, payload: Dict[str, Any], schema):
        self.validate_text(payload["text"])
        raw = await self.session.functions.call(
            function, payload, id_token=self.session.id_token
        )
        try:
            return schema.model_validate(raw)
        except SchemaValidationError as e:
            raise MalformedResponseError(
                function=function,
                context={"errors": e.error_count()},
            ) from e

    async def analyze_sentiment(self, text: str) -> SentimentResult:
        """Sentiment of `text`; a missing score counts as 0, so it reads "Neutro"."""
        try:
            response = await self._invoke(
                self.settings.fn_analyze_sentiment, {"text": text}, SentimentResponse
            )
            return SentimentResult(
                score=response.score,
                magnitude=response.magnitude,
                sentiment=response.sentiment,
                description=sentiment_description(response.score),
            )
        except Exception as e:
            logger.error("Sentiment analysis failed: %s", str(e))
            raise

    async def translate_text(self, text: str, target_language: str = "en") -> TranslationResult:
        try:
            response = await self._invoke(
                self.settings.fn_translate_text,
                {"text": text, "targetLanguage": target_language},
                TranslateResponse,
            )
            return TranslationResult(
                original_text=text,
                translated_text=response.translated_text,
                target_language=target_language,
                source_language=response.source_language,
            )
        except Exception as e:
            logger.error("Translation failed: %s", str(e))
            raise

    async def moderate_content(self, text: str) -> ModerationResult:
        try:
            response = await self._invoke(
                self.settings.fn_moderate_content, {"text": text}, ModerationResponse
            )
            return ModerationResult(
                is_safe=response.is_safe,
                categories=response.categories,
                has_inappropriate_content=not response.is_safe,
            )
        except Exception as e:
            logger.error("Content moderation failed: %s", str(e))
            raise

    async def extract_entities(self, text: str) -> EntityResult:
        """Named entities, plus people/places/organizations partitions in original order."""
        try:
            response = await self._invoke(
                self.settings.fn_extract_entities, {"text": text}, EntitiesResponse
            )
            return EntityResult(
                entities=response.entities,
                people=filter_entities_by_type(response.entities, "PERSON"),
                places=filter_entities_by_type(response.entities, "LOCATION"),
                organizations=filter_entities_by_type(response.entities, "ORGANIZATION"),
            )
        except Exception as e:
            logger.error("Entity extraction failed: %s", str(e))
            raise

    async def summarize_text(self, text: str, max_sentences: int = 3) -> SummaryResult:
        try:
            response = await self._invoke(
                self.settings.fn_summarize_text,
                {"text": text, "maxSentences": max_sentences},
                SummaryResponse,
            )
            return SummaryResult(
                summary=response.summary,
                original_length=len(text),
                summary_length=len(response.summary),
            )
        except Exception as e:
            logger.error("Summarization failed: %s", str(e))
            raise
