"""
NoteLens Backend — AI Analysis Schemas
========================================

What:  Pydantic models for AI inputs, remote function responses and the
       normalized results returned to callers.
How:   Three groups:
         1. Inputs:     ImageFile, UploadedAsset, text request bodies
         2. Remote:     one response schema per callable function; missing or
                        null fields fall back to the schema defaults
         3. Results:    one typed AnalysisResult variant per operation,
                        discriminated by the `kind` field
Who:   Vision/language services build results; the interaction controller
       stores them; routes serialize them.
"""

import mimetypes
from pathlib import Path
from typing import Annotated, Any, List, Literal, Optional, Union

import aiofiles
from pydantic import BaseModel, ConfigDict, Field, model_validator


# ══════════════════════════════════════════════════════════════════════════
# Inputs
# ══════════════════════════════════════════════════════════════════════════


class ImageFile(BaseModel):
    """
    A binary image payload as received from the user.

    content_type is the declared MIME type (as a browser reports it);
    size is derived from the payload.
    """
    name: str = Field(description="Original file name")
    content_type: str = Field(description="Declared MIME type, e.g. image/jpeg")
    data: bytes = Field(repr=False, description="Raw image bytes")

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    async def from_path(cls, path: str, content_type: Optional[str] = None) -> "ImageFile":
        """Load a local image; the MIME type is guessed from the extension when omitted."""
        file_path = Path(path)
        async with aiofiles.open(file_path, "rb") as f:
            data = await f.read()
        if content_type is None:
            content_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        return cls(name=file_path.name, content_type=content_type, data=data)


class UploadedAsset(BaseModel):
    """Result of one image upload; owned by the adapter call that produced it."""
    url: str
    file_name: str


class TextRequest(BaseModel):
    text: str = Field(description="Text to analyze (max 5000 characters)")


class TranslateRequest(TextRequest):
    target_language: str = Field(default="en", description="Target language code")


class SummarizeRequest(TextRequest):
    max_sentences: int = Field(default=3, ge=1, le=50)


# ══════════════════════════════════════════════════════════════════════════
# Remote Response Schemas
# ══════════════════════════════════════════════════════════════════════════


class NullsAsDefaults(BaseModel):
    """Drops null values before validation so that the field defaults apply."""

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class RemoteResponse(NullsAsDefaults):
    """Base for callable-function responses; keys are camelCase on the wire."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Label(NullsAsDefaults):
    """One image label; the remote side may attach extra keys (mid, topicality)."""
    model_config = ConfigDict(extra="allow")

    description: str = ""
    score: float = 0.0


class Entity(NullsAsDefaults):
    """One extracted entity; only `type` is interpreted locally."""
    model_config = ConfigDict(extra="allow")

    type: str = ""
    name: Optional[str] = None


class ClassifyImageResponse(RemoteResponse):
    labels: List[Label] = Field(default_factory=list)


class DetectTextResponse(RemoteResponse):
    text: str = ""


class AnalyzeImageResponse(RemoteResponse):
    labels: List[Label] = Field(default_factory=list)
    faces: List[Any] = Field(default_factory=list)
    objects: List[Any] = Field(default_factory=list)
    colors: Optional[Any] = None


class SentimentResponse(RemoteResponse):
    score: float = 0.0
    magnitude: float = 0.0
    sentiment: str = "neutro"


class TranslateResponse(RemoteResponse):
    translated_text: str = Field(default="", alias="translatedText")
    source_language: str = Field(default="auto", alias="sourceLanguage")


class ModerationResponse(RemoteResponse):
    is_safe: bool = Field(default=False, alias="isSafe")
    categories: List[Any] = Field(default_factory=list)


class EntitiesResponse(RemoteResponse):
    entities: List[Entity] = Field(default_factory=list)


class SummaryResponse(RemoteResponse):
    summary: str = ""


# ══════════════════════════════════════════════════════════════════════════
# Results (AnalysisResult variants)
# ══════════════════════════════════════════════════════════════════════════


class LabelResult(BaseModel):
    kind: Literal["labels"] = "labels"
    labels: List[Label]
    image_url: str


class TextResult(BaseModel):
    kind: Literal["text"] = "text"
    text: str
    image_url: str


class ImageAnalysisResult(BaseModel):
    kind: Literal["image_analysis"] = "image_analysis"
    labels: List[Label]
    faces: List[Any]
    objects: List[Any]
    colors: Optional[Any] = None
    image_url: str


class FaceDetectionResult(BaseModel):
    kind: Literal["faces"] = "faces"
    faces: List[Any]
    face_count: int
    image_url: str


class SentimentResult(BaseModel):
    kind: Literal["sentiment"] = "sentiment"
    score: float
    magnitude: float
    sentiment: str
    description: str


class TranslationResult(BaseModel):
    kind: Literal["translation"] = "translation"
    original_text: str
    translated_text: str
    source_language: str
    target_language: str


class ModerationResult(BaseModel):
    kind: Literal["moderation"] = "moderation"
    is_safe: bool
    categories: List[Any]
    has_inappropriate_content: bool


class EntityResult(BaseModel):
    kind: Literal["entities"] = "entities"
    entities: List[Entity]
    people: List[Entity]
    places: List[Entity]
    organizations: List[Entity]


class SummaryResult(BaseModel):
    kind: Literal["summary"] = "summary"
    summary: str
    original_length: int
    summary_length: int


AnalysisResult = Annotated[
    Union[
        LabelResult,
        TextResult,
        ImageAnalysisResult,
        FaceDetectionResult,
        SentimentResult,
        TranslationResult,
        ModerationResult,
        EntityResult,
        SummaryResult,
    ],
    Field(discriminator="kind"),
]


class InteractionState(BaseModel):
    """
    Busy/error/result status of the last operation run through a controller.

    Frozen: the controller replaces the whole state on every transition.
    """
    model_config = ConfigDict(frozen=True)

    loading: bool = False
    error: Optional[str] = None
    result: Optional[AnalysisResult] = None
