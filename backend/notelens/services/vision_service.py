"""
NoteLens Backend — Vision Service
===================================

What:  Image AI operations: labeling, OCR, full analysis, face detection.
How:   Every operation runs the same sequential chain:
         validate → upload to blob storage → call remote function with
         {imageUrl} → normalize the response into a typed result
Who:   Called by the AI interaction controller.

Validation happens before any network activity. Failures at any step are
logged and re-raised unchanged; nothing is retried at this layer.
"""

import logging
import time
from typing import List, Optional

from pydantic import ValidationError as SchemaValidationError

from notelens.exceptions import MalformedResponseError, ValidationError
from notelens.schemas.analysis import (
    AnalyzeImageResponse,
    ClassifyImageResponse,
    DetectTextResponse,
    FaceDetectionResult,
    ImageAnalysisResult,
    ImageFile,
    Label,
    LabelResult,
    TextResult,
    UploadedAsset,
)
from notelens.session import BackendSession

logger = logging.getLogger(__name__)


class VisionService:
    """Vision request adapter bound to one backend session."""

    def __init__(self, session: BackendSession):
        self.session = session
        self.settings = session.settings

    # ── Validation ────────────────────────────────────────────────────────

    def validate_image(self, file: Optional[ImageFile]) -> bool:
        """
        Check presence, size and MIME type of an image.

        Raises:
            ValidationError: no file, file above max_image_size, or a MIME
            type outside supported_image_types.
        """
        if file is None:
            raise ValidationError(message="No image selected", field="file")

        if file.size > self.settings.max_image_size:
            max_mb = self.settings.max_image_size / (1024 * 1024)
            raise ValidationError(
                message=f"Image is too large. Maximum {max_mb:.0f}MB",
                field="file",
                context={"max_size": self.settings.max_image_size, "actual_size": file.size},
            )

        if file.content_type not in self.settings.supported_image_types:
            raise ValidationError(
                message="Unsupported image type",
                field="file",
                context={
                    "content_type": file.content_type,
                    "allowed": list(self.settings.supported_image_types),
                },
            )
        return True

    # ── Upload ────────────────────────────────────────────────────────────

    async def upload_image(self, file: ImageFile, folder: str = "ai-images") -> UploadedAsset:
        """
        Write the image to blob storage as "{folder}/{timestamp_ms}_{name}".

        Raises:
            UploadError: wrapping any storage fault.
        """
        file_name = f"{int(time.time() * 1000)}_{file.name}"
        url = await self.session.storage.upload(
            f"{folder}/{file_name}",
            file.data,
            file.content_type,
            id_token=self.session.id_token,
        )
        return UploadedAsset(url=url, file_name=file_name)

    # ── Operations ────────────────────────────────────────────────────────

    async def _invoke(self, function: str, file: ImageFile, folder: str, schema):
        self.validate_image(file)
        asset = await self.upload_image(file, folder)
        raw = await self.session.functions.call(
            function, {"imageUrl": asset.url}, id_token=self.session.id_token
        )
        try:
            return schema.model_validate(raw), asset
        except SchemaValidationError as e:
            raise MalformedResponseError(
                function=function,
                context={"errors": e.error_count()},
            ) from e

    def _apply_label_limits(self, labels: List[Label]) -> List[Label]:
        if not self.settings.enforce_label_limits:
            return labels
        kept = [label for label in labels if label.score >= self.settings.min_confidence]
        return kept[: self.settings.max_labels]

    async def classify_image(self, file: ImageFile) -> LabelResult:
        """Detect objects, people, animals; returns labels and the uploaded image URL."""
        try:
            response, asset = await self._invoke(
                self.settings.fn_classify_image, file, "classify-images", ClassifyImageResponse
            )
            return LabelResult(
                labels=self._apply_label_limits(response.labels),
                image_url=asset.url,
            )
        except Exception as e:
            logger.error("Image classification failed: %s", str(e))
            raise

    async def detect_text(self, file: ImageFile) -> TextResult:
        """OCR."""
        try:
            response, asset = await self._invoke(
                self.settings.fn_detect_text, file, "ocr-images", DetectTextResponse
            )
            return TextResult(text=response.text, image_url=asset.url)
        except Exception as e:
            logger.error("Text detection failed: %s", str(e))
            raise

    async def analyze_image(self, file: ImageFile) -> ImageAnalysisResult:
        """Full analysis: labels, faces, objects and dominant colors."""
        try:
            response, asset = await self._invoke(
                self.settings.fn_analyze_image, file, "analyze-images", AnalyzeImageResponse
            )
            return ImageAnalysisResult(
                labels=self._apply_label_limits(response.labels),
                faces=response.faces,
                objects=response.objects,
                colors=response.colors,
                image_url=asset.url,
            )
        except Exception as e:
            logger.error("Image analysis failed: %s", str(e))
            raise

    async def detect_faces(self, file: ImageFile) -> FaceDetectionResult:
        try:
            analysis = await self.analyze_image(file)
            return FaceDetectionResult(
                faces=analysis.faces,
                face_count=len(analysis.faces),
                image_url=analysis.image_url,
            )
        except Exception as e:
            logger.error("Face detection failed: %s", str(e))
            raise
