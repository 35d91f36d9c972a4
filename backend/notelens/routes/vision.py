"""
NoteLens Backend — Vision Route Handlers
==========================================

What:  Multipart image upload endpoints for the vision operations.
How:   Reads the upload into an ImageFile (declared content type, original
       name) and runs the operation through the user's interaction
       controller, so the result is also visible at GET /api/ai/state.

Error responses (global handlers):
    400 invalid image (missing, too large, unsupported type)
    401 missing/invalid ID token
    502 upload or remote function failure
    503 remote functions circuit open
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from notelens.routes.interaction import get_controller
from notelens.schemas.analysis import (
    FaceDetectionResult,
    ImageAnalysisResult,
    ImageFile,
    LabelResult,
    TextResult,
)
from notelens.schemas.note import ErrorResponse
from notelens.services.interaction import AIInteractionController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/vision", tags=["Vision"])

ERROR_RESPONSES = {
    400: {"description": "Invalid image", "model": ErrorResponse},
    401: {"description": "Not signed in", "model": ErrorResponse},
    502: {"description": "Upload or remote function failed", "model": ErrorResponse},
    503: {"description": "AI service unavailable", "model": ErrorResponse},
}


async def read_image(file: UploadFile) -> ImageFile:
    try:
        data = await file.read()
    finally:
        await file.close()
    logger.info(
        "Received image: filename=%s, type=%s, size=%d bytes",
        file.filename or "unknown",
        file.content_type,
        len(data),
    )
    return ImageFile(
        name=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=data,
    )


@router.post("/classify", response_model=LabelResult, responses=ERROR_RESPONSES,
             summary="Label the contents of an image")
async def classify_image(
    file: UploadFile = File(..., description="JPEG, PNG, GIF or WebP image, max 5MB"),
    controller: AIInteractionController = Depends(get_controller),
) -> LabelResult:
    return await controller.classify_image(await read_image(file))


@router.post("/text", response_model=TextResult, responses=ERROR_RESPONSES,
             summary="Detect text in an image (OCR)")
async def detect_text(
    file: UploadFile = File(...),
    controller: AIInteractionController = Depends(get_controller),
) -> TextResult:
    return await controller.detect_text(await read_image(file))


@router.post("/analyze", response_model=ImageAnalysisResult, responses=ERROR_RESPONSES,
             summary="Full image analysis: labels, faces, objects, colors")
async def analyze_image(
    file: UploadFile = File(...),
    controller: AIInteractionController = Depends(get_controller),
) -> ImageAnalysisResult:
    return await controller.analyze_image(await read_image(file))


@router.post("/faces", response_model=FaceDetectionResult, responses=ERROR_RESPONSES,
             summary="Detect faces in an image")
async def detect_faces(
    file: UploadFile = File(...),
    controller: AIInteractionController = Depends(get_controller),
) -> FaceDetectionResult:
    return await controller.detect_faces(await read_image(file))
