"""
NoteLens Backend — Vision Service Tests
=========================================

What we test:
    ✅ Image validation (presence, size, MIME type) before any network call
    ✅ Upload key format and ID token forwarding
    ✅ Request payloads and response normalization per operation
    ✅ Upload and remote failures propagate unchanged
"""

import re

import httpx
import pytest

from notelens.exceptions import (
    InvocationError,
    MalformedResponseError,
    UploadError,
    ValidationError,
)
from notelens.schemas.analysis import ImageFile
from notelens.services.vision_service import VisionService

MB = 1024 * 1024


@pytest.fixture
def vision(session):
    return VisionService(session)


class TestImageValidation:

    def test_missing_image(self, vision):
        with pytest.raises(ValidationError) as exc_info:
            vision.validate_image(None)
        assert exc_info.value.message == "No image selected"

    def test_image_over_limit(self, vision):
        big = ImageFile(name="big.jpg", content_type="image/jpeg", data=b"\x00" * (6 * MB))
        with pytest.raises(ValidationError) as exc_info:
            vision.validate_image(big)
        assert exc_info.value.message == "Image is too large. Maximum 5MB"

    def test_image_exactly_at_limit_passes(self, vision):
        edge = ImageFile(name="edge.png", content_type="image/png", data=b"\x00" * (5 * MB))
        assert vision.validate_image(edge) is True

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/gif", "image/webp"])
    def test_supported_types(self, vision, content_type):
        image = ImageFile(name="x", content_type=content_type, data=b"\x00")
        assert vision.validate_image(image) is True

    def test_unsupported_type(self, vision):
        pdf = ImageFile(name="doc.pdf", content_type="application/pdf", data=b"%PDF")
        with pytest.raises(ValidationError) as exc_info:
            vision.validate_image(pdf)
        assert exc_info.value.message == "Unsupported image type"

    @pytest.mark.asyncio
    async def test_invalid_image_makes_no_network_call(self, vision, platform):
        pdf = ImageFile(name="doc.pdf", content_type="application/pdf", data=b"%PDF")
        with pytest.raises(ValidationError):
            await vision.classify_image(pdf)
        assert platform.requests == []


class TestClassifyImage:

    @pytest.mark.asyncio
    async def test_cat_photo(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = {"labels": [{"description": "Cat", "score": 0.98}]}

        result = await vision.classify_image(sample_image)

        assert result.kind == "labels"
        assert [(label.description, label.score) for label in result.labels] == [("Cat", 0.98)]

        upload = platform.uploads[0]
        assert re.fullmatch(r"classify-images/\d+_cat\.jpg", platform.upload_name(upload))
        assert upload.headers["Content-Type"] == "image/jpeg"
        assert upload.headers["Authorization"] == "Firebase id-token-alice"
        assert "token=tok-123" in result.image_url

        call = platform.function_calls[0]
        assert platform.body(call) == {"data": {"imageUrl": result.image_url}}
        assert call.headers["Authorization"] == "Bearer id-token-alice"

    @pytest.mark.asyncio
    async def test_missing_labels_default_to_empty(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = None

        result = await vision.classify_image(sample_image)

        assert result.labels == []

    @pytest.mark.asyncio
    async def test_extra_label_keys_are_kept(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = {
            "labels": [{"description": "Dog", "score": 0.7, "mid": "/m/0bt9lr"}]
        }

        result = await vision.classify_image(sample_image)

        assert result.labels[0].model_dump()["mid"] == "/m/0bt9lr"

    @pytest.mark.asyncio
    async def test_null_label_fields_take_defaults(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = {
            "labels": [{"description": "Cat", "score": None}, {"description": None, "score": 0.5}]
        }

        result = await vision.classify_image(sample_image)

        assert result.labels[0].score == 0.0
        assert result.labels[1].description == ""

    @pytest.mark.asyncio
    async def test_label_limits_off_by_default(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = {
            "labels": [{"description": f"L{i}", "score": 0.1} for i in range(12)]
        }

        result = await vision.classify_image(sample_image)

        assert len(result.labels) == 12

    @pytest.mark.asyncio
    async def test_label_limits_when_enforced(self, vision, platform, sample_image):
        vision.settings = vision.settings.model_copy(
            update={"enforce_label_limits": True, "max_labels": 2, "min_confidence": 0.5}
        )
        platform.functions["classifyImage"] = {
            "labels": [
                {"description": "Cat", "score": 0.9},
                {"description": "Blur", "score": 0.2},
                {"description": "Pet", "score": 0.8},
                {"description": "Fur", "score": 0.6},
            ]
        }

        result = await vision.classify_image(sample_image)

        assert [label.description for label in result.labels] == ["Cat", "Pet"]

    @pytest.mark.asyncio
    async def test_malformed_labels(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = {"labels": "not-a-list"}

        with pytest.raises(MalformedResponseError):
            await vision.classify_image(sample_image)

    @pytest.mark.asyncio
    async def test_remote_error_propagates(self, vision, platform, sample_image):
        platform.functions["classifyImage"] = httpx.Response(
            400, json={"error": {"message": "Falha ao classificar imagem", "status": "INTERNAL"}}
        )

        with pytest.raises(InvocationError) as exc_info:
            await vision.classify_image(sample_image)
        assert exc_info.value.message == "Falha ao classificar imagem"


class TestUpload:

    @pytest.mark.asyncio
    async def test_storage_failure_stops_before_invocation(self, vision, platform, sample_image):
        platform.upload = httpx.Response(503, json={"error": {"message": "unavailable"}})

        with pytest.raises(UploadError):
            await vision.classify_image(sample_image)
        assert platform.function_calls == []

    @pytest.mark.asyncio
    async def test_storage_transport_failure(self, vision, platform, sample_image):
        platform.upload = httpx.ConnectError("storage down")

        with pytest.raises(UploadError):
            await vision.detect_text(sample_image)

    @pytest.mark.asyncio
    async def test_missing_download_token(self, vision, platform, sample_image):
        platform.upload = {"name": "ocr-images/1_cat.jpg"}

        with pytest.raises(UploadError):
            await vision.detect_text(sample_image)

    @pytest.mark.asyncio
    async def test_non_string_download_token(self, vision, platform, sample_image):
        platform.upload = {"downloadTokens": ["tok"]}

        with pytest.raises(UploadError):
            await vision.classify_image(sample_image)
        assert platform.function_calls == []

    @pytest.mark.asyncio
    async def test_upload_is_not_retried(self, vision, platform, sample_image):
        platform.upload = httpx.Response(500)

        with pytest.raises(UploadError):
            await vision.upload_image(sample_image)
        assert len(platform.uploads) == 1

    @pytest.mark.asyncio
    async def test_default_folder(self, vision, platform, sample_image):
        asset = await vision.upload_image(sample_image)

        assert asset.file_name.endswith("_cat.jpg")
        assert platform.upload_name(platform.uploads[0]) == f"ai-images/{asset.file_name}"


class TestOtherOperations:

    @pytest.mark.asyncio
    async def test_detect_text(self, vision, platform, sample_image):
        platform.functions["detectText"] = {"text": "Hello World"}

        result = await vision.detect_text(sample_image)

        assert result.text == "Hello World"
        assert platform.upload_name(platform.uploads[0]).startswith("ocr-images/")

    @pytest.mark.asyncio
    async def test_detect_text_missing_text(self, vision, platform, sample_image):
        platform.functions["detectText"] = {}

        assert (await vision.detect_text(sample_image)).text == ""

    @pytest.mark.asyncio
    async def test_analyze_image_defaults(self, vision, platform, sample_image):
        platform.functions["analyzeImage"] = {"labels": None}

        result = await vision.analyze_image(sample_image)

        assert result.labels == []
        assert result.faces == []
        assert result.objects == []
        assert result.colors is None
        assert platform.upload_name(platform.uploads[0]).startswith("analyze-images/")

    @pytest.mark.asyncio
    async def test_detect_faces(self, vision, platform, sample_image):
        platform.functions["analyzeImage"] = {
            "labels": [{"description": "Person", "score": 0.9}],
            "faces": [{"joyLikelihood": "VERY_LIKELY"}, {"joyLikelihood": "UNLIKELY"}],
        }

        result = await vision.detect_faces(sample_image)

        assert result.kind == "faces"
        assert result.face_count == 2
        assert result.faces[0] == {"joyLikelihood": "VERY_LIKELY"}
        assert len(platform.function_calls) == 1


@pytest.mark.asyncio
async def test_image_file_from_path(tmp_path):
    path = tmp_path / "receipt.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\n")

    image = await ImageFile.from_path(str(path))

    assert image.name == "receipt.png"
    assert image.content_type == "image/png"
    assert image.size == 8
