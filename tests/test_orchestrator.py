"""End-to-end tests for the generation orchestrator against a mocked API."""

import base64
from io import BytesIO

import httpx
import pytest
from PIL import Image

from conftest import image_candidate, text_candidate
from futuregen.core.orchestrator import SAFETY_SETTINGS, Orchestrator, extract_image
from futuregen.core.prompt_composer import analysis_instruction
from futuregen.models.enums import AspectRatio, ModelId, ReferenceMode
from futuregen.models.schemas import GenerationConfig, ImageAsset
from futuregen.providers import GeminiClient
from futuregen.utils.errors import (
    ConfigurationError,
    ContentBlockedError,
    GenerationError,
    ImageDecodeError,
    InvalidRequestError,
    PermissionDeniedError,
    RateLimitError,
)

FLASH_EDIT = "gemini-2.5-flash-image:generateContent"
PRO_EDIT = "gemini-3-pro-image-preview:generateContent"
ANALYZE = "gemini-2.5-flash:generateContent"
IMAGEN = "imagen-4.0-generate-001:predict"


def decoded_size(part):
    return Image.open(BytesIO(base64.b64decode(part["inlineData"]["data"]))).size


@pytest.fixture
def orchestrator(gemini_client, config):
    return Orchestrator(gemini_client, config=config)


async def test_single_image_edit(orchestrator, transport, make_asset):
    """Source 800x600, no reference, fast editor."""
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate("RURJVEVE")))

    result = await orchestrator.generate(
        make_asset(800, 600),
        None,
        GenerationConfig(prompt="add sunglasses", model_id=ModelId.GEMINI_FLASH_IMAGE),
    )

    assert result == "RURJVEVE"
    assert len(transport.requests) == 1

    body = transport.bodies_to(FLASH_EDIT)[0]
    parts = body["contents"][0]["parts"]
    assert len(parts) == 2
    assert parts[0]["inlineData"]["mimeType"] == "image/jpeg"
    assert 'USER INSTRUCTIONS: "add sunglasses"' in parts[1]["text"]
    assert body["generationConfig"]["imageConfig"] == {"aspectRatio": "4:3"}
    assert body["safetySettings"] == SAFETY_SETTINGS
    assert all(s["threshold"] == "BLOCK_ONLY_HIGH" for s in body["safetySettings"])


async def test_dress_reference_folds_guidance_into_edit(orchestrator, transport, make_asset):
    """Dress mode, reference supplied, empty prompt."""
    transport.queue(ANALYZE, httpx.Response(200, json=text_candidate("Emerald velvet blazer.")))
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate()))

    source = make_asset(800, 600)
    reference = make_asset(600, 900)
    await orchestrator.generate(
        source,
        reference,
        GenerationConfig(prompt="", reference_mode=ReferenceMode.DRESS),
    )

    analysis_bodies = transport.bodies_to(ANALYZE)
    assert len(analysis_bodies) == 1
    assert analysis_bodies[0]["contents"][0]["parts"][1]["text"] == analysis_instruction(ReferenceMode.DRESS)

    # Extraction happens before the edit call
    assert transport.requests[0].url.path.endswith(ANALYZE)
    assert transport.requests[1].url.path.endswith(FLASH_EDIT)

    parts = transport.bodies_to(FLASH_EDIT)[0]["contents"][0]["parts"]
    assert len(parts) == 3
    assert "inlineData" in parts[0] and "inlineData" in parts[1]
    text = parts[2]["text"]
    assert '"Emerald velvet blazer."' in text
    assert "MODE: OUTFIT TRANSFER" in text
    assert "USER INSTRUCTIONS" not in text


async def test_reference_order_is_source_first(orchestrator, transport, make_asset):
    transport.queue(ANALYZE, httpx.Response(200, json=text_candidate("x")))
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate()))

    await orchestrator.generate(
        make_asset(400, 400),
        make_asset(100, 300),
        GenerationConfig(reference_mode=ReferenceMode.POSE),
    )

    parts = transport.bodies_to(FLASH_EDIT)[0]["contents"][0]["parts"]
    first = decoded_size(parts[0])
    second = decoded_size(parts[1])
    assert first == (400, 400)
    assert second == (100, 300)


async def test_failed_extraction_still_generates(orchestrator, transport, make_asset):
    transport.queue(ANALYZE, httpx.Response(500, json={"error": {"message": "internal"}}))
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate("T0s=")))

    result = await orchestrator.generate(
        make_asset(),
        make_asset(),
        GenerationConfig(reference_mode=ReferenceMode.STYLE),
    )

    assert result == "T0s="
    text = transport.bodies_to(FLASH_EDIT)[0]["contents"][0]["parts"][2]["text"]
    assert "VISUAL DESCRIPTION" not in text
    assert "MODE: STYLE TRANSFER" in text


async def test_reference_without_mode_skips_extraction(orchestrator, transport, make_asset):
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate()))

    await orchestrator.generate(make_asset(), make_asset(), GenerationConfig(prompt="blend"))

    assert transport.calls_to(ANALYZE) == []
    assert len(transport.bodies_to(FLASH_EDIT)[0]["contents"][0]["parts"]) == 3


async def test_text_to_image_without_dimensions(orchestrator, transport):
    """Imagen, SAME_AS_SOURCE, no source dimensions."""
    transport.queue(
        IMAGEN,
        httpx.Response(200, json={"predictions": [
            {"bytesBase64Encoded": "SU1BR0VO", "mimeType": "image/jpeg"},
            {"bytesBase64Encoded": "U0VDT05E", "mimeType": "image/jpeg"},
        ]}),
    )

    result = await orchestrator.generate(
        None,
        None,
        GenerationConfig(
            prompt="a lighthouse at dusk",
            aspect_ratio=AspectRatio.SAME_AS_SOURCE,
            model_id=ModelId.IMAGEN_4,
        ),
    )

    assert result == "SU1BR0VO"
    assert len(transport.requests) == 1
    body = transport.bodies_to(IMAGEN)[0]
    assert body["instances"] == [{"prompt": "a lighthouse at dusk"}]
    assert body["parameters"]["aspectRatio"] == "1:1"
    assert body["parameters"]["sampleCount"] == 1
    assert body["parameters"]["outputOptions"] == {"mimeType": "image/jpeg"}


async def test_text_to_image_ignores_reference(orchestrator, transport, make_asset):
    transport.queue(IMAGEN, httpx.Response(200, json={"predictions": [{"bytesBase64Encoded": "QQ=="}]}))

    await orchestrator.generate(
        make_asset(1080, 1920),
        make_asset(),
        GenerationConfig(prompt="tall", model_id=ModelId.IMAGEN_4, reference_mode=ReferenceMode.POSE),
    )

    assert transport.calls_to(ANALYZE) == []
    assert transport.bodies_to(IMAGEN)[0]["parameters"]["aspectRatio"] == "9:16"


async def test_text_to_image_with_no_images(orchestrator, transport):
    transport.queue(IMAGEN, httpx.Response(200, json={"predictions": []}))

    with pytest.raises(GenerationError, match="No image generated"):
        await orchestrator.generate(None, None, GenerationConfig(prompt="x", model_id=ModelId.IMAGEN_4))


async def test_safety_finish_reason_is_content_blocked(orchestrator, transport, make_asset):
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate(finish_reason="SAFETY")))

    with pytest.raises(ContentBlockedError) as exc_info:
        await orchestrator.generate(make_asset(), None, GenerationConfig(prompt="x"))

    assert exc_info.value.reason == "SAFETY"
    assert "SAFETY" in str(exc_info.value)
    assert "Try a different reference" in str(exc_info.value)


async def test_pro_model_sends_image_size(orchestrator, transport, make_asset):
    transport.queue(PRO_EDIT, httpx.Response(200, json=image_candidate()))

    await orchestrator.generate(
        make_asset(1920, 1080),
        None,
        GenerationConfig(prompt="x", model_id=ModelId.GEMINI_PRO_IMAGE),
    )

    image_config = transport.bodies_to(PRO_EDIT)[0]["generationConfig"]["imageConfig"]
    assert image_config == {"aspectRatio": "16:9", "imageSize": "1K"}


async def test_explicit_ratio_overrides_source(orchestrator, transport, make_asset):
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate()))

    await orchestrator.generate(
        make_asset(800, 600),
        None,
        GenerationConfig(prompt="x", aspect_ratio=AspectRatio.PORTRAIT),
    )

    assert transport.bodies_to(FLASH_EDIT)[0]["generationConfig"]["imageConfig"]["aspectRatio"] == "3:4"


async def test_rate_limited_edit_is_retried(orchestrator, transport, make_asset, sleeps):
    transport.queue(
        FLASH_EDIT,
        httpx.Response(429),
        httpx.Response(429),
        httpx.Response(200, json=image_candidate("RklOQUw=")),
    )

    result = await orchestrator.generate(make_asset(), None, GenerationConfig(prompt="x"))

    assert result == "RklOQUw="
    assert len(transport.calls_to(FLASH_EDIT)) == 3
    assert sleeps == [2.0, 4.0]


async def test_rate_limit_exhausted(orchestrator, transport, make_asset, sleeps):
    transport.queue(FLASH_EDIT, *[httpx.Response(429) for _ in range(3)])

    with pytest.raises(RateLimitError):
        await orchestrator.generate(make_asset(), None, GenerationConfig(prompt="x"))

    assert len(transport.calls_to(FLASH_EDIT)) == 3


async def test_permission_denied_is_not_retried(orchestrator, transport, make_asset, sleeps):
    transport.queue(
        PRO_EDIT,
        httpx.Response(403, json={"error": {"status": "PERMISSION_DENIED", "message": "no access"}}),
    )

    with pytest.raises(PermissionDeniedError) as exc_info:
        await orchestrator.generate(
            make_asset(), None, GenerationConfig(prompt="x", model_id=ModelId.GEMINI_PRO_IMAGE)
        )

    assert exc_info.value.model == ModelId.GEMINI_PRO_IMAGE.value
    assert len(transport.requests) == 1
    assert sleeps == []


async def test_missing_credential_fails_before_any_call(transport, make_asset, config):
    async with GeminiClient(api_key="", transport=httpx.MockTransport(transport)) as client:
        orchestrator = Orchestrator(client, config=config)

        with pytest.raises(ConfigurationError):
            await orchestrator.generate(make_asset(), None, GenerationConfig(prompt="x"))

    assert transport.requests == []


async def test_editing_model_requires_source(orchestrator):
    with pytest.raises(InvalidRequestError):
        await orchestrator.generate(None, None, GenerationConfig(prompt="x"))


async def test_undecodable_source(orchestrator, transport):
    with pytest.raises(ImageDecodeError):
        await orchestrator.generate(
            ImageAsset(data="bm90IGFuIGltYWdl", width=10, height=10),
            None,
            GenerationConfig(prompt="x"),
        )

    assert transport.requests == []


async def test_generate_result_reports_details(orchestrator, transport, make_asset):
    transport.queue(ANALYZE, httpx.Response(200, json=text_candidate("Arms crossed.")))
    transport.queue(FLASH_EDIT, httpx.Response(200, json=image_candidate("UE5H")))

    result = await orchestrator.generate_result(
        make_asset(600, 800),
        make_asset(),
        GenerationConfig(reference_mode=ReferenceMode.POSE),
    )

    assert result.image_data == "UE5H"
    assert result.mime_type == "image/png"
    assert result.model_used is ModelId.GEMINI_FLASH_IMAGE
    assert result.aspect_ratio is AspectRatio.PORTRAIT
    assert result.guidance == "Arms crossed."


class TestExtractImage:
    """Response interpretation."""

    def test_no_candidates(self):
        with pytest.raises(GenerationError, match="No response from AI model"):
            extract_image({"candidates": []})

    def test_prompt_blocked_without_candidates(self):
        with pytest.raises(ContentBlockedError) as exc_info:
            extract_image({"promptFeedback": {"blockReason": "PROHIBITED_CONTENT"}})
        assert exc_info.value.reason == "PROHIBITED_CONTENT"

    @pytest.mark.parametrize("reason", ["RECITATION", "IMAGE_RECITATION", "SAFETY"])
    def test_recitation_family_suggests_new_reference(self, reason):
        with pytest.raises(ContentBlockedError, match="Try a different reference"):
            extract_image(image_candidate(finish_reason=reason))

    def test_other_reason_is_generic_filter_message(self):
        with pytest.raises(ContentBlockedError, match="Generation blocked by filter: IMAGE_OTHER"):
            extract_image(image_candidate(finish_reason="IMAGE_OTHER"))

    def test_text_only(self):
        with pytest.raises(GenerationError, match="text response instead of an image"):
            extract_image(text_candidate("I cannot draw that."))

    def test_first_inline_image_wins(self):
        response = {
            "candidates": [{
                "finishReason": "STOP",
                "content": {"parts": [
                    {"inlineData": {"mimeType": "image/jpeg", "data": "Rmlyc3Q="}},
                    {"inlineData": {"mimeType": "image/png", "data": "U2Vjb25k"}},
                ]},
            }]
        }
        assert extract_image(response) == {"data": "Rmlyc3Q=", "mime_type": "image/jpeg"}

    def test_missing_finish_reason_is_accepted(self):
        response = {"candidates": [{"content": {"parts": [{"inlineData": {"data": "QQ=="}}]}}]}
        assert extract_image(response)["data"] == "QQ=="
