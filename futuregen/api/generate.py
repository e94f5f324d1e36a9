"""Generation and reference analysis endpoints."""

from typing import Optional
from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict

from ..core.orchestrator import Orchestrator
from ..core.feature_extractor import FeatureExtractor
from ..core.prompt_composer import append_to_prompt, format_guidance_snippet
from ..models.enums import AspectRatio, ModelId, ReferenceMode
from ..models.schemas import (
    FeatureAnalysis,
    GenerationConfig,
    GenerationResult,
    ImageAsset,
)
from ..utils.errors import (
    ConfigurationError,
    ContentBlockedError,
    FutureGenError,
    GenerationError,
    ImageProcessingError,
    InvalidRequestError,
    PermissionDeniedError,
    ProviderError,
)
from ..utils.images import base64_to_bytes, get_image_dimensions
from ..utils.logger import get_logger
from ..utils.retry import is_rate_limit_error

logger = get_logger(__name__)

router = APIRouter()

RATE_LIMIT_MESSAGE = "Server is busy (Rate Limit). Please wait a moment and try again."


class GenerateRequest(BaseModel):
    """Body of POST /generate."""
    model_config = ConfigDict(protected_namespaces=())

    source_image: Optional[ImageAsset] = None
    reference_image: Optional[ImageAsset] = None
    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.SAME_AS_SOURCE
    reference_mode: Optional[ReferenceMode] = None
    custom_reference_prompt: Optional[str] = None
    model_id: Optional[ModelId] = None


class AnalyzeRequest(BaseModel):
    """Body of POST /analyze."""
    image: ImageAsset
    mode: ReferenceMode
    custom_prompt: Optional[str] = None
    prompt: str = ""


def validate_generate_request(body: GenerateRequest, model: ModelId) -> None:
    """
    Reject requests the orchestrator cannot serve meaningfully.

    Raises:
        InvalidRequestError: With a message suitable for display
    """
    if body.source_image is None and not model.is_text_to_image:
        raise InvalidRequestError("Please upload a source image.")

    using_reference = body.reference_mode is not None

    if not body.prompt.strip() and not using_reference:
        raise InvalidRequestError("Please enter a prompt or use a reference image.")

    if using_reference and body.reference_image is None:
        raise InvalidRequestError("Reference mode is on but no reference image provided.")

    if (
        body.reference_mode is ReferenceMode.CUSTOM
        and not (body.custom_reference_prompt or "").strip()
    ):
        raise InvalidRequestError("Please enter what you want to copy from the reference image.")


def with_dimensions(image: Optional[ImageAsset]) -> Optional[ImageAsset]:
    """Probe width/height for uploads that arrive without them."""
    if image is None or (image.width and image.height):
        return image

    width, height = get_image_dimensions(base64_to_bytes(image.data))
    return image.model_copy(update={"width": width, "height": height})


def describe_error(error: Exception, model: Optional[ModelId] = None) -> HTTPException:
    """Map a core error to an HTTP status and a user-facing message."""
    message = str(error) or "An error occurred during generation."

    if isinstance(error, ConfigurationError):
        return HTTPException(status_code=500, detail=message)
    if isinstance(error, (InvalidRequestError, ImageProcessingError)):
        return HTTPException(status_code=400, detail=message)
    if is_rate_limit_error(error):
        return HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
    if isinstance(error, PermissionDeniedError) or "403" in message or "permission" in message.lower():
        name = model.value if model else getattr(error, "model", "selected model")
        return HTTPException(
            status_code=403,
            detail=(
                f"Access denied for model {name}. "
                "Your API key might not have access to this preview model yet."
            ),
        )
    if isinstance(error, ContentBlockedError):
        return HTTPException(status_code=422, detail=message)
    if isinstance(error, (GenerationError, ProviderError)):
        return HTTPException(status_code=502, detail=message)
    return HTTPException(status_code=500, detail=message)


@router.post("/generate", response_model=GenerationResult)
async def generate(body: GenerateRequest, request: Request) -> GenerationResult:
    """Transform the source image (or generate from text for Imagen)."""
    orchestrator: Orchestrator = request.app.state.orchestrator
    model = body.model_id or orchestrator.config.default_model

    try:
        validate_generate_request(body, model)
        source_image = with_dimensions(body.source_image)

        return await orchestrator.generate_result(
            source_image,
            body.reference_image if body.reference_mode is not None else None,
            GenerationConfig(
                prompt=body.prompt,
                aspect_ratio=body.aspect_ratio,
                reference_mode=body.reference_mode,
                custom_reference_prompt=(
                    body.custom_reference_prompt
                    if body.reference_mode is ReferenceMode.CUSTOM
                    else None
                ),
                model_id=model,
            ),
        )

    except FutureGenError as e:
        logger.error(
            f"Generation failed: {e}",
            extra={"model": model.value, "error_type": type(e).__name__}
        )
        raise describe_error(e, model)


@router.post("/analyze", response_model=FeatureAnalysis)
async def analyze(body: AnalyzeRequest, request: Request) -> FeatureAnalysis:
    """Describe a reference feature so the caller can fold it into a prompt."""
    extractor: FeatureExtractor = request.app.state.extractor

    if body.mode is ReferenceMode.CUSTOM and not (body.custom_prompt or "").strip():
        raise HTTPException(status_code=422, detail="Please specify what feature to extract first.")

    try:
        description = await extractor.extract(body.image, body.mode, body.custom_prompt)
    except FutureGenError as e:
        raise describe_error(e)

    if not description:
        raise HTTPException(status_code=422, detail="Could not analyze image.")

    snippet = format_guidance_snippet(body.mode, description, body.custom_prompt)
    return FeatureAnalysis(
        mode=body.mode,
        description=description,
        prompt_snippet=snippet,
        updated_prompt=append_to_prompt(body.prompt, snippet),
    )
