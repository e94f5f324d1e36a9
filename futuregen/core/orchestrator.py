"""Top-level generation flow: ratio, guidance, compression, prompt, call."""

import time
from typing import Any, Dict, List, Optional

from ..providers.gemini import GeminiClient
from ..models.enums import AspectRatio, FinishReason, ModelId
from ..models.schemas import (
    GenerationConfig,
    GenerationResult,
    ImageAsset,
)
from ..utils.config import Config
from ..utils.errors import (
    ConfigurationError,
    ContentBlockedError,
    GenerationError,
    InvalidRequestError,
)
from ..utils.images import compress_image
from ..utils.logger import get_logger
from ..utils.retry import run_with_retry
from .aspect_ratio import resolve_aspect_ratio
from .feature_extractor import FeatureExtractor
from .prompt_composer import build_parts, compose_instruction

logger = get_logger(__name__)

HARM_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]

# Only high-severity content is blocked; lower thresholds reject ordinary
# portrait edits
SAFETY_SETTINGS = [
    {"category": category, "threshold": "BLOCK_ONLY_HIGH"}
    for category in HARM_CATEGORIES
]

RECITATION_REASONS = {
    FinishReason.RECITATION.value,
    FinishReason.IMAGE_RECITATION.value,
    FinishReason.SAFETY.value,
}

IMAGEN_ASPECT_RATIOS = {
    AspectRatio.SQUARE: "1:1",
    AspectRatio.LANDSCAPE: "4:3",
    AspectRatio.WIDE_LANDSCAPE: "16:9",
    AspectRatio.PORTRAIT: "3:4",
    AspectRatio.WIDE_PORTRAIT: "9:16",
}


def extract_image(response: Dict[str, Any]) -> Dict[str, str]:
    """
    Pull the first inline image out of a generateContent response.

    Args:
        response: Raw generateContent JSON

    Returns:
        Dict with "data" (base64) and "mime_type"

    Raises:
        ContentBlockedError: If the prompt or candidate was stopped by a filter
        GenerationError: If there is no candidate or no image part
    """
    candidates = response.get("candidates") or []

    if not candidates:
        block_reason = (response.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ContentBlockedError(
                block_reason,
                f"Generation blocked by filter: {block_reason}",
            )
        raise GenerationError("No response from AI model.")

    candidate = candidates[0]
    reason = candidate.get("finishReason")

    if reason and reason != FinishReason.STOP.value:
        if reason in RECITATION_REASONS:
            raise ContentBlockedError(
                reason,
                f"Generation blocked: The request was flagged for {reason} "
                "(likely too close to a protected image or person). "
                "Try a different reference.",
            )
        raise ContentBlockedError(reason, f"Generation blocked by filter: {reason}")

    parts: List[Dict[str, Any]] = (candidate.get("content") or {}).get("parts") or []
    for part in parts:
        inline = part.get("inlineData") or part.get("inline_data")
        if inline and inline.get("data"):
            return {
                "data": inline["data"],
                "mime_type": inline.get("mimeType") or inline.get("mime_type") or "image/png",
            }

    text = "".join(part.get("text", "") for part in parts)
    logger.warning(
        "Model returned text instead of an image",
        extra={"text": text}
    )
    raise GenerationError(
        "The model generated a text response instead of an image. "
        "Please try adjusting your prompt."
    )


class Orchestrator:
    """Runs one generation request end to end."""

    def __init__(
        self,
        client: GeminiClient,
        extractor: Optional[FeatureExtractor] = None,
        config: Optional[Config] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            client: Gemini API client
            extractor: Reference feature extractor; built from config if omitted
            config: Model, retry and image settings; defaults if omitted
        """
        self.client = client
        self.config = config or Config()
        self.extractor = extractor or FeatureExtractor(
            client,
            model=self.config.analysis_model,
            max_attempts=self.config.retry.max_attempts,
            initial_delay=self.config.retry.initial_delay_seconds,
            max_dimension=self.config.image.max_dimension,
            jpeg_quality=self.config.image.jpeg_quality,
        )

    async def generate(
        self,
        source_image: Optional[ImageAsset],
        reference_image: Optional[ImageAsset],
        config: GenerationConfig,
    ) -> str:
        """
        Generate an image and return its base64 payload.

        Raises:
            ConfigurationError: If no API key is configured
            InvalidRequestError: If an editing model gets no source image
            ImageDecodeError: If an input image cannot be decoded
            RateLimitError: If rate limiting outlasts the retry budget
            PermissionDeniedError: If the key cannot use the model
            ContentBlockedError: If a safety or recitation filter fired
            GenerationError: If no image came back
        """
        result = await self.generate_result(source_image, reference_image, config)
        return result.image_data

    async def generate_result(
        self,
        source_image: Optional[ImageAsset],
        reference_image: Optional[ImageAsset],
        config: GenerationConfig,
    ) -> GenerationResult:
        """Same as generate(), with model, ratio and guidance details."""
        if not self.client.has_credential:
            raise ConfigurationError("API Key not found in environment variables.")

        start_time = time.time()
        model = ModelId(config.model_id or self.config.default_model)

        target_ratio = resolve_aspect_ratio(
            config.aspect_ratio,
            source_image.width if source_image else None,
            source_image.height if source_image else None,
        )

        logger.info(
            f"Generation started with {model.value}",
            extra={
                "model": model.value,
                "requested_ratio": AspectRatio(config.aspect_ratio).value,
                "aspect_ratio": target_ratio.value,
                "has_reference": reference_image is not None,
                "reference_mode": config.reference_mode.value if config.reference_mode else None,
            }
        )

        if model.is_text_to_image:
            image = await self._generate_text_to_image(model, config.prompt, target_ratio)
            guidance = None
        else:
            image, guidance = await self._generate_edit(
                model, source_image, reference_image, config, target_ratio
            )

        duration = time.time() - start_time
        logger.info(
            "Generation succeeded",
            extra={
                "model": model.value,
                "aspect_ratio": target_ratio.value,
                "duration_seconds": duration,
            }
        )

        return GenerationResult(
            image_data=image["data"],
            mime_type=image["mime_type"],
            model_used=model,
            aspect_ratio=target_ratio,
            guidance=guidance or None,
            processing_time_seconds=duration,
        )

    async def _generate_text_to_image(
        self,
        model: ModelId,
        prompt: str,
        target_ratio: AspectRatio,
    ) -> Dict[str, str]:
        images = await run_with_retry(
            lambda: self.client.generate_images(
                model=model.value,
                prompt=prompt,
                aspect_ratio=IMAGEN_ASPECT_RATIOS[target_ratio],
                number_of_images=1,
                output_mime_type="image/jpeg",
            ),
            max_attempts=self.config.retry.max_attempts,
            initial_delay=self.config.retry.initial_delay_seconds,
        )

        if not images:
            raise GenerationError("No image generated by Imagen.")

        return {"data": images[0], "mime_type": "image/jpeg"}

    async def _generate_edit(
        self,
        model: ModelId,
        source_image: Optional[ImageAsset],
        reference_image: Optional[ImageAsset],
        config: GenerationConfig,
        target_ratio: AspectRatio,
    ):
        if source_image is None:
            raise InvalidRequestError(f"Model {model.value} requires a source image.")

        guidance = ""
        if reference_image is not None and config.reference_mode is not None:
            try:
                guidance = await self.extractor.extract(
                    reference_image,
                    config.reference_mode,
                    config.custom_reference_prompt,
                )
            except Exception as e:
                logger.warning(
                    "Guidance extraction failed, proceeding without it.",
                    extra={"error": str(e)}
                )
                guidance = ""

        image_settings = self.config.image
        processed_source = compress_image(
            source_image, image_settings.max_dimension, image_settings.jpeg_quality
        )
        processed_ref = None
        if reference_image is not None:
            processed_ref = compress_image(
                reference_image, image_settings.max_dimension, image_settings.jpeg_quality
            )

        instruction = compose_instruction(
            prompt=config.prompt,
            has_reference=processed_ref is not None,
            reference_mode=config.reference_mode,
            custom_prompt=config.custom_reference_prompt,
            guidance=guidance,
        )
        parts = build_parts(processed_source, processed_ref, instruction)

        image_config = {"aspectRatio": target_ratio.value}
        if model.supports_image_size:
            image_config["imageSize"] = self.config.pro_image_size

        generation_config = {
            "responseModalities": ["TEXT", "IMAGE"],
            "imageConfig": image_config,
        }

        logger.info(
            "Calling edit model",
            extra={
                "model": model.value,
                "parts": len(parts),
                "aspect_ratio": target_ratio.value,
                "guidance_length": len(guidance),
            }
        )

        response = await run_with_retry(
            lambda: self.client.generate_content(
                model=model.value,
                parts=parts,
                generation_config=generation_config,
                safety_settings=SAFETY_SETTINGS,
            ),
            max_attempts=self.config.retry.max_attempts,
            initial_delay=self.config.retry.initial_delay_seconds,
        )

        return extract_image(response), guidance
