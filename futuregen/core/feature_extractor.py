"""Reference feature extraction via a multimodal analysis call."""

from typing import Optional

from ..providers.gemini import GeminiClient
from ..models.enums import ReferenceMode
from ..models.schemas import ImageAsset
from ..utils.errors import ConfigurationError
from ..utils.images import compress_image, MAX_DIMENSION, JPEG_QUALITY
from ..utils.logger import get_logger
from ..utils.retry import run_with_retry
from .prompt_composer import analysis_instruction

logger = get_logger(__name__)


class FeatureExtractor:
    """Describes one feature of a reference image in text."""

    def __init__(
        self,
        client: GeminiClient,
        model: str = "gemini-2.5-flash",
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        max_dimension: int = MAX_DIMENSION,
        jpeg_quality: int = JPEG_QUALITY,
    ):
        """
        Initialize feature extractor.

        Args:
            client: Gemini API client
            model: Text-output multimodal model used for analysis
            max_attempts: Attempts for rate-limited calls
            initial_delay: First backoff delay in seconds
            max_dimension: Compression ceiling for the reference image
            jpeg_quality: Compression quality
        """
        self.client = client
        self.model = model
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.max_dimension = max_dimension
        self.jpeg_quality = jpeg_quality

    async def extract(
        self,
        image: ImageAsset,
        mode: ReferenceMode,
        custom_prompt: Optional[str] = None,
    ) -> str:
        """
        Describe the requested feature of a reference image.

        Guidance is optional for generation, so every failure past the
        credential check is logged and returned as an empty string.

        Args:
            image: Reference image
            mode: Which feature to describe
            custom_prompt: Feature name for custom mode

        Returns:
            Description text, or "" when unavailable

        Raises:
            ConfigurationError: If no API key is configured
        """
        if not self.client.has_credential:
            raise ConfigurationError("API Key not found in environment variables.")

        mode = ReferenceMode(mode)
        instruction = analysis_instruction(mode, custom_prompt)

        logger.info(
            f"Extracting {mode.value} guidance",
            extra={"mode": mode.value, "model": self.model}
        )

        try:
            processed = compress_image(image, self.max_dimension, self.jpeg_quality)
            text = await run_with_retry(
                lambda: self.client.analyze_image(self.model, processed, instruction),
                max_attempts=self.max_attempts,
                initial_delay=self.initial_delay,
            )
        except Exception as e:
            logger.error(
                f"Feature extraction failed: {e}",
                extra={"mode": mode.value, "model": self.model, "error": str(e)},
                exc_info=True
            )
            return ""

        text = (text or "").strip()
        logger.info(
            "Feature extraction complete",
            extra={"mode": mode.value, "description_length": len(text)}
        )
        return text
