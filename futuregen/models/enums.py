"""Enumerations for FutureGen."""

from enum import Enum


class ReferenceMode(str, Enum):
    """Which feature of the reference image is transferred to the source."""
    POSE = "Pose"
    DRESS = "Dress / Outfit"
    EXPRESSION = "Facial Expression"
    STYLE = "Artistic Style"
    BACKGROUND = "Background"
    COMPOSITION = "Composition"
    CUSTOM = "Custom Feature"


class AspectRatio(str, Enum):
    """Output aspect ratio. SAME_AS_SOURCE is resolved before any request."""
    SQUARE = "1:1"
    PORTRAIT = "3:4"
    LANDSCAPE = "4:3"
    WIDE_LANDSCAPE = "16:9"
    WIDE_PORTRAIT = "9:16"
    SAME_AS_SOURCE = "SAME_AS_SOURCE"


class ModelId(str, Enum):
    """Remote image model."""
    GEMINI_FLASH_IMAGE = "gemini-2.5-flash-image"
    GEMINI_PRO_IMAGE = "gemini-3-pro-image-preview"
    IMAGEN_4 = "imagen-4.0-generate-001"

    @property
    def is_text_to_image(self) -> bool:
        """Imagen cannot edit; it only generates from text."""
        return self is ModelId.IMAGEN_4

    @property
    def supports_image_size(self) -> bool:
        """imageSize is only accepted by the Pro image model."""
        return self is ModelId.GEMINI_PRO_IMAGE


class FinishReason(str, Enum):
    """Candidate finish reasons the orchestrator distinguishes."""
    STOP = "STOP"
    SAFETY = "SAFETY"
    RECITATION = "RECITATION"
    IMAGE_RECITATION = "IMAGE_RECITATION"
