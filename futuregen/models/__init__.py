"""Data models and schemas for FutureGen."""

from .schemas import (
    ImageAsset,
    CompressedImage,
    GenerationConfig,
    GenerationResult,
    FeatureAnalysis,
)
from .enums import (
    ReferenceMode,
    AspectRatio,
    ModelId,
    FinishReason,
)

__all__ = [
    "ImageAsset",
    "CompressedImage",
    "GenerationConfig",
    "GenerationResult",
    "FeatureAnalysis",
    "ReferenceMode",
    "AspectRatio",
    "ModelId",
    "FinishReason",
]
