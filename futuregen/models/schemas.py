"""Pydantic schemas for data validation."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator

from .enums import AspectRatio, ModelId, ReferenceMode


class ImageAsset(BaseModel):
    """An uploaded or previously generated image."""
    model_config = ConfigDict(frozen=True)

    data: str  # base64, data URL prefix tolerated
    mime_type: str = "image/png"
    width: Optional[PositiveInt] = None
    height: Optional[PositiveInt] = None

    @field_validator("data")
    @classmethod
    def strip_data_url(cls, value: str) -> str:
        if value.startswith("data:") and "," in value:
            return value.split(",", 1)[1]
        return value


class CompressedImage(BaseModel):
    """Image re-encoded for transmission."""
    model_config = ConfigDict(frozen=True)

    data: str
    mime_type: str = "image/jpeg"
    width: int
    height: int


class GenerationConfig(BaseModel):
    """Per-request generation settings."""
    model_config = ConfigDict(protected_namespaces=())

    prompt: str = ""
    aspect_ratio: AspectRatio = AspectRatio.SAME_AS_SOURCE
    reference_mode: Optional[ReferenceMode] = None
    custom_reference_prompt: Optional[str] = None
    model_id: Optional[ModelId] = None


class GenerationResult(BaseModel):
    """Result of a successful generation."""
    model_config = ConfigDict(protected_namespaces=())

    image_data: str
    mime_type: str = "image/png"
    model_used: ModelId
    aspect_ratio: AspectRatio
    guidance: Optional[str] = None
    processing_time_seconds: Optional[float] = None


class FeatureAnalysis(BaseModel):
    """Result of analyzing a reference image."""
    mode: ReferenceMode
    description: str
    prompt_snippet: str = Field(
        ..., description="Description formatted for appending to a prompt"
    )
    updated_prompt: str = Field(
        ..., description="The caller's prompt with the snippet appended"
    )
