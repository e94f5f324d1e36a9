"""Core business logic components."""

from .aspect_ratio import resolve_closest, resolve_aspect_ratio
from .feature_extractor import FeatureExtractor
from .orchestrator import Orchestrator

__all__ = [
    "resolve_closest",
    "resolve_aspect_ratio",
    "FeatureExtractor",
    "Orchestrator",
]
