"""FutureGen: reference-guided portrait transformation over Gemini image models."""

__version__ = "1.0.0"
