"""Google Generative Language API client (Gemini + Imagen)."""

import json
from typing import Any, Dict, List, Optional
import httpx

from .base import BaseProvider
from ..models.schemas import CompressedImage
from ..utils.logger import get_logger
from ..utils.errors import (
    ProviderError,
    AuthenticationError,
    RateLimitError,
    PermissionDeniedError,
)

logger = get_logger(__name__)

PROVIDER = "gemini"


def inline_image_part(image: CompressedImage) -> Dict[str, Any]:
    """Build an inlineData request part from a compressed image."""
    return {
        "inlineData": {
            "mimeType": image.mime_type,
            "data": image.data,
        }
    }


def text_part(text: str) -> Dict[str, Any]:
    return {"text": text}


def candidate_text(response: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = response.get("candidates") or []
    if not candidates:
        return ""

    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts if "text" in part)


class GeminiClient(BaseProvider):
    """Client for the Generative Language REST API."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 120.0,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Generative Language API key
            timeout: Request timeout in seconds
            base_url: API root, without trailing slash
            transport: Optional httpx transport
        """
        super().__init__(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
        )

    def _get_default_headers(self) -> dict:
        """Get default headers for Generative Language requests."""
        return {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

    async def generate_content(
        self,
        model: str,
        parts: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None,
        safety_settings: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """
        Call models/{model}:generateContent with a single user turn.

        Args:
            model: Model id
            parts: Ordered request parts (inlineData / text)
            generation_config: Optional generationConfig block
            safety_settings: Optional safetySettings list

        Returns:
            Raw JSON response
        """
        self._ensure_client()

        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
        }
        if generation_config:
            payload["generationConfig"] = generation_config
        if safety_settings:
            payload["safetySettings"] = safety_settings

        logger.info(
            f"generateContent -> {model}",
            extra={
                "model": model,
                "part_kinds": [next(iter(p)) for p in parts],
            }
        )

        response = await self._post(f"/models/{model}:generateContent", payload, model)
        return response.json()

    async def analyze_image(
        self,
        model: str,
        image: CompressedImage,
        instruction: str,
    ) -> str:
        """
        Ask a multimodal model a question about one image.

        Args:
            model: Text-output model id
            image: Compressed image
            instruction: Analysis question

        Returns:
            The model's text answer (may be empty)
        """
        response = await self.generate_content(
            model=model,
            parts=[inline_image_part(image), text_part(instruction)],
        )
        return candidate_text(response)

    async def generate_images(
        self,
        model: str,
        prompt: str,
        aspect_ratio: str,
        number_of_images: int = 1,
        output_mime_type: str = "image/jpeg",
    ) -> List[str]:
        """
        Text-to-image via models/{model}:predict.

        Args:
            model: Imagen model id
            prompt: Text prompt
            aspect_ratio: Concrete ratio string such as "4:3"
            number_of_images: Requested sample count
            output_mime_type: Output encoding

        Returns:
            List of base64 image payloads, possibly empty
        """
        self._ensure_client()

        payload = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": number_of_images,
                "aspectRatio": aspect_ratio,
                "outputOptions": {"mimeType": output_mime_type},
            },
        }

        logger.info(
            f"predict -> {model}",
            extra={"model": model, "aspect_ratio": aspect_ratio}
        )

        response = await self._post(f"/models/{model}:predict", payload, model)

        predictions = response.json().get("predictions") or []
        return [
            p["bytesBase64Encoded"]
            for p in predictions
            if p.get("bytesBase64Encoded")
        ]

    async def _post(self, path: str, payload: Dict[str, Any], model: str) -> httpx.Response:
        """POST to the API, turning transport failures and error statuses into ProviderError."""
        try:
            response = await self.client.post(f"{self.base_url}{path}", json=payload)
        except httpx.RequestError as e:
            logger.error(
                f"Request to {model} failed: {e}",
                extra={"model": model, "error_type": type(e).__name__}
            )
            raise ProviderError(PROVIDER, f"Request failed: {e}") from e

        self._handle_response_errors(response, model)
        return response

    def _handle_response_errors(self, response: httpx.Response, model: str):
        """Handle HTTP response errors."""
        if response.status_code < 400:
            return

        try:
            error_data = response.json().get("error", {})
            status = error_data.get("status", "")
            error_message = error_data.get("message", response.text)
        except (json.JSONDecodeError, ValueError, AttributeError):
            status = ""
            error_message = response.text

        logger.error(
            f"Gemini API error {response.status_code}",
            extra={
                "model": model,
                "status_code": response.status_code,
                "status": status,
                "body": response.text,
            }
        )

        if response.status_code == 401:
            raise AuthenticationError(PROVIDER)
        elif response.status_code == 403:
            raise PermissionDeniedError(PROVIDER, model, error_message)
        elif response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                PROVIDER,
                int(retry_after) if retry_after and retry_after.isdigit() else None
            )

        # Keep the service status in the message: RESOURCE_EXHAUSTED/quota
        # text is what marks a 4xx/5xx as rate-limit-like
        detail = f"{status}: {error_message}" if status else error_message
        raise ProviderError(PROVIDER, detail, response.status_code)
