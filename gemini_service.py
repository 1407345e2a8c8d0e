import logging
from google.genai import types
from pydantic import ValidationError

from api.error_utils import InvalidInput, UpstreamError, UpstreamParseError, ImageGenerationError
from api.parsing_utils import extract_json_object
from api.prompts import CLASSIFICATION_PROMPT
from image_resizer import shrink_for_upload, ensure_png
from models import ClassificationResult, GeneratedImage

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-image"
DEFAULT_MAX_IMAGE_EDGE = 1024


class ClassificationGateway:
    """Sends a waste photo to Gemini and turns its reply into a ClassificationResult."""

    def __init__(self, client, model: str = DEFAULT_MODEL, max_image_edge: int = DEFAULT_MAX_IMAGE_EDGE):
        self._client = client
        self._model = model
        self._max_image_edge = max_image_edge

    def classify(self, image_bytes: bytes, mime_type: str) -> ClassificationResult:
        """
        Classify one photographed waste item into a Colombian recycling bin.

        Raises:
            InvalidInput: empty or undecodable image, raised before any network call
            UpstreamError: the Gemini call itself failed
            UpstreamParseError: Gemini answered without a usable JSON object
        """
        if not image_bytes:
            raise InvalidInput("No se proporcionó ninguna imagen.")

        image_bytes, mime_type = shrink_for_upload(image_bytes, mime_type, self._max_image_edge)

        content_parts = [
            CLASSIFICATION_PROMPT,
            types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
        ]

        try:
            response = self._client.models.generate_content(model=self._model, contents=content_parts)
            raw_text = response.text or ""
        except Exception as e:
            logger.error(f"Gemini classification call failed: {e}")
            raise UpstreamError(str(e)) from e

        logger.debug(f"Raw Gemini classification response: {raw_text}")

        payload = extract_json_object(raw_text)
        if payload is None:
            logger.error(f"No JSON object in Gemini response: {raw_text!r}")
            raise UpstreamParseError("No se pudo parsear la respuesta de Gemini como JSON.")

        details = payload.get("details", payload)
        if not isinstance(details, dict):
            raise UpstreamParseError("El campo 'details' de la respuesta no es un objeto.")

        try:
            result = ClassificationResult(
                container=payload.get("container"),
                confidence=details.get("confidence"),
                object_name=details.get("objectName"),
                reason=details.get("reason") or "",
            )
        except ValidationError as e:
            logger.error(f"Gemini classification has an unexpected shape: {payload}")
            raise UpstreamParseError(f"Respuesta de clasificación inválida: {e.errors()}") from e

        logger.info(f"Classified '{result.object_name}' as {result.container.label} ({result.confidence.label})")
        return result


class ImageGenerator:
    """Asks the Gemini image model for a picture and returns the first inline image it sends back."""

    def __init__(self, client, model: str = DEFAULT_MODEL):
        self._client = client
        self._model = model

    def generate(self, prompt: str) -> GeneratedImage:
        try:
            response = self._client.models.generate_content(
                model=self._model,
                contents=[prompt],
                config=types.GenerateContentConfig(response_modalities=["TEXT", "IMAGE"]),
            )
        except Exception as e:
            logger.error(f"Gemini image generation call failed: {e}")
            raise UpstreamError(str(e)) from e

        for candidate in response.candidates or []:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is None or not inline.data:
                    continue
                try:
                    png_bytes = ensure_png(inline.data, inline.mime_type or "image/png")
                except InvalidInput as e:
                    raise ImageGenerationError(f"Gemini devolvió datos de imagen ilegibles: {e}") from e
                return GeneratedImage(data=png_bytes)

        raise ImageGenerationError("Gemini no devolvió datos de imagen")
