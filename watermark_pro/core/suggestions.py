"""
AI Watermark Text Suggestions
=============================
Asks a Gemini model for short watermark texts that fit a photo.

Every failure (missing API key, network error, timeout, malformed JSON)
is contained here: ``suggest()`` then returns a fixed list of generic
copyright phrases in the requested language and never raises.
"""

import io
import json
import logging
from typing import Any, List, Optional

from google import genai
from google.genai import types
from PIL import Image

from ..i18n import Language

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
SNAPSHOT_MAX_EDGE = 512
SNAPSHOT_JPEG_QUALITY = 70

FALLBACK_SUGGESTIONS = {
    Language.EN: ["© Copyright 2024", "Protected", "Do Not Copy", "Watermark", "Private"],
    Language.ZH: ["© 版权所有", "原创作品", "严禁复制", "水印", "仅供参考"],
}

SYSTEM_INSTRUCTION = (
    "You are a creative branding assistant. "
    "Return only a JSON object with a list of strings."
)

LANGUAGE_INSTRUCTIONS = {
    Language.EN: "Generate suggestions in English. Keep them under 5 words.",
    Language.ZH: "Generate suggestions in Simplified Chinese (简体中文). Keep them concise (2-6 characters).",
}

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "suggestions": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(type=types.Type.STRING),
        ),
    },
)


def fallback_suggestions(language: Language) -> List[str]:
    return list(FALLBACK_SUGGESTIONS[Language(language)])


def make_snapshot(image: Image.Image, max_edge: int = SNAPSHOT_MAX_EDGE,
                  quality: int = SNAPSHOT_JPEG_QUALITY) -> bytes:
    """
    Downscale so the longest edge is at most ``max_edge`` and encode as JPEG.

    Smaller images are encoded at their own size.
    """
    snapshot = image.copy()
    snapshot.thumbnail((max_edge, max_edge), Image.Resampling.BILINEAR)

    # JPEG has no alpha: flatten onto white
    if snapshot.mode != "RGB":
        background = Image.new("RGB", snapshot.size, (255, 255, 255))
        rgba = snapshot.convert("RGBA")
        background.paste(rgba, mask=rgba.getchannel("A"))
        snapshot = background

    buffer = io.BytesIO()
    snapshot.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def parse_suggestions(payload: Optional[str]) -> List[str]:
    """
    Extract the suggestion list from the model's JSON text.

    Raises:
        ValueError: If the payload is empty or not the expected shape.
    """
    if not payload:
        raise ValueError("Empty response")

    data = json.loads(payload)
    if isinstance(data, dict):
        data = data.get("suggestions")
    if not isinstance(data, list):
        raise ValueError("Response has no suggestion list")

    suggestions = [str(item).strip() for item in data if str(item).strip()]
    if not suggestions:
        raise ValueError("Response suggestion list is empty")
    return suggestions[:MAX_SUGGESTIONS]


class SuggestionClient:
    """
    Thin wrapper over ``google.genai.Client`` for watermark suggestions.

    Args:
        api_key: Gemini API key. An empty key disables the network call.
        model: Model name.
        timeout_ms: HTTP timeout in milliseconds.
        client: Pre-built client exposing ``models.generate_content``;
                mostly useful for tests.
    """

    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(
            self,
            api_key: str = "",
            model: str = DEFAULT_MODEL,
            timeout_ms: int = 15000,
            client: Optional[Any] = None
    ):
        self._api_key = api_key
        self._model = model
        self._timeout_ms = timeout_ms
        self._client = client

    @property
    def available(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=self._timeout_ms),
            )
        return self._client

    def _build_prompt(self, language: Language) -> str:
        return (
            "Analyze this image and suggest 5 short, professional, or creative "
            "watermark texts. They could be witty captions, copyright tags, or "
            "brand-like names suitable for this specific photo. "
            f"{LANGUAGE_INSTRUCTIONS[language]}"
        )

    def suggest(self, image: Image.Image, language: Language = Language.EN) -> List[str]:
        """Return up to 5 suggestions, or the fallback list on any failure."""
        language = Language(language)

        if not self.available:
            logger.warning("API key is missing, returning default suggestions")
            return fallback_suggestions(language)

        try:
            snapshot = make_snapshot(image)
            response = self._get_client().models.generate_content(
                model=self._model,
                contents=[
                    types.Part.from_bytes(data=snapshot, mime_type="image/jpeg"),
                    self._build_prompt(language),
                ],
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    response_mime_type="application/json",
                    response_schema=RESPONSE_SCHEMA,
                ),
            )
            suggestions = parse_suggestions(response.text)
        except Exception as e:
            logger.error("Suggestion request failed: %s", e)
            return fallback_suggestions(language)

        logger.info("Received %d suggestions", len(suggestions))
        return suggestions
