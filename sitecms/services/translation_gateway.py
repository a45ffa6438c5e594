"""
Translation Gateway

Wraps the external machine-translation provider behind one call:
``translate(title, content, target_language) -> TranslatedText``.

The provider's output is untrusted text. It is parsed into the strict
``TranslatedText`` model and any shape mismatch is a hard failure; the
gateway never coerces or partially accepts a response. HTML structure is
preserved by instructing the provider to translate visible text only and
by requesting a strict JSON output schema.
"""

import asyncio
import json
import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from sitecms.config import settings
from sitecms.exceptions import TranslationError
from sitecms.i18n.languages import PROMPT_LANGUAGE_NAMES

logger = logging.getLogger(__name__)

# Output schema in the provider's schema dialect
TRANSLATION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING"},
        "content": {"type": "STRING"},
    },
    "required": ["title", "content"],
}

PROMPT_TEMPLATE = """You are a professional translator and editor for a news portal.
Translate the following {source} article to {target} with a professional, neutral newsroom tone.

Rules:
1. Preserve all HTML tags (<p>, <b>, etc.), their attributes and structure exactly. Translate only the visible text content inside tags.
2. Do not add commentary.
3. Return valid JSON exactly matching this structure:
{{
  "title": "Translated Title string",
  "content": "Translated HTML content string"
}}

Input Data:
Title: {title}
Content: {content}
"""

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\s*```$")


class TranslatedText(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class ProviderError(Exception):
    """Raised by providers when the upstream call fails; the message is the diagnostic."""


class TranslationProvider:
    """Contract for machine-translation backends."""

    name = "provider"

    async def generate(self, prompt: str, output_schema: dict[str, Any]) -> str | dict:
        """Return the provider output: raw text or an already-decoded JSON object."""
        raise NotImplementedError


class GeminiProvider(TranslationProvider):
    """Google Gemini ``generateContent`` over its REST API."""

    name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.translation_timeout_seconds
        self.transport = transport

    async def generate(self, prompt: str, output_schema: dict[str, Any]) -> str:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": output_schema,
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload, headers={"x-goog-api-key": self.api_key})
                response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderError(f"request to {self.model} timed out") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(f"{self.model} returned HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise ProviderError(f"request to {self.model} failed: {e}") from e

        try:
            data = response.json()
            parts = data["candidates"][0]["content"]["parts"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"unexpected response envelope from {self.model}") from e

        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` (or bare ```) wrapper."""
    text = _FENCE_OPEN.sub("", text.strip())
    return _FENCE_CLOSE.sub("", text).strip()


def parse_translation(raw: str | dict | None, target_language: str) -> TranslatedText:
    """Parse provider output into ``TranslatedText`` or raise ``TranslationError``."""
    if isinstance(raw, dict):
        data = raw
    else:
        text = (raw or "").strip()
        if not text:
            raise TranslationError(target_language, "provider returned an empty response")
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            try:
                data = json.loads(strip_code_fences(text))
            except json.JSONDecodeError as e:
                raise TranslationError(target_language, f"response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise TranslationError(target_language, "response is not a JSON object")

    try:
        return TranslatedText.model_validate(data)
    except PydanticValidationError as e:
        logger.warning("Translation response format invalid for '%s': %s", target_language, sorted(data))
        raise TranslationError(target_language, "response is missing the title/content fields") from e


def build_prompt(title: str, content: str, source_language: str, target_language: str) -> str:
    return PROMPT_TEMPLATE.format(
        source=PROMPT_LANGUAGE_NAMES.get(source_language, source_language),
        target=PROMPT_LANGUAGE_NAMES.get(target_language, target_language),
        title=title,
        content=content,
    )


class TranslationGateway:
    """Translates publication title and content into one target language."""

    def __init__(
        self,
        provider: TranslationProvider | None,
        timeout: float | None = None,
        source_language: str | None = None,
    ):
        self.provider = provider
        self.timeout = timeout if timeout is not None else settings.translation_timeout_seconds
        self.source_language = source_language or settings.default_language

    async def translate(self, title: str, content: str, target_language: str) -> TranslatedText:
        """
        Translate a title/content pair.

        Args:
            title: Title in the source language
            content: HTML content in the source language
            target_language: Language code to translate into

        Returns:
            TranslatedText with both fields present

        Raises:
            TranslationError: missing credential, timeout, upstream failure,
                or output that does not match the required shape
        """
        if self.provider is None:
            logger.error("Translation provider credential is missing (GEMINI_API_KEY)")
            raise TranslationError(target_language, "translation provider credential is not configured")

        prompt = build_prompt(title, content, self.source_language, target_language)
        try:
            raw = await asyncio.wait_for(
                self.provider.generate(prompt, TRANSLATION_SCHEMA),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                "Translation to '%s' timed out after %ss (provider=%s)",
                target_language,
                self.timeout,
                self.provider.name,
            )
            raise TranslationError(target_language, f"provider timed out after {self.timeout}s") from None
        except ProviderError as e:
            logger.error(
                "Translation to '%s' failed (provider=%s): %s",
                target_language,
                self.provider.name,
                e,
            )
            raise TranslationError(target_language, str(e)) from e

        translated = parse_translation(raw, target_language)
        logger.info("Translated publication to '%s' (provider=%s)", target_language, self.provider.name)
        return translated


def get_translation_gateway() -> TranslationGateway:
    """Build the gateway from settings; without an API key every call fails fast."""
    provider = GeminiProvider(settings.gemini_api_key) if settings.gemini_api_key else None
    return TranslationGateway(provider)
