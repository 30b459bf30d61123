"""
Receipt Extraction Service using Gemini

DESIGN DECISION: We send the photo straight to a multimodal model with a
fixed JSON response schema instead of running OCR and parsing text:
1. Only three fields are needed (store, date, total)
2. The model handles skewed, crumpled and handwritten receipts
3. The response schema gives us structured data, not prose

This service handles:
1. Checking the image before anything goes over the network
2. Sending ONE request with the image, the instructions and the schema
3. Validating the response at the boundary (see parse_extraction_response)

CRITICAL: There is no retry here and no best-effort guessing. A call
either returns a fully validated ReceiptData or raises. Deciding what to
do on failure is the caller's job (see FallbackPolicy).
"""

import asyncio
from datetime import date
from typing import Any, Callable, Optional

import google.generativeai as genai
from pydantic import ValidationError

from snapledger.config import AppSettings, GeminiSettings, get_settings
from snapledger.models.receipt import (
    EXTRACTION_RESPONSE_SCHEMA,
    UNKNOWN_STORE,
    ExtractionResponse,
    ReceiptData,
)


class ReceiptExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class ConfigurationError(ReceiptExtractionError):
    """
    Extraction is not configured (no API key).

    Not recoverable for the rest of the session.
    """
    pass


class ExtractionError(ReceiptExtractionError):
    """The service could not be reached or returned an unusable response."""
    pass


def build_extraction_prompt(today: date) -> str:
    """
    Instructions sent alongside the image.

    The defaulting rules live here so the model fills in every required
    field instead of failing the schema.
    """
    return (
        "Analyze this receipt image. Extract the store name, the date "
        "(in YYYY-MM-DD format) and the total amount.\n"
        f"If the year is missing, assume the current year is {today.year}.\n"
        f'If the store name is unclear, use "{UNKNOWN_STORE}".\n'
        f"If the date is unclear, use today's date: {today.isoformat()}.\n"
        "Ensure the amount is a number."
    )


def parse_extraction_response(text: Optional[str]) -> ReceiptData:
    """
    Validate raw response text against the extraction schema.

    This is the only way service output becomes a ReceiptData.

    Raises:
        ExtractionError: If the text is empty, is not JSON, or does not
            match the schema (including impossible dates)
    """
    if text is None or not text.strip():
        raise ExtractionError("No response text received from the extraction service")

    try:
        response = ExtractionResponse.model_validate_json(text)
        return response.to_receipt()
    except ValidationError as e:
        raise ExtractionError(
            f"Extraction response did not match the expected schema "
            f"({e.error_count()} errors)"
        ) from e


class GeminiReceiptExtractor:
    """
    Extraction port backed by Gemini.

    IMPORTANT BOUNDARIES:
    1. One request per extract() call, never retried
    2. Every call is bounded by the configured timeout
    3. Returns validated data or raises ConfigurationError / ExtractionError
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        app_settings: Optional[AppSettings] = None,
        model: Optional[Any] = None,
        today: Callable[[], date] = date.today,
    ):
        """
        Args:
            settings: Gemini settings (loaded from the environment if None)
            app_settings: Upload limits (loaded from the environment if None)
            model: Pre-built model object exposing generate_content_async;
                   tests pass a fake here
            today: Source of the current date for the prompt
        """
        self._settings = settings or get_settings().gemini
        self._app_settings = app_settings or get_settings().app
        self._model = model
        self._today = today

    @property
    def is_configured(self) -> bool:
        return self._model is not None or self._settings.api_key is not None

    def _get_model(self) -> Any:
        """Get or create the Gemini model."""
        if self._model is None:
            if self._settings.api_key is None:
                raise ConfigurationError(
                    "GEMINI_API_KEY is not set; receipt reading is unavailable"
                )
            genai.configure(api_key=self._settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=self._settings.model_name,
                generation_config={
                    "temperature": self._settings.temperature,
                    "max_output_tokens": self._settings.max_tokens,
                    "response_mime_type": "application/json",
                    "response_schema": EXTRACTION_RESPONSE_SCHEMA,
                },
            )
        return self._model

    def _check_image(self, image_bytes: bytes, mime_type: str) -> str:
        if not image_bytes:
            raise ExtractionError("Image is empty")

        if len(image_bytes) > self._app_settings.max_upload_size_bytes:
            raise ExtractionError(
                f"Image is larger than {self._app_settings.max_upload_size_mb} MB"
            )

        normalized = (mime_type or "").strip().lower()
        if normalized not in self._app_settings.supported_formats_list:
            raise ExtractionError(
                f"Unsupported image type: {mime_type!r}. "
                f"Allowed: {', '.join(self._app_settings.supported_formats_list)}"
            )
        return normalized

    async def extract(self, image_bytes: bytes, mime_type: str) -> ReceiptData:
        """
        Read store name, date and total from a receipt photo.

        Args:
            image_bytes: Raw image payload
            mime_type: MIME type of the payload (e.g. image/jpeg)

        Returns:
            Validated ReceiptData

        Raises:
            ConfigurationError: If no API key is configured
            ExtractionError: On bad input, transport/service failure,
                timeout, or a response that fails validation
        """
        try:
            model = self._get_model()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not set up the extraction model: {e}") from e

        mime_type = self._check_image(image_bytes, mime_type)

        timeout = self._settings.extraction_timeout_seconds
        contents = [
            {"mime_type": mime_type, "data": image_bytes},
            build_extraction_prompt(self._today()),
        ]

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    contents,
                    request_options={"timeout": timeout},
                ),
                timeout=timeout,
            )
            text = response.text
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Extraction timed out after {timeout:g}s") from e
        except Exception as e:
            raise ExtractionError(f"Failed to analyze receipt: {e}") from e

        return parse_extraction_response(text)
