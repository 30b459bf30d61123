"""Receipt extraction package."""

from snapledger.services.extraction.gemini_service import (
    ConfigurationError,
    ExtractionError,
    GeminiReceiptExtractor,
    ReceiptExtractionError,
    build_extraction_prompt,
    parse_extraction_response,
)
from snapledger.services.extraction.fallback import FallbackPolicy

__all__ = [
    "ConfigurationError",
    "ExtractionError",
    "FallbackPolicy",
    "GeminiReceiptExtractor",
    "ReceiptExtractionError",
    "build_extraction_prompt",
    "parse_extraction_response",
]
