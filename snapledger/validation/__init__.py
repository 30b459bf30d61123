"""Draft review package."""

from snapledger.validation.validator import ReceiptValidator

__all__ = ["ReceiptValidator"]
