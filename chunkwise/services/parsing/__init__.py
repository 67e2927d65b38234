"""Document parsing: raw bytes of supported formats to plain text."""

from chunkwise.services.parsing.document_parser import (
    SUPPORTED_FILE_TYPES,
    DocumentParser,
    normalize_file_type,
)

__all__ = ["SUPPORTED_FILE_TYPES", "DocumentParser", "normalize_file_type"]
