"""Variable scope, substitution and extraction."""

from .extraction import (
    ExtractionResult,
    extract_variables,
    preview_extraction,
    validate_json_path,
)
from .scope import get_available_variables
from .substitution import (
    extract_variable_references,
    substitute,
    validate_variable_references,
)

__all__ = [
    "ExtractionResult",
    "extract_variables",
    "preview_extraction",
    "validate_json_path",
    "get_available_variables",
    "extract_variable_references",
    "substitute",
    "validate_variable_references",
]
