"""
Parsers for Bruno file formats.
"""

from .bru import (
    BODY_TYPES,
    HTTP_METHODS,
    BruFileParser,
    parse_basic_info,
    parse_environment_variables,
    parse_request,
)

__all__ = [
    "BODY_TYPES",
    "HTTP_METHODS",
    "BruFileParser",
    "parse_basic_info",
    "parse_environment_variables",
    "parse_request",
]
