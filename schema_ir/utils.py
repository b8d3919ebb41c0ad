"""
Naming helpers shared by the emitters.
"""

import re

# Splits text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|[0-9]+")

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _split_words(text: str) -> list[str]:
    return _WORD_PATTERN.findall(text.replace("_", " ").replace("-", " "))


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, or space-separated text to PascalCase.

    Examples:
        "billing_address" -> "BillingAddress"
        "shippingAddress" -> "ShippingAddress"
        "line 2" -> "Line2"
    """
    if not text:
        return ""
    return "".join(word.capitalize() for word in _split_words(text) if word)


def to_upper_snake_case(text: str) -> str:
    """Convert any casing to UPPER_SNAKE_CASE.

    Examples:
        "in-progress" -> "IN_PROGRESS"
        "OrderStatus" -> "ORDER_STATUS"
        "42" -> "42"
    """
    return "_".join(word.upper() for word in _split_words(str(text)) if word)


def is_identifier(text: str) -> bool:
    """Return True if text can be used as a bare field name."""
    return bool(_IDENTIFIER_PATTERN.match(text))
