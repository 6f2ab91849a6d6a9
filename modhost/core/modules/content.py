"""Content validation for required module files

Checks are syntactic only: a file either exists, parses as JSON, or parses as
JSON once ``//`` and ``/* */`` comments are removed.
"""

import json
import logging
from typing import Any, Optional, Union

from modhost.core.modules.models import ValidationKind

logger = logging.getLogger(__name__)


def strip_comments(text: str) -> str:
    """
    Remove // line comments and /* */ block comments from a JSON document

    String literals are copied through untouched, so ``"http://x"`` or
    ``"/* keep */"`` survive. Line breaks ending a line comment are kept
    and a block comment becomes a single space, so it still separates tokens.

    Args:
        text: JSON-with-comments source

    Returns:
        Source with comments removed
    """
    out = []
    i = 0
    length = len(text)
    in_string = False

    while i < length:
        ch = text[i]

        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < length:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
            continue

        if ch == "/" and i + 1 < length:
            nxt = text[i + 1]
            if nxt == "/":
                end = text.find("\n", i + 2)
                if end == -1:
                    break
                i = end
                continue
            if nxt == "*":
                end = text.find("*/", i + 2)
                if end == -1:
                    # Unterminated block comment swallows the rest
                    break
                out.append(" ")
                i = end + 2
                continue

        out.append(ch)
        i += 1

    return "".join(out)


def _decode(data: Union[bytes, str]) -> Optional[str]:
    if isinstance(data, str):
        return data
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return None


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def _loads(text: str) -> Any:
    """json.loads without the NaN and Infinity extensions"""
    return json.loads(text, parse_constant=_reject_constant)


def is_json(text: str) -> bool:
    """True when text parses as a JSON document"""
    try:
        _loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return False
    return True


def load_jsonc(data: Union[bytes, str]) -> Any:
    """
    Parse a JSON-with-comments document

    Raises:
        ValueError: If the content is not decodable or not valid JSON
    """
    text = _decode(data)
    if text is None:
        raise ValueError("content is not valid UTF-8")
    return _loads(strip_comments(text))


def validate_content(kind: Union[ValidationKind, str], data: Union[bytes, str]) -> bool:
    """
    Check file content against a validation kind

    Args:
        kind: exists, json or jsonc
        data: File content as obtained from the archive or disk

    Returns:
        True when the content conforms
    """
    kind = ValidationKind(kind)

    if kind == ValidationKind.EXISTS:
        return True

    text = _decode(data)
    if text is None:
        logger.debug(f"Content is not UTF-8, rejecting as {kind.value}")
        return False

    if kind == ValidationKind.JSONC:
        text = strip_comments(text)

    return is_json(text)
