"""
Parsing of raw model text into StructuredReview
"""

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from codereviewer.exceptions import ErrorKind, ProviderRequestFailed
from codereviewer.models.review_models import StructuredReview

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```[A-Za-z0-9_-]*\s*")
_CLOSING_FENCE = re.compile(r"\s*```$")


def strip_code_fences(text: str) -> str:
    """Remove the outer ```json ... ``` wrapper some models add anyway.

    Only the outermost fence is removed, so fenced snippets inside string
    values (for example an issue's ``fix``) survive.
    """
    cleaned = _OPENING_FENCE.sub("", text.strip())
    return _CLOSING_FENCE.sub("", cleaned.strip()).strip()


def parse_review(
    raw: str,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> StructuredReview:
    """Parse a backend response into a StructuredReview

    Raises:
        ProviderRequestFailed: with kind PARSE when the text is not a JSON object
    """
    cleaned = strip_code_fences(raw or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(
            f"Failed to parse {provider or 'model'} response as JSON: {cleaned[:200]}"
        )
        raise ProviderRequestFailed(
            message=f"Model returned invalid JSON: {e.msg}",
            provider=provider,
            model=model,
            kind=ErrorKind.PARSE,
            original_error=e,
        )

    if not isinstance(data, dict):
        raise ProviderRequestFailed(
            message=f"Model returned JSON {type(data).__name__}, expected an object",
            provider=provider,
            model=model,
            kind=ErrorKind.PARSE,
        )

    try:
        return StructuredReview.model_validate(data)
    except ValidationError as e:
        raise ProviderRequestFailed(
            message="Model response does not match the review format",
            provider=provider,
            model=model,
            kind=ErrorKind.PARSE,
            original_error=e,
        )
