"""Defensive parsing of provider responses into validated translation records."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from .types import ParsedTranslation

__all__ = ["extract_json_array", "parse_translations"]

logger = logging.getLogger(__name__)


def _first_embedded_array(content: str) -> list[Any] | None:
    """Find the first well-formed JSON array holding objects anywhere in the text."""
    decoder = json.JSONDecoder()
    start = content.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(content, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list) and (not value or any(isinstance(item, dict) for item in value)):
            return value
        start = content.find("[", start + 1)
    return None


def extract_json_array(content: str) -> list[Any]:
    """
    Pull the list of entries out of a model response.

    Attempts, in order: the whole response as a JSON array; a JSON object
    wrapping a single array; the first well-formed array embedded in prose
    or a markdown block. Anything else yields an empty list.
    """
    text = content.strip()
    if not text:
        return []

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Direct JSON parsing failed. Attempting to extract an array from the text.")
    else:
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for value in data.values():
                if isinstance(value, list):
                    return value

    embedded = _first_embedded_array(text)
    if embedded is None:
        logger.warning("Could not find a JSON array in the provider response.")
        return []
    return embedded


def parse_translations(content: str) -> list[ParsedTranslation]:
    """Parse a provider response, dropping every entry that fails validation."""
    results: list[ParsedTranslation] = []
    for item in extract_json_array(content):
        if not isinstance(item, dict):
            continue
        try:
            results.append(ParsedTranslation.model_validate(item))
        except ValidationError as e:  # noqa: PERF203
            logger.debug("Dropping malformed provider entry %r: %s", item, e)
    return results
