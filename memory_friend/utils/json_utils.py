"""
JSON utilities for cleaning LLM responses.
"""

import json
from typing import Any


def clean_json_response(response: str) -> str:
    """Clean LLM response by removing Markdown code fence markers.

    Handles both ```json and bare ``` fences, with or without a trailing fence.

    Args:
        response: Raw LLM response

    Returns:
        Cleaned JSON string
    """
    response = response.strip()

    # Remove the opening fence and any language tag on the same line
    if response.startswith('```'):
        first_newline = response.find('\n')
        response = response[first_newline + 1:] if first_newline != -1 else response[3:]
        if response.lower().startswith('json'):
            response = response[4:]

    if response.endswith('```'):
        response = response[:-3]

    return response.strip()


def parse_json_response(response: str) -> Any:
    """Strip fences and decode an LLM response.

    Raises:
        json.JSONDecodeError: If the cleaned text is not valid JSON
    """
    return json.loads(clean_json_response(response))
