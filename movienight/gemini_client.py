"""
Gemini generateContent calls with a declared JSON response schema.
"""

import logging

import requests

from .errors import ExternalServiceError, ServiceNotConfiguredError

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

MOVIE_LIST_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING"},
            "year": {"type": "INTEGER"},
        },
        "required": ["title", "year"],
    },
}

GENRE_LIST_SCHEMA = {"type": "ARRAY", "items": {"type": "STRING"}}


def build_payload(prompt, schema):
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": schema,
        },
    }


def _error_message(response):
    try:
        body = response.json()
    except ValueError:
        return f"API request failed ({response.status_code})"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return f"API request failed ({response.status_code})"


def generate(prompt, schema, api_key, model="gemini-2.0-flash", timeout=30.0):
    """
    Send one prompt to Gemini and return the text of the first candidate.

    Args:
        prompt: Natural-language instruction
        schema: Gemini responseSchema the answer must follow
        api_key: Gemini API key
        model: Model name
        timeout: Seconds before the request is abandoned

    Returns:
        The raw text payload, which should itself be JSON

    Raises:
        ServiceNotConfiguredError: no API key
        ExternalServiceError: transport failure, non-2xx or unexpected body
    """
    if not api_key:
        raise ServiceNotConfiguredError("The suggestion service is not configured: GEMINI_API_KEY is missing.")

    url = GEMINI_URL.format(model=model)
    try:
        response = requests.post(
            url,
            params={"key": api_key},
            json=build_payload(prompt, schema),
            timeout=timeout,
        )
    except requests.RequestException as e:
        logger.error("Gemini request failed: %s", e)
        raise ExternalServiceError(f"The suggestion service failed: {e}. Please try again later.") from e

    if not response.ok:
        message = _error_message(response)
        logger.error("Gemini returned %s: %s", response.status_code, message)
        raise ExternalServiceError(f"The suggestion service failed: {message}. Please try again later.")

    try:
        result = response.json()
        return result["candidates"][0]["content"]["parts"][0]["text"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        logger.error("Unexpected Gemini response body: %s", e)
        raise ExternalServiceError("The suggestion service returned an unexpected response. Please try again.") from e
