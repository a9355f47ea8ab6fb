"""
Meter photo OCR through the Gemini generateContent REST API.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Optional

import requests

from meterwatch.config import Config
from meterwatch.errors import CollaboratorFailure

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:([a-zA-Z0-9]+/[a-zA-Z0-9\-.+]+);base64,(.*)$", re.DOTALL)

PROMPT = (
    "Analyze the image of this industrial gas meter. Identify the large numeric "
    "digits on the counter. Return ONLY the number in JSON format."
)

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "value": {
            "type": "NUMBER",
            "description": "The numeric value read from the gas meter's counter.",
        }
    },
    "required": ["value"],
}


class OcrClient:
    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        self.api_key = config.GEMINI_API_KEY
        self.model = config.OCR_MODEL
        self.endpoint = config.OCR_ENDPOINT
        self.timeout = config.OCR_TIMEOUT
        self._http = session or requests.Session()

    def extract(self, data_url: str) -> dict:
        """
        Read the counter value from a base64 data URL.

        Never raises; any failure yields ``{"value": None}`` so the caller
        can fall back to manual entry.
        """
        try:
            return {"value": self._extract(data_url)}
        except CollaboratorFailure as exc:
            logger.error(f"OCR failed: {exc}")
        except Exception as exc:
            logger.error(f"OCR failed unexpectedly: {exc}", exc_info=True)
        return {"value": None}

    def _extract(self, data_url: str) -> Optional[float]:
        match = DATA_URL_PATTERN.match(data_url or "")
        if not match:
            raise CollaboratorFailure("Invalid base64 format")
        mime_type, data = match.group(1), match.group(2)

        if not self.api_key:
            raise CollaboratorFailure("GEMINI_API_KEY is not configured")

        body = {
            "contents": [{
                "parts": [
                    {"inline_data": {"mime_type": mime_type, "data": data}},
                    {"text": PROMPT},
                ]
            }],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

        try:
            response = self._http.post(
                self.endpoint.format(model=self.model),
                json=body,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise CollaboratorFailure(f"OCR request failed: {exc}") from exc

        text = _response_text(payload)
        if not text:
            return None
        try:
            parsed = json.loads(text)
        except ValueError as exc:
            raise CollaboratorFailure(f"OCR answer is not JSON: {text!r}") from exc

        value = parsed.get("value") if isinstance(parsed, dict) else None
        # bool is an int subclass; a true/false answer is not a reading
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)


def _response_text(payload: dict) -> Optional[str]:
    try:
        parts = payload["candidates"][0]["content"]["parts"]
    except (KeyError, IndexError, TypeError):
        return None
    return "".join(part.get("text", "") for part in parts if isinstance(part, dict)) or None
