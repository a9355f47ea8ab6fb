"""
Tests for the OCR collaborator. No network: the HTTP session is mocked.
"""
from unittest import mock

import requests

from meterwatch.services.ocr import OcrClient
from tests.factories import IsolatedConfig

IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRg=="


def gemini_answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def client_with(response_json=None, side_effect=None, config=IsolatedConfig):
    http = mock.Mock(spec=requests.Session)
    if side_effect is not None:
        http.post.side_effect = side_effect
    else:
        http.post.return_value.json.return_value = response_json
    return OcrClient(config, session=http), http


class TestOcrClient:
    def test_reads_value(self):
        client, http = client_with(gemini_answer('{"value": 12345.6}'))
        assert client.extract(IMAGE) == {"value": 12345.6}

        _, kwargs = http.post.call_args
        inline = kwargs["json"]["contents"][0]["parts"][0]["inline_data"]
        assert inline == {"mime_type": "image/jpeg", "data": "/9j/4AAQSkZJRg=="}
        assert kwargs["headers"]["x-goog-api-key"] == "test-key"

    def test_invalid_data_url(self):
        client, http = client_with(gemini_answer('{"value": 1}'))
        assert client.extract("not-a-data-url") == {"value": None}
        http.post.assert_not_called()

    def test_timeout(self):
        client, _ = client_with(side_effect=requests.Timeout("slow"))
        assert client.extract(IMAGE) == {"value": None}

    def test_http_error(self):
        client, http = client_with(gemini_answer('{"value": 1}'))
        http.post.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        assert client.extract(IMAGE) == {"value": None}

    def test_non_numeric_answer(self):
        client, _ = client_with(gemini_answer('{"value": "unreadable"}'))
        assert client.extract(IMAGE) == {"value": None}

    def test_garbage_answer(self):
        client, _ = client_with(gemini_answer('the number is 42'))
        assert client.extract(IMAGE) == {"value": None}

    def test_empty_answer(self):
        client, _ = client_with({"candidates": []})
        assert client.extract(IMAGE) == {"value": None}

    def test_missing_api_key(self):
        class NoKeyConfig(IsolatedConfig):
            GEMINI_API_KEY = None

        client, http = client_with(gemini_answer('{"value": 1}'), config=NoKeyConfig)
        assert client.extract(IMAGE) == {"value": None}
        http.post.assert_not_called()
