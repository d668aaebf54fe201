import unittest
from unittest.mock import MagicMock, AsyncMock, patch
import asyncio
import json

import aiohttp

from ecoscan.services.scanner.classifier import ClassificationClient, parse_classification
from ecoscan.services.scanner.errors import (
    MalformedResponse,
    NoFrameAvailable,
    ServiceFailure,
    TransportFailure,
)

PAYLOAD = {
    "waste_type": "plastic bottle",
    "category": "Recyclable",
    "bin": {"name": "Blue Bin", "color": "blue", "icon": "recycle"},
    "tip": "Empty and rinse.",
    "recyclable": True,
    "confidence": 0.88,
}


def mock_session_for(response=None, enter_error=None):
    # Context manager returned by session.post()
    post_ctx = MagicMock()
    if enter_error is not None:
        post_ctx.__aenter__.side_effect = enter_error
    else:
        post_ctx.__aenter__.return_value = response
    post_ctx.__aexit__.return_value = None

    mock_session = MagicMock()
    mock_session.post.return_value = post_ctx
    mock_session.__aenter__.return_value = mock_session
    mock_session.__aexit__.return_value = None
    return mock_session


def mock_response(status=200, payload=None):
    response = AsyncMock()
    response.status = status
    response.json.return_value = payload
    return response


class TestClassificationClient(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = ClassificationClient(url="http://classifier.test/predict", timeout=1.0)

    async def test_success(self):
        session = mock_session_for(mock_response(200, PAYLOAD))
        with patch('aiohttp.ClientSession', return_value=session):
            result = await self.client.classify(b"jpeg-bytes")

        self.assertEqual(result.waste_type, "plastic bottle")
        self.assertTrue(result.recyclable)
        self.assertEqual(result.confidence, 0.88)

        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "http://classifier.test/predict")
        self.assertIsInstance(kwargs['data'], aiohttp.FormData)
        self.assertEqual(session.post.call_count, 1)

    async def test_empty_frame_issues_no_request(self):
        with patch('aiohttp.ClientSession') as session_cls:
            with self.assertRaises(NoFrameAvailable):
                await self.client.classify(b"")
            session_cls.assert_not_called()

    async def test_non_2xx_is_service_failure(self):
        session = mock_session_for(mock_response(503))
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(ServiceFailure) as cm:
                await self.client.classify(b"jpeg-bytes")
        self.assertEqual(cm.exception.status, 503)

    async def test_connection_error_is_transport_failure(self):
        session = mock_session_for(enter_error=aiohttp.ClientConnectionError("refused"))
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(TransportFailure):
                await self.client.classify(b"jpeg-bytes")

    async def test_timeout_is_transport_failure(self):
        session = mock_session_for(enter_error=asyncio.TimeoutError())
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(TransportFailure) as cm:
                await self.client.classify(b"jpeg-bytes")
        self.assertIn("timed out", str(cm.exception))

    async def test_invalid_json_is_malformed(self):
        response = mock_response(200)
        response.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)
        session = mock_session_for(response)
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(MalformedResponse):
                await self.client.classify(b"jpeg-bytes")

    async def test_missing_fields_is_malformed(self):
        payload = dict(PAYLOAD)
        del payload["recyclable"]
        session = mock_session_for(mock_response(200, payload))
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(MalformedResponse) as cm:
                await self.client.classify(b"jpeg-bytes")
        self.assertIn("recyclable", str(cm.exception))

    async def test_no_internal_retry(self):
        session = mock_session_for(mock_response(500))
        with patch('aiohttp.ClientSession', return_value=session):
            with self.assertRaises(ServiceFailure):
                await self.client.classify(b"jpeg-bytes")
        self.assertEqual(session.post.call_count, 1)


class TestParseClassification(unittest.TestCase):
    def test_non_object_body(self):
        with self.assertRaises(MalformedResponse):
            parse_classification(["plastic"])

    def test_plain_bin_string(self):
        payload = dict(PAYLOAD, bin="Green Bin")
        self.assertEqual(parse_classification(payload).bin.icon, "leaf")


if __name__ == '__main__':
    unittest.main()
