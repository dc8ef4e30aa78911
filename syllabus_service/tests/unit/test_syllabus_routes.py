import unittest
from unittest.mock import AsyncMock, patch

from fastapi import HTTPException
from fastapi.responses import StreamingResponse

from syllabus_ingest.api.v1.routes.syllabi import (
    _format_sse,
    extract_syllabus_text,
    handle_extract_request,
    handle_ingest_request,
    ingest_syllabus,
    ingest_syllabus_stream,
)
from syllabus_ingest.main import app, ingest_syllabus_legacy
from syllabus_ingest.schemas.requests import ExtractTextRequest, SyllabusIngestRequest
from syllabus_ingest.schemas.shared import PdfFile

SAMPLE_RESULT = {
    "snapshot": {"stage": "complete", "progressPercent": 100, "errors": [], "warnings": []},
    "summary": {"tasksCreated": 3, "averageConfidence": 0.85, "warnings": []},
    "extraction": None,
}


class TestSyllabusRoutes(unittest.IsolatedAsyncioTestCase):
    def _build_request(self):
        return SyllabusIngestRequest(
            user_id="user-1",
            class_id="class-1",
            file=PdfFile(filename="syllabus.pdf", base64_data="JVBERi0xLjQ="),
        )

    async def test_handle_ingest_request_success(self):
        req = self._build_request()

        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.run_ingestion_workflow",
            new=AsyncMock(return_value=SAMPLE_RESULT),
        ) as mock_workflow:
            result = await handle_ingest_request(req, route_path="/api/v1/syllabi/ingest")

        self.assertEqual(result, SAMPLE_RESULT)
        mock_workflow.assert_awaited_once_with(req, route_path="/api/v1/syllabi/ingest")

    async def test_handle_ingest_request_maps_exceptions_to_http_500(self):
        req = self._build_request()

        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.run_ingestion_workflow",
            new=AsyncMock(side_effect=RuntimeError("boom")),
        ):
            with self.assertRaises(HTTPException) as exc:
                await handle_ingest_request(req, route_path="/api/v1/syllabi/ingest")

        self.assertEqual(exc.exception.status_code, 500)
        self.assertEqual(exc.exception.detail, "boom")

    async def test_handle_ingest_request_maps_bad_payload_to_http_400(self):
        req = self._build_request()

        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.run_ingestion_workflow",
            new=AsyncMock(side_effect=ValueError("File payload is not valid base64")),
        ):
            with self.assertRaises(HTTPException) as exc:
                await handle_ingest_request(req, route_path="/api/v1/syllabi/ingest")

        self.assertEqual(exc.exception.status_code, 400)

    async def test_ingest_syllabus_forwards_expected_route_path(self):
        req = self._build_request()

        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.handle_ingest_request",
            new=AsyncMock(return_value=SAMPLE_RESULT),
        ) as mock_handler:
            result = await ingest_syllabus(req)

        self.assertEqual(result, SAMPLE_RESULT)
        mock_handler.assert_awaited_once_with(req, route_path="/api/v1/syllabi/ingest")

    async def test_legacy_ingest_route_forwards_expected_route_path(self):
        req = self._build_request()

        with patch(
            "syllabus_ingest.main.handle_ingest_request",
            new=AsyncMock(return_value=SAMPLE_RESULT),
        ) as mock_handler:
            result = await ingest_syllabus_legacy(req)

        self.assertEqual(result, SAMPLE_RESULT)
        mock_handler.assert_awaited_once_with(req, route_path="/ingest-syllabus")

    async def test_stream_route_returns_event_stream(self):
        async def fake_stream(req, route_path):
            yield {"event": "pipeline.started", "data": {"stage": "select"}}

        with patch("syllabus_ingest.api.v1.routes.syllabi.stream_ingestion_workflow", new=fake_stream):
            response = ingest_syllabus_stream(self._build_request())
            chunks = [chunk async for chunk in response.body_iterator]

        self.assertIsInstance(response, StreamingResponse)
        self.assertEqual(response.media_type, "text/event-stream")
        self.assertEqual(chunks, ['id: 1\nevent: pipeline.started\ndata: {"stage": "select"}\n\n'])


class TestExtractRoute(unittest.TestCase):
    def test_extract_route_forwards_expected_route_path(self):
        req = ExtractTextRequest(text="Homework 1 due 2/1")

        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.handle_extract_request",
            return_value={"assignments": []},
        ) as mock_handler:
            result = extract_syllabus_text(req)

        self.assertEqual(result, {"assignments": []})
        mock_handler.assert_called_once_with(req, route_path="/api/v1/syllabi/extract")

    def test_handle_extract_request_maps_exceptions_to_http_500(self):
        with patch(
            "syllabus_ingest.api.v1.routes.syllabi.extract_text_workflow",
            side_effect=RuntimeError("engine failure"),
        ):
            with self.assertRaises(HTTPException) as exc:
                handle_extract_request(ExtractTextRequest(text="x"), route_path="/api/v1/syllabi/extract")

        self.assertEqual(exc.exception.status_code, 500)
        self.assertEqual(exc.exception.detail, "engine failure")

    def test_format_sse(self):
        self.assertEqual(
            _format_sse("pipeline.stage", {"stage": "upload"}, 3),
            'id: 3\nevent: pipeline.stage\ndata: {"stage": "upload"}\n\n',
        )

    def test_syllabus_routes_are_registered(self):
        route_paths = set(app.openapi()["paths"])
        self.assertIn("/ingest-syllabus", route_paths)
        self.assertIn("/api/v1/syllabi/ingest", route_paths)
        self.assertIn("/api/v1/syllabi/ingest/stream", route_paths)
        self.assertIn("/api/v1/syllabi/extract", route_paths)


if __name__ == "__main__":
    unittest.main()
