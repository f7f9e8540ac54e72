"""HTTP face detector against a local aiohttp analysis endpoint."""
import asyncio

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from attention_backend.services.detector import DetectorError, HttpFaceDetector
from attention_backend.types import EncodedImage

IMAGE = EncodedImage(data=b"\xff\xd8fake-jpeg\xff\xd9")

ANALYSIS = {
    "raw": {},
    "processed": {
        "facesDetected": 1,
        "faces": [{
            "confidence": 99.1,
            "headPose": {"yaw": 30.0, "pitch": 1.0, "roll": 0.0},
            "eyeDirection": {"yaw": 2.0, "pitch": 1.0, "confidence": 80.0},
        }],
    },
}


async def _detect(handler, image=IMAGE, **kwargs):
    app = web.Application()
    app.router.add_post("/api/analyze", handler)
    async with TestServer(app) as server:
        detector = HttpFaceDetector(str(server.make_url("/api/analyze")), **kwargs)
        try:
            return await detector.detect(image)
        finally:
            await detector.close()


def test_uploads_image_and_parses_faces():
    received = {}

    async def handler(request):
        form = await request.post()
        field = form["image"]
        received["filename"] = field.filename
        received["content_type"] = field.content_type
        received["data"] = field.file.read()
        return web.json_response(ANALYSIS)

    result = asyncio.run(_detect(handler))

    assert received == {
        "filename": "capture.jpg",
        "content_type": "image/jpeg",
        "data": IMAGE.data,
    }
    assert result.faces_detected == 1
    assert result.first_face.head_pose.yaw == pytest.approx(30.0)


def test_error_response_raises_with_details():
    async def handler(request):
        return web.json_response(
            {"error": "Failed to analyze image", "details": "provider unavailable"},
            status=500,
        )

    with pytest.raises(DetectorError) as excinfo:
        asyncio.run(_detect(handler))

    assert excinfo.value.status == 500
    assert excinfo.value.details == "provider unavailable"
    assert str(excinfo.value) == "Failed to analyze image"


def test_non_json_error_body():
    async def handler(request):
        return web.Response(text="Bad gateway", status=502)

    with pytest.raises(DetectorError) as excinfo:
        asyncio.run(_detect(handler))

    assert excinfo.value.status == 502
    assert excinfo.value.details == "Bad gateway"


def test_malformed_success_body():
    async def handler(request):
        return web.json_response({"processed": {"faces": [{"headPose": {"yaw": 1}}]}})

    with pytest.raises(DetectorError):
        asyncio.run(_detect(handler))


def test_oversized_image_rejected_before_upload():
    calls = []

    async def handler(request):
        calls.append(1)
        return web.json_response(ANALYSIS)

    with pytest.raises(DetectorError) as excinfo:
        asyncio.run(_detect(handler, image=EncodedImage(data=b"x" * 11), max_image_bytes=10))

    assert excinfo.value.status == 400
    assert calls == []


def test_timeout_becomes_detector_error():
    async def handler(request):
        await asyncio.sleep(0.5)
        return web.json_response(ANALYSIS)

    with pytest.raises(DetectorError):
        asyncio.run(_detect(handler, timeout_seconds=0.05))


def test_connection_failure_becomes_detector_error():
    async def scenario():
        detector = HttpFaceDetector("http://127.0.0.1:9/api/analyze", timeout_seconds=2)
        try:
            await detector.detect(IMAGE)
        finally:
            await detector.close()

    with pytest.raises(DetectorError):
        asyncio.run(scenario())
