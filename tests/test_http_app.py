# tests/test_http_app.py
"""Tests for imager/transport/http_app.py: endpoints and error mapping."""
from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from imager.infra.codec import PillowCodec
from imager.transport import http_app
from tests.helpers import decode, oriented_jpeg


@pytest.fixture
def client():
    return TestClient(http_app.app, raise_server_exceptions=False)


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy"}
        assert "X-Request-ID" in resp.headers


class TestThumbnailEndpoint:
    def test_fit_inside(self, client, watermelon_jpeg):
        resp = client.post("/thumbnail?width=200&height=300", content=watermelon_jpeg)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/jpeg"
        assert decode(resp.content).size == (200, 269)

    def test_fill(self, client, watermelon_jpeg):
        resp = client.post("/thumbnail?width=200&height=300&fit=false", content=watermelon_jpeg)
        assert resp.status_code == 200
        assert decode(resp.content).size == (223, 300)

    def test_gif_served_as_png(self, client, tiny_gif):
        resp = client.post("/thumbnail?width=100&height=100", content=tiny_gif)
        assert resp.status_code == 200
        assert resp.headers["content-type"] == "image/png"

    def test_missing_dimensions(self, client, watermelon_jpeg):
        resp = client.post("/thumbnail?width=200", content=watermelon_jpeg)
        assert resp.status_code == 422

    def test_zero_dimension(self, client, watermelon_jpeg):
        resp = client.post("/thumbnail?width=0&height=10", content=watermelon_jpeg)
        assert resp.status_code == 422


class TestCropEndpoint:
    def test_crop(self, client, watermelon_jpeg):
        resp = client.post("/crop?width=300&height=400", content=watermelon_jpeg)
        assert resp.status_code == 200
        assert decode(resp.content).size == (300, 400)

    def test_crop_clamped(self, client, watermelon_jpeg):
        resp = client.post("/crop?width=2000&height=1500", content=watermelon_jpeg)
        assert resp.status_code == 200
        assert decode(resp.content).size == (398, 299)


class TestInfoEndpoint:
    def test_info(self, client):
        resp = client.post("/info", content=oriented_jpeg(6))
        assert resp.status_code == 200
        assert resp.json() == {
            "width": 48,
            "height": 80,
            "input_format": "JPEG",
            "output_format": "JPEG",
            "orientation": 6,
        }


class TestErrorMapping:
    def test_not_an_image(self, client):
        resp = client.post("/thumbnail?width=10&height=10", content=b"plain text, not pixels")
        assert resp.status_code == 415
        assert "error" in resp.json()

    def test_degenerate_image(self, client, png_1px):
        resp = client.post("/info", content=png_1px)
        assert resp.status_code == 415

    def test_over_pixel_budget(self, client, watermelon_jpeg):
        with patch.object(http_app.settings, "max_buffer_pixels", 1000):
            resp = client.post("/thumbnail?width=10&height=10", content=watermelon_jpeg)
        assert resp.status_code == 413

    def test_over_upload_limit(self, client, watermelon_jpeg):
        with patch.object(http_app.settings, "max_upload_bytes", 100):
            resp = client.post("/thumbnail?width=10&height=10", content=watermelon_jpeg)
        assert resp.status_code == 413
        assert "exceeds limit" in resp.json()["error"]

    def test_encode_failure(self, client, watermelon_jpeg):
        with patch.object(PillowCodec, "_flatten_for_jpeg", side_effect=OSError("disk full")):
            resp = client.post("/thumbnail?width=10&height=10", content=watermelon_jpeg)
        assert resp.status_code == 500
        assert "error" in resp.json()


class TestOpenAPI:
    def test_error_bodies_documented(self, client):
        resp = client.get("/openapi.json")
        assert resp.status_code == 200
        responses = resp.json()["paths"]["/thumbnail"]["post"]["responses"]
        assert {"413", "415", "500"} <= set(responses)


class TestRequestLogging:
    def test_derivation_logged_with_image_context(self, client, watermelon_jpeg, caplog):
        with caplog.at_level("INFO", logger="imager.transport.http_app"):
            resp = client.post(
                "/crop?width=100&height=100",
                content=watermelon_jpeg,
                headers={"X-Request-ID": "req-crop-1"},
            )
        assert resp.status_code == 200
        records = [r for r in caplog.records if r.name == "imager.transport.http_app"]
        derived = [r for r in records if r.getMessage().startswith("Derived")]
        assert len(derived) == 1
        assert derived[0].request_id == "req-crop-1"
        assert derived[0].operation == "crop"
        assert derived[0].output_bytes == len(resp.content)
        assert len(derived[0].image_id) == 12
        assert {r.image_id for r in records if hasattr(r, "image_id")} == {derived[0].image_id}
