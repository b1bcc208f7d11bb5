import base64
from io import BytesIO

import numpy as np
import pytest

from conftest import decode_png
from plotcrop.api_server import app


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def data_url_pixels(data_url):
    header, _, payload = data_url.partition(",")
    assert header == "data:image/png;base64"
    return decode_png(base64.b64decode(payload))


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


def test_crop_upload(client, small_plan_png):
    resp = client.post(
        "/api/crop",
        data={"image": (BytesIO(small_plan_png), "plan.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["success"] is True
    assert body["width"] < 300 and body["height"] < 240
    pixels = data_url_pixels(body["image"])
    assert pixels.shape[:2] == (body["height"], body["width"])


def test_crop_upload_with_mirroring_and_settings(client, small_plan_png):
    plain = client.post(
        "/api/crop",
        data={"image": (BytesIO(small_plan_png), "plan.png"), "inset_margin_px": "0"},
        content_type="multipart/form-data",
    ).get_json()
    flipped = client.post(
        "/api/crop",
        data={
            "image": (BytesIO(small_plan_png), "plan.png"),
            "inset_margin_px": "0",
            "mirror_x": "true",
            "mirror_y": "1",
        },
        content_type="multipart/form-data",
    ).get_json()
    assert (flipped["width"], flipped["height"]) == (plain["width"], plain["height"])
    assert np.array_equal(data_url_pixels(flipped["image"]), np.rot90(data_url_pixels(plain["image"]), 2))


def test_crop_json_data_url(client, small_plan_png):
    url = "data:image/png;base64," + base64.b64encode(small_plan_png).decode()
    resp = client.post("/api/crop", json={"image_url": url, "min_area_percent": 101})
    assert resp.status_code == 200
    body = resp.get_json()
    assert (body["width"], body["height"]) == (300, 240)


def test_crop_requires_image(client):
    resp = client.post("/api/crop", json={})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_crop_rejects_local_paths(client):
    resp = client.post("/api/crop", json={"image_url": "/etc/passwd"})
    assert resp.status_code == 400


def test_crop_rejects_disallowed_extension(client, small_plan_png):
    resp = client.post(
        "/api/crop",
        data={"image": (BytesIO(small_plan_png), "plan.exe")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400


def test_crop_rejects_bad_settings(client, small_plan_png):
    url = "data:image/png;base64," + base64.b64encode(small_plan_png).decode()
    resp = client.post("/api/crop", json={"image_url": url, "edge_low_threshold": 500})
    assert resp.status_code == 400


def test_crop_undecodable_image(client):
    resp = client.post(
        "/api/crop",
        data={"image": (BytesIO(b"not an image"), "plan.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 422
    assert resp.get_json()["success"] is False


def test_mirror_endpoint_keeps_size(client, small_plan_png, small_plan_pixels):
    resp = client.post(
        "/api/mirror",
        data={"image": (BytesIO(small_plan_png), "plan.png"), "mirror_x": "on"},
        content_type="multipart/form-data",
    )
    body = resp.get_json()
    assert (body["width"], body["height"]) == (300, 240)
    assert np.array_equal(data_url_pixels(body["image"]), small_plan_pixels[:, ::-1])


@pytest.mark.parametrize("value", [[5], {"px": 5}])
def test_crop_rejects_non_scalar_settings(client, small_plan_png, value):
    url = "data:image/png;base64," + base64.b64encode(small_plan_png).decode()
    resp = client.post("/api/crop", json={"image_url": url, "inset_margin_px": value})
    assert resp.status_code == 400
    assert "inset_margin_px" in resp.get_json()["message"]


def test_crop_caps_dilation_iterations(client, small_plan_png):
    url = "data:image/png;base64," + base64.b64encode(small_plan_png).decode()
    resp = client.post("/api/crop", json={"image_url": url, "dilation_iterations": 1000000})
    assert resp.status_code == 400
    assert "capped" in resp.get_json()["message"]

    resp = client.post("/api/crop", json={"image_url": url, "dilation_iterations": 2})
    assert resp.status_code == 200
