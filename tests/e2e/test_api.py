import io

import pytest
from httpx import AsyncClient, ASGITransport
from PIL import Image

from src.api.dependencies import get_image_service
from src.main import app

CROP = {"action": "crop", "params": {"x": 10, "y": 10, "width": 40, "height": 30}}
TO_PNG = {"action": "convert", "params": {"format": "png"}}


async def upload(client, image_bytes, image_factory, fmt="JPEG", filename="photo.jpg"):
    data = image_bytes(image_factory(), fmt)
    response = await client.post(
        "/api/v1/images",
        files={"file": (filename, data, "application/octet-stream")}
    )
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_root_lists_actions(client):
    response = await client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["actions"] == ["convert", "crop", "resize"]
    assert data["max_actions"] == 5


@pytest.mark.asyncio
async def test_ready(client):
    response = await client.get("/ready")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] is True


@pytest.mark.asyncio
async def test_upload_image(client, image_bytes, image_factory):
    data = await upload(client, image_bytes, image_factory)

    assert data["status"] == "ok"
    assert data["image_name"].startswith("img_")
    assert data["image_name"].endswith(".jpg")
    assert (data["width"], data["height"]) == (100, 80)


@pytest.mark.asyncio
async def test_upload_rejects_non_image(client):
    response = await client.post(
        "/api/v1/images",
        files={"file": ("notes.txt", b"just some text", "text/plain")}
    )
    assert response.status_code == 415
    assert response.json()["category"] == "unsupported_media_type"


@pytest.mark.asyncio
async def test_process_crop_then_convert(client, image_bytes, image_factory):
    # Arrange
    source = await upload(client, image_bytes, image_factory)

    # Act
    response = await client.post(
        "/api/v1/images/process",
        json={"image_name": source["image_name"], "actions": [CROP, TO_PNG]}
    )

    # Assert
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["image_name"].startswith("proc_")
    assert data["image_url"].endswith(".png")
    assert (data["width"], data["height"]) == (40, 30)
    assert [step["action"] for step in data["actions"]] == ["crop", "convert"]

    stored = await client.get(data["image_url"])
    assert stored.status_code == 200
    image = Image.open(io.BytesIO(stored.content))
    assert image.format == "PNG"
    assert image.size == (40, 30)


@pytest.mark.asyncio
async def test_processed_image_is_registered(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)
    processed = (await client.post(
        "/api/v1/images/process",
        json={"image_name": source["image_name"], "actions": [{"action": "resize", "params": {"scale": 0.5}}]}
    )).json()

    response = await client.get(f"/api/v1/images/{processed['image_name']}")
    assert response.status_code == 200
    info = response.json()
    assert info["origin"] == "processed"
    assert info["source_name"] == source["image_name"]
    assert (info["width"], info["height"]) == (50, 40)

    source_info = (await client.get(f"/api/v1/images/{source['image_name']}")).json()
    assert processed["image_name"] in source_info["derived"]


@pytest.mark.asyncio
async def test_too_many_actions(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)

    response = await client.post(
        "/api/v1/images/process",
        json={"image_name": source["image_name"], "actions": [TO_PNG] * 6}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["status"] == "error"
    assert data["category"] == "invalid_request"
    assert data["details"]["field"] == "actions"


@pytest.mark.asyncio
async def test_unknown_action_is_named(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)

    response = await client.post(
        "/api/v1/images/process",
        json={"image_name": source["image_name"], "actions": [CROP, {"action": "blur", "params": {"radius": 2}}]}
    )
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "field blur is not valid"
    assert data["action"] == "blur"
    assert data["index"] == 1
    assert data["category"] == "invalid_action"


@pytest.mark.asyncio
async def test_crop_out_of_bounds(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)

    response = await client.post(
        "/api/v1/images/process",
        json={
            "image_name": source["image_name"],
            "actions": [{"action": "crop", "params": {"x": 90, "y": 0, "width": 20, "height": 10}}]
        }
    )
    assert response.status_code == 400
    data = response.json()
    assert data["action"] == "crop"
    assert data["category"] == "invalid_parameters"
    assert data["error"].startswith("failed to perform action crop:")


@pytest.mark.asyncio
async def test_malformed_params(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)

    response = await client.post(
        "/api/v1/images/process",
        json={
            "image_name": source["image_name"],
            "actions": [{"action": "resize", "params": {"width": "10", "height": 10}}]
        }
    )
    assert response.status_code == 400
    assert response.json()["action"] == "resize"


@pytest.mark.asyncio
async def test_unknown_image(client):
    response = await client.post(
        "/api/v1/images/process",
        json={"image_name": "img_missing.jpg", "actions": [TO_PNG]}
    )
    assert response.status_code == 404
    assert response.json()["category"] == "not_found"


@pytest.mark.asyncio
async def test_empty_body(client):
    response = await client.post("/api/v1/images/process", content=b"")
    assert response.status_code == 400
    assert response.json()["error"] == "empty request"


@pytest.mark.asyncio
async def test_invalid_json(client):
    response = await client.post(
        "/api/v1/images/process",
        content=b"{not json",
        headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "failed to decode request"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client):
    response = await client.post(
        "/api/v1/images/process",
        json={"image_name": "img_missing.jpg", "actions": [TO_PNG]},
        headers={"X-Request-ID": "trace-123"}
    )
    assert response.headers["X-Request-ID"] == "trace-123"
    assert response.json()["request_id"] == "trace-123"


@pytest.mark.asyncio
async def test_metrics(client, image_bytes, image_factory):
    source = await upload(client, image_bytes, image_factory)
    await client.post(
        "/api/v1/images/process",
        json={"image_name": source["image_name"], "actions": [TO_PNG]}
    )

    response = await client.get("/api/v1/metrics")
    assert response.status_code == 200
    assert "pipeline_runs_total" in response.text
    assert "images_saved_total" in response.text


def broken_service():
    raise RuntimeError("registry unavailable")


@pytest.mark.asyncio
async def test_unexpected_error_keeps_request_id():
    # Arrange
    app.dependency_overrides[get_image_service] = broken_service
    transport = ASGITransport(app=app, raise_app_exceptions=False)

    # Act
    try:
        async with app.router.lifespan_context(app):
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                response = await ac.post(
                    "/api/v1/images/process",
                    json={"image_name": "img_1.jpg", "actions": [TO_PNG]},
                    headers={"X-Request-ID": "trace-500"}
                )
    finally:
        app.dependency_overrides.pop(get_image_service, None)

    # Assert
    assert response.status_code == 500
    data = response.json()
    assert data["category"] == "internal"
    assert data["request_id"] == "trace-500"
    assert response.headers["X-Request-ID"] == "trace-500"


@pytest.mark.asyncio
async def test_unmatched_paths_share_one_metric_label(client):
    response = await client.get("/no/such/path/f00dcafe")
    assert response.status_code == 404

    metrics = (await client.get("/api/v1/metrics")).text
    assert 'endpoint="unmatched"' in metrics
    assert "f00dcafe" not in metrics
