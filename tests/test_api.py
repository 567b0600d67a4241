"""
Integration tests for the HTTP API, run against a temporary key-value store
and public directory.
"""

import base64

import pytest
from fastapi.testclient import TestClient

from conftest import assert_color, decode, solid_photo
from photobooth.config.settings import Settings, settings
from photobooth.domain.compositor import Composite

API = settings.API_V1_STR


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'kiosk.db'}")
    monkeypatch.setattr(settings, "PUBLIC_DIR", str(tmp_path / "public"))
    monkeypatch.setattr(settings, "OUTPUT_DIR", str(tmp_path / "output"))
    monkeypatch.setattr(settings, "PRINT_SPOOL_DIR", str(tmp_path / "spool"))
    monkeypatch.setattr(settings, "PRINT_COMMAND", None)
    monkeypatch.setattr(settings, "EMAIL_SIMULATED_DELAY", 0)

    from photobooth.main import app
    with TestClient(app) as test_client:
        yield test_client


def _payload(body) -> bytes:
    return base64.b64decode(body["composite"].split(",", 1)[1])


def test_health(client):
    assert client.get("/health").json()["compositor_ready"] is True


def test_builtin_backgrounds_are_rendered_at_startup(tmp_path, client):
    assert (tmp_path / "public" / "templates" / "classic-strip.png").is_file()
    assert (tmp_path / "public" / "templates" / "gold-frame.png").is_file()


def test_templates_dir_follows_public_dir(tmp_path):
    assert Settings(PUBLIC_DIR=str(tmp_path)).templates_path == str(tmp_path / "templates")
    assert Settings(PUBLIC_DIR=str(tmp_path), TEMPLATES_DIR="elsewhere").templates_path == "elsewhere"


def test_list_and_get_templates(client):
    templates = client.get(f"{API}/templates").json()
    assert [t["id"] for t in templates] == ["classic_strip", "gold_frame"]
    assert templates[0]["backgroundUrl"] == "/templates/classic-strip.png"

    first = client.get(f"{API}/templates/{templates[0]['id']}").json()
    assert first == templates[0]
    assert client.get(f"{API}/templates/nope").status_code == 404


def test_save_template_override(client):
    gold = client.get(f"{API}/templates/gold_frame").json()
    gold["name"] = "Gold Frame (event)"
    gold["slots"].append({"x": 10, "y": 10, "width": 50, "height": 50})

    response = client.put(f"{API}/templates/gold_frame", json=gold)
    assert response.status_code == 200

    templates = client.get(f"{API}/templates").json()
    assert [t["id"] for t in templates] == ["classic_strip", "gold_frame"]
    assert templates[1]["name"] == "Gold Frame (event)"
    assert len(templates[1]["slots"]) == 2
    assert len(templates[0]["slots"]) == 3

    assert client.put(f"{API}/templates/other", json=gold).status_code == 400


def test_invalid_slot_rejected(client):
    gold = client.get(f"{API}/templates/gold_frame").json()
    gold["slots"] = [{"x": 0, "y": 0, "width": 0, "height": 10}]
    assert client.put(f"{API}/templates/gold_frame", json=gold).status_code == 422


def test_last_selected_template(client):
    assert client.get(f"{API}/templates/last-selected").json() == {"id": None}
    assert client.put(f"{API}/templates/last-selected", json={"id": "gold_frame"}).status_code == 200
    assert client.get(f"{API}/templates/last-selected").json() == {"id": "gold_frame"}
    assert client.put(f"{API}/templates/last-selected", json={"id": "nope"}).status_code == 404
    client.put(f"{API}/templates/last-selected", json={"id": None})
    assert client.get(f"{API}/templates/last-selected").json() == {"id": None}


def test_compose_procedural(client):
    response = client.post(f"{API}/compose", json={"photos": [solid_photo((255, 0, 0))], "templateType": "single"})
    assert response.status_code == 200
    body = response.json()
    assert (body["width"], body["height"], body["mimeType"]) == (600, 800, "image/jpeg")
    assert body["composite"].startswith("data:image/jpeg;base64,")
    assert decode(_payload(body)).size == (600, 800)


def test_compose_with_builtin_design_template(client):
    response = client.post(f"{API}/compose", json={
        "photos": [solid_photo((0, 0, 255))],
        "designTemplateId": "gold_frame",
        "saveToGallery": True,
        "sessionId": "session-1",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["mimeType"] == "image/png"
    img = decode(_payload(body))
    assert img.size == (600, 900)
    # Centre of the slot (80, 160, 440, 620) shows the photo through the frame
    assert_color(img, (300, 470), (0, 0, 255), tol=3)

    items = client.get(f"{API}/gallery", params={"type": "composed"}).json()
    assert len(items) == 1
    assert items[0]["designTemplateName"] == "Gold Frame"
    assert items[0]["sessionId"] == "session-1"
    assert client.get(f"{API}/gallery/folders").json() == ["Gold Frame"]


def test_compose_errors(client):
    unknown = client.post(f"{API}/compose", json={"photos": [], "designTemplateId": "nope"})
    assert unknown.status_code == 404

    bad = client.post(f"{API}/compose", json={"photos": ["data:image/png;base64,Y29ycnVwdA=="], "templateType": "strip"})
    assert bad.status_code == 422
    assert bad.json()["detail"]["error_type"] == "DecodeError"

    missing_background = client.post(f"{API}/compose", json={
        "photos": [solid_photo((0, 0, 255))],
        "designTemplate": {"id": "tmp", "name": "Tmp", "backgroundUrl": "/templates/missing.png",
                           "slots": [{"x": 0, "y": 0, "width": 10, "height": 10}]},
    })
    assert missing_background.status_code == 422
    assert "composite" not in missing_background.json()


def test_delivery_failure_returns_composite(client):
    composite = Composite(data=b"\x89PNG", mime_type="image/png", width=1, height=1).to_data_url()
    failed = client.post(f"{API}/deliveries/email", json={"composites": [composite], "email": "bad"})
    assert failed.status_code == 502
    assert failed.json()["composites"] == [composite]

    saved = client.post(f"{API}/deliveries/save", json={"composites": [composite]})
    assert saved.status_code == 200
    assert saved.json()["paths"][0].endswith(".png")

    assert client.post(f"{API}/deliveries/fax", json={"composites": [composite]}).status_code == 404


def test_gallery_crud(client):
    item = {"id": "individual-1", "type": "individual", "dataUrl": solid_photo((1, 2, 3)), "timestamp": 1}
    assert client.post(f"{API}/gallery", json=item).status_code == 201
    assert [i["id"] for i in client.get(f"{API}/gallery").json()] == ["individual-1"]
    assert client.get(f"{API}/gallery", params={"type": "composed"}).json() == []
    assert client.delete(f"{API}/gallery/individual-1").status_code == 204
    assert client.delete(f"{API}/gallery/individual-1").status_code == 404
