"""Tests for the media upload endpoint and local storage."""
import io
import pytest
from PIL import Image as PILImage
from storefront.services import storage_service


def _png_bytes():
    buf = io.BytesIO()
    PILImage.new("RGB", (4, 4), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def upload_dir(app, tmp_path, monkeypatch):
    monkeypatch.setitem(app.config, "UPLOAD_FOLDER", str(tmp_path))
    return tmp_path


@pytest.fixture
def editor_client(client, make_user, login):
    login(make_user("editor@example.com", role="editor"))
    return client


def _post(client, data=None, content_type="image/png", kind="image", filename="photo.png"):
    form = {"type": kind}
    if data is not None:
        form["file"] = (io.BytesIO(data), filename, content_type)
    return client.post("/api/upload", data=form, content_type="multipart/form-data")


def test_upload_requires_editor(client, make_user, login, upload_dir):
    resp = _post(client, _png_bytes())
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Unauthorized"}

    login(make_user("viewer@example.com"))
    assert _post(client, _png_bytes()).status_code == 401


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"data": None}, "No file provided"),
        ({"data": b"x", "kind": "pdf"}, "Invalid type. Must be 'image' or 'video'"),
        ({"data": b"x", "content_type": "video/mp4"}, "File must be an image"),
        ({"data": b"not an image"}, "Invalid image file"),
    ],
)
def test_upload_rejects_bad_files(editor_client, upload_dir, kwargs, message):
    resp = _post(editor_client, **kwargs)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": message}


def test_upload_rejects_oversize(editor_client, upload_dir, app, monkeypatch):
    monkeypatch.setitem(app.config, "MAX_UPLOAD_SIZE", 10)
    resp = _post(editor_client, _png_bytes())
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("File too large")


def test_upload_stores_image(editor_client, upload_dir):
    data = _png_bytes()
    resp = _post(editor_client, data)
    assert resp.status_code == 200

    body = resp.get_json()
    assert body["filename"].endswith(".png")
    assert body["url"] == f"/uploads/images/{body['filename']}"
    assert (upload_dir / "images" / body["filename"]).read_bytes() == data

    served = editor_client.get(body["url"])
    assert served.status_code == 200
    assert served.data == data
    served.close()


def test_upload_stores_video(editor_client, upload_dir):
    resp = _post(editor_client, b"\x00\x00\x00\x18ftypmp42", "video/mp4", "video", "clip.mp4")
    assert resp.status_code == 200
    assert resp.get_json()["url"].startswith("/uploads/videos/")


def test_local_delete(app, upload_dir):
    url = storage_service.save("images/a.png", b"abc", "image/png")
    assert url == "/uploads/images/a.png"
    storage_service.delete("images/a.png")
    assert not (upload_dir / "images" / "a.png").exists()
    storage_service.delete("images/a.png")
