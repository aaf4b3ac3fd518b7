import io

import pytest

import server
from errors import EncodingError

from conftest import BASE_URL


def upload(client, *files, path="/api/upload"):
    data = {"file": [(io.BytesIO(content), name) for name, content in files]}
    return client.post(path, data=data, content_type="multipart/form-data")


@pytest.mark.parametrize("path", ["/", "/list"])
def test_listing_page(client, tmp_path, path):
    (tmp_path / "notes.txt").write_text("n")
    (tmp_path / "folder").mkdir()

    resp = client.get(path)
    body = resp.get_data(as_text=True)

    assert resp.status_code == 200
    assert f"{BASE_URL}/share/notes.txt" in body
    assert "folder" not in body.split("<section class=\"files\">")[1]
    assert "data:image/png;base64," in body
    assert BASE_URL in body


def test_listing_without_qr(client, monkeypatch):
    def boom(text):
        raise EncodingError("too long")

    monkeypatch.setattr(server.utils, "make_qr_png_b64", boom)
    resp = client.get("/")
    assert resp.status_code == 200
    assert "data:image/png;base64," not in resp.get_data(as_text=True)


def test_listing_unreadable_directory(client, tmp_path):
    import shutil

    shutil.rmtree(tmp_path)
    resp = client.get("/")
    assert resp.status_code == 500
    assert "could not be read" in resp.get_data(as_text=True)


def test_api_files(client, tmp_path):
    (tmp_path / "a.txt").write_text("abc")
    resp = client.get("/api/files")
    assert resp.get_json() == [{"name": "a.txt", "url": f"{BASE_URL}/share/a.txt", "size": 3}]


def test_upload_then_download(client):
    resp = upload(client, ("report.txt", b"hello"))
    assert resp.status_code == 200
    assert resp.get_json() == [{"name": "report.txt", "url": f"{BASE_URL}/share/report.txt"}]

    resp = client.get("/share/report.txt")
    assert resp.status_code == 200
    assert resp.data == b"hello"


@pytest.mark.parametrize("path", ["/upload", "/api/upload"])
def test_upload_two_files_keeps_order(client, path):
    resp = upload(client, ("a.txt", b"A"), ("b.txt", b"B"), path=path)
    body = resp.get_json()

    assert resp.status_code == 200
    assert [item["name"] for item in body] == ["a.txt", "b.txt"]
    assert body[0]["url"] != body[1]["url"]
    assert all(item["url"].startswith(f"{BASE_URL}/share/") for item in body)


def test_upload_without_files(client):
    resp = client.post("/api/upload", data={"note": "nothing attached"}, content_type="multipart/form-data")
    assert resp.status_code == 200
    assert resp.get_json() == []


def test_upload_partial_failure(client, tmp_path):
    (tmp_path / "blocked.txt").mkdir()
    resp = upload(client, ("blocked.txt", b"x"), ("ok.txt", b"y"))
    body = resp.get_json()

    assert resp.status_code == 500
    assert "error" in body[0]
    assert body[1] == {"name": "ok.txt", "url": f"{BASE_URL}/share/ok.txt"}
    assert (tmp_path / "ok.txt").read_bytes() == b"y"


def test_upload_invalid_name(client):
    resp = upload(client, ("..", b"x"))
    assert resp.status_code == 400
    assert resp.get_json()["error"] == 400


def test_download_missing(client):
    resp = client.get("/share/nope.txt")
    assert resp.status_code == 404


@pytest.mark.parametrize("path", [
    "/share/../../etc/passwd",
    "/share/..%2F..%2Fetc%2Fpasswd",
])
def test_download_traversal(client, path):
    resp = client.get(path)
    assert resp.status_code == 404
    assert b"root:" not in resp.data


def test_download_overlong_name(client):
    resp = client.get("/share/" + "a" * 300)
    assert resp.status_code == 404


def test_download_range(client, tmp_path):
    (tmp_path / "big.bin").write_bytes(b"0123456789")
    resp = client.get("/share/big.bin", headers={"Range": "bytes=2-4"})
    assert resp.status_code == 206
    assert resp.data == b"234"


def test_static_assets(client):
    resp = client.get("/static/upload.js")
    assert resp.status_code == 200
    resp.close()
