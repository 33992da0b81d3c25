import io

import pytest
from fastapi.testclient import TestClient

from backend.app.core.cache import read_cache
from backend.app.core.storage import get_storage
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine
from backend.app.main import app
from backend.app.models.document import Document, format_bytes

client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    read_cache.flush()
    yield


def register(email: str):
    resp = client.post("/register", json={"name": "Member", "email": email, "password": "password123"})
    assert resp.status_code == 201
    data = resp.json()["data"]
    return data["token"], data["user"]["id"]


def auth_headers(token: str):
    return {"Authorization": f"Bearer {token}"}


def upload(token: str, content: bytes = b"minutes of the meeting", **fields):
    form = {"title": "Minutes", "type": "minutes", "visibility": "private"}
    form.update(fields)
    resp = client.post(
        "/documents",
        files={"file": ("minutes.txt", io.BytesIO(content), "text/plain")},
        data=form,
        headers=auth_headers(token),
    )
    return resp


def stored_key(document_id: int) -> str:
    db = SessionLocal()
    try:
        return db.get(Document, document_id).file_path
    finally:
        db.close()


def test_format_bytes():
    assert format_bytes(512) == "512.00 B"
    assert format_bytes(2048) == "2.00 KB"
    assert format_bytes(5 * 1024 * 1024) == "5.00 MB"


def test_upload_stores_file_and_metadata():
    token, user_id = register("admin@example.com")
    resp = upload(token, tags=["board", "2024"])
    assert resp.status_code == 201, resp.json()
    data = resp.json()["data"]
    assert data["uploaded_by"] == user_id
    assert data["file_name"] == "minutes.txt"
    assert data["file_size"] == len(b"minutes of the meeting")
    assert data["mime_type"] == "text/plain"
    assert data["version"] == 1
    assert data["tags"] == ["board", "2024"]
    assert get_storage().exists(stored_key(data["id"]))


def test_empty_upload_is_rejected():
    token, _ = register("admin@example.com")
    resp = upload(token, content=b"")
    assert resp.status_code == 422
    assert "file" in resp.json()["errors"]


def test_upload_with_unknown_committee_is_rejected():
    token, _ = register("admin@example.com")
    resp = upload(token, committee_id="999")
    assert resp.status_code == 422
    assert "committee_id" in resp.json()["errors"]


def test_private_documents_are_hidden_from_others_including_admins():
    admin_token, _ = register("admin@example.com")
    member_token, _ = register("member@example.com")
    private = upload(member_token, title="Diary").json()["data"]
    public = upload(member_token, title="Newsletter", visibility="public").json()["data"]

    admin_list = client.get("/documents", headers=auth_headers(admin_token)).json()["data"]
    assert [d["id"] for d in admin_list["items"]] == [public["id"]]
    assert client.get(f"/documents/{private['id']}", headers=auth_headers(admin_token)).status_code == 403

    own_list = client.get("/documents", headers=auth_headers(member_token)).json()["data"]
    assert {d["id"] for d in own_list["items"]} == {private["id"], public["id"]}


def test_restricted_documents_visible_to_committee_members():
    admin_token, admin_id = register("admin@example.com")
    member_token, member_id = register("member@example.com")
    outsider_token, _ = register("outsider@example.com")
    committee = client.post(
        "/committees",
        json={"name": "Finance", "chairperson_id": admin_id, "member_ids": [member_id]},
        headers=auth_headers(admin_token),
    ).json()["data"]

    doc = upload(admin_token, title="Budget", visibility="restricted", committee_id=str(committee["id"])).json()["data"]

    assert client.get(f"/documents/{doc['id']}", headers=auth_headers(member_token)).status_code == 200
    assert client.get(f"/documents/{doc['id']}", headers=auth_headers(outsider_token)).status_code == 403
    outsider_list = client.get("/documents", headers=auth_headers(outsider_token)).json()["data"]
    assert outsider_list["total"] == 0


def test_download_and_preview_count_separately():
    token, _ = register("admin@example.com")
    doc = upload(token).json()["data"]

    download = client.get(f"/documents/{doc['id']}/download", headers=auth_headers(token))
    assert download.status_code == 200
    assert download.content == b"minutes of the meeting"
    assert download.headers["content-disposition"].startswith("attachment")

    preview = client.get(f"/documents/{doc['id']}/preview", headers=auth_headers(token))
    assert preview.status_code == 200
    assert preview.headers["content-disposition"].startswith("inline")

    shown = client.get(f"/documents/{doc['id']}", headers=auth_headers(token)).json()["data"]
    assert shown["download_count"] == 1
    assert shown["view_count"] == 1


def test_missing_stored_file_is_not_found():
    token, _ = register("admin@example.com")
    doc = upload(token).json()["data"]
    get_storage().delete(stored_key(doc["id"]))

    resp = client.get(f"/documents/{doc['id']}/download", headers=auth_headers(token))
    assert resp.status_code == 404
    assert resp.json()["message"] == "File not found"


def test_replace_file_bumps_version_and_removes_old_file():
    token, user_id = register("admin@example.com")
    doc = upload(token).json()["data"]
    old_key = stored_key(doc["id"])

    resp = client.post(
        f"/documents/{doc['id']}/replace",
        files={"file": ("minutes-v2.txt", io.BytesIO(b"revised minutes"), "text/plain")},
        headers=auth_headers(token),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["version"] == 2
    assert data["file_name"] == "minutes-v2.txt"
    assert data["updated_by"] == user_id
    assert not get_storage().exists(old_key)


def test_only_uploader_or_admin_can_change_document():
    admin_token, _ = register("admin@example.com")
    member_token, _ = register("member@example.com")
    other_token, _ = register("other@example.com")
    doc = upload(member_token, visibility="public").json()["data"]

    assert client.put(
        f"/documents/{doc['id']}", json={"title": "Mine now"}, headers=auth_headers(other_token)
    ).status_code == 403
    resp = client.put(f"/documents/{doc['id']}", json={"title": "Renamed"}, headers=auth_headers(admin_token))
    assert resp.status_code == 200
    assert resp.json()["data"]["title"] == "Renamed"


def test_delete_removes_stored_file():
    token, _ = register("admin@example.com")
    doc = upload(token).json()["data"]
    key = stored_key(doc["id"])

    assert client.delete(f"/documents/{doc['id']}", headers=auth_headers(token)).status_code == 200
    assert client.get(f"/documents/{doc['id']}", headers=auth_headers(token)).status_code == 404
    assert not get_storage().exists(key)


def test_public_download_only_serves_public_documents():
    token, _ = register("admin@example.com")
    public = upload(token, visibility="public").json()["data"]
    private = upload(token).json()["data"]

    assert client.get(f"/public/documents/{public['id']}/download").status_code == 200
    assert client.get(f"/public/documents/{private['id']}/download").status_code == 404


def test_document_statistics():
    token, _ = register("admin@example.com")
    upload(token, content=b"x" * 2048)
    upload(token, content=b"y" * 1024, type="report", visibility="public")

    stats = client.get("/statistics/documents", headers=auth_headers(token)).json()["data"]
    assert stats["total_documents"] == 2
    assert stats["total_size"] == 3072
    assert stats["formatted_total_size"] == "3.00 KB"
    assert {row["type"] for row in stats["documents_by_type"]} == {"minutes", "report"}
