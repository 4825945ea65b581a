"""API tests for photo listing, upload, deletion, PATCH actions, similarity, and gallery."""
from __future__ import annotations

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from app.api.deps import get_photo_store
from app.database import SessionLocal
from app.services.photo_store import PhotoStore
from main import app


def _upload(client: TestClient, name: str = "cat.jpg", content: bytes = b"cat-bytes", content_type: str = "image/jpeg"):
    return client.post("/api/upload", files={"file": (name, content, content_type)})


# ===== upload =====

def test_upload_then_duplicate_is_skipped(client, stub_ai, blobs):
    response = _upload(client)

    assert response.status_code == 201
    photo = response.json()
    assert photo["caption"] == "Future artist"
    assert photo["mediaType"] == "image"
    assert photo["originalName"] == "cat.jpg"
    assert photo["filename"].endswith(".jpg")
    assert photo["filename"] != "cat.jpg"
    assert -4 <= photo["rotation"] <= 4
    assert photo["imageUrl"] == f"/uploads/photos/{photo['filename']}"
    assert blobs.read(photo["filename"]) == b"cat-bytes"

    again = _upload(client)

    assert again.status_code == 200
    assert again.json()["skipped"] is True
    assert again.json()["filename"] == "cat.jpg"
    assert len(client.get("/api/photos").json()) == 1


def test_duplicate_detection_is_case_sensitive(client):
    assert _upload(client, name="IMG.JPG").status_code == 201
    assert _upload(client, name="img.jpg").status_code == 201
    assert len(client.get("/api/photos").json()) == 2


def test_upload_video_skips_caption(client, stub_ai):
    response = _upload(client, name="clip.mp4", content=b"video", content_type="video/mp4")

    assert response.status_code == 201
    assert response.json()["mediaType"] == "video"
    assert response.json()["caption"] == ""
    assert stub_ai.caption_calls == []


def test_upload_caption_failure_does_not_fail_upload(client, stub_ai):
    stub_ai.caption = ""

    response = _upload(client)

    assert response.status_code == 201
    assert response.json()["caption"] == ""


def test_upload_requires_file(client):
    response = client.post("/api/upload", files={"other": ("a.jpg", b"x", "image/jpeg")})

    assert response.status_code == 400
    assert response.json() == {"error": "No file provided"}


def test_upload_rejects_wrong_mime(client):
    response = _upload(client, name="notes.txt", content=b"hello", content_type="text/plain")

    assert response.status_code == 400
    assert "error" in response.json()


def test_upload_blob_failure_returns_500(client, blobs, monkeypatch):
    from app.services.blob_storage import BlobStorageError

    def broken_put(*args, **kwargs):
        raise BlobStorageError("disk full")

    monkeypatch.setattr(blobs, "put", broken_put)

    response = _upload(client)

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to upload file"
    assert "disk full" in response.json()["details"]
    assert client.get("/api/photos").json() == []


# ===== list / delete =====

def test_list_photos_newest_first(client, make_photo):
    make_photo(photo_id="old", uploaded_at="2024-01-01T00:00:00.000Z")
    make_photo(photo_id="new", uploaded_at="2024-06-01T00:00:00.000Z")

    response = client.get("/api/photos")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["new", "old"]


def test_list_photos_degrades_to_empty_array(client):
    class BrokenStore:
        def list(self):
            raise RuntimeError("database offline")

    app.dependency_overrides[get_photo_store] = lambda: BrokenStore()

    response = client.get("/api/photos")

    assert response.status_code == 200
    assert response.json() == []


def test_list_photos_skips_corrupt_documents(client, make_photo, corrupt_row):
    make_photo(photo_id="good")
    corrupt_row()

    response = client.get("/api/photos")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()] == ["good"]


def test_corrupt_document_returns_json_error(client, corrupt_row):
    photo_id = corrupt_row()

    responses = [
        client.patch(f"/api/photos/{photo_id}", json={"caption": "x"}),
        client.patch(f"/api/photos/{photo_id}", json={"action": "toggle_like", "userName": "Mia"}),
        client.delete(f"/api/photos/{photo_id}"),
        client.get(f"/api/photos/{photo_id}/similar"),
    ]

    for response in responses:
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("application/json")
        assert response.json()["error"] == "Stored photo is corrupt"
        assert response.json()["details"]


def test_unexpected_error_returns_json():
    class ExplodingStore:
        def get(self, photo_id):
            raise RuntimeError("boom")

    app.dependency_overrides[get_photo_store] = lambda: ExplodingStore()
    try:
        with TestClient(app, raise_server_exceptions=False) as raw_client:
            response = raw_client.get("/api/photos/any/similar")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Operation failed", "details": "boom"}


def _store_with_failing_query() -> PhotoStore:
    """PhotoStore whose query() fails; get/add/commit still work."""
    session = SessionLocal()

    def broken_query(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    session.query = broken_query
    return PhotoStore(session)


def test_is_duplicate_permits_upload_when_query_fails():
    store = _store_with_failing_query()
    try:
        assert store.is_duplicate("cat.jpg") is False
    finally:
        store.db.close()


def test_upload_succeeds_when_duplicate_query_fails(client, make_photo):
    make_photo(original_name="cat.jpg")
    failing = _store_with_failing_query()
    app.dependency_overrides[get_photo_store] = lambda: failing
    try:
        response = _upload(client)
    finally:
        del app.dependency_overrides[get_photo_store]
        failing.db.close()

    assert response.status_code == 201
    assert response.json()["originalName"] == "cat.jpg"
    assert len(client.get("/api/photos").json()) == 2


def test_delete_photo_removes_record_and_blob(client, make_photo, blobs):
    photo = make_photo()

    response = client.delete(f"/api/photos/{photo.id}")

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert client.get("/api/photos").json() == []
    assert not (blobs.folder / photo.filename).exists()


def test_delete_missing_photo_returns_404(client):
    response = client.delete("/api/photos/missing")

    assert response.status_code == 404
    assert response.json() == {"error": "Photo not found"}


# ===== PATCH =====

def test_patch_toggle_like_round_trip(client, make_photo):
    photo = make_photo()
    body = {"action": "toggle_like", "userName": "Mia", "userProfilePic": "https://pics/mia.png"}

    first = client.patch(f"/api/photos/{photo.id}", json=body)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert first.json()["liked"] is True
    likes = first.json()["photo"]["likes"]
    assert [like["userName"] for like in likes] == ["Mia"]
    assert likes[0]["userProfilePic"] == "https://pics/mia.png"

    second = client.patch(f"/api/photos/{photo.id}", json=body)

    assert second.json()["liked"] is False
    assert second.json()["photo"]["likes"] == []


def test_patch_toggle_like_uses_session_headers(client, make_photo):
    photo = make_photo()

    response = client.patch(
        f"/api/photos/{photo.id}",
        json={"action": "toggle_like"},
        headers={"X-User-Name": "Noah"},
    )

    assert response.status_code == 200
    assert response.json()["photo"]["likes"][0]["userName"] == "Noah"


def test_patch_toggle_like_without_user_is_400(client, make_photo):
    photo = make_photo()

    response = client.patch(f"/api/photos/{photo.id}", json={"action": "toggle_like"})

    assert response.status_code == 400


def test_patch_add_comment(client, make_photo):
    photo = make_photo(caption="Future artist")
    body = {"action": "add_comment", "comment": {"text": "So cute", "author": "Grandma"}}

    first = client.patch(f"/api/photos/{photo.id}", json=body)
    second = client.patch(
        f"/api/photos/{photo.id}",
        json={"action": "add_comment", "comment": {"text": "Love it", "author": "Dad"}},
    )

    assert first.status_code == 200
    assert second.status_code == 200
    updated = second.json()["photo"]
    assert [c["text"] for c in updated["comments"]] == ["So cute", "Love it"]
    assert updated["comments"][0] == first.json()["photo"]["comments"][0]
    assert updated["comment"]["text"] == "Love it"
    assert updated["caption"] == "Love it"
    assert updated["comments"][1]["id"]
    assert updated["comments"][1]["createdAt"]


def test_patch_legacy_caption(client, make_photo):
    photo = make_photo()

    response = client.patch(f"/api/photos/{photo.id}", json={"caption": "Kitchen helper"})

    assert response.json() == {"success": True}
    assert client.get("/api/photos").json()[0]["caption"] == "Kitchen helper"


def test_patch_legacy_comment(client, make_photo):
    photo = make_photo()

    response = client.patch(
        f"/api/photos/{photo.id}",
        json={"comment": {"text": "old style", "author": "Grandpa"}},
    )

    assert response.json() == {"success": True}
    stored = client.get("/api/photos").json()[0]
    assert stored["comment"]["text"] == "old style"
    assert stored["caption"] == "old style"
    assert stored["comments"] == []


def test_patch_unknown_shape_is_400(client, make_photo):
    photo = make_photo()

    assert client.patch(f"/api/photos/{photo.id}", json={"action": "explode"}).status_code == 400
    assert client.patch(f"/api/photos/{photo.id}", json={"hello": "world"}).status_code == 400
    assert client.patch(f"/api/photos/{photo.id}", json=["not", "an", "object"]).status_code == 400


def test_patch_missing_photo_is_404(client):
    for body in (
        {"action": "toggle_like", "userName": "Mia"},
        {"action": "add_comment", "comment": {"text": "hi"}},
        {"caption": "x"},
        {"comment": {"text": "x"}},
    ):
        response = client.patch("/api/photos/missing", json=body)
        assert response.status_code == 404
        assert response.json() == {"error": "Photo not found"}


# ===== similar =====

def test_similar_photos_scenario(client, make_photo, stub_ai):
    target = make_photo(photo_id="target", data=b"target")
    make_photo(photo_id="close", data=b"close")
    make_photo(photo_id="far", data=b"far")
    stub_ai.keywords = {
        b"target": ["baby", "outdoors", "happy"],
        b"close": ["baby", "indoors", "happy", "grass"],
        b"far": ["car", "street"],
    }

    response = client.get(f"/api/photos/{target.id}/similar")

    assert response.status_code == 200
    data = response.json()
    assert data["keywords"] == ["baby", "outdoors", "happy"]
    assert [p["id"] for p in data["similar"]] == ["close"]
    assert data["similar"][0]["similarityScore"] == 40


def test_similar_photos_for_video(client, make_photo, stub_ai):
    video = make_photo(media_type="video")

    response = client.get(f"/api/photos/{video.id}/similar")

    assert response.json() == {"similar": [], "message": "Videos not supported"}
    assert stub_ai.keyword_calls == 0


def test_similar_photos_missing(client):
    assert client.get("/api/photos/missing/similar").status_code == 404


def test_similar_photos_skips_unreadable_candidates(client, make_photo, stub_ai, blobs):
    target = make_photo(photo_id="target", data=b"target")
    broken = make_photo(photo_id="broken", data=b"broken")
    make_photo(photo_id="good", data=b"good")
    blobs.delete(broken.filename)
    stub_ai.keywords = {b"target": ["dog"], b"good": ["dog"]}

    response = client.get(f"/api/photos/{target.id}/similar")

    assert [p["id"] for p in response.json()["similar"]] == ["good"]


# ===== gallery =====

def test_gallery_orders_unseen_first_with_placement(client, make_photo):
    for i in range(6):
        make_photo(photo_id=f"photo-{i}")

    response = client.get("/api/gallery", params={"seen": "photo-1,photo-3"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 6
    assert data["unseenCount"] == 4
    items = data["photos"]
    assert [item["seen"] for item in items] == [False] * 4 + [True] * 2
    assert {item["photo"]["id"] for item in items[4:]} == {"photo-1", "photo-3"}
    for item in items:
        assert set(item["placement"]) == {"rotation", "offsetY"}


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
