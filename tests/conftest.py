"""Shared fixtures: SQLite database, temporary blob storage, and a stub AI service."""
from __future__ import annotations

import os
import tempfile
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import delete

# Settings are read at import time, so the environment must be ready first.
_TMP_DIR = tempfile.mkdtemp(prefix="scrapbook-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{_TMP_DIR}/test_scrapbook.db")
os.environ.setdefault("UPLOAD_DIR", os.path.join(_TMP_DIR, "uploads"))
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))

from app.api.deps import get_ai, get_blobs  # noqa: E402
from app.database import Base, SessionLocal, engine  # noqa: E402
from app.models.photo import PhotoRecord  # noqa: E402
from app.schemas.photo import Photo, utc_now_iso  # noqa: E402
from app.services.blob_storage import LocalBlobStorage  # noqa: E402
from app.services.photo_store import PhotoStore  # noqa: E402
from main import app  # noqa: E402


class StubAI:
    """Deterministic AIService: fixed caption, keywords looked up by image bytes."""

    def __init__(self, caption: str = "Future artist") -> None:
        self.caption = caption
        self.keywords: dict[bytes, list[str]] = {}
        self.themes: list[dict] = []
        self.caption_calls: list[str] = []
        self.keyword_calls = 0

    def generate_caption(self, image_bytes: bytes, mime_type: str) -> str:
        self.caption_calls.append(mime_type)
        return self.caption

    def generate_keywords(self, image_bytes: bytes, mime_type: str) -> list[str]:
        self.keyword_calls += 1
        return self.keywords.get(image_bytes, [])

    def generate_story_themes(self, photos: list[Photo]) -> list[dict]:
        return self.themes


@pytest.fixture(scope="session", autouse=True)
def _create_schema() -> Iterator[None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _clean_database() -> Iterator[None]:
    with SessionLocal() as session:
        session.execute(delete(PhotoRecord))
        session.commit()
    yield


@pytest.fixture
def stub_ai() -> StubAI:
    return StubAI()


@pytest.fixture
def blobs(tmp_path) -> LocalBlobStorage:
    return LocalBlobStorage(str(tmp_path / "uploads"))


@pytest.fixture
def store() -> Iterator[PhotoStore]:
    session = SessionLocal()
    try:
        yield PhotoStore(session)
    finally:
        session.close()


@pytest.fixture
def client(stub_ai: StubAI, blobs: LocalBlobStorage) -> Iterator[TestClient]:
    app.dependency_overrides[get_ai] = lambda: stub_ai
    app.dependency_overrides[get_blobs] = lambda: blobs
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def corrupt_row() -> Callable[..., str]:
    """Insert a stored document missing required Photo fields."""

    def _insert(photo_id: str = "bad", uploaded_at: str = "2024-03-01T00:00:00.000Z") -> str:
        with SessionLocal() as session:
            session.add(PhotoRecord(
                id=photo_id,
                original_name="x.jpg",
                uploaded_at=uploaded_at,
                media_type="image",
                version=1,
                data={"id": photo_id, "originalName": "x.jpg"},
            ))
            session.commit()
        return photo_id

    return _insert


@pytest.fixture
def make_photo(store: PhotoStore, blobs: LocalBlobStorage) -> Callable[..., Photo]:
    """Persist a photo (and its blob) directly, bypassing the upload pipeline."""

    counter = {"n": 0}

    def _make(
        *,
        photo_id: str | None = None,
        original_name: str | None = None,
        media_type: str = "image",
        caption: str = "",
        data: bytes = b"image-bytes",
        uploaded_at: str | None = None,
    ) -> Photo:
        counter["n"] += 1
        n = counter["n"]
        filename = f"file-{n}.{'mp4' if media_type == 'video' else 'jpg'}"
        image_url = blobs.put(filename, data, "image/jpeg")
        photo = Photo(
            id=photo_id or f"photo-{n:03d}",
            filename=filename,
            original_name=original_name or f"original-{n}.jpg",
            media_type=media_type,
            caption=caption,
            uploaded_at=uploaded_at or utc_now_iso(),
            rotation=0,
            image_url=image_url,
        )
        return store.put(photo)

    return _make
