# app/schemas/photo.py
from datetime import datetime, timezone
from typing import Literal
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

MediaType = Literal["image", "video"]

def utc_now_iso() -> str:
    """UTC ISO-8601 (밀리초, Z) - 문자열 정렬 = 시간 정렬"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

class CamelModel(BaseModel):
    """파이썬은 snake_case, 저장/응답 JSON은 camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True

class Comment(CamelModel):
    """댓글"""
    id: str
    text: str
    author: str
    author_profile_pic: str | None = None
    created_at: str

class Like(CamelModel):
    """좋아요 (user_name이 키)"""
    user_name: str
    user_profile_pic: str | None = None  # 좋아요 시점 스냅샷
    created_at: str

class Photo(CamelModel):
    """사진/동영상 문서"""
    id: str
    filename: str
    original_name: str
    media_type: MediaType = "image"
    caption: str | None = None
    uploaded_at: str
    rotation: float = 0
    image_url: str

    # 예전 클라이언트용 단일 댓글 (가장 최근 댓글 사본)
    comment: Comment | None = None
    comments: list[Comment] = []
    likes: list[Like] = []

    @property
    def is_video(self) -> bool:
        return self.media_type == "video"

class SimilarPhoto(Photo):
    """비슷한 사진 응답 (0-100 점수 포함)"""
    similarity_score: int


def normalize(raw: dict, photo_id: str | None = None) -> Photo:
    """저장소 문서 -> Photo (레거시 필드 보정)

    - mediaType 없음 / 알 수 없음 -> image
    - comments, likes 없음 -> 빈 리스트
    - 예전 단일 comment는 그대로 유지 (comments로 합치지 않음)
    - rotation 없음 -> 0
    """
    doc = dict(raw)
    if photo_id is not None:
        doc.setdefault("id", photo_id)

    if doc.get("mediaType") not in ("image", "video"):
        doc["mediaType"] = "image"
    if not isinstance(doc.get("comments"), list):
        doc["comments"] = []
    if not isinstance(doc.get("likes"), list):
        doc["likes"] = []
    if not isinstance(doc.get("comment"), dict):
        doc.pop("comment", None)
    if doc.get("rotation") is None:
        doc["rotation"] = 0

    return Photo.model_validate(doc)

def to_document(photo: Photo) -> dict:
    """Photo -> 저장/응답용 camelCase dict (None 필드 생략)"""
    return photo.model_dump(by_alias=True, exclude_none=True)


# ===== 요청 =====

class CommentIn(CamelModel):
    """댓글 요청 (id, createdAt은 서버에서 채움)"""
    id: str | None = None
    text: str
    author: str | None = None
    author_profile_pic: str | None = None
    created_at: str | None = None

class ToggleLikeRequest(CamelModel):
    user_name: str | None = None
    user_profile_pic: str | None = None


# ===== 응답 =====

class UploadSkippedResponse(BaseModel):
    """중복 업로드 (에러 아님)"""
    skipped: bool = True
    filename: str
    message: str = "Photo already exists"

class Placement(CamelModel):
    """폴라로이드 배치 (회전 각도, 세로 오프셋 px)"""
    rotation: float
    offset_y: int

class GalleryItem(CamelModel):
    photo: Photo
    placement: Placement
    seen: bool

class GalleryResponse(CamelModel):
    photos: list[GalleryItem]
    unseen_count: int
    total: int
