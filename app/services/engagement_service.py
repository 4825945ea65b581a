# app/services/engagement_service.py
import uuid

from app.core.exceptions import InvalidRequest, PhotoNotFound
from app.core.logger import logger
from app.schemas.photo import Comment, Like, Photo, utc_now_iso
from app.services.photo_store import PhotoStore

DEFAULT_AUTHOR = "Anonymous"


def build_comment(text: str | None, author: str | None = None,
                  author_profile_pic: str | None = None,
                  comment_id: str | None = None, created_at: str | None = None) -> Comment:
    """댓글 생성 (id, createdAt 없으면 서버에서 채움)"""
    text = (text or "").strip()
    if not text:
        raise InvalidRequest("Comment text is required")

    return Comment(
        id=comment_id or str(uuid.uuid4()),
        text=text,
        author=(author or "").strip() or DEFAULT_AUTHOR,
        author_profile_pic=author_profile_pic or None,
        created_at=created_at or utc_now_iso(),
    )

def toggle_like(store: PhotoStore, photo_id: str, user_name: str,
                user_profile_pic: str | None = None) -> tuple[Photo, bool]:
    """좋아요 토글

    같은 user_name 좋아요가 있으면 제거(liked=False), 없으면 추가(liked=True).
    """
    if not user_name or not user_name.strip():
        raise InvalidRequest("userName is required")

    def apply(photo: Photo) -> bool:
        remaining = [like for like in photo.likes if like.user_name != user_name]
        if len(remaining) != len(photo.likes):
            photo.likes = remaining
            return False

        photo.likes = photo.likes + [
            Like(user_name=user_name, user_profile_pic=user_profile_pic, created_at=utc_now_iso())
        ]
        return True

    outcome = store.mutate(photo_id, apply)
    if outcome is None:
        raise PhotoNotFound(photo_id)

    photo, liked = outcome
    logger.info(f"사진 {photo_id} 좋아요 {'추가' if liked else '취소'}: {user_name} (총 {len(photo.likes)})")
    return photo, liked

def add_comment(store: PhotoStore, photo_id: str, comment: Comment) -> Photo:
    """댓글 추가

    comments 끝에 붙이고, 예전 클라이언트 호환을 위해 comment 필드와
    caption도 새 댓글로 덮어쓴다.
    """
    def apply(photo: Photo) -> None:
        photo.comments = photo.comments + [comment]
        photo.comment = comment
        photo.caption = comment.text

    outcome = store.mutate(photo_id, apply)
    if outcome is None:
        raise PhotoNotFound(photo_id)

    photo, _ = outcome
    logger.info(f"사진 {photo_id} 댓글 추가: {comment.author} (총 {len(photo.comments)})")
    return photo

def set_comment(store: PhotoStore, photo_id: str, comment: Comment) -> bool:
    """(레거시) 단일 comment + caption 덮어쓰기, comments는 그대로"""
    def apply(photo: Photo) -> None:
        photo.comment = comment
        photo.caption = comment.text

    if store.mutate(photo_id, apply) is None:
        raise PhotoNotFound(photo_id)
    return True

def update_caption(store: PhotoStore, photo_id: str, caption: str) -> bool:
    """(레거시) 캡션 교체"""
    def apply(photo: Photo) -> None:
        photo.caption = caption

    if store.mutate(photo_id, apply) is None:
        raise PhotoNotFound(photo_id)
    return True
