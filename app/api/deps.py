# app/api/deps.py
from dataclasses import dataclass
from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.ai_service import AIService, get_ai_service
from app.services.blob_storage import BlobStorage, get_blob_storage
from app.services.photo_store import PhotoStore


@dataclass(frozen=True)
class SessionContext:
    """클라이언트가 보낸 사용자 정보 (비밀번호 게이트 통과 후 로컬 프로필)

    보안 경계가 아니라 author / userName 기본값으로만 쓴다.
    """
    user_name: str | None = None
    user_profile_pic: str | None = None


def get_photo_store(db: Session = Depends(get_db)) -> PhotoStore:
    """요청마다 DB 세션에 묶인 저장소"""
    return PhotoStore(db)

def get_blobs() -> BlobStorage:
    return get_blob_storage()

def get_ai() -> AIService:
    return get_ai_service()

def get_session_context(
    x_user_name: str | None = Header(default=None),
    x_user_profile_pic: str | None = Header(default=None)
) -> SessionContext:
    """X-User-Name / X-User-Profile-Pic 헤더"""
    return SessionContext(
        user_name=(x_user_name or "").strip() or None,
        user_profile_pic=x_user_profile_pic or None
    )
