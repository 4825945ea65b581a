# app/core/file_security.py
import os
import re
import uuid
import mimetypes

from app.config import settings
from app.core.exceptions import InvalidRequest, PayloadTooLarge

# 업로드 허용 타입 (이미지 / 동영상 전체)
ALLOWED_MEDIA_PREFIXES = ("image/", "video/")
DEFAULT_EXTENSION = "jpg"

def validate_content_type(content_type: str | None) -> None:
    """MIME 타입 검증"""
    if not content_type or not content_type.startswith(ALLOWED_MEDIA_PREFIXES):
        raise InvalidRequest("File must be an image or video")

def validate_file_size(size: int) -> None:
    """파일 크기 검증"""
    if size > settings.max_file_size:
        raise PayloadTooLarge(
            f"File too large. Max: {settings.max_file_size // 1024 // 1024}MB"
        )

def media_type_for(content_type: str | None) -> str:
    """MIME 타입 -> Photo.mediaType"""
    if content_type and content_type.startswith("video/"):
        return "video"
    return "image"

def safe_extension(original_name: str | None, content_type: str | None = None) -> str:
    """원본 파일명에서 확장자 추출 (없거나 이상하면 MIME 기준)"""
    _, ext = os.path.splitext(os.path.basename(original_name or ""))
    ext = ext.lstrip(".").lower()
    if ext and re.fullmatch(r"[a-z0-9]{1,10}", ext):
        return ext

    guessed = mimetypes.guess_extension(content_type or "")
    if guessed:
        return guessed.lstrip(".")
    return DEFAULT_EXTENSION

def storage_filename(original_name: str | None, content_type: str | None = None) -> str:
    """저장소용 고유 파일명 (UUID + 확장자)"""
    return f"{uuid.uuid4()}.{safe_extension(original_name, content_type)}"

def guess_mime_type(filename: str) -> str:
    """저장된 파일명으로 MIME 타입 추정 (기본값 image/jpeg)"""
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "image/jpeg"
