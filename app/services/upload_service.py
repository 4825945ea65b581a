# app/services/upload_service.py
import random
import uuid
from dataclasses import dataclass

from app.core.exceptions import UpstreamFailure
from app.core.file_security import guess_mime_type, media_type_for, storage_filename
from app.core.logger import logger
from app.schemas.photo import Photo, utc_now_iso
from app.schemas.story import BackfillResponse, BackfillResult
from app.services.ai_service import AIService
from app.services.blob_storage import BlobStorage, BlobStorageError
from app.services.photo_store import PhotoStore
from app.services import engagement_service


@dataclass
class UploadOutcome:
    photo: Photo | None = None
    skipped: bool = False


def random_rotation() -> float:
    """폴라로이드 느낌의 -4도 ~ 4도 회전"""
    return (random.random() - 0.5) * 8

def upload_photo(
    store: PhotoStore,
    blobs: BlobStorage,
    ai: AIService,
    original_name: str,
    content_type: str,
    data: bytes
) -> UploadOutcome:
    """업로드 파이프라인

    중복 검사 -> 파일 저장 (필수) -> 캡션 생성 (이미지만, 실패해도 진행) -> 문서 저장
    """
    if store.is_duplicate(original_name):
        logger.info(f"중복 업로드 건너뜀: {original_name}")
        return UploadOutcome(skipped=True)

    filename = storage_filename(original_name, content_type)
    try:
        image_url = blobs.put(filename, data, content_type)
    except BlobStorageError as e:
        logger.exception(f"파일 저장 실패: {original_name}")
        raise UpstreamFailure("Failed to upload file", details=str(e)) from e

    media_type = media_type_for(content_type)
    caption = ""
    if media_type == "image":
        caption = ai.generate_caption(data, content_type)

    photo = Photo(
        id=str(uuid.uuid4()),
        filename=filename,
        original_name=original_name,
        media_type=media_type,
        caption=caption,
        uploaded_at=utc_now_iso(),
        rotation=random_rotation(),
        image_url=image_url,
    )

    try:
        store.put(photo)
    except UpstreamFailure:
        # 문서가 없으면 파일도 남기지 않음
        _delete_blob(blobs, filename)
        raise

    logger.info(f"업로드 완료: {original_name} -> {photo.id} ({media_type}, 캡션: {caption or '-'})")
    return UploadOutcome(photo=photo)

def delete_photo(store: PhotoStore, blobs: BlobStorage, photo_id: str) -> bool:
    """문서 삭제 + 파일 삭제 (파일 삭제 실패는 무시)"""
    photo = store.get(photo_id)
    if photo is None:
        return False

    _delete_blob(blobs, photo.filename)
    return store.delete(photo_id) is not None

def load_media(blobs: BlobStorage, photo: Photo) -> tuple[bytes, str]:
    """저장된 원본 파일과 MIME 타입"""
    return blobs.read(photo.filename), guess_mime_type(photo.filename)

def photo_keywords(blobs: BlobStorage, ai: AIService, photo: Photo) -> list[str]:
    data, mime_type = load_media(blobs, photo)
    return ai.generate_keywords(data, mime_type)

def backfill_captions(store: PhotoStore, blobs: BlobStorage, ai: AIService) -> BackfillResponse:
    """캡션 없는 이미지에 캡션 일괄 생성"""
    pending = [p for p in store.list() if not p.caption and not p.is_video]

    if not pending:
        return BackfillResponse(
            message="All photos already have captions",
            processed=0,
            failed=0,
            total=0,
            results=[]
        )

    processed = 0
    failed = 0
    results = []

    for photo in pending:
        try:
            data, mime_type = load_media(blobs, photo)
            caption = ai.generate_caption(data, mime_type)
            if not caption:
                failed += 1
                continue

            engagement_service.update_caption(store, photo.id, caption)
            results.append(BackfillResult(id=photo.id, caption=caption))
            processed += 1
        except Exception as e:
            # 한 장 실패해도 계속 진행
            logger.warning(f"사진 {photo.id} 캡션 생성 실패: {e}")
            failed += 1

    logger.info(f"캡션 백필: 성공 {processed}, 실패 {failed}, 전체 {len(pending)}")
    return BackfillResponse(
        message=f"Processed {processed} photos, {failed} failed",
        processed=processed,
        failed=failed,
        total=len(pending),
        results=results
    )

def _delete_blob(blobs: BlobStorage, filename: str) -> None:
    try:
        blobs.delete(filename)
    except BlobStorageError as e:
        logger.warning(f"파일 삭제 실패 (계속 진행): {filename}: {e}")
