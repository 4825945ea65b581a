# app/api/routes/stories.py
from fastapi import APIRouter, Depends

from app.api.deps import get_ai, get_blobs, get_photo_store
from app.core.exceptions import UpstreamFailure
from app.core.logger import logger
from app.schemas.story import BackfillResponse, StoriesResponse
from app.services import story_service, upload_service
from app.services.ai_service import AIService
from app.services.blob_storage import BlobStorage
from app.services.photo_store import PhotoStore

router = APIRouter(prefix="/api", tags=["스토리"])


@router.get("/stories", response_model=StoriesResponse)
def get_stories(
    store: PhotoStore = Depends(get_photo_store),
    ai: AIService = Depends(get_ai)
):
    """AI 테마 스토리"""
    try:
        stories = story_service.build_stories(store.list(), ai)
    except Exception as e:
        logger.exception("스토리 생성 실패")
        raise UpstreamFailure("Failed to generate stories", details=str(e)) from e
    return StoriesResponse(stories=stories)

@router.post("/backfill-captions", response_model=BackfillResponse)
def backfill_captions(
    store: PhotoStore = Depends(get_photo_store),
    blobs: BlobStorage = Depends(get_blobs),
    ai: AIService = Depends(get_ai)
):
    """캡션 없는 사진 캡션 채우기"""
    try:
        return upload_service.backfill_captions(store, blobs, ai)
    except Exception as e:
        logger.exception("캡션 백필 실패")
        raise UpstreamFailure("Failed to backfill captions", details=str(e)) from e
