# app/api/routes/photos.py
from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.api.deps import SessionContext, get_ai, get_blobs, get_photo_store, get_session_context
from app.config import settings
from app.core.exceptions import InvalidRequest, PhotoNotFound, ScrapbookError, UpstreamFailure
from app.core.file_security import validate_content_type, validate_file_size
from app.core.logger import logger
from app.schemas.photo import (
    CommentIn,
    GalleryItem,
    GalleryResponse,
    Photo,
    SimilarPhoto,
    ToggleLikeRequest,
    UploadSkippedResponse,
    to_document,
)
from app.services import engagement_service, presentation_service, similarity_service, upload_service
from app.services.ai_service import AIService
from app.services.blob_storage import BlobStorage
from app.services.photo_store import PhotoStore

router = APIRouter(prefix="/api", tags=["사진"])


@router.get("/photos", response_model=list[Photo], response_model_exclude_none=True)
def list_photos(store: PhotoStore = Depends(get_photo_store)):
    """사진 목록 (최신순, 실패해도 빈 배열)"""
    try:
        return store.list()
    except Exception:
        logger.exception("사진 목록 조회 실패")
        return []

@router.post(
    "/upload",
    response_model=Photo,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"model": UploadSkippedResponse, "description": "중복 파일"}}
)
async def upload_photo(
    file: UploadFile | None = File(default=None),
    store: PhotoStore = Depends(get_photo_store),
    blobs: BlobStorage = Depends(get_blobs),
    ai: AIService = Depends(get_ai)
):
    """사진/동영상 업로드 (중복 파일명은 건너뜀)"""
    if file is None or not file.filename:
        raise InvalidRequest("No file provided")
    validate_content_type(file.content_type)

    data = await file.read()
    validate_file_size(len(data))

    try:
        outcome = await run_in_threadpool(
            upload_service.upload_photo, store, blobs, ai, file.filename, file.content_type, data
        )
    except ScrapbookError:
        raise
    except Exception as e:
        logger.exception(f"업로드 실패: {file.filename}")
        raise UpstreamFailure("Failed to upload file", details=str(e)) from e

    if outcome.skipped:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=UploadSkippedResponse(filename=file.filename).model_dump()
        )
    return outcome.photo

@router.get("/gallery", response_model=GalleryResponse, response_model_exclude_none=True)
def get_gallery(
    seen: str | None = Query(None, description="이미 본 사진 id (쉼표 구분)"),
    store: PhotoStore = Depends(get_photo_store)
):
    """갤러리 순서 (안 본 사진 먼저) + 폴라로이드 배치"""
    tracker = presentation_service.SeenSet.from_param(seen)
    try:
        photos = store.list()
    except Exception:
        logger.exception("갤러리 조회 실패")
        photos = []

    ordered = presentation_service.order(photos, tracker.ids)
    items = [
        GalleryItem(
            photo=photo,
            placement=presentation_service.layout(photo.id, index),
            seen=tracker.is_seen(photo.id)
        )
        for index, photo in enumerate(ordered)
    ]
    return GalleryResponse(
        photos=items,
        unseen_count=sum(1 for item in items if not item.seen),
        total=len(items)
    )

@router.delete("/photos/{photo_id}")
def delete_photo(
    photo_id: str,
    store: PhotoStore = Depends(get_photo_store),
    blobs: BlobStorage = Depends(get_blobs)
):
    """사진 삭제 (파일은 최대한 삭제)"""
    if not upload_service.delete_photo(store, blobs, photo_id):
        raise PhotoNotFound(photo_id)
    logger.info(f"사진 삭제: {photo_id}")
    return {"success": True}

@router.patch("/photos/{photo_id}")
def update_photo(
    photo_id: str,
    payload: dict = Body(...),
    store: PhotoStore = Depends(get_photo_store),
    session: SessionContext = Depends(get_session_context)
):
    """사진 수정 (본문 모양으로 구분)

    - {action: "add_comment", comment}
    - {action: "toggle_like", userName, userProfilePic?}
    - {caption} (레거시)
    - {comment} (레거시 단일 댓글)
    """
    action = payload.get("action")

    if action == "add_comment":
        comment = _comment_from(payload.get("comment"), session)
        photo = engagement_service.add_comment(store, photo_id, comment)
        return {"success": True, "photo": to_document(photo)}

    if action == "toggle_like":
        request = _parse(ToggleLikeRequest, payload)
        photo, liked = engagement_service.toggle_like(
            store,
            photo_id,
            request.user_name or session.user_name,
            request.user_profile_pic or session.user_profile_pic
        )
        return {"success": True, "liked": liked, "photo": to_document(photo)}

    if action is None and "caption" in payload:
        caption = payload["caption"]
        if not isinstance(caption, str):
            raise InvalidRequest("caption must be a string")
        engagement_service.update_caption(store, photo_id, caption)
        return {"success": True}

    if action is None and "comment" in payload:
        engagement_service.set_comment(store, photo_id, _comment_from(payload["comment"], session))
        return {"success": True}

    raise InvalidRequest("Invalid request body")

@router.get("/photos/{photo_id}/similar")
def get_similar_photos(
    photo_id: str,
    store: PhotoStore = Depends(get_photo_store),
    blobs: BlobStorage = Depends(get_blobs),
    ai: AIService = Depends(get_ai)
):
    """키워드 자카드 유사도 상위 사진"""
    target = store.get(photo_id)
    if target is None:
        raise PhotoNotFound(photo_id)

    if target.is_video:
        return {"similar": [], "message": "Videos not supported"}

    try:
        result = similarity_service.find_similar(
            target,
            store.list(),
            keywords_for=lambda photo: upload_service.photo_keywords(blobs, ai, photo),
            k=settings.similar_top_k,
            threshold=settings.similar_threshold,
            candidate_limit=settings.similar_candidate_limit
        )
    except Exception as e:
        logger.exception(f"비슷한 사진 찾기 실패: {photo_id}")
        raise UpstreamFailure("Failed to find similar photos", details=str(e)) from e

    similar = [
        SimilarPhoto(**match.photo.model_dump(), similarity_score=match.percent)
        .model_dump(by_alias=True, exclude_none=True)
        for match in result.matches
    ]
    return {"similar": similar, "keywords": result.keywords}


def _parse(model: type[BaseModel], value) -> BaseModel:
    if not isinstance(value, dict):
        raise InvalidRequest("Invalid request body")
    try:
        return model.model_validate(value)
    except ValidationError as e:
        raise InvalidRequest("Invalid request body", details=str(e)) from e

def _comment_from(value, session: SessionContext):
    """요청 comment (객체 또는 문자열) -> Comment"""
    if isinstance(value, str):
        value = {"text": value}
    comment_in = _parse(CommentIn, value)
    return engagement_service.build_comment(
        comment_in.text,
        author=comment_in.author or session.user_name,
        author_profile_pic=comment_in.author_profile_pic or session.user_profile_pic,
        comment_id=comment_in.id,
        created_at=comment_in.created_at
    )
