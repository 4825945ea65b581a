# app/services/photo_store.py
from typing import Callable, TypeVar
from pydantic import ValidationError
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.core.exceptions import UpstreamFailure, WriteConflict
from app.core.logger import logger
from app.models.photo import PhotoRecord
from app.schemas.photo import Photo, normalize, to_document

T = TypeVar("T")


class PhotoStore:
    """사진 문서 저장소 (id -> Photo 문서)

    모든 읽기는 normalize()를 거치고, 모든 쓰기는 문서 전체를 저장한다.
    좋아요/댓글 변경은 mutate()로 version 컬럼 기반 낙관적 락을 건다.
    """

    def __init__(self, db: Session, retry_limit: int | None = None):
        self.db = db
        self.retry_limit = retry_limit or settings.write_retry_limit

    def list(self) -> list[Photo]:
        """전체 사진 (최신순, 깨진 문서는 건너뜀)"""
        rows = self.db.query(PhotoRecord)\
            .populate_existing()\
            .order_by(PhotoRecord.uploaded_at.desc())\
            .all()

        photos = []
        for row in rows:
            try:
                photos.append(normalize(row.data, row.id))
            except (ValidationError, TypeError, ValueError) as e:
                logger.warning(f"깨진 사진 문서 건너뜀 ({row.id}): {e}")
        return photos

    def get(self, photo_id: str) -> Photo | None:
        try:
            record = self.db.get(PhotoRecord, photo_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"사진 조회 실패 ({photo_id})")
            raise UpstreamFailure(details=str(e)) from e
        if record is None:
            return None
        return self._normalize_or_fail(record)

    def put(self, photo: Photo) -> Photo:
        """사진 문서 생성 (이미 있으면 전체 교체)"""
        try:
            record = self.db.get(PhotoRecord, photo.id, populate_existing=True)
            if record is None:
                record = PhotoRecord(id=photo.id, version=1)
                self.db.add(record)
            else:
                record.version = record.version + 1
            self._fill(record, photo)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"사진 저장 실패 ({photo.id})")
            raise UpstreamFailure("Failed to save photo", details=str(e)) from e
        return photo

    def delete(self, photo_id: str) -> Photo | None:
        """문서 삭제, 삭제된 Photo 반환 (없으면 None)"""
        try:
            record = self.db.get(PhotoRecord, photo_id, populate_existing=True)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"사진 조회 실패 ({photo_id})")
            raise UpstreamFailure(details=str(e)) from e
        if record is None:
            return None

        photo = self._normalize_or_fail(record)
        try:
            self.db.delete(record)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"사진 삭제 실패 ({photo_id})")
            raise UpstreamFailure("Failed to delete photo", details=str(e)) from e
        return photo

    def is_duplicate(self, original_name: str) -> bool:
        """원본 파일명 완전 일치 여부 (대소문자 구분, 조회 실패 시 False)"""
        try:
            match = self.db.query(PhotoRecord.id)\
                .filter(PhotoRecord.original_name == original_name)\
                .first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"중복 검사 실패, 업로드 허용 ({original_name}): {e}")
            return False
        return match is not None

    def mutate(self, photo_id: str, fn: Callable[[Photo], T]) -> tuple[Photo, T] | None:
        """읽기-수정-쓰기 (version 비교 후 저장, 충돌 시 재시도)

        fn은 Photo를 직접 수정하고 결과값을 반환한다. 재시도마다 최신 문서로
        다시 호출되므로 부수효과가 없어야 한다.
        """
        for attempt in range(1, self.retry_limit + 1):
            try:
                record = self.db.get(PhotoRecord, photo_id, populate_existing=True)
                if record is None:
                    return None

                current_version = record.version
                photo = self._normalize_or_fail(record)
                result = fn(photo)

                stmt = update(PhotoRecord)\
                    .where(PhotoRecord.id == photo_id, PhotoRecord.version == current_version)\
                    .values(data=to_document(photo), version=current_version + 1)\
                    .execution_options(synchronize_session=False)
                updated = self.db.execute(stmt).rowcount
                if updated == 1:
                    self.db.commit()
                    return photo, result

                # 다른 요청이 먼저 저장함 -> 최신 문서로 재시도
                self.db.rollback()
                logger.warning(f"사진 {photo_id} 동시 수정 감지, 재시도 {attempt}/{self.retry_limit}")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception(f"사진 수정 실패 ({photo_id})")
                raise UpstreamFailure(details=str(e)) from e

        raise WriteConflict()

    def _normalize_or_fail(self, record: PhotoRecord) -> Photo:
        try:
            return normalize(record.data, record.id)
        except (ValidationError, TypeError, ValueError) as e:
            logger.error(f"사진 문서 형식 오류 ({record.id}): {e}")
            raise UpstreamFailure("Stored photo is corrupt", details=str(e)) from e

    def _fill(self, record: PhotoRecord, photo: Photo) -> None:
        record.original_name = photo.original_name
        record.uploaded_at = photo.uploaded_at
        record.media_type = photo.media_type
        record.data = to_document(photo)
