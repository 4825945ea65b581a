# app/core/exceptions.py
from fastapi import status


class ScrapbookError(Exception):
    """API에서 JSON {error, details}로 변환되는 에러의 부모 클래스"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Operation failed"

    def __init__(self, message: str | None = None, details: str | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)

    def to_content(self) -> dict:
        content = {"error": self.message}
        if self.details:
            content["details"] = self.details
        return content


class PhotoNotFound(ScrapbookError):
    """존재하지 않는 사진 id"""

    status_code = status.HTTP_404_NOT_FOUND
    message = "Photo not found"

    def __init__(self, photo_id: str):
        self.photo_id = photo_id
        super().__init__()


class InvalidRequest(ScrapbookError):
    """잘못된 업로드 필드 / PATCH 본문"""

    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class PayloadTooLarge(ScrapbookError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    message = "File too large"


class UpstreamFailure(ScrapbookError):
    """DB, Blob 저장소 등 필수 외부 의존성 실패"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Operation failed"


class WriteConflict(ScrapbookError):
    """낙관적 락 재시도 초과"""

    status_code = status.HTTP_409_CONFLICT
    message = "Photo was modified concurrently, please retry"
