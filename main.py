# main.py
import os
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.config import settings
from app.database import Base, engine
from app.models import photo as photo_model  # noqa: F401  (테이블 등록)
from app.api.routes import photos, stories
from app.core.exceptions import ScrapbookError
from app.core.logging_middleware import log_requests
from app.core.logger import logger

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug
)

# ===== 로깅 미들웨어 (가장 먼저) =====
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    return await log_requests(request, call_next)

# 요청 크기 제한 미들웨어
@app.middleware("http")
async def limit_upload_size(request: Request, call_next):
    """요청 크기 제한"""
    if request.method in ["POST", "PUT", "PATCH"]:
        content_length = request.headers.get("content-length")
        if content_length and int(content_length) > settings.max_request_size:
            return JSONResponse(
                status_code=413,
                content={"error": f"Request too large. Max: {settings.max_request_size // 1024 // 1024}MB"}
            )
    return await call_next(request)

# ===== 에러 -> JSON {error, details} =====
@app.exception_handler(ScrapbookError)
async def scrapbook_error_handler(request: Request, exc: ScrapbookError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} 실패: {exc.message} ({exc.details})")
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": str(exc.errors())}
    )

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"{request.method} {request.url.path} 처리되지 않은 에러")
    return JSONResponse(
        status_code=500,
        content={"error": "Operation failed", "details": str(exc)}
    )

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 라우터 등록
app.include_router(photos.router)
app.include_router(stories.router)

# 로컬 저장소 파일 서빙
os.makedirs(settings.upload_dir, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

@app.on_event("startup")
async def startup_event():
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.app_name} 서버 시작 (저장소: {settings.storage_backend})")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"{settings.app_name} 서버 종료")

@app.get("/health")
def health_check():
    """헬스체크"""
    return {
        "status": "healthy",
        "service": settings.app_name
    }
