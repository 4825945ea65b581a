# app/core/logging_middleware.py
from fastapi import Request
from app.core.logger import logger
import time

async def log_requests(request: Request, call_next):
    """요청/응답 로깅 (정적 파일 제외)"""

    if request.url.path.startswith("/uploads"):
        return await call_next(request)

    start_time = time.perf_counter()
    logger.debug(f"-> {request.method} {request.url.path}")

    try:
        response = await call_next(request)
    except Exception as e:
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.error(
            f"{request.method} {request.url.path} "
            f"- Error: {e} "
            f"- Time: {elapsed_ms:.2f}ms"
        )
        logger.exception("Exception details:")
        raise

    elapsed_ms = (time.perf_counter() - start_time) * 1000

    # 4xx/5xx는 WARNING으로 남김
    log = logger.warning if response.status_code >= 400 else logger.info
    log(
        f"<- {request.method} {request.url.path} "
        f"- Status: {response.status_code} "
        f"- Time: {elapsed_ms:.2f}ms"
    )
    response.headers["X-Process-Time-Ms"] = f"{elapsed_ms:.2f}"
    return response
