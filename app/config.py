# app/config.py
from pydantic_settings import BaseSettings
from pydantic import field_validator

class Settings(BaseSettings):
    """환경변수 설정"""

    # API 기본 설정
    app_name: str = "Polaroid Scrapbook API"
    debug: bool = False
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    max_request_size: int = 120 * 1024 * 1024  # 120MB

    # Database
    database_url: str
    write_retry_limit: int = 5  # 낙관적 락 재시도 횟수

    # 업로드 / Blob 저장소
    max_file_size: int = 100 * 1024 * 1024  # 100MB (동영상 포함)
    storage_backend: str = "local"  # local | s3
    upload_dir: str = "uploads"
    public_base_url: str = ""  # 비어 있으면 상대 경로 URL

    # S3
    aws_region: str = "us-east-1"
    s3_bucket: str = ""
    s3_prefix: str = "photos/"
    s3_public_base_url: str = ""

    # OpenAI API
    openai_api_key: str = ""
    openai_vision_model: str = "gpt-4o"
    openai_text_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 30.0
    ai_image_max_side: int = 1024

    # 비슷한 사진 찾기
    similar_top_k: int = 4
    similar_threshold: float = 0.1
    similar_candidate_limit: int = 10

    @field_validator('storage_backend')
    def validate_storage_backend(cls, v):
        if v not in ("local", "s3"):
            raise ValueError('STORAGE_BACKEND는 local 또는 s3 이어야 합니다')
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False

# 싱글톤 인스턴스
settings = Settings()
