# app/schemas/story.py
from pydantic import BaseModel
from app.schemas.photo import CamelModel

class StoryTheme(CamelModel):
    """AI가 묶은 테마 스토리"""
    id: str
    title: str
    subtitle: str
    emoji: str
    photo_ids: list[str]
    gradient: str  # Tailwind 그라데이션 클래스

class StoriesResponse(BaseModel):
    stories: list[StoryTheme]

class BackfillResult(BaseModel):
    id: str
    caption: str

class BackfillResponse(BaseModel):
    """캡션 일괄 생성 결과"""
    message: str
    processed: int
    failed: int
    total: int
    results: list[BackfillResult]
