# app/services/story_service.py
from app.core.logger import logger
from app.schemas.photo import Photo
from app.schemas.story import StoryTheme
from app.services.ai_service import AIService

GRADIENTS = [
    "from-pink-400 to-purple-500",
    "from-yellow-400 to-orange-500",
    "from-green-400 to-teal-500",
    "from-blue-400 to-indigo-500",
    "from-rose-400 to-red-500",
    "from-cyan-400 to-sky-500",
]

DEFAULT_EMOJI = "📷"


def fallback_story(photos: list[Photo]) -> StoryTheme:
    """AI 결과가 없을 때 전체 사진 스토리 하나"""
    return StoryTheme(
        id="all",
        title="All Moments",
        subtitle="Your photos",
        emoji=DEFAULT_EMOJI,
        photo_ids=[p.id for p in photos],
        gradient=GRADIENTS[0],
    )

def validate_themes(raw_themes: list[dict], photos: list[Photo]) -> list[StoryTheme]:
    """AI 응답 정리: 없는 id 제거, 빈 그룹 제거, id/gradient 부여"""
    known_ids = {p.id for p in photos}
    stories = []

    for theme in raw_themes:
        photo_ids = theme.get("photoIds") or theme.get("photo_ids") or []
        if not isinstance(photo_ids, list):
            continue

        # 순서 유지 + 중복 제거
        valid_ids = list(dict.fromkeys(pid for pid in photo_ids if isinstance(pid, str) and pid in known_ids))
        if not valid_ids:
            continue

        title = str(theme.get("title") or "").strip() or "Moments"
        stories.append(StoryTheme(
            id=f"story-{len(stories) + 1}",
            title=title,
            subtitle=str(theme.get("subtitle") or "").strip() or f"{len(valid_ids)} photos",
            emoji=str(theme.get("emoji") or "").strip() or DEFAULT_EMOJI,
            photo_ids=valid_ids,
            gradient=GRADIENTS[len(stories) % len(GRADIENTS)],
        ))

    return stories

def build_stories(photos: list[Photo], ai: AIService) -> list[StoryTheme]:
    """스토리 목록 (사진 없으면 빈 리스트)"""
    if not photos:
        return []

    stories = validate_themes(ai.generate_story_themes(photos), photos)
    if not stories:
        logger.info("AI 스토리 없음, 기본 스토리 사용")
        return [fallback_story(photos)]

    logger.info(f"스토리 {len(stories)}개 생성")
    return stories
