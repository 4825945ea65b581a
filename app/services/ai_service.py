# app/services/ai_service.py
import io
import re
import json
import base64
from functools import lru_cache
from typing import Protocol

from openai import OpenAI
from openai import APIError, APITimeoutError, RateLimitError
from PIL import Image, ImageOps, UnidentifiedImageError
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.config import settings
from app.core.logger import logger
from app.schemas.photo import Photo

CAPTION_PROMPT = """You are captioning photos for a baby/toddler photo album app.

Look at this photo and generate a SHORT, cute caption (2-5 words max).
The caption should be:
- Sweet and endearing
- Written as if describing a precious moment
- Could be playful, funny, or heartwarming
- NO hashtags, NO emojis, NO punctuation at the end

Examples of good captions:
- "Little explorer at work"
- "Snack time champion"
- "Best nap ever"
- "Future artist"
- "Sandy toes adventure"

Just respond with the caption, nothing else."""

KEYWORDS_PROMPT = """Describe this photo with 5-10 short lowercase keywords
(subjects, setting, activity, mood, colors).

Respond with a JSON array of strings only, for example:
["baby", "outdoors", "grass", "happy", "sunny"]"""

STORY_PROMPT = """You are grouping photos from a family photo album into story themes.

Each photo is listed as: id | caption | uploaded at
{photo_lines}

Create 3-6 themed stories. Every story needs at least 2 photos, and a photo may
appear in more than one story. Use only the ids listed above.

Respond with a JSON array only:
[{{"title": "Outdoor Adventures", "subtitle": "Sunny days outside", "emoji": "🌳", "photoIds": ["id1", "id2"]}}]"""

# 스토리 프롬프트에 넣을 최대 사진 수
STORY_PHOTO_LIMIT = 60

# 재시도 가능한 OpenAI 에러 (3번 재시도, 2초, 4초, 8초 대기)
ai_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_exception_type((APIError, APITimeoutError, RateLimitError)),
    reraise=True
)


class AIService(Protocol):
    """캡션/키워드/스토리 생성 (실패하면 빈 결과)"""

    def generate_caption(self, image_bytes: bytes, mime_type: str) -> str:
        ...

    def generate_keywords(self, image_bytes: bytes, mime_type: str) -> list[str]:
        ...

    def generate_story_themes(self, photos: list[Photo]) -> list[dict]:
        ...


def strip_code_fences(text: str) -> str:
    """```json ... ``` 마크다운 제거"""
    return text.replace("```json", "").replace("```", "").strip()

def clean_caption(text: str) -> str:
    """앞뒤 따옴표 한 글자씩 제거"""
    return re.sub(r"^[\"']|[\"']$", "", text.strip())

def parse_keywords(text: str) -> list[str]:
    """모델 응답 -> 키워드 리스트 (형식이 틀리면 ValueError)"""
    result = json.loads(strip_code_fences(text))
    if isinstance(result, dict):
        result = result.get("keywords")
    if not isinstance(result, list):
        raise ValueError(f"키워드 응답이 배열이 아님: {text[:100]}")
    return [k.strip() for k in result if isinstance(k, str) and k.strip()]

def parse_story_themes(text: str) -> list[dict]:
    result = json.loads(strip_code_fences(text))
    if isinstance(result, dict):
        result = result.get("stories") or result.get("themes")
    if not isinstance(result, list):
        raise ValueError(f"스토리 응답이 배열이 아님: {text[:100]}")
    return [theme for theme in result if isinstance(theme, dict)]

def encode_image_to_base64(image_bytes: bytes, mime_type: str, max_side: int) -> tuple[str, str]:
    """이미지 축소 후 base64 인코딩 (디코딩 실패 시 원본 그대로)"""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            if max(img.size) > max_side:
                img = ImageOps.exif_transpose(img)
                img.thumbnail((max_side, max_side))
                buffer = io.BytesIO()
                img.convert("RGB").save(buffer, format="JPEG", quality=85)
                image_bytes, mime_type = buffer.getvalue(), "image/jpeg"
    except (UnidentifiedImageError, OSError) as e:
        logger.debug(f"이미지 축소 생략: {e}")
    return base64.b64encode(image_bytes).decode("utf-8"), mime_type


class OpenAIVisionService:
    """OpenAI 기반 AIService 구현"""

    def __init__(self, client: OpenAI | None = None):
        self._client = client

    @property
    def client(self) -> OpenAI:
        # 키 없이도 앱이 뜨도록 첫 호출 시 생성
        if self._client is None:
            self._client = OpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.ai_timeout_seconds
            )
        return self._client

    @ai_retry
    def _vision_completion(self, prompt: str, image_bytes: bytes, mime_type: str, max_tokens: int) -> str:
        base64_image, mime_type = encode_image_to_base64(image_bytes, mime_type, settings.ai_image_max_side)
        response = self.client.chat.completions.create(
            model=settings.openai_vision_model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": f"data:{mime_type};base64,{base64_image}"}}
                    ]
                }
            ],
            max_tokens=max_tokens
        )
        return (response.choices[0].message.content or "").strip()

    @ai_retry
    def _text_completion(self, prompt: str, max_tokens: int) -> str:
        response = self.client.chat.completions.create(
            model=settings.openai_text_model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens
        )
        return (response.choices[0].message.content or "").strip()

    def generate_caption(self, image_bytes: bytes, mime_type: str) -> str:
        """짧은 캡션 생성 (실패 시 빈 문자열)"""
        if not mime_type.startswith("image/"):
            return ""
        try:
            return clean_caption(self._vision_completion(CAPTION_PROMPT, image_bytes, mime_type, 30))
        except Exception as e:
            logger.warning(f"캡션 생성 실패: {e}")
            return ""

    def generate_keywords(self, image_bytes: bytes, mime_type: str) -> list[str]:
        """유사도 비교용 키워드 (실패 시 빈 리스트)"""
        if not mime_type.startswith("image/"):
            return []
        try:
            return parse_keywords(self._vision_completion(KEYWORDS_PROMPT, image_bytes, mime_type, 150))
        except Exception as e:
            logger.warning(f"키워드 생성 실패: {e}")
            return []

    def generate_story_themes(self, photos: list[Photo]) -> list[dict]:
        """캡션 기반 스토리 테마 묶기 (실패 시 빈 리스트)"""
        photo_lines = "\n".join(
            f"{photo.id} | {photo.caption or '(no caption)'} | {photo.uploaded_at}"
            for photo in photos[:STORY_PHOTO_LIMIT]
        )
        try:
            content = self._text_completion(STORY_PROMPT.format(photo_lines=photo_lines), 1500)
            return parse_story_themes(content)
        except Exception as e:
            logger.warning(f"스토리 생성 실패: {e}")
            return []


@lru_cache(maxsize=1)
def get_ai_service() -> AIService:
    return OpenAIVisionService()
