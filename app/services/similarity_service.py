# app/services/similarity_service.py
import math
from dataclasses import dataclass, field
from typing import Callable, Iterable

from app.core.logger import logger
from app.schemas.photo import Photo

# 기본값 (settings.similar_* 로 변경 가능)
DEFAULT_TOP_K = 4
DEFAULT_THRESHOLD = 0.1
DEFAULT_CANDIDATE_LIMIT = 10


@dataclass
class SimilarMatch:
    photo: Photo
    score: float

    @property
    def percent(self) -> int:
        """0-100 정수 점수 (.5는 올림)"""
        return math.floor(self.score * 100 + 0.5)


@dataclass
class SimilarityResult:
    keywords: list[str] = field(default_factory=list)
    matches: list[SimilarMatch] = field(default_factory=list)


def score(keywords_a: Iterable[str], keywords_b: Iterable[str]) -> float:
    """자카드 유사도 (대소문자 무시, 한쪽이 비면 0)"""
    set_a = {k.casefold() for k in keywords_a}
    set_b = {k.casefold() for k in keywords_b}
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / len(set_a | set_b)

def rank(
    target_keywords: list[str],
    candidates: list[tuple[Photo, list[str]]],
    k: int = DEFAULT_TOP_K,
    threshold: float = DEFAULT_THRESHOLD
) -> list[SimilarMatch]:
    """threshold 초과만 남기고 점수 내림차순 상위 k개 (동점은 후보 순서 유지)"""
    matches = []
    for photo, keywords in candidates:
        similarity = score(target_keywords, keywords)
        if similarity > threshold:
            matches.append(SimilarMatch(photo=photo, score=similarity))

    # sorted는 안정 정렬
    return sorted(matches, key=lambda m: m.score, reverse=True)[:k]

def find_similar(
    target: Photo,
    candidates: list[Photo],
    keywords_for: Callable[[Photo], list[str]],
    k: int = DEFAULT_TOP_K,
    threshold: float = DEFAULT_THRESHOLD,
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
) -> SimilarityResult:
    """비슷한 사진 찾기

    1. 대상 키워드 추출 (비면 후보 분석 없이 빈 결과)
    2. 대상/동영상 제외 후 후보 candidate_limit개만 분석 (AI 호출 비용 제한)
    3. 후보별 실패는 건너뛰고 계속 진행
    """
    try:
        target_keywords = keywords_for(target)
    except Exception as e:
        logger.warning(f"사진 {target.id} 분석 실패: {e}")
        return SimilarityResult()
    if not target_keywords:
        return SimilarityResult()

    pool = [p for p in candidates if p.id != target.id and not p.is_video][:candidate_limit]

    scored = []
    for photo in pool:
        try:
            scored.append((photo, keywords_for(photo)))
        except Exception as e:
            logger.warning(f"사진 {photo.id} 분석 실패, 건너뜀: {e}")
            continue

    matches = rank(target_keywords, scored, k=k, threshold=threshold)
    logger.info(f"사진 {target.id}: 후보 {len(pool)}개 중 {len(matches)}개 유사")
    return SimilarityResult(keywords=target_keywords, matches=matches)
