# app/services/presentation_service.py
import random
from typing import Protocol, Sequence

from app.schemas.photo import Photo, Placement

# -6도 ~ 6도 회전 테이블
ROTATIONS = [-6, -4, -2, -1, 0, 1, 2, 4, 6, -3, 3, -5, 5, -1.5, 1.5]
OFFSET_RANGE = 16  # -8px ~ +7px

# 화면에 이 비율 이상 보이면 본 것으로 처리
SEEN_VISIBILITY_THRESHOLD = 0.5


def layout(photo_id: str, index: int) -> Placement:
    """id + 위치로 정해지는 폴라로이드 회전/오프셋 (같은 입력 = 같은 결과)"""
    first = ord(photo_id[0]) if photo_id else 0
    last = ord(photo_id[-1]) if photo_id else 0
    rotation = ROTATIONS[(first + last + index) % len(ROTATIONS)]

    offset_seed = ord(photo_id[1]) if len(photo_id) > 1 else 0
    return Placement(rotation=rotation, offset_y=offset_seed % OFFSET_RANGE - OFFSET_RANGE // 2)

def order(photos: Sequence[Photo], seen_ids: set[str], rng: random.Random | None = None) -> list[Photo]:
    """안 본 사진 먼저, 각 그룹은 매번 새로 섞음"""
    rng = rng or random.Random()
    unseen = [p for p in photos if p.id not in seen_ids]
    seen = [p for p in photos if p.id in seen_ids]
    rng.shuffle(unseen)
    rng.shuffle(seen)
    return unseen + seen


class SeenTracker(Protocol):
    """본 사진 기록 (클라이언트별 로컬 상태)"""

    def is_seen(self, photo_id: str) -> bool:
        ...

    def mark_seen(self, photo_id: str) -> None:
        ...


class SeenSet:
    """메모리 set 기반 SeenTracker"""

    def __init__(self, photo_ids=()):
        self._ids = set(photo_ids)

    @classmethod
    def from_param(cls, raw: str | None) -> "SeenSet":
        """쿼리 파라미터 "id1,id2" 파싱"""
        return cls(part.strip() for part in (raw or "").split(",") if part.strip())

    @property
    def ids(self) -> set[str]:
        return set(self._ids)

    def is_seen(self, photo_id: str) -> bool:
        return photo_id in self._ids

    def mark_seen(self, photo_id: str) -> None:
        self._ids.add(photo_id)

    def observe(self, photo_id: str, visible_ratio: float) -> bool:
        """뷰포트 노출 비율 반영, 본 것으로 바뀌면 True"""
        if visible_ratio < SEEN_VISIBILITY_THRESHOLD or self.is_seen(photo_id):
            return False
        self.mark_seen(photo_id)
        return True
