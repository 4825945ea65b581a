# app/models/photo.py
from sqlalchemy import Column, String, Integer, JSON
from app.database import Base

class PhotoRecord(Base):
    """사진 문서 저장 행 (data JSON이 원본, 나머지 컬럼은 조회용 사본)"""
    __tablename__ = "photos"

    # 기본 필드
    id = Column(String, primary_key=True)

    # 조회용 컬럼
    original_name = Column(String, nullable=False, index=True)  # 중복 검사 키
    uploaded_at = Column(String, nullable=False, index=True)  # ISO-8601, 최신순 정렬
    media_type = Column(String, nullable=False, default="image")

    # 낙관적 락 버전
    version = Column(Integer, nullable=False, default=1)

    # Photo 문서 (camelCase JSON)
    data = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<PhotoRecord {self.id} v{self.version}>"
