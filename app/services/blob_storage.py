# app/services/blob_storage.py
"""사진/동영상 원본 파일 저장소 (로컬 디스크 또는 S3)"""
import os
from functools import lru_cache
from pathlib import Path
from typing import Protocol

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import settings
from app.core.logger import logger

PHOTOS_FOLDER = "photos"


class BlobStorageError(RuntimeError):
    """파일 저장/조회/삭제 실패"""


class BlobStorage(Protocol):
    def put(self, filename: str, data: bytes, content_type: str) -> str:
        """저장 후 접근 가능한 URL 반환"""
        ...

    def read(self, filename: str) -> bytes:
        ...

    def delete(self, filename: str) -> None:
        ...


class LocalBlobStorage:
    """upload_dir/photos/ 아래에 저장, /uploads 정적 경로로 서빙"""

    def __init__(self, root_dir: str, base_url: str = ""):
        self.folder = Path(root_dir) / PHOTOS_FOLDER
        self.base_url = base_url.rstrip("/")
        self.folder.mkdir(parents=True, exist_ok=True)

    def _path(self, filename: str) -> Path:
        # 경로 조작 방지
        return self.folder / os.path.basename(filename)

    def put(self, filename: str, data: bytes, content_type: str) -> str:
        try:
            with open(self._path(filename), "wb") as buffer:
                buffer.write(data)
        except OSError as e:
            raise BlobStorageError(f"파일 저장 실패: {e}") from e
        return f"{self.base_url}/uploads/{PHOTOS_FOLDER}/{os.path.basename(filename)}"

    def read(self, filename: str) -> bytes:
        try:
            return self._path(filename).read_bytes()
        except OSError as e:
            raise BlobStorageError(f"파일 읽기 실패: {e}") from e

    def delete(self, filename: str) -> None:
        path = self._path(filename)
        if not path.exists():
            return
        try:
            path.unlink()
        except OSError as e:
            raise BlobStorageError(f"파일 삭제 실패: {e}") from e


class S3BlobStorage:
    """S3 버킷 저장 (prefix/filename 키)"""

    def __init__(self, client: BaseClient, bucket: str, prefix: str = "photos/",
                 region: str = "us-east-1", public_base_url: str = ""):
        self.client = client
        self.bucket = bucket
        self.prefix = prefix.strip().lstrip("/")
        if self.prefix and not self.prefix.endswith("/"):
            self.prefix += "/"
        self.region = region
        self.public_base_url = public_base_url.rstrip("/")

    def key_for(self, filename: str) -> str:
        return f"{self.prefix}{os.path.basename(filename)}"

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def put(self, filename: str, data: bytes, content_type: str) -> str:
        key = self.key_for(filename)
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            raise BlobStorageError(f"S3 업로드 실패 ({key}): {e}") from e
        return self.url_for(key)

    def read(self, filename: str) -> bytes:
        key = self.key_for(filename)
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise BlobStorageError(f"S3 읽기 실패 ({key}): {e}") from e

    def delete(self, filename: str) -> None:
        key = self.key_for(filename)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise BlobStorageError(f"S3 삭제 실패 ({key}): {e}") from e


@lru_cache(maxsize=1)
def get_blob_storage() -> BlobStorage:
    """설정에 맞는 저장소 싱글톤"""
    if settings.storage_backend == "s3":
        session = boto3.session.Session(region_name=settings.aws_region)
        client = session.client("s3", config=Config(signature_version="s3v4"))
        logger.info(f"S3 저장소 사용: {settings.s3_bucket}/{settings.s3_prefix}")
        return S3BlobStorage(
            client,
            bucket=settings.s3_bucket,
            prefix=settings.s3_prefix,
            region=settings.aws_region,
            public_base_url=settings.s3_public_base_url,
        )

    logger.info(f"로컬 저장소 사용: {settings.upload_dir}/{PHOTOS_FOLDER}")
    return LocalBlobStorage(settings.upload_dir, settings.public_base_url)
