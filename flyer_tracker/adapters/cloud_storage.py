"""Cloud Storage Adapter

BlobStorage ABC の Google Cloud Storage 実装。
案件に添付されたファイル（チラシ原稿・校正PDF等）の保存・削除を行う。
"""

from __future__ import annotations

import logging

import requests
from google.api_core import exceptions as gexc
from google.auth import exceptions as auth_exceptions
from google.cloud import storage

from flyer_tracker.domain.errors import BlobStoreError
from flyer_tracker.domain.ports import BlobStorage

logger = logging.getLogger(__name__)

# API エラーに加え、認証情報の更新失敗や HTTP 通信エラーもドメイン例外に包む
_BACKEND_ERRORS = (
    gexc.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
    requests.RequestException,
)


class GCSBlobStorage(BlobStorage):
    """
    Google Cloud Storage を使った BlobStorage 実装。

    全ファイルは単一バケット内の blob_path で管理する。
    同じパスへのアップロードは既存オブジェクトを上書きする。
    """

    def __init__(self, bucket_name: str, client: storage.Client | None = None) -> None:
        """
        Args:
            bucket_name: GCS バケット名
            client: 初期化済みの GCS クライアント（省略時は ADC で自動初期化）
        """
        self._client = client or storage.Client()
        self._bucket = self._client.bucket(bucket_name)
        self._bucket_name = bucket_name

    def upload(self, blob_path: str, content: bytes, content_type: str) -> str:
        """
        ファイルを GCS にアップロード（上書き）。

        Raises:
            BlobStoreError: アップロードに失敗した場合
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.upload_from_string(content, content_type=content_type)
        except _BACKEND_ERRORS as e:
            raise BlobStoreError(f"Upload failed: {blob_path}: {e}") from e
        logger.info(
            "Uploaded: bucket=%s, path=%s, size=%d bytes",
            self._bucket_name,
            blob_path,
            len(content),
        )
        return blob_path

    def public_url(self, blob_path: str) -> str:
        """公開URL（https://storage.googleapis.com/{bucket}/{path}）"""
        return self._bucket.blob(blob_path).public_url

    def delete(self, blob_path: str) -> None:
        """
        GCS からファイルを削除。

        Raises:
            BlobStoreError: 削除に失敗した場合（存在しない場合も含む）
        """
        blob = self._bucket.blob(blob_path)
        try:
            blob.delete()
        except _BACKEND_ERRORS as e:
            raise BlobStoreError(f"Delete failed: {blob_path}: {e}") from e
        logger.info("Deleted: bucket=%s, path=%s", self._bucket_name, blob_path)
