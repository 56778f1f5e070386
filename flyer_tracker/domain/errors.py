"""ドメイン固有の例外クラス"""


class FlyerTrackerError(Exception):
    """チラシ進捗管理の基底例外"""

    pass


class ConfigLoadError(FlyerTrackerError):
    """設定読み込みエラー（必須の環境変数が無い等）"""

    pass


class StoreError(FlyerTrackerError):
    """projects テーブル（Firestore）の操作エラー"""

    pass


class BlobStoreError(FlyerTrackerError):
    """ファイルストレージ（GCS）の操作エラー"""

    pass
