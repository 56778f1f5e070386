"""AppConfig / JsonPreferenceStore のテスト"""

import pytest
from flyer_tracker.adapters.local_preferences import (
    FONT_SIZE_KEY,
    USER_ROLE_KEY,
    JsonPreferenceStore,
)
from flyer_tracker.config import AppConfig
from flyer_tracker.domain.errors import ConfigLoadError


@pytest.fixture
def clean_env(monkeypatch):
    for key in (
        "GCS_BUCKET_NAME",
        "PROJECT_ID",
        "PROJECTS_COLLECTION",
        "EVENT_NAMES",
        "PREFERENCES_PATH",
    ):
        monkeypatch.delenv(key, raising=False)
    # カレントディレクトリの .env を読まないようにする
    monkeypatch.setattr("flyer_tracker.config.load_dotenv", lambda: False)
    return monkeypatch


class TestAppConfig:
    def test_missing_bucket_raises(self, clean_env):
        with pytest.raises(ConfigLoadError, match="GCS_BUCKET_NAME"):
            AppConfig.from_env()

    def test_defaults(self, clean_env):
        clean_env.setenv("GCS_BUCKET_NAME", "flyer-uploads")
        config = AppConfig.from_env()

        assert config.bucket_name == "flyer-uploads"
        assert config.project_id == ""
        assert config.collection == "projects"
        assert config.event_names == ()

    def test_event_names_are_split_and_trimmed(self, clean_env):
        clean_env.setenv("GCS_BUCKET_NAME", "flyer-uploads")
        clean_env.setenv("EVENT_NAMES", " 春まつり, 商店街セール ,,夏まつり")
        clean_env.setenv("PROJECTS_COLLECTION", "projects_dev")

        config = AppConfig.from_env()
        assert config.event_names == ("春まつり", "商店街セール", "夏まつり")
        assert config.collection == "projects_dev"


class TestJsonPreferenceStore:
    def test_missing_file_returns_none(self, tmp_path):
        assert JsonPreferenceStore(tmp_path / "prefs.json").get(USER_ROLE_KEY) is None

    def test_values_persist_across_instances(self, tmp_path):
        """保存した値は次のセッション（別インスタンス）でも読める"""
        path = tmp_path / "nested" / "prefs.json"
        JsonPreferenceStore(path).set(USER_ROLE_KEY, "agency")
        JsonPreferenceStore(path).set(FONT_SIZE_KEY, "lg")

        store = JsonPreferenceStore(path)
        assert store.get(USER_ROLE_KEY) == "agency"
        assert store.get(FONT_SIZE_KEY) == "lg"

    def test_corrupt_file_is_ignored(self, tmp_path):
        path = tmp_path / "prefs.json"
        path.write_text("{not json", encoding="utf-8")
        store = JsonPreferenceStore(path)

        assert store.get(USER_ROLE_KEY) is None
        store.set(USER_ROLE_KEY, "company")
        assert store.get(USER_ROLE_KEY) == "company"
