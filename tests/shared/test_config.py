"""Tests for the layered environment config and the MongoDB client manager."""

import pytest

from collabmatch.shared.config import config
from collabmatch.shared.storage.mongo import get_mongo_manager


@pytest.fixture
def patched_config(monkeypatch):
    """Replace the loaded values for the duration of a test."""
    values = dict(config.items())
    monkeypatch.setattr(config, "_config", values)
    return values


class TestEnvironConfig:
    def test_default_mongo_url_fallback(self, patched_config):
        patched_config.pop("MONGO_URL_DEFAULT", None)
        patched_config.pop("MONGO_URL", None)

        assert config.get_mongo_url() == "mongodb://localhost:27017/collabmatch"

    def test_labelled_mongo_url(self, patched_config):
        patched_config["MONGO_URL_COLLAB_PRIMARY"] = "mongodb://db:27017/collabs"

        assert config.get_mongo_url("collab_primary") == "mongodb://db:27017/collabs"
        assert config.get_mongo_url("unknown") == ""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("20", 20), ("0", 5), ("500", 5), ("many", 5)],
    )
    def test_pool_size_bounds(self, patched_config, raw, expected):
        patched_config["MONGO_MAX_POOL_SIZE"] = raw

        assert config.get_mongo_max_pool_size() == expected

    def test_missing_key_raises(self, patched_config):
        with pytest.raises(KeyError):
            config["NOT_A_REAL_KEY"]


class TestMongoManager:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("mongodb://user:secret@db:27017/x", "mongodb://user:***@db:27017/x"),
            ("mongodb://db:27017/x", "mongodb://db:27017/x"),
            ("mongodb://user@db:27017/x", "mongodb://user@db:27017/x"),
        ],
    )
    def test_password_is_hidden_in_logs(self, url, expected):
        assert get_mongo_manager()._hide_password_in_connection_string(url) == expected

    def test_label_from_env_var(self):
        manager = get_mongo_manager()

        assert manager._get_label_from_env_var("MONGO_URL_COLLAB_PRIMARY") == "collab_primary"
        assert manager._get_label_from_env_var("REDIS_QUEUE_URL") is None

    def test_unknown_label_raises(self):
        with pytest.raises(ValueError):
            get_mongo_manager().get_client("no_such_label")
