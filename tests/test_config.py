"""Tests for configuration loading."""

import pytest

from event_stream_storage import DeleteMode, EventStoreConfig, SQLiteConfig, ValidationError


class TestEventStoreConfig:
    """Tests for EventStoreConfig."""

    def test_defaults(self):
        config = EventStoreConfig()

        assert config.partition is None
        assert config.delete_mode is DeleteMode.SOFT
        assert config.hard_delete is False
        assert config.page_size == 100

    def test_partition_key_defaults_to_stream_id(self):
        assert EventStoreConfig().partition_key_for("order-1") == "order-1"
        assert EventStoreConfig(partition="tenant").partition_key_for("order-1") == "tenant"
        assert EventStoreConfig(partition="").partition is None

    def test_delete_mode_from_string(self):
        config = EventStoreConfig(delete_mode="HARD")

        assert config.delete_mode is DeleteMode.HARD
        assert config.hard_delete is True

    def test_invalid_values_rejected(self):
        with pytest.raises(ValidationError):
            EventStoreConfig(delete_mode="purge")
        with pytest.raises(ValidationError):
            EventStoreConfig(page_size=0)


class TestEventStoreConfigFromEnv:
    """Tests for EventStoreConfig.from_env."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EVENT_STORE_PARTITION", "tenant-a")
        monkeypatch.setenv("EVENT_STORE_DELETE_MODE", "hard")
        monkeypatch.setenv("EVENT_STORE_PAGE_SIZE", "25")

        config = EventStoreConfig.from_env()

        assert config.partition == "tenant-a"
        assert config.delete_mode is DeleteMode.HARD
        assert config.page_size == 25

    def test_from_env_defaults(self, monkeypatch):
        for name in ("EVENT_STORE_PARTITION", "EVENT_STORE_DELETE_MODE", "EVENT_STORE_PAGE_SIZE"):
            monkeypatch.delenv(name, raising=False)

        assert EventStoreConfig.from_env() == EventStoreConfig()

    def test_from_env_bad_page_size(self, monkeypatch):
        monkeypatch.setenv("EVENT_STORE_PAGE_SIZE", "many")

        with pytest.raises(ValidationError) as exc_info:
            EventStoreConfig.from_env()
        assert exc_info.value.field == "page_size"


class TestEventStoreConfigFromYaml:
    """Tests for EventStoreConfig.from_yaml."""

    def test_from_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text(
            "event_store:\n  partition: tenant-b\n  delete_mode: hard\n  page_size: 50\n"
        )

        config = EventStoreConfig.from_yaml(path)

        assert config.partition == "tenant-b"
        assert config.delete_mode is DeleteMode.HARD
        assert config.page_size == 50

    def test_from_yaml_missing_section(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("other: {}\n")

        assert EventStoreConfig.from_yaml(path) == EventStoreConfig()

    def test_from_yaml_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            EventStoreConfig.from_yaml(tmp_path / "absent.yaml")

    def test_from_yaml_section_not_mapping(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("event_store: [1, 2]\n")

        with pytest.raises(ValidationError):
            EventStoreConfig.from_yaml(path)

    def test_from_yaml_bad_page_size(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("event_store:\n  page_size: lots\n")

        with pytest.raises(ValidationError) as exc_info:
            EventStoreConfig.from_yaml(path)

        assert exc_info.value.field == "page_size"

    @pytest.mark.parametrize("value", ["5", "true", "[soft]"])
    def test_from_yaml_delete_mode_not_a_string(self, tmp_path, value):
        """YAML scalars that parse as non-strings are rejected, not crashed on."""
        path = tmp_path / "settings.yaml"
        path.write_text(f"event_store:\n  delete_mode: {value}\n")

        with pytest.raises(ValidationError) as exc_info:
            EventStoreConfig.from_yaml(path)

        assert exc_info.value.field == "delete_mode"


class TestSQLiteConfig:
    """Tests for SQLiteConfig."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("EVENT_STORE_SQLITE_PATH", "/tmp/streams.db")
        monkeypatch.setenv("EVENT_STORE_SQLITE_TABLE", "orders")

        config = SQLiteConfig.from_env()

        assert config.db_path == "/tmp/streams.db"
        assert config.table_name == "orders"

    def test_table_name_validated(self):
        with pytest.raises(ValidationError):
            SQLiteConfig(table_name="docs; DROP TABLE x")
