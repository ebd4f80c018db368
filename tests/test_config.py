"""Tests for storage configuration loading and saving."""

import json
from pathlib import Path

import pytest

from complaints_store.config import StorageConfig, default_base_dir, load_config, save_config
from complaints_store.errors import InvalidConfigurationError
from complaints_store.repo.cache import EvictionPolicy


class TestStorageConfig:
    """Tests for StorageConfig dataclass."""

    def test_default_values(self, monkeypatch) -> None:
        """Should have sensible defaults."""
        monkeypatch.delenv("XDG_DATA_HOME", raising=False)
        config = StorageConfig()

        assert config.base_dir == Path.home() / ".local" / "share" / "complaints"
        assert config.cache_enabled is True
        assert config.cache_max_size == 1000
        assert config.cache_eviction is EvictionPolicy.LRU
        assert config.docs_enabled is False
        assert config.docs_format == "markdown"
        assert config.log_level == "WARNING"
        assert config.trace_file is None

    def test_xdg_data_home(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        assert default_base_dir() == tmp_path / "complaints"

    def test_normalizes_values(self, tmp_path: Path) -> None:
        config = StorageConfig(
            base_dir=str(tmp_path),
            cache_eviction="fifo",
            log_level="debug",
            trace_file=str(tmp_path / "spans.jsonl"),
        )
        assert config.base_dir == tmp_path
        assert config.cache_eviction is EvictionPolicy.FIFO
        assert config.log_level == "DEBUG"
        assert config.trace_file == tmp_path / "spans.jsonl"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"cache_max_size": 0},
            {"cache_max_size": 100_001},
            {"cache_eviction": "random"},
            {"docs_format": "html"},
            {"log_level": "LOUD"},
        ],
    )
    def test_rejects_invalid(self, kwargs) -> None:
        """Out-of-range values raise InvalidConfigurationError."""
        with pytest.raises(InvalidConfigurationError):
            StorageConfig(**kwargs)


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path / "nope.json", environ={})
        assert config.cache_max_size == 1000

    def test_loads_nested_sections(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "storage": {
                "base_dir": str(tmp_path / "data"),
                "cache_enabled": False,
                "cache_max_size": 50,
                "cache_eviction": "none",
            },
            "docs": {"enabled": True, "dir": str(tmp_path / "docs"), "format": "text"},
            "log": {"level": "info"},
        }))

        config = load_config(path, environ={})

        assert config.base_dir == tmp_path / "data"
        assert config.cache_enabled is False
        assert config.cache_max_size == 50
        assert config.cache_eviction is EvictionPolicy.NONE
        assert config.docs_enabled is True
        assert config.docs_dir == tmp_path / "docs"
        assert config.docs_format == "text"
        assert config.log_level == "INFO"

    def test_invalid_json_uses_defaults(self, tmp_path: Path, caplog) -> None:
        path = tmp_path / "config.json"
        path.write_text("{broken")

        config = load_config(path, environ={})

        assert config.cache_max_size == 1000
        assert "Invalid JSON" in caplog.text

    def test_out_of_range_value_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"cache_max_size": 0}}))
        with pytest.raises(InvalidConfigurationError):
            load_config(path, environ={})

    def test_non_bool_flag_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"cache_enabled": "yes"}}))
        with pytest.raises(InvalidConfigurationError):
            load_config(path, environ={})

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage": {"cache_max_size": 50}}))
        environ = {
            "COMPLAINTS_STORE_CACHE_MAX_SIZE": "25",
            "COMPLAINTS_STORE_CACHE_ENABLED": "off",
            "COMPLAINTS_STORE_CACHE_EVICTION": "fifo",
            "COMPLAINTS_STORE_BASE_DIR": str(tmp_path / "env"),
            "COMPLAINTS_STORE_LOG_LEVEL": "",
        }

        config = load_config(path, environ=environ)

        assert config.cache_max_size == 25
        assert config.cache_enabled is False
        assert config.cache_eviction is EvictionPolicy.FIFO
        assert config.base_dir == tmp_path / "env"
        assert config.log_level == "WARNING"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("COMPLAINTS_STORE_CACHE_MAX_SIZE", "lots"),
            ("COMPLAINTS_STORE_CACHE_ENABLED", "maybe"),
        ],
    )
    def test_bad_env_values(self, tmp_path: Path, name: str, value: str) -> None:
        with pytest.raises(InvalidConfigurationError):
            load_config(tmp_path / "none.json", environ={name: value})

    def test_reads_process_environment(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("COMPLAINTS_STORE_DOCS_FORMAT", "text")
        assert load_config(tmp_path / "none.json").docs_format == "text"


class TestSaveConfig:
    """Tests for save_config."""

    def test_writes_only_non_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "config.json"
        save_config(StorageConfig(cache_max_size=10, docs_enabled=True), path)

        data = json.loads(path.read_text())
        assert data == {"storage": {"cache_max_size": 10}, "docs": {"enabled": True}}

    def test_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        original = StorageConfig(
            base_dir=tmp_path / "data",
            cache_eviction="fifo",
            docs_format="text",
            log_level="ERROR",
            trace_file=tmp_path / "spans.jsonl",
        )
        save_config(original, path)

        assert load_config(path, environ={}) == original
