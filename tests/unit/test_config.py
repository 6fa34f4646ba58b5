"""Tests for configuration loading and saving."""

from __future__ import annotations

from pathlib import Path

import pytest

from habit_sync.config import (
    DEFAULT_SERVER_URL,
    ConnectivityConfig,
    HabitSyncConfig,
    RemoteConfig,
    get_habitsync_dir,
    validate_account_id,
)


class TestHabitSyncDir:
    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HABITSYNC_DIR", str(tmp_path))
        assert get_habitsync_dir() == tmp_path

    def test_default_under_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("HABITSYNC_DIR", raising=False)
        assert get_habitsync_dir() == Path.home() / ".habitsync"


class TestValidateAccountId:
    @pytest.mark.parametrize("value", ["alice", "alice@example.com", "user_1.test-2"])
    def test_valid(self, value: str) -> None:
        assert validate_account_id(f"  {value} ") == value

    @pytest.mark.parametrize("value", ["", "   ", "a b", 'quote"', "x" * 129])
    def test_invalid(self, value: str) -> None:
        with pytest.raises(ValueError):
            validate_account_id(value)


class TestHabitSyncConfig:
    """Round trip through config.toml."""

    def test_load_creates_default(self, tmp_path: Path) -> None:
        path = tmp_path / "config.toml"

        config = HabitSyncConfig.load(path)

        assert path.exists()
        assert config.data_dir == tmp_path
        assert config.account_id == ""
        assert config.remote.server_url == DEFAULT_SERVER_URL
        assert config.db_path == tmp_path / "habits.db"

    def test_save_then_load(self, tmp_path: Path) -> None:
        config = HabitSyncConfig(
            data_dir=tmp_path,
            account_id="alice@example.com",
            remote=RemoteConfig(server_url="https://habits.example.com", api_key="k", timeout=3.0),
            connectivity=ConnectivityConfig(probe_interval=15.0, probe_timeout=2.0),
        )
        config.save()

        loaded = HabitSyncConfig.load(tmp_path / "config.toml")

        assert loaded.account_id == "alice@example.com"
        assert loaded.remote == config.remote
        assert loaded.connectivity == config.connectivity
        assert not list(tmp_path.glob("*.tmp"))

    def test_invalid_account_id_ignored_on_load(self, tmp_path: Path) -> None:
        (tmp_path / "config.toml").write_text('account_id = "bad id"\n', encoding="utf-8")

        assert HabitSyncConfig.load(tmp_path / "config.toml").account_id == ""

    def test_out_of_range_values_are_clamped(self, tmp_path: Path) -> None:
        (tmp_path / "config.toml").write_text(
            '[remote]\ntimeout = 99999\n[connectivity]\nprobe_interval = "soon"\n',
            encoding="utf-8",
        )

        loaded = HabitSyncConfig.load(tmp_path / "config.toml")

        assert loaded.remote.timeout == 300.0
        assert loaded.connectivity.probe_interval == 30.0

    def test_unsafe_strings_rejected_on_save(self, tmp_path: Path) -> None:
        config = HabitSyncConfig(data_dir=tmp_path, remote=RemoteConfig(api_key='a"b'))

        with pytest.raises(ValueError):
            config.save()

    def test_empty_server_url_disables_remote(self) -> None:
        assert RemoteConfig(server_url="").enabled is False
        assert RemoteConfig().enabled is True
