"""Tests for revisium.toml loading, env files, and endpoint resolution."""

import os
import textwrap
from pathlib import Path

import pytest

from revisium_sync.config.env import (
    ENV_FILE_VAR,
    get_env_file_path,
    load_env_file,
    read_endpoint_env,
)
from revisium_sync.config.loader import (
    ProfileNotFoundError,
    load_sync_config,
    resolve_endpoint,
)
from revisium_sync.config.models import EndpointEnv, EndpointProfile, SyncConfig


class TestLoadSyncConfig:
    """Test load_sync_config() TOML parsing."""

    def test_load_profiles_and_settings(self, tmp_path: Path) -> None:
        config_file = tmp_path / "revisium.toml"
        config_file.write_text(textwrap.dedent("""\
            [profiles.staging]
            url = "revisium://cloud.revisium.io/acme/game/master"
            description = "Staging project"
            apikey = "key-1"

            [profiles.local]
            url = "revisium://localhost:8080/admin/game"

            [sync]
            batch_size = 25
            """))

        config = load_sync_config(config_file)

        assert set(config.profiles) == {"staging", "local"}
        assert config.profiles["staging"].description == "Staging project"
        assert config.profiles["staging"].apikey == "key-1"
        assert config.profiles["local"].token is None
        assert config.batch_size == 25
        assert config.page_size == 100

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Sync config not found"):
            load_sync_config(tmp_path / "revisium.toml")

    def test_invalid_batch_size(self, tmp_path: Path) -> None:
        config_file = tmp_path / "revisium.toml"
        config_file.write_text("[sync]\nbatch_size = 0\n")
        with pytest.raises(ValueError):
            load_sync_config(config_file)

    def test_profile_requires_url(self, tmp_path: Path) -> None:
        config_file = tmp_path / "revisium.toml"
        config_file.write_text('[profiles.broken]\ndescription = "no url"\n')
        with pytest.raises(ValueError):
            load_sync_config(config_file)


class TestResolveEndpoint:
    """Verify URL / profile / environment precedence."""

    CONFIG = SyncConfig(
        profiles={
            "staging": EndpointProfile(
                url="revisium://cloud.revisium.io/acme/game/master",
                token="profile-token",
            )
        }
    )

    def test_url_value(self) -> None:
        profile = resolve_endpoint("revisium://localhost/admin/game", EndpointEnv())
        assert profile.url == "revisium://localhost/admin/game"

    def test_profile_value(self) -> None:
        profile = resolve_endpoint("staging", EndpointEnv(), self.CONFIG)
        assert profile.url.endswith("/acme/game/master")
        assert profile.token == "profile-token"

    def test_profile_wins_over_env(self) -> None:
        env = EndpointEnv(token="env-token", password="env-password")
        profile = resolve_endpoint("staging", env, self.CONFIG)
        assert profile.token == "profile-token"
        assert profile.password == "env-password"

    def test_env_url_used_when_no_value(self) -> None:
        env = EndpointEnv(url="revisium://localhost/admin/game", apikey="k")
        profile = resolve_endpoint(None, env)
        assert profile.url == "revisium://localhost/admin/game"
        assert profile.apikey == "k"

    def test_unknown_profile(self) -> None:
        with pytest.raises(ProfileNotFoundError, match="Available: staging"):
            resolve_endpoint("prod", EndpointEnv(), self.CONFIG)

    def test_nothing_configured(self) -> None:
        with pytest.raises(ProfileNotFoundError, match="No endpoint configured"):
            resolve_endpoint(None, EndpointEnv())

    def test_config_not_mutated(self) -> None:
        resolve_endpoint("staging", EndpointEnv(apikey="k"), self.CONFIG)
        assert self.CONFIG.profiles["staging"].apikey is None


class TestEnvFiles:
    """Verify env file discovery and loading via python-dotenv."""

    def test_explicit_env_file(self, tmp_path, monkeypatch) -> None:
        env_file = tmp_path / "custom.env"
        env_file.write_text("REVISIUM_TARGET_URL=revisium://localhost/admin/game\n")
        monkeypatch.setenv(ENV_FILE_VAR, str(env_file))
        monkeypatch.delenv("REVISIUM_TARGET_URL", raising=False)

        assert get_env_file_path() == env_file.resolve()
        loaded = load_env_file()

        assert loaded == {"REVISIUM_TARGET_URL": "revisium://localhost/admin/game"}
        os.environ.pop("REVISIUM_TARGET_URL")

    def test_default_dotenv_in_cwd(self, tmp_path, monkeypatch) -> None:
        (tmp_path / ".env").write_text("X=1\n")
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(ENV_FILE_VAR, raising=False)

        assert get_env_file_path() == tmp_path / ".env"

    def test_no_env_file(self, tmp_path, monkeypatch) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv(ENV_FILE_VAR, raising=False)

        assert get_env_file_path() is None
        assert load_env_file() == {}

    def test_existing_variables_not_overridden(self, tmp_path, monkeypatch) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("REVISIUM_SOURCE_TOKEN=from-file\n")
        monkeypatch.setenv("REVISIUM_SOURCE_TOKEN", "from-shell")

        assert load_env_file(env_file) == {}
        assert read_endpoint_env("source").token == "from-shell"

    def test_read_endpoint_env(self, monkeypatch) -> None:
        monkeypatch.setenv("REVISIUM_TARGET_URL", "revisium://localhost/admin/game")
        monkeypatch.setenv("REVISIUM_TARGET_API_KEY", "key")
        monkeypatch.setenv("REVISIUM_TARGET_USERNAME", "")
        monkeypatch.delenv("REVISIUM_TARGET_TOKEN", raising=False)
        monkeypatch.delenv("REVISIUM_TARGET_PASSWORD", raising=False)

        env = read_endpoint_env("target")

        assert env.url == "revisium://localhost/admin/game"
        assert env.apikey == "key"
        assert env.username is None
        assert env.token is None
