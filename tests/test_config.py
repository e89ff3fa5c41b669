from pathlib import Path

import pytest

from carbonpick.config import Settings, _deep_merge, load_config, load_settings, resolve_provider
from carbonpick.constants import CACHE_DIR
from carbonpick.core.exceptions import ConfigurationError

pytestmark = [pytest.mark.unit]


class TestDeepMerge:
    def test_shallow_override(self):
        base = {"a": 1, "b": 2}
        override = {"b": 3}
        assert _deep_merge(base, override) == {"a": 1, "b": 3}

    def test_nested_merge(self):
        base = {"api": {"endpoint_url": "http://a", "timeout": 10}}
        override = {"api": {"endpoint_url": "http://b"}}
        result = _deep_merge(base, override)
        assert result == {"api": {"endpoint_url": "http://b", "timeout": 10}}

    def test_override_adds_new_keys(self):
        base = {"providers": {"aws": "AWS"}}
        override = {"providers": {"gcp": "Google Cloud"}}
        result = _deep_merge(base, override)
        assert result == {"providers": {"aws": "AWS", "gcp": "Google Cloud"}}

    def test_base_is_not_mutated(self):
        base = {"api": {"timeout": 10}}
        _deep_merge(base, {"api": {"timeout": 20}})
        assert base == {"api": {"timeout": 10}}


class TestLoadConfig:
    def test_project_only(self, tmp_path: Path):
        (tmp_path / "carbonpick.toml").write_text('[api]\nendpoint_url = "http://localhost:5000"\n')
        result = load_config(project_dir=tmp_path, global_path=tmp_path / "nonexistent.toml")
        assert result["api"]["endpoint_url"] == "http://localhost:5000"

    def test_merge_project_overrides_global(self, tmp_path: Path):
        global_toml = tmp_path / "defaults.toml"
        global_toml.write_text("[api]\ntimeout = 5\nretries = 2\n")
        project_dir = tmp_path / "project"
        project_dir.mkdir()
        (project_dir / "carbonpick.toml").write_text("[api]\ntimeout = 60\n")
        result = load_config(project_dir=project_dir, global_path=global_toml)
        assert result["api"] == {"timeout": 60, "retries": 2}

    def test_no_files_returns_empty_sections(self, tmp_path: Path):
        result = load_config(project_dir=tmp_path / "nope", global_path=tmp_path / "nope.toml")
        assert result == {"api": {}, "catalog": {}, "providers": {}}

    def test_invalid_toml(self, tmp_path: Path):
        (tmp_path / "carbonpick.toml").write_text("[api\n")
        with pytest.raises(ConfigurationError, match="Invalid TOML"):
            load_config(project_dir=tmp_path, global_path=tmp_path / "nope.toml")


class TestLoadSettings:
    def test_defaults(self, tmp_path: Path):
        settings = load_settings(project_dir=tmp_path, global_path=tmp_path / "nope.toml", env={})
        assert settings == Settings()
        assert settings.cache_dir == CACHE_DIR
        assert dict(settings.providers) == {"aws": "AWS", "alces": "Alces Cloud"}

    def test_file_values(self, tmp_path: Path):
        (tmp_path / "carbonpick.toml").write_text(
            "[api]\n"
            'endpoint_url = "http://localhost:5000"\n'
            "timeout = 10\n"
            "retries = 5\n"
            "\n"
            "[catalog]\n"
            f'cache_dir = "{tmp_path / "cache"}"\n'
            "max_workers = 16\n"
            "\n"
            "[providers]\n"
            'GCP = "Google Cloud"\n'
        )
        settings = load_settings(project_dir=tmp_path, global_path=tmp_path / "nope.toml", env={})
        assert settings.endpoint_url == "http://localhost:5000"
        assert settings.timeout == 10.0
        assert settings.retries == 5
        assert settings.cache_dir == tmp_path / "cache"
        assert settings.max_workers == 16
        assert settings.providers["gcp"] == "Google Cloud"
        assert settings.providers["aws"] == "AWS"

    def test_env_overrides_file(self, tmp_path: Path):
        (tmp_path / "carbonpick.toml").write_text('[api]\nendpoint_url = "http://file"\n')
        settings = load_settings(
            project_dir=tmp_path,
            global_path=tmp_path / "nope.toml",
            env={"BOAVIZTA_ENDPOINT_URL": "http://env"},
        )
        assert settings.endpoint_url == "http://env"

    def test_empty_env_falls_back_to_file(self, tmp_path: Path):
        (tmp_path / "carbonpick.toml").write_text('[api]\nendpoint_url = "http://file"\n')
        settings = load_settings(
            project_dir=tmp_path,
            global_path=tmp_path / "nope.toml",
            env={"BOAVIZTA_ENDPOINT_URL": ""},
        )
        assert settings.endpoint_url == "http://file"

    @pytest.mark.parametrize(
        "section, body, message",
        [
            ("api", "timeout = 0", r"\[api\].timeout must be > 0"),
            ("api", 'retries = "many"', r"\[api\].retries must be a number"),
            ("catalog", "max_workers = -1", r"\[catalog\].max_workers must be > 0"),
        ],
    )
    def test_invalid_numbers(self, tmp_path: Path, section: str, body: str, message: str):
        (tmp_path / "carbonpick.toml").write_text(f"[{section}]\n{body}\n")
        with pytest.raises(ConfigurationError, match=message):
            load_settings(project_dir=tmp_path, global_path=tmp_path / "nope.toml", env={})

    def test_require_endpoint(self):
        with pytest.raises(ConfigurationError, match="BOAVIZTA_ENDPOINT_URL"):
            Settings().require_endpoint()
        assert Settings(endpoint_url="http://x").require_endpoint() == "http://x"


class TestResolveProvider:
    def test_known_provider(self):
        assert resolve_provider(Settings(), "aws") == "AWS"
        assert resolve_provider(Settings(), "Alces") == "Alces Cloud"

    def test_missing_provider(self):
        with pytest.raises(ConfigurationError, match="No provider given"):
            resolve_provider(Settings(), None)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError, match="Provider 'gcp' doesn't exist. Valid: alces, aws"):
            resolve_provider(Settings(), "gcp")
