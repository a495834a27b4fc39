"""Tests for storage configuration loading."""

import pytest

from certvault.config import StorageConfig, load_storage_config
from certvault.constants import DEFAULT_LOCK_STALE_SECONDS
from certvault.errors import ConfigError, InvalidProviderError


class TestStorageConfig:
    """Test model validation."""

    def test_defaults(self):
        config = StorageConfig()
        assert config.provider == "fs"
        assert config.lock_stale_seconds == DEFAULT_LOCK_STALE_SECONDS
        assert config.lock_prefix == "locks"

    def test_provider_normalized(self):
        assert StorageConfig(provider=" S3 ").provider == "s3"

    def test_unknown_provider(self):
        with pytest.raises(InvalidProviderError, match="gcs"):
            StorageConfig(provider="gcs")

    def test_non_positive_timings_rejected(self):
        with pytest.raises(ValueError):
            StorageConfig(lock_poll_seconds=0)

    def test_prefix_slashes_stripped(self):
        assert StorageConfig(prefix="/certs/").prefix == "certs"


class TestLoadStorageConfig:
    """Test file and environment resolution."""

    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_storage_config(environ={})
        assert config == StorageConfig()

    def test_default_file_in_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "certvault.yaml").write_text(
            "storage:\n"
            "  provider: azure\n"
            "  container: certs\n"
            "  lock_stale_seconds: 120\n"
        )
        config = load_storage_config(environ={})
        assert config.provider == "azure"
        assert config.container == "certs"
        assert config.lock_stale_seconds == 120

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("provider: fs\ncontainer: /srv/certs\n")
        config = load_storage_config(path, environ={})
        assert config.container == "/srv/certs"

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_storage_config(tmp_path / "absent.yaml", environ={})

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("storage: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_storage_config(path, environ={})

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("storage:\n  lock_stale_seconds: soon\n")
        with pytest.raises(ConfigError, match="Invalid storage configuration"):
            load_storage_config(path, environ={})

    def test_env_overrides_file(self, tmp_path):
        path = tmp_path / "certvault.yaml"
        path.write_text("storage:\n  container: from-file\n  lock_poll_seconds: 2\n")
        config = load_storage_config(path, environ={
            "CERTVAULT_CONTAINER": "from-env",
            "CERTVAULT_LOCK_POLL_SECONDS": "0.25",
        })
        assert config.container == "from-env"
        assert config.lock_poll_seconds == 0.25

    def test_aws_variables_select_s3(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_storage_config(environ={
            "AWS_S3_BUCKET": "s3tlstest",
            "AWS_REGION": "us-east-1",
            "AWS_S3_ENDPOINT": "http://localhost:9000",
            "AWS_S3_FORCE_PATH_STYLE": "1",
        })
        assert config.provider == "s3"
        assert config.container == "s3tlstest"
        assert config.region == "us-east-1"
        assert config.endpoint_url == "http://localhost:9000"
        assert config.force_path_style is True

    def test_certvault_provider_beats_aws_bucket(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_storage_config(environ={
            "AWS_S3_BUCKET": "bucket",
            "CERTVAULT_PROVIDER": "fs",
            "CERTVAULT_CONTAINER": str(tmp_path),
        })
        assert config.provider == "fs"
        assert config.container == str(tmp_path)
