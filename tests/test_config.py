"""
Tests for scanflow/config.py

Configuration is read once from the environment (and .env) and then frozen.
"""

import pytest
from pathlib import Path
from pydantic import ValidationError

from scanflow.config import ScanflowConfig, _ENV_FIELDS, load_config


@pytest.fixture
def clean_env(monkeypatch):
    for env_name in _ENV_FIELDS.values():
        monkeypatch.delenv(env_name, raising=False)
    return monkeypatch


class TestDefaults:

    def test_default_values(self):
        config = ScanflowConfig()

        assert config.ollama_base_url == "http://localhost:11434"
        assert config.model_timeout is None
        assert config.s3_region == "eu-north-1"
        assert config.concurrency == 2
        assert config.job_attempts == 1
        assert config.cleanup_policy == "on_success"
        assert config.publish_artifacts is False

    def test_reconcile_model_falls_back_to_vision_model(self):
        config = ScanflowConfig(vision_model="llava")
        assert config.reconcile_model == "llava"

        config = ScanflowConfig(vision_model="llava", text_model="llama3")
        assert config.reconcile_model == "llama3"


class TestValidation:

    def test_base_url_trailing_slash_removed(self):
        config = ScanflowConfig(ollama_base_url=" http://models:11434/ ")
        assert config.ollama_base_url == "http://models:11434"

    def test_empty_base_url_rejected(self):
        with pytest.raises(ValidationError):
            ScanflowConfig(ollama_base_url="  ")

    @pytest.mark.parametrize("value", [0, -5])
    def test_non_positive_timeout_means_no_timeout(self, value):
        assert ScanflowConfig(model_timeout=value).model_timeout is None

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValidationError):
            ScanflowConfig(concurrency=0)

    def test_unknown_cleanup_policy_rejected(self):
        with pytest.raises(ValidationError):
            ScanflowConfig(cleanup_policy="sometimes")

    def test_log_level_normalized(self):
        assert ScanflowConfig(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValidationError):
            ScanflowConfig(log_level="chatty")

    def test_config_is_frozen(self):
        config = ScanflowConfig()
        with pytest.raises(ValidationError):
            config.vision_model = "other"


class TestLoadConfig:

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")
        clean_env.setenv("VISION_MODEL", "qwen-vl")
        clean_env.setenv("MODEL_TIMEOUT", "120")
        clean_env.setenv("WORKER_CONCURRENCY", "4")
        clean_env.setenv("WORKSPACE_ROOT", str(tmp_path / "ws"))
        clean_env.setenv("PUBLISH_ARTIFACTS", "true")

        config = load_config()

        assert config.ollama_base_url == "http://gpu-box:11434"
        assert config.vision_model == "qwen-vl"
        assert config.model_timeout == 120.0
        assert config.concurrency == 4
        assert config.workspace_root == (tmp_path / "ws").resolve()
        assert config.publish_artifacts is True

    def test_blank_environment_values_ignored(self, clean_env):
        clean_env.setenv("VISION_MODEL", "   ")
        assert load_config().vision_model == ScanflowConfig().vision_model

    def test_overrides_win_over_environment(self, clean_env):
        clean_env.setenv("WORKER_CONCURRENCY", "4")

        config = load_config(concurrency=8, log_level=None)

        assert config.concurrency == 8
        assert config.log_level == "INFO"

    def test_s3_settings(self, clean_env):
        clean_env.setenv("S3_HOST", "http://minio:9000")
        clean_env.setenv("S3_ACCESS_KEY", "key")
        clean_env.setenv("S3_SECRET_ACCESS_KEY", "secret")

        config = load_config()

        assert config.s3_endpoint == "http://minio:9000"
        assert config.s3_access_key == "key"
        assert config.s3_secret_key == "secret"
