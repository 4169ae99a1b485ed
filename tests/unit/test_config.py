"""Tests for settings loading."""

from pathlib import Path

import pytest

from chefsocial_voice.audio.models import VoiceRecorderConfig
from chefsocial_voice.config import Settings, load_settings
from chefsocial_voice.content.scoring import ViralityWeights
from chefsocial_voice.exceptions import ConfigError

REPO_SETTINGS = Path(__file__).parent.parent.parent / "configs" / "settings.yaml"


def write(tmp_path, text):
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadSettings:
    """Tests for load_settings."""

    def test_repository_settings(self):
        """Test the shipped settings file loads and matches the defaults."""
        settings = load_settings(REPO_SETTINGS)

        assert settings.recorder.to_recorder_config() == VoiceRecorderConfig()
        assert settings.scoring.to_weights() == ViralityWeights()
        assert [p.name for p in settings.get_platforms()] == ["instagram", "tiktok", "facebook"]
        assert settings.restaurant.to_context().name == "Demo Restaurant"

    def test_missing_explicit_file(self, tmp_path):
        """Test an explicit path must exist."""
        with pytest.raises(ConfigError) as exc_info:
            load_settings(tmp_path / "missing.yaml")

        assert exc_info.value.config_file.endswith("missing.yaml")

    def test_missing_default_file(self, tmp_path, monkeypatch):
        """Test built-in defaults apply without a settings file."""
        monkeypatch.chdir(tmp_path)

        settings = load_settings()

        assert settings == Settings()

    def test_empty_file(self, tmp_path):
        """Test an empty file gives defaults."""
        assert load_settings(write(tmp_path, "")) == Settings()

    def test_partial_override(self, tmp_path):
        """Test only the given keys change."""
        settings = load_settings(write(tmp_path, "recorder:\n  max_duration: 120\n"))

        assert settings.recorder.max_duration == 120
        assert settings.recorder.min_duration == 1
        assert settings.transcription.model == "whisper-1"

    @pytest.mark.parametrize("text", [
        "recorder: [unclosed",
        "- just\n- a list\n",
        "recorder:\n  sample_rate: -1\n",
        "recorder:\n  min_duration: 10\n  max_duration: 5\n",
        "surprise: true\n",
        "scoring:\n  virality:\n    charisma_bonus: 5\n",
        "scoring:\n  virality:\n    base: fifty\n",
        "scoring:\n  virality:\n    optimal_length: 120\n",
        "scoring:\n  virality:\n    min_score: 90\n    max_score: 20\n",
        "platforms:\n  - name: instagram\n    emoji_style: loud\n",
        "generation:\n  temperature: 3\n",
    ])
    def test_invalid_files(self, tmp_path, text):
        """Test malformed or invalid settings raise ConfigError."""
        with pytest.raises(ConfigError):
            load_settings(write(tmp_path, text))

    def test_validation_errors_in_context(self, tmp_path):
        """Test pydantic messages are kept in the error context."""
        with pytest.raises(ConfigError) as exc_info:
            load_settings(write(tmp_path, "transcription:\n  max_attempts: 0\n"))

        assert exc_info.value.context["errors"]
        assert exc_info.value.__cause__ is not None

    def test_unreadable_path(self, tmp_path):
        """Test a path that cannot be opened raises ConfigError."""
        with pytest.raises(ConfigError, match="Cannot read settings file") as exc_info:
            load_settings(tmp_path)

        assert isinstance(exc_info.value.__cause__, OSError)
        assert exc_info.value.config_file == str(tmp_path)


class TestSections:
    """Tests for section conversions."""

    def test_platform_names_normalized(self, tmp_path):
        """Test platform names are trimmed and lowercased."""
        settings = load_settings(write(tmp_path, "platforms:\n  - name: ' Instagram '\n    hashtag_count: 30\n"))

        platform = settings.get_platforms()[0]
        assert platform.name == "instagram"
        assert platform.customization.hashtag_count == 30

    def test_virality_overrides(self, tmp_path):
        """Test virality weights from YAML."""
        settings = load_settings(write(
            tmp_path,
            "scoring:\n  virality:\n    base: 40\n    optimal_length: [30, 150]\n",
        ))

        weights = settings.scoring.to_weights()
        assert weights.base == 40
        assert weights.optimal_length == (30, 150)
        assert weights.emoji_bonus == ViralityWeights().emoji_bonus

    def test_reach_estimator(self, tmp_path):
        """Test reach settings build an estimator."""
        settings = load_settings(write(
            tmp_path,
            "scoring:\n  reach_base:\n    Instagram: 1000\n  reach_jitter: 0\n",
        ))

        assert settings.scoring.to_reach_estimator().estimate("instagram") == 1000

    def test_client_configs(self):
        """Test transcription and generation configs are built."""
        settings = Settings()

        assert settings.transcription.to_transcription_config().max_attempts == 3
        assert settings.generation.to_generation_config().model == "gpt-4o-mini"
        assert settings.recorder.device_index is None


class TestApiKey:
    """Tests for API key lookup."""

    def test_missing(self, monkeypatch):
        """Test a missing key raises."""
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert Settings.api_key() is None
        with pytest.raises(ConfigError):
            Settings().require_api_key()

    def test_present(self, monkeypatch):
        """Test the key is read from the environment."""
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")

        assert Settings().require_api_key() == "sk-test-key"
