"""
Unit Tests for Settings
"""
import pytest
from pydantic import ValidationError

from easygp.config import Settings
from easygp.core.observation.base import Condition
from easygp.core.inference.recommendation import PolicyThresholds


class TestSettings:
    """Tests for environment-based configuration."""

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.api_prefix == "/api/v1"
        assert settings.calibration_path is None
        assert settings.prescribe_threshold == 0.7
        assert (settings.test_low, settings.test_high) == (0.3, 0.7)
        assert settings.explanation_top_k == 3

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PRESCRIBE_THRESHOLD", "0.8")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("REFERRAL_THRESHOLDS", '{"mono": 0.4}')
        settings = Settings(_env_file=None)
        assert settings.prescribe_threshold == 0.8
        assert settings.log_level == "DEBUG"
        assert settings.referral_thresholds == {"mono": 0.4}

    def test_inverted_testing_band(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, test_low=0.7, test_high=0.3)

    def test_threshold_outside_unit_interval(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, prescribe_threshold=1.5)

    def test_unknown_referral_condition(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, referral_thresholds={"Measles": 0.5})

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_non_positive_top_k(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, explanation_top_k=0)


class TestPolicyThresholds:
    """Tests for PolicyThresholds built from settings."""

    def test_from_settings(self):
        settings = Settings(_env_file=None, prescribe_threshold=0.8, referral_thresholds={"mono": 0.4})
        thresholds = PolicyThresholds.from_settings(settings)
        assert thresholds.prescribe_threshold == 0.8
        assert dict(thresholds.referral_thresholds) == {Condition.INFECTIOUS_MONO: 0.4}

    def test_defaults_match_settings(self):
        assert PolicyThresholds.from_settings(Settings(_env_file=None)) == PolicyThresholds()

    def test_invalid_band(self):
        with pytest.raises(ValueError):
            PolicyThresholds(test_low=0.6, test_high=0.6)
