"""Unit tests for settings."""

import pytest
from pydantic import ValidationError

from rxmatch.config import Settings


def test_defaults():
    settings = Settings(_env_file=None)

    assert settings.review_confidence_threshold == 0.7
    assert settings.review_cas_max_attempts == 5
    assert settings.audit_sink == "log"
    assert settings.database_url.startswith("postgresql+asyncpg://")


def test_priority_bands_must_be_ordered():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, review_high_priority_below=0.6, review_medium_priority_below=0.5)


def test_medium_band_within_threshold():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, review_medium_priority_below=0.8)


def test_cors_origins_list():
    settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")
    assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
