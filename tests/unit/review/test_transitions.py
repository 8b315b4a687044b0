"""Unit tests for TransitionEngine configuration."""

from unittest.mock import MagicMock

import pytest

from rxmatch.config import get_settings
from rxmatch.review.transitions import TransitionEngine


class TestMaxAttempts:
    """Tests for the compare-and-set retry bound."""

    def test_defaults_to_setting(self, store):
        engine = TransitionEngine(store, MagicMock())
        assert engine.max_attempts == get_settings().review_cas_max_attempts

    def test_explicit_value_kept(self, store):
        assert TransitionEngine(store, MagicMock(), max_attempts=1).max_attempts == 1

    @pytest.mark.parametrize("attempts", [0, -3])
    def test_below_one_rejected(self, store, attempts):
        with pytest.raises(ValueError):
            TransitionEngine(store, MagicMock(), max_attempts=attempts)
