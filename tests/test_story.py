import random

import pytest

from fluentnow.constants import STORY_VARIANTS
from fluentnow.errors import InputValidationError
from fluentnow.story import get_story_params, validate_custom_theme


class TestStoryParams:
    def test_builtin_theme(self):
        theme, variant = get_story_params("nature", rng=random.Random(1))
        assert theme == "Nature & Environment"
        assert variant in STORY_VARIANTS["nature"]

    def test_unknown_theme(self):
        assert get_story_params("space") == ("space", "general situation")

    def test_custom_theme_trimmed(self):
        assert get_story_params("custom", "  pirates  ") == ("pirates", "custom story scenario")

    @pytest.mark.parametrize("value", [None, "", "ab", "   ab   ", "x" * 101])
    def test_custom_theme_bounds(self, value):
        with pytest.raises(InputValidationError):
            validate_custom_theme(value)

    def test_custom_theme_limits_inclusive(self):
        assert validate_custom_theme("abc") == "abc"
        assert validate_custom_theme("x" * 100) == "x" * 100
