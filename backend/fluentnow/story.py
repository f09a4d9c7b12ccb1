from __future__ import annotations
import random
from typing import Optional, Tuple

from .constants import CUSTOM_THEME_MAX, CUSTOM_THEME_MIN, STORY_VARIANTS, THEME_DISPLAY_NAMES
from .errors import InputValidationError


def random_variant(theme: str, rng: Optional[random.Random] = None) -> str:
    variants = STORY_VARIANTS.get(theme)
    if not variants:
        return "general situation"
    return (rng or random).choice(variants)


def theme_display_name(theme: str) -> str:
    return THEME_DISPLAY_NAMES.get(theme, theme)


def validate_custom_theme(custom_theme: Optional[str]) -> str:
    if not custom_theme or not isinstance(custom_theme, str):
        raise InputValidationError("Custom theme is required")
    trimmed = custom_theme.strip()
    if len(trimmed) < CUSTOM_THEME_MIN:
        raise InputValidationError(f"Custom theme must be at least {CUSTOM_THEME_MIN} characters")
    if len(trimmed) > CUSTOM_THEME_MAX:
        raise InputValidationError(f"Custom theme must be less than {CUSTOM_THEME_MAX} characters")
    return trimmed


def get_story_params(
    theme: str,
    custom_theme: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Tuple[str, str]:
    """Return ``(theme, variant)`` as they should appear in the passage prompt."""
    if theme == "custom":
        return validate_custom_theme(custom_theme), "custom story scenario"
    return theme_display_name(theme), random_variant(theme, rng)
