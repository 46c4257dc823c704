"""
Static category tables shared by the draft and the scoring engine.

Every mapping here is enum to enum. Free-text names only enter through
resolve_category_name() and parse_caption_key(), which normalise once
(case-fold, drop whitespace) and then do a plain table lookup.
"""
import enum
from typing import Dict, Optional, Tuple, Union

from models import Category


class CaptionKey(str, enum.Enum):
    """Sub-score keys of the reference score table"""
    GE1 = "ge1"
    GE2 = "ge2"
    VISUAL_PROFICIENCY = "visualproficiency"
    VISUAL_ANALYSIS = "visualanalysis"
    COLOR_GUARD = "colorguard"
    MUSIC_BRASS = "musicbrass"
    MUSIC_ANALYSIS = "musicanalysis"
    MUSIC_PERCUSSION = "musicpercussion"


class CategoryFamily(str, enum.Enum):
    GENERAL_EFFECT = "generaleffect"
    VISUAL = "visual"
    MUSIC = "music"
    COLOR_GUARD = "colorguard"


class LegacyCategory(str, enum.Enum):
    """The five coarse categories used before the 8-slot format"""
    BRASS = "brass"
    PERCUSSION = "percussion"
    GUARD = "guard"
    VISUAL = "visual"
    GENERAL = "general"


CATEGORY_CAPTION_KEYS: Dict[Category, CaptionKey] = {
    Category.GENERAL_EFFECT_1: CaptionKey.GE1,
    Category.GENERAL_EFFECT_2: CaptionKey.GE2,
    Category.VISUAL_PROFICIENCY: CaptionKey.VISUAL_PROFICIENCY,
    Category.VISUAL_ANALYSIS: CaptionKey.VISUAL_ANALYSIS,
    Category.COLOR_GUARD: CaptionKey.COLOR_GUARD,
    Category.MUSIC_BRASS: CaptionKey.MUSIC_BRASS,
    Category.MUSIC_ANALYSIS: CaptionKey.MUSIC_ANALYSIS,
    Category.MUSIC_PERCUSSION: CaptionKey.MUSIC_PERCUSSION,
}

CATEGORY_FAMILIES: Dict[Category, CategoryFamily] = {
    Category.GENERAL_EFFECT_1: CategoryFamily.GENERAL_EFFECT,
    Category.GENERAL_EFFECT_2: CategoryFamily.GENERAL_EFFECT,
    Category.VISUAL_PROFICIENCY: CategoryFamily.VISUAL,
    Category.VISUAL_ANALYSIS: CategoryFamily.VISUAL,
    Category.COLOR_GUARD: CategoryFamily.COLOR_GUARD,
    Category.MUSIC_BRASS: CategoryFamily.MUSIC,
    Category.MUSIC_ANALYSIS: CategoryFamily.MUSIC,
    Category.MUSIC_PERCUSSION: CategoryFamily.MUSIC,
}

# Visual, music and color guard sub-scores count half; general effect counts in full
FAMILY_WEIGHTS: Dict[CategoryFamily, float] = {
    CategoryFamily.GENERAL_EFFECT: 1.0,
    CategoryFamily.VISUAL: 0.5,
    CategoryFamily.MUSIC: 0.5,
    CategoryFamily.COLOR_GUARD: 0.5,
}

LEGACY_CATEGORIES: Dict[LegacyCategory, Category] = {
    LegacyCategory.BRASS: Category.MUSIC_BRASS,
    LegacyCategory.PERCUSSION: Category.MUSIC_PERCUSSION,
    LegacyCategory.GUARD: Category.COLOR_GUARD,
    LegacyCategory.VISUAL: Category.VISUAL_PROFICIENCY,
    LegacyCategory.GENERAL: Category.GENERAL_EFFECT_1,
}

# Normalised name -> current category. Keys and labels of the 8-slot format.
CURRENT_ALIASES: Dict[str, Category] = {
    "ge1": Category.GENERAL_EFFECT_1,
    "generaleffect1": Category.GENERAL_EFFECT_1,
    "ge2": Category.GENERAL_EFFECT_2,
    "generaleffect2": Category.GENERAL_EFFECT_2,
    "visualproficiency": Category.VISUAL_PROFICIENCY,
    "visualanalysis": Category.VISUAL_ANALYSIS,
    "colorguard": Category.COLOR_GUARD,
    "musicbrass": Category.MUSIC_BRASS,
    "musicanalysis": Category.MUSIC_ANALYSIS,
    "musicpercussion": Category.MUSIC_PERCUSSION,
}

# Normalised name -> current category, for the coarse 5-slot names. The
# coarse "visual" and "general effect" resolve to the detailed slot that
# stands in for them.
LEGACY_ALIASES: Dict[str, Category] = {
    "brass": Category.MUSIC_BRASS,
    "percussion": Category.MUSIC_PERCUSSION,
    "guard": Category.COLOR_GUARD,
    "visual": Category.VISUAL_PROFICIENCY,
    "general": Category.GENERAL_EFFECT_1,
    "generaleffect": Category.GENERAL_EFFECT_1,
}

CAPTION_KEY_ALIASES: Dict[str, CaptionKey] = {
    **{key.value: key for key in CaptionKey},
    **{name: CATEGORY_CAPTION_KEYS[category] for name, category in CURRENT_ALIASES.items()},
    **{name: CATEGORY_CAPTION_KEYS[category] for name, category in LEGACY_ALIASES.items()},
}


def normalize_name(name: str) -> str:
    """'General Effect 1' -> 'generaleffect1'"""
    return "".join(name.casefold().split())


def resolve_category_name(name: Union[str, Category]) -> Optional[Tuple[Category, bool]]:
    """
    Map a category key or label onto a current category.

    Returns:
        (category, is_legacy) or None when the name is unknown
    """
    if isinstance(name, Category):
        return name, False
    if not isinstance(name, str):
        return None

    normalized = normalize_name(name)
    if normalized in CURRENT_ALIASES:
        return CURRENT_ALIASES[normalized], False
    if normalized in LEGACY_ALIASES:
        return LEGACY_ALIASES[normalized], True
    return None


def parse_category(name: Union[str, Category]) -> Optional[Category]:
    resolved = resolve_category_name(name)
    return resolved[0] if resolved else None


def parse_caption_key(name: str) -> Optional[CaptionKey]:
    if isinstance(name, CaptionKey):
        return name
    return CAPTION_KEY_ALIASES.get(normalize_name(name))


def weight_for(category: Category) -> float:
    return FAMILY_WEIGHTS[CATEGORY_FAMILIES[category]]
