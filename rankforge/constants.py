"""
Ruleset constants.

Base values and exchange rates used throughout the engine. These are rules of
the game, not deployment settings, and are NOT configurable at runtime.
"""

# =============================================================================
# DERIVED STAT BASE VALUES
# =============================================================================

BASE_PACE = 6
BASE_PARRY = 2
BASE_TOUGHNESS = 2
BASE_SIZE = 0

# Encumbrance penalty applied to physical tasks when over the load limit
ENCUMBRANCE_PENALTY = 2

# =============================================================================
# HINDRANCE POINT EXCHANGE RATES (hindrance points per unit)
# =============================================================================

EDGE_HINDRANCE_POINT_COST = 2
ATTRIBUTE_HINDRANCE_POINT_COST = 2
SKILL_HINDRANCE_POINT_COST = 1
WEALTH_HINDRANCE_POINT_COST = 1

# =============================================================================
# SOURCE IDENTIFIERS
# =============================================================================

# Where a character element came from
SOURCE_CHOSEN = "chosen"
SOURCE_ANCESTRY = "ancestry"
SOURCE_HINDRANCE_POINTS = "hindrance_points"
SOURCE_ARCANE_BACKGROUND = "arcane_background"
SOURCE_ADVANCEMENT = "advancement"
SOURCE_ADVANCEMENT_REDUCED = "advancement_reduced"

# =============================================================================
# RANKS (name, min_advances, max_advances)
# =============================================================================

DEFAULT_RANKS: tuple[tuple[int, str, int, int | None], ...] = (
    (1, "Novice", 0, 3),
    (2, "Seasoned", 4, 7),
    (3, "Veteran", 8, 11),
    (4, "Heroic", 12, 15),
    (5, "Legendary", 16, None),
)

LEGENDARY_RANK_NAME = "Legendary"

# Names used to locate the stats that feed parry, toughness and load limit
FIGHTING_SKILL_NAME = "Fighting"
VIGOR_ATTRIBUTE_NAME = "Vigor"
STRENGTH_ATTRIBUTE_NAME = "Strength"
ARCANE_BACKGROUND_EDGE_NAME = "Arcane Background"

# =============================================================================
# CHARACTER CREATION
# =============================================================================

STARTING_ATTRIBUTE_POINTS = 5
STARTING_SKILL_POINTS = 12
STARTING_WEALTH = 500
