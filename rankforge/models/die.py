"""
DieRank — A Step on the Die Ladder.

The ladder runs d4 → d6 → d8 → d10 → d12 → d12+1 → d12+2 → ...

INVARIANTS:
- size is always one of 4, 6, 8, 10, 12
- modifier is never negative, and only non-zero when size is 12
- ordering is by ladder position, then modifier (d12 < d12+N)

Absence of a DieRank (None) means "untrained" wherever a skill die is held.
"""

import re
from dataclasses import dataclass
from functools import total_ordering

VALID_SIZES: tuple[int, ...] = (4, 6, 8, 10, 12)
MAX_SIZE = 12

_DIE_PATTERN = re.compile(r"^d(\d+)(?:\+(\d+))?$")


@total_ordering
@dataclass(frozen=True, slots=True)
class DieRank:
    """
    An immutable die value.

    Construct through `new()` / `with_modifier()` when the size comes from
    untrusted input; direct construction raises ValueError on invalid values.
    """

    size: int
    modifier: int = 0

    def __post_init__(self) -> None:
        if self.size not in VALID_SIZES:
            raise ValueError(f"Invalid die size: {self.size}")
        if self.modifier < 0:
            raise ValueError(f"Die modifier cannot be negative: {self.modifier}")
        if self.modifier > 0 and self.size != MAX_SIZE:
            raise ValueError(f"Only d{MAX_SIZE} can carry a modifier, got d{self.size}")

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def new(cls, size: int) -> "DieRank | None":
        """Create a die from a size, or None if the size is not on the ladder."""
        if size not in VALID_SIZES:
            return None
        return cls(size)

    @classmethod
    def with_modifier(cls, size: int, modifier: int) -> "DieRank | None":
        """Create a die with a modifier (e.g. d12+2), or None if invalid."""
        if size not in VALID_SIZES or modifier < 0:
            return None
        if modifier > 0 and size != MAX_SIZE:
            return None
        return cls(size, modifier)

    @classmethod
    def parse(cls, text: str) -> "DieRank | None":
        """Parse "d8" or "d12+2" notation. Returns None on malformed input."""
        match = _DIE_PATTERN.match(text.strip().lower())
        if not match:
            return None
        size = int(match.group(1))
        modifier = int(match.group(2)) if match.group(2) else 0
        return cls.with_modifier(size, modifier)

    @classmethod
    def d4(cls) -> "DieRank":
        return cls(4)

    @classmethod
    def d6(cls) -> "DieRank":
        return cls(6)

    @classmethod
    def d8(cls) -> "DieRank":
        return cls(8)

    @classmethod
    def d10(cls) -> "DieRank":
        return cls(10)

    @classmethod
    def d12(cls) -> "DieRank":
        return cls(12)

    # -------------------------------------------------------------------------
    # Ladder steps
    # -------------------------------------------------------------------------

    @property
    def ladder_index(self) -> int:
        """Position on the ladder, counting d12+N as N steps past d12."""
        return VALID_SIZES.index(self.size) + self.modifier

    @property
    def is_minimum(self) -> bool:
        return self.size == VALID_SIZES[0]

    def increment(self) -> "DieRank":
        """Advance one ladder step. Never fails."""
        if self.size == MAX_SIZE:
            return DieRank(MAX_SIZE, self.modifier + 1)
        return DieRank(VALID_SIZES[VALID_SIZES.index(self.size) + 1])

    def decrement(self) -> "DieRank | None":
        """Step back one ladder step, or None when already at d4."""
        if self.modifier > 0:
            return DieRank(MAX_SIZE, self.modifier - 1)
        if self.is_minimum:
            return None
        return DieRank(VALID_SIZES[VALID_SIZES.index(self.size) - 1])

    def steps_from(self, other: "DieRank") -> int:
        """Number of increments from `other` up to this die (0 if not above)."""
        return max(0, self.ladder_index - other.ladder_index)

    # -------------------------------------------------------------------------
    # Ordering / display
    # -------------------------------------------------------------------------

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DieRank):
            return NotImplemented
        return (self.size, self.modifier) < (other.size, other.modifier)

    def __str__(self) -> str:
        if self.modifier == 0:
            return f"d{self.size}"
        return f"d{self.size}+{self.modifier}"


def format_die(die: DieRank | None) -> str:
    """Render a possibly-untrained die for messages."""
    return str(die) if die is not None else "untrained"
