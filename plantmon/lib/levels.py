"""Moisture level definitions and level-set validation."""

from collections.abc import Sequence
from dataclasses import dataclass

from plantmon.lib.exceptions import LevelConfigurationError

PERCENT_MIN = 0
PERCENT_MAX = 100


@dataclass(frozen=True, slots=True)
class Level:
    """A named, inclusive range of moisture percentages.

    A ``notification_interval_sec`` of 0 means the level never reminds.
    """

    name: str
    start: int
    end: int
    notification_interval_sec: float = 0

    @property
    def reminds(self) -> bool:
        """Whether staying in this level should trigger periodic reminders."""
        return self.notification_interval_sec > 0

    def contains(self, value: int, margin: int = 0) -> bool:
        """Check if value falls in this level widened by margin.

        The widened lower edge is exclusive: a value a full margin below
        ``start`` has left the level, one a full margin above ``end`` has not.
        """
        if margin == 0:
            return self.start <= value <= self.end
        return self.start - margin < value <= self.end + margin


def validate_levels(levels: Sequence[Level]) -> None:
    """Check that levels are ordered and tile 0-100 without gaps or overlap.

    Raises:
        LevelConfigurationError: Listing every problem found.
    """
    if not levels:
        raise LevelConfigurationError("At least one level must be configured")

    errors: list[str] = []

    names = [level.name for level in levels]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        errors.append(f"Duplicate level names: {', '.join(duplicates)}")

    for level in levels:
        if not level.name:
            errors.append("Level names must not be empty")
        if not PERCENT_MIN <= level.start <= level.end <= PERCENT_MAX:
            errors.append(
                f"Level '{level.name}' must satisfy "
                f"{PERCENT_MIN} <= start ({level.start}) <= end ({level.end}) "
                f"<= {PERCENT_MAX}"
            )
        if level.notification_interval_sec < 0:
            errors.append(
                f"Level '{level.name}' notification interval must not be "
                f"negative, got {level.notification_interval_sec}"
            )

    if levels[0].start != PERCENT_MIN:
        errors.append(
            f"First level '{levels[0].name}' must start at {PERCENT_MIN}, "
            f"got {levels[0].start}"
        )
    if levels[-1].end != PERCENT_MAX:
        errors.append(
            f"Last level '{levels[-1].name}' must end at {PERCENT_MAX}, "
            f"got {levels[-1].end}"
        )

    for lower, upper in zip(levels, levels[1:]):
        if upper.start < lower.start:
            errors.append(
                f"Levels must be sorted by start: '{upper.name}' "
                f"({upper.start}) comes after '{lower.name}' ({lower.start})"
            )
        elif lower.end + 1 < upper.start:
            errors.append(
                f"Gap between '{lower.name}' (ends {lower.end}) and "
                f"'{upper.name}' (starts {upper.start})"
            )
        elif lower.end + 1 > upper.start:
            errors.append(
                f"Overlap between '{lower.name}' (ends {lower.end}) and "
                f"'{upper.name}' (starts {upper.start})"
            )

    if errors:
        raise LevelConfigurationError(
            "Invalid level configuration:\n  - " + "\n  - ".join(errors)
        )
