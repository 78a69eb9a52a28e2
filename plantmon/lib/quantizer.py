"""Level quantizer: maps smoothed moisture values to discrete levels.

Matching happens in two phases. The "blurry" phase widens every level by
half the sensor noise margin on each side; a value inside an overlap of two
widened levels stays in the level it was last assigned to, which is what
keeps noisy readings near a boundary from flapping between levels. Only when
the previous level is not a candidate does the "sharp" phase resolve the
value against the unwidened ranges.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from plantmon.lib.config import Direction
from plantmon.lib.exceptions import AmbiguousOverlapError, OutOfRangeError
from plantmon.lib.levels import Level, validate_levels
from plantmon.logging import get_logger

logger = get_logger("lib.quantizer")


@dataclass(frozen=True, slots=True)
class QuantizationResult:
    """A value together with the level it was assigned to."""

    value: int
    level: Level


class LevelQuantizer:
    """Assigns levels to values with hysteresis and tracks level direction.

    Not thread-safe: meant to be driven by a single reading loop.
    """

    def __init__(self, levels: Sequence[Level], noise_margin: int = 0) -> None:
        """Initialize the quantizer.

        Args:
            levels: Levels sorted by start, tiling 0-100 without gaps.
            noise_margin: Default sensor noise margin in percent, used when
                evaluate() is not given one.

        Raises:
            LevelConfigurationError: If the level set is invalid.
        """
        validate_levels(levels)
        self._levels: tuple[Level, ...] = tuple(levels)
        self.noise_margin = noise_margin
        self.current: QuantizationResult | None = None
        self.history: QuantizationResult | None = None
        logger.info("Available levels: %s", _describe(self._levels))

    @property
    def levels(self) -> tuple[Level, ...]:
        return self._levels

    @property
    def has_history(self) -> bool:
        """Whether a value has been evaluated before."""
        return self.current is not None

    def reload(self, levels: Sequence[Level]) -> None:
        """Swap the level set, keeping the classification history.

        Raises:
            LevelConfigurationError: If the new level set is invalid, in which
                case the current level set stays active.
        """
        validate_levels(levels)
        self._levels = tuple(levels)
        logger.info("Reloaded levels: %s", _describe(self._levels))

    def _match(self, value: int, margin: int) -> list[Level]:
        return [level for level in self._levels if level.contains(value, margin)]

    def _resolve(self, value: int, margin: int) -> Level:
        candidates = self._match(value, margin)
        if not candidates:
            raise OutOfRangeError(value)
        if len(candidates) == 1:
            return candidates[0]

        # Value sits in an overlap created by the margin: stick to the
        # previous level if it is still a candidate
        if self.current is not None:
            previous_name = self.current.level.name
            for level in candidates:
                if level.name == previous_name:
                    logger.debug(
                        "Value %d within hysteresis band, keeping level %s",
                        value,
                        previous_name,
                    )
                    return level

        sharp = self._match(value, 0)
        if not sharp:
            raise OutOfRangeError(value)
        if len(sharp) > 1:
            raise AmbiguousOverlapError(value, [level.name for level in sharp])
        return sharp[0]

    def evaluate(
        self, value: int, noise_margin: int | None = None
    ) -> tuple[Direction, Level]:
        """Assign a level to value and compare it with the previous one.

        Args:
            value: Smoothed moisture percentage.
            noise_margin: Sensor noise margin in percent. Half of it is
                applied on each side of every level.

        Returns:
            The level direction (steady unless the level changed) and the
            resolved level.

        Raises:
            OutOfRangeError: If no level matches the value.
            AmbiguousOverlapError: If several levels match without margin.
        """
        if noise_margin is None:
            noise_margin = self.noise_margin
        level = self._resolve(value, noise_margin // 2)

        previous = self.current
        if previous is None or previous.level.name == level.name:
            direction = Direction.STEADY
        elif value > previous.value:
            direction = Direction.UP
        else:
            direction = Direction.DOWN

        self.history = previous
        self.current = QuantizationResult(value=value, level=level)
        return direction, level


def _describe(levels: Sequence[Level]) -> str:
    return ", ".join(
        f"{level.name} [{level.start}-{level.end}]" for level in levels
    )
