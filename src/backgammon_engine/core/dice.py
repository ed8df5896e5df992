"""Dice utilities for backgammon.

This module handles dice rolling, the opening roll and doubles expansion.
Rolls are drawn from a numpy Generator so games can be replayed from a seed.
"""

from typing import List, Optional, Sequence, Tuple
import numpy as np

Dice = Tuple[int, int]  # (die1, die2) where 1 <= die1, die2 <= 6


def validate_dice(dice: Sequence[int]) -> Dice:
    """Check a caller-supplied roll and return it as a tuple.

    Raises:
        ValueError: If the roll is not exactly two values in 1-6
    """
    if not isinstance(dice, (list, tuple)) or len(dice) != 2:
        raise ValueError(f"A roll has exactly two dice, got {dice!r}")
    try:
        values = (int(dice[0]), int(dice[1]))
    except (TypeError, ValueError) as e:
        raise ValueError(f"Dice must be integers, got {dice!r}") from e
    for die in values:
        if not 1 <= die <= 6:
            raise ValueError(f"Die value out of range: {die}")
    return values


def is_doubles(dice: Sequence[int]) -> bool:
    """Check if dice roll is doubles."""
    return dice[0] == dice[1]


def dice_values(dice: Sequence[int]) -> List[int]:
    """Get the dice values to use for moves.

    For doubles, you get 4 moves. For non-doubles, you get 2 moves.

    Examples:
        >>> dice_values((3, 5))
        [3, 5]
        >>> dice_values((4, 4))
        [4, 4, 4, 4]
    """
    die1, die2 = validate_dice(dice)
    if die1 == die2:
        return [die1] * 4
    return [die1, die2]


def roll_dice(rng: np.random.Generator) -> Dice:
    """Roll two independent dice.

    Args:
        rng: NumPy random generator

    Returns:
        Tuple of (die1, die2) where each is 1-6
    """
    die1 = int(rng.integers(1, 7))
    die2 = int(rng.integers(1, 7))
    return (die1, die2)


def roll_opening(rng: np.random.Generator) -> Dice:
    """Roll one die per side for the opening roll.

    Returns:
        (white_die, black_die). Ties are returned as-is; the caller re-rolls.
    """
    return roll_dice(rng)


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the generator used for all rolls of a controller."""
    return np.random.default_rng(seed)


def dice_to_string(dice: Sequence[int]) -> str:
    """Convert dice to readable string.

    Examples:
        >>> dice_to_string((3, 5))
        '3-5'
        >>> dice_to_string((4, 4))
        'Double 4s'
    """
    if is_doubles(dice):
        return f"Double {dice[0]}s"
    return f"{dice[0]}-{dice[1]}"
