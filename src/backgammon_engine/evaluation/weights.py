"""Weight tables for the heuristic move scorer.

A move's score is the dot product of its feature vector (see
`backgammon_engine.evaluation.ai.move_features`) with a weight vector.
Weights are signed: bonuses are positive, penalties negative.

The effective weights for a position are the base table scaled by one
multiplier set for the game phase and one for the tactical pattern.
Factors missing from a multiplier set keep their base weight.

Factors:
    bear_off: 1 when the move bears a checker off
    bear_off_high_point: pips from the vacated home point, /6 (clear the back first)
    bar_entry: 1 when the move enters from the bar
    golden_point: 1 when the move makes the 5-point or the bar-point
    make_point: 1 when the move turns the destination into a made point
    prime_extension: squared length of the prime the new point belongs to
    hit: 1 when the move hits a blot
    anchor: 1 when the move makes a point in the opponent's home board
    best_anchor: 1 when that anchor is on the opponent's 5- or 4-point
    pip_advance: pips gained by the mover
    blot_exposure: shooter-weighted exposure of the blots the move leaves
    break_point: 1 when the source was a made point and no longer is
    break_golden: 1 when that broken point was the 5-point or bar-point
    break_prime: length of the prime the broken point belonged to
    overstack: checkers beyond four on the destination
"""

from typing import Dict, Optional
import numpy as np

from backgammon_engine.evaluation.patterns import GamePhase, TacticalPattern


WeightTable = Dict[str, float]

FACTORS = (
    "bear_off",
    "bear_off_high_point",
    "bar_entry",
    "golden_point",
    "make_point",
    "prime_extension",
    "hit",
    "anchor",
    "best_anchor",
    "pip_advance",
    "blot_exposure",
    "break_point",
    "break_golden",
    "break_prime",
    "overstack",
)

FACTOR_INDEX = {name: i for i, name in enumerate(FACTORS)}


BASE_WEIGHTS: WeightTable = {
    "bear_off": 50.0,
    "bear_off_high_point": 8.0,
    "bar_entry": 500.0,
    "golden_point": 35.0,
    "make_point": 20.0,
    "prime_extension": 3.0,
    "hit": 25.0,
    "anchor": 12.0,
    "best_anchor": 10.0,
    "pip_advance": 1.0,
    "blot_exposure": -4.0,
    "break_point": -14.0,
    "break_golden": -20.0,
    "break_prime": -3.0,
    "overstack": -5.0,
}


# ==============================================================================
# PHASE MULTIPLIERS
# ==============================================================================

PHASE_MULTIPLIERS: Dict[GamePhase, WeightTable] = {
    GamePhase.OPENING: {
        "golden_point": 2.0,
        "make_point": 1.2,
        "blot_exposure": 0.8,
    },
    GamePhase.MIDGAME: {},
    GamePhase.BEARING_OFF: {
        "bear_off": 4.0,
        "bear_off_high_point": 2.0,
        "golden_point": 0.0,
        "make_point": 0.3,
        "prime_extension": 0.0,
        "anchor": 0.0,
        "best_anchor": 0.0,
        "break_point": 0.1,
        "break_golden": 0.1,
        "break_prime": 0.0,
        "overstack": 0.2,
    },
}


# ==============================================================================
# PATTERN MULTIPLIERS
# ==============================================================================

PATTERN_MULTIPLIERS: Dict[TacticalPattern, WeightTable] = {
    TacticalPattern.BLITZ: {
        "hit": 2.5,
        "make_point": 1.3,
        "blot_exposure": 0.6,
    },
    TacticalPattern.PRIMING: {
        "prime_extension": 2.0,
        "break_prime": 2.5,
        "hit": 0.8,
    },
    TacticalPattern.HOLDING: {
        "anchor": 1.2,
        "break_point": 1.5,
        "pip_advance": 0.8,
    },
    TacticalPattern.BACK_GAME: {
        "anchor": 1.5,
        "hit": 1.2,
        "pip_advance": 0.3,
        "blot_exposure": 0.5,
    },
    TacticalPattern.BLOCKING: {},
    TacticalPattern.RACE: {
        "hit": 0.2,
        "pip_advance": 3.0,
        "golden_point": 0.3,
        "anchor": 0.0,
        "best_anchor": 0.0,
        "blot_exposure": 0.0,
        "break_point": 0.2,
        "break_golden": 0.2,
        "break_prime": 0.0,
    },
}


def resolve_weights(
    phase: Optional[GamePhase] = None,
    pattern: Optional[TacticalPattern] = None,
    base: Optional[WeightTable] = None,
) -> WeightTable:
    """Effective weight table for a phase and pattern.

    Args:
        phase: Game phase (no phase adjustment if None)
        pattern: Tactical pattern (no pattern adjustment if None)
        base: Base table to scale (BASE_WEIGHTS if None); factors it omits weigh 0

    Returns:
        Weight table covering every factor
    """
    if base is None:
        base = BASE_WEIGHTS
    phase_mult = PHASE_MULTIPLIERS.get(phase, {})
    pattern_mult = PATTERN_MULTIPLIERS.get(pattern, {})
    return {
        name: base.get(name, 0.0) * phase_mult.get(name, 1.0) * pattern_mult.get(name, 1.0)
        for name in FACTORS
    }


def weight_vector(weights: WeightTable) -> np.ndarray:
    """Weights laid out in FACTORS order."""
    unknown = set(weights) - set(FACTORS)
    if unknown:
        raise ValueError(f"Unknown scoring factors: {sorted(unknown)}")
    return np.array([weights.get(name, 0.0) for name in FACTORS], dtype=np.float64)
