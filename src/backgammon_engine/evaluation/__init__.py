"""Move selection and position evaluation for the computer opponent."""

from backgammon_engine.evaluation.agents import (
    Agent,
    agent_for_difficulty,
    heuristic_agent,
    random_agent,
)

from backgammon_engine.evaluation.ai import (
    ScoredMove,
    choose_move,
    score_moves,
    should_accept_double,
    should_offer_double,
)

from backgammon_engine.evaluation.patterns import (
    GamePhase,
    TacticalPattern,
    detect_pattern,
    detect_phase,
)

__all__ = [
    # Agents
    "Agent",
    "agent_for_difficulty",
    "heuristic_agent",
    "random_agent",
    # Move scoring
    "ScoredMove",
    "choose_move",
    "score_moves",
    "should_accept_double",
    "should_offer_double",
    # Classification
    "GamePhase",
    "TacticalPattern",
    "detect_pattern",
    "detect_phase",
]
