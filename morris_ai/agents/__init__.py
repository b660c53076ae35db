"""Agents for Nine Men's Morris.

This package contains the computer players: a random baseline, the
difficulty-scaled heuristic agent, the minimax search agent, and the
MoveSelector that picks between them.
"""

from morris_ai.agents.base_agent import Agent
from morris_ai.agents.difficulty import Difficulty
from morris_ai.agents.heuristic_agent import HeuristicAgent
from morris_ai.agents.minimax_agent import MinimaxAgent, SearchMove, SearchState
from morris_ai.agents.move_selector import MoveSelector
from morris_ai.agents.random_agent import RandomAgent

__all__ = [
    "Agent",
    "Difficulty",
    "HeuristicAgent",
    "MinimaxAgent",
    "MoveSelector",
    "RandomAgent",
    "SearchMove",
    "SearchState",
]
