"""Move request entry point.

MoveSelector picks the agent for a difficulty level and asks it for a
move. Hard and expert use the minimax search; the lower levels use the
heuristic agent. One selector serves one game: ``request_move`` runs the
selection off the calling thread on a private copy of the game, and
requests from the same selector are handled one at a time.
"""

import copy
import logging
import random
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from morris_ai.agents.base_agent import Agent
from morris_ai.agents.difficulty import Difficulty
from morris_ai.agents.heuristic_agent import HeuristicAgent
from morris_ai.agents.minimax_agent import MinimaxAgent
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move, Position

logger = logging.getLogger(__name__)


class MoveSelector:
    """Selects moves for a computer player.

    Args:
        rng: Random source handed to the heuristic agent.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()
        self._executor: Optional[ThreadPoolExecutor] = None

    def agent_for(self, difficulty: Difficulty) -> Agent:
        if difficulty.uses_search:
            return MinimaxAgent(name=f"{difficulty.display_name} AI", depth=difficulty.search_depth)
        return HeuristicAgent(name=f"{difficulty.display_name} AI", difficulty=difficulty, rng=self.rng)

    def select_move(self, env: MorrisEnvironment, difficulty: Difficulty) -> Optional[Move]:
        """Choose a complete move for the player to move.

        Args:
            env: The game. It is not modified.
            difficulty: Strength of play.

        Returns:
            The move (a capture-only move while a capture is pending), or
            None when the game is over or no legal move exists.
        """
        if env.done:
            return None

        move = self.agent_for(difficulty).get_action(env)
        logger.debug(f"{difficulty.value} move for {env.current_player.value}: {move}")
        return move

    def select_capture(self, env: MorrisEnvironment, difficulty: Difficulty) -> Optional[Position]:
        """Choose the piece to capture after a mill was formed.

        Returns:
            The position to capture, or None if no capture is pending.
        """
        if not env.awaiting_capture:
            return None
        move = self.select_move(env, difficulty)
        return move.capture if move is not None else None

    def request_move(self, env: MorrisEnvironment, difficulty: Difficulty) -> "Future[Optional[Move]]":
        """Select a move on a worker thread.

        The game is copied before the call returns, so the caller may keep
        using it; a result that is no longer wanted can simply be ignored.

        Returns:
            A future resolving to the selected move.
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="morris-ai")
        return self._executor.submit(self.select_move, copy.deepcopy(env), difficulty)

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def __enter__(self) -> "MoveSelector":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()
