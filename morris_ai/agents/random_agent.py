"""Random agent class for Nine Men's Morris.

This module provides a baseline agent that plays uniformly random legal
moves. It stands in for a remote opponent in simulations and self-play.
"""

import random
from typing import Optional

from morris_ai.agents.base_agent import Agent
from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move


class RandomAgent(Agent):
    """AI agent that selects random valid moves."""

    DISPLAY_NAME = "Random Player"  # Custom display name for this agent

    def __init__(self, name: str = "Random", rng: Optional[random.Random] = None):
        super().__init__(name)
        self.rng = rng or random.Random()

    def get_action(self, env: MorrisEnvironment) -> Optional[Move]:
        """Get a random valid move.

        Args:
            env: The game environment.

        Returns:
            The selected move, or None if there is no legal move.
        """
        valid_actions = env.get_valid_actions()

        if not valid_actions:
            return None

        return self.rng.choice(valid_actions)
