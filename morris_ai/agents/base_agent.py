"""Base agent class for Nine Men's Morris.

This module provides the base agent class for Nine Men's Morris.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from morris_ai.environments.morris_environment import MorrisEnvironment
from morris_ai.environments.topology import Move

logger = logging.getLogger(__name__)


class Agent:
    """Base class for AI agents."""

    DISPLAY_NAME = "Agent"  # Default display name, should be overridden by subclasses

    def __init__(self, name: str):
        """Initialize an agent.

        Args:
            name: The name of the agent.
        """
        self.name = name

    def get_action(self, env: MorrisEnvironment) -> Optional[Move]:
        """Get the next move for the agent.

        Args:
            env: The game environment. It is not modified.

        Returns:
            The selected move, or None when the player to move has none.
        """
        raise NotImplementedError("Subclasses must implement get_action")

    def get_settings(self) -> Dict[str, Tuple[Any, str, str]]:
        """Get the agent's configurable settings.

        Returns:
            A dictionary mapping setting names to tuples of
            (current_value, description, type).
            The type should be one of: 'int', 'float', 'bool', 'str'.
        """
        return {}

    def set_setting(self, setting_name: str, value: Any) -> bool:
        """Set a specific setting to a new value.

        Args:
            setting_name: The name of the setting to change.
            value: The new value for the setting.

        Returns:
            True if the setting was successfully updated, False otherwise.
        """
        if setting_name not in self.get_settings():
            logger.warning(f"{self.name}: unknown setting {setting_name!r}")
        return False

    def has_settings(self) -> bool:
        return bool(self.get_settings())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
