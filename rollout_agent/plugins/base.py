"""Base plugin class for agent tool plugins."""
from typing import Callable, List
from abc import abstractmethod


class BasePlugin:
    """Base class for plugins exposing tools to the Kubernetes agent."""
    @abstractmethod
    def get_tools(self) -> List[Callable]:
        """Returns a list of tools provided by the plugin."""
