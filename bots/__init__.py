"""Bot strategies for the Dou Dizhu arena."""

from .baseline_greedy import GreedyMaxBot, GreedyMinBot
from .human import HumanRelayBot
from .random_bot import RandomBot

__all__ = ["GreedyMinBot", "GreedyMaxBot", "HumanRelayBot", "RandomBot"]
