"""AI package exports."""

from .opponent import ComputerOpponent
from .targeting import AiMemory, Difficulty, choose_ai_target, hard_weights

__all__ = ["AiMemory", "ComputerOpponent", "Difficulty", "choose_ai_target", "hard_weights"]
