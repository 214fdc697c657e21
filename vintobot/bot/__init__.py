"""
Decision façade for the game orchestrator.

- DecisionContext and friends: what the orchestrator tells the bot
- MCTSBotDecisionService: turns one MCTS search into each decision
"""

from vintobot.bot.context import (
    ActionContext,
    ActionDecision,
    DecisionContext,
    PlayerView,
    TurnDecision,
)
from vintobot.bot.decision import MCTSBotDecisionService

__all__ = [
    "ActionContext",
    "ActionDecision",
    "DecisionContext",
    "PlayerView",
    "TurnDecision",
    "MCTSBotDecisionService",
]
