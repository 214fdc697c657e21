"""
VintoBot: decision-making core for Vinto bot players.

Sub-packages:
    - vintobot.game: cards, search state, moves and default rules
    - vintobot.mcts: card memory, determinization, search tree, MCTS, evaluator
    - vintobot.bot: decision façade called by the game orchestrator
"""

__version__ = "0.1.0"
