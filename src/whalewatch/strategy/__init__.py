"""Strategy module for trade evaluation."""

from whalewatch.strategy.evaluator import Evaluation, OpportunityEvaluator, evaluate_trade


__all__ = [
    "Evaluation",
    "OpportunityEvaluator",
    "evaluate_trade",
]
