"""Engine modules for Vocab Badges integration.

Contains pure computation engines (no Home Assistant imports):
- rule_engine: Rule catalog loading and rule evaluation
- behavior_engine: Folding events into per-user aggregates and streaks
- transition_engine: Detecting newly crossed thresholds
- progress_engine: Badge lifecycle rows, chest opening, history, summaries
"""

from .behavior_engine import BadgeEventValidationError, BehaviorEngine
from .progress_engine import InvalidStateTransitionError, ProgressEngine
from .rule_engine import (
    BadgeRule,
    ComboPart,
    ComboSpec,
    EvaluationError,
    RuleCatalog,
    RuleCatalogError,
    RuleEngine,
)
from .transition_engine import TransitionEngine

__all__ = [
    "BadgeEventValidationError",
    "BadgeRule",
    "BehaviorEngine",
    "ComboPart",
    "ComboSpec",
    "EvaluationError",
    "InvalidStateTransitionError",
    "ProgressEngine",
    "RuleCatalog",
    "RuleCatalogError",
    "RuleEngine",
    "TransitionEngine",
]
