"""Rule Engine - Pure logic for badge rule catalogs and rule evaluation.

This engine provides stateless, pure Python functions for:
- Loading and validating badge rule catalogs (built-in or YAML file)
- Threshold, streak and combo rule evaluation
- Per-rule failure isolation (one broken rule never blocks the others)

ARCHITECTURE: This is a pure logic engine with NO Home Assistant dependencies.
All evaluation methods are class methods that operate on passed-in data.
State management belongs in BadgeManager.

Rule conditions:
- threshold: progress = raw metric value, unlocked when progress >= threshold
- streak: progress = current streak length, unlocked when >= streak_days
- combo: progress = average of capped per-part ratios (percent), unlocked
  only when every part meets its own sub-target
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import datetime
import math
from typing import TYPE_CHECKING, Any

import voluptuous as vol
import yaml

from .. import const
from ..badge_catalog import DEFAULT_BADGE_RULES
from ..utils import dt_utils

if TYPE_CHECKING:
    from ..type_defs import BehaviorAggregate, UnlockResult


# =============================================================================
# EXCEPTIONS
# =============================================================================


class EvaluationError(Exception):
    """Raised when a single rule cannot be evaluated.

    Attributes:
        badge_id: The rule that failed
        cause: The underlying exception
    """

    def __init__(self, badge_id: str, cause: Exception) -> None:
        """Initialize EvaluationError.

        Args:
            badge_id: The rule that failed
            cause: The underlying exception
        """
        self.badge_id = badge_id
        self.cause = cause
        super().__init__(f"Rule {badge_id} failed: {type(cause).__name__}: {cause}")


class RuleCatalogError(Exception):
    """Raised when a rule catalog file cannot be read or validated."""

    def __init__(self, source: str, reason: str) -> None:
        """Initialize RuleCatalogError.

        Args:
            source: Path (or label) of the catalog that failed to load
            reason: Human-readable failure reason
        """
        self.source = source
        self.reason = reason
        super().__init__(const.ERROR_RULES_FILE_FMT.format(source, reason))


# =============================================================================
# RULE DATA TYPES
# =============================================================================


@dataclass(frozen=True, slots=True)
class ComboPart:
    """One sub-condition of a combo rule."""

    metric: str
    sub_target: float


@dataclass(frozen=True, slots=True)
class ComboSpec:
    """The parts of a combo rule and how their ratios are aggregated."""

    parts: tuple[ComboPart, ...]
    aggregation: str = const.COMBO_AGGREGATION_AVERAGE


@dataclass(frozen=True, slots=True)
class BadgeRule:
    """Immutable unlock rule for a single badge."""

    id: str
    metric: str
    condition: str
    threshold: float | None = None
    streak_days: int | None = None
    combo: ComboSpec | None = None
    priority: int = 0
    category: str = ""
    icon: str = ""

    @property
    def target(self) -> float:
        """Return the value progress is measured against for this rule."""
        if self.condition == const.CONDITION_THRESHOLD:
            return self.threshold or 0
        if self.condition == const.CONDITION_STREAK:
            return self.streak_days or 0
        if self.condition == const.CONDITION_COMBO:
            return const.COMBO_TARGET
        # Unrecognized condition: a locked row still needs progress < target
        return self.threshold or self.streak_days or 1


# =============================================================================
# METRICS
# =============================================================================

# Metric name -> aggregate counter field
METRIC_FIELDS: dict[str, str] = {
    const.METRIC_WORDS_COLLECTED: const.DATA_WORDS_COLLECTED,
    const.METRIC_REVIEW_SESSIONS: const.DATA_REVIEW_SESSIONS_COMPLETED,
    const.METRIC_DAILY_CHECKIN_STREAK: const.DATA_DAILY_CHECKIN_STREAK,
    const.METRIC_WORDS_CONTRIBUTED: const.DATA_WORDS_CONTRIBUTED,
    const.METRIC_LEARNING_TIME_HOURS: const.DATA_LEARNING_TIME_HOURS,
    const.METRIC_SHOWLIST_CREATED: const.DATA_SHOWLIST_CREATED,
}

# Metric name -> streak_data entry type (daily_checkin_streak reads the counter)
METRIC_STREAK_TYPES: dict[str, str] = {
    const.METRIC_WORDS_COLLECTED: const.STREAK_TYPE_LEARNING,
    const.METRIC_REVIEW_SESSIONS: const.STREAK_TYPE_REVIEW,
}


# =============================================================================
# CATALOG SCHEMA (voluptuous)
# =============================================================================

_POSITIVE_NUMBER = vol.All(vol.Any(int, float), vol.Range(min=0, min_included=False))
_METRIC = vol.In(list(METRIC_FIELDS))

COMBO_PART_SCHEMA = vol.Schema(
    {
        vol.Required(const.RULE_KEY_METRIC): _METRIC,
        vol.Required(const.RULE_KEY_COMBO_SUB_TARGET): _POSITIVE_NUMBER,
    }
)

COMBO_SCHEMA = vol.Schema(
    {
        vol.Required(const.RULE_KEY_COMBO_PARTS): vol.All(
            [COMBO_PART_SCHEMA], vol.Length(min=1)
        ),
        vol.Optional(
            const.RULE_KEY_COMBO_AGGREGATION, default=const.COMBO_AGGREGATION_AVERAGE
        ): vol.In([const.COMBO_AGGREGATION_AVERAGE]),
    }
)


def _validate_condition_fields(rule: dict[str, Any]) -> dict[str, Any]:
    """Require the field that matches the rule's condition."""
    required_field = {
        const.CONDITION_THRESHOLD: const.RULE_KEY_THRESHOLD,
        const.CONDITION_STREAK: const.RULE_KEY_STREAK_DAYS,
        const.CONDITION_COMBO: const.RULE_KEY_COMBO,
    }[rule[const.RULE_KEY_CONDITION]]
    if rule.get(required_field) is None:
        raise vol.Invalid(
            f"rule {rule[const.RULE_KEY_ID]} with condition "
            f"{rule[const.RULE_KEY_CONDITION]} requires '{required_field}'"
        )
    return rule


RULE_SCHEMA = vol.All(
    vol.Schema(
        {
            vol.Required(const.RULE_KEY_ID): vol.All(str, vol.Length(min=1)),
            vol.Required(const.RULE_KEY_METRIC): _METRIC,
            vol.Required(const.RULE_KEY_CONDITION): vol.In(const.RULE_CONDITIONS),
            vol.Optional(const.RULE_KEY_THRESHOLD): vol.All(
                vol.Any(int, float), vol.Range(min=0)
            ),
            vol.Optional(const.RULE_KEY_STREAK_DAYS): vol.All(int, vol.Range(min=1)),
            vol.Optional(const.RULE_KEY_COMBO): COMBO_SCHEMA,
            vol.Optional(const.RULE_KEY_PRIORITY, default=0): int,
            vol.Optional(const.RULE_KEY_CATEGORY, default=""): str,
            vol.Optional(const.RULE_KEY_ICON, default=""): str,
        }
    ),
    _validate_condition_fields,
)


def _unique_ids(rules: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Reject catalogs that define the same badge id twice."""
    seen: set[str] = set()
    for rule in rules:
        badge_id = rule[const.RULE_KEY_ID]
        if badge_id in seen:
            raise vol.Invalid(f"duplicate badge id: {badge_id}")
        seen.add(badge_id)
    return rules


RULES_SCHEMA = vol.All([RULE_SCHEMA], vol.Length(min=1), _unique_ids)

RULES_FILE_SCHEMA = vol.Schema({vol.Required(const.RULE_KEY_RULES): RULES_SCHEMA})


# =============================================================================
# RULE CATALOG
# =============================================================================


class RuleCatalog:
    """Ordered, read-only collection of badge rules.

    Rules are kept sorted by ascending priority; rules with equal priority
    keep their definition order.
    """

    def __init__(self, rules: list[BadgeRule] | tuple[BadgeRule, ...]) -> None:
        """Initialize the catalog from already-built rules."""
        self._rules: tuple[BadgeRule, ...] = tuple(
            sorted(rules, key=lambda rule: rule.priority)
        )
        self._by_id: dict[str, BadgeRule] = {rule.id: rule for rule in self._rules}

    def __iter__(self) -> Iterator[BadgeRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, badge_id: object) -> bool:
        return badge_id in self._by_id

    @property
    def rules(self) -> tuple[BadgeRule, ...]:
        """Return all rules in evaluation order."""
        return self._rules

    def get_rule(self, badge_id: str) -> BadgeRule | None:
        """Return the rule for a badge id, or None if unknown."""
        return self._by_id.get(badge_id)

    def ids(self) -> list[str]:
        """Return badge ids in evaluation order."""
        return [rule.id for rule in self._rules]

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def default(cls) -> RuleCatalog:
        """Return the built-in catalog."""
        return cls.from_dicts(DEFAULT_BADGE_RULES, source="built-in catalog")

    @classmethod
    def from_dicts(
        cls, raw_rules: list[dict[str, Any]], source: str = "rules"
    ) -> RuleCatalog:
        """Validate raw rule dicts and build a catalog.

        Raises:
            RuleCatalogError: If the rules do not match RULES_SCHEMA
        """
        try:
            validated = RULES_SCHEMA(raw_rules)
        except vol.Invalid as err:
            raise RuleCatalogError(source, str(err)) from err
        return cls([cls._build_rule(raw) for raw in validated])

    @classmethod
    def from_yaml(cls, path: str) -> RuleCatalog:
        """Load a catalog from a YAML file with a top-level `rules` list.

        Blocking I/O: call through hass.async_add_executor_job().

        Raises:
            RuleCatalogError: If the file is missing, unreadable or invalid
        """
        try:
            with open(path, encoding="utf-8") as rules_file:
                raw = yaml.safe_load(rules_file)
        except OSError as err:
            raise RuleCatalogError(path, str(err)) from err
        except yaml.YAMLError as err:
            raise RuleCatalogError(path, f"YAML error: {err}") from err

        try:
            validated = RULES_FILE_SCHEMA(raw)
        except vol.Invalid as err:
            raise RuleCatalogError(path, str(err)) from err

        return cls([cls._build_rule(r) for r in validated[const.RULE_KEY_RULES]])

    @staticmethod
    def _build_rule(raw: dict[str, Any]) -> BadgeRule:
        """Convert one validated rule dict into a BadgeRule."""
        combo: ComboSpec | None = None
        raw_combo = raw.get(const.RULE_KEY_COMBO)
        if raw_combo:
            combo = ComboSpec(
                parts=tuple(
                    ComboPart(
                        metric=part[const.RULE_KEY_METRIC],
                        sub_target=part[const.RULE_KEY_COMBO_SUB_TARGET],
                    )
                    for part in raw_combo[const.RULE_KEY_COMBO_PARTS]
                ),
                aggregation=raw_combo[const.RULE_KEY_COMBO_AGGREGATION],
            )
        return BadgeRule(
            id=raw[const.RULE_KEY_ID],
            metric=raw[const.RULE_KEY_METRIC],
            condition=raw[const.RULE_KEY_CONDITION],
            threshold=raw.get(const.RULE_KEY_THRESHOLD),
            streak_days=raw.get(const.RULE_KEY_STREAK_DAYS),
            combo=combo,
            priority=raw[const.RULE_KEY_PRIORITY],
            category=raw[const.RULE_KEY_CATEGORY],
            icon=raw[const.RULE_KEY_ICON],
        )


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler signature: (rule, behavior) -> (unlocked, progress, target, reason)
ConditionHandler = Callable[
    [BadgeRule, "BehaviorAggregate"], tuple[bool, float, float, str]
]


# =============================================================================
# RULE ENGINE
# =============================================================================


class RuleEngine:
    """Pure, stateless evaluator of badge rules against a behavior aggregate.

    Evaluating the same aggregate twice with the same `now` returns
    identical results.
    """

    # Maps rule condition to handler function
    _CONDITION_HANDLERS: dict[str, ConditionHandler] = {}

    @classmethod
    def _register_handlers(cls) -> None:
        """Register all condition handlers.

        Called lazily on first evaluation to populate _CONDITION_HANDLERS.
        """
        if cls._CONDITION_HANDLERS:
            return  # Already registered

        cls._CONDITION_HANDLERS = {
            const.CONDITION_THRESHOLD: cls._evaluate_threshold,
            const.CONDITION_STREAK: cls._evaluate_streak,
            const.CONDITION_COMBO: cls._evaluate_combo,
        }

    # =========================================================================
    # MAIN EVALUATION METHODS
    # =========================================================================

    @classmethod
    def evaluate_all(
        cls,
        behavior: BehaviorAggregate,
        catalog: RuleCatalog,
        now: datetime | None = None,
    ) -> list[UnlockResult]:
        """Evaluate every rule in catalog order.

        A rule that raises is recorded as a failed, locked result; the
        remaining rules still run.

        Args:
            behavior: The user's behavior aggregate
            catalog: Rules to evaluate
            now: Timestamp used for unlock_date (defaults to current UTC time)

        Returns:
            One UnlockResult per rule, in catalog order
        """
        now = now or dt_utils.dt_now_utc()
        results: list[UnlockResult] = []
        for rule in catalog:
            try:
                results.append(cls.evaluate_rule(rule, behavior, now))
            except EvaluationError as err:
                const.LOGGER.error("ERROR: Badge evaluation failed: %s", err)
                results.append(
                    cls._make_result(
                        badge_id=rule.id,
                        unlocked=False,
                        progress=0,
                        target=rule.target,
                        now=now,
                        reason=const.REASON_EVALUATION_FAILED_FMT.format(err.cause),
                        evaluation_failed=True,
                    )
                )
        return results

    @classmethod
    def evaluate_rule(
        cls,
        rule: BadgeRule,
        behavior: BehaviorAggregate,
        now: datetime | None = None,
    ) -> UnlockResult:
        """Evaluate a single rule.

        Unknown conditions and metrics yield a locked result with reason
        "unknown rule type" rather than an error.

        Raises:
            EvaluationError: If the aggregate holds data the rule cannot use
        """
        cls._register_handlers()
        now = now or dt_utils.dt_now_utc()

        handler = cls._CONDITION_HANDLERS.get(rule.condition)
        if handler is None or not cls._has_known_metrics(rule):
            const.LOGGER.warning(
                "WARNING: Unknown rule type for badge %s (condition=%s, metric=%s)",
                rule.id,
                rule.condition,
                rule.metric,
            )
            return cls._make_result(
                badge_id=rule.id,
                unlocked=False,
                progress=0,
                target=rule.target,
                now=now,
                reason=const.REASON_UNKNOWN_RULE,
            )

        try:
            unlocked, progress, target, reason = handler(rule, behavior)
        except (
            AttributeError,
            KeyError,
            OverflowError,
            TypeError,
            ValueError,
            ZeroDivisionError,
        ) as err:
            raise EvaluationError(rule.id, err) from err

        return cls._make_result(
            badge_id=rule.id,
            unlocked=unlocked,
            progress=progress,
            target=target,
            now=now,
            reason=reason,
        )

    # =========================================================================
    # CONDITION HANDLERS
    # =========================================================================

    @classmethod
    def _evaluate_threshold(
        cls, rule: BadgeRule, behavior: BehaviorAggregate
    ) -> tuple[bool, float, float, str]:
        """Progress is the raw metric value (not capped at the threshold)."""
        progress = cls.get_metric_value(rule.metric, behavior)
        target = rule.threshold or 0
        unlocked = progress >= target
        reason = (
            const.REASON_THRESHOLD_MET if unlocked else const.REASON_THRESHOLD_NOT_MET
        )
        return unlocked, progress, target, reason

    @classmethod
    def _evaluate_streak(
        cls, rule: BadgeRule, behavior: BehaviorAggregate
    ) -> tuple[bool, float, float, str]:
        progress = cls.get_streak_value(rule.metric, behavior)
        target = rule.streak_days or 0
        unlocked = progress >= target
        reason = const.REASON_STREAK_MET if unlocked else const.REASON_STREAK_NOT_MET
        return unlocked, progress, target, reason

    @classmethod
    def _evaluate_combo(
        cls, rule: BadgeRule, behavior: BehaviorAggregate
    ) -> tuple[bool, float, float, str]:
        """Average the capped per-part ratios; every part must meet its sub-target.

        Example: parts (words>=50, reviews>=20, streak>=15) with values
        (50, 10, 15) give ratios (1.0, 0.5, 1.0) -> progress 83, locked.
        """
        if rule.combo is None:
            raise ValueError("combo rule without combo parts")

        ratios: list[float] = []
        all_met = True
        for part in rule.combo.parts:
            value = cls.get_metric_value(part.metric, behavior)
            ratios.append(min(value / part.sub_target, 1.0))
            if value < part.sub_target:
                all_met = False

        # Half-up rounding so 82.5 -> 83 regardless of banker's rounding
        progress = math.floor(sum(ratios) / len(ratios) * 100 + 0.5)
        if not all_met:
            # A locked combo never reports the full target
            progress = min(progress, const.COMBO_TARGET - 1)
        reason = const.REASON_COMBO_MET if all_met else const.REASON_COMBO_NOT_MET
        return all_met, progress, const.COMBO_TARGET, reason

    # =========================================================================
    # METRIC ACCESS
    # =========================================================================

    @staticmethod
    def get_metric_value(metric: str, behavior: BehaviorAggregate) -> float:
        """Return the aggregate counter backing a metric.

        Raises:
            KeyError: If the metric is unknown
            TypeError: If the stored counter is not a number
        """
        value: Any = behavior.get(METRIC_FIELDS[metric]) or 0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"metric {metric} holds non-numeric value {value!r}")
        return value

    @classmethod
    def get_streak_value(cls, metric: str, behavior: BehaviorAggregate) -> int:
        """Return the current streak length relevant to a metric.

        daily_checkin_streak reads the aggregate counter; other metrics read
        their mapped streak_data entry (0 when absent or unmapped).
        """
        if metric == const.METRIC_DAILY_CHECKIN_STREAK:
            return int(cls.get_metric_value(metric, behavior))

        streak_type = METRIC_STREAK_TYPES.get(metric)
        if streak_type is None:
            return 0
        for entry in behavior.get(const.DATA_STREAK_DATA) or []:
            if entry.get(const.DATA_STREAK_TYPE) == streak_type:
                return int(entry.get(const.DATA_STREAK_CURRENT) or 0)
        return 0

    @staticmethod
    def _has_known_metrics(rule: BadgeRule) -> bool:
        """Return True if every metric the rule reads is a known metric."""
        if rule.condition == const.CONDITION_COMBO:
            if rule.combo is None:
                return False
            return all(part.metric in METRIC_FIELDS for part in rule.combo.parts)
        return rule.metric in METRIC_FIELDS

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _make_result(
        badge_id: str,
        unlocked: bool,
        progress: float,
        target: float,
        now: datetime,
        reason: str,
        evaluation_failed: bool = False,
    ) -> UnlockResult:
        """Create a standardized UnlockResult.

        unlock_date is only set when the rule is unlocked.
        """
        result: UnlockResult = {
            "badge_id": badge_id,
            "unlocked": unlocked,
            "progress": progress,
            "target": target,
            "unlock_date": now.isoformat() if unlocked else None,
            "reason": reason,
        }
        if evaluation_failed:
            result["evaluation_failed"] = True
        return result
