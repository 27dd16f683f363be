# File: badge_catalog.py
"""Built-in badge rule catalog.

Each entry uses the same shape as a custom rules file (see
RuleCatalog.from_yaml), so the built-in catalog goes through the same
validation as user-supplied ones.

Series:
    - collector_*: words collected
    - reviewer_*: review sessions completed
    - streak_*: consecutive daily check-ins
    - contributor_5 / showlist_3: community contributions
    - learner_*h: cumulative learning time
    - dedicated_learner: combo of words, reviews and check-in streak
"""

from __future__ import annotations

from typing import Any

from . import const

DEFAULT_BADGE_RULES: list[dict[str, Any]] = [
    # Collector series
    {
        const.RULE_KEY_ID: "collector_10",
        const.RULE_KEY_METRIC: const.METRIC_WORDS_COLLECTED,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 10,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_COLLECTION,
        const.RULE_KEY_ICON: "mdi:bookmark-outline",
    },
    {
        const.RULE_KEY_ID: "collector_50",
        const.RULE_KEY_METRIC: const.METRIC_WORDS_COLLECTED,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 50,
        const.RULE_KEY_PRIORITY: 2,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_COLLECTION,
        const.RULE_KEY_ICON: "mdi:bookmark-multiple",
    },
    {
        const.RULE_KEY_ID: "collector_100",
        const.RULE_KEY_METRIC: const.METRIC_WORDS_COLLECTED,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 100,
        const.RULE_KEY_PRIORITY: 3,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_COLLECTION,
        const.RULE_KEY_ICON: "mdi:bookshelf",
    },
    # Reviewer series
    {
        const.RULE_KEY_ID: "reviewer_10",
        const.RULE_KEY_METRIC: const.METRIC_REVIEW_SESSIONS,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 10,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_REVIEW,
        const.RULE_KEY_ICON: "mdi:cards-outline",
    },
    {
        const.RULE_KEY_ID: "reviewer_50",
        const.RULE_KEY_METRIC: const.METRIC_REVIEW_SESSIONS,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 50,
        const.RULE_KEY_PRIORITY: 2,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_REVIEW,
        const.RULE_KEY_ICON: "mdi:cards",
    },
    # Streak series
    {
        const.RULE_KEY_ID: "streak_7",
        const.RULE_KEY_METRIC: const.METRIC_DAILY_CHECKIN_STREAK,
        const.RULE_KEY_CONDITION: const.CONDITION_STREAK,
        const.RULE_KEY_STREAK_DAYS: 7,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_STREAK,
        const.RULE_KEY_ICON: "mdi:fire",
    },
    {
        const.RULE_KEY_ID: "streak_30",
        const.RULE_KEY_METRIC: const.METRIC_DAILY_CHECKIN_STREAK,
        const.RULE_KEY_CONDITION: const.CONDITION_STREAK,
        const.RULE_KEY_STREAK_DAYS: 30,
        const.RULE_KEY_PRIORITY: 2,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_STREAK,
        const.RULE_KEY_ICON: "mdi:fire-circle",
    },
    {
        const.RULE_KEY_ID: "streak_100",
        const.RULE_KEY_METRIC: const.METRIC_DAILY_CHECKIN_STREAK,
        const.RULE_KEY_CONDITION: const.CONDITION_STREAK,
        const.RULE_KEY_STREAK_DAYS: 100,
        const.RULE_KEY_PRIORITY: 3,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_STREAK,
        const.RULE_KEY_ICON: "mdi:trophy",
    },
    # Contributions
    {
        const.RULE_KEY_ID: "contributor_5",
        const.RULE_KEY_METRIC: const.METRIC_WORDS_CONTRIBUTED,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 5,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_CONTRIBUTION,
        const.RULE_KEY_ICON: "mdi:pencil-plus",
    },
    {
        const.RULE_KEY_ID: "showlist_3",
        const.RULE_KEY_METRIC: const.METRIC_SHOWLIST_CREATED,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 3,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_SHOWLIST,
        const.RULE_KEY_ICON: "mdi:playlist-star",
    },
    # Learning time series
    {
        const.RULE_KEY_ID: "learner_10h",
        const.RULE_KEY_METRIC: const.METRIC_LEARNING_TIME_HOURS,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 10,
        const.RULE_KEY_PRIORITY: 1,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_LEARNING,
        const.RULE_KEY_ICON: "mdi:clock-outline",
    },
    {
        const.RULE_KEY_ID: "learner_50h",
        const.RULE_KEY_METRIC: const.METRIC_LEARNING_TIME_HOURS,
        const.RULE_KEY_CONDITION: const.CONDITION_THRESHOLD,
        const.RULE_KEY_THRESHOLD: 50,
        const.RULE_KEY_PRIORITY: 2,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_LEARNING,
        const.RULE_KEY_ICON: "mdi:clock-star-four-points",
    },
    # Combo: 50 words + 20 reviews + 15-day check-in streak
    {
        const.RULE_KEY_ID: "dedicated_learner",
        const.RULE_KEY_METRIC: const.METRIC_WORDS_COLLECTED,
        const.RULE_KEY_CONDITION: const.CONDITION_COMBO,
        const.RULE_KEY_COMBO: {
            const.RULE_KEY_COMBO_PARTS: [
                {
                    const.RULE_KEY_METRIC: const.METRIC_WORDS_COLLECTED,
                    const.RULE_KEY_COMBO_SUB_TARGET: 50,
                },
                {
                    const.RULE_KEY_METRIC: const.METRIC_REVIEW_SESSIONS,
                    const.RULE_KEY_COMBO_SUB_TARGET: 20,
                },
                {
                    const.RULE_KEY_METRIC: const.METRIC_DAILY_CHECKIN_STREAK,
                    const.RULE_KEY_COMBO_SUB_TARGET: 15,
                },
            ],
            const.RULE_KEY_COMBO_AGGREGATION: const.COMBO_AGGREGATION_AVERAGE,
        },
        const.RULE_KEY_PRIORITY: 3,
        const.RULE_KEY_CATEGORY: const.BADGE_CATEGORY_COMBO,
        const.RULE_KEY_ICON: "mdi:medal",
    },
]
