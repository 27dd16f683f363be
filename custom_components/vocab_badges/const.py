# File: const.py
"""Constants for the Vocab Badges integration.

This file centralizes storage keys, data field names, event types, metric
names, service names, signal suffixes and defaults so the engines, managers
and the service layer all speak the same vocabulary.
"""

import logging

import homeassistant.util.dt as dt_util

from .utils import dt_utils


def set_default_timezone(hass):
    """Set the default timezone based on the Home Assistant configuration."""
    global DEFAULT_TIME_ZONE
    DEFAULT_TIME_ZONE = dt_util.get_time_zone(hass.config.time_zone)
    if DEFAULT_TIME_ZONE is not None:
        dt_utils.set_default_timezone(DEFAULT_TIME_ZONE)


# ------------------------------------------------------------------------------------------------
# General / Integration Information
# ------------------------------------------------------------------------------------------------
VOCAB_BADGES_TITLE = "Vocab Badges"

# Integration Domain
DOMAIN = "vocab_badges"

# Logger
LOGGER = logging.getLogger(__package__)

# Runtime data keys (hass.data[DOMAIN][entry_id])
BADGE_MANAGER = "badge_manager"
NOTIFICATION_MANAGER = "notification_manager"
BADGE_STORE = "badge_store"
PROGRESS_MANAGER = "progress_manager"

# Storage and Versioning
STORAGE_KEY_PREFIX = DOMAIN
STORAGE_VERSION = 1

# Default timezone: initially None, to be set once hass is available.
DEFAULT_TIME_ZONE = None

# ------------------------------------------------------------------------------------------------
# Configuration Keys
# ------------------------------------------------------------------------------------------------
CONF_NOTIFY_SERVICE = "notify_service"
CONF_HISTORY_LIMIT = "history_limit"
CONF_DAILY_STATS_RETENTION_DAYS = "daily_stats_retention_days"
CONF_RULES_FILE = "rules_file"

DEFAULT_NOTIFY_SERVICE = ""
DEFAULT_HISTORY_LIMIT = 100
DEFAULT_DAILY_STATS_RETENTION_DAYS = 90
DEFAULT_RULES_FILE = ""
DEFAULT_SYNC_INTERVAL_SECONDS = 300
DEFAULT_RECENT_UNLOCKS = 5

# ------------------------------------------------------------------------------------------------
# Persisted blob kinds (one HA Store file per kind per user)
# ------------------------------------------------------------------------------------------------
BLOB_BEHAVIOR = "behavior"
BLOB_PROGRESS = "progress"
BLOB_HISTORY = "history"
BLOB_SYNC = "sync"

BLOB_KINDS = (BLOB_BEHAVIOR, BLOB_PROGRESS, BLOB_HISTORY, BLOB_SYNC)

# ------------------------------------------------------------------------------------------------
# Badge events (inbound)
# ------------------------------------------------------------------------------------------------
EVENT_WORD_COLLECTED = "word_collected"
EVENT_REVIEW_COMPLETED = "review_completed"
EVENT_DAILY_CHECKIN = "daily_checkin"
EVENT_WORD_CONTRIBUTED = "word_contributed"
EVENT_SHOWLIST_CREATED = "showlist_created"
EVENT_LEARNING_TIME_UPDATED = "learning_time_updated"

BADGE_EVENT_TYPES = (
    EVENT_WORD_COLLECTED,
    EVENT_REVIEW_COMPLETED,
    EVENT_DAILY_CHECKIN,
    EVENT_WORD_CONTRIBUTED,
    EVENT_SHOWLIST_CREATED,
    EVENT_LEARNING_TIME_UPDATED,
)

EVENT_DATA_HOURS = "hours"

# ------------------------------------------------------------------------------------------------
# Metrics
# ------------------------------------------------------------------------------------------------
METRIC_WORDS_COLLECTED = "words_collected_total"
METRIC_REVIEW_SESSIONS = "review_sessions_completed"
METRIC_DAILY_CHECKIN_STREAK = "daily_checkin_streak"
METRIC_WORDS_CONTRIBUTED = "words_contributed"
METRIC_LEARNING_TIME_HOURS = "learning_time_hours"
METRIC_SHOWLIST_CREATED = "showlist_created"

# Rule conditions
CONDITION_THRESHOLD = "threshold"
CONDITION_STREAK = "streak"
CONDITION_COMBO = "combo"

RULE_CONDITIONS = (CONDITION_THRESHOLD, CONDITION_STREAK, CONDITION_COMBO)

COMBO_AGGREGATION_AVERAGE = "average"

# Combo progress is expressed as a percentage
COMBO_TARGET = 100

# Streak types
STREAK_TYPE_DAILY_CHECKIN = "daily_checkin"
STREAK_TYPE_LEARNING = "learning"
STREAK_TYPE_REVIEW = "review"

# Badge categories (display metadata)
BADGE_CATEGORY_COLLECTION = "collection"
BADGE_CATEGORY_REVIEW = "review"
BADGE_CATEGORY_STREAK = "streak"
BADGE_CATEGORY_CONTRIBUTION = "contribution"
BADGE_CATEGORY_SHOWLIST = "showlist"
BADGE_CATEGORY_LEARNING = "learning"
BADGE_CATEGORY_COMBO = "combo"

# Evaluation reasons
REASON_THRESHOLD_MET = "threshold reached"
REASON_THRESHOLD_NOT_MET = "threshold not reached"
REASON_STREAK_MET = "streak reached"
REASON_STREAK_NOT_MET = "streak not reached"
REASON_COMBO_MET = "all combo conditions met"
REASON_COMBO_NOT_MET = "combo conditions not all met"
REASON_UNKNOWN_RULE = "unknown rule type"
REASON_EVALUATION_FAILED_FMT = "evaluation failed: {}"
REASON_CHEST_OPENED = "badge chest opened"

# ------------------------------------------------------------------------------------------------
# Data keys: behavior aggregate
# ------------------------------------------------------------------------------------------------
DATA_USER_ID = "user_id"
DATA_WORDS_COLLECTED = "words_collected"
DATA_REVIEW_SESSIONS_COMPLETED = "review_sessions_completed"
DATA_DAILY_CHECKIN_STREAK = "daily_checkin_streak"
DATA_WORDS_CONTRIBUTED = "words_contributed"
DATA_LEARNING_TIME_HOURS = "learning_time_hours"
DATA_SHOWLIST_CREATED = "showlist_created"
DATA_LAST_ACTIVITY_DATE = "last_activity_date"
DATA_LAST_CHECKIN_DATE = "last_checkin_date"
DATA_DAILY_STATS = "daily_stats"
DATA_STREAK_DATA = "streak_data"

# Daily stat bucket
DATA_DAILY_DATE = "date"
DATA_DAILY_WORDS_COLLECTED = "words_collected"
DATA_DAILY_REVIEWS_COMPLETED = "reviews_completed"
DATA_DAILY_LEARNING_TIME = "learning_time"
DATA_DAILY_CHECKINS = "checkins"
DATA_DAILY_WORDS_CONTRIBUTED = "words_contributed"
DATA_DAILY_SHOWLISTS_CREATED = "showlists_created"

# Streak entry
DATA_STREAK_TYPE = "type"
DATA_STREAK_CURRENT = "current_streak"
DATA_STREAK_LONGEST = "longest_streak"
DATA_STREAK_LAST_BREAK_DATE = "last_break_date"

# ------------------------------------------------------------------------------------------------
# Data keys: unlock results / progress rows / history
# ------------------------------------------------------------------------------------------------
DATA_BADGE_ID = "badge_id"
DATA_UNLOCKED = "unlocked"
DATA_PROGRESS = "progress"
DATA_TARGET = "target"
DATA_UNLOCK_DATE = "unlock_date"
DATA_REASON = "reason"
DATA_EVALUATION_FAILED = "evaluation_failed"
DATA_UNLOCKED_AT = "unlocked_at"
DATA_STATUS = "status"
DATA_HAS_BEEN_OPENED = "has_been_opened"
DATA_LAST_SYNC = "last_sync"

BADGE_STATUS_LOCKED = "locked"
BADGE_STATUS_READY_TO_UNLOCK = "ready_to_unlock"
BADGE_STATUS_UNLOCKED = "unlocked"

# Summary keys
DATA_SUMMARY_TOTAL = "total_badges"
DATA_SUMMARY_UNLOCKED = "unlocked_badges"
DATA_SUMMARY_READY = "ready_to_unlock"
DATA_SUMMARY_LOCKED = "locked_badges"
DATA_SUMMARY_PERCENTAGE = "progress_percentage"
DATA_SUMMARY_RECENT_UNLOCKS = "recent_unlocks"
DATA_SUMMARY_NEXT_BADGE = "next_badge"

# Export keys
DATA_EXPORT_DATE = "export_date"
DATA_EXPORT_BEHAVIOR = "behavior"
DATA_EXPORT_PROGRESS = "progress"
DATA_EXPORT_HISTORY = "history"

# Badge definition keys (display metadata)
DATA_DEFINITION_ID = "id"
DATA_DEFINITION_CATEGORY = "category"
DATA_DEFINITION_ICON = "icon"
DATA_DEFINITION_CONDITION = "condition"
DATA_DEFINITION_METRIC = "metric"
DATA_DEFINITION_TARGET = "target"
DATA_DEFINITION_PRIORITY = "priority"
DATA_DEFINITION_NAME_KEY = "name_key"
DATA_DEFINITION_DESCRIPTION_KEY = "description_key"
DATA_DEFINITION_LOCALE = "locale"

TRANS_KEY_BADGE_NAME_FMT = "badge.{}.name"
TRANS_KEY_BADGE_DESCRIPTION_FMT = "badge.{}.description"
DEFAULT_LOCALE = "en"

# ------------------------------------------------------------------------------------------------
# Rule catalog file keys (YAML)
# ------------------------------------------------------------------------------------------------
RULE_KEY_ID = "id"
RULE_KEY_METRIC = "metric"
RULE_KEY_CONDITION = "condition"
RULE_KEY_THRESHOLD = "threshold"
RULE_KEY_STREAK_DAYS = "streak_days"
RULE_KEY_COMBO = "combo"
RULE_KEY_COMBO_PARTS = "parts"
RULE_KEY_COMBO_SUB_TARGET = "sub_target"
RULE_KEY_COMBO_AGGREGATION = "aggregation"
RULE_KEY_PRIORITY = "priority"
RULE_KEY_CATEGORY = "category"
RULE_KEY_ICON = "icon"
RULE_KEY_RULES = "rules"

# ------------------------------------------------------------------------------------------------
# Signals (instance scoped via get_event_signal)
# ------------------------------------------------------------------------------------------------
SIGNAL_SUFFIX_BADGE_READY = "badge_ready"
SIGNAL_SUFFIX_BADGE_OPENED = "badge_opened"
SIGNAL_SUFFIX_USER_DATA_CLEARED = "user_data_cleared"

# Home Assistant bus events (outbound)
BUS_EVENT_BADGE_READY = f"{DOMAIN}_badge_ready"
BUS_EVENT_BADGE_OPENED = f"{DOMAIN}_badge_opened"

# ------------------------------------------------------------------------------------------------
# Notifications
# ------------------------------------------------------------------------------------------------
NOTIFY_DOMAIN = "notify"
NOTIFY_TITLE = "title"
NOTIFY_MESSAGE = "message"
NOTIFY_DATA = "data"
NOTIFY_TAG = "tag"

NOTIF_TITLE_BADGE_READY = "New badge unlocked!"
NOTIF_MESSAGE_BADGE_READY_FMT = "You earned '{badge_id}'. Open the chest to claim it."

# ------------------------------------------------------------------------------------------------
# Services
# ------------------------------------------------------------------------------------------------
SERVICE_TRIGGER_EVENT = "trigger_event"
SERVICE_OPEN_BADGE_CHEST = "open_badge_chest"
SERVICE_GET_USER_BADGE_PROGRESS = "get_user_badge_progress"
SERVICE_GET_BADGE_DEFINITIONS = "get_badge_definitions"
SERVICE_GET_BADGE_SUMMARY = "get_badge_summary"
SERVICE_MANUAL_BADGE_CHECK = "manual_badge_check"
SERVICE_CLEAR_USER_DATA = "clear_user_data"

SERVICES = (
    SERVICE_TRIGGER_EVENT,
    SERVICE_OPEN_BADGE_CHEST,
    SERVICE_GET_USER_BADGE_PROGRESS,
    SERVICE_GET_BADGE_DEFINITIONS,
    SERVICE_GET_BADGE_SUMMARY,
    SERVICE_MANUAL_BADGE_CHECK,
    SERVICE_CLEAR_USER_DATA,
)

FIELD_EVENT_TYPE = "event_type"
FIELD_USER_ID = "user_id"
FIELD_BADGE_ID = "badge_id"
FIELD_DATA = "data"
FIELD_TIMESTAMP = "timestamp"
FIELD_LOCALE = "locale"

RESPONSE_NEW_UNLOCKS = "new_unlocks"
RESPONSE_OPENED = "opened"
RESPONSE_PROGRESS = "progress"
RESPONSE_BADGES = "badges"
RESPONSE_SUMMARY = "summary"

# ------------------------------------------------------------------------------------------------
# Errors / messages
# ------------------------------------------------------------------------------------------------
MSG_NO_ENTRY_FOUND = "No Vocab Badges entry found"
ERROR_UNKNOWN_EVENT_TYPE_FMT = "Unknown badge event type: {}"
ERROR_PERSISTENCE_FMT = "Failed to persist {} data for user {}: {}"
ERROR_INVALID_TRANSITION_FMT = (
    "Cannot open chest for badge {} of user {}: status is {} (expected ready_to_unlock)"
)
ERROR_IMPORT_USER_MISMATCH_FMT = "Import data belongs to user {}, not {}"
ERROR_RULES_FILE_FMT = "Invalid badge rules file {}: {}"
ERROR_SINGLE_INSTANCE = "single_instance_allowed"
