# clinic_dashboard/utils/config.py
"""
Simple configuration management for the Clinic Dashboard.
Keeps all settings in one place with environment variable support.
"""

import os
from typing import List, Dict, Any

# =============================================================================
# BACKEND API CONFIGURATION
# =============================================================================

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3000/api/v1")

# Request timeout in seconds
API_TIMEOUT = int(os.getenv("API_TIMEOUT", "30"))

# Cache lifetimes (seconds) for data fetched from the backend
SUBSCRIPTION_CACHE_TTL = int(os.getenv("SUBSCRIPTION_CACHE_TTL", "300"))  # 5 min
USAGE_CACHE_TTL = int(os.getenv("USAGE_CACHE_TTL", "60"))
STORAGE_CACHE_TTL = int(os.getenv("STORAGE_CACHE_TTL", "30"))
LIST_CACHE_TTL = int(os.getenv("LIST_CACHE_TTL", "60"))

# =============================================================================
# SUBSCRIPTION & USAGE THRESHOLDS
# =============================================================================

# Usage gauge colour bands (percent)
USAGE_YELLOW_THRESHOLD = 70
USAGE_RED_THRESHOLD = 90

# Usage card warning and "approaching limit" default
USAGE_WARNING_THRESHOLD = int(os.getenv("USAGE_WARNING_THRESHOLD", "80"))

# Storage overview bands
STORAGE_NEAR_LIMIT_THRESHOLD = 80
STORAGE_CRITICAL_THRESHOLD = 95

# Trial banner appears when this many days (or fewer) remain
TRIAL_WARNING_DAYS = int(os.getenv("TRIAL_WARNING_DAYS", "3"))

# Files above this size are flagged as large on the storage page
LARGE_FILE_THRESHOLD_BYTES = 10 * 1024 * 1024

# Largest attachment accepted by the upload form
MAX_ATTACHMENT_SIZE_MB = 25

# =============================================================================
# BUSINESS RULES CONFIGURATION
# =============================================================================

MIN_SESSION_DURATION_MINUTES = 15
MAX_SESSION_DURATION_MINUTES = 240
DEFAULT_SESSION_DURATION = 50
MAX_NOTE_SESSION_DURATION = 240

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2
TITLE_MIN_LENGTH = 3
NOTE_MIN_LENGTH = 10

DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "America/Mexico_City")
DEFAULT_LOCALE = os.getenv("DEFAULT_LOCALE", "es-MX")
DEFAULT_WORKING_HOURS_START = "09:00"
DEFAULT_WORKING_HOURS_END = "18:00"
DEFAULT_REMINDER_MINUTES = 60

WEEKDAYS = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]

# Pagination
DEFAULT_PAGE_SIZE = 20
PAGE_SIZE_OPTIONS = [10, 20, 50, 100]

# Appointment time slots, 08:00 - 20:00 every 30 minutes
TIME_SLOTS = [f"{h:02d}:{m:02d}" for h in range(8, 21) for m in (0, 30) if not (h == 20 and m == 30)]

# =============================================================================
# APPLICATION SETTINGS
# =============================================================================

# App metadata
APP_TITLE = os.getenv("APP_TITLE", "Psychology Clinic Dashboard")
APP_ICON = os.getenv("APP_ICON", "🧠")
SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "support@example.com")

# Debug and logging
DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG_MODE else "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
LOG_DIR = os.getenv("LOG_DIR", "logs")

# =============================================================================
# UI CONFIGURATION
# =============================================================================

# Streamlit page configuration
STREAMLIT_CONFIG = {
    "page_title": "Clinic Dashboard",
    "page_icon": APP_ICON,
    "layout": "wide",
    "initial_sidebar_state": "expanded",
}

ROLE_LABELS = {
    "TENANT_ADMIN": "Administrator",
    "PSYCHOLOGIST": "Psychologist",
    "ASSISTANT": "Assistant",
}

APPOINTMENT_STATUS_LABELS = {
    "SCHEDULED": "Scheduled",
    "CONFIRMED": "Confirmed",
    "CANCELLED": "Cancelled",
    "COMPLETED": "Completed",
    "NO_SHOW": "No show",
}

TASK_STATUS_LABELS = {
    "PENDING": "Pending",
    "IN_PROGRESS": "In progress",
    "COMPLETED": "Completed",
    "CANCELLED": "Cancelled",
}

TASK_PRIORITY_LABELS = {
    "LOW": "Low",
    "MEDIUM": "Medium",
    "HIGH": "High",
    "URGENT": "Urgent",
}

FILE_CATEGORY_LABELS = {
    "attachment": "Attachments",
    "avatar": "Avatars",
    "export": "Exports",
}

# Button and label text
LABELS = {
    "login": "🔐 Sign in",
    "logout": "🚪 Sign out",
    "new_patient": "➕ New Patient",
    "new_appointment": "📅 New Appointment",
    "new_task": "➕ New Task",
    "invite_user": "✉️ Invite User",
    "upload_file": "📎 Upload File",
    "upgrade_plan": "⬆️ Upgrade Plan",
    "update_payment": "💳 Update Payment",
    "contact_support": "📞 Contact Support",
    "reactivate": "🔄 Reactivate Subscription",
    "view_details": "🔎 View Details",
    "save": "💾 Save",
    "delete": "🗑️ Delete",
    "cancel_appointment": "❌ Cancel Appointment",
    "mark_all_read": "✅ Mark all as read",
}

# Success messages
SUCCESS_MESSAGES = {
    "logged_in": "✅ Welcome back!",
    "patient_created": "✅ Patient created successfully!",
    "patient_updated": "✅ Patient updated successfully!",
    "patient_deleted": "✅ Patient deleted successfully!",
    "appointment_created": "✅ Appointment created successfully!",
    "appointment_updated": "✅ Appointment updated successfully!",
    "appointment_cancelled": "✅ Appointment cancelled.",
    "note_created": "✅ Clinical note saved!",
    "note_updated": "✅ Clinical note updated!",
    "note_deleted": "✅ Clinical note deleted.",
    "session_plan_saved": "✅ Session plan saved!",
    "session_plan_deleted": "✅ Session plan deleted.",
    "task_created": "✅ Task created successfully!",
    "task_updated": "✅ Task updated successfully!",
    "task_completed": "✅ Task completed!",
    "task_deleted": "✅ Task deleted.",
    "user_invited": "✅ Invitation sent!",
    "user_updated": "✅ User updated successfully!",
    "user_deleted": "✅ User removed.",
    "user_activated": "✅ User activated.",
    "settings_saved": "✅ Settings saved!",
    "profile_updated": "✅ Profile updated!",
    "password_changed": "✅ Password changed successfully!",
    "password_reset_requested": "✅ If the email exists, a reset link has been sent.",
    "password_reset": "✅ Password reset. You can now sign in.",
    "subscription_upgraded": "✅ Subscription upgraded!",
    "subscription_downgraded": "✅ Downgrade scheduled.",
    "file_uploaded": "✅ File uploaded!",
    "file_deleted": "✅ File deleted.",
    "notifications_read": "✅ All notifications marked as read.",
    "tenant_created": "✅ Clinic created! Sign in to continue.",
}

# Error messages
ERROR_MESSAGES = {
    "missing_required_field": "⚠️ All fields are required!",
    "invalid_credentials": "⚠️ Invalid email or password.",
    "network_error": "❌ Network error. Please check your connection and try again.",
    "session_expired": "⚠️ Your session has expired. Please sign in again.",
    "no_tenant": "No tenant ID available. User must be authenticated.",
    "subscription_missing": "Subscription data is missing",
    "storage_limit": "⚠️ Storage limit reached",
    "read_only": "⚠️ Your subscription does not allow creating records right now.",
    "permission_denied": "⛔ You do not have permission to perform this action.",
    "load_failed": "❌ Failed to load data. Please try again.",
    "downgrade_acknowledgment": "⚠️ You must accept both acknowledgments to downgrade.",
}

# Info messages
INFO_MESSAGES = {
    "login_required": "🔐 Please sign in to continue.",
    "no_patients": "📝 No patients found.",
    "no_appointments": "📝 No appointments in this range.",
    "no_tasks": "📝 No tasks found.",
    "no_notes": "📝 No clinical notes yet.",
    "no_files": "📝 No files found.",
    "no_notifications": "🔔 You're all caught up.",
    "storage_unavailable": "ℹ️ Storage file management is not available yet.",
}

# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def get_streamlit_config() -> Dict[str, Any]:
    """Get Streamlit page configuration."""
    return STREAMLIT_CONFIG.copy()


def is_debug_mode() -> bool:
    """Check if debug mode is enabled."""
    return DEBUG_MODE


def get_time_slots() -> List[str]:
    """Get the list of bookable appointment time slots."""
    return TIME_SLOTS.copy()


def validate_environment() -> bool:
    """
    Validate that required environment settings are available.

    Returns:
        True if environment is valid, False otherwise
    """
    if not API_BASE_URL.startswith(("http://", "https://")):
        print(f"ERROR: API_BASE_URL must be an http(s) URL, got {API_BASE_URL!r}")
        return False

    if API_TIMEOUT <= 0:
        print("ERROR: API_TIMEOUT must be positive")
        return False

    if not 0 < USAGE_WARNING_THRESHOLD <= 100:
        print("ERROR: USAGE_WARNING_THRESHOLD must be between 1 and 100")
        return False

    if TRIAL_WARNING_DAYS < 0:
        print("ERROR: TRIAL_WARNING_DAYS cannot be negative")
        return False

    return True
