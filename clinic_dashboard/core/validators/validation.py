# clinic_dashboard/core/validators/validation.py
"""
Form validation rules for the Clinic Dashboard.

Every validator takes the form payload (as sent to the API, camelCase keys)
and returns ``(is_valid, errors)``.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from clinic_dashboard.core.subscription.models import TaskPriority, UserRole
from clinic_dashboard.utils.config import (
    MAX_NOTE_SESSION_DURATION,
    MAX_SESSION_DURATION_MINUTES,
    MIN_SESSION_DURATION_MINUTES,
    NAME_MIN_LENGTH,
    NOTE_MIN_LENGTH,
    PASSWORD_MIN_LENGTH,
    TITLE_MIN_LENGTH,
    WEEKDAYS,
)
from clinic_dashboard.utils.logging_config import get_logger

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")
TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# =============================================================================
# FIELD HELPERS
# =============================================================================


def _text(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    return str(value).strip() if value is not None else ""


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and bool(EMAIL_PATTERN.match(value.strip()))


def is_valid_url(value: Optional[str]) -> bool:
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _check_min_length(
    data: Dict[str, Any], key: str, minimum: int, message: str, errors: List[str]
) -> None:
    if len(_text(data, key)) < minimum:
        errors.append(message)


def _check_email(data: Dict[str, Any], key: str, errors: List[str]) -> None:
    if not is_valid_email(_text(data, key)):
        errors.append("Invalid email")


def _check_role(data: Dict[str, Any], errors: List[str]) -> None:
    role = data.get("role")
    role = role.value if isinstance(role, UserRole) else role
    if role not in {r.value for r in UserRole}:
        errors.append("Select a valid role")


def _finish(name: str, errors: List[str]) -> Tuple[bool, List[str]]:
    if errors:
        logger.warning(f"{name} validation failed: {errors}")
    else:
        logger.debug(f"{name} validation passed")
    return len(errors) == 0, errors


# =============================================================================
# AUTH
# =============================================================================


def validate_login(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate the login form.

    Args:
        data: Dict with email and password

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    _check_email(data, "email", errors)
    if not data.get("password"):
        errors.append("Password is required")
    return _finish("Login", errors)


def validate_forgot_password(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = []
    _check_email(data, "email", errors)
    return _finish("Forgot password", errors)


def validate_password_strength(password: Optional[str]) -> List[str]:
    """
    Check password strength rules.

    Returns:
        List of errors (empty when the password is strong enough)
    """
    password = password or ""
    errors = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")

    return errors


def _check_password_pair(data: Dict[str, Any], errors: List[str]) -> None:
    errors.extend(validate_password_strength(data.get("password")))
    if data.get("password") != data.get("confirmPassword"):
        errors.append("Passwords do not match")


def validate_reset_password(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = []
    _check_password_pair(data, errors)
    return _finish("Reset password", errors)


def validate_change_password(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate the change password form (current + new + confirmation)."""
    errors = []
    if not data.get("currentPassword"):
        errors.append("Current password is required")

    errors.extend(validate_password_strength(data.get("newPassword")))
    if data.get("newPassword") != data.get("confirmPassword"):
        errors.append("Passwords do not match")
    return _finish("Change password", errors)


# =============================================================================
# ONBOARDING & USERS
# =============================================================================


def validate_onboarding_tenant(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate the clinic step of onboarding.

    Args:
        data: Dict with clinicName, slug and contactEmail

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    _check_min_length(
        data, "clinicName", NAME_MIN_LENGTH, "Name must be at least 2 characters", errors
    )

    slug = _text(data, "slug")
    if len(slug) < NAME_MIN_LENGTH:
        errors.append("Slug must be at least 2 characters")
    elif not SLUG_PATTERN.match(slug):
        errors.append("Only lowercase letters, numbers and hyphens")

    _check_email(data, "contactEmail", errors)
    return _finish("Onboarding tenant", errors)


def _check_person_names(data: Dict[str, Any], errors: List[str]) -> None:
    _check_min_length(
        data, "firstName", NAME_MIN_LENGTH, "First name must be at least 2 characters", errors
    )
    _check_min_length(
        data, "lastName", NAME_MIN_LENGTH, "Last name must be at least 2 characters", errors
    )


def validate_onboarding_admin(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = []
    _check_person_names(data, errors)
    _check_email(data, "email", errors)
    _check_password_pair(data, errors)
    return _finish("Onboarding admin", errors)


def validate_user_invite(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate an invitation (also used for the onboarding invite step)."""
    errors = []
    _check_email(data, "email", errors)
    _check_person_names(data, errors)
    _check_role(data, errors)
    return _finish("User invite", errors)


def validate_profile(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = []
    _check_person_names(data, errors)
    return _finish("Profile", errors)


# =============================================================================
# CLINICAL RECORDS
# =============================================================================


def validate_patient(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate a patient form. Email is optional but must be valid when given.

    Args:
        data: Patient payload

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    _check_person_names(data, errors)

    email = _text(data, "email")
    if email and not is_valid_email(email):
        errors.append("Invalid email")

    date_of_birth = _text(data, "dateOfBirth")
    if date_of_birth:
        try:
            born = datetime.strptime(date_of_birth[:10], "%Y-%m-%d").date()
            if born > datetime.now().date():
                errors.append("Date of birth cannot be in the future")
        except ValueError:
            errors.append("Invalid date of birth")

    return _finish("Patient", errors)


def validate_appointment(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate an appointment form.

    Args:
        data: Dict with patientId, psychologistId, title, startTime, duration,
            isOnline and optional meetingUrl

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if not _text(data, "patientId"):
        errors.append("Select a patient")
    if not _text(data, "psychologistId"):
        errors.append("Select a psychologist")

    _check_min_length(
        data, "title", TITLE_MIN_LENGTH, "Title must be at least 3 characters", errors
    )

    if not _text(data, "startTime"):
        errors.append("Select a start date and time")

    try:
        duration = int(data.get("duration"))
        if duration < MIN_SESSION_DURATION_MINUTES:
            errors.append(f"Minimum duration is {MIN_SESSION_DURATION_MINUTES} minutes")
        elif duration > MAX_SESSION_DURATION_MINUTES:
            errors.append(f"Maximum duration is {MAX_SESSION_DURATION_MINUTES} minutes")
    except (TypeError, ValueError):
        errors.append("Duration must be a number of minutes")

    meeting_url = _text(data, "meetingUrl")
    if meeting_url and not is_valid_url(meeting_url):
        errors.append("Invalid URL")

    return _finish("Appointment", errors)


def validate_clinical_note(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    errors = []

    if not _text(data, "patientId"):
        errors.append("Patient ID is required")

    _check_min_length(
        data, "content", NOTE_MIN_LENGTH, "Content must be at least 10 characters", errors
    )

    duration = data.get("sessionDuration")
    if duration not in (None, ""):
        try:
            if not 1 <= int(duration) <= MAX_NOTE_SESSION_DURATION:
                errors.append(
                    f"Session duration must be between 1 and {MAX_NOTE_SESSION_DURATION} minutes"
                )
        except (TypeError, ValueError):
            errors.append("Session duration must be a number of minutes")

    return _finish("Clinical note", errors)


def validate_task(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Validate a task form. Priority defaults to MEDIUM when missing."""
    errors = []

    _check_min_length(
        data, "title", TITLE_MIN_LENGTH, "Title must be at least 3 characters", errors
    )
    if not _text(data, "assignedToId"):
        errors.append("Assign the task to a user")
    if not _text(data, "patientId"):
        errors.append("Select a patient")

    priority = data.get("priority") or TaskPriority.MEDIUM.value
    if priority not in {p.value for p in TaskPriority}:
        errors.append("Select a valid priority")

    return _finish("Task", errors)


# =============================================================================
# TENANT SETTINGS
# =============================================================================


def validate_tenant_settings(settings: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate tenant settings in the shape produced by normalize_tenant_settings().

    Enabled days need HH:MM times with the start before the end.
    """
    errors = []

    try:
        duration = int(settings.get("default_session_duration"))
        if not MIN_SESSION_DURATION_MINUTES <= duration <= MAX_SESSION_DURATION_MINUTES:
            errors.append(
                f"Session duration must be between {MIN_SESSION_DURATION_MINUTES} "
                f"and {MAX_SESSION_DURATION_MINUTES} minutes"
            )
    except (TypeError, ValueError):
        errors.append("Session duration must be a number of minutes")

    if not settings.get("timezone"):
        errors.append("Timezone is required")
    if not settings.get("locale"):
        errors.append("Locale is required")

    working_hours = settings.get("working_hours") or {}
    for day in WEEKDAYS:
        schedule = working_hours.get(day) or {}
        if not schedule.get("enabled"):
            continue

        start = schedule.get("start_time") or ""
        end = schedule.get("end_time") or ""
        if not (TIME_PATTERN.match(start) and TIME_PATTERN.match(end)):
            errors.append(f"{day.title()}: times must use HH:MM format")
        elif start >= end:
            errors.append(f"{day.title()}: start time must be before end time")

    for rule in settings.get("reminder_rules") or []:
        if int(rule.get("minutes_before") or 0) <= 0:
            errors.append("Reminder offsets must be positive")
            break

    return _finish("Tenant settings", errors)
