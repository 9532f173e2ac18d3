# clinic_dashboard/core/subscription/models.py
"""
Domain enums and subscription records for the Clinic Dashboard.

Subscription, plan and usage records are typed so the gating rules can rely on
attribute access. Every other backend record (patients, appointments, tasks,
notes, ...) is handled as the plain dict the API returns.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class UserRole(str, Enum):
    TENANT_ADMIN = "TENANT_ADMIN"
    PSYCHOLOGIST = "PSYCHOLOGIST"
    ASSISTANT = "ASSISTANT"


class PlanTier(str, Enum):
    TRIAL = "TRIAL"
    BASIC = "BASIC"
    PROFESSIONAL = "PROFESSIONAL"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    TRIAL = "TRIAL"
    ACTIVE = "ACTIVE"
    PAST_DUE = "PAST_DUE"
    SUSPENDED = "SUSPENDED"
    CANCELED = "CANCELED"
    ARCHIVED = "ARCHIVED"
    DELETED = "DELETED"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class TaskStatus(str, Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(str, Enum):
    APPOINTMENT_REMINDER = "APPOINTMENT_REMINDER"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_DUE = "TASK_DUE"
    USER_INVITED = "USER_INVITED"
    SUBSCRIPTION_UPDATED = "SUBSCRIPTION_UPDATED"
    SYSTEM = "SYSTEM"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    NON_BINARY = "NON_BINARY"
    PREFER_NOT_TO_SAY = "PREFER_NOT_TO_SAY"


class FileCategory(str, Enum):
    ATTACHMENT = "attachment"
    AVATAR = "avatar"
    EXPORT = "export"


# =============================================================================
# PLAN RECORDS
# =============================================================================


@dataclass
class ResourceLimits:
    """
    Numeric caps attached to a plan.

    Attributes:
        max_psychologists: Billable psychologist seats
        max_assistants: Assistant seats (None = unlimited)
        max_patients: Active patients allowed
        storage_gb: Storage quota in GB
        max_api_requests_per_hour: None = unlimited
    """

    max_psychologists: int = 1
    max_assistants: Optional[int] = None
    max_patients: int = 10
    storage_gb: float = 0.0
    max_emails_per_month: int = 0
    max_push_per_month: int = 0
    max_sms_per_month: int = 0
    max_api_requests_per_hour: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceLimits":
        return cls(
            max_psychologists=data.get("maxPsychologists", 1),
            max_assistants=data.get("maxAssistants"),
            max_patients=data.get("maxPatients", 10),
            storage_gb=data.get("storageGB", 0),
            max_emails_per_month=data.get("maxEmailsPerMonth", 0),
            max_push_per_month=data.get("maxPushPerMonth", 0),
            max_sms_per_month=data.get("maxSmsPerMonth", 0),
            max_api_requests_per_hour=data.get("maxApiRequestsPerHour"),
        )


@dataclass
class FeatureFlags:
    """Feature switches of a plan. Defaults describe the entry-level plan."""

    # Core
    dashboard: bool = True
    calendar: bool = True
    appointments: bool = True
    patients: bool = True

    # Clinical
    clinical_notes: bool = False
    tasks: bool = False
    attachments: bool = False
    session_plans: bool = False

    # Notifications
    in_app_notifications: bool = True
    email_notifications: bool = True
    web_push: bool = False
    sms_notifications: bool = False

    # Analytics
    basic_stats: bool = True
    advanced_analytics: bool = False
    custom_reports: bool = False
    data_export: bool = False

    # Integrations
    google_calendar_sync: bool = False
    video_integration: bool = False
    api_access: str = "none"  # "none" | "read" | "full"
    webhooks: bool = False

    # Security
    mfa: bool = False
    sso: bool = False
    audit_logs: bool = False
    custom_branding: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeatureFlags":
        flags = cls()
        for name, camel in FEATURE_FLAG_KEYS.items():
            if camel in data:
                setattr(flags, name, data[camel])
        return flags


# Attribute name -> backend (camelCase) key
FEATURE_FLAG_KEYS = {
    "dashboard": "dashboard",
    "calendar": "calendar",
    "appointments": "appointments",
    "patients": "patients",
    "clinical_notes": "clinicalNotes",
    "tasks": "tasks",
    "attachments": "attachments",
    "session_plans": "sessionPlans",
    "in_app_notifications": "inAppNotifications",
    "email_notifications": "emailNotifications",
    "web_push": "webPush",
    "sms_notifications": "smsNotifications",
    "basic_stats": "basicStats",
    "advanced_analytics": "advancedAnalytics",
    "custom_reports": "customReports",
    "data_export": "dataExport",
    "google_calendar_sync": "googleCalendarSync",
    "video_integration": "videoIntegration",
    "api_access": "apiAccess",
    "webhooks": "webhooks",
    "mfa": "mfa",
    "sso": "sso",
    "audit_logs": "auditLogs",
    "custom_branding": "customBranding",
}


@dataclass
class Plan:
    """
    A billing plan. Prices are integer cents.
    """

    id: str
    plan_type: PlanTier
    name: str
    description: str = ""
    base_price: int = 0
    currency: str = "EUR"
    billing_interval: str = "MONTHLY"
    limits: ResourceLimits = field(default_factory=ResourceLimits)
    features: FeatureFlags = field(default_factory=FeatureFlags)
    price_per_seat_monthly: int = 0
    price_per_seat_yearly: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Plan":
        plan_type = PlanTier(data.get("planType", PlanTier.TRIAL.value))
        return cls(
            id=data.get("id", f"plan-{plan_type.value.lower()}"),
            plan_type=plan_type,
            name=data.get("name", plan_type.value),
            description=data.get("description", ""),
            base_price=data.get("basePrice", 0),
            currency=data.get("currency", "EUR"),
            billing_interval=data.get("billingInterval", "MONTHLY"),
            limits=ResourceLimits.from_dict(data.get("limits") or {}),
            features=FeatureFlags.from_dict(data.get("features") or {}),
            price_per_seat_monthly=data.get("pricePerSeatMonthly", 0),
            price_per_seat_yearly=data.get("pricePerSeatYearly", 0),
        )


@dataclass
class Subscription:
    """A tenant's subscription. Dates are ISO-8601 strings as sent by the API."""

    id: str
    tenant_id: str
    plan: Plan
    status: SubscriptionStatus
    current_period_start: str
    current_period_end: str
    trial_ends_at: Optional[str] = None
    canceled_at: Optional[str] = None
    cancel_at_period_end: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def tier(self) -> PlanTier:
        return self.plan.plan_type

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Subscription":
        """Build from the dashboard (camelCase, nested plan) shape."""
        return cls(
            id=data.get("id", ""),
            tenant_id=data.get("tenantId", ""),
            plan=Plan.from_dict(data["plan"]),
            status=SubscriptionStatus(data.get("status", SubscriptionStatus.ACTIVE.value)),
            current_period_start=data.get("currentPeriodStart", ""),
            current_period_end=data.get("currentPeriodEnd", ""),
            trial_ends_at=data.get("trialEndsAt"),
            canceled_at=data.get("canceledAt"),
            cancel_at_period_end=bool(data.get("cancelAtPeriodEnd", False)),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


# =============================================================================
# USAGE RECORDS
# =============================================================================


@dataclass
class SeatUsage:
    total: int = 0
    active: int = 0
    inactive: int = 0
    limit: Optional[int] = 0
    percent_used: float = 0.0


@dataclass
class PatientUsage:
    total: int = 0
    active: int = 0
    archived: int = 0
    limit: int = 0
    percent_used: float = 0.0


@dataclass
class StorageUsage:
    used_gb: float = 0.0
    limit_gb: float = 0.0
    percent_used: float = 0.0
    attachments_gb: float = 0.0
    avatars_gb: float = 0.0
    exports_gb: float = 0.0


@dataclass
class CounterUsage:
    sent: int = 0
    limit: int = 0
    percent_used: float = 0.0


@dataclass
class AppointmentActivity:
    total: int = 0
    completed: int = 0
    upcoming: int = 0
    canceled: int = 0


@dataclass
class UsageMetrics:
    """
    Current consumption of a tenant against its plan limits.

    Attributes:
        psychologists: Billable seats; ``active`` is the billed count
        assistants: Assistant seats; ``limit`` None means unlimited
        storage: Usage in GB with a per-category breakdown
    """

    tenant_id: str
    period_start: str
    period_end: str
    admins: SeatUsage = field(default_factory=SeatUsage)
    psychologists: SeatUsage = field(default_factory=SeatUsage)
    assistants: SeatUsage = field(default_factory=lambda: SeatUsage(limit=None))
    patients: PatientUsage = field(default_factory=PatientUsage)
    storage: StorageUsage = field(default_factory=StorageUsage)
    email: CounterUsage = field(default_factory=CounterUsage)
    push: CounterUsage = field(default_factory=CounterUsage)
    sms: CounterUsage = field(default_factory=CounterUsage)
    appointments: AppointmentActivity = field(default_factory=AppointmentActivity)
    api_requests: int = 0
    api_limit: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageMetrics":
        """Build from the dashboard (camelCase) usage shape."""
        users = data.get("users", {})
        psychologists = users.get("psychologists", {})
        assistants = users.get("assistants", {})
        admins = users.get("admins", {})
        patients = data.get("patients", {})
        storage = data.get("storage", {})
        breakdown = storage.get("breakdown", {})
        notifications = data.get("notifications", {})
        appointments = data.get("appointments", {})
        api = data.get("api", {})
        period = data.get("period", {})

        def counter(raw: Dict[str, Any]) -> CounterUsage:
            return CounterUsage(
                sent=raw.get("sent", 0),
                limit=raw.get("limit", 0),
                percent_used=raw.get("percentUsed", 0),
            )

        return cls(
            tenant_id=data.get("tenantId", ""),
            period_start=period.get("start", ""),
            period_end=period.get("end", ""),
            admins=SeatUsage(
                total=admins.get("total", 0), active=admins.get("active", 0), limit=None
            ),
            psychologists=SeatUsage(
                total=psychologists.get("total", 0),
                active=psychologists.get("active", 0),
                inactive=psychologists.get("inactive", 0),
                limit=psychologists.get("limit", 0),
                percent_used=psychologists.get("percentUsed", 0),
            ),
            assistants=SeatUsage(
                total=assistants.get("total", 0),
                active=assistants.get("active", 0),
                limit=assistants.get("limit"),
            ),
            patients=PatientUsage(
                total=patients.get("total", 0),
                active=patients.get("active", 0),
                archived=patients.get("archived", 0),
                limit=patients.get("limit", 0),
                percent_used=patients.get("percentUsed", 0),
            ),
            storage=StorageUsage(
                used_gb=storage.get("usedGB", 0),
                limit_gb=storage.get("limitGB", 0),
                percent_used=storage.get("percentUsed", 0),
                attachments_gb=breakdown.get("attachments", 0),
                avatars_gb=breakdown.get("avatars", 0),
                exports_gb=breakdown.get("exports", 0),
            ),
            email=counter(notifications.get("email", {})),
            push=counter(notifications.get("push", {})),
            sms=counter(notifications.get("sms", {})),
            appointments=AppointmentActivity(
                total=appointments.get("total", 0),
                completed=appointments.get("completed", 0),
                upcoming=appointments.get("upcoming", 0),
                canceled=appointments.get("canceled", 0),
            ),
            api_requests=api.get("requests", 0),
            api_limit=api.get("limit"),
        )
