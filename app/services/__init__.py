"""Service layer exports."""
from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    hash_password,
    register_user,
    require_roles,
    require_staff,
    verify_password,
)
from .cleanup_service import CleanupError, CleanupSummary, perform_cleanup, run_cleanup
from .collaborators import Actor, ActorRole, SqlUserDirectory, UUIDGenerator, actor_from_user, utcnow
from .dependencies import (
    build_dispatcher,
    build_feedback_service,
    build_notification_store,
    get_actor,
    get_email_sender,
    get_feedback_service,
    get_notification_store,
    set_email_sender,
)
from .email_service import email_delivery_configured, send_email
from .errors import (
    DeliveryFailure,
    FeedbackServiceError,
    Forbidden,
    NotFound,
    StoreUnavailable,
    ThreadClosed,
    ValidationError,
)
from .feedback_service import FeedbackService, FeedbackStats, ThreadDetail, ThreadPage, ThreadSummary
from .notification_dispatcher import NotificationDispatcher, NotificationEvent, NotificationTemplate
from .notification_store import (
    InMemoryNotificationStore,
    NotificationDraft,
    NotificationStore,
    SqlNotificationStore,
)
from .thread_repository import ThreadFilters

__all__ = [
    "authenticate_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "hash_password",
    "register_user",
    "require_roles",
    "require_staff",
    "verify_password",
    "CleanupError",
    "CleanupSummary",
    "perform_cleanup",
    "run_cleanup",
    "Actor",
    "ActorRole",
    "SqlUserDirectory",
    "UUIDGenerator",
    "actor_from_user",
    "utcnow",
    "build_dispatcher",
    "build_feedback_service",
    "build_notification_store",
    "get_actor",
    "get_email_sender",
    "get_feedback_service",
    "get_notification_store",
    "set_email_sender",
    "email_delivery_configured",
    "send_email",
    "DeliveryFailure",
    "FeedbackServiceError",
    "Forbidden",
    "NotFound",
    "StoreUnavailable",
    "ThreadClosed",
    "ValidationError",
    "FeedbackService",
    "FeedbackStats",
    "ThreadDetail",
    "ThreadPage",
    "ThreadSummary",
    "NotificationDispatcher",
    "NotificationEvent",
    "NotificationTemplate",
    "InMemoryNotificationStore",
    "NotificationDraft",
    "NotificationStore",
    "SqlNotificationStore",
    "ThreadFilters",
]
