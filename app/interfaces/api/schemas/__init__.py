from .auth import Token
from .notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)
from .preference import (
    NotificationSettingsRead,
    NotificationSettingsUpdate,
    PreferenceRead,
    PreferencesResponse,
    PreferenceUpdate,
)
from .push import (
    PushDeactivateAllResponse,
    PushSubscriptionCreate,
    PushSubscriptionKeys,
    PushSubscriptionRead,
    PushTestResponse,
    PushUnsubscribeRequest,
    VapidPublicKeyResponse,
)

__all__ = [
    "MarkAllReadResponse",
    "NotificationListResponse",
    "NotificationRead",
    "NotificationSettingsRead",
    "NotificationSettingsUpdate",
    "PreferenceRead",
    "PreferenceUpdate",
    "PreferencesResponse",
    "PushDeactivateAllResponse",
    "PushSubscriptionCreate",
    "PushSubscriptionKeys",
    "PushSubscriptionRead",
    "PushTestResponse",
    "PushUnsubscribeRequest",
    "Token",
    "UnreadCountResponse",
    "VapidPublicKeyResponse",
]
