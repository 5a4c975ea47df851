"""
Notifications app services layer.

The dispatcher is async; call it with ``asgiref.sync.async_to_sync`` from
synchronous views.
"""

from .exceptions import (
    PushDispatchError,
    DependencyError,
    ConfigurationError,
    InvalidPushRequestError,
)

from .apns import (
    ApnsConfig,
    ApnsClient,
    PushResult,
    create_provider_token,
    build_payload,
)

from .token_store import (
    DeviceTokenStore,
    register_device_token,
    remove_device_token,
    remove_all_device_tokens,
)

from .dispatcher import (
    PushRequest,
    DeliveryReport,
    PushDispatcher,
    get_push_dispatcher,
)


__all__ = [
    # Exceptions
    'PushDispatchError',
    'DependencyError',
    'ConfigurationError',
    'InvalidPushRequestError',

    # APNs
    'ApnsConfig',
    'ApnsClient',
    'PushResult',
    'create_provider_token',
    'build_payload',

    # Token store
    'DeviceTokenStore',
    'register_device_token',
    'remove_device_token',
    'remove_all_device_tokens',

    # Dispatcher
    'PushRequest',
    'DeliveryReport',
    'PushDispatcher',
    'get_push_dispatcher',
]
