"""Push channel configuration constants."""

from typing import Final


class ChannelConfig:
    """Configuration constants shared by the channel client and the server endpoint."""

    DISCONNECT_DRAIN_TIMEOUT: Final[float] = 2.0

    # Close codes (RFC 6455)
    CLOSE_NORMAL: Final[int] = 1000
    CLOSE_ABNORMAL: Final[int] = 1006
    CLOSE_POLICY_VIOLATION: Final[int] = 1008

    TOKEN_QUERY_PARAM: Final[str] = 'token'
    USER_TOPIC_PREFIX: Final[str] = 'user:'

    class MessageType:
        """Frame ``type`` discriminators."""

        # Server -> client application traffic
        NOTIFICATION: Final[str] = 'notification'
        MESSAGE: Final[str] = 'message'
        EXPO_UPDATE: Final[str] = 'expo_update'
        BOOTH_UPDATE: Final[str] = 'booth_update'
        SESSION_UPDATE: Final[str] = 'session_update'
        USER_UPDATE: Final[str] = 'user_update'

        # Connection management
        PING: Final[str] = 'ping'
        PONG: Final[str] = 'pong'
        SESSION_READY: Final[str] = 'session_ready'
        ERROR: Final[str] = 'error'

        # Subscription management
        SUBSCRIBE: Final[str] = 'subscribe'
        SUBSCRIBED: Final[str] = 'subscribed'
        UNSUBSCRIBE: Final[str] = 'unsubscribe'
        UNSUBSCRIBED: Final[str] = 'unsubscribed'

    APPLICATION_TYPES: Final[frozenset[str]] = frozenset(
        {
            MessageType.NOTIFICATION,
            MessageType.MESSAGE,
            MessageType.EXPO_UPDATE,
            MessageType.BOOTH_UPDATE,
            MessageType.SESSION_UPDATE,
            MessageType.USER_UPDATE,
        }
    )
    BOOKING_UPDATE_TYPES: Final[frozenset[str]] = frozenset(
        {MessageType.BOOTH_UPDATE, MessageType.SESSION_UPDATE}
    )
    CONTROL_ACK_TYPES: Final[frozenset[str]] = frozenset(
        {MessageType.PONG, MessageType.SESSION_READY, MessageType.SUBSCRIBED, MessageType.UNSUBSCRIBED}
    )


class ChannelErrorMessages:
    NOT_AUTHENTICATED: Final[str] = 'Not authenticated'
    INVALID_MESSAGE_FORMAT: Final[str] = 'Invalid message format'
    TOPICS_MUST_BE_LIST: Final[str] = 'Topics must be a list of strings'
    UNKNOWN_MESSAGE_TYPE: Final[str] = 'Unknown message type'
    RECONNECT_FAILED: Final[str] = 'Failed to reconnect after maximum attempts'
