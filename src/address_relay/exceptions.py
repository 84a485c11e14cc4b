"""Exception types raised by the relay and the webhook ingestion path."""


class RelayError(Exception):
    """Base class for all address relay errors."""

    pass


class InputError(RelayError):
    """Raised when an inbound webhook call is missing its signature or body, or is malformed."""

    pass


class AuthenticationError(RelayError):
    """Raised when a webhook signature does not match the computed MAC."""

    pass


class TransportError(RelayError):
    """Raised when the pub/sub transport is unavailable or rejects a call."""

    pass


class TopicNotFoundError(TransportError):
    """Raised when the named topic cannot be resolved."""

    def __init__(self, topic: str):
        super().__init__(f"No topic found: {topic}")
        self.topic = topic


class SubscriptionNotFoundError(TransportError):
    """Raised when the named subscription cannot be resolved on its topic."""

    def __init__(self, subscription: str, topic: str):
        super().__init__(f"No subscription found: {subscription} (topic {topic})")
        self.subscription = subscription
        self.topic = topic


class ForwardError(RelayError):
    """Raised when a verified activity could not be forwarded downstream."""

    pass
