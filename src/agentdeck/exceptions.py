"""
Exception types for Agent Deck.

Nothing in the monitoring core is fatal: these are raised at the edges
(notification delivery, host adapters) and caught by the coordinator.
"""


class AgentDeckError(Exception):
    """Base class for Agent Deck errors."""


class NotificationDeliveryError(AgentDeckError):
    """A notification backend failed to deliver a message."""
