"""Errors surfaced to callers of the request client."""

from typing import List, Optional

from .topic import TopicError


class ClientError(Exception):
    """Base class for request client errors."""


class InvalidTopic(ClientError):
    """A publish was refused because its topic name is invalid."""
    
    def __init__(self, topic: str, reason: TopicError):
        self.topic = topic
        self.reason = reason
        super().__init__(f"Invalid topic {topic[:64]!r}: {reason.value}")


class InvalidFilter(ClientError):
    """A subscribe or unsubscribe was refused because of its filters."""
    
    def __init__(self, filters: List[str], message: Optional[str] = None):
        self.filters = filters
        super().__init__(message or f"Invalid filters: {filters!r}")


class RequestQueueFull(ClientError):
    """The request channel has no free slot."""


class ClientClosed(ClientError):
    """The client was disconnected and accepts no more requests."""
