"""Outgoing requests handed from the client to the event loop."""

from enum import Enum
from typing import List, Union


class QoS(Enum):
    """Delivery guarantee requested for a publish or subscription."""
    
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


def qos(value: Union[int, QoS]) -> QoS:
    """Convert an int to QoS. Raises ValueError outside 0..2."""
    if isinstance(value, QoS):
        return value
    try:
        return QoS(value)
    except ValueError:
        raise ValueError(f"Invalid QoS: {value}") from None


class Publish:
    """Publish a payload to a topic name."""
    
    def __init__(self, topic: str, qos: QoS, retain: bool, payload: bytes):
        self.topic = topic
        self.qos = qos
        self.retain = retain
        self.payload = payload
    
    def __eq__(self, other):
        if not isinstance(other, Publish):
            return NotImplemented
        return (self.topic, self.qos, self.retain, self.payload) == \
            (other.topic, other.qos, other.retain, other.payload)
    
    def __repr__(self):
        return (f"Publish(topic={self.topic!r}, qos={self.qos.name}, "
                f"retain={self.retain}, payload={len(self.payload)} bytes)")


class SubscribeFilter:
    """One topic filter of a subscribe request."""
    
    def __init__(self, path: str, qos: QoS = QoS.AT_MOST_ONCE):
        self.path = path
        self.qos = qos
    
    def __eq__(self, other):
        if not isinstance(other, SubscribeFilter):
            return NotImplemented
        return self.path == other.path and self.qos == other.qos
    
    def __repr__(self):
        return f"SubscribeFilter(path={self.path!r}, qos={self.qos.name})"


class Subscribe:
    """Subscribe to one or more topic filters."""
    
    def __init__(self, filters: List[SubscribeFilter]):
        self.filters = filters
    
    def __eq__(self, other):
        if not isinstance(other, Subscribe):
            return NotImplemented
        return self.filters == other.filters
    
    def __repr__(self):
        return f"Subscribe(filters={self.filters!r})"


class Unsubscribe:
    """Remove a subscription by its filter."""
    
    def __init__(self, topic: str):
        self.topic = topic
    
    def __eq__(self, other):
        if not isinstance(other, Unsubscribe):
            return NotImplemented
        return self.topic == other.topic
    
    def __repr__(self):
        return f"Unsubscribe(topic={self.topic!r})"
