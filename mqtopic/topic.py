"""MQTT topic name and topic filter validation and matching."""

from enum import Enum
from typing import Iterator, Optional


MAX_TOPIC_LENGTH = 65535

SINGLE_LEVEL_WILDCARD = "+"
MULTI_LEVEL_WILDCARD = "#"
LEVEL_SEPARATOR = "/"
SYSTEM_TOPIC_PREFIX = "$"


class TopicError(Enum):
    """Reasons a topic name is rejected."""
    
    EMPTY_TOPIC = "EmptyTopic"
    CONTAINS_NULL = "ContainsNull"
    CONTAINS_WILDCARDS = "ContainsWildcards"
    TOO_LONG = "TooLong"
    INVALID_UTF8 = "InvalidUtf8"


class InvalidTopicError(ValueError):
    """Raised by valid_topic() when a topic name is rejected."""
    
    def __init__(self, topic: str, reason: TopicError):
        self.topic = topic
        self.reason = reason
        super().__init__(f"Invalid topic: {reason.value}")


def has_wildcards(s: str) -> bool:
    """Check if a topic or topic filter contains '+' or '#'."""
    return SINGLE_LEVEL_WILDCARD in s or MULTI_LEVEL_WILDCARD in s


def _encoded_length(s: str) -> Optional[int]:
    """Return the UTF-8 byte length of s, or None if s holds lone surrogates."""
    try:
        return len(s.encode('utf-8'))
    except UnicodeEncodeError:
        return None


def topic_error(topic: str) -> Optional[TopicError]:
    """Return the reason a topic name is invalid, or None if it is valid.
    
    Checks run in a fixed order and the first failing one is reported:
    wildcards, emptiness, null character, encoded length, encodability.
    Lone surrogates are counted as three bytes each for the length check.
    """
    if SINGLE_LEVEL_WILDCARD in topic:
        return TopicError.CONTAINS_WILDCARDS
    
    if MULTI_LEVEL_WILDCARD in topic:
        return TopicError.CONTAINS_WILDCARDS
    
    if not topic:
        return TopicError.EMPTY_TOPIC
    
    if "\0" in topic:
        return TopicError.CONTAINS_NULL
    
    if len(topic) > MAX_TOPIC_LENGTH:
        return TopicError.TOO_LONG
    
    length = _encoded_length(topic)
    if length is None:
        if len(topic.encode('utf-8', 'surrogatepass')) > MAX_TOPIC_LENGTH:
            return TopicError.TOO_LONG
        return TopicError.INVALID_UTF8
    
    if length > MAX_TOPIC_LENGTH:
        return TopicError.TOO_LONG
    
    return None


def valid_topic(topic: str) -> None:
    """Validate a topic name for publishing.
    
    Raises: InvalidTopicError carrying the TopicError reason
    """
    reason = topic_error(topic)
    if reason is not None:
        raise InvalidTopicError(topic, reason)


def valid_filter(topic_filter: str) -> bool:
    """Check if a subscription filter is valid.
    
    '#' is only allowed as the whole last level, '+' only as a whole level.
    """
    if not topic_filter:
        return False
    
    *remaining, last = topic_filter.split(LEVEL_SEPARATOR)
    for level in remaining:
        # invalid: sport/tennis#/player, sport/#/ranking
        if MULTI_LEVEL_WILDCARD in level:
            return False
        
        # invalid: sport+/tennis
        if len(level) > 1 and SINGLE_LEVEL_WILDCARD in level:
            return False
    
    # invalid: sport/tennis#, sport/++
    if len(last) != 1 and has_wildcards(last):
        return False
    
    return True


def _levels(s: str) -> Iterator[str]:
    """Yield the '/' separated levels of s one at a time."""
    start = 0
    while True:
        end = s.find(LEVEL_SEPARATOR, start)
        if end == -1:
            yield s[start:]
            return
        yield s[start:end]
        start = end + 1


def matches(subject: str, pattern: str) -> bool:
    """Check if subject is covered by the pattern filter.
    
    subject may be a topic name or another filter, in which case the result
    tells whether pattern subsumes it. Neither argument is validated here:
    validate topics on publish and filters on subscribe.
    
    Topics starting with '$' never match, not even literally.
    """
    if subject.startswith(SYSTEM_TOPIC_PREFIX):
        return False
    
    subject_levels = _levels(subject)
    for pattern_level in _levels(pattern):
        if pattern_level == MULTI_LEVEL_WILDCARD:
            return True
        
        subject_level = next(subject_levels, None)
        if subject_level is None:
            return False
        if subject_level == MULTI_LEVEL_WILDCARD:
            return False
        if pattern_level == SINGLE_LEVEL_WILDCARD:
            continue
        if pattern_level != subject_level:
            return False
    
    # a/b/c/d is not covered by a/b/c
    return next(subject_levels, None) is None
