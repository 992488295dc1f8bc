"""FastAPI REST API exposing topic validation and matching."""

from fastapi import FastAPI
from pydantic import BaseModel
from typing import Optional, List

from .logger import Logger
from .prometheus_metrics import PrometheusMetrics
from .topic import has_wildcards, matches, topic_error, valid_filter


app = FastAPI(title="mqtopic API", version="1.0.0")
logger = Logger("api")
metrics_instance: Optional[PrometheusMetrics] = None


class TopicRequest(BaseModel):
    topic: str


class FilterRequest(BaseModel):
    filter: str


class FilterBatchRequest(BaseModel):
    filters: List[str]


class WildcardRequest(BaseModel):
    value: str


class MatchRequest(BaseModel):
    subject: str
    pattern: str


def _echo(value: str) -> str:
    """Make a request string safe to return in a UTF-8 JSON response."""
    return value.encode('utf-8', 'backslashreplace').decode('utf-8')


def set_metrics(metrics: Optional[PrometheusMetrics]):
    """Set the metrics collector for the API."""
    global metrics_instance
    metrics_instance = metrics


def set_logger(api_logger: Logger):
    """Replace the API logger, e.g. to apply the configured level."""
    global logger
    logger = api_logger


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/api/topics/validate")
async def validate_topic(request: TopicRequest):
    """Validate a topic name and report why it was rejected."""
    reason = topic_error(request.topic)
    if reason is not None:
        logger.debug("Topic rejected", topic=request.topic[:64], reason=reason.value)
        if metrics_instance:
            metrics_instance.record_topic_rejected(reason.value)
    return {
        "topic": _echo(request.topic),
        "valid": reason is None,
        "reason": reason.value if reason else None
    }


@app.post("/api/filters/validate")
async def validate_filter(request: FilterRequest):
    """Validate a topic filter."""
    valid = valid_filter(request.filter)
    if not valid:
        logger.debug("Filter rejected", filter=request.filter[:64])
        if metrics_instance:
            metrics_instance.record_filter_rejected()
    return {"filter": _echo(request.filter), "valid": valid}


@app.post("/api/filters/validate_batch")
async def validate_filter_batch(request: FilterBatchRequest):
    """Validate a batch of filters. The batch is valid only if every filter is."""
    if not request.filters:
        return {"valid": False, "invalid": []}

    invalid = [f for f in request.filters if not valid_filter(f)]
    if invalid:
        logger.debug("Filters rejected", filters=[f[:64] for f in invalid])
        if metrics_instance:
            metrics_instance.record_filter_rejected(len(invalid))
    return {"valid": not invalid, "invalid": [_echo(f) for f in invalid]}


@app.post("/api/wildcards")
async def detect_wildcards(request: WildcardRequest):
    """Report whether a value contains wildcard characters."""
    return {"value": _echo(request.value), "has_wildcards": has_wildcards(request.value)}


@app.post("/api/match")
async def match(request: MatchRequest):
    """Check whether subject is covered by pattern. Inputs are not validated."""
    result = matches(request.subject, request.pattern)
    if metrics_instance:
        metrics_instance.record_match(result)
    return {"subject": _echo(request.subject), "pattern": _echo(request.pattern), "matches": result}
