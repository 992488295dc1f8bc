"""Prometheus metrics export for mqtopic."""

from prometheus_client import Counter, start_http_server


# Module-level metrics (singleton pattern to avoid duplicate registration)
_metrics_initialized = False
_topics_rejected = None
_filters_rejected = None
_requests = None
_match_evaluations = None


def _init_metrics():
    """Initialize metrics only once."""
    global _metrics_initialized, _topics_rejected, _filters_rejected
    global _requests, _match_evaluations
    
    if _metrics_initialized:
        return
    
    _topics_rejected = Counter('mqtopic_topics_rejected_total', 'Topic names rejected', ['reason'])
    _filters_rejected = Counter('mqtopic_filters_rejected_total', 'Topic filters rejected')
    _requests = Counter('mqtopic_requests_total', 'Requests accepted by the client', ['kind'])
    _match_evaluations = Counter('mqtopic_match_evaluations_total', 'Matcher evaluations', ['result'])
    
    _metrics_initialized = True


class PrometheusMetrics:
    """Prometheus metrics collector."""
    
    _server_started = False
    
    def __init__(self, port: int = 9090):
        self.port = port
        _init_metrics()
        
        self.topics_rejected = _topics_rejected
        self.filters_rejected = _filters_rejected
        self.requests = _requests
        self.match_evaluations = _match_evaluations
    
    def start(self):
        """Start Prometheus metrics server."""
        if not PrometheusMetrics._server_started:
            start_http_server(self.port)
            PrometheusMetrics._server_started = True
    
    def record_topic_rejected(self, reason: str):
        """Record a rejected topic name."""
        self.topics_rejected.labels(reason=reason).inc()
    
    def record_filter_rejected(self, count: int = 1):
        """Record rejected topic filters."""
        self.filters_rejected.inc(count)
    
    def record_request(self, kind: str):
        """Record a request handed to the request channel."""
        self.requests.labels(kind=kind).inc()
    
    def record_match(self, matched: bool):
        """Record a matcher evaluation."""
        self.match_evaluations.labels(result="match" if matched else "no_match").inc()
