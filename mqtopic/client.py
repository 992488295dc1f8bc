"""Async request client: validates topics and filters before queueing requests."""

import asyncio
from typing import Iterable, List, Optional, Set, Union

from .config import Config
from .errors import ClientClosed, InvalidFilter, InvalidTopic, RequestQueueFull
from .logger import Logger
from .prometheus_metrics import PrometheusMetrics
from .request import Publish, QoS, Subscribe, SubscribeFilter, Unsubscribe, qos as to_qos
from .topic import topic_error, valid_filter


FilterSpec = Union[str, SubscribeFilter]


class AsyncClient:
    """Client half of an MQTT connection.
    
    Requests are validated and put on a bounded queue which an event loop
    drains. A rejected request raises to its caller and leaves the client
    usable for the next one.
    """
    
    def __init__(self, capacity: Optional[int] = None, config: Optional[Config] = None,
                 metrics: Optional[PrometheusMetrics] = None):
        self.config = config or Config()
        self.capacity = capacity or self.config.get("client", "request_capacity", 10)
        self.requests: asyncio.Queue = asyncio.Queue(maxsize=self.capacity)
        self.logger = Logger("client", self.config.get("logging", "level"))
        self.metrics = metrics
        if self.metrics is None and self.config.get("monitoring", "prometheus_enabled"):
            self.metrics = PrometheusMetrics(port=self.config.get("monitoring", "prometheus_port", 9090))
            self.metrics.start()
        self.closed = False
        self._pending_puts: Set[asyncio.Task] = set()
    
    def _publish_request(self, topic: str, qos: Union[int, QoS], retain: bool,
                         payload: Union[bytes, str]) -> Publish:
        reason = topic_error(topic)
        if reason is not None:
            self.logger.debug("Publish rejected", topic=topic[:64], reason=reason.value)
            if self.metrics:
                self.metrics.record_topic_rejected(reason.value)
            raise InvalidTopic(topic, reason)
        
        if isinstance(payload, str):
            payload = payload.encode('utf-8')
        return Publish(topic, to_qos(qos), retain, bytes(payload))
    
    def _subscribe_request(self, filters: Iterable[FilterSpec]) -> Subscribe:
        subscribe_filters: List[SubscribeFilter] = [
            f if isinstance(f, SubscribeFilter) else SubscribeFilter(f) for f in filters
        ]
        if not subscribe_filters:
            raise InvalidFilter([], "Subscribe requires at least one filter")
        
        invalid = [f.path for f in subscribe_filters if not valid_filter(f.path)]
        if invalid:
            self.logger.debug("Subscribe rejected", filters=invalid)
            if self.metrics:
                self.metrics.record_filter_rejected(len(invalid))
            raise InvalidFilter(invalid)
        
        return Subscribe(subscribe_filters)
    
    def _unsubscribe_request(self, topic: str) -> Unsubscribe:
        if not valid_filter(topic):
            self.logger.debug("Unsubscribe rejected", filter=topic)
            if self.metrics:
                self.metrics.record_filter_rejected()
            raise InvalidFilter([topic])
        return Unsubscribe(topic)
    
    async def _send(self, request, kind: str):
        """Wait for a free slot and queue the request.
        
        A wait still pending when disconnect() runs is cancelled and the
        request is never queued.
        """
        if self.closed:
            raise ClientClosed("Client is disconnected")
        if not self.requests.full():
            self._try_send(request, kind)
            return
        
        put = asyncio.ensure_future(self.requests.put(request))
        self._pending_puts.add(put)
        try:
            await put
        except asyncio.CancelledError:
            if self.closed and put.cancelled():
                raise ClientClosed("Client disconnected while waiting for a free slot") from None
            raise
        finally:
            self._pending_puts.discard(put)
        self._record(kind)
    
    def _try_send(self, request, kind: str):
        """Queue the request without waiting."""
        if self.closed:
            raise ClientClosed("Client is disconnected")
        try:
            self.requests.put_nowait(request)
        except asyncio.QueueFull:
            raise RequestQueueFull(f"Request queue is full ({self.capacity})") from None
        self._record(kind)
    
    def _record(self, kind: str):
        if self.metrics:
            self.metrics.record_request(kind)
    
    async def publish(self, topic: str, qos: Union[int, QoS] = QoS.AT_MOST_ONCE,
                      retain: bool = False, payload: Union[bytes, str] = b"") -> Publish:
        """Validate the topic name and queue a publish.
        
        Raises: InvalidTopic with the rejection reason, nothing is queued
        """
        request = self._publish_request(topic, qos, retain, payload)
        await self._send(request, "publish")
        return request
    
    def try_publish(self, topic: str, qos: Union[int, QoS] = QoS.AT_MOST_ONCE,
                    retain: bool = False, payload: Union[bytes, str] = b"") -> Publish:
        """Like publish() but raises RequestQueueFull instead of waiting."""
        request = self._publish_request(topic, qos, retain, payload)
        self._try_send(request, "publish")
        return request
    
    async def subscribe(self, topic_filter: str, qos: Union[int, QoS] = QoS.AT_MOST_ONCE) -> Subscribe:
        """Validate the filter and queue a subscribe."""
        request = self._subscribe_request([SubscribeFilter(topic_filter, to_qos(qos))])
        await self._send(request, "subscribe")
        return request
    
    def try_subscribe(self, topic_filter: str, qos: Union[int, QoS] = QoS.AT_MOST_ONCE) -> Subscribe:
        """Like subscribe() but raises RequestQueueFull instead of waiting."""
        request = self._subscribe_request([SubscribeFilter(topic_filter, to_qos(qos))])
        self._try_send(request, "subscribe")
        return request
    
    async def subscribe_many(self, filters: Iterable[FilterSpec]) -> Subscribe:
        """Queue one subscribe for a batch of filters.
        
        Every filter is validated first; if any is invalid the whole batch
        fails with InvalidFilter and nothing is queued.
        """
        request = self._subscribe_request(filters)
        await self._send(request, "subscribe")
        return request
    
    def try_subscribe_many(self, filters: Iterable[FilterSpec]) -> Subscribe:
        """Like subscribe_many() but raises RequestQueueFull instead of waiting."""
        request = self._subscribe_request(filters)
        self._try_send(request, "subscribe")
        return request
    
    async def unsubscribe(self, topic: str) -> Unsubscribe:
        """Queue an unsubscribe for a previously subscribed filter."""
        request = self._unsubscribe_request(topic)
        await self._send(request, "unsubscribe")
        return request
    
    def try_unsubscribe(self, topic: str) -> Unsubscribe:
        """Like unsubscribe() but raises RequestQueueFull instead of waiting."""
        request = self._unsubscribe_request(topic)
        self._try_send(request, "unsubscribe")
        return request
    
    def disconnect(self):
        """Stop accepting requests. Already queued requests stay queued."""
        if not self.closed:
            self.closed = True
            for put in self._pending_puts:
                put.cancel()
            self.logger.info("Client disconnected", pending=self.requests.qsize())
