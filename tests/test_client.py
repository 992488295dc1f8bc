"""Tests for the async request client."""

import asyncio
import pytest
from unittest.mock import MagicMock
from mqtopic.client import AsyncClient
from mqtopic.config import Config
from mqtopic.errors import ClientClosed, ClientError, InvalidFilter, InvalidTopic, RequestQueueFull
from mqtopic.request import Publish, QoS, Subscribe, SubscribeFilter, Unsubscribe
from mqtopic.topic import MAX_TOPIC_LENGTH, TopicError


@pytest.fixture
def config(tmp_path):
    """Create a config backed by a missing file so defaults apply."""
    return Config(config_file=str(tmp_path / "missing.yaml"))


@pytest.fixture
def client(config):
    """Create a client with a small request queue."""
    return AsyncClient(capacity=2, config=config)


class TestPublish:
    """Tests for publish requests."""
    
    @pytest.mark.asyncio
    async def test_valid_publish_is_queued(self, client):
        """Test that a valid publish lands on the request queue."""
        await client.publish("hello/world", QoS.AT_LEAST_ONCE, False, b"payload")
        
        request = client.requests.get_nowait()
        assert request == Publish("hello/world", QoS.AT_LEAST_ONCE, False, b"payload")
    
    @pytest.mark.asyncio
    async def test_string_payload_is_encoded(self, client):
        """Test that str payloads are encoded as UTF-8."""
        request = await client.publish("a/b", 0, True, "café")
        assert request.payload == "café".encode('utf-8')
        assert request.qos is QoS.AT_MOST_ONCE
        assert request.retain is True
    
    @pytest.mark.asyncio
    @pytest.mark.parametrize("topic,reason", [
        ("", TopicError.EMPTY_TOPIC),
        ("\0", TopicError.CONTAINS_NULL),
        ("hello/+", TopicError.CONTAINS_WILDCARDS),
        ("hi/#", TopicError.CONTAINS_WILDCARDS),
        ("a" * (MAX_TOPIC_LENGTH + 1), TopicError.TOO_LONG),
        ("\ud800" + "a" * 20000, TopicError.INVALID_UTF8),
    ])
    async def test_invalid_topic_is_not_queued(self, client, topic, reason):
        """Test that invalid topics raise with their reason and queue nothing."""
        with pytest.raises(InvalidTopic) as exc_info:
            await client.publish(topic, QoS.AT_MOST_ONCE, False, b"")
        
        assert exc_info.value.reason is reason
        assert client.requests.empty()
    
    @pytest.mark.asyncio
    async def test_client_usable_after_rejection(self, client):
        """Test that a rejected publish does not stop later requests."""
        with pytest.raises(InvalidTopic):
            await client.publish("bad/#")
        
        await client.publish("good/topic")
        assert client.requests.qsize() == 1
    
    def test_invalid_qos_rejected(self, client):
        """Test that QoS outside 0..2 raises ValueError."""
        with pytest.raises(ValueError):
            client.try_publish("a/b", 3)
    
    def test_try_publish_full_queue(self, client):
        """Test that try_publish raises when the queue is full."""
        client.try_publish("a/1")
        client.try_publish("a/2")
        
        with pytest.raises(RequestQueueFull):
            client.try_publish("a/3")
        assert client.requests.qsize() == 2
    
    def test_invalid_topic_checked_before_queue_space(self, client):
        """Test that validation errors are reported even when the queue is full."""
        client.try_publish("a/1")
        client.try_publish("a/2")
        
        with pytest.raises(InvalidTopic):
            client.try_publish("a/+")


class TestSubscribe:
    """Tests for subscribe and unsubscribe requests."""
    
    @pytest.mark.asyncio
    async def test_valid_subscribe_is_queued(self, client):
        """Test that a valid filter is queued as a subscribe."""
        await client.subscribe("sensors/+/temperature", QoS.EXACTLY_ONCE)
        
        request = client.requests.get_nowait()
        assert request == Subscribe([SubscribeFilter("sensors/+/temperature", QoS.EXACTLY_ONCE)])
    
    @pytest.mark.asyncio
    async def test_invalid_subscribe_rejected(self, client):
        """Test that an invalid filter raises InvalidFilter."""
        with pytest.raises(InvalidFilter) as exc_info:
            await client.subscribe("wrong/#/filter")
        
        assert exc_info.value.filters == ["wrong/#/filter"]
        assert client.requests.empty()
    
    @pytest.mark.asyncio
    async def test_subscribe_many(self, client):
        """Test that a batch of valid filters is queued as one request."""
        request = await client.subscribe_many([
            SubscribeFilter("a/#", QoS.AT_LEAST_ONCE),
            "b/+/c",
        ])
        
        assert client.requests.qsize() == 1
        assert request.filters == [
            SubscribeFilter("a/#", QoS.AT_LEAST_ONCE),
            SubscribeFilter("b/+/c", QoS.AT_MOST_ONCE),
        ]
    
    @pytest.mark.asyncio
    async def test_subscribe_many_fails_whole_batch(self, client):
        """Test that one invalid filter fails the batch and queues nothing."""
        with pytest.raises(InvalidFilter) as exc_info:
            await client.subscribe_many(["good/#", "wron/+g", "also/good"])
        
        assert exc_info.value.filters == ["wron/+g"]
        assert client.requests.empty()
    
    def test_subscribe_many_empty_batch_rejected(self, client):
        """Test that an empty batch is rejected."""
        with pytest.raises(InvalidFilter):
            client.try_subscribe_many([])
    
    def test_try_subscribe_full_queue(self, client):
        """Test that try_subscribe raises when the queue is full."""
        client.try_subscribe("a")
        client.try_subscribe_many(["b", "c"])
        
        with pytest.raises(RequestQueueFull):
            client.try_subscribe("d")
    
    @pytest.mark.asyncio
    async def test_unsubscribe(self, client):
        """Test that unsubscribe validates the filter and queues the request."""
        await client.unsubscribe("a/+/c")
        assert client.requests.get_nowait() == Unsubscribe("a/+/c")
        
        with pytest.raises(InvalidFilter):
            client.try_unsubscribe("")


class TestClientLifecycle:
    """Tests for client configuration and disconnect."""
    
    def test_capacity_from_config(self, config):
        """Test that the queue size comes from configuration."""
        config.set("client", "request_capacity", 5)
        client = AsyncClient(config=config)
        
        assert client.capacity == 5
        assert client.requests.maxsize == 5
    
    @pytest.mark.asyncio
    async def test_disconnect_refuses_requests(self, client):
        """Test that a disconnected client refuses new requests."""
        client.disconnect()
        
        with pytest.raises(ClientClosed):
            await client.publish("a/b")
        with pytest.raises(ClientClosed):
            client.try_subscribe("a/#")
    
    @pytest.mark.asyncio
    async def test_disconnect_fails_waiting_publish(self, client):
        """Test that a publish blocked on a full queue fails when the client disconnects."""
        client.try_publish("a/1")
        client.try_publish("a/2")
        pending = asyncio.create_task(client.publish("a/3"))
        await asyncio.sleep(0.01)
        assert not pending.done()
        
        client.disconnect()
        client.requests.get_nowait()
        
        with pytest.raises(ClientClosed):
            await pending
        assert client.requests.qsize() == 1
        assert client.requests.get_nowait() == Publish("a/2", QoS.AT_MOST_ONCE, False, b"")
    
    @pytest.mark.asyncio
    async def test_disconnect_after_slot_freed_still_fails(self, client):
        """Test that a freed slot does not let a waiting subscribe through after disconnect."""
        client.try_publish("a/1")
        client.try_publish("a/2")
        pending = asyncio.create_task(client.subscribe("a/#"))
        await asyncio.sleep(0.01)
        
        client.requests.get_nowait()
        client.disconnect()
        
        with pytest.raises(ClientClosed):
            await pending
        assert client.requests.qsize() == 1
    
    @pytest.mark.asyncio
    async def test_waiting_publish_queued_when_slot_frees(self, client):
        """Test that a blocked publish completes once the event loop drains a slot."""
        client.try_publish("a/1")
        client.try_publish("a/2")
        pending = asyncio.create_task(client.publish("a/3"))
        await asyncio.sleep(0.01)
        
        client.requests.get_nowait()
        request = await pending
        
        assert request.topic == "a/3"
        assert client.requests.qsize() == 2
    
    def test_errors_share_base_class(self):
        """Test that all client errors derive from ClientError."""
        for error in (InvalidTopic, InvalidFilter, RequestQueueFull, ClientClosed):
            assert issubclass(error, ClientError)
    
    def test_metrics_recorded(self, config):
        """Test that accepted and rejected requests are recorded."""
        metrics = MagicMock()
        client = AsyncClient(capacity=4, config=config, metrics=metrics)
        
        client.try_publish("a/b")
        with pytest.raises(InvalidTopic):
            client.try_publish("")
        with pytest.raises(InvalidFilter):
            client.try_subscribe_many(["a/#/b", "c+"])
        
        metrics.record_request.assert_called_once_with("publish")
        metrics.record_topic_rejected.assert_called_once_with("EmptyTopic")
        metrics.record_filter_rejected.assert_called_once_with(2)
