# meetups/tests/unit/test_redis_client.py

import logging
from unittest.mock import AsyncMock, patch

import pytest
import redis

from meetups.infrastructure.redis_client import RedisClient


@pytest.fixture
def test_logger():
    logger = logging.getLogger('test_redis')
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def redis_client(test_logger):
    return RedisClient(host="localhost", port=6379, logger=test_logger)


async def test_redis_connect_and_publish(redis_client, caplog):
    caplog.set_level(logging.DEBUG)
    with patch('redis.asyncio.Redis', return_value=AsyncMock()) as mock_redis:
        mock_redis.return_value.ping.return_value = True
        await redis_client.connect()
        assert redis_client.connected
        assert f"Successfully connected to Redis at {redis_client.host}:{redis_client.port}" in caplog.text

        await redis_client.publish("meetups:chats:c1", "{}")
        redis_client.client.publish.assert_called_once_with("meetups:chats:c1", "{}")
        assert "Published message to channel meetups:chats:c1" in caplog.text


async def test_redis_connect_fail(redis_client, caplog):
    caplog.set_level(logging.ERROR)
    with patch('redis.asyncio.Redis', return_value=AsyncMock()) as mock_redis:
        mock_redis.return_value.ping.side_effect = redis.ConnectionError("Connection failed")
        with pytest.raises(redis.ConnectionError):
            await redis_client.connect()
        assert "Failed to connect to Redis: Connection failed" in caplog.text
        assert f"Redis host: {redis_client.host}, Redis port: {redis_client.port}" in caplog.text


async def test_redis_disconnect(redis_client, caplog):
    caplog.set_level(logging.INFO)
    client = AsyncMock()
    redis_client.client = client
    await redis_client.disconnect()
    client.aclose.assert_called_once()
    assert not redis_client.connected
    assert "Disconnected from Redis" in caplog.text


async def test_publish_requires_connection(redis_client):
    with pytest.raises(RuntimeError):
        await redis_client.publish("meetups:chats:c1", "{}")
