"""
Optional infrastructure shared by the API: Redis, the Kafka producer and
Prometheus counters. Each piece is enabled by its environment variable and
the API runs without it.
"""
import os
import asyncio
from prometheus_client import Counter, start_http_server
import logging

logger = logging.getLogger(__name__)

KAFKA_PRODUCER = None
REDIS = None

FRIEND_REQUEST_EVENTS = Counter(
    'connecthub_friend_request_events_total',
    'Friend request lifecycle events',
    ['action'],
)
CHAT_MESSAGES_SENT = Counter('connecthub_chat_messages_sent_total', 'Chat messages sent')
POSTS_CREATED = Counter('connecthub_posts_created_total', 'Posts created')

def init_metrics():
    """Start the Prometheus exporter when METRICS_PORT is set"""
    port = os.getenv('METRICS_PORT')
    if not port:
        logger.info("METRICS_PORT not set, metrics exporter disabled")
        return
    try:
        start_http_server(int(port))
        logger.info(f"Prometheus metrics server started on port {port}")
    except Exception as e:
        logger.warning(f'Prometheus start failed: {e}')

async def get_redis():
    return REDIS

async def get_kafka_producer():
    return KAFKA_PRODUCER

async def _connect_with_retries(name, connect, max_retries=3, retry_delay=3):
    """Run ``connect()`` until it returns a client; None once retries run out.

    ``connect`` releases whatever it opened before raising.
    """
    for attempt in range(1, max_retries + 1):
        try:
            logger.info(f"Connecting to {name} (attempt {attempt}/{max_retries})")
            client = await connect()
            logger.info(f"{name} connected successfully")
            return client
        except Exception as e:
            logger.warning(f'{name} startup attempt {attempt} failed: {e}')
            if attempt < max_retries:
                await asyncio.sleep(retry_delay)
    logger.error(f"Failed to connect to {name} after {max_retries} attempts")
    return None

async def kafka_startup():
    """Start the Kafka producer used for activity events"""
    global KAFKA_PRODUCER

    brokers = os.getenv('KAFKA_BOOTSTRAP_SERVERS')
    if not brokers:
        logger.info("KAFKA_BOOTSTRAP_SERVERS not set, activity events disabled")
        return

    from aiokafka import AIOKafkaProducer

    async def connect():
        producer = AIOKafkaProducer(
            bootstrap_servers=brokers,
            request_timeout_ms=30000,
            linger_ms=100,
            compression_type='gzip',
            acks='all',
        )
        try:
            await producer.start()
        except Exception:
            await producer.stop()
            raise
        return producer

    KAFKA_PRODUCER = await _connect_with_retries(
        f"Kafka {brokers}", connect, retry_delay=5
    )

async def redis_startup():
    """Connect the Redis client used for caching and rate limits"""
    global REDIS

    redis_url = os.getenv('REDIS_URL')
    if not redis_url:
        logger.info("REDIS_URL not set, cache and rate limits disabled")
        return

    from redis import asyncio as aioredis

    async def connect():
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            max_connections=20,
            health_check_interval=30,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        try:
            await client.ping()
        except Exception:
            await client.aclose()
            raise
        return client

    REDIS = await _connect_with_retries("Redis", connect)

async def shutdown_connections():
    """Gracefully shutdown all connections"""
    global KAFKA_PRODUCER, REDIS
    logger.info("Shutting down connections...")

    if KAFKA_PRODUCER:
        try:
            await KAFKA_PRODUCER.stop()
            logger.info("Kafka producer stopped")
        except Exception as e:
            logger.error(f"Error stopping Kafka producer: {e}")
        KAFKA_PRODUCER = None

    if REDIS:
        try:
            await REDIS.aclose()
            logger.info("Redis connection closed")
        except Exception as e:
            logger.error(f"Error closing Redis connection: {e}")
        REDIS = None
