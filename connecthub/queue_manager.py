"""
Activity event publishing
Events go to Kafka when a producer is running; otherwise they are only logged.
Publishing is fire-and-forget: failures are logged, never raised to the caller.
"""
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4
from . import core
import logging

logger = logging.getLogger(__name__)

class QueueType(Enum):
    FRIEND_REQUESTS = "friend_requests"
    MESSAGES = "messages"
    USER_ACTIVITY = "user_activity"

class QueueManager:

    def __init__(self):
        self.kafka_topics = {
            QueueType.FRIEND_REQUESTS: "friend-requests-queue",
            QueueType.MESSAGES: "messages-queue",
            QueueType.USER_ACTIVITY: "user-activity-queue",
        }

    async def enqueue(
        self,
        queue_type: QueueType,
        data: Dict[str, Any],
        user_id: Optional[int] = None
    ) -> str:
        """Publish a job and return its id"""
        job_id = f"{queue_type.value}_{uuid4().hex}"
        job_data = {
            "id": job_id,
            "type": queue_type.value,
            "data": data,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
        }

        kafka_producer = await core.get_kafka_producer()
        if not kafka_producer:
            logger.debug(f"Kafka unavailable, dropping job {job_id}")
            return job_id

        try:
            # Partition by user_id so one user's events stay ordered
            await kafka_producer.send(
                self.kafka_topics[queue_type],
                value=json.dumps(job_data, default=str).encode('utf-8'),
                key=str(user_id or 0).encode(),
            )
            logger.info(f"Job {job_id} enqueued to {queue_type.value}")
        except Exception as e:
            logger.error(f"Failed to enqueue job {job_id}: {str(e)}")
        return job_id

queue_manager = QueueManager()

async def enqueue_friend_request(from_user: int, to_user: int, action: str):
    return await queue_manager.enqueue(
        QueueType.FRIEND_REQUESTS,
        {"from_user": from_user, "to_user": to_user, "action": action},
        user_id=from_user,
    )

async def enqueue_message(sender_id: int, chat_id: int, message_id: int):
    return await queue_manager.enqueue(
        QueueType.MESSAGES,
        {"sender_id": sender_id, "chat_id": chat_id, "message_id": message_id},
        user_id=sender_id,
    )

async def enqueue_user_activity(user_id: int, activity: str, details: Dict[str, Any]):
    return await queue_manager.enqueue(
        QueueType.USER_ACTIVITY,
        {"activity": activity, "details": details},
        user_id=user_id,
    )
