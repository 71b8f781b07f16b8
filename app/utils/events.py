"""
Outbound audit/notification events over a Redis list

Consumers (audit writer, notification sender) live outside this service.
Publishing never raises: a failed side effect must not turn a recorded
attempt into a reported failure.
"""
import redis
import json
import logging
from typing import Optional, Any, Dict, Iterable
from app.config import settings
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)


class EventPublisher:
    """Redis-backed fire-and-forget event publisher"""

    def __init__(self, redis_url: str = None, queue_key: str = None):
        self.queue_key = queue_key or settings.EVENT_QUEUE_KEY
        redis_url = settings.REDIS_URL if redis_url is None else redis_url

        if not redis_url:
            logger.info("REDIS_URL not set. Event publishing disabled.")
            self.redis_client = None
            return

        try:
            self.redis_client = redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established for event publishing")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Event publishing disabled.")
            self.redis_client = None

    def publish(self, kind: str, payload: Dict[str, Any]) -> bool:
        """
        Push one event onto the queue

        Args:
            kind: "audit" or "notification"
            payload: JSON-serializable event body

        Returns:
            Success status
        """
        event = {
            "kind": kind,
            "emitted_at": utcnow().isoformat(),
            "payload": payload,
        }

        if not self.redis_client:
            logger.debug(f"Event dropped (publisher disabled): {kind} {payload}")
            return False

        try:
            self.redis_client.rpush(self.queue_key, json.dumps(event, default=str))
            logger.debug(f"Event published: {kind}")
            return True
        except Exception as e:
            logger.error(f"Event publish error ({kind}): {str(e)}")
            return False

    def audit(
        self,
        action: str,
        user_id: str,
        resource_type: str,
        resource_id: Any,
        details: Optional[Dict[str, Any]] = None,
        ip_address: str = "unknown",
        user_agent: str = "unknown"
    ) -> bool:
        """Emit an audit log event for a successful mutation"""
        return self.publish("audit", {
            "action": action,
            "user_id": user_id,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "details": details or {},
            "ip_address": ip_address,
            "user_agent": user_agent,
        })

    def notify(
        self,
        user_ids: Iterable[str],
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None
    ) -> int:
        """Emit one notification event per recipient; returns the number published"""
        published = 0
        for user_id in user_ids:
            if self.publish("notification", {
                "user_id": user_id,
                "type": type,
                "title": title,
                "message": message,
                "link": link,
            }):
                published += 1
        return published


# Global instance
event_publisher = EventPublisher()
