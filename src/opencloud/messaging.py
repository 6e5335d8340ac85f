"""Cross-server messaging: publish to experience topics."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from opencloud._internal import urls
from opencloud._internal.http_client import AsyncOpenCloudHTTPClient
from opencloud._internal.types import message_from_value, topic_from_value
from opencloud.types import Config

logger = logging.getLogger(__name__)


class MessagingService:
    """Publishes messages to live servers of one experience.

    Usage:
        async with MessagingService.create(Config(api_key, universe_id)) as messaging:
            await messaging.publish("announcements", {"text": "Server restart in 5 min"})
    """

    def __init__(self, config: Config, http: Optional[AsyncOpenCloudHTTPClient] = None) -> None:
        self.config = config
        self._http = http or AsyncOpenCloudHTTPClient.from_config(config)

    @property
    def universe_id(self) -> int:
        return self.config.universe_id

    @classmethod
    @asynccontextmanager
    async def create(cls, config: Config) -> AsyncIterator["MessagingService"]:
        """Create a service whose HTTP client is closed on exit."""
        service = cls(config)
        try:
            yield service
        finally:
            await service.aclose()

    async def publish(self, topic: str, message: object) -> None:
        """Publish a message to a topic.

        Non-string messages are JSON-encoded first. Requires the Publish
        permission for the API key.

        Args:
            topic: Topic name, up to 80 characters
            message: Message content; at most 1024 characters once encoded

        Raises:
            ValidationError: If topic or message is too long
            RequestError: If the API refuses the message
        """
        topic = topic_from_value(topic)
        if isinstance(message, str):
            payload = message
        else:
            payload = json.dumps(message, separators=(",", ":"))
        payload = message_from_value(payload)

        await self._http.request(
            "POST", urls.topic_path(self.universe_id, topic), body={"message": payload}
        )
        logger.debug(f"Published {len(payload)} characters to topic '{topic}'")

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MessagingService":
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.aclose()
