"""HTTP client for the mini client's NetworkCommand API."""

import requests
import logging
from typing import Any, Optional
from urllib.parse import urljoin
from pydantic import BaseModel, ConfigDict, Field

from .config import RelayConfig


class RelayError(Exception):
    """Base exception for relay failures."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RelayTransportError(RelayError):
    """The relay could not be reached (connection refused, timeout, DNS)."""


class RelayProtocolError(RelayError):
    """The relay answered with a non-2xx status."""


class ForwardBotRequest(BaseModel):
    """Envelope of a command forwarded to a bot."""

    model_config = ConfigDict(populate_by_name=True)

    bot_id: int = Field(..., alias="BotId", description="Target bot identity")
    command_type: str = Field(..., alias="CommandType", min_length=1, description="Command name")
    command_json: str = Field(..., alias="CommandJson", description="Command payload as a JSON string")


class RelayClient:
    """Client for forwarding commands to the running mini client."""

    FORWARD_ENDPOINT = "/api/NetworkCommand/forwardBotRequest"
    COMMANDS_ENDPOINT = "/api/NetworkCommand"

    def __init__(self, config: RelayConfig):
        self.config = config
        self.base_url = config.base_url
        self.session = requests.Session()
        self.logger = logging.getLogger(__name__)

        self.session.headers.update({
            'Accept': 'application/json',
            'Content-Type': 'application/json'
        })

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make a single HTTP request to the relay.

        Returns:
            The decoded JSON body, the raw text if the body is not JSON, or
            None for an empty body

        Raises:
            RelayTransportError: If the request could not be sent or timed out
            RelayProtocolError: If the relay answered with a non-2xx status
        """
        # Ensure endpoint doesn't start with / to avoid urljoin path replacement
        url = urljoin(self.base_url + '/', endpoint.lstrip('/'))
        self.logger.debug(f"Preparing {method} request to {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                timeout=self.config.request_timeout,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Relay request failed: {e}")
            raise RelayTransportError(f"Relay request failed: {e}")

        self.logger.debug(f"{method} {url} -> {response.status_code}")

        if not 200 <= response.status_code < 300:
            body = response.text
            raise RelayProtocolError(
                f"Relay returned HTTP {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )

        if response.status_code == 204 or not response.text:
            return None

        try:
            return response.json()
        except ValueError:
            return response.text

    def forward_bot_request(self, command_type: str, command_json: str, bot_id: Optional[int] = None) -> Any:
        """
        Forward a command to a bot.

        Args:
            command_type: Command name understood by the mini client
            command_json: Command payload, already serialized to JSON
            bot_id: Target bot (defaults to the configured bot)

        Returns:
            The relay's response body
        """
        envelope = ForwardBotRequest(
            bot_id=self.config.bot_id if bot_id is None else bot_id,
            command_type=command_type,
            command_json=command_json,
        )

        result = self._make_request(
            'POST',
            self.FORWARD_ENDPOINT,
            json=envelope.model_dump(by_alias=True)
        )

        self.logger.info(f"Forwarded command '{command_type}' to bot {envelope.bot_id}")
        return result

    def list_commands(self) -> Any:
        """Get the commands the mini client supports."""
        result = self._make_request('GET', self.COMMANDS_ENDPOINT)
        self.logger.info("Retrieved mini client command list")
        return result
