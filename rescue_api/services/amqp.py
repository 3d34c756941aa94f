# SPDX-License-Identifier: Apache-2.0

"""
Rescuer broadcast over AMQP.

Accepted incidents are published to a durable topic exchange so rescuer
consoles can bind queues by status and direction, e.g. ``incident.pending.*``
or ``incident.*.NE``. Every publish opens its own blocking connection; a
failed attempt is retried with exponential backoff and the final outcome is
reported as a ``PublishResult`` instead of an exception.
"""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional

import pika
from pika.adapters.blocking_connection import BlockingChannel
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from opentelemetry.propagate import inject

from ..models.entities import Incident
from ..models.enums import CompassDirection, IncidentStatus
from .errors import PublishError


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MESSAGE_SOURCE = "sos-rescue"
MESSAGE_VERSION = "1.0"


@dataclass
class AMQPConfig:
    """Broker location and publish tuning."""
    url: str
    exchange: str = "incidents"
    connection_timeout: int = 30
    heartbeat: int = 600
    blocked_connection_timeout: int = 300
    retry_delay: float = 1.0
    max_retries: int = 3


@dataclass
class PublishResult:
    """Outcome of broadcasting one incident."""
    success: bool
    correlation_id: str
    routing_key: str
    attempts: int
    error: Optional[str] = None


class AMQPConnectionError(PublishError):
    """Broker could not be reached."""
    pass


def routing_key_for(incident: Incident) -> str:
    status = IncidentStatus(incident.status).value
    direction = CompassDirection(incident.direction).value
    return f"incident.{status}.{direction}"


def backoff_delays(retry_delay: float, max_retries: int) -> Iterator[float]:
    """Sleep before each retry: retry_delay, 2x, 4x, ..."""
    for retry in range(max_retries):
        yield retry_delay * (2 ** retry)


class AMQPService:
    """Publishes incidents to the rescuer exchange."""

    def __init__(self, config: AMQPConfig, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self._sleep = sleep

        params = pika.URLParameters(config.url)
        params.socket_timeout = config.connection_timeout
        params.heartbeat = config.heartbeat
        params.blocked_connection_timeout = config.blocked_connection_timeout
        self._connection_params = params

    @contextmanager
    def _channel(self) -> Iterator[BlockingChannel]:
        """Each operation opens and closes its own connection and channel."""
        try:
            connection = pika.BlockingConnection(self._connection_params)
        except pika.exceptions.AMQPConnectionError as e:
            raise AMQPConnectionError(
                f"Cannot reach broker at {self._connection_params.host}:{self._connection_params.port}: {e}"
            ) from e

        try:
            channel = connection.channel()
            try:
                yield channel
            finally:
                if not channel.is_closed:
                    channel.close()
        finally:
            if not connection.is_closed:
                connection.close()

    def _declare_exchange(self, channel: BlockingChannel) -> None:
        # Idempotent; a fresh broker gets the exchange on first use
        channel.exchange_declare(
            exchange=self.config.exchange,
            exchange_type='topic',
            durable=True,
            auto_delete=False
        )

    def setup_exchange(self) -> bool:
        """Declare the durable topic exchange; False if the broker refused."""
        try:
            with self._channel() as channel:
                self._declare_exchange(channel)
        except Exception as e:
            logger.error(
                "Failed to declare AMQP exchange",
                extra={"extra_fields": {"exchange": self.config.exchange, "error": str(e)}},
                exc_info=True
            )
            return False

        logger.info(f"AMQP exchange {self.config.exchange} declared")
        return True

    def publish_incident(self, incident: Incident, correlation_id: Optional[str] = None) -> PublishResult:
        """
        Broadcast a stored incident to rescuers.

        Args:
            incident: Incident to broadcast
            correlation_id: Correlation ID, generated when omitted

        Returns:
            PublishResult; broker failures are reported here, never raised
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        routing_key = routing_key_for(incident)

        with tracer.start_as_current_span("amqp.publish.incident") as span:
            span.set_attributes({
                "incident.id": incident.id or "",
                "amqp.exchange": self.config.exchange,
                "amqp.routing_key": routing_key,
                "correlation_id": correlation_id
            })

            headers: Dict[str, str] = {}
            inject(headers)
            body = self.encode_message(incident, correlation_id)
            properties = pika.BasicProperties(
                content_type='application/json',
                delivery_mode=2,  # persistent
                correlation_id=correlation_id,
                message_id=incident.id,
                timestamp=int(time.time()),
                headers=headers
            )

            result = self._publish(routing_key, body, properties, correlation_id)
            span.set_attribute("amqp.attempts", result.attempts)
            if result.success:
                span.set_status(Status(StatusCode.OK))
            else:
                span.set_status(Status(StatusCode.ERROR, result.error))
            return result

    def _publish(self, routing_key: str, body: bytes,
                 properties: pika.BasicProperties, correlation_id: str) -> PublishResult:
        delays = backoff_delays(self.config.retry_delay, self.config.max_retries)
        attempts = 0

        while True:
            attempts += 1
            try:
                with self._channel() as channel:
                    self._declare_exchange(channel)
                    channel.basic_publish(
                        exchange=self.config.exchange,
                        routing_key=routing_key,
                        body=body,
                        properties=properties
                    )
            except Exception as e:
                delay = next(delays, None)
                log_fields = {
                    "routing_key": routing_key,
                    "correlation_id": correlation_id,
                    "attempt": attempts,
                    "error": str(e)
                }
                if delay is None:
                    logger.error(
                        "Incident broadcast gave up",
                        extra={"extra_fields": log_fields},
                        exc_info=True
                    )
                    return PublishResult(False, correlation_id, routing_key, attempts, str(e))

                logger.warning(
                    f"Incident broadcast failed, retrying in {delay}s",
                    extra={"extra_fields": log_fields}
                )
                self._sleep(delay)
                continue

            logger.info(
                "Incident broadcast published",
                extra={
                    "extra_fields": {
                        "routing_key": routing_key,
                        "correlation_id": correlation_id,
                        "attempt": attempts
                    }
                }
            )
            return PublishResult(True, correlation_id, routing_key, attempts)

    @staticmethod
    def encode_message(incident: Incident, correlation_id: str) -> bytes:
        """JSON body read by rescuer consoles."""
        message: Dict[str, Any] = {
            "incident_id": incident.id,
            "correlation_id": correlation_id,
            "incident": incident.to_public_dict(),
            "source": MESSAGE_SOURCE,
            "version": MESSAGE_VERSION,
            "published_at": time.time()
        }
        return json.dumps(message, ensure_ascii=False, separators=(',', ':')).encode('utf-8')

    def health_check(self) -> bool:
        """True when the broker is reachable and the exchange can be declared."""
        try:
            with self._channel() as channel:
                self._declare_exchange(channel)
        except Exception as e:
            logger.warning(
                "AMQP health check failed",
                extra={"extra_fields": {"error": str(e), "host": self._connection_params.host}}
            )
            return False
        return True
