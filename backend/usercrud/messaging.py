"""Kafka producer and consumer for example events.

The producer publishes an `ExampleMessage` per created example; the
consumer side decodes those messages and logs them. Both accept
confluent-kafka style client objects so they can be exercised without a
broker.
"""

import json
import logging
import threading
from typing import Callable, Optional

from confluent_kafka import Consumer, Producer
from pydantic import ValidationError

from .config import Settings
from .schemas import ExampleMessage

logger = logging.getLogger("usercrud.messaging")


def _client_config(settings: Settings) -> dict:
    conf = {
        "bootstrap.servers": ",".join(settings.KAFKA_BROKERS),
        "security.protocol": settings.KAFKA_SECURITY_PROTOCOL,
    }
    if settings.KAFKA_USERNAME:
        conf.update({
            "sasl.mechanisms": "PLAIN",
            "sasl.username": settings.KAFKA_USERNAME,
            "sasl.password": settings.KAFKA_PASSWORD,
        })
    return conf


def build_producer(settings: Settings) -> Optional[Producer]:
    """Return a producer, or None when no brokers are configured."""
    if not settings.KAFKA_BROKERS:
        return None
    return Producer(_client_config(settings))


def build_consumer(settings: Settings) -> Consumer:
    conf = _client_config(settings)
    conf.update({
        "group.id": settings.KAFKA_GROUP_ID,
        "auto.offset.reset": "earliest",
        "enable.auto.commit": False,
    })
    return Consumer(conf)


class ExampleProducer:
    def __init__(self, producer, topic: str, flush_timeout: float = 10.0):
        self.producer = producer
        self.topic = topic
        self.flush_timeout = flush_timeout

    def get_topic(self) -> str:
        return self.topic

    def _on_delivery(self, err, msg):
        if err is not None:
            logger.error("delivery failed topic=%s error=%s", self.topic, err)

    def send(self, *messages: ExampleMessage) -> int:
        """Produce every message, then flush; returns the number still queued."""
        for message in messages:
            self.producer.produce(
                self.topic,
                key=message.id.encode("utf-8"),
                value=message.model_dump_json().encode("utf-8"),
                on_delivery=self._on_delivery,
            )
        remaining = self.producer.flush(self.flush_timeout)
        if remaining:
            logger.warning("%d message(s) still queued for topic %s after flush", remaining, self.topic)
        return remaining


class ExampleConsumer:
    def consume_kafka(self, message) -> ExampleMessage:
        try:
            event = ExampleMessage.model_validate_json(message.value())
        except ValidationError as e:
            logger.error("error unmarshalling example event: %s", e)
            raise
        logger.info("received example event %s", json.dumps(event.model_dump(), ensure_ascii=True))
        return event


def consume_topic(
    consumer,
    topic: str,
    handler: Callable,
    stop_event: threading.Event,
    poll_timeout: float = 1.0,
) -> int:
    """Poll `topic` until `stop_event` is set; returns the number of handled messages.

    Offsets are committed synchronously after the handler succeeds, so a
    failed message is redelivered after a restart.
    """
    consumer.subscribe([topic])
    handled = 0
    try:
        while not stop_event.is_set():
            msg = consumer.poll(poll_timeout)
            if msg is None:
                continue
            if msg.error():
                logger.error("consumer error on %s: %s", topic, msg.error())
                continue
            try:
                handler(msg)
            except Exception:
                logger.exception("handler failed for message on %s", topic)
                continue
            consumer.commit(message=msg, asynchronous=False)
            handled += 1
    finally:
        consumer.close()
    return handled
