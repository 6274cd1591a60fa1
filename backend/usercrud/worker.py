"""Kafka worker entrypoint: consumes example events until SIGINT/SIGTERM.

Run with ``python -m usercrud.worker``.
"""

import logging
import signal
import threading

from .config import settings
from .messaging import ExampleConsumer, build_consumer, consume_topic
from .utils.logger import setup_logger

logger = logging.getLogger("usercrud.worker")


def install_signal_handlers(stop_event: threading.Event):
    def _stop(signum, _frame):
        logger.info("got stop signal %s, shutting down worker gracefully", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)


def main() -> int:
    setup_logger(settings.ENV, settings.LOG_PATH, settings.APP_DEBUG)
    if not settings.KAFKA_BROKERS:
        logger.error("KAFKA_BROKERS is not set, worker has nothing to consume")
        return 1
    stop_event = threading.Event()
    install_signal_handlers(stop_event)
    logger.info("worker is running, topic=%s group=%s", settings.KAFKA_TOPIC_EXAMPLE, settings.KAFKA_GROUP_ID)
    handled = consume_topic(
        build_consumer(settings),
        settings.KAFKA_TOPIC_EXAMPLE,
        ExampleConsumer().consume_kafka,
        stop_event,
    )
    logger.info("worker stopped after %d message(s)", handled)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
