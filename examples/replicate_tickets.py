#!/usr/bin/env python3
"""
Replicate ticket changes from one Zendesk account into another.

Connection details come from ``config/base.yaml`` and the environment:
the source uses ``ZENDESK_DOMAIN``/``ZENDESK_USERNAME``/``ZENDESK_API_TOKEN``,
the destination the same variables prefixed with ``TARGET_``.
"""
import os
import time

from zendesk_connector.config.settings import get_settings
from zendesk_connector.destination import Destination
from zendesk_connector.source.source import Source
from zendesk_connector.utils.errors import BackoffRetry
from zendesk_connector.utils.logging import get_logger


BACKOFF_SECONDS = 1.0


def target_config(settings) -> dict:
    return settings.plugin_config(
        domain=os.environ["TARGET_ZENDESK_DOMAIN"],
        username=os.environ["TARGET_ZENDESK_USERNAME"],
        apiToken=os.environ["TARGET_ZENDESK_API_TOKEN"],
    )


def main():
    """Read from the source and write every record to the destination."""
    settings = get_settings()
    logger = get_logger("replicate_tickets")

    source = Source()
    source.configure(settings.plugin_config())
    destination = Destination()
    destination.configure(target_config(settings))

    source.open(None)
    destination.open()

    def make_ack(record_position: bytes):
        def ack(error):
            if error is None:
                source.ack(record_position)
        return ack

    try:
        while True:
            try:
                record = source.read()
            except BackoffRetry:
                # Nothing new upstream, push out the partial batch
                destination.flush()
                time.sleep(BACKOFF_SECONDS)
                continue

            destination.write_async(record, make_ack(record.position))
            logger.debug("Replicated ticket", ticket_key=record.key)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        source.teardown()
        destination.teardown()


if __name__ == "__main__":
    main()
