"""Push delivery worker: consumes queued notifications and hands them to the push channel."""
import asyncio
import json
import logging
import aio_pika
from storefront.config import RABBITMQ_URL, configure_logging
from storefront.messaging import (
    NOTIFICATION_EXCHANGE, DEVICE_ROUTING_KEY, TOPIC_ROUTING_KEY, connect_broker,
)

logger = logging.getLogger(__name__)

async def process_notification(message: aio_pika.IncomingMessage):
    async with message.process():
        try:
            notification = json.loads(message.body.decode())
            target = notification.get("token") or notification.get("topic", "N/A")
            content = notification.get("notification", {})
            data = notification.get("data", {})

            # Delivery to the push provider is outside this service; record the hand-off
            logger.info(
                "Push notification sent to %s: %s - %s (order %s, status %s)",
                target,
                content.get("title", ""),
                content.get("body", ""),
                data.get("orderId", "N/A"),
                data.get("status", "N/A"),
            )
        except Exception:
            logger.exception("Error processing notification")

async def main():
    connection = await connect_broker(RABBITMQ_URL)
    async with connection:
        channel = await connection.channel()

        exchange = await channel.declare_exchange(NOTIFICATION_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True)

        queue = await channel.declare_queue("notification_q", durable=True)
        await queue.bind(exchange, DEVICE_ROUTING_KEY)
        await queue.bind(exchange, TOPIC_ROUTING_KEY)

        logger.info("Notification worker is listening for notifications...")
        await queue.consume(process_notification)

        # Keep the main task running
        await asyncio.Future()

if __name__ == "__main__":
    configure_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Notification worker stopped.")
