import json
import logging
import aio_pika
from tenacity import retry, stop_after_attempt, wait_exponential
from storefront.config import RABBITMQ_URL

logger = logging.getLogger(__name__)

NOTIFICATION_EXCHANGE = "notification_exchange"
DEVICE_ROUTING_KEY = "notification.device"
TOPIC_ROUTING_KEY = "notification.topic"
CLICK_ACTION = "FLUTTER_NOTIFICATION_CLICK"

connection = None
channel = None

@retry(stop=stop_after_attempt(5), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
async def connect_broker(url: str = RABBITMQ_URL):
    return await aio_pika.connect_robust(url)

async def setup_rabbitmq():
    global connection, channel
    try:
        connection = await connect_broker()
        channel = await connection.channel()
        await channel.declare_exchange(NOTIFICATION_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True)
        logger.info("RabbitMQ setup complete.")
    except Exception:
        logger.exception("Error setting up RabbitMQ; events will not be published")

async def close_rabbitmq():
    global connection, channel
    if connection is not None:
        await connection.close()
    connection = None
    channel = None

async def publish_event(exchange_name: str, routing_key: str, message_data: dict):
    if not channel:
        logger.warning("RabbitMQ channel not available. Cannot publish %s.", routing_key)
        return

    message = aio_pika.Message(
        json.dumps(message_data).encode('utf-8'),
        content_type='application/json',
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT
    )
    exchange = await channel.get_exchange(exchange_name)
    await exchange.publish(message, routing_key=routing_key)
    logger.debug("Published event to %s", routing_key)


class NotificationDispatcher:
    """Hands push notifications to the delivery worker over the broker."""

    def __init__(self, publish=publish_event):
        self.publish = publish

    async def send_to_device(self, token: str, title: str, body: str, data: dict):
        await self.publish(NOTIFICATION_EXCHANGE, DEVICE_ROUTING_KEY, {
            "token": token,
            "notification": {"title": title, "body": body},
            "data": self._data(data),
        })

    async def send_to_topic(self, topic: str, title: str, body: str, data: dict):
        await self.publish(NOTIFICATION_EXCHANGE, TOPIC_ROUTING_KEY, {
            "topic": topic,
            "notification": {"title": title, "body": body},
            "data": self._data(data),
        })

    @staticmethod
    def _data(data: dict) -> dict:
        # Push payload data values must be strings
        payload = {key: str(value) for key, value in data.items()}
        payload["click_action"] = CLICK_ACTION
        return payload
