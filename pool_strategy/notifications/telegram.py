"""Telegram notification service for harvest reports and failures."""
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

# Telegram rejects longer message bodies.
MAX_MESSAGE_LENGTH = 4096


class TelegramNotifier:
    """Post harvest logs to one bot and failure alerts to another."""

    def __init__(self, config: TelegramConfig, timeout: int = 15) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id
        self.timeout = timeout

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        """Send one message through ``bot_token``; False on any non-200 reply."""
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": text[:MAX_MESSAGE_LENGTH],
            "disable_notification": silent,
        }

        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)

        async with aiohttp.ClientSession(connector=connector) as session:
            async with session.post(
                url, json=payload, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if response.status != 200:
                    logger.error("Telegram rejected message: HTTP %s", response.status)
                    return False
                return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Send a failure alert (audible)."""
        text = f"{subject}\n\n{message}" if subject else message
        sent = await self._post(self.alert_bot_token, text, silent=False)
        if sent:
            logger.info("Telegram alert sent")
        return sent

    async def send_log(self, message: str, silent: bool = True) -> bool:
        """Send a harvest log line (muted by default)."""
        sent = await self._post(self.log_bot_token, message, silent=silent)
        if sent:
            logger.debug("Telegram log sent")
        return sent
