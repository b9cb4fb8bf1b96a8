"""
Run Heartbeat
=============

Pings an external cron monitor after each completed ingestion run. A failing
ping is logged and otherwise ignored.
"""

import asyncio
from typing import Optional

import aiohttp

from ..config.settings import MonitoringSettings, get_settings
from ..utils.logging import get_logger_for_component


class HeartbeatNotifier:
    """GETs the configured heartbeat URL; does nothing when none is set."""

    def __init__(self, settings: Optional[MonitoringSettings] = None):
        self.settings = settings or get_settings().monitoring
        self.logger = get_logger_for_component("heartbeat")

    @property
    def enabled(self) -> bool:
        return bool(self.settings.heartbeat_url)

    async def ping(self) -> bool:
        """Send the heartbeat.

        Returns:
            True if the monitor answered with a 2xx status
        """
        if not self.enabled:
            self.logger.debug("Heartbeat URL not configured, skipping ping")
            return False

        url = self.settings.heartbeat_url
        timeout = aiohttp.ClientTimeout(total=self.settings.heartbeat_timeout)

        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(url) as response:
                    if 200 <= response.status < 300:
                        self.logger.info(f"Heartbeat ping sent ({response.status})")
                        return True
                    self.logger.warning(f"Heartbeat ping returned status {response.status}")
                    return False

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.logger.error(f"Heartbeat ping failed: {e}")
            return False
