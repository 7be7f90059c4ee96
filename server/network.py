# network.py
import asyncio
from typing import Protocol

from config import NETWORK_PROBE_HOST, NETWORK_PROBE_PORT, NETWORK_PROBE_TIMEOUT
from logging_utils import get_logger

logger = get_logger("boardingpass.network")


class NetworkProbe(Protocol):
    async def is_available(self) -> bool:
        ...


class StaticNetworkProbe:
    """Fixed answer; used when the caller already knows the connectivity state."""

    def __init__(self, available: bool):
        self.available = available

    async def is_available(self) -> bool:
        return self.available


class SocketNetworkProbe:
    """Reachability check by opening a TCP connection to a well-known host."""

    def __init__(
        self,
        host: str = NETWORK_PROBE_HOST,
        port: int = NETWORK_PROBE_PORT,
        timeout: float = NETWORK_PROBE_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def is_available(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port), timeout=self.timeout
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug(f"Network probe to {self.host}:{self.port} failed: {e}")
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"Network probe close error: {e}")
        return True
