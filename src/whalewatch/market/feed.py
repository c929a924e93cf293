"""
GraphQL subscription transport for real-time DEX trades.

Speaks the graphql-transport-ws protocol over an aiohttp WebSocket:
- One subscribe request per connection
- Auto-reconnection with exponential backoff
- Parsed trade batches pushed into a channel for the subscriber
"""

import asyncio
import logging
from enum import Enum, auto
from typing import Any

import aiohttp
import orjson

from whalewatch.config.constants import (
    DEX_TRADES_QUERY,
    GRAPHQL_SUBSCRIPTION_ID,
    GRAPHQL_WS_SUBPROTOCOL,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
    RECONNECT_MULTIPLIER,
    WS_ACK_TIMEOUT,
    WS_CLOSE_TIMEOUT,
    WS_HEARTBEAT_INTERVAL,
    WS_MAX_MESSAGE_SIZE,
)
from whalewatch.core.types import TradeBatch
from whalewatch.market.models import parse_trade_batch


logger = logging.getLogger(__name__)


class FeedError(Exception):
    """Raised on protocol violations by the streaming server."""


class ConnectionState(Enum):
    """WebSocket connection state."""

    DISCONNECTED = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    RECONNECTING = auto()
    CLOSED = auto()


def build_subscription_query(
    token_mint: str | None = None,
    side_mint: str | None = None,
) -> str:
    """
    Build the DEX trades subscription.

    Args:
        token_mint: Only trades of this token.
        side_mint: Only trades against this quote token.

    Returns:
        GraphQL subscription document.
    """
    conditions = []
    if token_mint:
        conditions.append(f'Currency: {{MintAddress: {{is: "{token_mint}"}}}}')
    if side_mint:
        conditions.append(f'Side: {{Currency: {{MintAddress: {{is: "{side_mint}"}}}}}}')

    where = f"(where: {{Trade: {{{', '.join(conditions)}}}}})" if conditions else ""
    return DEX_TRADES_QUERY % {"filter": where}


def put_latest(
    channel: "asyncio.Queue[TradeBatch | None]",
    item: TradeBatch | None,
) -> TradeBatch | None:
    """
    Enqueue without blocking, evicting the oldest entry when full.

    Returns:
        The evicted entry, or None if nothing was dropped.
    """
    dropped = None
    if channel.full():
        dropped = channel.get_nowait()
        logger.warning(
            f"Trade channel full ({channel.maxsize} pending), dropping oldest batch"
        )
    channel.put_nowait(item)
    return dropped


class GraphQLFeed:
    """
    Subscription transport feeding trade batches into a channel.

    Each `next` message becomes one batch on the channel. `None` is
    put on the channel once the subscription ends for good.
    """

    def __init__(
        self,
        url: str,
        query: str | None = None,
        token: str | None = None,
    ) -> None:
        """
        Initialize the feed.

        Args:
            url: Streaming endpoint URL.
            query: Subscription document (default: all DEX trades).
            token: Optional bearer token.
        """
        self._url = url
        self._query = query or build_subscription_query()
        self._token = token

        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._session: aiohttp.ClientSession | None = None
        self._channel: asyncio.Queue[TradeBatch | None] | None = None
        self._state = ConnectionState.DISCONNECTED
        self._reconnect_delay = MIN_RECONNECT_DELAY
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._message_count = 0
        self._dropped_count = 0

    @property
    def state(self) -> ConnectionState:
        """Get current connection state."""
        return self._state

    @property
    def message_count(self) -> int:
        """Get total trade messages received."""
        return self._message_count

    @property
    def dropped_count(self) -> int:
        """Get batches evicted from a full channel."""
        return self._dropped_count

    @property
    def query(self) -> str:
        """Subscription document sent to the server."""
        return self._query

    async def _send(self, message: dict[str, Any]) -> None:
        if self._ws is None or self._ws.closed:
            raise FeedError("WebSocket is not open")
        await self._ws.send_str(orjson.dumps(message).decode())

    async def connect(self) -> bool:
        """
        Connect, complete the handshake and subscribe.

        Returns:
            True if subscribed successfully.
        """
        if self._state == ConnectionState.CONNECTED:
            return True

        self._state = ConnectionState.CONNECTING

        try:
            if self._session is None or self._session.closed:
                headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
                self._session = aiohttp.ClientSession(headers=headers)

            logger.info(f"Connecting to trade feed at {self._url}")

            self._ws = await self._session.ws_connect(
                self._url,
                protocols=(GRAPHQL_WS_SUBPROTOCOL,),
                heartbeat=WS_HEARTBEAT_INTERVAL,
                max_msg_size=WS_MAX_MESSAGE_SIZE,
            )

            await self._send({"type": "connection_init", "payload": {}})

            ack = await self._ws.receive(timeout=WS_ACK_TIMEOUT)
            if ack.type != aiohttp.WSMsgType.TEXT:
                raise FeedError(f"Expected connection_ack, got {ack.type.name}")
            ack_data = orjson.loads(ack.data)
            if ack_data.get("type") != "connection_ack":
                raise FeedError(f"Expected connection_ack, got {ack_data.get('type')}")

            await self._send(
                {
                    "id": GRAPHQL_SUBSCRIPTION_ID,
                    "type": "subscribe",
                    "payload": {"query": self._query},
                }
            )

            self._state = ConnectionState.CONNECTED
            self._reconnect_delay = MIN_RECONNECT_DELAY
            logger.info("Subscribed to trade feed")
            return True

        except (aiohttp.ClientError, TimeoutError, FeedError, orjson.JSONDecodeError) as e:
            logger.error(f"Feed connection failed: {e}")
            await self._close_socket()
            self._state = ConnectionState.DISCONNECTED
            return False

    async def _close_socket(self) -> None:
        if self._ws and not self._ws.closed:
            await self._ws.close()
        self._ws = None

    async def disconnect(self) -> None:
        """Close WebSocket connection and session."""
        self._running = False
        self._state = ConnectionState.CLOSED

        if self._ws and not self._ws.closed:
            try:
                await self._send({"id": GRAPHQL_SUBSCRIPTION_ID, "type": "complete"})
            except (aiohttp.ClientError, ConnectionError, FeedError) as e:
                logger.debug(f"Could not send complete: {e}")

        await self._close_socket()

        if self._session and not self._session.closed:
            await self._session.close()

        self._session = None

    async def _reconnect(self) -> None:
        """Attempt reconnection with exponential backoff."""
        self._state = ConnectionState.RECONNECTING

        while self._running and self._state != ConnectionState.CONNECTED:
            logger.info(f"Reconnecting to trade feed in {self._reconnect_delay:.1f}s")
            await asyncio.sleep(self._reconnect_delay)

            if await self.connect():
                break

            # Exponential backoff
            self._reconnect_delay = min(
                self._reconnect_delay * RECONNECT_MULTIPLIER,
                MAX_RECONNECT_DELAY,
            )

    async def handle_payload(self, data: dict[str, Any]) -> bool:
        """
        Process one decoded protocol message.

        Args:
            data: Decoded graphql-transport-ws message.

        Returns:
            False if the subscription should stop reading.
        """
        msg_type = data.get("type")

        if msg_type == "next":
            payload = data.get("payload") or {}
            if payload.get("errors"):
                logger.error(f"Subscription error: {payload['errors']}")

            batch = parse_trade_batch(payload.get("data"))
            self._message_count += 1
            if self._channel is not None and put_latest(self._channel, batch) is not None:
                self._dropped_count += 1

        elif msg_type == "error":
            logger.error(f"Subscription error: {data.get('payload')}")
            return False

        elif msg_type == "complete":
            logger.info("Subscription complete")
            self._running = False
            return False

        elif msg_type == "ping":
            await self._send({"type": "pong"})

        elif msg_type not in ("pong", "connection_ack"):
            logger.debug(f"Ignoring feed message of type {msg_type}")

        return True

    async def _handle_message(self, msg: aiohttp.WSMessage) -> bool:
        """
        Process a WebSocket message.

        Returns:
            False if connection should be closed.
        """
        if msg.type == aiohttp.WSMsgType.TEXT:
            try:
                data = orjson.loads(msg.data)
            except orjson.JSONDecodeError as e:
                logger.warning(f"Invalid JSON from trade feed: {e}")
                return True

            if not isinstance(data, dict):
                logger.warning("Unexpected feed message shape, ignoring")
                return True

            return await self.handle_payload(data)

        elif msg.type == aiohttp.WSMsgType.ERROR:
            logger.error(f"Trade feed error: {msg.data}")
            return False

        elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED):
            logger.warning("Trade feed connection closed")
            return False

        return True

    async def run(self) -> None:
        """Main message loop with auto-reconnection."""
        self._running = True

        try:
            while self._running:
                # Ensure connected
                if self._state != ConnectionState.CONNECTED:
                    if not await self.connect():
                        await self._reconnect()
                        continue

                try:
                    if self._ws is None:
                        await self._reconnect()
                        continue

                    async for msg in self._ws:
                        if not self._running:
                            break

                        if not await self._handle_message(msg):
                            break

                except (aiohttp.ClientError, FeedError) as e:
                    logger.error(f"Error in trade feed loop: {e}")

                # Connection lost, attempt reconnect
                await self._close_socket()
                self._state = ConnectionState.DISCONNECTED
                if self._running:
                    await self._reconnect()
        finally:
            if self._channel is not None:
                put_latest(self._channel, None)

    async def start(self, channel: "asyncio.Queue[TradeBatch | None]") -> None:
        """
        Start the message loop as a task.

        Args:
            channel: Queue receiving trade batches, then `None` at the end.
        """
        self._channel = channel
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the message loop and dispose the subscription."""
        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await asyncio.wait_for(self._task, timeout=WS_CLOSE_TIMEOUT)
            except (TimeoutError, asyncio.CancelledError):
                pass

        await self.disconnect()
        logger.info("Trade feed subscription disposed")
