"""
Change notification listener for the ipband daemon.

A single background thread owns its own store connection, LISTENs on the ban
channel and forwards every notification into a queue. It never touches ban
data itself; the reconciliation loop consumes the queue.
"""
import logging
import queue
import select
import threading
from typing import Any, Callable, Iterator, Optional

import psycopg2
from psycopg2 import sql

from .constants import CHANNEL, LISTEN_POLL_INTERVAL
from .errors import ListenerError
from .models import Notification

logger = logging.getLogger(__name__)


class NotificationListener:
    """Forwards store notifications into a queue from a dedicated thread."""

    def __init__(
        self,
        connect: Callable[[], Any],
        channel: str = CHANNEL,
        poll_interval: float = LISTEN_POLL_INTERVAL,
    ):
        """
        Initialize listener.

        Args:
            connect: Factory returning a new autocommit psycopg2 connection
            channel: Channel to LISTEN on
            poll_interval: Max seconds between checks for stop()
        """
        self.channel = channel
        self.poll_interval = poll_interval
        self.events: queue.Queue = queue.Queue()

        self._connect = connect
        self._conn = None
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    def start(self) -> None:
        """
        Subscribe and start forwarding.

        The LISTEN is issued before returning so no change made after start()
        can be missed.
        """
        self._conn = self._connect()
        with self._conn.cursor() as cursor:
            cursor.execute(sql.SQL("LISTEN {}").format(sql.Identifier(self.channel)))
        logger.info(f"👂 Listening for notifications on channel {self.channel}")

        self._thread = threading.Thread(target=self._forward, name="ipband-listener", daemon=True)
        self._thread.start()

    def _forward(self) -> None:
        conn = self._conn
        try:
            while not self._stopping.is_set():
                ready, _, _ = select.select([conn], [], [], self.poll_interval)
                if not ready:
                    continue
                conn.poll()
                while conn.notifies:
                    notify = conn.notifies.pop(0)
                    self.events.put(Notification(channel=notify.channel, payload=notify.payload, pid=notify.pid))
        except (psycopg2.Error, OSError, ValueError) as e:
            if self._stopping.is_set():
                return
            logger.error(f"❌ Notification connection failed: {e}")
            self.events.put(ListenerError(f"notification connection failed: {e}"))

    def get(self, timeout: Optional[float] = None) -> Notification:
        """
        Next notification, blocking until one arrives.

        Raises:
            ListenerError: If the listener connection died
            queue.Empty: If timeout expired
        """
        item = self.events.get(timeout=timeout)
        if isinstance(item, ListenerError):
            raise item
        return item

    def __iter__(self) -> Iterator[Notification]:
        while True:
            yield self.get()

    def stop(self) -> None:
        """Stop forwarding and close the listener connection."""
        self._stopping.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_interval + 1)
            self._thread = None
        if self._conn is not None:
            self._conn.close()
            self._conn = None
