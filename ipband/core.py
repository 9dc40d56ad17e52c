"""
Core reconciliation logic for the ipband daemon.

Reconciler drives one store connection and one notification listener: a full
reconciliation at startup, then one per ban-change notification, strictly in
order. BanDaemon wires up connections and supervises the Reconciler,
restarting it with backoff after a fatal error.
"""

import logging
import queue
import signal
import sys
import time
from typing import Callable, Optional

from . import ipset
from .bans import fetch_active_addresses
from .constants import CHANNEL, DEBOUNCE_SECONDS, DSN, MAX_BACKOFF, RANGE_POLICY, SET_NAME
from .db import connect
from .executor import run_command
from .iptables import IptablesManager
from .listener import NotificationListener
from .models import Notification, RangePolicy, ReconcileResult, State

logger = logging.getLogger(__name__)


class Reconciler:
    """
    Keeps the live ipset and its iptables rules in line with the bans table.

    States: starting -> reconciling -> idle -> reconciling ... and fatal on
    any error, after which run() re-raises.
    """

    def __init__(
        self,
        conn,
        listener: NotificationListener,
        set_name: str = SET_NAME,
        iptables: Optional[IptablesManager] = None,
        policy: Optional[RangePolicy] = None,
        debounce: Optional[float] = None,
        channel: str = CHANNEL,
        run: Callable[..., object] = run_command,
    ):
        """
        Initialize reconciler.

        Args:
            conn: Store connection used for ban queries (owned by this reconciler)
            listener: Started notification listener
            set_name: Live ipset name
            iptables: Rule manager (defaults to one protecting set_name)
            policy: Range ban policy (default: IPBAND_RANGE_POLICY)
            debounce: Seconds to fold follow-up notifications into one reconciliation (0 = off), default: IPBAND_DEBOUNCE
            channel: Channel whose notifications trigger a reconciliation
            run: Command runner for ipset and iptables (see executor.run_command)
        """
        self.conn = conn
        self.listener = listener
        self.set_name = set_name
        self.iptables = iptables or IptablesManager(set_name=set_name, run=run)
        self.policy = RangePolicy(policy if policy is not None else RANGE_POLICY)
        self.debounce = float(debounce if debounce is not None else DEBOUNCE_SECONDS)
        self.channel = channel
        self._run = run

        self.state = State.starting
        self.reconcile_count = 0

    def reconcile(self) -> ReconcileResult:
        """Fetch the active bans, swap them into the live set and ensure the rules."""
        self.state = State.reconciling
        addresses, excluded = fetch_active_addresses(self.conn, self.policy)
        logger.info(f"Setting {len(addresses)} bans")
        ipset.rebuild(addresses, set_name=self.set_name, run=self._run)
        rules_added = self.iptables.ensure_drop_rules()

        self.reconcile_count += 1
        self.state = State.idle
        return ReconcileResult(addresses=addresses, excluded=excluded, rules_added=rules_added)

    def wait_for_trigger(self) -> Notification:
        """Block until a notification on the ban channel arrives."""
        while True:
            notification = self.listener.get()
            if notification.channel == self.channel:
                break
            logger.debug(f"Ignoring notification on channel {notification.channel}")

        if self.debounce > 0:
            folded = self._drain_burst()
            if folded:
                logger.debug(f"Folded {folded} more notifications into this reconciliation")
        return notification

    def _drain_burst(self) -> int:
        """Swallow ban notifications arriving within the debounce window."""
        deadline = time.monotonic() + self.debounce
        folded = 0
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return folded
            try:
                notification = self.listener.get(timeout=remaining)
            except queue.Empty:
                return folded
            if notification.channel == self.channel:
                folded += 1

    def run(self, on_started: Optional[Callable[[], None]] = None) -> None:
        """
        Reconcile now, then once per ban notification, forever.

        Args:
            on_started: Called after the startup reconciliation succeeded

        Raises:
            Whatever stopped the loop (store, ipset/iptables or listener failure)
        """
        try:
            self.reconcile()
            if on_started:
                on_started()
            while True:
                self.wait_for_trigger()
                self.reconcile()
        except Exception:
            self.state = State.fatal
            raise


def supervise(
    start_run: Callable[[Callable[[], None]], None],
    fail_fast: bool = False,
    max_backoff: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """
    Run start_run, restarting it with exponential backoff when it fails.

    start_run receives a callback to invoke once it is healthy again, which
    resets the backoff. With fail_fast the first failure is re-raised.
    """
    if max_backoff is None:
        max_backoff = float(MAX_BACKOFF)
    backoff = 1.0

    def reset_backoff() -> None:
        nonlocal backoff
        backoff = 1.0

    while True:
        try:
            start_run(reset_backoff)
            return
        except Exception:
            if fail_fast:
                logger.exception("❌ Reconciliation failed, exiting")
                raise
            logger.exception(f"❌ Reconciliation failed, restarting in {backoff:.0f}s")
            sleep(backoff)
            backoff = min(backoff * 2, max_backoff)


class BanDaemon:
    """Owns the store connections for one host and supervises reconciliation."""

    def __init__(
        self,
        dsn: str = DSN,
        name: str = "",
        set_name: str = SET_NAME,
        policy: Optional[RangePolicy] = None,
        debounce: Optional[float] = None,
        fail_fast: bool = False,
    ):
        self.dsn = dsn
        self.name = name
        self.set_name = set_name
        self.policy = RangePolicy(policy if policy is not None else RANGE_POLICY)
        self.debounce = float(debounce if debounce is not None else DEBOUNCE_SECONDS)
        self.fail_fast = fail_fast

    def _connect(self):
        return connect(self.dsn, self.name)

    def _run_once(self, on_started: Callable[[], None]) -> None:
        """One supervised run: fresh connections, fresh subscription, full reconciliation."""
        conn = self._connect()
        listener = NotificationListener(self._connect)
        try:
            listener.start()
            reconciler = Reconciler(
                conn,
                listener,
                set_name=self.set_name,
                policy=self.policy,
                debounce=self.debounce,
            )
            reconciler.run(on_started)
        finally:
            listener.stop()
            conn.close()

    def _setup_signal_handlers(self) -> None:
        """Setup SIGINT and SIGTERM handlers for graceful shutdown."""
        signal.signal(signal.SIGINT, lambda s, f: self._shutdown())
        signal.signal(signal.SIGTERM, lambda s, f: self._shutdown())

    def _shutdown(self) -> None:
        logger.info("=== Shutting down ===")
        logger.info(f"ℹ️  ipset {self.set_name} and its iptables rules remain active")
        sys.exit(0)

    def run(self) -> None:
        """Run the daemon until a signal arrives (or the first failure with fail_fast)."""
        logger.info(f"Range bans: {self.policy.value}, debounce: {self.debounce}s")
        self._setup_signal_handlers()
        supervise(self._run_once, fail_fast=self.fail_fast)
