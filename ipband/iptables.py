"""
iptables management for the ipband daemon.

Makes sure every protected port has exactly one DROP rule matching source
addresses in the live ipset.
"""
import logging
from typing import Callable, Iterable

from .constants import IPTABLES_CHAIN, PROTECTED_PORTS, SET_NAME
from .executor import run_command

logger = logging.getLogger(__name__)


class IptablesManager:
    """Manages the DROP rules that point packet filtering at the ban set."""

    def __init__(
        self,
        set_name: str = SET_NAME,
        ports: Iterable[int] = PROTECTED_PORTS,
        chain: str = IPTABLES_CHAIN,
        run: Callable[..., object] = run_command,
    ):
        """
        Initialize iptables manager.

        Args:
            set_name: ipset referenced by the rules
            ports: Protected TCP destination ports
            chain: Chain the rules are appended to
            run: Command runner (see executor.run_command)
        """
        self.set_name = set_name
        self.ports = tuple(ports)
        self.chain = chain
        self._run = run

    def _rule_spec(self, port: int) -> list[str]:
        return [
            "-m",
            "set",
            "--match-set",
            self.set_name,
            "src",
            "-p",
            "tcp",
            "--dport",
            str(port),
            "-j",
            "DROP",
        ]

    def rule_exists(self, port: int) -> bool:
        """Check if the DROP rule for port is already in the chain."""
        result = self._run(["iptables", "-w", "-C", self.chain, *self._rule_spec(port)], check=False)
        return result.returncode == 0

    def ensure_drop_rule(self, port: int) -> bool:
        """
        Append the DROP rule for port if it is missing (idempotent).

        Returns:
            True if a rule was added, False if it already existed

        Raises:
            CommandError: If the rule could not be appended
        """
        if self.rule_exists(port):
            logger.debug(f"iptables DROP rule for {self.set_name} port {port} already exists")
            return False

        self._run(["iptables", "-w", "-A", self.chain, *self._rule_spec(port)])
        logger.info(f"🚫 Added iptables DROP rule for {self.set_name} on tcp/{port}")
        return True

    def ensure_drop_rules(self) -> list[int]:
        """
        Ensure all protected ports are covered.

        Returns:
            Ports that got a new rule
        """
        return [port for port in self.ports if self.ensure_drop_rule(port)]
