"""Tests for ipband.iptables module"""
import unittest

from ipband.errors import CommandError
from ipband.ipset import rebuild
from ipband.iptables import IptablesManager
from ipband.test_stubs import FakeFirewall


class TestIptablesManager(unittest.TestCase):
    """Test DROP rule installation"""

    def setUp(self):
        self.fw = FakeFirewall()
        rebuild(["10.0.0.5"], run=self.fw)
        self.manager = IptablesManager(run=self.fw)

    def test_rule_spec(self):
        """Rule drops tcp to the port when the source is in the set"""
        self.manager.ensure_drop_rule(443)

        self.assertIn(
            ["iptables", "-w", "-A", "INPUT", "-m", "set", "--match-set", "ipband", "src",
             "-p", "tcp", "--dport", "443", "-j", "DROP"],
            self.fw.calls,
        )

    def test_rules_added_once_per_port(self):
        added = self.manager.ensure_drop_rules()

        self.assertEqual(added, [80, 443])
        self.assertEqual(self.fw.drop_rules(80), 1)
        self.assertEqual(self.fw.drop_rules(443), 1)

    def test_idempotent(self):
        """Running twice never duplicates a rule"""
        self.manager.ensure_drop_rules()
        added = self.manager.ensure_drop_rules()

        self.assertEqual(added, [])
        self.assertEqual(len(self.fw.rules), 2)

    def test_missing_port_rule_restored(self):
        """Only the missing port gets a rule"""
        self.manager.ensure_drop_rules()
        self.fw.rules = [r for r in self.fw.rules if "80" not in r[1]]

        added = self.manager.ensure_drop_rules()

        self.assertEqual(added, [80])
        self.assertEqual(self.fw.drop_rules(80), 1)
        self.assertEqual(self.fw.drop_rules(443), 1)

    def test_check_uses_exit_code(self):
        """The existence check never raises on a missing rule"""
        self.assertFalse(self.manager.rule_exists(80))
        self.manager.ensure_drop_rule(80)
        self.assertTrue(self.manager.rule_exists(80))

    def test_waits_for_xtables_lock(self):
        """A held xtables lock must not read as a missing rule"""
        self.manager.ensure_drop_rules()
        self.fw.xtables_locked = True

        added = self.manager.ensure_drop_rules()

        self.assertEqual(added, [])
        self.assertEqual(len(self.fw.rules), 2)
        for cmd in self.fw.calls:
            if cmd[0] == "iptables":
                self.assertEqual(cmd[1], "-w")

    def test_custom_chain_and_ports(self):
        manager = IptablesManager(ports=(8443,), chain="DOCKER-USER", run=self.fw)

        manager.ensure_drop_rules()

        self.assertEqual(self.fw.rules[0][0], "DOCKER-USER")
        self.assertEqual(self.fw.drop_rules(8443), 1)

    def test_append_failure_propagates(self):
        """Appending against a missing set fails loudly"""
        manager = IptablesManager(set_name="missing", run=FakeFirewall(watch="missing"))

        with self.assertRaises(CommandError):
            manager.ensure_drop_rules()


if __name__ == "__main__":
    unittest.main()
