#!/usr/bin/env python3
"""
IP ban management daemon - Entry Point

Keeps the host's ipset block-list in sync with the bans table.

See ipband/ package for implementation details.
"""
import os
import sys

# Add parent directory to path for ipband package import
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from commands.daemon import daemon


def main():
    """Main entry point."""
    if os.geteuid() != 0 and "--version" not in sys.argv[1:] and "--help" not in sys.argv[1:]:
        print("Run as root: sudo python3 bin/ipband.py")
        sys.exit(1)

    daemon()


if __name__ == "__main__":
    main()
