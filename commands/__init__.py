"""
ipband CLI Commands

This module contains CLI command implementations for the ipband tool.
"""

__all__ = ["daemon"]

from commands.daemon import daemon
