"""Arena domain services: registry, queue, matches and sweeps.

This package holds the match orchestration core. Nothing in here talks to
Socket.IO directly: every operation records its visible effects in an
Outbox, and the socket handlers replay those commands onto the transport.
"""

from .orchestrator import Arena

__all__ = ['Arena']
