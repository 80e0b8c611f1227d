"""Debian workstation setup (Python-first, step-driven).

Core design goals:
- Refuse to start unless run as root for a resolvable login user
- Detect the desktop environment once; never guess
- Idempotent, individually verified steps
- Bounded retries for network-bound work
- Scratch space that is always cleaned up, including on SIGINT/SIGTERM
- Centralized logging and a per-run report
"""

__all__ = []
