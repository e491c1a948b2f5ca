"""Facilitator deployment harness (Python-first, state-driven).

Core design goals:
- Resumable installer with crash-consistent step markers
- Idempotent steps
- Config-checksum driven reloads that restart only affected services
- Centralized logging
"""

__all__ = []
