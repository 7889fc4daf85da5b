"""
Runtime package for event loop integration.

Architecture:
- Arms named timers on the owning asyncio loop
- Drives awaitables returned by actions and timers

Cross-cutting:
- Timers never fire against a finished or failed sequence
"""

from .timers import TimerHandle, TimerRegistry, TimerStatus

__all__ = ["TimerHandle", "TimerRegistry", "TimerStatus"]
