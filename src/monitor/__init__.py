"""
Sleep monitor engine.

Example:
    from monitor import SessionLifecycleManager

    manager = SessionLifecycleManager(store, source, synthesizer, notifier)
    manager.recover_stale()
    session_id = await manager.start()
"""

from .lifecycle import SessionLifecycleManager, ActiveSession

__all__ = [
    "SessionLifecycleManager",
    "ActiveSession",
]
