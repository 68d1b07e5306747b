"""Workers, scheduler and their shared lifecycle."""

from .lifecycle import Lifecycle, LifecycleState
from .scheduler import Scheduler
from .thread_pool import ThreadPoolManager
from .worker import Worker

__all__ = ["Lifecycle", "LifecycleState", "Scheduler", "ThreadPoolManager", "Worker"]
