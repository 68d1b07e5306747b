from __future__ import annotations

import pytest

from cosmos_sync.worker import Lifecycle, LifecycleState, ThreadPoolManager


def test_thread_pool_manager_isolates_executors() -> None:
    manager = ThreadPoolManager()
    alpha = manager.get("position", max_workers=1)
    assert manager.get("position") is alpha
    beta = manager.get("catalog")
    assert beta is not alpha
    assert manager.names == ["catalog", "position"]
    assert alpha.submit(lambda: 41 + 1).result(timeout=1) == 42
    manager.shutdown()
    assert manager.names == []
    with pytest.raises(RuntimeError):
        manager.get("position")


def test_lifecycle_transitions_are_guarded() -> None:
    lifecycle = Lifecycle()
    assert lifecycle.state is LifecycleState.IDLE
    assert not lifecycle.transition([LifecycleState.RUNNING], LifecycleState.STOPPING)
    assert lifecycle.transition([LifecycleState.IDLE], LifecycleState.RUNNING)
    assert lifecycle.state is LifecycleState.RUNNING
    assert lifecycle.force(LifecycleState.STOPPED) is LifecycleState.RUNNING
    assert lifecycle.state is LifecycleState.STOPPED
