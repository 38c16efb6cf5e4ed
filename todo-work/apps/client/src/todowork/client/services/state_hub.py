"""StateHub -- 内存中快照广播器

持有当前不可变快照；每个异步订阅者持有一个 asyncio.Queue，
每次 publish 都把新快照推送到所有队列。队列写满的订阅者会被移除。
同进程内需要同步响应的组件（如 AppShell）可以注册 watcher 回调。
"""

import asyncio
from collections.abc import Callable
from typing import Generic, TypeVar

import structlog
from todowork.core.config import SNAPSHOT_QUEUE_MAXSIZE

log = structlog.get_logger()

T = TypeVar("T")


class StateHub(Generic[T]):
    """快照广播器 -- 基于 asyncio.Queue 的发布/订阅模式"""

    def __init__(
        self,
        initial: T,
        name: str = "",
        queue_maxsize: int = SNAPSHOT_QUEUE_MAXSIZE,
    ) -> None:
        self._snapshot = initial
        self._name = name
        self._queue_maxsize = queue_maxsize
        self._subscribers: set[asyncio.Queue] = set()
        self._watchers: list[Callable[[T], None]] = []

    @property
    def snapshot(self) -> T:
        """当前快照（只读）"""
        return self._snapshot

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, replay: bool = True) -> asyncio.Queue:
        """订阅快照流

        Args:
            replay: True 时队列中预先放入当前快照

        Returns:
            asyncio.Queue 实例，后续每个新快照都会被推送到此队列
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_maxsize)
        if replay:
            queue.put_nowait(self._snapshot)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        """取消订阅"""
        self._subscribers.discard(queue)

    def watch(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """注册同步回调，publish 时按注册顺序调用

        Returns:
            取消注册函数
        """
        self._watchers.append(callback)

        def _unwatch() -> None:
            if callback in self._watchers:
                self._watchers.remove(callback)

        return _unwatch

    def publish(self, value: T) -> None:
        """更新当前快照并广播给所有订阅者"""
        self._snapshot = value

        for callback in list(self._watchers):
            callback(value)

        dead_queues = []
        for queue in self._subscribers:
            try:
                queue.put_nowait(value)
            except asyncio.QueueFull:
                dead_queues.append(queue)

        # 清理已满的队列
        for q in dead_queues:
            self._subscribers.discard(q)
            log.warning("snapshot_subscriber_dropped", hub=self._name)
