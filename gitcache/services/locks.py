"""按缓存键的互斥锁

同一镜像上的 init / fetch / rev-parse / archive 不允许交错执行。
进程内用 threading.Lock（按键懒创建），跨进程（gunicorn 多 worker）
再叠加 <cache_root>/<key>.lock 上的文件锁。
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from gitcache.core.exceptions import WorkspaceError

logger = logging.getLogger(__name__)


class KeyedLocks:
    """缓存键 → 锁"""

    def __init__(self, lock_root: Path, timeout: float = -1) -> None:
        self.lock_root = Path(lock_root)
        self.timeout = timeout
        # 无人持有或等待的键自动回收
        self._locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def _thread_lock(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def lock_path(self, key: str) -> Path:
        return self.lock_root / f"{key}.lock"

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """持有 key 对应的进程内锁与文件锁，超时抛 WorkspaceError"""
        thread_lock = self._thread_lock(key)
        if not thread_lock.acquire(timeout=self.timeout):
            raise WorkspaceError(f"等待工作空间锁超时: {key}")
        try:
            try:
                self.lock_root.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise WorkspaceError(f"无法创建缓存目录 {self.lock_root}: {e}") from e
            file_lock = FileLock(str(self.lock_path(key)), timeout=self.timeout)
            try:
                file_lock.acquire()
            except Timeout as e:
                raise WorkspaceError(f"等待工作空间文件锁超时: {key}") from e
            except OSError as e:
                raise WorkspaceError(f"无法获取工作空间文件锁 {key}: {e}") from e
            try:
                yield
            finally:
                file_lock.release()
        finally:
            thread_lock.release()

    def __len__(self) -> int:
        return len(self._locks)
