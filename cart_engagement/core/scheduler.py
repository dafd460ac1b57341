"""
Background scheduling primitives
One-shot and recurring jobs behind cancelable handles
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)

JobCallback = Callable[[], Awaitable[None]]

class ScheduledHandle(ABC):
    """Cancelable reference to a scheduled job"""
    
    def __init__(self, name: str):
        self.name = name
        
    @abstractmethod
    def cancel(self) -> bool:
        """Cancel the job; returns False if it already finished"""
        
    @property
    @abstractmethod
    def cancelled(self) -> bool:
        ...
        
    @property
    @abstractmethod
    def done(self) -> bool:
        ...

class Scheduler(ABC):
    """Scheduler abstraction used by the background activities"""
    
    @abstractmethod
    def call_later(
        self,
        delay: float,
        callback: JobCallback,
        name: Optional[str] = None
    ) -> ScheduledHandle:
        """Run callback once after delay seconds"""
        
    @abstractmethod
    def call_every(
        self,
        interval: float,
        callback: JobCallback,
        name: Optional[str] = None
    ) -> ScheduledHandle:
        """Run callback every interval seconds until cancelled"""
        
    @abstractmethod
    async def shutdown(self) -> None:
        """Cancel all pending jobs and wait for them to unwind"""

class TaskHandle(ScheduledHandle):
    """Handle backed by an asyncio task"""
    
    def __init__(self, name: str, task: asyncio.Task):
        super().__init__(name)
        self._task = task
        
    def cancel(self) -> bool:
        return self._task.cancel()
        
    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()
        
    @property
    def done(self) -> bool:
        return self._task.done()

class AsyncioScheduler(Scheduler):
    """Scheduler running jobs as tasks on the current event loop"""
    
    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        
    @property
    def pending(self) -> int:
        return sum(1 for task in self._tasks if not task.done())
        
    def call_later(
        self,
        delay: float,
        callback: JobCallback,
        name: Optional[str] = None
    ) -> ScheduledHandle:
        return self._spawn(self._run_later(max(delay, 0), callback, name), name)
        
    def call_every(
        self,
        interval: float,
        callback: JobCallback,
        name: Optional[str] = None
    ) -> ScheduledHandle:
        if interval <= 0:
            raise ValueError("interval must be positive")
        return self._spawn(self._run_every(interval, callback, name), name)
        
    async def shutdown(self) -> None:
        self._closed = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info(f"Scheduler stopped, {len(tasks)} job(s) cancelled")
        
    def _spawn(self, coro: Awaitable[None], name: Optional[str]) -> ScheduledHandle:
        if self._closed:
            coro.close()
            raise RuntimeError("Scheduler has been shut down")
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return TaskHandle(name or task.get_name(), task)
        
    async def _run_later(
        self,
        delay: float,
        callback: JobCallback,
        name: Optional[str]
    ) -> None:
        await asyncio.sleep(delay)
        await self._invoke(callback, name)
        
    async def _run_every(
        self,
        interval: float,
        callback: JobCallback,
        name: Optional[str]
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._invoke(callback, name)
            
    async def _invoke(self, callback: JobCallback, name: Optional[str]) -> None:
        try:
            await callback()
        except Exception:
            # Jobs never propagate; the next run starts clean
            logger.exception(f"Scheduled job {name or callback!r} failed")
