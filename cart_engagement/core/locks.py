"""Per-key asyncio locks"""

import asyncio
from typing import Dict

class KeyedLock:
    """Hands out one asyncio.Lock per identifier"""
    
    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        
    def __call__(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
        
    def discard(self, key: str) -> None:
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]
