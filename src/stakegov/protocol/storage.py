"""
stakegov/protocol/storage.py

Keyed realtime store used by the stake ledger and governance registry.

Data is a tree of JSON-compatible values addressed by '/'-separated
paths, the same layout as a realtime database:

    stakes/{wallet_key}/entries/{entry_id}
    governanceProposals/{proposal_id}

Two backends are provided:
1. MemoryStore - In-process tree, optional simulated round-trip latency
2. FileStore   - MemoryStore persisted to a JSON file after every write

Mutations that depend on the current value of a record go through
transaction(), which evaluates the transform and commits its result
without any other write interleaving.
"""

import os
import json
import copy
import time
import uuid
import inspect
import asyncio
import logging
from pathlib import Path
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import StoreError

logger = logging.getLogger("stakegov.protocol.storage")


# ============================================================================
# CONSTANTS
# ============================================================================

DEFAULT_STORE_PATH = Path.home() / ".stakegov" / "ledger.json"

MAX_PUSH_SEQUENCE = 0xFFFF                  # Four hex digits in a push id

ChangeCallback = Callable[[Any], Any]
Transform = Callable[[Any], Any]
Unsubscribe = Callable[[], None]


def split_path(path: str) -> List[str]:
    """Split a store path into its segments, ignoring empty ones."""
    return [part for part in path.split("/") if part]


def join_path(*parts: str) -> str:
    """Join segments into a store path."""
    return "/".join(p.strip("/") for p in parts if p and p.strip("/"))


def generate_push_id(now: Optional[float] = None, sequence: int = 0) -> str:
    """
    Generate a chronologically sortable unique id.

    Millisecond timestamp, then a per-millisecond sequence, then random
    hex so that ids from different processes never collide.
    """
    millis = int((time.time() if now is None else now) * 1000)
    return _format_push_id(millis, sequence)


def _format_push_id(millis: int, sequence: int) -> str:
    return f"{millis:012x}{sequence:04x}{uuid.uuid4().hex[:6]}"


# ============================================================================
# STORE CONTRACT
# ============================================================================

class StoreAdapter(ABC):
    """Abstract keyed, subscribable store."""

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        """Get the value at path, or None."""
        pass

    @abstractmethod
    async def put(self, path: str, value: Any) -> None:
        """Overwrite the value at path. None deletes it."""
        pass

    @abstractmethod
    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Atomically merge named fields into the record at path."""
        pass

    @abstractmethod
    async def append(self, collection_path: str, value: Any) -> str:
        """Insert value under a new ordered id and return the id."""
        pass

    @abstractmethod
    async def transaction(self, path: str, transform: Transform) -> Tuple[bool, Any]:
        """
        Atomic read-modify-write.

        transform receives a copy of the current value and returns the
        new value, or None to abort. Exceptions raised by transform abort
        the transaction and propagate.

        Returns:
            (committed, value) where value is the committed value, or the
            current value if aborted
        """
        pass

    @abstractmethod
    async def list_keys(self, path: str) -> List[str]:
        """List the child keys of a collection, in order."""
        pass

    @abstractmethod
    async def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        """
        Register for pushes of the value at path.

        on_change is called with the current value immediately and again
        after every committed write that touches path.

        Returns:
            Function that removes the subscription
        """
        pass


# ============================================================================
# MEMORY STORE
# ============================================================================

class MemoryStore(StoreAdapter):
    """
    In-process store.

    Writes are serialized by an asyncio.Lock. latency, if set, is awaited
    on every operation to stand in for a network round trip, which lets
    tests exercise interleaved callers.
    """

    def __init__(self, latency: float = 0.0):
        self._root: Dict[str, Any] = {}
        self._lock_obj: Optional[asyncio.Lock] = None
        self._latency = latency
        self._subscribers: Dict[int, Tuple[List[str], ChangeCallback]] = {}
        self._next_subscriber = 0
        self._last_push_millis = 0
        self._push_sequence = 0
        self._writes = 0

    @property
    def _lock(self) -> asyncio.Lock:
        # Created on first use so it binds to the running event loop
        if self._lock_obj is None:
            self._lock_obj = asyncio.Lock()
        return self._lock_obj

    # ------------------------------------------------------------------------
    # Tree helpers
    # ------------------------------------------------------------------------

    def _read(self, parts: List[str]) -> Optional[Any]:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _write(self, parts: List[str], value: Any) -> None:
        if not parts:
            if value is not None and not isinstance(value, dict):
                raise StoreError("Root value must be a mapping")
            self._root = copy.deepcopy(value) if value is not None else {}
            self._after_write()
            self._writes += 1
            return

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = {}
                node[part] = child
            node = child

        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = copy.deepcopy(value)
        self._after_write()
        self._writes += 1

    def _after_write(self) -> None:
        """Hook for persistent subclasses."""
        pass

    async def _round_trip(self) -> None:
        if self._latency > 0:
            await asyncio.sleep(self._latency)

    def _next_push_id(self) -> str:
        now = time.time()
        millis = int(now * 1000)
        if millis <= self._last_push_millis:
            millis = self._last_push_millis
            self._push_sequence += 1
            if self._push_sequence > MAX_PUSH_SEQUENCE:
                millis += 1
                self._push_sequence = 0
        else:
            self._push_sequence = 0
        self._last_push_millis = millis
        return _format_push_id(millis, self._push_sequence)

    # ------------------------------------------------------------------------
    # StoreAdapter
    # ------------------------------------------------------------------------

    async def get(self, path: str) -> Optional[Any]:
        await self._round_trip()
        return copy.deepcopy(self._read(split_path(path)))

    async def put(self, path: str, value: Any) -> None:
        parts = split_path(path)
        async with self._lock:
            await self._round_trip()
            self._write(parts, value)
        logger.debug(f"put {path}")
        await self._notify(parts)

    async def update(self, path: str, fields: Dict[str, Any]) -> None:
        parts = split_path(path)
        async with self._lock:
            await self._round_trip()
            current = self._read(parts)
            merged = dict(current) if isinstance(current, dict) else {}
            for key, value in fields.items():
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            self._write(parts, merged)
        logger.debug(f"update {path}: {sorted(fields)}")
        await self._notify(parts)

    async def append(self, collection_path: str, value: Any) -> str:
        parts = split_path(collection_path)
        async with self._lock:
            await self._round_trip()
            key = self._next_push_id()
            self._write(parts + [key], value)
        logger.debug(f"append {collection_path}/{key}")
        await self._notify(parts + [key])
        return key

    async def transaction(self, path: str, transform: Transform) -> Tuple[bool, Any]:
        parts = split_path(path)
        async with self._lock:
            await self._round_trip()
            current = copy.deepcopy(self._read(parts))
            result = transform(copy.deepcopy(current))
            if result is None:
                logger.debug(f"transaction {path}: aborted")
                return (False, current)
            self._write(parts, result)
        logger.debug(f"transaction {path}: committed")
        await self._notify(parts)
        return (True, copy.deepcopy(result))

    async def list_keys(self, path: str) -> List[str]:
        await self._round_trip()
        node = self._read(split_path(path))
        if not isinstance(node, dict):
            return []
        return sorted(node.keys())

    async def subscribe(self, path: str, on_change: ChangeCallback) -> Unsubscribe:
        parts = split_path(path)
        sub_id = self._next_subscriber
        self._next_subscriber += 1
        self._subscribers[sub_id] = (parts, on_change)
        logger.debug(f"subscribe {path} (#{sub_id})")

        def unsubscribe() -> None:
            if self._subscribers.pop(sub_id, None) is not None:
                logger.debug(f"unsubscribe {path} (#{sub_id})")

        await self._deliver(on_change, copy.deepcopy(self._read(parts)))
        return unsubscribe

    # ------------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------------

    async def _notify(self, changed: List[str]) -> None:
        for parts, callback in list(self._subscribers.values()):
            depth = min(len(parts), len(changed))
            if parts[:depth] != changed[:depth]:
                continue
            await self._deliver(callback, copy.deepcopy(self._read(parts)))

    async def _deliver(self, callback: ChangeCallback, value: Any) -> None:
        try:
            result = callback(value)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Subscriber callback error: {e}")

    def get_stats(self) -> dict:
        """Get store statistics."""
        return {
            "subscribers": len(self._subscribers),
            "writes": self._writes,
            "latency": self._latency,
        }


# ============================================================================
# FILE STORE
# ============================================================================

class FileStore(MemoryStore):
    """
    MemoryStore persisted to a single JSON document.

    The file is rewritten atomically (temp file + rename) after every
    committed write, so a crash leaves either the old or the new tree.
    """

    def __init__(self, path: Optional[Path] = None, latency: float = 0.0):
        super().__init__(latency=latency)
        self.path = Path(path) if path else DEFAULT_STORE_PATH
        self._root = self._load()

    def _write(self, parts: List[str], value: Any) -> None:
        # Keep memory and disk in step when the save fails
        previous = copy.deepcopy(self._root)
        try:
            super()._write(parts, value)
        except StoreError:
            self._root = previous
            raise

    def _load(self) -> Dict[str, Any]:
        """Load the tree from disk."""
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to load store {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Store {self.path} does not contain a JSON object")
        logger.debug(f"Loaded store from {self.path}")
        return data

    def _after_write(self) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w") as f:
                json.dump(self._root, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreError(f"Failed to write store {self.path}: {e}") from e
