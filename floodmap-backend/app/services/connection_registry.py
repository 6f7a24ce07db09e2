"""
Live socket registry.

Maps a connection identity (user id, camera id or signaling peer id) to the
socket handle serving it. The registry borrows handles, it never closes them.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)

class Role(str, Enum):
    USER = "user"
    CAMERA = "camera"
    SIGNALING_PEER = "signaling-peer"

@dataclass
class Connection:
    id: str
    role: Role
    handle: Any

class ConnectionRegistry:
    """
    Process-wide connection table.

    Operations are synchronous and only ever run on the event loop thread, so
    no locking is needed. A registry shared across threads would need a mutex
    around both dicts.
    """

    def __init__(self):
        self._by_id: Dict[str, Connection] = {}
        self._by_handle: Dict[int, str] = {}

    def register(self, conn_id: str, role: Role, handle: Any) -> Connection:
        """Store a connection; an existing entry with the same id is replaced"""
        previous = self._by_id.get(conn_id)
        if previous is not None and previous.handle is not handle:
            logger.info(f"Connection id {conn_id} re-registered, replacing previous {previous.role.value} socket")
            self._by_handle.pop(id(previous.handle), None)

        # same socket re-registering under a new identity
        old_id = self._by_handle.get(id(handle))
        if old_id is not None and old_id != conn_id:
            self._by_id.pop(old_id, None)

        conn = Connection(id=conn_id, role=role, handle=handle)
        self._by_id[conn_id] = conn
        self._by_handle[id(handle)] = conn_id
        return conn

    def unregister(self, handle: Any) -> Optional[Connection]:
        """Remove the entry owning this handle; no-op when already gone"""
        conn_id = self._by_handle.pop(id(handle), None)
        if conn_id is None:
            return None
        conn = self._by_id.get(conn_id)
        if conn is None or conn.handle is not handle:
            return None
        del self._by_id[conn_id]
        return conn

    def find_by_id(self, conn_id: str) -> Optional[Any]:
        conn = self._by_id.get(conn_id)
        return conn.handle if conn else None

    def get(self, conn_id: str) -> Optional[Connection]:
        return self._by_id.get(conn_id)

    def connection_for(self, handle: Any) -> Optional[Connection]:
        conn_id = self._by_handle.get(id(handle))
        return self._by_id.get(conn_id) if conn_id is not None else None

    def find_by_role(self, role: Role) -> List[Any]:
        return [c.handle for c in self._by_id.values() if c.role == role]

    def count_by_role(self) -> Dict[str, int]:
        counts = {r.value: 0 for r in Role}
        for conn in self._by_id.values():
            counts[conn.role.value] += 1
        return counts

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._by_id.values()))
