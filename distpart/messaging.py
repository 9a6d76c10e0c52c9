"""Message passing between ranks of a process group.

Ranks are threads of one process sharing a group object; collective
operations are synchronised with a barrier and point-to-point messages go
through per-channel queues.
"""

from __future__ import annotations

import copy
import functools
import itertools
import queue
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Hashable


class ReduceOp(Enum):
    """Reduction operations for ``allreduce`` and ``reduce``."""

    SUM = "sum"
    MAX = "max"
    MIN = "min"
    MINLOC = "minloc"
    MAXLOC = "maxloc"


_LOC_OPS = (ReduceOp.MINLOC, ReduceOp.MAXLOC)


def _combine(op: ReduceOp, a: Any, b: Any) -> Any:
    if op is ReduceOp.SUM:
        return a + b
    if op is ReduceOp.MAX:
        return max(a, b)
    if op is ReduceOp.MIN:
        return min(a, b)
    if op is ReduceOp.MINLOC:
        return a if (a[0], a[1]) <= (b[0], b[1]) else b
    if a[0] > b[0] or (a[0] == b[0] and a[1] <= b[1]):
        return a
    return b


def _check_loc(op: ReduceOp, item: Any) -> None:
    if op in _LOC_OPS and not (isinstance(item, tuple) and len(item) == 2):
        raise TypeError(f"{op.name} expects (value, index) pairs, got {item!r}")


def _reduce_all(op: ReduceOp, contributions: list[Any]) -> Any:
    first = contributions[0]
    elementwise = isinstance(first, list) or (
        isinstance(first, tuple) and op not in _LOC_OPS
    )
    if not elementwise:
        for item in contributions:
            _check_loc(op, item)
        return functools.reduce(functools.partial(_combine, op), contributions)

    length = len(first)
    if any(len(c) != length for c in contributions):
        raise ValueError("reduction buffers differ in length between ranks")
    result = []
    for column in zip(*contributions):
        for item in column:
            _check_loc(op, item)
        result.append(functools.reduce(functools.partial(_combine, op), column))
    return result


class Communicator(ABC):
    """The operations a rank may perform on its process group."""

    @property
    @abstractmethod
    def rank(self) -> int:
        """This process's rank within the group."""

    @property
    @abstractmethod
    def size(self) -> int:
        """Number of ranks in the group."""

    @abstractmethod
    def allreduce(self, values, op): ...

    @abstractmethod
    def reduce(self, values, op, root): ...

    @abstractmethod
    def allgather(self, value): ...

    @abstractmethod
    def allgatherv(self, values): ...

    @abstractmethod
    def alltoall(self, values): ...

    @abstractmethod
    def bcast(self, value, root): ...

    @abstractmethod
    def scatterv(self, chunks, root): ...

    @abstractmethod
    def send(self, obj, dest, tag=0): ...

    @abstractmethod
    def recv(self, source, tag=0): ...

    @abstractmethod
    def barrier(self): ...

    @abstractmethod
    def split(self, color, key=0): ...

    @abstractmethod
    def dup(self): ...


class _Group:
    """State shared by all ranks of one thread group."""

    def __init__(self, size: int) -> None:
        self.size = size
        self.barrier = threading.Barrier(size)
        self.slots: list[Any] = [None] * size
        self.shared: Any = None
        self.lock = threading.Lock()
        self.mailboxes: dict[tuple[int, int, int], queue.Queue] = {}
        self.aborted = threading.Event()
        self.children: list[_Group] = []

    def mailbox(self, source: int, dest: int, tag: int) -> queue.Queue:
        with self.lock:
            return self.mailboxes.setdefault((source, dest, tag), queue.Queue())

    def spawn(self, size: int) -> _Group:
        child = _Group(size)
        with self.lock:
            self.children.append(child)
            if self.aborted.is_set():
                child.abort()
        return child

    def abort(self) -> None:
        self.aborted.set()
        self.barrier.abort()
        with self.lock:
            children = list(self.children)
        for child in children:
            child.abort()


class ThreadCommunicator(Communicator):
    """A rank of a group whose members run as threads of this process."""

    _POLL_SECONDS = 0.05

    def __init__(self, group: _Group, rank: int) -> None:
        self._group = group
        self._rank = rank

    @property
    def rank(self) -> int:
        return self._rank

    @property
    def size(self) -> int:
        return self._group.size

    def __repr__(self) -> str:
        return f"ThreadCommunicator(rank={self._rank}, size={self.size})"

    def _check_rank(self, other: int, what: str) -> None:
        if not 0 <= other < self.size:
            raise ValueError(f"{what} {other} outside group of size {self.size}")

    def _exchange(
        self, value: Any, make_shared: Callable[[list[Any]], Any] | None = None
    ) -> tuple[list[Any], Any]:
        group = self._group
        group.slots[self._rank] = copy.deepcopy(value)
        group.barrier.wait()
        snapshot = list(group.slots)
        if self._rank == 0 and make_shared is not None:
            group.shared = make_shared(snapshot)
        group.barrier.wait()
        return snapshot, group.shared

    def allreduce(self, values, op):
        """Combine every rank's values with ``op``; all ranks get the result."""
        snapshot, _ = self._exchange(values)
        return _reduce_all(op, snapshot)

    def reduce(self, values, op, root):
        """Combine every rank's values with ``op``; only ``root`` gets the result."""
        self._check_rank(root, "root")
        snapshot, _ = self._exchange(values)
        result = _reduce_all(op, snapshot)
        return result if self._rank == root else None

    def allgather(self, value):
        """Return the values of all ranks, in rank order."""
        snapshot, _ = self._exchange(value)
        return snapshot

    def allgatherv(self, values):
        """Concatenate every rank's sequence, in rank order."""
        snapshot, _ = self._exchange(list(values))
        return list(itertools.chain.from_iterable(snapshot))

    def alltoall(self, values):
        """Send ``values[j]`` to rank ``j``; return what each rank sent here."""
        values = list(values)
        if len(values) != self.size:
            raise ValueError(
                f"alltoall needs {self.size} entries, got {len(values)}"
            )
        snapshot, _ = self._exchange(values)
        return [snapshot[source][self._rank] for source in range(self.size)]

    def bcast(self, value, root):
        """Return ``root``'s value on every rank."""
        self._check_rank(root, "root")
        snapshot, _ = self._exchange(value if self._rank == root else None)
        return snapshot[root]

    def scatterv(self, chunks, root):
        """Hand chunk ``i`` of ``root``'s list to rank ``i``."""
        self._check_rank(root, "root")
        snapshot, _ = self._exchange(
            list(chunks) if self._rank == root and chunks is not None else None
        )
        all_chunks = snapshot[root]
        if all_chunks is None or len(all_chunks) != self.size:
            raise ValueError(f"scatterv root must supply {self.size} chunks")
        return list(all_chunks[self._rank])

    def send(self, obj, dest, tag=0):
        """Deliver a copy of ``obj`` to rank ``dest``."""
        self._check_rank(dest, "destination")
        self._group.mailbox(self._rank, dest, tag).put(copy.deepcopy(obj))

    def recv(self, source, tag=0):
        """Wait for and return the next message from ``source`` with ``tag``."""
        self._check_rank(source, "source")
        box = self._group.mailbox(source, self._rank, tag)
        while True:
            try:
                return box.get(timeout=self._POLL_SECONDS)
            except queue.Empty:
                if self._group.aborted.is_set():
                    raise threading.BrokenBarrierError("group was aborted")

    def barrier(self):
        """Wait until every rank of the group has reached this point."""
        self._group.barrier.wait()

    def split(self, color, key=0):
        """Partition the group by ``color``; order new ranks by ``(key, rank)``.

        Ranks passing ``color=None`` take part but get ``None`` back.
        """

        def make_groups(entries: list[tuple[Hashable, int]]) -> dict:
            counts: dict[Hashable, int] = {}
            for entry_color, _ in entries:
                if entry_color is not None:
                    counts[entry_color] = counts.get(entry_color, 0) + 1
            return {c: self._group.spawn(n) for c, n in counts.items()}

        snapshot, groups = self._exchange((color, key), make_groups)
        if color is None:
            return None
        members = sorted(
            (entry_key, r)
            for r, (entry_color, entry_key) in enumerate(snapshot)
            if entry_color == color
        )
        new_rank = [r for _, r in members].index(self._rank)
        return ThreadCommunicator(groups[color], new_rank)

    def dup(self):
        """Return a new communicator over the same ranks."""
        return self.split(0, self._rank)


def create_thread_group(size):
    """Create the communicators of a group of ``size`` ranks."""
    if size < 1:
        raise ValueError("a group needs at least one rank")
    group = _Group(size)
    return [ThreadCommunicator(group, rank) for rank in range(size)]


def serial_communicator():
    """Return the communicator of a group with a single rank."""
    return create_thread_group(1)[0]


def run_parallel(size, func):
    """Run ``func(comm)`` on ``size`` ranks in threads; return results by rank.

    If any rank raises, the group is aborted and the first error is re-raised.
    """
    comms = create_thread_group(size)
    results: list[Any] = [None] * size
    errors: list[BaseException | None] = [None] * size

    def worker(comm: ThreadCommunicator) -> None:
        try:
            results[comm.rank] = func(comm)
        except BaseException as exc:  # noqa: BLE001 - re-raised by the caller
            errors[comm.rank] = exc
            comm._group.abort()

    threads = [
        threading.Thread(target=worker, args=(comm,), daemon=True) for comm in comms
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    raised = [e for e in errors if e is not None]
    primary = [e for e in raised if not isinstance(e, threading.BrokenBarrierError)]
    if primary:
        raise primary[0]
    if raised:
        raise raised[0]
    return results