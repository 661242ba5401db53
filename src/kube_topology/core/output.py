"""Future-like values for platform-assigned resource fields.

Fields such as a cluster's endpoint or a Service's load balancer address are
only known once the platform has created the resource. An ``Output`` stands
in for such a value while the plan is being declared; downstream resources
register continuations with :meth:`Output.apply` and receive the plain value
once it resolves.

Outputs are backed by :class:`concurrent.futures.Future` and cannot be
cancelled. Every Output remembers the names of the plan resources it was
derived from, which lets the dependency graph verify that each reference is
covered by an explicit edge.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Callable, Dict, FrozenSet, Generic, Iterable, Iterator, List, Optional, TypeVar

T = TypeVar("T")
U = TypeVar("U")


class Output(Generic[T]):
    """A value that becomes available once a resource has been created."""

    def __init__(self, future: Future, resources: Iterable[str] = ()):
        self._future = future
        self.resources: FrozenSet[str] = frozenset(resources)

    @classmethod
    def from_value(cls, value: T) -> "Output[T]":
        """Wrap an already-known value."""
        future: Future = Future()
        future.set_result(value)
        return cls(future)

    @classmethod
    def pending(cls, resource: str) -> "Output[Any]":
        """Create an unresolved output owned by ``resource``."""
        return cls(Future(), {resource})

    @classmethod
    def all(cls, *outputs: "Output[Any]") -> "Output[List[Any]]":
        """Combine several outputs into one that resolves to a list of their values.

        The combined output fails with the first failure among its inputs.
        """
        combined: Future = Future()
        resources = frozenset().union(*(o.resources for o in outputs))
        if not outputs:
            combined.set_result([])
            return cls(combined, resources)

        lock = threading.Lock()
        remaining = [len(outputs)]

        def _on_done(source: Future) -> None:
            with lock:
                if combined.done():
                    return
                error = source.exception()
                if error is not None:
                    combined.set_exception(error)
                    return
                remaining[0] -= 1
                if remaining[0] == 0:
                    combined.set_result([o._future.result() for o in outputs])

        for output in outputs:
            output._future.add_done_callback(_on_done)

        return cls(combined, resources)

    def apply(self, fn: Callable[[T], U]) -> "Output[U]":
        """Chain a transformation that runs once this value resolves.

        Exceptions raised by ``fn`` (or by the source) fail the returned output.
        """
        child: Future = Future()

        def _continue(source: Future) -> None:
            error = source.exception()
            if error is not None:
                child.set_exception(error)
                return
            try:
                child.set_result(fn(source.result()))
            except Exception as e:
                child.set_exception(e)

        self._future.add_done_callback(_continue)
        return Output(child, self.resources)

    def __getitem__(self, key: Any) -> "Output[Any]":
        return self.apply(lambda value: value[key])

    def __await__(self):
        return asyncio.wrap_future(self._future).__await__()

    @property
    def resolved(self) -> bool:
        """True once the value (or a failure) is available."""
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> T:
        """Block until the value is available and return it."""
        return self._future.result(timeout=timeout)

    def _resolve(self, value: T) -> None:
        if not self._future.done():
            self._future.set_result(value)

    def _fail(self, error: BaseException) -> None:
        if not self._future.done():
            self._future.set_exception(error)

    def __repr__(self) -> str:
        state = "resolved" if self.resolved else "pending"
        owners = ",".join(sorted(self.resources)) or "-"
        return f"Output({state}, from={owners})"


def iter_outputs(value: Any) -> Iterator[Output[Any]]:
    """Yield every Output nested in dicts, lists and tuples of ``value``."""
    if isinstance(value, Output):
        yield value
    elif isinstance(value, dict):
        for item in value.values():
            yield from iter_outputs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_outputs(item)


async def resolve_value(value: Any) -> Any:
    """Return ``value`` with every nested Output replaced by its resolved value."""
    if isinstance(value, Output):
        # already-resolved values are read without yielding to the event loop
        if value.resolved:
            return value.result()
        return await value
    if isinstance(value, dict):
        resolved: Dict[Any, Any] = {}
        for key, item in value.items():
            resolved[key] = await resolve_value(item)
        return resolved
    if isinstance(value, list):
        return [await resolve_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple([await resolve_value(item) for item in value])
    return value
