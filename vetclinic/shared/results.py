"""Per-item results for batch operations and batch reads"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .errors import ClinicError, UpstreamStorageError

logger = logging.getLogger(__name__)

K = TypeVar("K")
T = TypeVar("T")


@dataclass
class ItemResult(Generic[K, T]):
    """Outcome of one item: either a value or an error, never both"""

    key: K
    value: Optional[T] = None
    error: Optional[ClinicError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        return self.value if self.ok else default

    def to_dict(self) -> dict:
        if self.ok:
            return {"key": self.key, "success": True, "result": self.value}
        return {
            "key": self.key,
            "success": False,
            "error": self.error.code,
            "detail": self.error.message,
        }


@dataclass
class PartialResult(Generic[K, T]):
    items: list[ItemResult[K, T]] = field(default_factory=list)

    @property
    def succeeded(self) -> list[ItemResult[K, T]]:
        return [item for item in self.items if item.ok]

    @property
    def failed(self) -> list[ItemResult[K, T]]:
        return [item for item in self.items if not item.ok]

    @property
    def has_failures(self) -> bool:
        return any(not item.ok for item in self.items)

    def to_dict(self) -> dict:
        return {
            "total": len(self.items),
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "results": [item.to_dict() for item in self.items],
        }


def collect(
    items: Iterable[Any],
    compute: Callable[[Any], T],
    on_storage_error: Optional[Callable[[], Any]] = None,
    key: Optional[Callable[[Any], K]] = None,
) -> PartialResult[K, T]:
    """
    Run compute() for every item and keep each outcome separately.

    Domain errors and storage errors are captured per item; anything else
    propagates. on_storage_error runs after a storage failure so the caller
    can reset its session before the next item. key() labels an item in the
    outcome (the item itself by default).
    """
    outcome: PartialResult[K, T] = PartialResult()
    for item in items:
        label = key(item) if key else item
        try:
            outcome.items.append(ItemResult(key=label, value=compute(item)))
        except ClinicError as e:
            outcome.items.append(ItemResult(key=label, error=e))
        except SQLAlchemyError as e:
            logger.error(f"❌ Storage error while processing item {label}: {e}")
            if on_storage_error:
                on_storage_error()
            outcome.items.append(ItemResult(key=label, error=UpstreamStorageError()))
    return outcome
