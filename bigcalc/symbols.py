import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator, Optional

from bigcalc.config import SYMBOL_TABLE_CAPACITY, SYMBOL_TABLE_LOAD_FACTOR

logger = logging.getLogger(__name__)

FNV_OFFSET_BASIS = 2166136261
FNV_PRIME = 16777619


def fnv1a_32(data: bytes) -> int:
    h = FNV_OFFSET_BASIS
    for byte in data:
        h ^= byte
        h = (h * FNV_PRIME) & 0xFFFFFFFF
    return h


@dataclass(eq=False)
class Symbol:
    name: str
    value: Decimal
    next: Optional["Symbol"] = None


class SymbolTable:
    """Variable bindings: separate chaining over a bucket array.

    New symbols are prepended to their bucket. Before a new name would push the
    load factor over the threshold, the bucket array doubles and every symbol is
    rehashed. Updating an existing name never moves it or resizes the table.
    """

    def __init__(self, capacity: int = SYMBOL_TABLE_CAPACITY, load_factor: float = SYMBOL_TABLE_LOAD_FACTOR) -> None:
        self.buckets: list[Optional[Symbol]] = [None] * capacity
        self.count = 0
        self.load_factor_threshold = load_factor

    @property
    def capacity(self) -> int:
        return len(self.buckets)

    @property
    def load_factor(self) -> float:
        return self.count / self.capacity

    def _index(self, name: str, capacity: Optional[int] = None) -> int:
        return fnv1a_32(name.encode("utf-8")) % (capacity or self.capacity)

    def _find(self, name: str, bucket_idx: int) -> Optional[Symbol]:
        current = self.buckets[bucket_idx]
        while current is not None:
            if len(current.name) == len(name) and current.name == name:
                return current
            current = current.next
        return None

    def get(self, name: str) -> Optional[Symbol]:
        symbol = self._find(name, self._index(name))
        if symbol is None:
            logger.debug("Symbol %r not found", name)
        return symbol

    def insert(self, name: str, value: Decimal) -> Symbol:
        existing = self._find(name, self._index(name))
        if existing is not None:
            logger.debug("Symbol updated: %s = %s", name, value)
            existing.value = value
            return existing

        if (self.count + 1) / self.capacity > self.load_factor_threshold:
            self._resize(self.capacity * 2)

        bucket_idx = self._index(name)
        symbol = Symbol(name=name, value=value, next=self.buckets[bucket_idx])
        self.buckets[bucket_idx] = symbol
        self.count += 1
        logger.debug("Symbol inserted: %s = %s (bucket %d, count %d)", name, value, bucket_idx, self.count)
        return symbol

    def _resize(self, new_capacity: int) -> None:
        logger.debug("Resizing symbol table %d -> %d (count %d)", self.capacity, new_capacity, self.count)
        new_buckets: list[Optional[Symbol]] = [None] * new_capacity
        for head in self.buckets:
            current = head
            while current is not None:
                next_symbol = current.next
                new_idx = self._index(current.name, new_capacity)
                current.next = new_buckets[new_idx]
                new_buckets[new_idx] = current
                current = next_symbol
        self.buckets = new_buckets

    def clear(self) -> None:
        logger.debug("Clearing %d symbols", self.count)
        self.buckets = [None] * self.capacity
        self.count = 0

    def bucket_sizes(self) -> list[int]:
        sizes = []
        for head in self.buckets:
            size = 0
            current = head
            while current is not None:
                size += 1
                current = current.next
            sizes.append(size)
        return sizes

    def __iter__(self) -> Iterator[Symbol]:
        for head in self.buckets:
            current = head
            while current is not None:
                yield current
                current = current.next

    def __len__(self) -> int:
        return self.count

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None
