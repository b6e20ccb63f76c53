"""Coordinate resolution for show records.

Order of attempts: the record's own geometry variants (explicit columns,
point object, binary point), then an address lookup in a cache built from the
other records of the same search. Cache hits are never written back to the
store.
"""
from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, Optional

from .geometry import Coordinate, DecodeFailure, decode_field
from .models import ShowRecord

logger = logging.getLogger(__name__)

_PUNCTUATION_RE = re.compile(r"[^\w\s,]|_")
_WHITESPACE_RE = re.compile(r"\s+")
_COMMA_RE = re.compile(r"\s*,\s*")


def normalize_address(text: Optional[str]) -> str:
    if not isinstance(text, str):
        return ""
    out = text.lower()
    out = _PUNCTUATION_RE.sub("", out)
    out = _WHITESPACE_RE.sub(" ", out)
    out = _COMMA_RE.sub(", ", out)
    return out.strip(" ,")


def resolve_geometry(record: ShowRecord) -> Optional[Coordinate]:
    for field in record.geometry:
        result = decode_field(field)
        if isinstance(result, Coordinate):
            return result
        if isinstance(result, DecodeFailure) and result.reason != "no geometry":
            logger.debug("Show %s: %s geometry rejected (%s)", record.id, type(field).__name__, result.reason)
    return None


class AddressCoordinateCache:
    """Normalized address -> coordinate, scoped to one search."""

    def __init__(self) -> None:
        self._by_address: Dict[str, Coordinate] = {}

    @classmethod
    def build(cls, records: Iterable[ShowRecord]) -> "AddressCoordinateCache":
        cache = cls()
        for record in records:
            coordinate = resolve_geometry(record)
            if coordinate is not None:
                cache.add(record.address, coordinate)
        return cache

    def add(self, address: Optional[str], coordinate: Coordinate) -> None:
        key = normalize_address(address)
        if key:
            self._by_address.setdefault(key, coordinate)

    def get(self, address: Optional[str]) -> Optional[Coordinate]:
        key = normalize_address(address)
        if not key:
            return None
        return self._by_address.get(key)

    def __len__(self) -> int:
        return len(self._by_address)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._by_address


def resolve(
    record: ShowRecord,
    address_cache: Optional[AddressCoordinateCache] = None,
) -> Optional[Coordinate]:
    coordinate = resolve_geometry(record)
    if coordinate is not None:
        return coordinate
    if address_cache is None:
        return None
    inferred = address_cache.get(record.address)
    if inferred is not None:
        logger.debug("Show %s: coordinates inferred from address", record.id)
    return inferred
