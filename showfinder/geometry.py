"""Point geometry decoding.

Show rows carry their location in one of several encodings: explicit
latitude/longitude columns, a GeoJSON-like point object, or a PostGIS
geography rendered as hex (E)WKB. Each encoding is a variant of
``GeometryField`` with its own decoder; decoders return ``DecodeFailure``
instead of raising so a single bad row never aborts a search.
"""
from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

WKB_POINT = 1
WKB_SRID_FLAG = 0x20000000

_HEADER_SIZE = 5
_SRID_SIZE = 4
_POINT_SIZE = 16


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(frozen=True)
class DecodeFailure:
    reason: str


DecodeResult = Union[Coordinate, DecodeFailure]


@dataclass(frozen=True)
class ExplicitFields:
    """Top-level ``latitude``/``longitude`` columns."""

    latitude: Any
    longitude: Any


@dataclass(frozen=True)
class PointObject:
    """Structured point, e.g. ``{"type": "Point", "coordinates": [lng, lat]}``."""

    value: Any


@dataclass(frozen=True)
class BinaryPoint:
    """Hex-encoded WKB or EWKB point."""

    hex: str


@dataclass(frozen=True)
class Absent:
    pass


GeometryField = Union[ExplicitFields, PointObject, BinaryPoint, Absent]

ABSENT = Absent()


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def make_coordinate(latitude: Any, longitude: Any) -> DecodeResult:
    if not is_finite_number(latitude) or not is_finite_number(longitude):
        return DecodeFailure("non-finite coordinate")
    if abs(latitude) > 90 or abs(longitude) > 180:
        return DecodeFailure(f"coordinate out of range ({latitude}, {longitude})")
    return Coordinate(float(latitude), float(longitude))


def geometry_fields(row: Mapping[str, Any]) -> Tuple[GeometryField, ...]:
    """Return the geometry variants present on a row, in priority order.

    A row may carry several encodings at once (a view exposing both
    latitude/longitude and the raw geography column); every present one is
    kept so the resolver can fall through when an earlier one is malformed.
    """
    fields: List[GeometryField] = []
    if row.get("latitude") is not None or row.get("longitude") is not None:
        fields.append(ExplicitFields(row.get("latitude"), row.get("longitude")))
    raw = row.get("coordinates")
    if raw is None:
        raw = row.get("location_geom")
    if isinstance(raw, Mapping):
        fields.append(PointObject(raw))
    elif isinstance(raw, str) and raw.strip():
        fields.append(BinaryPoint(raw))
    if not fields:
        return (ABSENT,)
    return tuple(fields)


def decode_field(field: GeometryField) -> DecodeResult:
    if isinstance(field, ExplicitFields):
        return make_coordinate(field.latitude, field.longitude)
    if isinstance(field, PointObject):
        return decode_point_object(field.value)
    if isinstance(field, BinaryPoint):
        return decode_wkb_hex(field.hex)
    return DecodeFailure("no geometry")


def decode(raw: Any) -> DecodeResult:
    """Decode any supported raw point encoding."""
    if isinstance(raw, (ExplicitFields, PointObject, BinaryPoint, Absent)):
        return decode_field(raw)
    if raw is None:
        return DecodeFailure("no geometry")
    if isinstance(raw, str):
        return decode_wkb_hex(raw)
    if isinstance(raw, Mapping):
        return decode_point_object(raw)
    return DecodeFailure(f"unsupported geometry type: {type(raw).__name__}")


def decode_point_object(value: Any) -> DecodeResult:
    if not isinstance(value, Mapping):
        return DecodeFailure("point object is not a mapping")
    coords = value.get("coordinates")
    if isinstance(coords, (list, tuple)):
        if len(coords) < 2:
            return DecodeFailure("point object has fewer than two coordinates")
        return make_coordinate(coords[1], coords[0])
    if "latitude" in value and "longitude" in value:
        return make_coordinate(value.get("latitude"), value.get("longitude"))
    return DecodeFailure("point object has no coordinates")


def decode_wkb_hex(text: Any) -> DecodeResult:
    if not isinstance(text, str):
        return DecodeFailure("binary geometry is not a string")
    data = text.strip()
    if data[:2].lower() in ("\\x", "0x"):
        data = data[2:]
    if not data:
        return DecodeFailure("empty binary geometry")
    if len(data) % 2:
        return DecodeFailure("odd hex length")
    try:
        buf = bytes.fromhex(data)
    except ValueError:
        return DecodeFailure("invalid hex")
    return decode_wkb(buf)


def decode_wkb(buf: bytes) -> DecodeResult:
    if len(buf) < _HEADER_SIZE:
        return DecodeFailure("truncated header")
    if buf[0] == 1:
        order = "<"
    elif buf[0] == 0:
        order = ">"
    else:
        return DecodeFailure(f"invalid byte order flag {buf[0]}")

    (type_word,) = struct.unpack_from(order + "I", buf, 1)
    offset = _HEADER_SIZE
    if type_word & WKB_SRID_FLAG:
        if len(buf) < offset + _SRID_SIZE:
            return DecodeFailure("truncated srid")
        offset += _SRID_SIZE
    geometry_type = type_word & 0xFFFF
    if geometry_type != WKB_POINT:
        return DecodeFailure(f"geometry type {geometry_type} is not a point")
    if len(buf) < offset + _POINT_SIZE:
        return DecodeFailure("truncated point")

    # Z and M ordinates, when flagged, follow X and Y and are ignored.
    x, y = struct.unpack_from(order + "dd", buf, offset)
    return make_coordinate(y, x)


def encode_point(
    coordinate: Coordinate,
    little_endian: bool = True,
    srid: Optional[int] = None,
) -> str:
    """Encode a point as uppercase (E)WKB hex, the way PostGIS renders geography."""
    order = "<" if little_endian else ">"
    type_word = WKB_POINT
    if srid is not None:
        type_word |= WKB_SRID_FLAG
    out = struct.pack("B", 1 if little_endian else 0) + struct.pack(order + "I", type_word)
    if srid is not None:
        out += struct.pack(order + "I", srid)
    out += struct.pack(order + "dd", coordinate.longitude, coordinate.latitude)
    return out.hex().upper()
