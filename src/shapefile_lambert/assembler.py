"""Split a record's flat point array into its parts."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal

from .identity import IdSource
from .models import Coordinate, LineGeometry, PolygonGeometry

PartKind = Literal["line", "polygon"]


def _take(points: Sequence[Coordinate], start: int, end: int) -> list[Coordinate]:
    # Plain slicing would clamp bad indices instead of failing.
    if start < 0 or end < start or end > len(points):
        raise IndexError(f"Part range [{start}, {end}) is outside the {len(points)} record points")
    return list(points[start:end])


def split_parts(points: Sequence[Coordinate], parts: Sequence[int]) -> list[list[Coordinate]]:
    """Slice ``points`` at the part start indices.

    Part ``i`` runs from ``parts[i]`` to the next start, the last part to the
    end of ``points``. A single part takes every point as is. Indices are not
    checked up front; a range outside ``points`` raises :class:`IndexError`.
    """
    if len(parts) == 1:
        return [list(points)]
    spans = []
    for i in range(1, len(parts) + 1):
        end = parts[i] if i != len(parts) else len(points)
        spans.append(_take(points, parts[i - 1], end))
    return spans


def assemble(
    kind: PartKind,
    points: Sequence[Coordinate],
    parts: Sequence[int],
    id_source: IdSource,
) -> list[LineGeometry] | list[PolygonGeometry]:
    """Build one line or polygon geometry per part, each with its own token."""
    geometry_class = PolygonGeometry if kind == "polygon" else LineGeometry
    return [geometry_class(id=id_source(), coordinates=span) for span in split_parts(points, parts)]
