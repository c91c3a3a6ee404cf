"""
Editable 2-D cross-section ("profile") used by the loft engine.

A :class:`Profile` stores four index-aligned sequences: ``points``,
``normals``, ``us`` and a flat ``edges`` list of point-index pairs.
The mutators keep these sequences consistent.  Deleting a point
compacts every list in place and shifts the indices stored in
``edges`` so that no reference dangles.

Edges are undirected and independent of point order, so a profile may
be a closed loop, an open strip or several disconnected pieces.  The
loft only relies on the edge list for side walls; end caps use the
point order as the boundary loop.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Sequence, Tuple

from .errors import ProfileIndexError

Point2 = Tuple[float, float]

DEFAULT_NORMAL: Point2 = (0.0, 1.0)

_EPS = 1e-12


def _normalized(v: Point2) -> Point2:
    n = math.hypot(v[0], v[1])
    if n < _EPS:
        return (0.0, 0.0)
    return (v[0] / n, v[1] / n)


def _rotate_cw(v: Point2) -> Point2:
    """Rotate a 2-D vector by -90 degrees."""
    return (v[1], -v[0])


@dataclass
class Profile:
    """A 2-D cross-section described by points, normals, Us and edges.

    Attributes:
        points: Profile-local positions.
        normals: Outward direction per point.  Only unit length after a
            recalculation.
        us: Texture U coordinate per point.
        edges: Flat list where ``edges[2k]`` and ``edges[2k + 1]`` are
            the end points of edge *k*.
    """

    points: List[Point2] = field(default_factory=list)
    normals: List[Point2] = field(default_factory=list)
    us: List[float] = field(default_factory=list)
    edges: List[int] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.points = [(float(p[0]), float(p[1])) for p in self.points]
        # Missing per-point data is filled with defaults so that the
        # parallel lists always line up.
        normals = [(float(n[0]), float(n[1])) for n in self.normals]
        us = [float(u) for u in self.us]
        n = len(self.points)
        self.normals = (normals + [DEFAULT_NORMAL] * n)[:n]
        self.us = (us + [0.0] * n)[:n]
        self.edges = [int(i) for i in self.edges]

    # ------------------------------------------------------------------
    # Construction helpers

    @classmethod
    def from_loop(cls, points: Iterable[Sequence[float]], closed: bool = True) -> "Profile":
        """Build a profile whose edges chain *points* in order.

        Normals and Us are recalculated.  With ``closed`` the last point
        is joined back to the first.
        """
        profile = cls()
        indices = profile.add_points(points)
        for a, b in zip(indices, indices[1:]):
            profile.create_edge(a, b)
        if closed and len(indices) > 2:
            profile.create_edge(indices[-1], indices[0])
        profile.recalculate_all_normals()
        profile.recalculate_us()
        return profile

    def copy(self) -> "Profile":
        return Profile(
            points=list(self.points),
            normals=list(self.normals),
            us=list(self.us),
            edges=list(self.edges),
        )

    # ------------------------------------------------------------------
    # Queries

    @property
    def point_count(self) -> int:
        return len(self.points)

    @property
    def edge_count(self) -> int:
        return len(self.edges) // 2

    def edge_pairs(self) -> Iterator[Tuple[int, int]]:
        for k in range(0, len(self.edges) - 1, 2):
            yield self.edges[k], self.edges[k + 1]

    def neighbours(self, index: int) -> List[int]:
        """Indices connected to *index* by an edge, in edge order."""
        self._check_index(index)
        result: List[int] = []
        for a, b in self.edge_pairs():
            if a == index:
                result.append(b)
            elif b == index:
                result.append(a)
        return result

    def are_connected(self, a: int, b: int) -> bool:
        self._check_index(a)
        self._check_index(b)
        for ea, eb in self.edge_pairs():
            if (ea == a and eb == b) or (ea == b and eb == a):
                return True
        return False

    def validate(self) -> None:
        """Check the structural invariants of externally supplied data.

        Raises:
            ProfileIndexError: If an edge references a missing point.
            ValueError: If the parallel lists disagree in length or the
                edge list has odd length.
        """
        n = len(self.points)
        if len(self.normals) != n or len(self.us) != n:
            raise ValueError(
                f"profile lists out of sync: {n} points, {len(self.normals)} normals, {len(self.us)} us"
            )
        if len(self.edges) % 2:
            raise ValueError("edge list must contain index pairs")
        for i in self.edges:
            if i < 0 or i >= n:
                raise ProfileIndexError(f"edge index {i} out of range for {n} points")

    # ------------------------------------------------------------------
    # Structural edits

    def add_points(self, positions: Iterable[Sequence[float]]) -> List[int]:
        """Append points with the default normal and U = 0.

        Returns:
            The indices assigned to the new points.
        """
        start = len(self.points)
        for p in positions:
            self.points.append((float(p[0]), float(p[1])))
            self.normals.append(DEFAULT_NORMAL)
            self.us.append(0.0)
        return list(range(start, len(self.points)))

    def delete_point(self, index: int) -> None:
        """Remove point *index* and every edge touching it.

        Indices above *index* move down by one in the edge list.
        """
        self._check_index(index)
        del self.points[index]
        del self.normals[index]
        del self.us[index]
        compacted: List[int] = []
        for a, b in self.edge_pairs():
            if a == index or b == index:
                continue
            compacted.append(a - 1 if a > index else a)
            compacted.append(b - 1 if b > index else b)
        self.edges = compacted

    def create_edge(self, a: int, b: int) -> bool:
        """Connect *a* and *b*.  Returns False when they already are.

        Raises:
            ProfileIndexError: If either index is out of range.
            ValueError: If ``a == b``.
        """
        self._check_index(a)
        self._check_index(b)
        if a == b:
            raise ValueError(f"cannot connect point {a} to itself")
        if self.are_connected(a, b):
            return False
        self.edges.extend((a, b))
        return True

    def remove_edge(self, a: int, b: int) -> bool:
        """Disconnect *a* and *b* regardless of stored order.

        Returns:
            True if at least one edge was removed.
        """
        self._check_index(a)
        self._check_index(b)
        kept: List[int] = []
        removed = False
        for ea, eb in self.edge_pairs():
            if (ea == a and eb == b) or (ea == b and eb == a):
                removed = True
                continue
            kept.extend((ea, eb))
        self.edges = kept
        return removed

    # ------------------------------------------------------------------
    # Normals and Us

    def recalculate_normal(self, index: int) -> Point2:
        """Recompute and store the normal of point *index*.

        The normal is derived from the directions towards the
        edge-connected neighbours: none gives the default up vector,
        one gives that direction turned by -90 degrees, several give
        the re-normalised sum of unit directions, flipped so it points
        away from the neighbours.
        """
        self._check_index(index)
        origin = self.points[index]
        neighbours = self.neighbours(index)
        directions: List[Tuple[int, Point2]] = []
        for j in neighbours:
            p = self.points[j]
            d = _normalized((p[0] - origin[0], p[1] - origin[1]))
            if d != (0.0, 0.0):
                directions.append((j, d))

        if not directions:
            normal = DEFAULT_NORMAL
        elif len(directions) == 1:
            normal = _rotate_cw(directions[0][1])
        else:
            sx = sum(d[0] for _, d in directions)
            sy = sum(d[1] for _, d in directions)
            if math.hypot(sx, sy) < 1e-9:
                # Opposite neighbours: use the lowest-indexed one so the
                # result does not depend on edge order.
                _, d = min(directions, key=lambda item: item[0])
                normal = _rotate_cw(d)
            else:
                # The sum points towards the neighbours; outward is its negation.
                normal = _normalized((-sx, -sy))
        self.normals[index] = normal
        return normal

    def recalculate_normals(self, indices: Iterable[int]) -> None:
        indices = list(indices)
        for i in indices:
            self._check_index(i)
        for i in indices:
            self.recalculate_normal(i)

    def recalculate_all_normals(self) -> None:
        self.recalculate_normals(range(len(self.points)))

    def recalculate_us(self) -> None:
        """Assign Us from normalised cumulative arc length in point order."""
        n = len(self.points)
        if n == 0:
            return
        lengths = [0.0]
        for p, q in zip(self.points, self.points[1:]):
            lengths.append(lengths[-1] + math.hypot(q[0] - p[0], q[1] - p[1]))
        total = lengths[-1]
        if total < _EPS:
            self.us = [0.0] * n
            return
        self.us = [length / total for length in lengths]

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.points):
            raise ProfileIndexError(
                f"point index {index} out of range for profile with {len(self.points)} points"
            )
