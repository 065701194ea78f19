"""
Fold axis from a drag gesture.

Dragging a point of the paper from `origin` to `target` asks for the fold
that would carry origin onto target: the perpendicular bisector of the drag,
lying in the drag plane (given by its normal).

The resulting line:
  - passes through the midpoint of origin and target
  - runs along cross(reference_normal, target - origin)
  - extends 2 * max(width, height) each way, enough to cross the whole sheet
  - is ordered so that origin is on the moved side of the fold
"""

from typing import Optional
import math

try:
    from .paper_mesh import PaperMesh, FoldAxis, Vec3
    from .fold_transform import (
        FoldResult, fold_local, fold, fold_frame, side_of_fold, compile_predicate,
        _sub, _add, _scale, _cross, _dot,
    )
except ImportError:
    from paper_mesh import PaperMesh, FoldAxis, Vec3
    from fold_transform import (
        FoldResult, fold_local, fold, fold_frame, side_of_fold, compile_predicate,
        _sub, _add, _scale, _cross, _dot,
    )


DRAG_EPSILON = 1e-4


def _normalize_or_zero(a: Vec3) -> Vec3:
    length = math.sqrt(_dot(a, a))
    if length < 1e-12:
        return (0.0, 0.0, 0.0)
    return (a[0] / length, a[1] / length, a[2] / length)


def derive_axis_from_drag(
    origin: Vec3,
    target: Vec3,
    reference_normal: Vec3,
    width: float,
    height: float,
    epsilon: float = DRAG_EPSILON,
) -> Optional[tuple[Vec3, Vec3]]:
    """
    Compute the local-space fold line for a drag.

    Args:
        origin: Drag start (local space)
        target: Current drag point (local space)
        reference_normal: Normal of the drag plane
        width, height: Paper size, used to size the line
        epsilon: Minimum drag length

    Returns:
        (start, end) of the fold line, or None if the drag is too short
    """
    displacement = _sub(target, origin)
    if math.sqrt(_dot(displacement, displacement)) < epsilon:
        return None

    axis_direction = _normalize_or_zero(_cross(reference_normal, displacement))
    if math.sqrt(_dot(axis_direction, axis_direction)) < epsilon:
        # Drag runs along the plane normal, stay in the XY plane instead
        axis_direction = _normalize_or_zero((-displacement[1], displacement[0], 0.0))

    midpoint = _scale(_add(origin, target), 0.5)
    axis_length = max(width, height) * 2.0

    start = _sub(midpoint, _scale(axis_direction, axis_length))
    end = _add(midpoint, _scale(axis_direction, axis_length))

    return ensure_axis_ordering(start, end, origin, target)


def ensure_axis_ordering(
    start: Vec3,
    end: Vec3,
    origin: Vec3,
    target: Vec3,
) -> tuple[Vec3, Vec3]:
    """Swap the line ends unless origin is on the moved side and target is not."""
    _, normal = fold_frame(start, end)

    side_origin = side_of_fold(origin, start, normal)
    side_target = side_of_fold(target, start, normal)

    if side_origin > 0 and side_target <= 0:
        return (start, end)
    return (end, start)


class DragSession:
    """
    Tracks one drag on a paper mesh and the fold line it implies.

    The derived line is cached in local space so that applying it does not
    lose precision through the parametric round trip.
    """

    def __init__(self, mesh: PaperMesh, snap_distance: float = 0.1,
                 axis: FoldAxis = None):
        self.mesh = mesh
        self.snap_distance = snap_distance
        self.axis = axis or FoldAxis(0.2, 0.0, 0.8, 1.0)

        self.origin: Optional[Vec3] = None
        self.reference_normal: Vec3 = (0.0, 0.0, 1.0)
        self.dragging = False
        self.confirmed = False
        self._cached: Optional[tuple[Vec3, Vec3]] = None

    def begin(self, origin: Vec3, reference_normal: Vec3 = None) -> None:
        """
        Start dragging from origin.

        Without a reference normal the paper's normal at origin is used.
        """
        self.origin = origin
        if reference_normal is None:
            u, v = self.mesh.local_to_parametric(origin)
            reference_normal = self.mesh.normal_at(u, v)
        self.reference_normal = reference_normal
        self.dragging = True
        self.confirmed = False

    def update(self, target: Vec3) -> Optional[tuple[Vec3, Vec3]]:
        """Recompute the fold line for the current drag point."""
        if self.dragging:
            self._derive(target)
        return self._cached

    def end(self, release_point: Vec3) -> bool:
        """
        Finish the drag.

        Returns:
            True if the drag is confirmed, False if released near the origin
        """
        if not self.dragging:
            return False

        self.dragging = False
        offset = _sub(release_point, self.origin)
        if math.sqrt(_dot(offset, offset)) < self.snap_distance:
            self.cancel()
            return False

        self._derive(release_point)
        self.confirmed = True
        return True

    def _derive(self, target: Vec3) -> None:
        line = derive_axis_from_drag(
            self.origin, target, self.reference_normal,
            self.mesh.width, self.mesh.height,
        )
        if line is not None:
            self._cached = line
            self.axis = FoldAxis.from_local(line[0], line[1], self.mesh)

    def cancel(self) -> None:
        self.dragging = False
        self.confirmed = False
        self._cached = None

    @property
    def cached_line(self) -> Optional[tuple[Vec3, Vec3]]:
        return self._cached

    def current_axis(self) -> FoldAxis:
        """The fold axis in parametric form (derived from the drag if any)."""
        if self._cached is not None:
            return FoldAxis.from_local(self._cached[0], self._cached[1], self.mesh)
        return self.axis

    def apply(self, degrees: float, name: str = None,
              expression: str = None) -> FoldResult:
        """Fold the mesh with the drag's line, falling back to the stored axis."""
        predicate = compile_predicate(expression)

        if self._cached is not None:
            start, end = self._cached
            self._cached = None
            return fold_local(self.mesh, start, end, degrees, name, predicate)

        return fold(self.mesh, self.axis, degrees, name, predicate)
