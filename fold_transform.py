"""
Fold Transformation Module

Folds a PaperMesh about a line and records which vertices moved.

================================================================================
OVERVIEW
================================================================================

A fold is defined by a line through two local-space points (start, end), a
signed angle in degrees, an optional name and an optional eligibility
predicate over vertex tags. Every call is atomic:

  1. PARTITION  every vertex is classified before anything is mutated
  2. ROTATE     the moved vertices are rotated about the fold line
  3. TAG        {name}_moved / {name}_static are written to eligible vertices
  4. COMMIT     vertex normals are recomputed

================================================================================
PARTITION
================================================================================

  - direction: unit vector from start to end
  - normal:    cross(direction, VIEW_FORWARD), the in-plane perpendicular

VIEW_FORWARD is the fixed viewing direction (-z: the sheet is looked at from
+z). For a fold line running along +x the normal is +y, so the side to the
LEFT of the line direction is the side that moves.

For each vertex:
  - eligible = predicate is None or predicate(tags)
  - moved    = eligible and dot(position - start, normal) > side_epsilon

Points on the line itself (within side_epsilon) stay static. The normal is
global, not the local surface orientation, so the side test is only exact
while all folds are rotations of the original plane about lines in it.

================================================================================
ROTATION
================================================================================

Moved vertices rotate by the signed angle about `direction` through `start`
(right-hand rule: positive angles lift the moved side toward +z).

A fold within flat_fold_tolerance_deg of ±180° is a FLAT FOLD: the folded
layer would be coplanar with the static layer, so each moved vertex is
additionally pushed by flat_fold_offset along cross(direction, normal),
signed by the fold angle.

================================================================================
ANIMATION
================================================================================

AnimatedFold computes the partition once, remembers each moved vertex's
offset from `start`, and on every tick places the vertices at
rotate(offset, angle * t). Positions never compound between ticks. The
flat-fold offset is scaled by t. Tags are written once, when the fold
completes.

================================================================================
DEGENERATE INPUT
================================================================================

start == end has no direction. Normalizing the zero vector yields NaN
components; NaN never compares greater than side_epsilon, so no vertex moves
and every eligible vertex is tagged static. Callers should not rely on this.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional
import math

try:
    from .paper_mesh import PaperMesh, FoldAxis, Vec3
    from .tag_expression import compile_expression
except ImportError:
    from paper_mesh import PaperMesh, FoldAxis, Vec3
    from tag_expression import compile_expression


VIEW_FORWARD: Vec3 = (0.0, 0.0, -1.0)

TagPredicate = Callable[[Iterable[str]], bool]


class FoldStatus(Enum):
    IN_PROGRESS = "in_progress"
    DONE = "done"


@dataclass
class FoldPartition:
    """Vertex classification for one fold."""
    moved: list[int] = field(default_factory=list)
    eligible: list[int] = field(default_factory=list)

    @property
    def static(self) -> list[int]:
        moved = set(self.moved)
        return [i for i in self.eligible if i not in moved]


@dataclass
class FoldResult:
    """Outcome of a completed fold."""
    moved_indices: list[int]
    eligible_indices: list[int]
    moved_tag: str
    static_tag: str

    @property
    def static_indices(self) -> list[int]:
        moved = set(self.moved_indices)
        return [i for i in self.eligible_indices if i not in moved]


def is_flat_fold(degrees: float, tolerance_deg: float = 0.1) -> bool:
    """Check if a fold angle is effectively ±180 degrees."""
    normalized = abs(math.fmod(degrees, 360.0))
    return abs(normalized - 180.0) < tolerance_deg


def compile_predicate(expression: Optional[str]) -> Optional[TagPredicate]:
    """Predicate for a tag expression, None when the expression is blank."""
    if expression is None or not expression.strip():
        return None
    return compile_expression(expression.strip())


def fold_frame(start: Vec3, end: Vec3) -> tuple[Vec3, Vec3]:
    """
    Fold line direction and side normal.

    Returns:
        (direction, normal), both unit vectors (NaN for a degenerate line)
    """
    direction = _normalize(_sub(end, start))
    normal = _normalize(_cross(direction, VIEW_FORWARD))
    return direction, normal


def side_of_fold(point: Vec3, start: Vec3, normal: Vec3) -> float:
    """Signed distance of point from the fold plane (positive = moved side)."""
    return _dot(_sub(point, start), normal)


def compute_partition(
    mesh: PaperMesh,
    start: Vec3,
    end: Vec3,
    predicate: Optional[TagPredicate] = None,
) -> FoldPartition:
    """
    Classify vertices without touching the mesh.

    If predicate raises, the exception propagates and nothing has changed.
    """
    _, normal = fold_frame(start, end)
    epsilon = mesh.config.side_epsilon

    partition = FoldPartition()
    for vd in mesh.vertices:
        eligible = predicate is None or predicate(frozenset(vd.tags))
        if not eligible:
            continue

        partition.eligible.append(vd.index)
        if side_of_fold(vd.position, start, normal) > epsilon:
            partition.moved.append(vd.index)

    return partition


def fold_local(
    mesh: PaperMesh,
    start: Vec3,
    end: Vec3,
    degrees: float,
    name: Optional[str] = None,
    predicate: Optional[TagPredicate] = None,
) -> FoldResult:
    """
    Fold the mesh about a local-space line.

    Args:
        mesh: Paper to fold (mutated in place)
        start, end: Two points on the fold line
        degrees: Signed fold angle
        name: Base tag name (default fold_<counter>)
        predicate: Eligibility test over a vertex's tags (None = all)

    Returns:
        FoldResult with the partition and the tags written
    """
    partition = compute_partition(mesh, start, end, predicate)
    moved_tag, static_tag = mesh.next_fold_tags(name)

    direction, normal = fold_frame(start, end)
    offsets = {i: _sub(mesh.vertices[i].position, start) for i in partition.moved}
    _place_moved(mesh, start, direction, normal, degrees, offsets, 1.0)

    _apply_fold_tags(mesh, partition, moved_tag, static_tag)
    mesh.update_geometry()

    return FoldResult(partition.moved, partition.eligible, moved_tag, static_tag)


def fold(
    mesh: PaperMesh,
    axis: FoldAxis,
    degrees: float,
    name: Optional[str] = None,
    predicate: Optional[TagPredicate] = None,
) -> FoldResult:
    """Fold about a parametric axis, mapped through the mesh's current shape."""
    start, end = axis.to_local(mesh)
    return fold_local(mesh, start, end, degrees, name, predicate)


class AnimatedFold:
    """
    A fold applied over time.

    Drive it with tick(delta_seconds) from the host loop until it returns
    FoldStatus.DONE. Stopping early leaves the vertices mid-rotation and
    untagged. Only one fold may run on a mesh at a time.
    """

    def __init__(
        self,
        mesh: PaperMesh,
        start: Vec3,
        end: Vec3,
        degrees: float,
        name: Optional[str] = None,
        predicate: Optional[TagPredicate] = None,
        duration: Optional[float] = None,
    ):
        self.mesh = mesh
        self.start = start
        self.end = end
        self.degrees = degrees
        self.duration = mesh.config.default_duration if duration is None else duration

        self.partition = compute_partition(mesh, start, end, predicate)
        self.moved_tag, self.static_tag = mesh.next_fold_tags(name)
        self.direction, self.normal = fold_frame(start, end)

        # Pre-fold offsets from the axis, the base of every frame
        self._offsets = {
            i: _sub(mesh.vertices[i].position, start) for i in self.partition.moved
        }
        self.elapsed = 0.0
        self.status = FoldStatus.IN_PROGRESS
        self.result: Optional[FoldResult] = None

    @property
    def done(self) -> bool:
        return self.status is FoldStatus.DONE

    @property
    def progress(self) -> float:
        """Interpolation parameter t in [0, 1]."""
        if self.done or self.duration <= 0:
            return 1.0 if self.done else 0.0
        return max(0.0, min(1.0, self.elapsed / self.duration))

    def tick(self, delta_seconds: float) -> FoldStatus:
        """Advance by delta_seconds and pose the mesh."""
        if delta_seconds < 0:
            raise ValueError(f"delta_seconds cannot be negative, got {delta_seconds}")
        if self.done:
            return self.status

        self.elapsed += delta_seconds
        if self.elapsed >= self.duration:
            self.finish()
            return self.status

        self._pose(self.progress)
        self.mesh.update_geometry()
        return self.status

    def finish(self) -> FoldResult:
        """Jump to the final pose and write the fold's tags."""
        if self.result is not None:
            return self.result

        self._pose(1.0)
        _apply_fold_tags(self.mesh, self.partition, self.moved_tag, self.static_tag)
        self.mesh.update_geometry()

        self.status = FoldStatus.DONE
        self.result = FoldResult(
            self.partition.moved, self.partition.eligible, self.moved_tag, self.static_tag
        )
        return self.result

    def _pose(self, t: float) -> None:
        _place_moved(
            self.mesh, self.start, self.direction, self.normal,
            self.degrees * t, self._offsets, t,
            flat=is_flat_fold(self.degrees, self.mesh.config.flat_fold_tolerance_deg),
        )


def animate_fold_local(
    mesh: PaperMesh,
    start: Vec3,
    end: Vec3,
    degrees: float,
    name: Optional[str] = None,
    predicate: Optional[TagPredicate] = None,
    duration: Optional[float] = None,
) -> AnimatedFold:
    """Start an animated fold about a local-space line."""
    return AnimatedFold(mesh, start, end, degrees, name, predicate, duration)


def animate_fold(
    mesh: PaperMesh,
    axis: FoldAxis,
    degrees: float,
    name: Optional[str] = None,
    predicate: Optional[TagPredicate] = None,
    duration: Optional[float] = None,
) -> AnimatedFold:
    """Start an animated fold about a parametric axis."""
    start, end = axis.to_local(mesh)
    return AnimatedFold(mesh, start, end, degrees, name, predicate, duration)


# =============================================================================
# Internals
# =============================================================================

def _place_moved(
    mesh: PaperMesh,
    start: Vec3,
    direction: Vec3,
    normal: Vec3,
    degrees: float,
    offsets: dict[int, Vec3],
    offset_scale: float,
    flat: Optional[bool] = None,
) -> None:
    """Set moved vertices to start + R(degrees) * offset (+ flat-fold lift)."""
    if flat is None:
        flat = is_flat_fold(degrees, mesh.config.flat_fold_tolerance_deg)

    rot = _rotation_matrix_around_axis(direction, math.radians(degrees))

    lift = (0.0, 0.0, 0.0)
    if flat:
        sign = math.copysign(1.0, degrees)
        lift_dir = _normalize(_cross(direction, normal))
        lift = _scale(lift_dir, sign * mesh.flat_fold_offset * offset_scale)

    for i, rel in offsets.items():
        rotated = _add(start, _apply_rotation(rot, rel))
        mesh.set_position(i, _add(rotated, lift))


def _apply_fold_tags(
    mesh: PaperMesh,
    partition: FoldPartition,
    moved_tag: str,
    static_tag: str,
) -> None:
    for i in partition.moved:
        mesh.vertices[i].add_tag(moved_tag)
    for i in partition.static:
        mesh.vertices[i].add_tag(static_tag)


# =============================================================================
# Vector / Matrix Helpers
# =============================================================================

def _add(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def _sub(a: Vec3, b: Vec3) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def _scale(a: Vec3, s: float) -> Vec3:
    return (a[0] * s, a[1] * s, a[2] * s)


def _dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def _cross(a: Vec3, b: Vec3) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def _normalize(a: Vec3) -> Vec3:
    """Unit vector; the zero vector maps to NaN components."""
    length = math.sqrt(_dot(a, a))
    if length == 0:
        return (math.nan, math.nan, math.nan)
    return (a[0] / length, a[1] / length, a[2] / length)


def _rotation_matrix_around_axis(
    axis: Vec3,
    angle: float
) -> list[list[float]]:
    """Create 3x3 rotation matrix for rotation around axis by angle (radians)."""
    length = math.sqrt(axis[0]**2 + axis[1]**2 + axis[2]**2)
    if length < 1e-10:
        return [[1, 0, 0], [0, 1, 0], [0, 0, 1]]

    ax, ay, az = axis[0]/length, axis[1]/length, axis[2]/length
    c = math.cos(angle)
    s = math.sin(angle)
    t = 1 - c

    return [
        [t*ax*ax + c,    t*ax*ay - s*az, t*ax*az + s*ay],
        [t*ax*ay + s*az, t*ay*ay + c,    t*ay*az - s*ax],
        [t*ax*az - s*ay, t*ay*az + s*ax, t*az*az + c]
    ]


def _apply_rotation(
    rot: list[list[float]],
    vec: Vec3
) -> Vec3:
    """Apply 3x3 rotation matrix to vector."""
    return (
        rot[0][0]*vec[0] + rot[0][1]*vec[1] + rot[0][2]*vec[2],
        rot[1][0]*vec[0] + rot[1][1]*vec[1] + rot[1][2]*vec[2],
        rot[2][0]*vec[0] + rot[2][1]*vec[1] + rot[2][2]*vec[2]
    )
