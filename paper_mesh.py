"""
Paper mesh and vertex provenance.

A sheet of paper is a fixed grid of vertices. Each vertex keeps its
parametric (u, v) address on the flat sheet, its flat position, its current
position (moved by folds) and the set of tags written by every fold that
touched it.

================================================================================
COORDINATES
================================================================================

  - Parametric: (u, v) in [0, 1] x [0, 1], fixed for the life of a vertex
  - Local: mesh-space 3D point. Flat layout is
        x = (u - 0.5) * width
        y = (v - 0.5) * height
        z = 0

parametric_to_local() returns the CURRENT position of the vertex nearest to
(u, v) (L1 distance, first vertex wins ties), so an axis given in parametric
space follows the paper as it folds.

local_to_parametric() inverts the FLAT layout only. After a fold has moved
vertices the two functions are no longer inverses of each other.
"""

from dataclasses import dataclass, field
from pathlib import Path
import math

try:
    from .config import PaperConfig
except ImportError:
    from config import PaperConfig


Vec3 = tuple[float, float, float]


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass
class FoldAxis:
    """
    A fold line given by two parametric points.

    Coordinates are clamped to [0, 1] on construction.
    """
    u1: float
    v1: float
    u2: float
    v2: float

    def __post_init__(self):
        self.u1 = _clamp01(self.u1)
        self.v1 = _clamp01(self.v1)
        self.u2 = _clamp01(self.u2)
        self.v2 = _clamp01(self.v2)

    @property
    def start(self) -> tuple[float, float]:
        return (self.u1, self.v1)

    @property
    def end(self) -> tuple[float, float]:
        return (self.u2, self.v2)

    @classmethod
    def from_local(cls, start: Vec3, end: Vec3, mesh: 'PaperMesh') -> 'FoldAxis':
        """Create from two local-space points via the flat layout."""
        su, sv = mesh.local_to_parametric(start)
        eu, ev = mesh.local_to_parametric(end)
        return cls(su, sv, eu, ev)

    def to_local(self, mesh: 'PaperMesh') -> tuple[Vec3, Vec3]:
        """Map both endpoints to the mesh's current local positions."""
        return (
            mesh.parametric_to_local(self.u1, self.v1),
            mesh.parametric_to_local(self.u2, self.v2),
        )


@dataclass
class Vertex:
    """Per-vertex provenance record."""
    index: int
    u: float
    v: float
    original_position: Vec3
    position: Vec3
    tags: set[str] = field(default_factory=set)

    @property
    def parametric(self) -> tuple[float, float]:
        return (self.u, self.v)

    def add_tag(self, tag: str) -> None:
        """Record a fold on this vertex. Tags are never removed."""
        self.tags.add(tag)


@dataclass
class Bounds3D:
    """Axis-aligned bounding box of the current vertex positions."""
    min_x: float
    min_y: float
    min_z: float
    max_x: float
    max_y: float
    max_z: float

    @property
    def size(self) -> Vec3:
        return (self.max_x - self.min_x, self.max_y - self.min_y, self.max_z - self.min_z)

    @property
    def center(self) -> Vec3:
        return (
            (self.min_x + self.max_x) / 2,
            (self.min_y + self.max_y) / 2,
            (self.min_z + self.max_z) / 2,
        )


class PaperMesh:
    """
    Subdivided sheet of paper with per-vertex fold provenance.

    Vertex count and triangulation never change between resets; folds only
    move positions and add tags.
    """

    def __init__(self, config: PaperConfig = None):
        self.config = config or PaperConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError("Invalid paper configuration: " + "; ".join(errors))

        self.vertices: list[Vertex] = []
        self.triangles: list[tuple[int, int, int]] = []
        self.normals: list[Vec3] = []
        self._fold_counter = 0
        self.generate()

    @property
    def width(self) -> float:
        return self.config.width

    @property
    def height(self) -> float:
        return self.config.height

    @property
    def flat_fold_offset(self) -> float:
        return self.config.flat_fold_offset

    @flat_fold_offset.setter
    def flat_fold_offset(self, value: float):
        self.config.flat_fold_offset = value

    @property
    def fold_counter(self) -> int:
        return self._fold_counter

    @property
    def positions(self) -> list[Vec3]:
        """Current local positions in vertex order."""
        return [vd.position for vd in self.vertices]

    def __len__(self) -> int:
        return len(self.vertices)

    def generate(self) -> None:
        """Build the flat vertex grid and its triangulation."""
        rx = self.config.resolution_x
        ry = self.config.resolution_y

        self.vertices = []
        for y in range(ry + 1):
            for x in range(rx + 1):
                u = x / rx
                v = y / ry
                flat = ((u - 0.5) * self.width, (v - 0.5) * self.height, 0.0)
                self.vertices.append(Vertex(
                    index=len(self.vertices),
                    u=u,
                    v=v,
                    original_position=flat,
                    position=flat,
                ))

        # Two counter-clockwise triangles per cell, flat normal is +z
        self.triangles = []
        for y in range(ry):
            for x in range(rx):
                i = y * (rx + 1) + x
                self.triangles.append((i, i + 1, i + rx + 1))
                self.triangles.append((i + 1, i + rx + 2, i + rx + 1))

        self.compute_normals()

    def reset(self) -> None:
        """Discard all fold history and return to the flat sheet."""
        self._fold_counter = 0
        self.generate()

    # =========================================================================
    # Coordinate mapping
    # =========================================================================

    def find_closest_vertex_index(self, u: float, v: float) -> int:
        """Index of the vertex nearest to (u, v) in L1 distance, -1 if empty."""
        closest_index = -1
        min_dist = float('inf')

        for vd in self.vertices:
            dist = abs(vd.u - u) + abs(vd.v - v)
            if dist < min_dist:
                min_dist = dist
                closest_index = vd.index

        return closest_index

    def parametric_to_local(self, u: float, v: float) -> Vec3:
        """Current local position of the vertex nearest to (u, v)."""
        closest_index = self.find_closest_vertex_index(u, v)
        if closest_index >= 0:
            return self.vertices[closest_index].position

        # Fallback to flat layout
        return ((u - 0.5) * self.width, (v - 0.5) * self.height, 0.0)

    def local_to_parametric(self, point: Vec3) -> tuple[float, float]:
        """Flat-layout inverse: local point to clamped (u, v)."""
        u = point[0] / self.width + 0.5
        v = point[1] / self.height + 0.5
        return (_clamp01(u), _clamp01(v))

    def snap_to_edge(self, u: float, v: float) -> tuple[float, float]:
        """Snap a parametric point onto the nearest edge of the sheet."""
        dist_left = abs(u)
        dist_right = abs(u - 1.0)
        dist_bottom = abs(v)
        dist_top = abs(v - 1.0)

        min_dist = min(dist_left, dist_right, dist_bottom, dist_top)

        if min_dist == dist_left:
            return (0.0, _clamp01(v))
        if min_dist == dist_right:
            return (1.0, _clamp01(v))
        if min_dist == dist_bottom:
            return (_clamp01(u), 0.0)
        return (_clamp01(u), 1.0)

    def normal_at(self, u: float, v: float) -> Vec3:
        """Current vertex normal nearest to (u, v)."""
        closest_index = self.find_closest_vertex_index(u, v)
        if 0 <= closest_index < len(self.normals):
            return self.normals[closest_index]
        return (0.0, 0.0, 1.0)

    # =========================================================================
    # Geometry
    # =========================================================================

    def set_position(self, index: int, position: Vec3) -> None:
        self.vertices[index].position = position

    def compute_normals(self) -> None:
        """Compute area-weighted vertex normals from the triangulation."""
        sums = [[0.0, 0.0, 0.0] for _ in self.vertices]

        for tri in self.triangles:
            v0 = self.vertices[tri[0]].position
            v1 = self.vertices[tri[1]].position
            v2 = self.vertices[tri[2]].position

            # Two edge vectors
            e1 = (v1[0] - v0[0], v1[1] - v0[1], v1[2] - v0[2])
            e2 = (v2[0] - v0[0], v2[1] - v0[1], v2[2] - v0[2])

            # Cross product (length is twice the triangle area)
            nx = e1[1] * e2[2] - e1[2] * e2[1]
            ny = e1[2] * e2[0] - e1[0] * e2[2]
            nz = e1[0] * e2[1] - e1[1] * e2[0]

            for i in tri:
                sums[i][0] += nx
                sums[i][1] += ny
                sums[i][2] += nz

        self.normals = []
        for nx, ny, nz in sums:
            length = math.sqrt(nx*nx + ny*ny + nz*nz)
            if length > 1e-10:
                self.normals.append((nx/length, ny/length, nz/length))
            else:
                self.normals.append((0.0, 0.0, 1.0))

    def bounds(self) -> Bounds3D:
        """Bounding box of the current positions."""
        xs = [vd.position[0] for vd in self.vertices]
        ys = [vd.position[1] for vd in self.vertices]
        zs = [vd.position[2] for vd in self.vertices]
        return Bounds3D(min(xs), min(ys), min(zs), max(xs), max(ys), max(zs))

    def update_geometry(self) -> None:
        """Refresh derived geometry after positions changed."""
        self.compute_normals()

    # =========================================================================
    # Tags
    # =========================================================================

    def next_fold_tags(self, name: str = None) -> tuple[str, str]:
        """
        Reserve the (moved, static) tag pair for the next fold.

        Without a name the tags are fold_<n>_moved / fold_<n>_static with n the
        current fold counter. The counter advances either way.
        """
        base = name if name is not None else f"fold_{self._fold_counter}"
        self._fold_counter += 1
        return (f"{base}_moved", f"{base}_static")

    def get_vertex_tags(self, index: int) -> set[str]:
        """Copy of one vertex's tags (empty for an unknown index)."""
        if 0 <= index < len(self.vertices):
            return set(self.vertices[index].tags)
        return set()

    def get_all_tags(self) -> set[str]:
        """Every tag present on any vertex."""
        result = set()
        for vd in self.vertices:
            result.update(vd.tags)
        return result

    def get_vertices_with_tag(self, tag: str) -> list[int]:
        """Indices of all vertices carrying tag."""
        return [vd.index for vd in self.vertices if tag in vd.tags]

    # =========================================================================
    # Export
    # =========================================================================

    def to_obj(self, filename: Path | str) -> None:
        """Export current geometry to OBJ file format."""
        with open(filename, 'w') as f:
            f.write("# Paper Fold - OBJ Export\n")
            f.write(f"# Vertices: {len(self.vertices)}\n")
            f.write(f"# Faces: {len(self.triangles)}\n\n")

            for vd in self.vertices:
                x, y, z = vd.position
                f.write(f"v {x:.6f} {y:.6f} {z:.6f}\n")

            f.write("\n")

            for vd in self.vertices:
                f.write(f"vt {vd.u:.6f} {vd.v:.6f}\n")

            f.write("\n")

            # OBJ uses 1-based indexing
            for tri in self.triangles:
                indices = " ".join(f"{i + 1}/{i + 1}" for i in tri)
                f.write(f"f {indices}\n")
