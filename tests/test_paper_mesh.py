"""Unit tests for paper_mesh module."""

import pytest

from config import PaperConfig
from paper_mesh import PaperMesh, FoldAxis, Vertex, Bounds3D
from fold_transform import fold


def _vertex_at(mesh, u, v):
    return mesh.vertices[mesh.find_closest_vertex_index(u, v)]


class TestFoldAxis:
    """Tests for FoldAxis class."""

    def test_create(self):
        """Test creating an axis."""
        axis = FoldAxis(0.0, 0.5, 1.0, 0.5)
        assert axis.start == (0.0, 0.5)
        assert axis.end == (1.0, 0.5)

    def test_clamped(self):
        """Test coordinates are clamped to [0, 1]."""
        axis = FoldAxis(-1.0, 2.0, 0.5, 1.5)
        assert axis.start == (0.0, 1.0)
        assert axis.end == (0.5, 1.0)

    def test_to_local_flat(self, paper_mesh):
        """Test mapping to local space on a flat sheet."""
        start, end = FoldAxis(0.0, 0.5, 1.0, 0.5).to_local(paper_mesh)
        assert start == pytest.approx((-0.5, 0.0, 0.0))
        assert end == pytest.approx((0.5, 0.0, 0.0))

    def test_from_local(self, paper_mesh):
        """Test creating from local points."""
        axis = FoldAxis.from_local((-0.5, 0.0, 0.0), (0.25, 0.25, 0.0), paper_mesh)
        assert axis.start == pytest.approx((0.0, 0.5))
        assert axis.end == pytest.approx((0.75, 0.75))

    def test_from_local_clamps(self, paper_mesh):
        """Test points beyond the sheet clamp to its edge."""
        axis = FoldAxis.from_local((-3.0, 0.0, 0.0), (3.0, 0.0, 0.0), paper_mesh)
        assert axis.start == pytest.approx((0.0, 0.5))
        assert axis.end == pytest.approx((1.0, 0.5))

    def test_follows_folded_vertices(self, paper_mesh):
        """Test the same axis maps to new points after a fold."""
        axis = FoldAxis(0.0, 1.0, 1.0, 1.0)
        before = axis.to_local(paper_mesh)

        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 90.0, "h")
        after = axis.to_local(paper_mesh)

        assert before[0] == pytest.approx((-0.5, 0.5, 0.0))
        assert after[0] == pytest.approx((-0.5, 0.0, 0.5))


class TestVertex:
    """Tests for Vertex class."""

    def test_parametric(self):
        """Test the parametric property."""
        vd = Vertex(index=3, u=0.25, v=0.75, original_position=(0, 0, 0), position=(0, 0, 0))
        assert vd.parametric == (0.25, 0.75)
        assert vd.tags == set()

    def test_add_tag(self):
        """Test tags accumulate."""
        vd = Vertex(index=0, u=0.0, v=0.0, original_position=(0, 0, 0), position=(0, 0, 0))
        vd.add_tag("a_moved")
        vd.add_tag("b_static")
        vd.add_tag("a_moved")
        assert vd.tags == {"a_moved", "b_static"}


class TestGeneration:
    """Tests for mesh generation."""

    def test_counts(self, paper_mesh):
        """Test vertex and triangle counts for the default grid."""
        assert len(paper_mesh) == 21 * 21
        assert len(paper_mesh.triangles) == 20 * 20 * 2

    def test_rectangular_counts(self):
        """Test a non-square grid."""
        mesh = PaperMesh(PaperConfig(width=2.0, height=1.0, resolution_x=4, resolution_y=2))
        assert len(mesh) == 15
        assert len(mesh.triangles) == 16

    def test_flat_layout(self, paper_mesh):
        """Test vertices sit on the flat sheet in row-major order."""
        first = paper_mesh.vertices[0]
        last = paper_mesh.vertices[-1]
        assert first.parametric == (0.0, 0.0)
        assert first.position == pytest.approx((-0.5, -0.5, 0.0))
        assert last.parametric == (1.0, 1.0)
        assert last.position == pytest.approx((0.5, 0.5, 0.0))
        assert paper_mesh.vertices[1].parametric == pytest.approx((0.05, 0.0))
        assert paper_mesh.vertices[21].parametric == pytest.approx((0.0, 0.05))

    def test_dimensions(self):
        """Test width and height scale the layout."""
        mesh = PaperMesh(PaperConfig(width=2.0, height=4.0, resolution_x=2, resolution_y=2))
        assert mesh.vertices[0].position == pytest.approx((-1.0, -2.0, 0.0))
        assert mesh.vertices[-1].position == pytest.approx((1.0, 2.0, 0.0))

    def test_indices(self, paper_mesh):
        """Test vertex indices match list positions."""
        assert all(vd.index == i for i, vd in enumerate(paper_mesh.vertices))

    def test_original_position(self, paper_mesh):
        """Test original and current positions start equal."""
        for vd in paper_mesh.vertices:
            assert vd.original_position == vd.position

    def test_triangle_indices_in_range(self, paper_mesh):
        """Test triangles only reference existing vertices."""
        n = len(paper_mesh)
        for tri in paper_mesh.triangles:
            assert all(0 <= i < n for i in tri)

    def test_flat_normals(self, paper_mesh):
        """Test a flat sheet has +z normals everywhere."""
        assert len(paper_mesh.normals) == len(paper_mesh)
        for normal in paper_mesh.normals:
            assert normal == pytest.approx((0.0, 0.0, 1.0))

    def test_invalid_config_raises(self):
        """Test invalid configuration is rejected."""
        with pytest.raises(ValueError):
            PaperMesh(PaperConfig(width=0.0))
        with pytest.raises(ValueError):
            PaperMesh(PaperConfig(resolution_x=0))


class TestCoordinateMapping:
    """Tests for parametric <-> local mapping."""

    def test_parametric_to_local_exact(self, paper_mesh):
        """Test an exact grid point maps to its vertex."""
        assert paper_mesh.parametric_to_local(0.5, 0.5) == pytest.approx((0.0, 0.0, 0.0))
        assert paper_mesh.parametric_to_local(1.0, 0.0) == pytest.approx((0.5, -0.5, 0.0))

    def test_parametric_to_local_nearest(self, paper_mesh):
        """Test off-grid points snap to the nearest vertex, not interpolate."""
        assert paper_mesh.parametric_to_local(0.52, 0.49) == pytest.approx((0.0, 0.0, 0.0))

    def test_parametric_to_local_far_away(self, paper_mesh):
        """Test points outside the sheet return the nearest corner."""
        assert paper_mesh.parametric_to_local(5.0, 5.0) == pytest.approx((0.5, 0.5, 0.0))

    def test_tie_break_first_vertex(self, small_mesh):
        """Test equidistant vertices resolve to the first in order."""
        # (0.25, 0) is equally far from u=0 and u=0.5
        assert small_mesh.find_closest_vertex_index(0.25, 0.0) == 0
        assert small_mesh.parametric_to_local(0.25, 0.0) == pytest.approx((-0.5, -0.5, 0.0))

    def test_local_to_parametric(self, paper_mesh):
        """Test the flat-layout inverse."""
        assert paper_mesh.local_to_parametric((0.0, 0.0, 0.0)) == pytest.approx((0.5, 0.5))
        assert paper_mesh.local_to_parametric((0.25, -0.5, 3.0)) == pytest.approx((0.75, 0.0))

    def test_local_to_parametric_clamps(self, paper_mesh):
        """Test out-of-sheet points clamp."""
        assert paper_mesh.local_to_parametric((5.0, -5.0, 0.0)) == (1.0, 0.0)

    def test_round_trip_before_folding(self, paper_mesh):
        """Test the mappings invert each other on the flat sheet."""
        for vd in paper_mesh.vertices:
            u, v = paper_mesh.local_to_parametric(vd.position)
            assert (u, v) == pytest.approx(vd.parametric)
            assert paper_mesh.parametric_to_local(u, v) == pytest.approx(vd.position)

    def test_not_inverse_after_folding(self, paper_mesh):
        """Test a folded vertex no longer maps back to its own address."""
        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 180.0, "h")
        vd = _vertex_at(paper_mesh, 0.5, 1.0)
        assert paper_mesh.local_to_parametric(vd.position) == pytest.approx((0.5, 0.0))

    def test_snap_to_edge(self, paper_mesh):
        """Test snapping to the nearest edge."""
        assert paper_mesh.snap_to_edge(0.1, 0.5) == (0.0, 0.5)
        assert paper_mesh.snap_to_edge(0.9, 0.3) == (1.0, 0.3)
        assert paper_mesh.snap_to_edge(0.4, 0.05) == (0.4, 0.0)
        assert paper_mesh.snap_to_edge(0.5, 0.95) == (0.5, 1.0)

    def test_snap_to_edge_clamps(self, paper_mesh):
        """Test the free coordinate is clamped."""
        assert paper_mesh.snap_to_edge(-0.2, 1.4) == (0.0, 1.0)

    def test_normal_at(self, paper_mesh):
        """Test normals follow a 90 degree fold."""
        assert paper_mesh.normal_at(0.5, 0.9) == pytest.approx((0.0, 0.0, 1.0))
        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 90.0, "h")
        assert paper_mesh.normal_at(0.5, 0.9) == pytest.approx((0.0, -1.0, 0.0), abs=1e-9)
        assert paper_mesh.normal_at(0.5, 0.1) == pytest.approx((0.0, 0.0, 1.0))


class TestBounds:
    """Tests for bounding box."""

    def test_flat_bounds(self, paper_mesh):
        """Test the flat sheet bounds."""
        bounds = paper_mesh.bounds()
        assert isinstance(bounds, Bounds3D)
        assert bounds.size == pytest.approx((1.0, 1.0, 0.0))
        assert bounds.center == pytest.approx((0.0, 0.0, 0.0))

    def test_folded_bounds(self, paper_mesh):
        """Test bounds shrink after folding in half."""
        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 90.0, "h")
        bounds = paper_mesh.bounds()
        assert bounds.size == pytest.approx((1.0, 0.5, 0.5))


class TestTags:
    """Tests for tag provenance queries."""

    def test_no_tags_initially(self, paper_mesh):
        """Test a fresh mesh has no tags."""
        assert paper_mesh.get_all_tags() == set()
        assert paper_mesh.fold_counter == 0

    def test_next_fold_tags_default(self, paper_mesh):
        """Test default names use the fold counter."""
        assert paper_mesh.next_fold_tags() == ("fold_0_moved", "fold_0_static")
        assert paper_mesh.next_fold_tags() == ("fold_1_moved", "fold_1_static")
        assert paper_mesh.fold_counter == 2

    def test_next_fold_tags_named(self, paper_mesh):
        """Test named folds still advance the counter."""
        assert paper_mesh.next_fold_tags("h") == ("h_moved", "h_static")
        assert paper_mesh.fold_counter == 1
        assert paper_mesh.next_fold_tags() == ("fold_1_moved", "fold_1_static")

    def test_get_vertex_tags_is_copy(self, paper_mesh):
        """Test returned tag sets do not alias the mesh."""
        paper_mesh.vertices[5].add_tag("a")
        tags = paper_mesh.get_vertex_tags(5)
        tags.add("b")
        assert paper_mesh.get_vertex_tags(5) == {"a"}

    def test_get_vertex_tags_out_of_range(self, paper_mesh):
        """Test unknown indices return an empty set."""
        assert paper_mesh.get_vertex_tags(-1) == set()
        assert paper_mesh.get_vertex_tags(len(paper_mesh)) == set()

    def test_get_vertices_with_tag(self, paper_mesh):
        """Test looking up vertices by tag."""
        paper_mesh.vertices[2].add_tag("x")
        paper_mesh.vertices[7].add_tag("x")
        paper_mesh.vertices[7].add_tag("y")
        assert paper_mesh.get_vertices_with_tag("x") == [2, 7]
        assert paper_mesh.get_all_tags() == {"x", "y"}


class TestReset:
    """Tests for resetting the mesh."""

    def test_reset_restores_flat_sheet(self, paper_mesh):
        """Test reset clears tags, counter and positions."""
        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 180.0, "h")
        fold(paper_mesh, FoldAxis(0.5, 0.0, 0.5, 0.5), 90.0)
        assert paper_mesh.get_all_tags()

        paper_mesh.reset()

        assert paper_mesh.get_all_tags() == set()
        assert paper_mesh.fold_counter == 0
        assert len(paper_mesh) == 21 * 21
        for vd in paper_mesh.vertices:
            assert vd.position == vd.original_position
            assert vd.position[2] == 0.0

    def test_reset_keeps_triangulation(self, paper_mesh):
        """Test the triangulation is regenerated identically."""
        triangles = list(paper_mesh.triangles)
        fold(paper_mesh, FoldAxis(0.0, 0.5, 1.0, 0.5), 90.0)
        paper_mesh.reset()
        assert paper_mesh.triangles == triangles


class TestExport:
    """Tests for OBJ export."""

    def test_to_obj(self, small_mesh, tmp_path):
        """Test writing an OBJ file."""
        path = tmp_path / "paper.obj"
        small_mesh.to_obj(path)

        lines = path.read_text().splitlines()
        assert sum(1 for line in lines if line.startswith("v ")) == 9
        assert sum(1 for line in lines if line.startswith("vt ")) == 9
        assert sum(1 for line in lines if line.startswith("f ")) == 8
        assert "f 1/1 2/2 4/4" in lines
