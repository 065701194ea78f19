"""
Fold accuracy scoring.

Compares the axis a player chose with the reference axis of an instruction
step, as seen along a viewing direction. Both axes are mapped onto the mesh's
current shape and projected onto the view plane, then scored on:

  - direction: exp(-0.1 * angle_deg^2), where angle_deg is the angle between
    the two lines (0-90°, lines have no orientation)
  - position:  1 at zero offset down to 0 at half the paper size, measured as
    the perpendicular distance from the player's midpoint to the reference

The two scores are averaged, scaled to 0-100, shifted by the step's score
modifier and clamped to [0, 100].
"""

from dataclasses import dataclass, field
import math

try:
    from .paper_mesh import PaperMesh, FoldAxis, Vec3
    from .fold_transform import _sub, _add, _scale, _dot, _cross
except ImportError:
    from paper_mesh import PaperMesh, FoldAxis, Vec3
    from fold_transform import _sub, _add, _scale, _dot, _cross


DIRECTION_SHARPNESS = 0.1  # k in exp(-k * angle^2)
POSITION_FALLOFF = 0.5     # Fraction of paper size where position score reaches 0


def _project_on_plane(point: Vec3, normal: Vec3) -> Vec3:
    return _sub(point, _scale(normal, _dot(point, normal)))


def _unit(a: Vec3) -> Vec3 | None:
    length = math.sqrt(_dot(a, a))
    if length < 1e-12:
        return None
    return (a[0] / length, a[1] / length, a[2] / length)


def fold_accuracy(
    player_axis: FoldAxis,
    correct_axis: FoldAxis,
    mesh: PaperMesh,
    view_normal: Vec3 = (0.0, 0.0, 1.0),
    score_modifier: float = 0.0,
) -> float:
    """
    Score a player's fold axis against the reference.

    Args:
        player_axis: Axis chosen by the player
        correct_axis: Reference axis
        mesh: Paper both axes refer to
        view_normal: Viewing direction; both axes are projected onto the
            plane perpendicular to it
        score_modifier: Flat adjustment added before clamping

    Returns:
        Score in [0, 100] (0 for a degenerate axis)
    """
    normal = _unit(view_normal)
    if normal is None:
        return 0.0

    player_start, player_end = (_project_on_plane(p, normal) for p in player_axis.to_local(mesh))
    correct_start, correct_end = (_project_on_plane(p, normal) for p in correct_axis.to_local(mesh))

    player_dir = _unit(_sub(player_end, player_start))
    correct_dir = _unit(_sub(correct_end, correct_start))
    if player_dir is None or correct_dir is None:
        return 0.0

    # Fold lines have no orientation
    dot = min(1.0, abs(_dot(player_dir, correct_dir)))
    angle_degrees = math.degrees(math.acos(dot))
    direction_score = math.exp(-DIRECTION_SHARPNESS * angle_degrees * angle_degrees)

    player_mid = _scale(_add(player_start, player_end), 0.5)
    correct_mid = _scale(_add(correct_start, correct_end), 0.5)
    cross = _cross(correct_dir, _sub(player_mid, correct_mid))
    perp_distance = math.sqrt(_dot(cross, cross))

    normalized_distance = perp_distance / max(mesh.width, mesh.height)
    position_score = max(0.0, min(1.0, 1.0 - normalized_distance / POSITION_FALLOFF))

    score = (direction_score * 0.5 + position_score * 0.5) * 100.0
    score += score_modifier
    return max(0.0, min(100.0, score))


@dataclass
class AccuracyTracker:
    """Running record of scored folds."""
    scores: list[float] = field(default_factory=list)

    def record(self, score: float) -> float:
        """Add a score and return the new average."""
        self.scores.append(score)
        return self.average

    @property
    def count(self) -> int:
        return len(self.scores)

    @property
    def last(self) -> float:
        return self.scores[-1] if self.scores else 0.0

    @property
    def average(self) -> float:
        if not self.scores:
            return 0.0
        return sum(self.scores) / len(self.scores)

    def reset(self) -> None:
        self.scores.clear()
