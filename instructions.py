"""
Folding instruction sequences.

A sequence is an ordered list of steps. Fold steps carry everything needed
to replay a fold (handle position, tag name, tag expression, angle,
duration) plus an optional reference axis for accuracy scoring. Camera
steps are kept as data for a viewer and are skipped when folding.

Sequences are stored as JSON:

    {
      "name": "Valley fold",
      "description": "",
      "steps": [
        {"type": "fold", "handle_uv": [0.5, 0.0], "tag_name": "h",
         "tag_expression": "", "fold_angle": 180.0, "duration": 0.0,
         "has_correct_axis": true,
         "correct_axis_start": [0.0, 0.5], "correct_axis_end": [1.0, 0.5]},
        {"type": "camera", "rotation": [30, 0, 0], "distance": 10, "duration": 1}
      ]
    }
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import json

try:
    from .paper_mesh import PaperMesh, FoldAxis, Vec3
    from .tag_expression import validate_expression, extract_tag_names
    from .fold_transform import (
        AnimatedFold, FoldResult, FoldStatus, fold_local, compile_predicate,
    )
    from .drag_axis import derive_axis_from_drag
except ImportError:
    from paper_mesh import PaperMesh, FoldAxis, Vec3
    from tag_expression import validate_expression, extract_tag_names
    from fold_transform import (
        AnimatedFold, FoldResult, FoldStatus, fold_local, compile_predicate,
    )
    from drag_axis import derive_axis_from_drag


@dataclass
class FoldStep:
    """A fold operation step."""
    handle_uv: tuple[float, float] = (0.5, 0.0)
    tag_name: str = "fold_1"
    tag_expression: str = ""
    fold_angle: float = 180.0
    duration: float = 0.0  # 0 = instant
    use_camera_plane: bool = False

    # Accuracy tracking
    has_correct_axis: bool = False
    correct_axis_start: tuple[float, float] = (0.0, 0.5)
    correct_axis_end: tuple[float, float] = (1.0, 0.5)
    score_modifier: float = 0.0  # Flat bonus/penalty, -100 to 100

    step_type = "fold"

    def correct_axis(self) -> FoldAxis:
        return FoldAxis(
            self.correct_axis_start[0], self.correct_axis_start[1],
            self.correct_axis_end[0], self.correct_axis_end[1],
        )

    def display_name(self) -> str:
        expr = self.tag_expression if self.tag_expression else "all"
        plane_mode = "[CamPlane]" if self.use_camera_plane else ""
        accuracy = " [Scored]" if self.has_correct_axis else ""
        return (
            f"Fold at ({self.handle_uv[0]:.2f}, {self.handle_uv[1]:.2f}) → tag '{self.tag_name}' "
            f"| filter: {expr} | angle: {self.fold_angle:g}° {plane_mode}{accuracy}"
        )

    def to_dict(self) -> dict:
        return {
            "type": self.step_type,
            "handle_uv": list(self.handle_uv),
            "tag_name": self.tag_name,
            "tag_expression": self.tag_expression,
            "fold_angle": self.fold_angle,
            "duration": self.duration,
            "use_camera_plane": self.use_camera_plane,
            "has_correct_axis": self.has_correct_axis,
            "correct_axis_start": list(self.correct_axis_start),
            "correct_axis_end": list(self.correct_axis_end),
            "score_modifier": self.score_modifier,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FoldStep":
        return cls(
            handle_uv=tuple(data.get("handle_uv", (0.5, 0.0))),
            tag_name=data.get("tag_name", "fold_1"),
            tag_expression=data.get("tag_expression", ""),
            fold_angle=data.get("fold_angle", 180.0),
            duration=data.get("duration", 0.0),
            use_camera_plane=data.get("use_camera_plane", False),
            has_correct_axis=data.get("has_correct_axis", False),
            correct_axis_start=tuple(data.get("correct_axis_start", (0.0, 0.5))),
            correct_axis_end=tuple(data.get("correct_axis_end", (1.0, 0.5))),
            score_modifier=data.get("score_modifier", 0.0),
        )


@dataclass
class CameraMoveStep:
    """A camera movement step (data only)."""
    rotation: tuple[float, float, float] = (0.0, 0.0, 0.0)  # Euler angles
    distance: float = 10.0
    duration: float = 1.0

    step_type = "camera"

    def display_name(self) -> str:
        rx, ry, rz = self.rotation
        return (
            f"Camera to rot({rx:.0f}, {ry:.0f}, {rz:.0f}) "
            f"dist: {self.distance:.1f} over {self.duration:.1f}s"
        )

    def to_dict(self) -> dict:
        return {
            "type": self.step_type,
            "rotation": list(self.rotation),
            "distance": self.distance,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CameraMoveStep":
        return cls(
            rotation=tuple(data.get("rotation", (0.0, 0.0, 0.0))),
            distance=data.get("distance", 10.0),
            duration=data.get("duration", 1.0),
        )


Step = Union[FoldStep, CameraMoveStep]

STEP_TYPES = {
    "fold": FoldStep,
    "camera": CameraMoveStep,
}


@dataclass
class FoldingInstructions:
    """An ordered sequence of fold and camera steps."""
    name: str = "Untitled Sequence"
    description: str = ""
    steps: list[Step] = field(default_factory=list)
    auto_play: bool = False
    loop: bool = False

    @property
    def fold_steps(self) -> list[FoldStep]:
        return [s for s in self.steps if isinstance(s, FoldStep)]

    def add_step(self, step: Step) -> None:
        self.steps.append(step)

    def remove_step(self, index: int) -> None:
        """Remove a step; out-of-range indices are ignored."""
        if 0 <= index < len(self.steps):
            del self.steps[index]

    def move_step(self, from_index: int, to_index: int) -> None:
        """Move a step to a new position; invalid moves are ignored."""
        n = len(self.steps)
        if 0 <= from_index < n and 0 <= to_index < n and from_index != to_index:
            step = self.steps.pop(from_index)
            self.steps.insert(to_index, step)

    def tags_up_to_step(self, step_index: int) -> set[str]:
        """Tags created by executing steps 0..step_index inclusive."""
        tags = set()
        for step in self.steps[:max(step_index + 1, 0)]:
            if isinstance(step, FoldStep) and step.tag_name:
                # Each fold creates both _moved and _static variants
                tags.add(step.tag_name + "_moved")
                tags.add(step.tag_name + "_static")
        return tags

    def all_tags(self) -> set[str]:
        return self.tags_up_to_step(len(self.steps) - 1)

    def referenced_tags(self) -> set[str]:
        """Every tag name used by a step's tag expression."""
        tags = set()
        for step in self.fold_steps:
            tags.update(extract_tag_names(step.tag_expression))
        return tags

    def validate_expressions(self) -> list[tuple[int, str]]:
        """(step_index, error_message) for every invalid tag expression."""
        errors = []
        for i, step in enumerate(self.steps):
            if isinstance(step, FoldStep) and step.tag_expression:
                is_valid, message = validate_expression(step.tag_expression)
                if not is_valid:
                    errors.append((i, message))
        return errors

    def undefined_tags_at_step(self, step_index: int) -> list[str]:
        """Tags referenced at step_index that no earlier step creates."""
        if not 0 <= step_index < len(self.steps):
            return []
        step = self.steps[step_index]
        if not isinstance(step, FoldStep):
            return []

        available = self.tags_up_to_step(step_index - 1)
        return sorted(t for t in extract_tag_names(step.tag_expression) if t not in available)

    def summary(self) -> str:
        fold_count = len(self.fold_steps)
        camera_count = len(self.steps) - fold_count
        return (
            f"{self.name}\n"
            f"Steps: {len(self.steps)} ({fold_count} folds, {camera_count} camera moves)\n"
            f"Tags: {len(self.all_tags())} created, {len(self.referenced_tags())} referenced"
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "auto_play": self.auto_play,
            "loop": self.loop,
            "steps": [s.to_dict() for s in self.steps],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FoldingInstructions":
        steps = []
        for i, step_data in enumerate(data.get("steps", [])):
            step_type = step_data.get("type", "fold")
            step_cls = STEP_TYPES.get(step_type)
            if step_cls is None:
                raise ValueError(f"Step {i}: unknown step type '{step_type}'")
            steps.append(step_cls.from_dict(step_data))

        return cls(
            name=data.get("name", "Untitled Sequence"),
            description=data.get("description", ""),
            steps=steps,
            auto_play=data.get("auto_play", False),
            loop=data.get("loop", False),
        )

    def save(self, filepath: Path | str) -> None:
        with open(Path(filepath), 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str) -> "FoldingInstructions":
        with open(Path(filepath), 'r') as f:
            return cls.from_dict(json.load(f))


def step_fold_line(mesh: PaperMesh, step: FoldStep) -> tuple[Vec3, Vec3]:
    """
    Local-space fold line for a scripted step.

    Uses the step's reference axis when it has one. Otherwise the handle is
    treated as dragged onto the centre of the sheet.

    Raises:
        ValueError: if the step has no axis and its handle is at the centre
    """
    if step.has_correct_axis:
        return step.correct_axis().to_local(mesh)

    u, v = step.handle_uv
    origin = mesh.parametric_to_local(u, v)
    target = mesh.parametric_to_local(0.5, 0.5)
    line = derive_axis_from_drag(
        origin, target, mesh.normal_at(u, v), mesh.width, mesh.height,
    )
    if line is None:
        raise ValueError(
            f"Fold step '{step.tag_name}' has no reference axis and its handle "
            f"({u:.2f}, {v:.2f}) is at the centre of the sheet"
        )
    return line


class SequenceRunner:
    """
    Plays the fold steps of a sequence on a mesh.

    run() applies every fold immediately. tick(delta_seconds) plays the
    sequence over time, animating steps with a positive duration.
    """

    def __init__(self, mesh: PaperMesh, instructions: FoldingInstructions):
        self.mesh = mesh
        self.instructions = instructions
        self.step_index = 0
        self.results: list[FoldResult] = []
        self._active: Optional[AnimatedFold] = None

    @property
    def done(self) -> bool:
        return self._active is None and self.step_index >= len(self.instructions.steps)

    def run(self) -> list[FoldResult]:
        """Apply all remaining fold steps instantly."""
        if self._active is not None:
            self.results.append(self._active.finish())
            self._active = None
            self.step_index += 1

        while self.step_index < len(self.instructions.steps):
            step = self.instructions.steps[self.step_index]
            if isinstance(step, FoldStep):
                self.results.append(self._fold_now(step))
            self.step_index += 1
        return self.results

    def tick(self, delta_seconds: float) -> FoldStatus:
        """Advance the sequence by delta_seconds."""
        while not self.done:
            if self._active is not None:
                if self._active.tick(delta_seconds) is FoldStatus.IN_PROGRESS:
                    return FoldStatus.IN_PROGRESS
                self.results.append(self._active.result)
                self._active = None
                self.step_index += 1
                return FoldStatus.DONE if self.done else FoldStatus.IN_PROGRESS

            step = self.instructions.steps[self.step_index]
            if not isinstance(step, FoldStep):
                self.step_index += 1
                continue

            if step.duration <= 0:
                self.results.append(self._fold_now(step))
                self.step_index += 1
                return FoldStatus.DONE if self.done else FoldStatus.IN_PROGRESS

            start, end = step_fold_line(self.mesh, step)
            self._active = AnimatedFold(
                self.mesh, start, end, step.fold_angle,
                step.tag_name or None, compile_predicate(step.tag_expression),
                step.duration,
            )
            delta_seconds = 0.0

        return FoldStatus.DONE

    def _fold_now(self, step: FoldStep) -> FoldResult:
        start, end = step_fold_line(self.mesh, step)
        return fold_local(
            self.mesh, start, end, step.fold_angle,
            step.tag_name or None, compile_predicate(step.tag_expression),
        )
