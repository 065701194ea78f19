"""
Configuration for the paper folding engine.

Defines paper dimensions, grid resolution and the tolerances used when
partitioning and rotating vertices.
"""

from dataclasses import dataclass
import json
from pathlib import Path


MAX_RESOLUTION = 512


@dataclass
class PaperConfig:
    """
    Configuration for a subdivided sheet of paper.

    Attributes:
        width: Paper width in local units (x extent of the flat layout)
        height: Paper height in local units (y extent of the flat layout)
        resolution_x: Number of grid cells along u
        resolution_y: Number of grid cells along v
        flat_fold_offset: Separation applied to the folded layer of a 180° fold
        side_epsilon: Vertices closer than this to the fold plane stay static
        flat_fold_tolerance_deg: Angles within this of ±180° count as flat folds
        default_duration: Animation length in seconds when none is given
    """
    # Paper dimensions
    width: float = 1.0
    height: float = 1.0

    # Mesh resolution
    resolution_x: int = 20
    resolution_y: int = 20

    # 180° fold settings
    flat_fold_offset: float = 0.002

    # Tolerances
    side_epsilon: float = 1e-4
    flat_fold_tolerance_deg: float = 0.1

    # Animation
    default_duration: float = 1.0

    def validate(self) -> list[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.width <= 0:
            errors.append(f"width must be positive, got {self.width}")
        if self.height <= 0:
            errors.append(f"height must be positive, got {self.height}")

        for name in ("resolution_x", "resolution_y"):
            value = getattr(self, name)
            if value < 1:
                errors.append(f"{name} must be >= 1, got {value}")
            elif value > MAX_RESOLUTION:
                errors.append(f"{name} {value} is excessive (max: {MAX_RESOLUTION})")

        if self.flat_fold_offset < 0:
            errors.append(f"flat_fold_offset cannot be negative, got {self.flat_fold_offset}")
        if self.side_epsilon < 0:
            errors.append(f"side_epsilon cannot be negative, got {self.side_epsilon}")
        if self.flat_fold_tolerance_deg < 0:
            errors.append(f"flat_fold_tolerance_deg cannot be negative, got {self.flat_fold_tolerance_deg}")
        if self.default_duration < 0:
            errors.append(f"default_duration cannot be negative, got {self.default_duration}")

        return errors

    @property
    def vertex_count(self) -> int:
        """Number of grid vertices generated for this configuration."""
        return (self.resolution_x + 1) * (self.resolution_y + 1)

    @property
    def max_dimension(self) -> float:
        """Largest side of the paper."""
        return max(self.width, self.height)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "width": self.width,
            "height": self.height,
            "resolution_x": self.resolution_x,
            "resolution_y": self.resolution_y,
            "flat_fold_offset": self.flat_fold_offset,
            "side_epsilon": self.side_epsilon,
            "flat_fold_tolerance_deg": self.flat_fold_tolerance_deg,
            "default_duration": self.default_duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PaperConfig":
        """Create from dictionary."""
        # Single "resolution" key sets both axes
        resolution = data.get("resolution")
        return cls(
            width=data.get("width", 1.0),
            height=data.get("height", 1.0),
            resolution_x=data.get("resolution_x", resolution if resolution is not None else 20),
            resolution_y=data.get("resolution_y", resolution if resolution is not None else 20),
            flat_fold_offset=data.get("flat_fold_offset", 0.002),
            side_epsilon=data.get("side_epsilon", 1e-4),
            flat_fold_tolerance_deg=data.get("flat_fold_tolerance_deg", 0.1),
            default_duration=data.get("default_duration", 1.0),
        )

    def save(self, filepath: Path | str) -> None:
        """Save configuration to JSON file."""
        filepath = Path(filepath)
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, filepath: Path | str) -> "PaperConfig":
        """Load configuration from JSON file."""
        filepath = Path(filepath)
        if not filepath.exists():
            return cls()  # Return defaults if file doesn't exist

        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    @classmethod
    def load_for_sequence(cls, sequence_filepath: Path | str) -> "PaperConfig":
        """
        Load configuration for a specific instruction sequence file.

        Looks for <sequence_name>.paper_config.json next to the sequence file.
        Returns defaults if config file doesn't exist.
        """
        sequence_path = Path(sequence_filepath)
        config_path = sequence_path.with_suffix('.paper_config.json')
        return cls.load(config_path)

    def save_for_sequence(self, sequence_filepath: Path | str) -> None:
        """
        Save configuration for a specific instruction sequence file.

        Saves as <sequence_name>.paper_config.json next to the sequence file.
        """
        sequence_path = Path(sequence_filepath)
        config_path = sequence_path.with_suffix('.paper_config.json')
        self.save(config_path)


# Common grid resolutions (cells along u, cells along v)
RESOLUTION_PRESETS = {
    "coarse": (8, 8),
    "default": (20, 20),
    "fine": (40, 40),
    "a4_portrait": (20, 28),
}
