"""Pytest fixtures for paper folding tests."""

import pytest
import json
import sys
from pathlib import Path

# Add repository root to path for imports
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

from config import PaperConfig
from paper_mesh import PaperMesh


@pytest.fixture
def paper_config() -> PaperConfig:
    """Return the default 1 x 1 paper with a 20 x 20 grid."""
    return PaperConfig()


@pytest.fixture
def paper_mesh(paper_config) -> PaperMesh:
    """Return a flat default paper mesh."""
    return PaperMesh(paper_config)


@pytest.fixture
def small_mesh() -> PaperMesh:
    """Return a 2 x 2 cell paper mesh (3 x 3 vertices)."""
    return PaperMesh(PaperConfig(resolution_x=2, resolution_y=2))


@pytest.fixture
def sequence_data() -> dict:
    """Return a two-step sequence: a horizontal valley fold, then a filtered fold."""
    return {
        "name": "Test sequence",
        "description": "Fold in half, then fold the flap",
        "steps": [
            {
                "type": "fold",
                "handle_uv": [0.5, 1.0],
                "tag_name": "h",
                "tag_expression": "",
                "fold_angle": 180.0,
                "has_correct_axis": True,
                "correct_axis_start": [0.0, 0.5],
                "correct_axis_end": [1.0, 0.5],
            },
            {
                "type": "camera",
                "rotation": [30.0, 0.0, 0.0],
                "distance": 5.0,
                "duration": 1.0,
            },
            {
                "type": "fold",
                "handle_uv": [0.0, 0.0],
                "tag_name": "v",
                "tag_expression": "h_moved",
                "fold_angle": 90.0,
                "has_correct_axis": True,
                "correct_axis_start": [0.5, 0.0],
                "correct_axis_end": [0.5, 0.5],
            },
        ],
    }


@pytest.fixture
def sequence_path(tmp_path, sequence_data) -> Path:
    """Return path to the test sequence written as JSON."""
    path = tmp_path / "sequence.json"
    path.write_text(json.dumps(sequence_data))
    return path
