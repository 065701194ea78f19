"""Unit tests for config module."""

import json

from config import PaperConfig, RESOLUTION_PRESETS, MAX_RESOLUTION


class TestPaperConfig:
    """Tests for PaperConfig class."""

    def test_defaults(self):
        """Test default configuration values."""
        config = PaperConfig()
        assert config.width == 1.0
        assert config.height == 1.0
        assert config.resolution_x == 20
        assert config.resolution_y == 20
        assert config.flat_fold_offset == 0.002
        assert config.side_epsilon == 1e-4
        assert config.flat_fold_tolerance_deg == 0.1
        assert config.default_duration == 1.0

    def test_derived_values(self):
        """Test vertex count and largest dimension."""
        config = PaperConfig(width=2.0, height=0.5, resolution_x=4, resolution_y=2)
        assert config.vertex_count == 15
        assert config.max_dimension == 2.0

    def test_validate_default(self):
        """Test default configuration is valid."""
        assert PaperConfig().validate() == []

    def test_validate_dimensions(self):
        """Test non-positive dimensions are rejected."""
        errors = PaperConfig(width=0.0, height=-1.0).validate()
        assert len(errors) == 2
        assert any("width" in e for e in errors)
        assert any("height" in e for e in errors)

    def test_validate_resolution(self):
        """Test resolution bounds."""
        assert any("resolution_x" in e for e in PaperConfig(resolution_x=0).validate())
        assert any("excessive" in e for e in PaperConfig(resolution_y=MAX_RESOLUTION + 1).validate())
        assert PaperConfig(resolution_x=1, resolution_y=MAX_RESOLUTION).validate() == []

    def test_validate_tolerances(self):
        """Test negative tolerances are rejected."""
        config = PaperConfig(
            flat_fold_offset=-0.1,
            side_epsilon=-1.0,
            flat_fold_tolerance_deg=-1.0,
            default_duration=-1.0,
        )
        assert len(config.validate()) == 4

    def test_zero_tolerances_allowed(self):
        """Test zero tolerances are valid."""
        config = PaperConfig(flat_fold_offset=0.0, side_epsilon=0.0, default_duration=0.0)
        assert config.validate() == []

    def test_dict_round_trip(self):
        """Test to_dict / from_dict."""
        config = PaperConfig(width=2.0, resolution_y=7, flat_fold_offset=0.01)
        assert PaperConfig.from_dict(config.to_dict()) == config

    def test_from_dict_defaults(self):
        """Test missing keys fall back to defaults."""
        assert PaperConfig.from_dict({}) == PaperConfig()

    def test_from_dict_single_resolution(self):
        """Test a single resolution key sets both axes."""
        config = PaperConfig.from_dict({"resolution": 12})
        assert (config.resolution_x, config.resolution_y) == (12, 12)

        config = PaperConfig.from_dict({"resolution": 12, "resolution_y": 5})
        assert (config.resolution_x, config.resolution_y) == (12, 5)

    def test_save_load(self, tmp_path):
        """Test JSON save and load."""
        path = tmp_path / "paper.json"
        config = PaperConfig(height=1.5, resolution_x=30)
        config.save(path)

        assert json.loads(path.read_text())["resolution_x"] == 30
        assert PaperConfig.load(path) == config

    def test_load_missing_file(self, tmp_path):
        """Test loading a missing file returns defaults."""
        assert PaperConfig.load(tmp_path / "missing.json") == PaperConfig()

    def test_sequence_config(self, tmp_path):
        """Test the per-sequence configuration file."""
        sequence = tmp_path / "crane.json"
        config = PaperConfig(resolution_x=8, resolution_y=8)
        config.save_for_sequence(sequence)

        assert (tmp_path / "crane.paper_config.json").exists()
        assert PaperConfig.load_for_sequence(sequence) == config

    def test_presets_valid(self):
        """Test every preset produces a valid configuration."""
        for name, (rx, ry) in RESOLUTION_PRESETS.items():
            assert PaperConfig(resolution_x=rx, resolution_y=ry).validate() == [], name
