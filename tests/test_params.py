"""Tests for parameter management module.

Tests schema validation, YAML loading, and the configuration channel.
"""

import warnings

import pytest
import yaml

from stirflow.core.errors import ConfigWarning
from stirflow.params import (
    ConfigChannel,
    ForceParams,
    GridParams,
    SimulationConfig,
    SolverParams,
    TrajectoryParams,
    ValidationError,
    load_config,
    load_config_with_overrides,
    merge_configs,
    save_config,
)


class TestGridParams:
    """Tests for GridParams dataclass."""

    def test_default_values(self):
        params = GridParams()
        assert params.viewport_width == 512
        assert params.resolution == 0.5

    @pytest.mark.parametrize("resolution", [0.0, -0.5, 1.5])
    def test_resolution_range(self, resolution):
        with pytest.raises(ValidationError, match="resolution"):
            GridParams(resolution=resolution)

    def test_viewport_positive(self):
        with pytest.raises(ValidationError, match="viewport_width"):
            GridParams(viewport_width=0)

    def test_immutability(self):
        params = GridParams()
        with pytest.raises(Exception):
            params.resolution = 1.0


class TestSolverParams:
    """Tests for SolverParams dataclass."""

    def test_defaults(self):
        params = SolverParams()
        assert params.dt == pytest.approx(0.014)
        assert params.iterations_viscous == 32
        assert params.iterations_poisson == 32
        assert params.bfecc is True
        assert params.is_viscous is False
        assert not params.is_bounded

    @pytest.mark.parametrize("field", ["iterations_viscous", "iterations_poisson"])
    def test_iterations_at_least_one(self, field):
        with pytest.raises(ValidationError, match=field):
            SolverParams(**{field: 0})

    def test_non_integer_iterations(self):
        with pytest.raises(ValidationError):
            SolverParams(iterations_poisson=2.5)

    def test_dt_positive(self):
        with pytest.raises(ValidationError, match="dt must be positive"):
            SolverParams(dt=0.0)

    @pytest.mark.parametrize("field", ["dt", "viscosity", "bfecc_clamp"])
    def test_non_finite_rejected(self, field):
        with pytest.raises(ValidationError, match="finite"):
            SolverParams(**{field: float("nan")})
        with pytest.raises(ValidationError, match="finite"):
            SolverParams(**{field: float("inf")})

    def test_negative_viscosity(self):
        with pytest.raises(ValidationError, match="viscosity"):
            SolverParams(viscosity=-1.0)

    def test_boundary_mode(self):
        assert SolverParams(boundary="bounded").is_bounded
        with pytest.raises(ValidationError, match="boundary"):
            SolverParams(boundary="periodic")


class TestForceAndTrajectoryParams:
    def test_force_validation(self):
        with pytest.raises(ValidationError, match="cursor_size"):
            ForceParams(cursor_size=0.0)
        with pytest.raises(ValidationError, match="idle_timeout"):
            ForceParams(idle_timeout=0.0)

    def test_world_bounds_ordered(self):
        with pytest.raises(ValidationError, match="x_min"):
            TrajectoryParams(x_min=5.0, x_max=5.0)
        with pytest.raises(ValidationError, match="y_min"):
            TrajectoryParams(y_min=10.0, y_max=0.0)

    def test_world_bounds_finite(self):
        with pytest.raises(ValidationError, match="x_max must be finite"):
            TrajectoryParams(x_max=float("inf"))
        with pytest.raises(ValidationError, match="y_min must be finite"):
            TrajectoryParams(y_min=float("nan"))


class TestSimulationConfig:
    """Tests for the aggregate config."""

    def test_dict_round_trip(self):
        config = SimulationConfig(solver=SolverParams(viscosity=5.0))
        assert SimulationConfig.from_dict(config.to_dict()) == config

    def test_from_dict_partial(self):
        config = SimulationConfig.from_dict({"solver": {"dt": 0.02}})
        assert config.dt == 0.02
        assert config.grid == GridParams()

    def test_unknown_key_warns(self):
        with pytest.warns(ConfigWarning, match="solver.speed"):
            config = SimulationConfig.from_dict({"solver": {"speed": 3}})
        assert config.solver == SolverParams()

    def test_unknown_group_warns(self):
        with pytest.warns(ConfigWarning, match="rendering"):
            SimulationConfig.from_dict({"rendering": {"gamma": 2.2}})

    def test_with_updates(self):
        config = SimulationConfig().with_updates(solver={"is_viscous": True})
        assert config.solver.is_viscous
        assert config.forces == ForceParams()

    def test_with_updates_unknown_group(self):
        with pytest.raises(ValidationError, match="Unknown parameter group"):
            SimulationConfig().with_updates(physics={"g": 9.8})

    def test_with_updates_validates(self):
        with pytest.raises(ValidationError):
            SimulationConfig().with_updates(solver={"dt": -1.0})


class TestYamlLoader:
    """Tests for YAML configuration files."""

    def test_save_and_load(self, tmp_path):
        config = SimulationConfig().with_updates(
            solver={"boundary": "bounded", "iterations_poisson": 40},
            forces={"mouse_force": 12.5},
        )
        path = tmp_path / "configs" / "run.yaml"
        save_config(config, path)
        assert load_config(path) == config

    def test_saved_file_is_plain_yaml(self, tmp_path):
        path = tmp_path / "run.yaml"
        save_config(SimulationConfig(), path)
        data = yaml.safe_load(path.read_text())
        assert data["solver"]["dt"] == pytest.approx(0.014)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SimulationConfig()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValidationError, match="dictionary"):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("solver:\n  iterations_viscous: 0\n")
        with pytest.raises(ValidationError):
            load_config(path)

    def test_overrides(self, tmp_path):
        path = tmp_path / "base.yaml"
        path.write_text("grid:\n  resolution: 0.25\n")
        config = load_config_with_overrides(path, {"solver": {"bfecc": False}})
        assert config.grid.resolution == 0.25
        assert config.solver.bfecc is False

    def test_overrides_without_file(self):
        config = load_config_with_overrides(overrides={"forces": {"cursor_size": 40.0}})
        assert config.forces.cursor_size == 40.0

    def test_merge_configs(self):
        base = SimulationConfig().with_updates(grid={"resolution": 0.25})
        override = SimulationConfig().with_updates(solver={"viscosity": 1.0})
        merged = merge_configs(base, override)
        assert merged.grid.resolution == 0.25
        assert merged.solver.viscosity == 1.0


class TestConfigChannel:
    """Tests for tick-boundary configuration updates."""

    def test_changes_wait_for_apply(self):
        channel = ConfigChannel()
        channel.submit("solver", viscosity=2.0)
        assert channel.current.solver.viscosity == 30.0
        assert channel.has_pending
        config = channel.apply_pending()
        assert config.solver.viscosity == 2.0
        assert not channel.has_pending

    def test_out_of_range_keeps_previous(self):
        channel = ConfigChannel()
        channel.submit("solver", iterations_poisson=0, dt=0.02)
        with pytest.warns(ConfigWarning, match="iterations_poisson"):
            config = channel.apply_pending()
        assert config.solver.iterations_poisson == 32
        assert config.solver.dt == 0.02

    def test_unknown_name_warns(self):
        channel = ConfigChannel()
        channel.submit("solver", vorticity=1.0)
        channel.submit("lighting", level=1)
        with pytest.warns(ConfigWarning) as record:
            config = channel.apply_pending()
        assert len(record) == 2
        assert config == SimulationConfig()

    def test_wrong_type_keeps_previous(self):
        channel = ConfigChannel()
        channel.submit("forces", mouse_force="strong")
        with pytest.warns(ConfigWarning):
            config = channel.apply_pending()
        assert config.forces.mouse_force == 20.0

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_keeps_previous(self, value):
        channel = ConfigChannel()
        channel.submit("solver", dt=value)
        channel.submit("forces", mouse_force=value)
        channel.submit("solver", iterations_poisson=value)
        with pytest.warns(ConfigWarning) as record:
            config = channel.apply_pending()
        assert len(record) == 3
        assert config.solver.dt == 0.014
        assert config.forces.mouse_force == 20.0
        assert config.solver.iterations_poisson == 32

    def test_subscribers_notified_once(self):
        channel = ConfigChannel()
        calls = []
        channel.subscribe(lambda old, new: calls.append((old, new)))
        channel.submit("solver", is_viscous=True)
        channel.submit("solver", viscosity=3.0)
        channel.apply_pending()
        assert len(calls) == 1
        old, new = calls[0]
        assert not old.solver.is_viscous
        assert new.solver.is_viscous and new.solver.viscosity == 3.0

    def test_no_change_no_notification(self):
        channel = ConfigChannel()
        calls = []
        channel.subscribe(lambda old, new: calls.append(new))
        channel.submit("solver", dt=0.014)
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            channel.apply_pending()
        assert calls == []
