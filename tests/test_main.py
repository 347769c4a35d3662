"""Tests for the command-line entry point."""

import json

import pytest

from stirflow import main as cli
from stirflow.kernels import Backend
from stirflow.simulation import Simulation


@pytest.fixture
def no_reinit(monkeypatch):
    """Keep the session's Taichi runtime; the CLI would re-initialize it."""
    monkeypatch.setattr(cli, "init_taichi", lambda backend=None: "cpu")


class TestParser:
    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.backend == "taichi"
        assert args.frames == 600
        assert not args.gui

    def test_viewport(self):
        args = cli.build_parser().parse_args(["--viewport", "320", "240", "--bounded"])
        assert args.viewport == [320, 240]
        assert args.bounded


class TestHeadlessRun:
    def test_run_headless(self, config_factory):
        sim = Simulation(config_factory(32, 32), Backend.NUMPY)
        cli.run_headless(sim, 3)
        assert sim.frame == 3
        sim.close()

    def test_main(self, no_reinit, capsys):
        code = cli.main(["--backend", "numpy", "--frames", "2", "--viewport", "32", "32"])
        assert code == 0
        out = capsys.readouterr().out
        assert "Grid 16x16 on NUMPY" in out
        assert "Ran 2 frames" in out

    def test_main_with_config_and_trajectory(self, no_reinit, tmp_path, capsys):
        config = tmp_path / "run.yaml"
        config.write_text("solver:\n  boundary: bounded\n  iterations_poisson: 4\n")
        trajectory = tmp_path / "walk.json"
        trajectory.write_text(
            json.dumps(
                {
                    "agents": [
                        {"id": "a", "keyframes": [{"t": 0, "x": 40, "y": 50}, {"t": 1, "x": 60, "y": 50}]}
                    ]
                }
            )
        )
        code = cli.main(
            [
                "--backend", "numpy", "--frames", "3", "--viewport", "64", "64",
                "--config", str(config), "--trajectory", str(trajectory),
            ]
        )
        assert code == 0
        assert "Loaded config" in capsys.readouterr().out
