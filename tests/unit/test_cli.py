"""
Unit tests for the ecoaudio command line interface.
"""

import json
import logging

import pandas as pd
import pytest
from click.testing import CliRunner

from ecoaudio import __version__
from ecoaudio.cli.cli import cli
from ecoaudio.core.config import reset_config
from ecoaudio.core.logger import PACKAGE_NAME


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def restore_globals():
    """The root command installs the loaded config and the logging level globally."""
    package_logger = logging.getLogger(PACKAGE_NAME)
    level = package_logger.level
    formatters = [h.formatter for h in package_logger.handlers]
    yield
    reset_config()
    package_logger.setLevel(level)
    for handler, formatter in zip(package_logger.handlers, formatters):
        handler.setFormatter(formatter)


@pytest.fixture
def config_file(tmp_path):
    """Write a TOML config and return its path."""

    def write(text):
        path = tmp_path / "settings.toml"
        path.write_text(text)
        return str(path)

    return write


class TestCliGroup:
    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for name in ("config", "events", "files", "indices", "learn", "oscillations", "snr"):
            assert name in result.output


class TestConfigCommands:
    def test_init_then_refuse(self, runner, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = runner.invoke(cli, ["config", "init"])
        assert first.exit_code == 0
        assert (tmp_path / "ecoaudio.toml").exists()

        second = runner.invoke(cli, ["config", "init"])
        assert second.exit_code == 1
        assert "Use --force to overwrite." in second.output

        assert runner.invoke(cli, ["config", "init", "--force"]).exit_code == 0

    def test_show_explicit(self, runner, tmp_path):
        path = tmp_path / "c.toml"
        path.write_text("[events]\nmin_hz = 321\n")
        result = runner.invoke(cli, ["config", "show", "--config", str(path)])
        assert result.exit_code == 0
        assert "min_hz = 321" in result.output

    def test_path(self, runner):
        result = runner.invoke(cli, ["config", "path"])
        assert result.exit_code == 0
        assert "Config search locations" in result.output
        assert "Active:" in result.output


class TestIndicesCommands:
    def test_compute_json(self, runner, tmp_audio_file):
        result = runner.invoke(cli, ["indices", "compute", tmp_audio_file, "--format", "json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["filepath"] == tmp_audio_file
        assert "aci" in data

    def test_compute_table(self, runner, tmp_audio_file):
        result = runner.invoke(cli, ["indices", "compute", tmp_audio_file])
        assert result.exit_code == 0, result.output
        assert "aci" in result.output

    def test_compute_to_file(self, runner, tmp_audio_file, tmp_path):
        out = tmp_path / "indices.json"
        result = runner.invoke(cli, ["indices", "compute", tmp_audio_file, "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert set(json.loads(out.read_text())) == {"source_path", "sample_rate", "summary", "spectral"}

    def test_missing_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["indices", "compute", str(tmp_path / "none.wav")])
        assert result.exit_code != 0

    def test_temporal(self, runner, tmp_audio_file, tmp_path):
        out = tmp_path / "temporal.csv"
        result = runner.invoke(cli, ["indices", "temporal", tmp_audio_file, "--segment-duration", "0.5", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "Total segments: 4" in result.output
        assert len(pd.read_csv(out)) == 4

    def test_batch(self, runner, tmp_dir_with_audio_files, tmp_path):
        out = tmp_path / "batch.csv"
        result = runner.invoke(cli, ["indices", "batch", tmp_dir_with_audio_files, "-o", str(out), "-w", "2"])
        assert result.exit_code == 0, result.output
        assert list(pd.read_csv(out)["success"]) == [True, True, True]


class TestSnrCommands:
    def test_recording(self, runner, tmp_call_file):
        result = runner.invoke(cli, ["snr", "recording", tmp_call_file, "--noise-reduction", "modal"])
        assert result.exit_code == 0, result.output
        assert "modal" in result.output

    def test_band(self, runner, tmp_call_file):
        args = ["snr", "band", tmp_call_file, "--start", "0.5", "--duration", "0.3", "--min-hz", "2800", "--max-hz", "3200"]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output

    def test_band_requires_box(self, runner, tmp_call_file):
        result = runner.invoke(cli, ["snr", "band", tmp_call_file])
        assert result.exit_code == 2


class TestEventCommands:
    def test_felt(self, runner, tmp_call_file, tmp_path):
        template = tmp_path / "template.txt"
        template.write_text("+++++\n+++++\n+++++\n")
        out = tmp_path / "events.txt"
        args = [
            "events", "felt", str(template), tmp_call_file,
            "--min-hz", "2800", "--max-hz", "3200", "--threshold", "10",
            "--min-duration", "0.1", "-o", str(out),
        ]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        assert out.read_text().splitlines()[1].endswith("\t2")

    def test_harmonics_invalid_band(self, runner, tmp_audio_file):
        args = ["events", "harmonics", tmp_audio_file, "--min-hz", "4000", "--max-hz", "1000"]
        result = runner.invoke(cli, args)
        assert result.exit_code == 1
        assert "Error:" in result.output


class TestOtherCommands:
    def test_oscillations(self, runner, tmp_audio_file):
        result = runner.invoke(cli, ["oscillations", "compute", tmp_audio_file, "--sample-length", "32"])
        assert result.exit_code == 0, result.output
        assert "Autocorr-SVD-FFT" in result.output

    def test_learn(self, runner, tmp_dir_with_audio_files, tmp_path):
        out = tmp_path / "centroids"
        args = ["learn", "centroids", tmp_dir_with_audio_files, "-o", str(out), "-k", "3", "--patches", "10"]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        assert list(out.glob("centroids_band*.csv"))

    def test_rename_dry_run(self, runner, tmp_dir_with_audio_files):
        result = runner.invoke(cli, ["files", "rename", tmp_dir_with_audio_files, "--dry-run"])
        assert result.exit_code == 0, result.output
        assert "Would rename 3 of 3 files" in result.output

    def test_rename_bad_timezone(self, runner, tmp_dir_with_audio_files):
        result = runner.invoke(cli, ["files", "rename", tmp_dir_with_audio_files, "-z", "noon"])
        assert result.exit_code == 1


class TestRootConfig:
    def test_segment_duration_from_config(self, runner, tmp_audio_file, config_file):
        path = config_file("[indices]\nsegment_duration = 0.5\n")
        result = runner.invoke(cli, ["--config", path, "indices", "temporal", tmp_audio_file])
        assert result.exit_code == 0, result.output
        assert "Total segments: 4" in result.output

    def test_option_overrides_config(self, runner, tmp_audio_file, config_file):
        path = config_file("[indices]\nsegment_duration = 0.5\n")
        args = ["--config", path, "indices", "temporal", tmp_audio_file, "--segment-duration", "1.0"]
        result = runner.invoke(cli, args)
        assert result.exit_code == 0, result.output
        assert "Total segments: 2" in result.output

    def test_event_threshold_from_config(self, runner, tmp_call_file, tmp_path, config_file):
        template = tmp_path / "template.txt"
        template.write_text("+++++\n+++++\n+++++\n")
        out = tmp_path / "events.txt"
        base = ["events", "felt", str(template), tmp_call_file, "--min-hz", "2800", "--max-hz", "3200", "-o", str(out)]

        found = runner.invoke(cli, ["--config", config_file("[events]\nthreshold = 10.0\nmin_duration = 0.1\n")] + base)
        assert found.exit_code == 0, found.output
        assert out.read_text().splitlines()[1].endswith("\t2")

        strict = runner.invoke(cli, ["--config", config_file("[events]\nthreshold = 1000.0\n")] + base)
        assert strict.exit_code == 0, strict.output
        assert out.read_text().splitlines()[1].endswith("\t0")

    def test_oscillation_sample_length_from_config(self, runner, tmp_audio_file, tmp_path, config_file):
        path = config_file("[oscillations]\nsample_length = 32\n")
        out = tmp_path / "osc.csv"

        result = runner.invoke(cli, ["--config", path, "oscillations", "compute", tmp_audio_file, "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert pd.read_csv(out, index_col=0).shape == (16, 256)

        args = ["--config", path, "oscillations", "compute", tmp_audio_file, "--sample-length", "16", "-o", str(out)]
        assert runner.invoke(cli, args).exit_code == 0
        assert pd.read_csv(out, index_col=0).shape == (8, 256)

    def test_short_oscillation_sample_rejected(self, runner, tmp_audio_file):
        result = runner.invoke(cli, ["oscillations", "compute", tmp_audio_file, "--sample-length", "2"])
        assert result.exit_code == 1
        assert "sample_length" in result.output

    def test_noise_reduction_from_config(self, runner, tmp_call_file, config_file):
        path = config_file('[noise_reduction]\ntype = "median"\n')
        result = runner.invoke(cli, ["--config", path, "snr", "recording", tmp_call_file])
        assert result.exit_code == 0, result.output
        assert "median" in result.output

    def test_logging_level_from_config(self, runner, config_file):
        path = config_file('[logging]\nlevel = "INFO"\n')
        result = runner.invoke(cli, ["--config", path, "config", "path"])
        assert result.exit_code == 0, result.output
        assert logging.getLogger(PACKAGE_NAME).level == logging.INFO

    def test_verbose_wins_over_config(self, runner, config_file):
        path = config_file('[logging]\nlevel = "ERROR"\n')
        assert runner.invoke(cli, ["--config", path, "-v", "config", "path"]).exit_code == 0
        assert logging.getLogger(PACKAGE_NAME).level == logging.DEBUG

    def test_invalid_logging_level(self, runner, config_file):
        path = config_file('[logging]\nlevel = "LOUD"\n')
        result = runner.invoke(cli, ["--config", path, "config", "path"])
        assert result.exit_code == 2
        assert "logging" in result.output

    def test_missing_config_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["--config", str(tmp_path / "absent.toml"), "config", "path"])
        assert result.exit_code == 2
