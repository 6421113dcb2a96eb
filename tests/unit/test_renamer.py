"""
Unit tests for ecoaudio.core.files.renamer.
"""

import os
from datetime import timedelta
from pathlib import Path

import numpy as np
import pytest
import soundfile as sf

from ecoaudio.core.exceptions import EmptyInputError
from ecoaudio.core.files.renamer import (
    file_name_contains_date_time,
    find_renamable_files,
    get_new_name,
    parse_timezone,
    _move_no_clobber,
    rename_audio_files,
    rename_files,
)

# 2013-04-15 04:00:01 UTC
MTIME = 1365998401


@pytest.fixture
def undated_dir(tmp_path):
    """One undated and one dated one-second recording, plus a text file."""
    d = tmp_path / "recordings"
    d.mkdir()
    for name in ("site1.WAV", "site2_20130415-060000Z.wav"):
        path = d / name
        sf.write(str(path), np.zeros(22050, dtype=np.float32), 22050)
        os.utime(path, (MTIME, MTIME))
    (d / "notes.txt").write_text("field notes")
    return d


class TestDateTimeNames:
    @pytest.mark.parametrize(
        "name",
        ["a_20130415-060000Z.wav", "20130415_060000+1000.wav", "x20130415T060000.mp3"],
    )
    def test_dated(self, name):
        assert file_name_contains_date_time(name)

    @pytest.mark.parametrize("name", ["site1.wav", "20131315-060000.wav", "120130415-0600001.wav"])
    def test_undated(self, name):
        assert not file_name_contains_date_time(name)


class TestParseTimezone:
    def test_offsets(self):
        assert parse_timezone("+1000").utcoffset(None) == timedelta(hours=10)
        assert parse_timezone("-07:30").utcoffset(None) == -timedelta(hours=7, minutes=30)
        assert parse_timezone("Z").utcoffset(None) == timedelta(0)

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timezone("AEST")


class TestRename:
    def test_new_name_is_utc_start(self, undated_dir):
        assert get_new_name(undated_dir / "site1.WAV") == "site1_20130415-040000Z.wav"

    def test_find_files(self, undated_dir):
        names = [f.name for f in find_renamable_files(undated_dir)]
        assert names == ["site1.WAV", "site2_20130415-060000Z.wav"]

    def test_dry_run(self, undated_dir):
        results = rename_audio_files(undated_dir, dry_run=True)
        assert [r.renamed for r in results] == [True, False]
        assert results[0].dry_run
        assert Path(results[0].new_path).name == "site1_20130415-040000Z.wav"
        assert (undated_dir / "site1.WAV").exists()

    def test_rename(self, undated_dir):
        results = rename_audio_files(undated_dir)
        assert all(r.success for r in results)
        assert not (undated_dir / "site1.WAV").exists()
        assert (undated_dir / "site1_20130415-040000Z.wav").exists()
        assert (undated_dir / "site2_20130415-060000Z.wav").exists()

    def test_existing_target_reported(self, undated_dir):
        (undated_dir / "site1_20130415-040000Z.wav").write_bytes(b"")
        result = rename_audio_files(undated_dir)[0]
        assert result.original_path.endswith("site1.WAV")
        assert not result.renamed
        assert "exists" in result.error

    def test_recursive(self, undated_dir):
        sub = undated_dir / "deeper"
        sub.mkdir()
        sf.write(str(sub / "site3.wav"), np.zeros(100, dtype=np.float32), 22050)
        assert len(rename_audio_files(undated_dir, dry_run=True)) == 2
        assert len(rename_audio_files(undated_dir, recursive=True, dry_run=True)) == 3

    def test_empty_directory(self, tmp_path):
        with pytest.raises(EmptyInputError):
            rename_audio_files(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            rename_audio_files(tmp_path / "nowhere")

    def test_invalid_timezone(self, undated_dir):
        with pytest.raises(ValueError):
            rename_audio_files(undated_dir, timezone="noon")


@pytest.fixture
def case_variant_dir(tmp_path):
    """Two recordings whose names differ only in extension case, with equal start times."""
    d = tmp_path / "variants"
    d.mkdir()
    for name, value in (("dawn.WAV", 0.1), ("dawn.wav", 0.2)):
        path = d / name
        sf.write(str(path), np.full(22050, value, dtype=np.float32), 22050)
        os.utime(path, (MTIME, MTIME))
    if len(list(d.iterdir())) != 2:
        pytest.skip("file system is case insensitive")
    return d


class TestNoOverwrite:
    def test_case_variants_share_a_target(self, case_variant_dir):
        files = find_renamable_files(case_variant_dir)
        assert {get_new_name(f) for f in files} == {"dawn_20130415-040000Z.wav"}

    @pytest.mark.parametrize("workers", [1, 2, 8])
    def test_only_one_file_takes_the_name(self, case_variant_dir, workers):
        files = find_renamable_files(case_variant_dir)
        results = rename_files(files, max_workers=workers)

        assert sorted(r.renamed for r in results) == [False, True]
        loser = next(r for r in results if not r.renamed)
        assert loser.error is not None
        assert Path(loser.original_path).exists()
        assert sorted(p.name for p in case_variant_dir.iterdir()) == sorted(
            [Path(loser.original_path).name, "dawn_20130415-040000Z.wav"]
        )

    def test_renamed_file_keeps_its_content(self, case_variant_dir):
        results = rename_files(find_renamable_files(case_variant_dir), max_workers=2)
        winner = next(r for r in results if r.renamed)
        loser = next(r for r in results if not r.renamed)

        winner_data, _ = sf.read(winner.new_path)
        loser_data, _ = sf.read(loser.original_path)
        assert winner_data[0] != pytest.approx(loser_data[0])

    def test_dry_run_reports_the_collision(self, case_variant_dir):
        results = rename_files(find_renamable_files(case_variant_dir), dry_run=True)
        assert sorted(r.renamed for r in results) == [False, True]
        assert len(list(case_variant_dir.iterdir())) == 2

    def test_move_refuses_existing_target(self, tmp_path):
        source = tmp_path / "a.wav"
        target = tmp_path / "b.wav"
        source.write_bytes(b"source")
        target.write_bytes(b"target")

        with pytest.raises(FileExistsError):
            _move_no_clobber(source, target)
        assert source.read_bytes() == b"source"
        assert target.read_bytes() == b"target"

    def test_move(self, tmp_path):
        source = tmp_path / "a.wav"
        source.write_bytes(b"source")
        _move_no_clobber(source, tmp_path / "b.wav")
        assert not source.exists()
        assert (tmp_path / "b.wav").read_bytes() == b"source"
