# Tests for the gifstack command line tool
"""
Test the argparse entry point in gifstack.tools.flatten.
"""

import io
import sys

import numpy as np
import pytest

from gifstack.config import settings
from gifstack.tools import flatten as cli


@pytest.fixture
def layer_files(tmp_path, make_gif):
    """Two compatible single-frame GIF files on disk."""
    bottom = tmp_path / "bottom.gif"
    top = tmp_path / "top.gif"
    bottom.write_bytes(make_gif([["RR"]], delay=4))
    top.write_bytes(make_gif([["G."]], delay=4))
    return bottom, top


class TestFlattenCli:
    """Tests for the gifstack command."""

    def test_usage_without_arguments(self, capsys):
        """Without inputs the usage text is printed and the run succeeds."""
        assert cli.main([]) == 0
        out = capsys.readouterr().out
        assert "Pass at least two gifs to composite together" in out
        assert "same width and height" in out

    def test_refuses_terminal_output(self, layer_files, capsys, monkeypatch):
        monkeypatch.setattr(cli, "_stdout_is_terminal", lambda: True)
        assert cli.main([str(p) for p in layer_files]) == 1
        assert "Your terminal likely cannot display it" in capsys.readouterr().out

    def test_terminal_output_allowed_by_setting(self, layer_files, capsysbinary, monkeypatch):
        monkeypatch.setattr(cli, "_stdout_is_terminal", lambda: True)
        monkeypatch.setattr(settings, "ALLOW_TTY_OUTPUT", True)
        assert cli.main([str(p) for p in layer_files]) == 0
        assert capsysbinary.readouterr().out.startswith(b"GIF89a")

    def test_writes_stdout(self, layer_files, capsysbinary, read_gif, rgba):
        assert cli.main([str(p) for p in layer_files]) == 0
        data = capsysbinary.readouterr().out
        _, frames, durations = read_gif(data)
        assert durations == [40]
        np.testing.assert_array_equal(frames[0], rgba(["GR"]))

    def test_writes_output_file(self, layer_files, tmp_path, read_gif, rgba):
        output = tmp_path / "out.gif"
        assert cli.main([*map(str, layer_files), "--output", str(output)]) == 0
        _, frames, _ = read_gif(output.read_bytes())
        np.testing.assert_array_equal(frames[0], rgba(["GR"]))

    def test_output_file_skips_terminal_check(self, layer_files, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "_stdout_is_terminal", lambda: True)
        output = tmp_path / "out.gif"
        assert cli.main([*map(str, layer_files), "-o", str(output)]) == 0
        assert output.exists()

    def test_reads_stdin(self, layer_files, tmp_path, make_gif, monkeypatch):
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(make_gif([[".B"]], delay=4))))
        output = tmp_path / "out.gif"
        assert cli.main([str(layer_files[0]), "-", "-o", str(output)]) == 0
        assert output.read_bytes().startswith(b"GIF89a")

    def test_missing_input(self, layer_files, tmp_path, capsys):
        missing = tmp_path / "missing.gif"
        output = tmp_path / "out.gif"
        assert cli.main([str(layer_files[0]), str(missing), "-o", str(output)]) == 1
        assert f"{missing} - " in capsys.readouterr().err
        assert not output.exists()

    def test_mismatch_leaves_no_output(self, tmp_path, make_gif, capsys):
        """A failed run reports the cause and writes nothing."""
        a = tmp_path / "a.gif"
        b = tmp_path / "b.gif"
        a.write_bytes(make_gif([["R."], [".R"]]))
        b.write_bytes(make_gif([["G."]]))
        output = tmp_path / "out.gif"
        assert cli.main([str(a), str(b), "-o", str(output)]) == 1
        assert "frame count mismatch" in capsys.readouterr().err
        assert not output.exists()

    def test_unwritable_output(self, layer_files, tmp_path, capsys):
        output = tmp_path / "no-such-dir" / "out.gif"
        assert cli.main([*map(str, layer_files), "-o", str(output)]) == 1
        assert str(output) in capsys.readouterr().err
