"""Tests for the command line driver and its exit codes"""

import os
import subprocess
import sys
from pathlib import Path

import pytest

from contrastbench import cli, codec
from contrastbench.raster import RasterBuffer

REPO_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture
def no_bench(monkeypatch):
    """Fail the test if the CLI gets as far as running the bench"""
    def forbidden(*args, **kwargs):
        raise AssertionError("bench must not run")
    monkeypatch.setattr(cli, "run_bench", forbidden)
    monkeypatch.setattr(codec, "decode", forbidden)


class TestArgumentValidation:
    """Wrong argument counts exit 1 before any I/O"""

    @pytest.mark.parametrize("argv", [
        [],
        ["in.pgm"],
        ["in.pgm", "ref.pgm"],
        ["in.pgm", "ref.pgm", "acc.pgm", "extra.pgm"],
        ["a", "b", "c", "d", "e"],
    ])
    def test_wrong_argument_count(self, argv, no_bench, temp_dir, capsys, monkeypatch):
        monkeypatch.chdir(temp_dir)
        assert cli.main(argv) == 1
        err = capsys.readouterr().err
        assert "usage: contrastbench" in err
        assert cli.USAGE_HINT in err
        assert list(temp_dir.iterdir()) == []

    def test_unknown_option(self, no_bench, capsys):
        assert cli.main(["a", "b", "c", "--bogus"]) == 1
        assert "usage:" in capsys.readouterr().err

    def test_bad_max_pixels_env(self, no_bench, monkeypatch):
        monkeypatch.setenv("CONTRASTBENCH_MAX_PIXELS", "lots")
        assert cli.main(["a", "b", "c"]) == 1


class TestCliRuns:
    """Test full runs through the CLI"""

    def test_success(self, sample_pgm, temp_dir, capsys):
        ref_out = temp_dir / "ref.pgm"
        acc_out = temp_dir / "acc.pgm"
        assert cli.main([str(sample_pgm), str(ref_out), str(acc_out)]) == 0
        assert ref_out.exists() and acc_out.exists()
        out = capsys.readouterr().out
        assert "Number of errors" not in out

    def test_verify_flag(self, sample_pgm, temp_dir, capsys):
        argv = [str(sample_pgm), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"), "--verify"]
        assert cli.main(argv) == 0
        out = capsys.readouterr().out
        assert "Number of errors: 0" in out
        assert "✅ Outputs match" in out

    @pytest.mark.parametrize("layout", ["between_first", "between_last"])
    def test_options_between_paths(self, sample_pgm, temp_dir, capsys, layout):
        """Options may sit anywhere among the three paths"""
        ref_out = temp_dir / "ref.pgm"
        acc_out = temp_dir / "acc.pgm"
        if layout == "between_first":
            argv = [str(sample_pgm), "--verify", str(ref_out), "--accelerated", "numpy", str(acc_out)]
        else:
            argv = [str(sample_pgm), str(ref_out), "--verify", "--accelerated", "numpy", str(acc_out)]
        assert cli.main(argv) == 0
        assert ref_out.exists() and acc_out.exists()
        assert "Number of errors: 0" in capsys.readouterr().out

    def test_verify_from_environment(self, sample_pgm, temp_dir, capsys, monkeypatch):
        monkeypatch.setenv("CONTRASTBENCH_VERIFY", "1")
        assert cli.main([str(sample_pgm), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm")]) == 0
        assert "Number of errors: 0" in capsys.readouterr().out

    def test_mismatch_reported_not_fatal(self, write_pgm, temp_dir, capsys):
        src = write_pgm("tiny.pgm", RasterBuffer(2, 2, bytes([10, 20, 30, 40])))
        argv = [str(src), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"),
                "--verify", "--accelerated", "pillow"]
        assert cli.main(argv) == 0
        captured = capsys.readouterr()
        assert "Error in [1]: reference[1] = 85 pillow[1] = 20" in captured.out
        assert "Number of errors: 4" in captured.out
        assert "❌ Outputs differ in 4 samples" in captured.err

    def test_mismatch_strict(self, write_pgm, temp_dir):
        src = write_pgm("tiny.pgm", RasterBuffer(2, 2, bytes([10, 20, 30, 40])))
        argv = [str(src), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"),
                "--verify", "--accelerated", "pillow", "--strict"]
        assert cli.main(argv) == 1

    def test_mismatch_limit(self, write_pgm, temp_dir, capsys):
        src = write_pgm("tiny.pgm", RasterBuffer(2, 2, bytes([10, 20, 30, 40])))
        argv = [str(src), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"),
                "--verify", "--accelerated", "pillow", "--mismatch-limit", "1"]
        assert cli.main(argv) == 0
        assert capsys.readouterr().out.count("Error in [") == 1

    def test_debug_flag(self, sample_pgm, temp_dir, capsys):
        argv = [str(sample_pgm), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"), "--debug"]
        assert cli.main(argv) == 0
        assert (temp_dir / "input_meta.json").exists()
        assert "Debug metadata" in capsys.readouterr().out

    def test_list_enhancers(self, capsys):
        assert cli.main(["--list-enhancers"]) == 0
        listed = capsys.readouterr().out.split()
        assert {"reference", "numpy", "pillow"} <= set(listed)


class TestCliErrors:
    """Every fatal error maps to exit code 1"""

    def test_missing_input(self, temp_dir, capsys):
        ref_out = temp_dir / "ref.pgm"
        acc_out = temp_dir / "acc.pgm"
        missing = temp_dir / "does_not_exist.pgm"
        assert cli.main([str(missing), str(ref_out), str(acc_out)]) == 1
        assert "Input file not found" in capsys.readouterr().err
        assert not ref_out.exists()
        assert not acc_out.exists()

    def test_malformed_input(self, temp_dir, capsys):
        src = temp_dir / "bad.pgm"
        src.write_bytes(b"P6\n1 1\n255\n\x00\x00\x00")
        assert cli.main([str(src), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm")]) == 1
        assert "Unsupported format marker" in capsys.readouterr().err

    def test_truncated_input(self, temp_dir):
        src = temp_dir / "short.pgm"
        src.write_bytes(b"P5\n4 4\n255\n" + bytes(5))
        assert cli.main([str(src), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm")]) == 1

    def test_unwritable_output(self, sample_pgm, temp_dir, capsys):
        ref_out = temp_dir / "missing_dir" / "ref.pgm"
        assert cli.main([str(sample_pgm), str(ref_out), str(temp_dir / "acc.pgm")]) == 1
        assert "I/O error" in capsys.readouterr().err

    def test_output_over_input(self, sample_pgm, temp_dir, capsys):
        original = sample_pgm.read_bytes()
        assert cli.main([str(sample_pgm), str(sample_pgm), str(temp_dir / "acc.pgm")]) == 1
        assert "overwrite the input" in capsys.readouterr().err
        assert sample_pgm.read_bytes() == original

    def test_unknown_enhancer(self, sample_pgm, temp_dir, capsys):
        argv = [str(sample_pgm), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"),
                "--reference", "opencl"]
        assert cli.main(argv) == 1
        assert "Unsupported enhancer: opencl" in capsys.readouterr().err

    def test_max_pixels_flag(self, sample_pgm, temp_dir):
        argv = [str(sample_pgm), str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"),
                "--max-pixels", "10"]
        assert cli.main(argv) == 1


class TestCliSubprocess:
    """Run the module the way users do"""

    def test_module_usage_error(self, temp_dir):
        proc = subprocess.run(
            [sys.executable, '-m', 'contrastbench.cli', 'only-one-arg'],
            capture_output=True, text=True, encoding='utf-8', cwd=REPO_ROOT,
            env={**os.environ, 'PYTHONIOENCODING': 'utf-8'},
        )
        assert proc.returncode == 1
        assert "usage:" in proc.stderr

    def test_module_verify_run(self, sample_pgm, temp_dir):
        proc = subprocess.run(
            [sys.executable, '-m', 'contrastbench.cli', str(sample_pgm),
             str(temp_dir / "ref.pgm"), str(temp_dir / "acc.pgm"), '--verify'],
            capture_output=True, text=True, encoding='utf-8', cwd=REPO_ROOT,
            env={**os.environ, 'PYTHONIOENCODING': 'utf-8'},
        )
        assert proc.returncode == 0, proc.stderr
        assert "Number of errors: 0" in proc.stdout
