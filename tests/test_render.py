"""Tests for the rendering utilities and the hydra configuration."""

import os

import imageio
import numpy as np
import pandas as pd
import pytest

from dbn.backends.raster import GRID_DIM, RasterBackend
from dbn.backends.vector import VectorBackend
from dbn.config import build_backend, initial_context, load_config
from dbn.core import InputError
from dbn.render import compile_program, export_image, render_from_csv, render_to_png

# ###############
# Test Helpers
# ###############


@pytest.fixture
def programs_csv(tmp_path):
    path = tmp_path / "programs.csv"
    pd.DataFrame({
        "program_string": [
            "Paper 0\nLine 0 0 100 100",
            "Hello",
            "Repeat i 0 3 { Set [i i] 100 }",
        ],
    }).to_csv(path, index=False)
    return path


# ###############
# Compilation
# ###############


class TestCompileProgram:
    def test_vector(self) -> None:
        output = compile_program("Paper 0", VectorBackend())
        assert output.startswith("<svg ")
        assert 'fill="rgb(100%,100%,100%)"' in output

    def test_raster(self) -> None:
        output = compile_program("Paper 100", RasterBackend("binary"))
        assert output.splitlines()[0] == "o" * GRID_DIM

    def test_context(self) -> None:
        output = compile_program("Paper size", RasterBackend("test"), {"size": "7"})
        assert output.startswith("7   ")

    def test_errors_propagate(self) -> None:
        with pytest.raises(InputError, match="not a valid keyword"):
            compile_program("Hello", VectorBackend())


# ###############
# Image Export
# ###############


class TestImageExport:
    def test_export_creates_directory(self, tmp_path) -> None:
        path = tmp_path / "nested" / "dir" / "image.png"
        export_image(np.ones((4, 4, 3)), str(path))
        assert path.exists()
        assert imageio.imread(path).shape == (4, 4, 3)

    def test_render_to_png(self, tmp_path) -> None:
        path = tmp_path / "out" / "drawing.png"
        image = render_to_png("Paper 0\nPen 100\nLine 0 0 100 100", str(path))
        assert path.exists()
        assert image.shape == (GRID_DIM, GRID_DIM, 3)
        written = imageio.imread(path)
        assert written[0, 100].tolist() == [0, 0, 0]
        assert written[0, 0].tolist() == [255, 255, 255]

    def test_render_to_png_errors(self, tmp_path) -> None:
        path = tmp_path / "broken.png"
        with pytest.raises(InputError):
            render_to_png("Line 0 0", str(path))
        assert not path.exists()


# ###############
# CSV Batch Rendering
# ###############


class TestRenderFromCsv:
    def test_writes_outputs(self, programs_csv, tmp_path) -> None:
        output_dir = tmp_path / "svg"
        df = render_from_csv(VectorBackend(), str(programs_csv), str(output_dir))
        assert df.loc[0, "render_filepath"] == os.path.join(str(output_dir), "0.svg")
        assert (output_dir / "0.svg").read_text(encoding="utf-8").startswith("<svg ")
        assert (output_dir / "2.svg").exists()
        assert (output_dir / "rendered.csv").exists()
        assert df.loc[0, "error"] == ""

    def test_failed_rows_are_recorded(self, programs_csv, tmp_path, capsys) -> None:
        df = render_from_csv(RasterBackend("binary"), str(programs_csv), str(tmp_path / "out"))
        assert df.loc[1, "render_filepath"] == ""
        assert "not a valid keyword" in df.loc[1, "error"]
        assert not (tmp_path / "out" / "1.binary").exists()
        assert (tmp_path / "out" / "2.binary").exists()
        assert "❌" in capsys.readouterr().out

    def test_rendered_csv_round_trips(self, programs_csv, tmp_path) -> None:
        render_from_csv(VectorBackend(), str(programs_csv), str(tmp_path / "out"))
        rendered = pd.read_csv(tmp_path / "out" / "rendered.csv")
        assert list(rendered.columns) == ["program_string", "render_filepath", "error"]
        assert len(rendered) == 3

    def test_custom_column(self, tmp_path) -> None:
        path = tmp_path / "custom.csv"
        pd.DataFrame({"source": ["Paper 50"]}).to_csv(path, index=False)
        df = render_from_csv(RasterBackend("test"), str(path), str(tmp_path / "out"), program_col="source")
        assert df.loc[0, "render_filepath"].endswith("0.test")

    def test_missing_csv(self, tmp_path) -> None:
        with pytest.raises(FileNotFoundError):
            render_from_csv(VectorBackend(), str(tmp_path / "missing.csv"), str(tmp_path / "out"))

    def test_missing_column(self, programs_csv, tmp_path) -> None:
        with pytest.raises(KeyError):
            render_from_csv(VectorBackend(), str(programs_csv), str(tmp_path / "out"), program_col="code")


# ###############
# Configuration
# ###############


class TestConfig:
    def test_default_backend(self) -> None:
        cfg = load_config()
        backend = build_backend(cfg)
        assert isinstance(backend, VectorBackend)
        assert (backend.width, backend.height) == (100, 100)
        assert initial_context(cfg) == {}

    @pytest.mark.parametrize("name,encoding", [("raster_test", "test"), ("raster_binary", "binary")])
    def test_raster_backends(self, name: str, encoding: str) -> None:
        backend = build_backend(load_config([f"backend={name}"]))
        assert isinstance(backend, RasterBackend)
        assert backend.encoding == encoding

    def test_backend_overrides(self) -> None:
        backend = build_backend(load_config(["backend.width=20"]))
        assert compile_program("Paper 0", backend).startswith('<svg width="20"')

    def test_context(self) -> None:
        cfg = load_config(["+context.size=10"])
        context = initial_context(cfg)
        assert context == {"size": "10"}
        output = compile_program("Set [size size] 100", build_backend(cfg), context)
        assert '<rect x="10" y="90"' in output

    def test_non_integer_context(self) -> None:
        context = initial_context(load_config(["+context.size=1.5"]))
        with pytest.raises(InputError, match='"size"'):
            compile_program("Paper size", VectorBackend(), context)
