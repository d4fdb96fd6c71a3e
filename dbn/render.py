# dbn/render.py
"""
Rendering utilities for DBN programs.

Ties the pipeline together:

    source --lex--> tokens --parse--> trace --transform--> tree --generate--> text

and adds helpers for writing raster output as PNG images and for batch
compiling a CSV of programs with any backend.
"""
import os
from typing import Mapping, Optional

import imageio
import numpy as np
import pandas as pd
from tqdm import tqdm

from .backends.base import BaseBackend
from .backends.raster import RasterBackend
from .core import DBNError, lex
from .interpreter import parse


def compile_program(program: str, backend: BaseBackend, context: Optional[Mapping[str, str]] = None) -> str:
    """
    Compiles DBN source text with the given backend.

    Args:
        program: DBN source code
        backend: Backend instance producing the output format
        context: Optional variables predefined for the program, name -> decimal string

    Returns:
        The backend's output text, e.g. SVG markup

    Raises:
        InputError: If the program is malformed
        InternalError: If the tokens fail verification

    Examples:
        >>> compile_program("Paper 100", RasterBackend("binary"))[:3]
        'ooo'
    """
    trace = parse(lex(program), context)
    return backend.generate(backend.transform(trace))


def export_image(image_array: np.ndarray, export_path: str):
    """
    Exports a rendered image array to a PNG file.

    Creates the output directory if it doesn't exist.

    Args:
        image_array: RGB image as numpy array with values in [0,1] range
        export_path: File path where the PNG should be saved

    Raises:
        OSError: If the output directory cannot be created
    """
    output_dir = os.path.dirname(export_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    imageio.imwrite(export_path, (image_array * 255).astype(np.uint8))


def render_to_png(program: str, export_path: str, context: Optional[Mapping[str, str]] = None) -> np.ndarray:
    """Rasterises a program onto the 101x101 grid and saves it as a PNG. Returns the image array."""
    backend = RasterBackend()
    grid = backend.transform(parse(lex(program), context))
    image = backend.to_image(grid)
    export_image(image, export_path)
    return image


## --- CSV Processing Utility ---
def render_from_csv(
    backend: BaseBackend,
    csv_path: str,
    output_dir: str,
    program_col: str = "program_string",
    context: Optional[Mapping[str, str]] = None,
) -> pd.DataFrame:
    """
    Batch compiles DBN programs from a CSV file.

    Every row's program is compiled with `backend` and written to
    `<output_dir>/<row_index>.<backend.extension>`. Programs that fail to
    compile are reported and skipped, their row gets an empty filepath and the
    error message.

    Args:
        backend: Backend instance used for every row
        csv_path: Input CSV file
        output_dir: Directory receiving the outputs and `rendered.csv`
        program_col: Column name containing the program source
        context: Optional variables predefined for every program

    Returns:
        The input frame with added `render_filepath` and `error` columns

    Raises:
        FileNotFoundError: If the input CSV file doesn't exist
        KeyError: If the specified program column isn't found in the CSV

    Examples:
        >>> render_from_csv(RasterBackend("binary"), "output/programs.csv", "output/programs")
        # Writes output/programs/0.binary, 1.binary, ... and output/programs/rendered.csv
    """
    if not os.path.exists(csv_path):
        raise FileNotFoundError(f"Input CSV not found: {csv_path}")

    df = pd.read_csv(csv_path)
    if program_col not in df.columns:
        raise KeyError(f"Column '{program_col}' not found in {csv_path}")

    os.makedirs(output_dir, exist_ok=True)

    render_filepaths, errors = [], []
    for i, row in tqdm(df.iterrows(), total=len(df), desc="Compiling programs", unit="program", leave=False):
        program = "" if pd.isna(row[program_col]) else str(row[program_col])
        output_path = os.path.join(output_dir, f"{i}.{backend.extension}")
        try:
            output = compile_program(program, backend, context)
        except DBNError as e:
            print(f"❌ Error compiling row {i} ('{program[:50]}...'):\n{e}")
            render_filepaths.append("")
            errors.append(e.message)
            continue
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(output)
        render_filepaths.append(output_path)
        errors.append("")

    df["render_filepath"] = render_filepaths
    df["error"] = errors
    rendered_csv_path = os.path.join(output_dir, "rendered.csv")
    df.to_csv(rendered_csv_path, index=False)
    print(f"\n✅ Wrote updated CSV with filepaths to: {rendered_csv_path}")
    return df
