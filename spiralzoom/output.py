"""Persistence of rendered frames and gradient debug artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

import imageio
import numpy as np
import PIL.Image

from .gradient import GradientTable
from .renderer import RenderResult


class FrameWriter(Protocol):
    """Receives each rendered frame under its extension-less name."""

    def write(self, index: int, name: str, result: RenderResult) -> Path | None:
        ...

    def close(self) -> None:
        ...


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_single_image(image: np.ndarray, output_path: Path, image_format: str = "png") -> Path:
    """Write an RGB array to ``output_path`` using the provided format."""

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    PIL.Image.fromarray(np.asarray(image, dtype=np.uint8)).save(
        str(output_path), format=_pil_format_name(image_format)
    )
    return output_path


def write_gradient_preview(table: GradientTable, output_path: Path, height: int = 48, image_format: str = "png") -> Path:
    """Save a strip image showing every gradient table entry left to right."""

    return write_single_image(table.preview(height), output_path, image_format)


class ImageSequenceWriter:
    """Persist each frame as its own image inside ``frame_dir``."""

    def __init__(self, frame_dir: Path, image_format: str = "png") -> None:
        self.frame_dir = Path(frame_dir)
        self.image_format = image_format.lower().lstrip(".") or "png"

    def write(self, index: int, name: str, result: RenderResult) -> Path:
        frame_path = self.frame_dir / f"{name}.{self.image_format}"
        self.frame_dir.mkdir(parents=True, exist_ok=True)
        return write_single_image(result.image, frame_path, self.image_format)

    def close(self) -> None:
        pass


class ScalarCsvWriter:
    """Dump each frame's raw escape measures as CSV next to the images."""

    def __init__(self, frame_dir: Path) -> None:
        self.frame_dir = Path(frame_dir)

    def write(self, index: int, name: str, result: RenderResult) -> Path:
        csv_path = self.frame_dir / f"{name}.csv"
        self.frame_dir.mkdir(parents=True, exist_ok=True)
        np.savetxt(str(csv_path), result.field, delimiter=",", fmt="%.17g")
        return csv_path

    def close(self) -> None:
        pass


class GifWriter:
    """Append every frame to a single animated GIF."""

    def __init__(self, path: Path, duration: float = 0.1) -> None:
        self.path = Path(path)
        self.duration = duration
        self._writer: Any = None

    def write(self, index: int, name: str, result: RenderResult) -> Path:
        if self._writer is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._writer = imageio.get_writer(str(self.path), mode="I", duration=self.duration, loop=0)
        self._writer.append_data(np.asarray(result.image, dtype=np.uint8))
        return self.path

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None
