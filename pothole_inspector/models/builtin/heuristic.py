"""A lightweight, offline brightness heuristic used as a baseline detector."""

from __future__ import annotations

import io
from typing import Any

from PIL import Image, ImageStat, UnidentifiedImageError

from ...config import AppConfig
from ..base import DetectorError, DetectorInfo, ImagePayload, PotholeDetector
from ..registry import DetectorRegistry

_WORKING_SIZE = 256


def _cell_means(image: Image.Image, grid: int) -> list[list[float]]:
    width, height = image.size
    rows: list[list[float]] = []
    for row in range(grid):
        top = row * height // grid
        bottom = max((row + 1) * height // grid, top + 1)
        values: list[float] = []
        for col in range(grid):
            left = col * width // grid
            right = max((col + 1) * width // grid, left + 1)
            cell = image.crop((left, top, right, bottom))
            values.append(ImageStat.Stat(cell).mean[0])
        rows.append(values)
    return rows


def _connected_regions(flags: list[list[bool]]) -> list[list[tuple[int, int]]]:
    """Group flagged grid cells into 4-connected regions, scanning row by row."""
    grid = len(flags)
    seen: set[tuple[int, int]] = set()
    regions: list[list[tuple[int, int]]] = []
    for row in range(grid):
        for col in range(grid):
            if not flags[row][col] or (row, col) in seen:
                continue
            stack = [(row, col)]
            seen.add((row, col))
            cells: list[tuple[int, int]] = []
            while stack:
                r, c = stack.pop()
                cells.append((r, c))
                for nr, nc in ((r - 1, c), (r + 1, c), (r, c - 1), (r, c + 1)):
                    if 0 <= nr < grid and 0 <= nc < grid and flags[nr][nc] and (nr, nc) not in seen:
                        seen.add((nr, nc))
                        stack.append((nr, nc))
            regions.append(cells)
    return regions


def _severity_for(contrast: float) -> str:
    if contrast >= 0.7:
        return "HIGH"
    if contrast >= 0.55:
        return "MEDIUM"
    return "LOW"


class HeuristicPotholeDetector(PotholeDetector):
    """Flags patches that are much darker than the surrounding road surface."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or AppConfig()
        self._info = DetectorInfo(
            identifier="builtin.heuristic",
            display_name="Brightness Heuristic",
            description="Reports dark road patches from image statistics without ML dependencies.",
            tags=("lightweight", "no-internet", "cpu"),
        )

    def info(self) -> DetectorInfo:
        return self._info

    def load(self) -> None:
        # Nothing to initialise for the heuristic detector.
        return

    def detect(self, image: ImagePayload) -> dict[str, Any]:
        try:
            with Image.open(io.BytesIO(image.data)) as decoded:
                gray = decoded.convert("L")
        except (UnidentifiedImageError, OSError) as exc:
            raise DetectorError(f"Unable to decode {image.media_type} image: {exc}") from exc
        gray.thumbnail((_WORKING_SIZE, _WORKING_SIZE))

        grid = min(self._config.heuristic_grid, gray.width, gray.height)
        frame_mean = ImageStat.Stat(gray).mean[0]
        if frame_mean <= 0:
            return {"potholes": [], "summary": "Image too dark to assess the road surface."}

        means = _cell_means(gray, grid)
        threshold = self._config.heuristic_darkness_ratio
        flags = [[value / frame_mean < threshold for value in row] for row in means]

        potholes: list[dict[str, Any]] = []
        for cells in _connected_regions(flags):
            contrasts = [1.0 - means[r][c] / frame_mean for r, c in cells]
            rows = [r for r, _ in cells]
            cols = [c for _, c in cells]
            peak = max(contrasts)
            potholes.append(
                {
                    "region": [
                        min(cols) / grid,
                        min(rows) / grid,
                        (max(cols) + 1) / grid,
                        (max(rows) + 1) / grid,
                    ],
                    "severity": _severity_for(peak),
                    "confidence": round(min(1.0, 0.5 + sum(contrasts) / len(contrasts) / 2), 3),
                }
            )

        if potholes:
            summary = (
                f"{len(potholes)} dark surface region(s) flagged by the brightness heuristic "
                f"on a {grid}x{grid} grid; confirm on site."
            )
        else:
            summary = "No dark depressions found by the brightness heuristic."
        return {"potholes": potholes, "summary": summary}


def _register() -> None:
    DetectorRegistry.register("builtin.heuristic", HeuristicPotholeDetector)


_register()
