"""SVG blueprint export.

Layers are laid out on a grid, one per cell, and each contour becomes a
``<path>`` of move/line commands (closed contours end with ``Z``). SVG's Y
axis points down, so Y is negated. One SVG user unit is one millimetre.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.config import LayoutParams
from ..core.errors import EmptyExportError
from ..core.geometry import Contour, SliceResult
from .layout import SheetLayout

logger = logging.getLogger(__name__)


def _fmt(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def contour_to_path_data(contour: Contour) -> str:
    """Serialize a contour as SVG path data with Y inverted."""
    if len(contour) == 0:
        return ""
    commands = []
    for i, (x, y) in enumerate(contour.points):
        op = "M" if i == 0 else "L"
        commands.append(f"{op} {_fmt(x)} {_fmt(-y)}")
    if contour.closed:
        commands.append("Z")
    return " ".join(commands)


def render_svg(result: SliceResult, params: LayoutParams | None = None) -> str:
    """Render a layer stack as an SVG document.

    Raises:
        EmptyExportError: If the stack has no layers
    """
    if result.is_empty:
        raise EmptyExportError("Nothing to export: the layer stack is empty")

    params = params or LayoutParams()
    layout = SheetLayout.for_layers(len(result), result.width, result.length, params.padding_mm)
    total_w = _fmt(layout.sheet_width)
    total_h = _fmt(layout.sheet_height)

    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {total_w} {total_h}" '
        f'width="{total_w}mm" height="{total_h}mm">',
        f"<style>path {{ fill: none; stroke: black; stroke-width: {_fmt(params.stroke_width)}px; }} "
        f"text {{ font-family: sans-serif; font-size: {_fmt(params.label_font_size)}px; fill: red; }}</style>",
    ]

    for index, cx, cy in layout.iter_cells():
        layer = result[index]
        lines.append(f'<g transform="translate({_fmt(cx)}, {_fmt(cy)})">')
        if params.label_layers:
            label_y = layout.cell_height / 2 - 2
            lines.append(f'<text x="0" y="{_fmt(label_y)}" text-anchor="middle">Layer {index + 1}</text>')
        for contour in layer.contours:
            data = contour_to_path_data(contour)
            if data:
                lines.append(f'<path d="{data}" />')
        lines.append("</g>")

    lines.append("</svg>")
    return "\n".join(lines) + "\n"


def write_svg(result: SliceResult, path: str | Path, params: LayoutParams | None = None) -> Path:
    """Render and save an SVG blueprint.

    The document is rendered before the file is opened, so an empty stack
    leaves no file behind.
    """
    document = render_svg(result, params)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(document)
    logger.info(f"Wrote {len(result)} layers to {path}")
    return path
