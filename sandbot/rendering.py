"""SVG preview of a pattern inside the table's circular boundary.

The preview is redrawn from scratch for every (pattern, progress) pair.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .geometry import Pattern, visible_prefix


@dataclass
class PreviewStyle:
    size: float = 400.0
    margin: float = 10.0
    boundary_color: str = "#e2e8f0"
    stroke_color: str = "#0F5F91"
    stroke_width: float = 2.0
    background: str = "none"


def preview_points(pattern: Pattern, progress: float, style: PreviewStyle = PreviewStyle()) -> List[List[float]]:
    """Canvas coordinates of the visible prefix."""
    center = style.size / 2.0
    radius = center - style.margin
    out: List[List[float]] = []
    for point in visible_prefix(pattern.points, progress):
        x, y = point.to_xy(radius)
        out.append([center + x, center + y])
    return out


def render_preview_svg(pattern: Pattern, progress: float = 100.0, style: PreviewStyle = PreviewStyle()) -> str:
    center = style.size / 2.0
    radius = center - style.margin
    elements = [
        f'<rect x="0" y="0" width="{style.size:.0f}" height="{style.size:.0f}" fill="{style.background}" />',
        f'<circle cx="{center:.2f}" cy="{center:.2f}" r="{radius:.2f}" fill="none" '
        f'stroke="{style.boundary_color}" stroke-width="1" />',
    ]
    pts = preview_points(pattern, progress, style)
    if pts:
        commands = [f"M {pts[0][0]:.2f} {pts[0][1]:.2f}"]
        for x, y in pts[1:]:
            commands.append(f"L {x:.2f} {y:.2f}")
        elements.append(
            f'<path d="{" ".join(commands)}" fill="none" stroke="{style.stroke_color}" '
            f'stroke-width="{style.stroke_width}" stroke-linecap="round" stroke-linejoin="round" />'
        )
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 {style.size:.0f} {style.size:.0f}" '
        f'preserveAspectRatio="xMidYMid meet">' + "".join(elements) + "</svg>"
    )


def preview_payload(pattern: Pattern, progress: float, style: PreviewStyle = PreviewStyle()) -> Dict[str, Any]:
    return {
        "size": style.size,
        "radius": style.size / 2.0 - style.margin,
        "progress": progress,
        "total": len(pattern),
        "points": preview_points(pattern, progress, style),
    }


__all__ = ["PreviewStyle", "preview_points", "render_preview_svg", "preview_payload"]
