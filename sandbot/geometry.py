"""Polar pattern primitives for sand table drawings.

A pattern file (``.thr``) holds one ``"<theta> <rho>"`` pair per line, with
theta in radians and rho as a fraction of the robot's reach.  Everything here
is pure: parsing, path length, draw time estimates and the visible prefix used
for progressive previews.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import RobotGeometryConfig

XY = Tuple[float, float]

NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class PatternPoint:
    theta: float
    rho: float

    def to_xy(self, radius: float = 1.0) -> XY:
        r = self.rho * radius
        return (r * math.cos(self.theta), r * math.sin(self.theta))


@dataclass
class Pattern:
    """Ordered sequence of polar points."""

    points: List[PatternPoint] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[PatternPoint]:
        return iter(self.points)

    def __bool__(self) -> bool:
        return bool(self.points)

    @staticmethod
    def from_pairs(pairs: Iterable[Sequence[float]]) -> "Pattern":
        return Pattern(points=[PatternPoint(float(t), float(r)) for t, r in pairs])

    def to_text(self) -> str:
        return "\n".join(f"{p.theta!r} {p.rho!r}" for p in self.points)

    def cartesian(self, radius: float = 1.0) -> List[XY]:
        return [p.to_xy(radius) for p in self.points]

    def total_length(self, radius: float = 1.0) -> float:
        pts = self.cartesian(radius)
        return sum(math.hypot(b[0] - a[0], b[1] - a[1]) for a, b in zip(pts, pts[1:]))

    def to_dict(self) -> Dict[str, Any]:
        return {"points": [[p.theta, p.rho] for p in self.points]}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Pattern":
        pts = data.get("points", [])
        if not isinstance(pts, list):
            raise ValueError("points must be a list of [theta, rho] pairs")
        return Pattern.from_pairs(pts)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_line(line: str) -> Optional[PatternPoint]:
    tokens = line.split()
    if len(tokens) < 2:
        return None
    try:
        theta, rho = float(tokens[0]), float(tokens[1])
    except ValueError:
        return None
    if not (math.isfinite(theta) and math.isfinite(rho)):
        return None
    return PatternPoint(theta, rho)


def parse_pattern(text: str) -> Pattern:
    """Parse ``.thr`` text, silently dropping lines that are not two numbers."""
    points = []
    for line in text.splitlines():
        point = _parse_line(line)
        if point is not None:
            points.append(point)
    return Pattern(points=points)


# ---------------------------------------------------------------------------
# Estimates
# ---------------------------------------------------------------------------


def estimate_draw_time(pattern: Pattern, geometry: Optional[RobotGeometryConfig] = None) -> Optional[float]:
    """Approximate drawing time in seconds.

    Straight segments between consecutive points are traversed at the mean of
    the two axis speeds; acceleration and the robot's own path planning are
    ignored.  Returns ``None`` for patterns with fewer than two points.
    """
    if len(pattern) < 2:
        return None
    geometry = geometry or RobotGeometryConfig()
    speed = geometry.avg_speed
    if speed <= 0:
        return None
    return pattern.total_length(geometry.max_radius) / speed


def format_duration(seconds: Optional[float]) -> str:
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return NOT_AVAILABLE
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_geometry(geometry: Optional[RobotGeometryConfig] = None) -> str:
    """Speed and table diameter the estimate is based on, e.g. ``Speed @ 10mm/s • ⌀200mm``."""
    geometry = geometry or RobotGeometryConfig()
    speed = int(math.floor(geometry.avg_speed + 0.5))
    return f"Speed @ {speed}mm/s • ⌀{geometry.max_radius * 2:g}mm"


# ---------------------------------------------------------------------------
# Progressive preview
# ---------------------------------------------------------------------------


def visible_count(total: int, progress: float) -> int:
    progress = max(0.0, min(100.0, float(progress)))
    return int(math.floor(total * progress / 100.0))


def visible_prefix(points: Sequence[PatternPoint], progress: float) -> List[PatternPoint]:
    """Points drawn so far when ``progress`` percent of the pattern is shown."""
    return list(points[: visible_count(len(points), progress)])


__all__ = [
    "XY",
    "NOT_AVAILABLE",
    "PatternPoint",
    "Pattern",
    "parse_pattern",
    "estimate_draw_time",
    "format_duration",
    "format_geometry",
    "visible_count",
    "visible_prefix",
]
