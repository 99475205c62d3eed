"""Generate an Archimedean spiral pattern and load it into a running server."""
from __future__ import annotations

import math

import requests

from sandbot.geometry import Pattern, PatternPoint, estimate_draw_time, format_duration


def spiral(turns: float = 12.0, steps_per_turn: int = 90) -> Pattern:
    total = int(turns * steps_per_turn)
    points = []
    for i in range(total + 1):
        t = i / total
        points.append(PatternPoint(theta=2.0 * math.pi * turns * t, rho=t))
    return Pattern(points=points)


def main() -> None:
    pattern = spiral()
    print(f"{len(pattern)} points, estimated {format_duration(estimate_draw_time(pattern))}")
    payload = {"name": "spiral.thr", "text": pattern.to_text()}
    res = requests.post("http://localhost:8000/api/pattern", json=payload, timeout=5)
    res.raise_for_status()
    print("Server response:", res.json())


if __name__ == "__main__":
    main()
