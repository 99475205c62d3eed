from sandbot.geometry import Pattern, parse_pattern
from sandbot.rendering import PreviewStyle, preview_payload, preview_points, render_preview_svg


def test_empty_pattern_renders_only_boundary():
    svg = render_preview_svg(Pattern(), 100)
    assert "<circle" in svg
    assert "<path" not in svg


def test_points_are_inscribed_in_boundary():
    style = PreviewStyle(size=200, margin=10)
    pattern = Pattern.from_pairs([(0.0, 1.0), (0.0, 0.0)])
    assert preview_points(pattern, 100, style) == [[190.0, 100.0], [100.0, 100.0]]


def test_progress_selects_prefix():
    pattern = parse_pattern("\n".join(f"{i * 0.1} 0.5" for i in range(20)))
    payload = preview_payload(pattern, 25)
    assert payload["total"] == 20
    assert len(payload["points"]) == 5


def test_render_is_pure():
    pattern = parse_pattern("0 0\n1 1\n2 0.5")
    assert render_preview_svg(pattern, 50) == render_preview_svg(pattern, 50)
    assert render_preview_svg(pattern, 50) != render_preview_svg(pattern, 100)
