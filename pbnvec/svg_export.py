"""SVG export of facet outlines and color labels."""
from dataclasses import dataclass
from html import escape
from pathlib import Path
from typing import List, Sequence, Union

from pbnvec.config import OutputProfile
from pbnvec.types import RGB, Facet, FacetResult, Point

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


@dataclass
class VectorDocument:
    """Rendered SVG for one output profile."""
    name: str
    width: float
    height: float
    svg: str
    filetype: str = "svg"

    def save(self, output_path: Union[str, Path]) -> None:
        save_svg(self.svg, output_path)


def format_number(x: float, precision: int = 3) -> str:
    """
    Format number with given precision.

    Args:
        x: Number to format
        precision: Decimal places

    Returns:
        Formatted string without trailing zeros
    """
    formatted = f"{x:.{precision}f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    if formatted == "-0":
        formatted = "0"
    return formatted


def format_color(rgb: RGB) -> str:
    return f"rgb({rgb[0]},{rgb[1]},{rgb[2]})"


def facet_outline(facet: Facet) -> List[Point]:
    """Smoothed outline of a facet in image coordinates, closed."""
    wall_path = facet.get_full_path_from_border_segments() if facet.border_segments else facet.border_path
    # Wall coordinates are offset half a pixel from image coordinates
    path = [Point(p.x + 0.5, p.y + 0.5) for p in wall_path]
    if path and path[0] != path[-1]:
        path.append(path[0])
    return path


def path_data(points: Sequence[Point], size_multiplier: float) -> str:
    """Quadratic path through the points with midpoint control points.

    Args:
        points: Closed point sequence (first == last)
        size_multiplier: Scale applied to every coordinate

    Returns:
        SVG path ``d`` attribute
    """
    fmt = lambda v: format_number(v * size_multiplier)
    commands = [f"M {fmt(points[0].x)} {fmt(points[0].y)}"]
    for prev, cur in zip(points, points[1:]):
        mid_x = (prev.x + cur.x) / 2
        mid_y = (prev.y + cur.y) / 2
        commands.append(f"Q {fmt(mid_x)} {fmt(mid_y)} {fmt(cur.x)} {fmt(cur.y)}")
    commands.append("Z")
    return ' '.join(commands)


def _path_element(facet: Facet, points: Sequence[Point], color: RGB, profile: OutputProfile) -> str:
    fill = format_color(color) if profile.fill_facets else "none"
    style = f"fill: {fill};"
    if profile.show_borders:
        style += " stroke: #000; stroke-width: 1px;"
    elif profile.fill_facets:
        # Stroke in the fill color closes sub-pixel seams between facets
        style += f" stroke: {fill}; stroke-width: 1px;"
    return (f'<path data-facetId="{facet.id}" '
            f'd="{path_data(points, profile.size_multiplier)}" style="{style}"/>')


def _label_element(facet: Facet, profile: OutputProfile) -> str:
    bounds = facet.label_bounds
    m = profile.size_multiplier
    text = str(facet.color_index)
    font_size = profile.font_size / len(text)
    return (
        f'<g class="label" transform="translate({format_number(bounds.min_x * m + m / 2)},'
        f'{format_number(bounds.min_y * m + m / 2)})">'
        f'<svg width="{format_number(bounds.width * m)}" height="{format_number(bounds.height * m)}" '
        f'overflow="visible" viewBox="-50 -50 100 100" preserveAspectRatio="xMidYMid meet">'
        f'<text font-family="Tahoma" font-size="{format_number(font_size)}" '
        f'dominant-baseline="middle" text-anchor="middle" '
        f'fill="{escape(profile.font_color, quote=True)}">{text}</text>'
        f'</svg></g>'
    )


def render_svg(
    facet_result: FacetResult,
    colors_by_index: Sequence[RGB],
    profile: OutputProfile,
) -> VectorDocument:
    """
    Render facets as an SVG document for one output profile.

    Facets enclosing others are drawn first so enclosed facets stay visible.

    Args:
        facet_result: Facets with border segments (and label bounds when
            labels are shown)
        colors_by_index: Palette the facets' color indices refer to
        profile: Output profile

    Returns:
        VectorDocument sized width x height x size multiplier
    """
    width = facet_result.width * profile.size_multiplier
    height = facet_result.height * profile.size_multiplier

    elements = []
    labels = []
    facets = sorted(facet_result.live_facets(), key=lambda f: (-f.bbox.area, f.id))
    for facet in facets:
        points = facet_outline(facet)
        if not points:
            continue
        elements.append(_path_element(facet, points, colors_by_index[facet.color_index], profile))
        if profile.show_labels and facet.label_bounds is not None:
            labels.append(_label_element(facet, profile))
    # Labels go on top of every facet
    elements.extend(labels)

    content = '\n  '.join(elements)
    svg = f'''<?xml version="1.0" standalone="no"?>
<svg xmlns="{SVG_NAMESPACE}" width="{format_number(width)}" height="{format_number(height)}">
  {content}
</svg>'''

    return VectorDocument(name=profile.name, width=width, height=height, svg=svg,
                          filetype=profile.filetype)


def save_svg(
    svg_string: str,
    output_path: Union[str, Path]
) -> None:
    """
    Save SVG string to file.

    Args:
        svg_string: SVG content
        output_path: Output file path
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(svg_string)
