"""Palette summary derived from the final facets."""
from typing import Dict, List, Mapping, Sequence

from pbnvec.types import RGB, FacetResult, PaletteEntry


def build_palette(
    facet_result: FacetResult,
    colors_by_index: Sequence[RGB],
    color_aliases: Mapping[str, RGB],
) -> List[PaletteEntry]:
    """Pixel area per palette color, with alias names where one matches.

    Every palette index is listed, including colors no facet uses any more.
    """
    frequency = [0] * len(colors_by_index)
    for facet in facet_result.live_facets():
        frequency[facet.color_index] += facet.point_count
    total = sum(frequency)

    alias_by_color: Dict[RGB, str] = {}
    for alias, color in color_aliases.items():
        alias_by_color[tuple(int(c) for c in color)] = alias

    return [
        PaletteEntry(
            index=index,
            color=tuple(color),
            frequency=frequency[index],
            area_percentage=frequency[index] / total if total else 0.0,
            alias=alias_by_color.get(tuple(color)),
        )
        for index, color in enumerate(colors_by_index)
    ]
