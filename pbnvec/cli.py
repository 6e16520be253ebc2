"""Command line interface for pbnvec."""
import argparse
import json
import logging
import sys
from pathlib import Path

from pbnvec.config import PipelineConfig, load_config, merge_overrides
from pbnvec.pipeline import PaintByNumbersPipeline
from pbnvec.raster_ingest import load_pixels
from pbnvec.types import VectorizationError

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog='pbnvec',
        description='Convert a raster image into a paint-by-numbers SVG template'
    )

    parser.add_argument(
        'input',
        type=str,
        help='Input image path'
    )

    parser.add_argument(
        '-o', '--output-dir',
        type=str,
        default=None,
        help='Directory for the SVG and palette output (default: next to the input)'
    )

    parser.add_argument(
        '-c', '--config',
        type=str,
        default=None,
        help='JSON settings file'
    )

    parser.add_argument(
        '--colors',
        type=int,
        default=None,
        help='Number of k-means clusters (overrides the settings file)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for clustering (overrides the settings file)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose logging'
    )

    return parser


def main(args=None):
    """Main entry point."""
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed_args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s'
    )

    input_path = Path(parsed_args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    output_dir = Path(parsed_args.output_dir) if parsed_args.output_dir else input_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    try:
        if parsed_args.config:
            config = load_config(parsed_args.config, n_clusters=parsed_args.colors,
                                 random_seed=parsed_args.seed)
        else:
            config = merge_overrides(PipelineConfig(), n_clusters=parsed_args.colors,
                                     random_seed=parsed_args.seed)

        pixels = load_pixels(input_path)
        print(f"Image: {pixels.shape[1]}x{pixels.shape[0]}")
        result = PaintByNumbersPipeline(config).process(pixels)
    except (FileNotFoundError, VectorizationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for name, document in result.documents.items():
        if document.filetype != 'svg':
            logger.info(f"Profile '{name}' targets {document.filetype}; writing SVG only")
        output_path = output_dir / f"{input_path.stem}-{name}.svg"
        document.save(output_path)
        print(f"  Saved {name}: {output_path}")

    palette_path = output_dir / f"{input_path.stem}-palette.json"
    palette_path.write_text(
        json.dumps([entry.to_dict() for entry in result.palette], indent=2),
        encoding='utf-8'
    )
    print(f"  Saved palette: {palette_path}")

    print(f"\nFacets: {result.facet_result.facet_count}, "
          f"colors: {len(result.color_map.colors_by_index)}")
    for warning in result.warnings:
        print(f"  Warning [{warning.stage}]: {warning.message}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
