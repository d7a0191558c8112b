"""CLI entry point for the station access pipeline."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt

from chargemap.analysis.summary import points_to_frame, regions_to_frame
from chargemap.config import load_config_from_env
from chargemap.errors import ChargemapError
from chargemap.pipeline import ChargingAccessPipeline, PipelineResult
from chargemap.visualizer import ColorScale, MapVisualizer


def class_count(value: str) -> int:
    """argparse type for the number of classes per axis."""
    k = int(value)
    if k < 2:
        raise argparse.ArgumentTypeError(f"must be at least 2, got {k}")
    return k


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Count public EV charging stations per census region"
    )
    parser.add_argument("--state", help="State FIPS code (e.g. 17)")
    parser.add_argument("--state-abbr", help="State abbreviation for the station API (e.g. IL)")
    parser.add_argument("--county", help="County FIPS code (e.g. 031)")
    parser.add_argument("--year", type=int, help="ACS 5-year vintage")
    parser.add_argument(
        "--geography",
        choices=["county", "tract", "block group"],
        help="Census geography level",
    )
    parser.add_argument("--k", type=class_count, help="Classes per axis (at least 2)")
    parser.add_argument("--x-field", help="First classification field")
    parser.add_argument("--y-field", help="Second classification field")
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Directory for tables and maps",
    )
    parser.add_argument(
        "--no-maps",
        action="store_true",
        help="Skip rendering maps",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level")
    return parser


def apply_args(config, args: argparse.Namespace):
    """Override environment configuration with command-line values."""
    area, classification = config.area, config.classification
    if args.state:
        area.state = args.state
    if args.state_abbr:
        area.state_abbr = args.state_abbr
    if args.county:
        area.county = args.county
    if args.year:
        area.year = args.year
    if args.geography:
        area.geography = args.geography
    if args.k is not None:
        classification.k = args.k
    if args.x_field:
        classification.x_field = args.x_field
    if args.y_field:
        classification.y_field = args.y_field
    return config


def write_outputs(result: PipelineResult, output_dir: Path, maps: bool = True) -> List[Path]:
    """Write region/summary tables and, optionally, PNG maps."""
    output_dir.mkdir(parents=True, exist_ok=True)
    written = []

    regions = regions_to_frame(result.classified)
    table_path = output_dir / "regions.csv"
    regions.drop(columns="geometry").to_csv(table_path, index=False)
    written.append(table_path)

    summary_path = output_dir / "summary.csv"
    result.summary.to_csv(summary_path)
    written.append(summary_path)

    if maps:
        viz = MapVisualizer()
        joined = regions_to_frame(result.joined)

        fig, _ = viz.plot_points(joined, points_to_frame(result.points), title="Charging stations")
        viz.save(output_dir / "stations.png", fig)
        plt.close(fig)

        fig, _ = viz.choropleth(
            joined, "count", title="Stations per region", colormap=ColorScale.YELLOW_ORANGE_RED
        )
        viz.save(output_dir / "station_counts.png", fig)
        plt.close(fig)

        fig, _ = viz.plot_presence(joined)
        viz.save(output_dir / "presence.png", fig)
        plt.close(fig)

        written.extend(
            output_dir / name
            for name in ("stations.png", "station_counts.png", "presence.png")
        )

    return written


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = apply_args(load_config_from_env(), args)
    area = config.area

    print("Starting station access pipeline...")
    print(f"  Area: state {area.state} county {area.county or '*'} ({area.geography})")
    print(f"  ACS year: {area.year}")
    print(f"  Classes: {config.classification.x_field} x {config.classification.y_field}, "
          f"k={config.classification.k}")
    print()

    try:
        result = ChargingAccessPipeline(config).run()
        written = write_outputs(result, Path(args.output_dir), maps=not args.no_maps)
    except ChargemapError as e:
        print(f"Pipeline failed [{e.error_code}]: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Pipeline failed: {e}", file=sys.stderr)
        return 1

    print("=" * 50)
    print("Pipeline Complete!")
    print("=" * 50)
    print(f"Stations loaded: {len(result.points)}")
    print(f"Stations inside area: {result.stations_in_area}")
    print(f"Regions joined: {len(result.joined)} ({len(result.dropped)} dropped)")
    print(f"Regions classified: {len(result.classified)}")
    print(f"{result.x_breaks.field} breaks: {result.x_breaks.boundaries}")
    print(f"{result.y_breaks.field} breaks: {result.y_breaks.boundaries}")
    print()
    print(result.summary.to_string())
    print()
    for path in written:
        print(f"Wrote {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
