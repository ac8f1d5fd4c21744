"""
Command-line entry point: load halls and rosters, allocate seats,
export the workbooks.
"""

import sys
import logging
import argparse

from .data_loader import SeatingDataLoader
from .engine import SeatingEngine
from .exporter import SeatingExporter
from .validator import validate_all
from .partitioner import STRATEGIES
from .exceptions import SeatingError, CapacityError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

EXIT_OK = 0
EXIT_INPUT_ERROR = 1
EXIT_CAPACITY_ERROR = 2


def setup_logging(level: str = "INFO", log_file: str = None):
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Allocate exam hall seats so that neighbours do not share a cohort, branch or subject."
    )
    parser.add_argument(
        "--halls",
        default="halls.csv",
        help="CSV of halls with name, rows and columns (default: halls.csv)",
    )
    parser.add_argument(
        "--students",
        nargs="+",
        required=True,
        help="One or more roster CSVs, e.g. one per year",
    )
    parser.add_argument(
        "--strategy",
        choices=sorted(STRATEGIES),
        default="cohort",
        help="Attribute that neighbours must not share (default: cohort)",
    )
    parser.add_argument(
        "--data-dir",
        default="data",
        help="Directory for relative input paths (default: data)",
    )
    parser.add_argument(
        "--output-dir",
        default="output/seating",
        help="Output directory for Excel and JSON files (default: output/seating)",
    )
    parser.add_argument(
        "--config",
        default="seating_config.csv",
        help="parameter,value CSV of engine settings (default: seating_config.csv, optional)",
    )
    parser.add_argument("--seed", type=int, help="Random seed for reproducible runs")
    parser.add_argument(
        "--check-vertical",
        action="store_true",
        default=None,
        help="Also count front/back neighbours as conflicts",
    )
    parser.add_argument("--attempts", type=int, help="Maximum whole-run attempts")
    parser.add_argument("--passes", type=int, help="Maximum repair passes per hall")
    parser.add_argument("--exam-name", help="Title printed on every sheet")
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Skip malformed roster records instead of rejecting the roster",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", help="Also write the log to this file")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.log_file)

    print("=" * 90)
    print("EXAM SEATING ARRANGEMENT GENERATOR".center(90))
    print("=" * 90)

    loader = SeatingDataLoader(data_dir=args.data_dir)
    try:
        print("\n📂 Loading data...")
        config = loader.load_config(args.config).with_overrides(
            seed=args.seed,
            check_vertical=args.check_vertical,
            max_attempts=args.attempts,
            max_repair_passes=args.passes,
        )
        halls = loader.load_halls(args.halls)
        students = loader.load_rosters(args.students, strict=not args.lenient)
    except (SeatingError, FileNotFoundError, ValueError) as e:
        print(f"\n❌ Could not load input: {e}")
        logger.error("Input error: %s", e)
        return EXIT_INPUT_ERROR

    print(f"  ✓ Loaded {len(halls)} halls")
    print(f"  ✓ Loaded {len(students)} students")
    if loader.rejected:
        print(f"  ⚠ Skipped {len(loader.rejected)} malformed record(s)")

    print(f"\n🪑 Allocating seats ({args.strategy})...")
    engine = SeatingEngine(halls, strategy=args.strategy, config=config)
    try:
        allocation = engine.run(students, exam_name=args.exam_name)
    except CapacityError as e:
        print(f"\n❌ {e.message}")
        print(f"   Add room for at least {e.details['shortfall']} more students.")
        logger.error("Capacity error: %s", e.details)
        return EXIT_CAPACITY_ERROR
    except SeatingError as e:
        print(f"\n❌ {e.message}")
        logger.error("Seating error: %s %s", e.message, e.details)
        return EXIT_INPUT_ERROR

    report = allocation.report()
    print(f"  ✓ {report.mode} students per bench")
    print(f"  ✓ {report.total_students} students seated in {len(report.halls)} halls")
    if report.violation_count:
        print(f"  ⚠ {report.violation_count} neighbour conflict(s) could not be removed")
    else:
        print("  ✓ No neighbour conflicts")

    validate_all(allocation, students)

    print("\n📊 Exporting...")
    written = SeatingExporter(allocation).export_all(args.output_dir)
    for filename in written:
        print(f"  ✓ Exported: {filename}")

    print("\n" + "=" * 90)
    print("✓ SEATING ARRANGEMENT COMPLETE!".center(90))
    print("=" * 90)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
