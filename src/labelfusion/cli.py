#!/usr/bin/env python3
"""
Label Fusion - Command Line Interface

Etykietowanie obserwacji waypointów i budowa mapy zbiorczej.

Usage:
    labelfusion config.json rf.pkl --observations data/obs --origins data/origins.json \\
        --output output/fused.las --waypoint WayPoint1 --waypoint WayPoint2

Examples:
    # Dwie obserwacje, mapa zbiorcza w output/fused.las
    labelfusion config.json rf.pkl -O data/obs -g data/origins.json -o output/fused.las -w WP1 -w WP2

    # Obserwacja instancji (plik data/obs/WP1_3.las) + raport JSON z odpowiedziami
    labelfusion config.json rf.pkl -O data/obs -g data/origins.json -o output/fused.las \\
        -w WP1 --instance 3 --report output/responses.json
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path

from .core import JSONOriginSource, LASObservationSource
from .exceptions import ConfigError, ModelLoadError
from .pipeline import LASFilePublisher, LabelRequest, SemanticLabeler


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        description="Label Fusion - semantyczne etykietowanie chmur punktów i mapa zbiorcza",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("config", type=str, help="Plik konfiguracji JSON")
    parser.add_argument("model", type=str, help="Plik modelu Random Forest (pickle)")

    parser.add_argument(
        "--observations", "-O",
        type=str,
        required=True,
        help="Katalog z obserwacjami <waypoint>.las / <waypoint>_<instancja>.las"
    )
    parser.add_argument(
        "--origins", "-g",
        type=str,
        required=True,
        help="Plik JSON z pozycjami sensora {waypoint: [x, y, z]}"
    )
    parser.add_argument(
        "--output", "-o",
        type=str,
        required=True,
        help="Plik LAS/LAZ z mapą zbiorczą (nadpisywany po każdym żądaniu)"
    )
    parser.add_argument(
        "--waypoint", "-w",
        action="append",
        required=True,
        help="Identyfikator obserwacji (można podać wielokrotnie)"
    )
    parser.add_argument(
        "--instance", "-i",
        type=int,
        default=None,
        help="Numer instancji (żądania typu instancja dla wszystkich waypointów)"
    )
    parser.add_argument(
        "--report", "-r",
        type=str,
        default=None,
        help="Plik JSON z odpowiedziami (opcjonalne)"
    )

    parser.add_argument("--quiet", "-q", action="store_true", help="Minimalne wyjście (tylko błędy)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Szczegółowe wyjście")

    return parser.parse_args(argv)


def main(argv=None):
    """Main CLI entry point"""
    args = parse_args(argv)

    if args.quiet:
        logging.basicConfig(level=logging.ERROR)
    elif args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )

    logger = logging.getLogger(__name__)

    try:
        labeler = SemanticLabeler.from_files(
            args.config,
            args.model,
            cloud_source=LASObservationSource(args.observations),
            origin_source=JSONOriginSource(args.origins),
            publisher=LASFilePublisher(args.output),
        )
    except (ConfigError, ModelLoadError, FileNotFoundError, ValueError) as e:
        logger.error(f"Startup failed: {e}")
        print(f"❌ Błąd: {e}", file=sys.stderr)
        return 1

    start_time = time.time()
    responses = {}
    n_failed = 0

    for waypoint_id in args.waypoint:
        response = labeler.handle(LabelRequest(waypoint_id, args.instance))
        responses[waypoint_id] = response.to_dict()

        if response.success:
            if not args.quiet:
                freqs = ", ".join(
                    f"{name}={freq * 100:.1f}%"
                    for name, freq in zip(response.index_to_label_name, response.label_frequencies)
                )
                print(f"✅ {waypoint_id}: {len(response.label):,} punktów ({freqs})")
        else:
            n_failed += 1
            print(f"❌ {waypoint_id}: etykietowanie nie powiodło się", file=sys.stderr)

    if args.report:
        report_path = Path(args.report)
        report_path.parent.mkdir(parents=True, exist_ok=True)
        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(responses, f, indent=2, ensure_ascii=False)
        logger.info(f"Report saved: {report_path}")

    if not args.quiet:
        print(f"⏱️  Czas: {time.time() - start_time:.1f}s | "
              f"mapa: {labeler.store.total_points():,} punktów z {len(labeler.store)} obserwacji")

    return 1 if n_failed == len(args.waypoint) else 0


if __name__ == "__main__":
    sys.exit(main())
