"""Точка входа: анализ изображения из командной строки."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import requests
import structlog

from screenlens.controllers.analysis_controller import AnalysisController
from screenlens.errors import AnalysisError
from screenlens.models.options import AnalysisOptions
from screenlens.services.image_service import RequestsFetcher
from screenlens.services.process_service import OtsuThreshold, ProcessService


def configure_logging(level: str = "WARNING") -> None:
    """Настраивает structlog поверх stdlib logging (вывод в stderr)."""
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=getattr(logging, level.upper(), logging.WARNING))
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenlens",
        description="Analyze a screenshot: palette, chart heuristic, text regions, digits.",
    )
    parser.add_argument("source", help="Image path, data: URI or http(s) URL")
    parser.add_argument("--k-colors", type=int, default=3, help="Palette size (default: 3)")
    parser.add_argument("--samples", type=int, default=2000, help="Pixels sampled for k-means")
    parser.add_argument("--max-thumbnail-width", type=int, default=800)
    parser.add_argument("--no-charts", action="store_true", help="Skip chart heuristic")
    parser.add_argument("--no-text", action="store_true", help="Skip text region detection")
    parser.add_argument("--no-ocr", action="store_true", help="Skip numeric OCR")
    parser.add_argument("--otsu", action="store_true", help="Binarize regions with Otsu threshold instead of mean")
    parser.add_argument("--seed", type=int, default=None, help="Seed for k-means initialisation")
    parser.add_argument("--deadline", type=float, default=None, help="Time limit in seconds")
    parser.add_argument("--thumbnail", type=Path, default=None, help="Write thumbnail to this file")
    parser.add_argument("--edges", type=Path, default=None, help="Write gradient map PNG (debug)")
    parser.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Запускает анализ и печатает результат в JSON."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    options = AnalysisOptions(
        max_thumbnail_width=args.max_thumbnail_width,
        sample_pixels=args.samples,
        k_colors=args.k_colors,
        detect_charts=not args.no_charts,
        detect_text=not args.no_text,
        numeric_ocr=not args.no_ocr,
        deadline=args.deadline,
    )
    controller = AnalysisController(
        options=options,
        fetcher=RequestsFetcher(),
        threshold_policy=OtsuThreshold() if args.otsu else None,
    )

    source = args.source
    if not source.startswith(("data:", "http://", "https://")):
        source = Path(source)

    try:
        result = controller.analyze(source, rng=args.seed)
        if args.thumbnail is not None:
            args.thumbnail.write_bytes(result.thumbnail.data)
        if args.edges is not None:
            args.edges.write_bytes(ProcessService().render_gradient_png(result.gradient))
    except (AnalysisError, OSError, requests.RequestException) as exc:
        print(f"screenlens: {exc}", file=sys.stderr)
        return 2

    print(json.dumps(result.to_dict(include_thumbnail=False), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
