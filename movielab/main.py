"""Headless entry point: run the scene pipeline from the command line."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import (
    CONFIG_DIR,
    DEFAULT_ASPECT_RATIO,
    DEFAULT_DURATION,
    VALID_ASPECT_RATIOS,
    VALID_DURATIONS,
    ApiKeys,
    Config,
)
from .errors import MovieLabError
from .pipeline import PipelineCancelled, ScenePipeline, SceneServices
from .scenes import parse_scene_lines


def _setup_logging() -> None:
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(CONFIG_DIR / "movielab.log"),
        level=logging.DEBUG,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="movielab",
        description="Generate a narrated, lip-synced video from one image",
    )
    parser.add_argument("--image", type=Path, required=True, help="Seed image for the first scene")
    parser.add_argument(
        "--scene", action="append", default=[],
        help="Scene as 'visual prompt | spoken subtitle' (repeatable)",
    )
    parser.add_argument("--scenes-file", type=Path, default=None, help="File with one scene per line")
    parser.add_argument("--duration", choices=VALID_DURATIONS, default=DEFAULT_DURATION)
    parser.add_argument("--aspect-ratio", choices=VALID_ASPECT_RATIOS, default=DEFAULT_ASPECT_RATIO)
    parser.add_argument("--no-merge", action="store_true", help="Keep the per-scene clips only")
    return parser


def run_headless(args: argparse.Namespace) -> int:
    """Run the pipeline, printing progress to stdout. Returns the exit code."""
    lines = list(args.scene)
    if args.scenes_file:
        lines.extend(args.scenes_file.read_text(encoding="utf-8").splitlines())

    try:
        scenes = parse_scene_lines("\n".join(lines))
        seed_image = args.image.read_bytes()
    except (MovieLabError, OSError) as e:
        print(f"Error: {e}")
        return 2

    config = Config.load()
    services = SceneServices(ApiKeys.from_config(config), config)
    pipeline = ScenePipeline(services, progress_cb=print)
    try:
        result = pipeline.run(
            scenes,
            seed_image,
            duration=args.duration,
            aspect_ratio=args.aspect_ratio,
            merge=not args.no_merge,
        )
    except PipelineCancelled:
        print("Cancelled.")
        return 1
    except MovieLabError as e:
        print(f"Error: {e}")
        return 1

    for i, url in enumerate(result.synced_videos, start=1):
        print(f"  Scene {i}: {url}")
    print(f"\n✅ Output: {result.final_url}")
    return 0


def main(argv: list[str] | None = None) -> None:
    _setup_logging()
    args = _build_parser().parse_args(argv)
    sys.exit(run_headless(args))


if __name__ == "__main__":
    main()
