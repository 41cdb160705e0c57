"""Command line entry point for the Pothole Inspector project."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any

from . import SettingsStore, WorkflowController, WorkflowState
from .models.registry import DetectorRegistry
from .services.report import build_report
from .utils.media import read_image_file


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Pothole Inspector")
    parser.add_argument(
        "--image",
        "-i",
        type=Path,
        help="Road surface photograph to inspect.",
    )
    location_group = parser.add_mutually_exclusive_group()
    location_group.add_argument(
        "--query",
        "-q",
        help="Place name or address used to geotag the report.",
    )
    location_group.add_argument(
        "--gps",
        action="store_true",
        help="Geotag the report with the configured device position.",
    )
    parser.add_argument(
        "--detector",
        help="Override the configured detector identifier.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file to use instead of the per-user default.",
    )
    parser.add_argument(
        "--list-detectors",
        action="store_true",
        help="Print available detectors and exit.",
    )
    parser.add_argument(
        "--recent-queries",
        action="store_true",
        help="Print place queries that previously resolved and exit.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity written to stderr.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.list_detectors:
        payload = [asdict(info) for info in DetectorRegistry.list_detector_infos()]
        for item in payload:
            item["tags"] = list(item["tags"])
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    store = SettingsStore(args.config) if args.config else SettingsStore()
    if args.recent_queries:
        json.dump(store.recent_queries(), sys.stdout, indent=2)
        sys.stdout.write("\n")
        return

    if args.image is None:
        parser.error("--image is required unless --list-detectors or --recent-queries is given.")

    try:
        data, media_type = read_image_file(args.image)
    except FileNotFoundError:
        parser.error(f"Image not found: {args.image}")

    config = store.load()
    if args.detector:
        config.detector_name = args.detector

    controller = WorkflowController.from_config(config)
    asyncio.run(
        _run_inspection(controller, data, media_type, query=args.query, use_gps=args.gps)
    )

    state = controller.state
    if args.query is not None and state.location is not None:
        store.remember_query(controller.location_query)
    report = build_report(state)
    output = {
        "state": _describe_state(state),
        "report": report.as_dict() if report is not None else None,
    }
    json.dump(output, sys.stdout, indent=2)
    sys.stdout.write("\n")
    if state.error:
        raise SystemExit(1)


async def _run_inspection(
    controller: WorkflowController,
    data: bytes,
    media_type: str,
    *,
    query: str | None,
    use_gps: bool,
) -> None:
    if not controller.submit_image(data, media_type):
        return
    steps = [controller.run_analysis()]
    if query is not None:
        steps.append(controller.resolve_location_by_query(query))
    elif use_gps:
        steps.append(controller.resolve_location_by_gps())
    await asyncio.gather(*steps)


def _describe_state(state: WorkflowState) -> dict[str, Any]:
    location = state.location
    return {
        "image": (
            {"media_type": state.image.media_type, "size": len(state.image.data)}
            if state.image is not None
            else None
        ),
        "potholes": (
            len(state.detection_result.potholes) if state.detection_result is not None else None
        ),
        "location": (
            {
                "latitude": location.latitude,
                "longitude": location.longitude,
                "timestamp": location.timestamp.isoformat() if location.timestamp else None,
                "address": location.address,
            }
            if location is not None
            else None
        ),
        "is_analyzing": state.is_analyzing,
        "is_locating": state.is_locating,
        "error": state.error,
    }


if __name__ == "__main__":  # pragma: no cover
    main()
