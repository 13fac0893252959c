from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional, Sequence

import cv2

from detect_kit import ClassCatalog, YoloPostprocessor, draw_detections, load_catalog, load_pipeline
from detect_kit.tensor import TensorLayout

from .config import DetectionProfile, load_detection_profile
from .ingest import FrameSource
from .pacing import FramePacer
from .session import FrameResult, IngredientDetector
from .tracker import AcceptanceProposal, SustainedDetectionTracker

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _parse_providers(raw: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    parts = [p.strip().strip("'\"`") for p in str(raw).split(",")]
    return [p for p in parts if p] or None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingredient detection: YOLO decode + NMS + sustained-detection proposals.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--video", default=None, help="Path to input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")

    parser.add_argument("--model", default="Models/yolov8n.onnx", help="Path to the ONNX detector.")
    parser.add_argument("--metadata", default=None, help="Class metadata yaml (names mapping). COCO-80 if omitted.")
    parser.add_argument("--profile", default=None, help="Detection profile JSON (thresholds, eligible labels).")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--num-boxes", type=int, default=8400, help="Anchors in the detector output.")
    parser.add_argument("--accept", action="append", default=[], help="Label already accepted (repeatable).")
    parser.add_argument("--auto-accept", action="store_true", help="Accept every proposed label immediately.")
    parser.add_argument("--show", action="store_true", help="Show real-time window; press q/ESC to exit.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N processed frames (0=no limit).")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _print_proposal(proposal: AcceptanceProposal) -> None:
    print(f"[{proposal.time_s:8.2f}s] Add ingredient? {proposal.label} (visible {proposal.elapsed_s:.1f}s)")


def build_detector(
    profile: DetectionProfile,
    catalog: ClassCatalog,
    *,
    num_boxes: int = 8400,
    accepted: Sequence[str] = (),
    clock=time.monotonic,
) -> IngredientDetector:
    post = YoloPostprocessor(
        profile.post_config(),
        catalog=catalog,
        layout=TensorLayout(num_classes=len(catalog), num_boxes=num_boxes),
    )
    tracker = SustainedDetectionTracker(profile.tracker_config(catalog), clock=clock, accepted=accepted)
    pacer = FramePacer(profile.pacing_config(), clock=clock)
    return IngredientDetector(post, tracker, pacer)


def run(args: argparse.Namespace) -> int:
    profile = load_detection_profile(Path(args.profile)) if args.profile else DetectionProfile()
    catalog = load_catalog(args.metadata) if args.metadata else ClassCatalog.coco()

    unknown_accepted = [label for label in args.accept if label not in catalog]
    if unknown_accepted:
        print(f"WARNING: accepted labels not in class catalog: {unknown_accepted}")

    detector = build_detector(profile, catalog, num_boxes=int(args.num_boxes), accepted=args.accept)
    pipeline = load_pipeline(
        args.model,
        post=detector.post,
        onnx_providers=_parse_providers(args.onnx_providers),
    )
    if pipeline.backend is not None and hasattr(pipeline.backend, "providers_in_use"):
        print(f"ONNX Runtime session providers: {list(pipeline.backend.providers_in_use)}")

    win = "ingredient-detection"
    last: Optional[FrameResult] = None
    source = FrameSource.open(video=args.video, webcam=args.webcam)
    try:
        for _, now, frame in source:
            result = detector.submit(lambda: pipeline.infer(frame), now)
            if result is not None:
                last = result
                for proposal in result.proposals:
                    _print_proposal(proposal)
                    if args.auto_accept:
                        detector.accept(proposal.label)
                        print(f"Accepted: {proposal.label}")

            if args.show:
                vis = draw_detections(frame, last.detections if last else [], catalog=catalog)
                cv2.imshow(win, vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            if args.max_frames and detector.frames_processed >= args.max_frames:
                break
    finally:
        source.release()
        if args.show:
            cv2.destroyAllWindows()

    print(f"Frames read: {source.frames_read}")
    print(f"Frames processed: {detector.frames_processed} (failed: {detector.frames_failed})")
    if detector.pacer is not None:
        print(f"Frames dropped: busy={detector.pacer.dropped_busy} interval={detector.pacer.dropped_interval}")
    print(f"Accepted ingredients: {sorted(detector.tracker.accepted)}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)
    return run(args)


if __name__ == "__main__":
    raise SystemExit(main())
