from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import List, Optional

import cv2

from .config import DetectorConfig, load_detector_config
from .errors import DetectKitError, InvalidImage
from .nms import NMSConfig
from .preprocess import read_image
from .reporting import append_jsonl, detection_record
from .runtime import DetectorPipeline, load_pipeline
from .visualize import draw_detections, format_label


logger = logging.getLogger("detect_kit.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="detect-kit", description="Run object detection and visualize boxes + labels.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--model", default="models/yolov5s.onnx", help="Path to a model (.onnx/.tflite/.torchscript).")
    parser.add_argument("--labels", default="models/labels.txt", help="Label file, one class name per line.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / tflite / torchscript.")
    parser.add_argument("--config", default=None, help="Optional detector config JSON.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (e.g., 640).")
    parser.add_argument("--conf", type=float, default=None, help="Objectness and confidence threshold.")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--max-results", type=int, default=None, help="Maximum detections per image.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output path (image or video) to save the visualization.")
    parser.add_argument("--jsonl", default=None, help="Append one JSON record per processed frame to this file.")
    parser.add_argument("--every", type=int, default=1, help="Process every Nth frame for video/webcam.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def resolve_config(args: argparse.Namespace) -> DetectorConfig:
    cfg = load_detector_config(args.config) if args.config else DetectorConfig()
    if args.imgsz is not None:
        if args.imgsz < 32:
            raise ValueError("--imgsz must be >= 32")
        cfg = replace(cfg, input_size=int(args.imgsz))
    if args.conf is not None:
        cfg = replace(
            cfg,
            decoder=replace(cfg.decoder, objectness_threshold=args.conf, confidence_threshold=args.conf),
        )
    if args.iou is not None or args.max_results is not None:
        cfg = replace(
            cfg,
            nms=NMSConfig(
                iou_threshold=cfg.nms.iou_threshold if args.iou is None else float(args.iou),
                max_results=cfg.nms.max_results if args.max_results is None else int(args.max_results),
            ),
        )
    return cfg


def _report(pipeline: DetectorPipeline, frame, source: str, args: argparse.Namespace):
    cycle = pipeline.run(frame)
    for det in cycle.detections:
        print(format_label(det), [round(v, 1) for v in det.as_xyxy()])
    if args.jsonl:
        append_jsonl(args.jsonl, detection_record(source, cycle.detections, timings=cycle.timings))
    return draw_detections(frame, cycle.detections)


def _run_image(pipeline: DetectorPipeline, args: argparse.Namespace) -> int:
    img = read_image(args.image)
    vis = _report(pipeline, img, args.image, args)
    if args.out:
        ok = cv2.imwrite(args.out, vis)
        if not ok:
            raise RuntimeError(f"Failed to write output image: {args.out}")

    if args.show:
        cv2.imshow("detections", vis)
        cv2.waitKey(0)
        cv2.destroyAllWindows()
    return 0


def _run_stream(pipeline: DetectorPipeline, args: argparse.Namespace) -> int:
    if args.every < 1:
        raise ValueError("--every must be >= 1")
    if args.max_frames < 0:
        raise ValueError("--max-frames must be >= 0")

    if args.video is not None:
        cap = cv2.VideoCapture(args.video)
        if not cap.isOpened():
            raise InvalidImage(f"Could not open video: {args.video}")
        source = args.video
    else:
        cam_index = int(args.webcam)
        cap = cv2.VideoCapture(cam_index)
        if not cap.isOpened():
            raise RuntimeError(f"Could not open webcam index: {cam_index}")
        source = f"webcam:{cam_index}"

    writer = None
    frame_idx = 0
    processed = 0

    try:
        while True:
            ok, frame = cap.read()
            if not ok or frame is None:
                break

            frame_idx += 1
            if (frame_idx - 1) % args.every != 0:
                continue

            vis = _report(pipeline, frame, f"{source}#{frame_idx}", args)

            if args.out and writer is None:
                fps = cap.get(cv2.CAP_PROP_FPS)
                if fps is None or fps <= 0:
                    fps = 30.0
                h, w = vis.shape[:2]
                fourcc = cv2.VideoWriter_fourcc(*"mp4v")
                writer = cv2.VideoWriter(args.out, fourcc, fps, (w, h))
                if not writer.isOpened():
                    raise RuntimeError(f"Failed to open video writer: {args.out}")

            if writer is not None:
                writer.write(vis)

            if args.show:
                cv2.imshow("detections", vis)
                key = cv2.waitKey(1) & 0xFF
                if key in (27, ord("q")):
                    break

            processed += 1
            if args.max_frames and processed >= args.max_frames:
                break
    finally:
        cap.release()
        if writer is not None:
            writer.release()
        if args.show:
            cv2.destroyAllWindows()

    logger.info("Processed %d frames from %s", processed, source)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    try:
        config = resolve_config(args)
        with load_pipeline(
            args.model,
            args.labels,
            backend=args.backend,
            config=config,
            onnx_providers=onnx_providers,
        ) as pipeline:
            if args.image is not None:
                return _run_image(pipeline, args)
            return _run_stream(pipeline, args)
    except (DetectKitError, ValueError, OSError, RuntimeError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
