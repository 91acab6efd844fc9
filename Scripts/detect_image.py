import argparse
import logging

import cv2

from ssdlite_kit import (
    ImageInput,
    PreprocessConfig,
    SSDPostConfig,
    draw_detections,
    load_predictor,
    load_predictor_from_profile,
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run SSD Lite detection and print / visualize detections.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")
    parser.add_argument("--profile", default=None, help="JSON predictor profile (overrides --model/--labels).")
    parser.add_argument("--model", default="models/ssdlite.onnx", help="Path to an SSD Lite model (.onnx/.pt).")
    parser.add_argument("--labels", default="models/labels.txt", help="Path to the class label table.")
    parser.add_argument("--imgsz", type=int, default=None, help="Model input size (square); defaults to the model's.")
    parser.add_argument(
        "--aspect-mode",
        default="scale_to_fit",
        choices=("scale_to_fit", "aspect_fill", "none"),
        help="How non-square images are fitted into the model input.",
    )
    parser.add_argument("--min-score", type=float, default=0.6, help="Minimum candidate score.")
    parser.add_argument("--max-iou", type=float, default=0.5, help="Maximum IoU between kept boxes of a class.")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / torchscript.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--show", action="store_true", help="Show a window with visualized detections.")
    parser.add_argument("--out", default=None, help="Optional output image path for the visualization.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    if args.profile:
        predictor = load_predictor_from_profile(args.profile, onnx_providers=onnx_providers)
    else:
        predictor = load_predictor(
            args.model,
            args.labels,
            backend=args.backend,
            post_cfg=SSDPostConfig(min_score=args.min_score, max_iou=args.max_iou),
            preprocess=PreprocessConfig(
                input_size=(int(args.imgsz), int(args.imgsz)) if args.imgsz else None,
                aspect_mode=args.aspect_mode,
            ),
            onnx_providers=onnx_providers,
        )

    with predictor:
        if args.image is not None:
            img = cv2.imread(args.image)
            if img is None:
                raise FileNotFoundError(f"Could not read image at path: {args.image}")

            detections = predictor.predict(ImageInput(img))
            for det in detections:
                print(det.label, f"{det.score:.3f}", det.as_xyxy())

            vis = draw_detections(img, detections)
            if args.out:
                if not cv2.imwrite(args.out, vis):
                    raise RuntimeError(f"Failed to write output image: {args.out}")
                print(f"wrote {args.out}")
            if args.show:
                cv2.imshow("ssdlite", vis)
                cv2.waitKey(0)
                cv2.destroyAllWindows()
            return 0

        cap = cv2.VideoCapture(args.video if args.video is not None else int(args.webcam))
        if not cap.isOpened():
            raise RuntimeError("Could not open video source")
        frames = 0
        try:
            while True:
                ok, frame = cap.read()
                if not ok or frame is None:
                    break
                frames += 1
                detections = predictor.predict(ImageInput(frame))
                print(f"frame={frames} detections={len(detections)}")
                if args.show:
                    cv2.imshow("ssdlite", draw_detections(frame, detections))
                    if cv2.waitKey(1) & 0xFF == ord("q"):
                        break
                if args.max_frames and frames >= args.max_frames:
                    break
        finally:
            cap.release()
            if args.show:
                cv2.destroyAllWindows()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
