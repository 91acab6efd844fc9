import unittest

import numpy as np

from helpers import make_tensors
from ssdlite_kit.postprocess import SSDPostConfig, SSDPostprocessor
from ssdlite_kit.types import Detection, Rect

LABELS = ["background", "person", "dog"]

A = (0.0, 0.0, 0.5, 1.0)
B = (0.0, 0.0, 0.35, 1.0)  # IoU(A, B) = 0.7
C = (0.6, 0.6, 0.9, 0.9)
D = (0.5, 0.1, 0.8, 0.4)


class TestSSDPostprocessor(unittest.TestCase):
    def test_overlapping_candidate_is_suppressed(self) -> None:
        scores, boxes = make_tensors(
            [
                [0.05, 0.9, 0.0],
                [0.1, 0.8, 0.0],
                [0.6, 0.3, 0.0],
                [0.9, 0.0, 0.1],
            ],
            [A, B, C, D],
        )
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5, max_iou=0.5))
        detections = post.process(scores, boxes, LABELS)
        self.assertEqual(len(detections), 1)
        det = detections[0]
        self.assertEqual(det.label, "person")
        self.assertAlmostEqual(det.score, 0.9)
        self.assertTrue(np.allclose(det.as_xyxy(), A))

    def test_background_never_detected(self) -> None:
        scores, boxes = make_tensors([[0.99, 0.0, 0.0]], [A])
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        self.assertEqual(post.process(scores, boxes, LABELS), [])

    def test_score_threshold_boundary(self) -> None:
        scores, boxes = make_tensors(
            [
                [0.0, 0.5, 0.0],
                [0.0, 0.5 - 1e-6, 0.0],
            ],
            [A, C],
        )
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        detections = post.process(scores, boxes, LABELS)
        self.assertEqual(len(detections), 1)
        self.assertEqual(detections[0].score, 0.5)
        self.assertTrue(np.allclose(detections[0].as_xyxy(), A))

    def test_class_without_candidates_is_omitted(self) -> None:
        scores, boxes = make_tensors(
            [
                [0.0, 0.1, 0.95],
                [0.0, 0.2, 0.7],
            ],
            [A, C],
        )
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        detections = post.process(scores, boxes, LABELS)
        self.assertEqual([d.label for d in detections], ["dog", "dog"])

    def test_output_ordered_by_class_then_score(self) -> None:
        scores, boxes = make_tensors(
            [
                [0.0, 0.6, 0.7],
                [0.0, 0.9, 0.0],
                [0.0, 0.0, 0.95],
                [0.0, 0.75, 0.8],
            ],
            [A, C, D, (0.0, 0.0, 0.1, 0.1)],
        )
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5, max_iou=0.5))
        detections = post.process(scores, boxes, LABELS)
        self.assertEqual(
            [(d.label, d.score) for d in detections],
            [
                ("person", 0.9),
                ("person", 0.75),
                ("person", 0.6),
                ("dog", 0.95),
                ("dog", 0.8),
                ("dog", 0.7),
            ],
        )

    def test_same_box_in_two_classes_is_not_cross_suppressed(self) -> None:
        scores, boxes = make_tensors([[0.0, 0.8, 0.9]], [A])
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        detections = post.process(scores, boxes, LABELS)
        self.assertEqual([d.label for d in detections], ["person", "dog"])

    def test_repeated_calls_do_not_leak_state(self) -> None:
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        scores, boxes = make_tensors([[0.0, 0.9, 0.0], [0.0, 0.0, 0.8]], [A, C])
        first = post.process(scores, boxes, LABELS)
        self.assertEqual(len(post._candidates), 0)

        empty_scores, empty_boxes = make_tensors([[1.0, 0.0, 0.0]], [A])
        self.assertEqual(post.process(empty_scores, empty_boxes, LABELS), [])
        self.assertEqual(post.process(scores, boxes, LABELS), first)

    def test_transform_applied_to_kept_boxes(self) -> None:
        def halve(rect: Rect) -> Rect:
            return Rect(rect.x_min / 2, rect.y_min / 2, rect.x_max / 2, rect.y_max / 2)

        scores, boxes = make_tensors([[0.0, 0.9, 0.0]], [(0.0, 0.0, 1.0, 1.0)])
        post = SSDPostprocessor()
        detections = post.process(scores, boxes, LABELS, transform=halve)
        self.assertEqual(detections, [Detection(Rect(0.0, 0.0, 0.5, 0.5), "person", 0.9)])

    def test_only_passing_anchors_are_decoded(self) -> None:
        decoded = []

        def record(rect: Rect) -> Rect:
            decoded.append(rect)
            return rect

        scores, boxes = make_tensors(
            [
                [0.0, 0.9, 0.1],
                [0.0, 0.2, 0.3],
                [0.0, 0.4, 0.8],
                [0.0, 0.1, 0.0],
            ],
            [A, B, C, D],
        )
        post = SSDPostprocessor(SSDPostConfig(min_score=0.5))
        post.process(scores, boxes, LABELS, transform=record)
        # One decode for anchor 0 in class 1, one for anchor 2 in class 2.
        self.assertEqual(len(decoded), 2)
        self.assertTrue(np.allclose(decoded[0].as_xyxy(), A))
        self.assertTrue(np.allclose(decoded[1].as_xyxy(), C))

    def test_accepts_unbatched_tensors(self) -> None:
        scores, boxes = make_tensors([[0.0, 0.9, 0.0]], [A])
        post = SSDPostprocessor()
        self.assertEqual(len(post.process(scores[0], boxes[0], LABELS)), 1)

    def test_config_validation(self) -> None:
        with self.assertRaises(ValueError):
            SSDPostConfig(min_score=1.5)
        with self.assertRaises(ValueError):
            SSDPostConfig(max_iou=0.0)


if __name__ == "__main__":
    unittest.main()
