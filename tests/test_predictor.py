import importlib.util
import unittest

import numpy as np

from helpers import make_tensors
from ssdlite_kit.letterbox import PreprocessConfig
from ssdlite_kit.postprocess import SSDPostConfig
from ssdlite_kit.predictor import PredictorClosedError, SSDLitePredictor
from ssdlite_kit.types import ArrayInput, ImageInput

HAS_CV2 = importlib.util.find_spec("cv2") is not None

LABELS = ["background", "person", "dog"]


class FakeEngine:
    def __init__(self, scores: np.ndarray, boxes: np.ndarray) -> None:
        self.scores = scores
        self.boxes = boxes
        self.blobs = []
        self.close_calls = 0

    def infer(self, blob: np.ndarray):
        self.blobs.append(blob)
        return self.scores, self.boxes

    def close(self) -> None:
        self.close_calls += 1


def _engine() -> FakeEngine:
    scores, boxes = make_tensors(
        [
            [0.0, 0.9, 0.0],
            [0.0, 0.8, 0.0],
            [0.0, 0.0, 0.7],
        ],
        [(0.0, 0.0, 0.5, 1.0), (0.0, 0.0, 0.35, 1.0), (0.25, 0.25, 0.75, 0.75)],
    )
    return FakeEngine(scores, boxes)


def _predictor(engine: FakeEngine, **kwargs) -> SSDLitePredictor:
    return SSDLitePredictor(engine.infer, LABELS, backend=engine, backend_name="fake", **kwargs)


class TestSSDLitePredictor(unittest.TestCase):
    def test_array_input_is_fed_as_is(self) -> None:
        engine = _engine()
        predictor = _predictor(engine, post_cfg=SSDPostConfig(min_score=0.5))
        tensor = np.zeros((1, 3, 300, 300), dtype=np.float32)
        detections = predictor.predict(ArrayInput(tensor))

        self.assertIs(engine.blobs[0], tensor)
        self.assertEqual([(d.label, d.score) for d in detections], [("person", 0.9), ("dog", 0.7)])
        self.assertTrue(np.allclose(detections[1].as_xyxy(), (0.25, 0.25, 0.75, 0.75)))

    def test_default_thresholds(self) -> None:
        engine = _engine()
        predictor = _predictor(engine)
        self.assertEqual(predictor.post.cfg.min_score, 0.6)
        self.assertEqual(predictor.post.cfg.max_iou, 0.5)

    def test_requires_exactly_one_input(self) -> None:
        engine = _engine()
        predictor = _predictor(engine)
        tensor = ArrayInput(np.zeros((1, 3, 4, 4), dtype=np.float32))
        with self.assertRaises(ValueError):
            predictor.predict()
        with self.assertRaises(ValueError):
            predictor.predict(tensor, tensor)
        self.assertEqual(engine.blobs, [])

    def test_rejects_unknown_input_kind(self) -> None:
        engine = _engine()
        predictor = _predictor(engine)
        with self.assertRaises(ValueError):
            predictor.predict(np.zeros((1, 3, 4, 4), dtype=np.float32))
        with self.assertRaises(ValueError):
            predictor.predict("image.png")
        self.assertEqual(engine.blobs, [])

    def test_rejects_non_array_payload(self) -> None:
        predictor = _predictor(_engine())
        with self.assertRaises(TypeError):
            predictor.predict(ArrayInput([[0.0]]))
        with self.assertRaises(TypeError):
            predictor.predict(ImageInput("image.png"))

    def test_close_is_idempotent(self) -> None:
        engine = _engine()
        predictor = _predictor(engine)
        predictor.close()
        predictor.close()
        self.assertTrue(predictor.closed)
        self.assertEqual(engine.close_calls, 1)

    def test_predict_after_close_fails(self) -> None:
        predictor = _predictor(_engine())
        predictor.close()
        with self.assertRaises(PredictorClosedError):
            predictor.predict(ArrayInput(np.zeros((1, 3, 4, 4), dtype=np.float32)))

    def test_context_manager_closes_on_error(self) -> None:
        engine = _engine()
        with self.assertRaises(ValueError):
            with _predictor(engine) as predictor:
                predictor.predict()
        self.assertTrue(predictor.closed)
        self.assertEqual(engine.close_calls, 1)

    def test_plain_callable_without_backend(self) -> None:
        engine = _engine()
        predictor = SSDLitePredictor(engine.infer, LABELS)
        self.assertEqual(len(predictor(ArrayInput(np.zeros((1, 3, 4, 4), dtype=np.float32)))), 2)
        predictor.close()
        self.assertEqual(engine.close_calls, 0)

    @unittest.skipUnless(HAS_CV2, "OpenCV not installed")
    def test_image_input_maps_to_source_space(self) -> None:
        engine = _engine()
        predictor = _predictor(engine, post_cfg=SSDPostConfig(min_score=0.5))
        # 600x150 letterboxes into 300x300 with 112.5 px bars top and bottom.
        image = np.zeros((150, 600, 3), dtype=np.uint8)
        detections = predictor.predict(ImageInput(image))

        self.assertEqual(engine.blobs[0].shape, (1, 3, 300, 300))
        dog = detections[1]
        self.assertEqual(dog.label, "dog")
        x_min, y_min, x_max, y_max = dog.as_xyxy()
        self.assertAlmostEqual(x_min, 0.25)
        self.assertAlmostEqual(x_max, 0.75)
        self.assertAlmostEqual(y_min, (75.0 - 112.5) / 75.0)
        self.assertAlmostEqual(y_max, (225.0 - 112.5) / 75.0)

    @unittest.skipUnless(HAS_CV2, "OpenCV not installed")
    def test_image_input_preprocess_override(self) -> None:
        engine = _engine()
        predictor = _predictor(engine)
        image = np.zeros((64, 64, 3), dtype=np.uint8)
        predictor.predict(ImageInput(image, PreprocessConfig(input_size=(32, 32), channels_last=True)))
        self.assertEqual(engine.blobs[0].shape, (1, 32, 32, 3))


if __name__ == "__main__":
    unittest.main()
