import unittest

import numpy as np

from detect_kit.backends.onnxruntime_backend import OnnxRuntimeBackend
from detect_kit.catalog import ClassCatalog
from detect_kit.postprocess import YoloPostConfig, YoloPostprocessor
from detect_kit.runtime import DetectionPipeline, load_pipeline
from detect_kit.tensor import MalformedTensorError, TensorLayout


class TestDetectionPipeline(unittest.TestCase):
    def setUp(self) -> None:
        self.blobs = []

        def infer(blob: np.ndarray) -> np.ndarray:
            self.blobs.append(blob)
            out = np.zeros((1, 6, 16), dtype=np.float32)
            out[0, 0:4, 3] = [320, 320, 64, 64]
            out[0, 5, 3] = 0.9
            return out

        post = YoloPostprocessor(
            YoloPostConfig(conf_threshold=0.25),
            catalog=ClassCatalog.from_labels(["person", "apple"]),
            layout=TensorLayout(num_classes=2, num_boxes=16),
        )
        self.pipeline = DetectionPipeline(infer, post)

    def test_preprocess_blob(self) -> None:
        image = np.zeros((640, 640, 3), dtype=np.uint8)
        image[:, :, 0] = 255  # blue in BGR
        blob = self.pipeline.preprocess(image)
        self.assertEqual(blob.shape, (1, 3, 640, 640))
        self.assertEqual(blob.dtype, np.float32)
        # RGB order: blue ends up in the last channel
        self.assertEqual(float(blob[0, 2, 0, 0]), 1.0)
        self.assertEqual(float(blob[0, 0, 0, 0]), 0.0)

    def test_call_runs_inference_and_postprocess(self) -> None:
        dets = self.pipeline(np.zeros((640, 640, 3), dtype=np.uint8))
        self.assertEqual(len(self.blobs), 1)
        self.assertEqual([d.class_label for d in dets], ["apple"])
        self.assertAlmostEqual(dets[0].box.x, 0.45)

    def test_rejects_non_image(self) -> None:
        with self.assertRaises(ValueError):
            self.pipeline.preprocess(np.zeros((640, 640), dtype=np.uint8))
        with self.assertRaises(TypeError):
            self.pipeline.preprocess(None)

    def test_load_pipeline_requires_onnx(self) -> None:
        with self.assertRaises(ValueError):
            load_pipeline("Models/detector.engine")


class _IO:
    def __init__(self, name, shape):
        self.name = name
        self.shape = shape


class _FakeSession:
    def __init__(self, output_shape, result):
        self.output_shape = output_shape
        self.result = result
        self.calls = []

    def get_inputs(self):
        return [_IO("images", [1, 3, 640, 640])]

    def get_outputs(self):
        return [_IO("output0", self.output_shape), _IO("aux", [1, 32, 160, 160])]

    def get_providers(self):
        return ["CPUExecutionProvider"]

    def run(self, names, feeds):
        self.calls.append((names, sorted(feeds)))
        return [self.result]


class TestOnnxRuntimeBackend(unittest.TestCase):
    def setUp(self) -> None:
        self.layout = TensorLayout(num_classes=2, num_boxes=16)

    def test_infer_returns_checked_output(self) -> None:
        session = _FakeSession(["batch", 6, 16], np.zeros((1, 6, 16), dtype=np.float32))
        backend = OnnxRuntimeBackend(session, self.layout)
        out = backend.infer(np.zeros((1, 3, 640, 640), dtype=np.float32))
        self.assertEqual(out.shape, (1, 6, 16))
        self.assertEqual(session.calls, [(["output0"], ["images"])])
        self.assertEqual(backend.providers_in_use, ("CPUExecutionProvider",))

    def test_declared_output_must_match_layout(self) -> None:
        # an 80-class export loaded against a 2-class catalog
        session = _FakeSession([1, 84, 8400], np.zeros((1, 84, 8400), dtype=np.float32))
        with self.assertRaises(MalformedTensorError):
            OnnxRuntimeBackend(session, self.layout)

    def test_returned_output_must_match_layout(self) -> None:
        session = _FakeSession(["batch", "attrs", "anchors"], np.zeros((1, 6, 15), dtype=np.float32))
        backend = OnnxRuntimeBackend(session, self.layout)
        with self.assertRaises(MalformedTensorError):
            backend.infer(np.zeros((1, 3, 640, 640), dtype=np.float32))

    def test_named_output(self) -> None:
        session = _FakeSession([1, 6, 16], np.zeros((1, 6, 16), dtype=np.float32))
        with self.assertRaises(ValueError):
            OnnxRuntimeBackend(session, self.layout, output_name="missing")
        with self.assertRaises(MalformedTensorError):
            OnnxRuntimeBackend(session, self.layout, output_name="aux")


if __name__ == "__main__":
    unittest.main()
