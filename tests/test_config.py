import json
import tempfile
import unittest
from pathlib import Path

from detect_kit.config import DetectorConfig, detector_config_to_dict, load_detector_config
from detect_kit.decode import DecoderConfig


class TestDetectorConfig(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, payload) -> Path:
        p = self.dir / "detector.json"
        p.write_text(json.dumps(payload), encoding="utf-8")
        return p

    def test_defaults(self) -> None:
        cfg = DetectorConfig()
        self.assertEqual(cfg.input_size, 640)
        self.assertEqual(cfg.decoder.objectness_threshold, 0.3)
        self.assertEqual(cfg.decoder.confidence_threshold, 0.3)
        self.assertEqual(cfg.nms.iou_threshold, 0.3)
        self.assertEqual(cfg.nms.max_results, 10)

    def test_load_partial(self) -> None:
        cfg = load_detector_config(self._write({"input_size": 320, "confidence_threshold": 0.5, "max_results": 5}))
        self.assertEqual(cfg.input_size, 320)
        self.assertEqual(cfg.decoder.confidence_threshold, 0.5)
        self.assertEqual(cfg.decoder.objectness_threshold, 0.3)
        self.assertEqual(cfg.nms.max_results, 5)

    def test_round_trip_dict(self) -> None:
        payload = {
            "input_size": 416,
            "objectness_threshold": 0.25,
            "confidence_threshold": 0.4,
            "normalized_coords": True,
            "iou_threshold": 0.45,
            "max_results": 20,
        }
        cfg = load_detector_config(self._write(payload))
        self.assertEqual(detector_config_to_dict(cfg), payload)

    def test_unknown_key(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"conf": 0.3}))

    def test_wrong_types(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"input_size": 640.5}))
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"iou_threshold": True}))
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"normalized_coords": 1}))

    def test_out_of_range(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"confidence_threshold": 1.5}))
        with self.assertRaises(ValueError):
            load_detector_config(self._write({"input_size": 0}))

    def test_not_an_object(self) -> None:
        with self.assertRaises(ValueError):
            load_detector_config(self._write([1, 2]))

    def test_invalid_json(self) -> None:
        p = self.dir / "bad.json"
        p.write_text("{", encoding="utf-8")
        with self.assertRaises(ValueError):
            load_detector_config(p)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_detector_config(self.dir / "missing.json")

    def test_decoder_validation(self) -> None:
        with self.assertRaises(ValueError):
            DecoderConfig(objectness_threshold=-0.1)


if __name__ == "__main__":
    unittest.main()
