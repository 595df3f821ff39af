import unittest

from detect_kit.mapping import clip_to_image, map_to_original
from detect_kit.types import Detection


class TestMapToOriginal(unittest.TestCase):
    def test_rescales_each_axis(self) -> None:
        det = Detection("car", 0.81, 270, 270, 370, 370, class_id=2)
        (out,) = map_to_original([det], 640, 1280, 960)
        self.assertEqual(out.as_xyxy(), (540.0, 405.0, 740.0, 555.0))
        self.assertEqual(out.label, "car")
        self.assertEqual(out.class_id, 2)
        self.assertEqual(out.confidence, 0.81)

    def test_same_size_is_identity(self) -> None:
        dets = [Detection("a", 0.5, -3.5, 1.25, 600.75, 641.0), Detection("b", 0.4, 0, 0, 1, 1)]
        self.assertEqual(map_to_original(dets, 640, 640, 640), dets)

    def test_returns_new_instances(self) -> None:
        det = Detection("car", 0.9, 10, 10, 20, 20)
        (out,) = map_to_original([det], 100, 200, 200)
        self.assertEqual(det.as_xyxy(), (10, 10, 20, 20))
        self.assertEqual(out.as_xyxy(), (20.0, 20.0, 40.0, 40.0))

    def test_no_clamping(self) -> None:
        det = Detection("car", 0.9, -10, -10, 700, 700)
        (out,) = map_to_original([det], 640, 320, 320)
        self.assertEqual(out.as_xyxy(), (-5.0, -5.0, 350.0, 350.0))

    def test_empty(self) -> None:
        self.assertEqual(map_to_original([], 640, 100, 100), [])

    def test_invalid_input_size(self) -> None:
        with self.assertRaises(ValueError):
            map_to_original([], 0, 100, 100)


class TestDetectionGeometry(unittest.TestCase):
    def test_area_and_size(self) -> None:
        det = Detection("car", 0.9, 10, 20, 40, 60)
        self.assertEqual((det.width, det.height, det.area), (30, 40, 1200))
        self.assertEqual(Detection("car", 0.9, 10, 10, 5, 20).area, 0.0)


class TestClipToImage(unittest.TestCase):
    def test_clip(self) -> None:
        det = Detection("car", 0.9, -5, 10, 350, 400, class_id=1)
        out = clip_to_image(det, 320, 240)
        self.assertEqual(out.as_xyxy(), (0.0, 10.0, 320.0, 240.0))
        self.assertEqual(out.class_id, 1)


if __name__ == "__main__":
    unittest.main()
