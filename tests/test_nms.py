import itertools
import unittest

import numpy as np

from detect_kit.nms import NMSConfig, iou, nms, suppress
from detect_kit.types import Detection


def det(label, conf, x1, y1, x2, y2, class_id=None) -> Detection:
    return Detection(label=label, confidence=conf, x1=x1, y1=y1, x2=x2, y2=y2, class_id=class_id)


class TestIoU(unittest.TestCase):
    def test_identical_box_is_one(self) -> None:
        a = det("car", 0.9, 10, 20, 110, 70)
        self.assertEqual(iou(a, a), 1.0)

    def test_disjoint_is_zero(self) -> None:
        a = det("car", 0.9, 0, 0, 10, 10)
        b = det("car", 0.9, 20, 20, 30, 30)
        self.assertEqual(iou(a, b), 0.0)

    def test_touching_edges_is_zero(self) -> None:
        a = det("car", 0.9, 0, 0, 10, 10)
        b = det("car", 0.9, 10, 0, 20, 10)
        self.assertEqual(iou(a, b), 0.0)

    def test_partial_overlap(self) -> None:
        a = det("car", 0.9, 0, 0, 10, 10)
        b = det("car", 0.9, 5, 0, 15, 10)
        # inter 50, union 150
        self.assertAlmostEqual(iou(a, b), 1.0 / 3.0)

    def test_degenerate_boxes_are_zero_not_nan(self) -> None:
        point = det("car", 0.9, 5, 5, 5, 5)
        line = det("car", 0.9, 0, 5, 10, 5)
        box = det("car", 0.9, 0, 0, 10, 10)
        self.assertEqual(iou(point, point), 0.0)
        self.assertEqual(iou(line, box), 0.0)
        self.assertEqual(iou(box, point), 0.0)


class TestSuppress(unittest.TestCase):
    def test_empty_input(self) -> None:
        self.assertEqual(suppress([]), [])

    def test_same_class_overlap_keeps_highest(self) -> None:
        low = det("car", 0.8, 105, 100, 205, 200)
        high = det("car", 0.9, 100, 100, 200, 200)
        self.assertGreater(iou(low, high), 0.3)
        self.assertEqual(suppress([low, high]), [high])

    def test_different_classes_never_suppress(self) -> None:
        a = det("car", 0.9, 100, 100, 200, 200)
        b = det("truck", 0.8, 100, 100, 200, 200)
        self.assertEqual(suppress([a, b]), [a, b])

    def test_single_detection_unchanged(self) -> None:
        only = det("car", 0.81, 270, 270, 370, 370, class_id=2)
        self.assertEqual(suppress([only]), [only])

    def test_overlap_at_threshold_is_kept(self) -> None:
        a = det("car", 0.9, 0, 0, 10, 10)
        b = det("car", 0.8, 5, 0, 15, 10)  # IoU = 1/3
        self.assertEqual(len(suppress([a, b], NMSConfig(iou_threshold=0.5))), 2)
        self.assertEqual(len(suppress([a, b], NMSConfig(iou_threshold=0.3))), 1)

    def test_suppressed_candidate_does_not_suppress_others(self) -> None:
        # b is removed by a; c overlaps b but not a, so c survives.
        a = det("car", 0.9, 0, 0, 10, 10)
        b = det("car", 0.8, 4, 0, 14, 10)
        c = det("car", 0.7, 9, 0, 19, 10)
        self.assertEqual(suppress([c, b, a]), [a, c])

    def test_cap_and_order(self) -> None:
        dets = [det("car", 0.3 + 0.01 * i, 100 * i, 0, 100 * i + 50, 50) for i in range(25)]
        out = suppress(dets, NMSConfig(iou_threshold=0.3, max_results=10))
        self.assertEqual(len(out), 10)
        confs = [d.confidence for d in out]
        self.assertEqual(confs, sorted(confs, reverse=True))
        self.assertAlmostEqual(out[0].confidence, 0.54)

    def test_ties_keep_input_order(self) -> None:
        a = det("car", 0.5, 0, 0, 10, 10)
        b = det("dog", 0.5, 0, 0, 10, 10)
        self.assertEqual(suppress([a, b]), [a, b])
        self.assertEqual(suppress([b, a]), [b, a])

    def test_max_results_zero(self) -> None:
        self.assertEqual(suppress([det("car", 0.9, 0, 0, 1, 1)], NMSConfig(max_results=0)), [])

    def test_random_properties(self) -> None:
        rng = np.random.default_rng(7)
        labels = ["a", "b", "c"]
        cfg = NMSConfig(iou_threshold=0.3, max_results=10)
        for _ in range(20):
            n = int(rng.integers(0, 60))
            dets = []
            for _ in range(n):
                x1, y1 = rng.uniform(0, 200, size=2)
                w, h = rng.uniform(0, 60, size=2)
                dets.append(det(labels[int(rng.integers(0, 3))], float(rng.uniform(0.3, 1.0)), x1, y1, x1 + w, y1 + h))
            out = suppress(dets, cfg)
            self.assertLessEqual(len(out), cfg.max_results)
            confs = [d.confidence for d in out]
            self.assertEqual(confs, sorted(confs, reverse=True))
            for a, b in itertools.combinations(out, 2):
                if a.label == b.label:
                    self.assertLessEqual(iou(a, b), cfg.iou_threshold)


class TestNMSIndices(unittest.TestCase):
    def test_returns_indices_in_score_order(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [1, 1, 11, 11], [50, 50, 60, 60]], dtype=np.float32)
        scores = np.array([0.6, 0.9, 0.7], dtype=np.float32)
        keep = nms(boxes, scores, ["x", "x", "x"], NMSConfig())
        self.assertEqual(keep.tolist(), [1, 2])

    def test_labels_none_groups_everything(self) -> None:
        boxes = np.array([[0, 0, 10, 10], [0, 0, 10, 10]], dtype=np.float32)
        scores = np.array([0.9, 0.8], dtype=np.float32)
        self.assertEqual(nms(boxes, scores, None, NMSConfig()).tolist(), [0])
        self.assertEqual(nms(boxes, scores, ["a", "b"], NMSConfig()).tolist(), [0, 1])

    def test_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            NMSConfig(iou_threshold=1.5)
        with self.assertRaises(ValueError):
            NMSConfig(max_results=-1)


if __name__ == "__main__":
    unittest.main()
