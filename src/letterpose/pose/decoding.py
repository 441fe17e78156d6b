# src/letterpose/pose/decoding.py
#
# Turns the raw OpenPose (COCO, 18 parts + background) network output into
# COCO-17 poses.
#
#   - decode_single_pose:    global maximum per heatmap (one person)
#   - decode_multiple_poses: heatmap peaks grouped into people with the
#                            part-affinity fields, then NMS + max detections
#
# `output` is always one image worth of network output, shape (C, H, W):
# channels 0..18 are heatmaps, 19..56 the PAF x/y pairs.

import logging
import math
from typing import List, Sequence, Tuple

import cv2 as cv
import numpy as np

from .types import Keypoint, Pose, PART_NAMES


logger = logging.getLogger(__name__)


# OpenPose COCO body parts (Background = 18)
BODY_PARTS = {
    "Nose": 0,
    "Neck": 1,
    "RShoulder": 2,
    "RElbow": 3,
    "RWrist": 4,
    "LShoulder": 5,
    "LElbow": 6,
    "LWrist": 7,
    "RHip": 8,
    "RKnee": 9,
    "RAnkle": 10,
    "LHip": 11,
    "LKnee": 12,
    "LAnkle": 13,
    "REye": 14,
    "LEye": 15,
    "REar": 16,
    "LEar": 17,
    "Background": 18,
}

NUM_PARTS = 18
NUM_HEATMAPS = 19

# OpenPose heatmap channel for each COCO-17 part, in PART_NAMES order.
COCO17_CHANNELS = (
    BODY_PARTS["Nose"],
    BODY_PARTS["LEye"],
    BODY_PARTS["REye"],
    BODY_PARTS["LEar"],
    BODY_PARTS["REar"],
    BODY_PARTS["LShoulder"],
    BODY_PARTS["RShoulder"],
    BODY_PARTS["LElbow"],
    BODY_PARTS["RElbow"],
    BODY_PARTS["LWrist"],
    BODY_PARTS["RWrist"],
    BODY_PARTS["LHip"],
    BODY_PARTS["RHip"],
    BODY_PARTS["LKnee"],
    BODY_PARTS["RKnee"],
    BODY_PARTS["LAnkle"],
    BODY_PARTS["RAnkle"],
)

# Limbs used for grouping, as (part_a, part_b), and their PAF (x, y) channels
# relative to the first PAF channel. The last two (shoulder -> ear) are
# redundant connections: they may attach parts but never start a person.
PAF_PAIRS = (
    (1, 2), (1, 5), (2, 3), (3, 4), (5, 6), (6, 7),
    (1, 8), (8, 9), (9, 10), (1, 11), (11, 12), (12, 13),
    (1, 0), (0, 14), (14, 16), (0, 15), (15, 17),
    (2, 16), (5, 17),
)
PAF_CHANNELS = (
    (12, 13), (20, 21), (14, 15), (16, 17), (22, 23), (24, 25),
    (0, 1), (2, 3), (4, 5), (6, 7), (8, 9), (10, 11),
    (28, 29), (30, 31), (34, 35), (32, 33), (36, 37),
    (18, 19), (26, 27),
)
NUM_PRIMARY_PAIRS = 17

# Limb scoring along the candidate segment
PAF_SAMPLES = 10
PAF_SCORE_THRESHOLD = 0.1
PAF_INLIER_RATIO = 0.7


def _to_frame(x: float, y: float, map_w: int, map_h: int, frame_w: int, frame_h: int) -> Tuple[float, float]:
    return (frame_w * x) / float(map_w), (frame_h * y) / float(map_h)


def decode_single_pose(output: np.ndarray, frame_w: int, frame_h: int) -> Pose:
    """
    Global maximum of each heatmap, one person. Every part is reported with the
    heatmap value as its score, low-confidence parts included.
    """
    map_h, map_w = output.shape[1], output.shape[2]

    keypoints: List[Keypoint] = []
    for name, channel in zip(PART_NAMES, COCO17_CHANNELS):
        heatmap = np.ascontiguousarray(output[channel], dtype=np.float32)
        _, conf, _, point = cv.minMaxLoc(heatmap)
        x, y = _to_frame(point[0], point[1], map_w, map_h, frame_w, frame_h)
        keypoints.append(Keypoint(part=name, x=x, y=y, score=float(conf)))

    score = sum(kp.score for kp in keypoints) / len(keypoints)
    return Pose(keypoints=tuple(keypoints), score=float(score))


def find_peaks(heatmap: np.ndarray, threshold: float) -> List[Tuple[int, int, float]]:
    """
    Local maxima of a (lightly smoothed) heatmap above `threshold`.
    Returns (x, y, score) in heatmap coordinates, row-major order.
    """
    heatmap = np.ascontiguousarray(heatmap, dtype=np.float32)
    smooth = cv.GaussianBlur(heatmap, (3, 3), 0, 0)
    dilated = cv.dilate(smooth, np.ones((3, 3), np.uint8))

    mask = (smooth == dilated) & (smooth > threshold)
    ys, xs = np.nonzero(mask)
    return [(int(x), int(y), float(heatmap[y, x])) for y, x in zip(ys, xs)]


def limb_score(
    paf_x: np.ndarray,
    paf_y: np.ndarray,
    a: Tuple[float, float],
    b: Tuple[float, float],
    samples: int = PAF_SAMPLES,
) -> float:
    """
    Average alignment of the PAF with the segment a -> b, or -1.0 when too few
    samples along the segment agree with it.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    norm = math.hypot(dx, dy)
    if norm == 0:
        return -1.0
    ux, uy = dx / norm, dy / norm

    h, w = paf_x.shape
    cols = np.clip(np.rint(np.linspace(a[0], b[0], samples)).astype(int), 0, w - 1)
    rows = np.clip(np.rint(np.linspace(a[1], b[1], samples)).astype(int), 0, h - 1)

    scores = paf_x[rows, cols] * ux + paf_y[rows, cols] * uy
    if np.count_nonzero(scores > PAF_SCORE_THRESHOLD) / float(samples) < PAF_INLIER_RATIO:
        return -1.0
    return float(scores.mean())


def group_people(output: np.ndarray, peaks: Sequence[Sequence[Tuple[int, int, float]]]) -> List[Tuple[List[int], float, List[Tuple[int, int, float]]]]:
    """
    Greedy PAF grouping.

    Returns a list of (part_ids, total_score, candidates) where part_ids[i] is an
    index into `candidates` for OpenPose part i, or -1.
    """
    candidates: List[Tuple[int, int, float]] = []
    ids_by_part: List[List[int]] = []
    for part_peaks in peaks:
        ids = []
        for peak in part_peaks:
            ids.append(len(candidates))
            candidates.append(peak)
        ids_by_part.append(ids)

    people: List[List[int]] = []
    totals: List[float] = []

    for k, ((part_a, part_b), (cx, cy)) in enumerate(zip(PAF_PAIRS, PAF_CHANNELS)):
        ids_a = ids_by_part[part_a]
        ids_b = ids_by_part[part_b]
        if not ids_a or not ids_b:
            continue

        paf_x = output[NUM_HEATMAPS + cx]
        paf_y = output[NUM_HEATMAPS + cy]

        connections = []
        for id_a in ids_a:
            ax, ay, _ = candidates[id_a]
            for id_b in ids_b:
                bx, by, _ = candidates[id_b]
                s = limb_score(paf_x, paf_y, (ax, ay), (bx, by))
                if s > 0:
                    connections.append((s, id_a, id_b))

        # strongest limbs first, each candidate used once per limb type
        connections.sort(key=lambda c: c[0], reverse=True)
        used_a = set()
        used_b = set()
        for s, id_a, id_b in connections:
            if id_a in used_a or id_b in used_b:
                continue
            used_a.add(id_a)
            used_b.add(id_b)

            for i, parts in enumerate(people):
                if parts[part_a] == id_a:
                    if parts[part_b] == -1:
                        parts[part_b] = id_b
                        totals[i] += candidates[id_b][2] + s
                    break
            else:
                if k < NUM_PRIMARY_PAIRS:
                    parts = [-1] * NUM_PARTS
                    parts[part_a] = id_a
                    parts[part_b] = id_b
                    people.append(parts)
                    totals.append(candidates[id_a][2] + candidates[id_b][2] + s)

    return [(parts, total, candidates) for parts, total in zip(people, totals)]


def _centroid(pose: Pose) -> Tuple[float, float]:
    n = len(pose.keypoints)
    return (
        sum(kp.x for kp in pose.keypoints) / n,
        sum(kp.y for kp in pose.keypoints) / n,
    )


def suppress_overlapping(poses: Sequence[Pose], nms_radius: float, max_poses: int) -> List[Pose]:
    """Keep the best poses whose centroids are farther than nms_radius apart."""
    kept: List[Pose] = []
    centers: List[Tuple[float, float]] = []

    for pose in sorted(poses, key=lambda p: p.score, reverse=True):
        if len(kept) >= max_poses:
            break
        cx, cy = _centroid(pose)
        if any(math.hypot(cx - kx, cy - ky) <= nms_radius for kx, ky in centers):
            continue
        kept.append(pose)
        centers.append((cx, cy))

    return kept


def decode_multiple_poses(
    output: np.ndarray,
    frame_w: int,
    frame_h: int,
    max_pose_detections: int = 5,
    min_part_confidence: float = 0.1,
    nms_radius: float = 30.0,
) -> List[Pose]:
    map_h, map_w = output.shape[1], output.shape[2]

    peaks = [find_peaks(output[i], min_part_confidence) for i in range(NUM_PARTS)]
    people = group_people(output, peaks)

    poses: List[Pose] = []
    for parts, _total, candidates in people:
        keypoints = []
        for name, channel in zip(PART_NAMES, COCO17_CHANNELS):
            cid = parts[channel]
            if cid < 0:
                continue
            px, py, score = candidates[cid]
            x, y = _to_frame(px, py, map_w, map_h, frame_w, frame_h)
            keypoints.append(Keypoint(part=name, x=x, y=y, score=score))

        # neck-only groups have nothing to report in COCO-17
        if not keypoints:
            continue
        score = sum(kp.score for kp in keypoints) / len(PART_NAMES)
        poses.append(Pose(keypoints=tuple(keypoints), score=float(score)))

    logger.debug("grouped %d people, %d with COCO-17 parts", len(people), len(poses))
    return suppress_overlapping(poses, nms_radius, max_pose_detections)
