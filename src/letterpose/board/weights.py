from typing import Optional


def map_range(value: float, in_min: float, in_max: float, out_min: float, out_max: float) -> float:
    return (value - in_min) * (out_max - out_min) / (in_max - in_min) + out_min


def map_weight(distance: float, threshold_radius: float, max_weight: float) -> Optional[float]:
    """
    Weight for a body part `distance` px from a letter: max_weight when touching,
    falling linearly to 0 at the threshold radius. None beyond the radius.
    """
    if distance > threshold_radius:
        return None
    distance = max(0.0, float(distance))
    return map_range(distance, threshold_radius, 0.0, 0.0, max_weight)


def weight_to_thickness(weight: float, max_weight: float, min_thickness: int = 1, max_thickness: int = 6) -> int:
    """OpenCV stroke thickness for a weight in [0, max_weight]."""
    t = max(0.0, min(1.0, float(weight) / float(max_weight))) if max_weight > 0 else 0.0
    return int(round(min_thickness + t * (max_thickness - min_thickness)))
