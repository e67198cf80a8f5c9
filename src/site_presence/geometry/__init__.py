from .engine import contains, haversine_distance, validate_shape
from .model import Circle, LatLng, Polygon, Shape

__all__ = [
    "Circle",
    "LatLng",
    "Polygon",
    "Shape",
    "contains",
    "haversine_distance",
    "validate_shape",
]
