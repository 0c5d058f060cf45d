"""Geofence evaluation service."""
import math

from checkin.models.location import AccuracyLevel, ClassGeofence, LocationCheck

class GeofenceService:
    """Distance and threshold math for location check-ins. Stateless."""

    EARTH_RADIUS_METERS = 6371000

    # Upper bounds (meters, inclusive) of each accuracy band
    EXCELLENT_ACCURACY = 5
    GOOD_ACCURACY = 10
    FAIR_ACCURACY = 20

    @staticmethod
    def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        """Calculate distance between two GPS points in meters."""
        R = GeofenceService.EARTH_RADIUS_METERS

        lat1_rad = math.radians(lat1)
        lat2_rad = math.radians(lat2)
        delta_lat = math.radians(lat2 - lat1)
        delta_lon = math.radians(lon2 - lon1)

        a = (math.sin(delta_lat/2) ** 2 +
             math.cos(lat1_rad) * math.cos(lat2_rad) *
             math.sin(delta_lon/2) ** 2)
        c = 2 * math.atan2(math.sqrt(a), math.sqrt(1-a))

        return R * c

    @staticmethod
    def distance_meters(a, b) -> float:
        """Great-circle distance between two objects with latitude/longitude."""
        return GeofenceService.calculate_distance(
            a.latitude, a.longitude,
            b.latitude, b.longitude
        )

    @staticmethod
    def within_geofence(point, geofence: ClassGeofence) -> bool:
        """True when the point lies inside the circle; the boundary counts as inside."""
        return GeofenceService.distance_meters(point, geofence) <= geofence.radius_meters

    @staticmethod
    def accuracy_level(accuracy_meters: float) -> AccuracyLevel:
        """Classify a device-reported accuracy radius."""
        if accuracy_meters <= GeofenceService.EXCELLENT_ACCURACY:
            return AccuracyLevel.EXCELLENT
        if accuracy_meters <= GeofenceService.GOOD_ACCURACY:
            return AccuracyLevel.GOOD
        if accuracy_meters <= GeofenceService.FAIR_ACCURACY:
            return AccuracyLevel.FAIR
        return AccuracyLevel.POOR

    @staticmethod
    def evaluate_location(point, geofence: ClassGeofence) -> LocationCheck:
        """
        Evaluate a location fix for attendance.

        The fix counts as evidence only when it is inside the geofence and
        its accuracy is not poor; a poor fix near the boundary cannot tell
        inside from outside.
        """
        distance = GeofenceService.distance_meters(point, geofence)
        if not math.isfinite(distance):
            raise ValueError("Location coordinates must be finite numbers")
        inside = distance <= geofence.radius_meters
        accuracy = GeofenceService.accuracy_level(getattr(point, 'accuracy', 0.0) or 0.0)

        if not inside:
            message = (
                f"You are {round(distance)}m away from the classroom. "
                f"Please be within {geofence.radius_meters:g}m to check in."
            )
        elif accuracy == AccuracyLevel.POOR:
            message = "Location accuracy is poor. Please try again in a clearer area."
        else:
            message = "Location verified successfully."

        return LocationCheck(
            distance_meters=distance,
            inside=inside,
            accuracy_level=accuracy,
            satisfied=inside and accuracy != AccuracyLevel.POOR,
            message=message
        )
