from .geodesy import destination_point, haversine_km, path_length_km

__all__ = ["haversine_km", "destination_point", "path_length_km"]
