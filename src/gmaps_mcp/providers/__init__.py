from gmaps_mcp.providers.google_maps import GoogleMapsClient

__all__ = ["GoogleMapsClient"]
