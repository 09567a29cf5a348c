"""IP geolocation lookup service."""
