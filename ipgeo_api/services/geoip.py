"""
City and ASN lookups against MaxMind GeoLite2 databases
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import geoip2.database
from geoip2.errors import GeoIP2Error
from maxminddb import InvalidDatabaseError

from .prometheus_metrics import prometheus_metrics

logger = logging.getLogger("ipgeo.lookup")

# AddressNotFoundError is a GeoIP2Error; TypeError comes from asking a
# reader for a record type its database does not hold
LOOKUP_ERRORS = (GeoIP2Error, InvalidDatabaseError, ValueError, TypeError)

@dataclass(frozen=True)
class CityFacts:
    """Fields taken from a City database record"""
    city: str = ""
    region: str = ""
    country_code: str = ""
    country_name: str = ""
    continent_code: str = ""
    continent_name: str = ""
    latitude: float = 0.0
    longitude: float = 0.0
    postal: str = ""

@dataclass(frozen=True)
class NetworkFacts:
    """Fields taken from an ASN database record"""
    asn: int = 0
    organization: str = ""

def localized(names: Optional[Mapping[str, str]], locale: str) -> str:
    """Name for exactly ``locale``; no fallback to other languages."""
    if not names:
        return ""
    return names.get(locale) or ""

class GeoDatabases:
    """Read-only City and ASN readers shared by every request.

    The City reader is mandatory. The ASN reader may be ``None`` when its
    database failed to open; ASN lookups are then skipped for the lifetime
    of the process.
    """

    def __init__(self, city_reader: Any, asn_reader: Any = None, locale: str = "en"):
        self._city = city_reader
        self._asn = asn_reader
        self._locale = locale

    @property
    def locale(self) -> str:
        return self._locale

    @property
    def asn_loaded(self) -> bool:
        return self._asn is not None

    @classmethod
    def open(cls, city_path: str, asn_path: str, locale: str = "en") -> "GeoDatabases":
        """Open both databases. Errors opening the City database propagate."""
        city_reader = geoip2.database.Reader(city_path)
        prometheus_metrics.set_geoip_loaded(True)
        logger.info("City database loaded", extra={
            "component": "geoip",
            "event": "loaded",
            "db_path": city_path
        })

        asn_reader = None
        try:
            asn_reader = geoip2.database.Reader(asn_path)
        except (OSError, InvalidDatabaseError, ValueError) as e:
            logger.warning(
                "Unable to open ASN database, lookups will not have ASN or Organization info",
                extra={"component": "geoip", "db_path": asn_path, "error": str(e)}
            )
        else:
            logger.info("ASN database loaded", extra={
                "component": "geoip",
                "event": "loaded",
                "db_path": asn_path
            })
        prometheus_metrics.set_asn_loaded(asn_reader is not None)

        return cls(city_reader, asn_reader, locale)

    def query_city(self, ip: str) -> Optional[CityFacts]:
        """City fields for ``ip``, or None when the lookup fails"""
        try:
            rec = self._city.city(ip)
        except LOOKUP_ERRORS as e:
            logger.warning("Unable to lookup in City database", extra={
                "ip": ip, "error": str(e)
            })
            prometheus_metrics.increment_lookup_errors("city")
            return None

        locale = self._locale
        # Only the first subdivision is reported, even when there are several
        region = ""
        if rec.subdivisions:
            region = localized(rec.subdivisions[0].names, locale)

        return CityFacts(
            city=localized(rec.city.names, locale),
            region=region,
            country_code=rec.country.iso_code or "",
            country_name=localized(rec.country.names, locale),
            continent_code=rec.continent.code or "",
            continent_name=localized(rec.continent.names, locale),
            latitude=rec.location.latitude or 0.0,
            longitude=rec.location.longitude or 0.0,
            postal=rec.postal.code or "",
        )

    def query_asn(self, ip: str) -> Optional[NetworkFacts]:
        """ASN fields for ``ip``; None when the ASN database is absent or the lookup fails"""
        if self._asn is None:
            return None
        try:
            rec = self._asn.asn(ip)
        except LOOKUP_ERRORS as e:
            logger.warning("Unable to lookup in ASN database", extra={
                "ip": ip, "error": str(e)
            })
            prometheus_metrics.increment_lookup_errors("asn")
            return None

        return NetworkFacts(
            asn=rec.autonomous_system_number or 0,
            organization=rec.autonomous_system_organization or "",
        )

    def close(self):
        for reader in (self._city, self._asn):
            if reader is not None:
                reader.close()
