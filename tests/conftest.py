# tests/conftest.py
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from geoip2.errors import AddressNotFoundError

from ipgeo_api.main import create_app
from ipgeo_api.services.geoip import GeoDatabases

def city_record(city="Mountain View", region="California", country=("US", "United States"),
                continent=("NA", "North America"), latitude=37.386, longitude=-122.0838,
                postal="94035", locale="en"):
    """Object shaped like geoip2.models.City"""
    subdivisions = ()
    if region is not None:
        subdivisions = (SimpleNamespace(names={locale: region}),)
    return SimpleNamespace(
        city=SimpleNamespace(names={locale: city} if city else {}),
        subdivisions=subdivisions,
        country=SimpleNamespace(iso_code=country[0], names={locale: country[1]}),
        continent=SimpleNamespace(code=continent[0], names={locale: continent[1]}),
        location=SimpleNamespace(latitude=latitude, longitude=longitude),
        postal=SimpleNamespace(code=postal),
    )

def asn_record(number=15169, organization="GOOGLE"):
    """Object shaped like geoip2.models.ASN"""
    return SimpleNamespace(
        autonomous_system_number=number,
        autonomous_system_organization=organization,
    )

class FakeReader:
    """Stands in for geoip2.database.Reader over an in-memory table"""

    def __init__(self, records=None):
        self.records = dict(records or {})
        self.queries = []
        self.closed = False

    def _get(self, ip):
        self.queries.append(ip)
        if ip not in self.records:
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        return self.records[ip]

    def city(self, ip):
        return self._get(ip)

    def asn(self, ip):
        return self._get(ip)

    def close(self):
        self.closed = True

@pytest.fixture
def city_reader():
    return FakeReader({
        "8.8.8.8": city_record(city="", region=None, latitude=37.751, longitude=-97.822, postal=""),
        "203.0.113.5": city_record(),
        "198.51.100.7": city_record(city="Paris", region="Île-de-France", country=("FR", "France"),
                                    continent=("EU", "Europe"), latitude=48.8566, longitude=2.3522,
                                    postal="75001"),
        "2001:db8::1": city_record(city="Berlin", region="Land Berlin", country=("DE", "Germany"),
                                   continent=("EU", "Europe"), latitude=52.5196, longitude=13.4069,
                                   postal="10117"),
    })

@pytest.fixture
def asn_reader():
    return FakeReader({
        "8.8.8.8": asn_record(),
        "203.0.113.5": asn_record(64496, "AT&T <Example> Services"),
    })

@pytest.fixture
def databases(city_reader, asn_reader):
    return GeoDatabases(city_reader, asn_reader, locale="en")

@pytest.fixture
def client(databases):
    return TestClient(create_app(databases))

@pytest.fixture
def client_without_asn(city_reader):
    return TestClient(create_app(GeoDatabases(city_reader, None, locale="en")))
