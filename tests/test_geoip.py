"""
Tests for the City / ASN database service
"""

import logging
from unittest.mock import patch, MagicMock

import pytest
from maxminddb import InvalidDatabaseError
from prometheus_client import REGISTRY

from ipgeo_api.services.geoip import CityFacts, GeoDatabases, NetworkFacts, localized
from tests.conftest import FakeReader, asn_record, city_record

class TestLocalized:
    def test_exact_locale(self):
        assert localized({"en": "Germany", "de": "Deutschland"}, "de") == "Deutschland"

    def test_missing_locale_is_empty(self):
        assert localized({"en": "Germany"}, "pt-BR") == ""

    def test_no_names(self):
        assert localized(None, "en") == ""
        assert localized({}, "en") == ""

class TestQueryCity:
    """Test City lookups"""

    def test_full_record(self, databases):
        facts = databases.query_city("203.0.113.5")
        assert facts == CityFacts(
            city="Mountain View",
            region="California",
            country_code="US",
            country_name="United States",
            continent_code="NA",
            continent_name="North America",
            latitude=37.386,
            longitude=-122.0838,
            postal="94035",
        )

    def test_no_subdivisions_leaves_region_empty(self, databases):
        facts = databases.query_city("8.8.8.8")
        assert facts.region == ""
        assert facts.city == ""
        assert facts.country_code == "US"

    def test_first_subdivision_only(self):
        rec = city_record()
        rec.subdivisions = (
            MagicMock(names={"en": "England"}),
            MagicMock(names={"en": "Greater London"}),
        )
        dbs = GeoDatabases(FakeReader({"192.0.2.1": rec}), None)
        assert dbs.query_city("192.0.2.1").region == "England"

    def test_other_locale(self):
        rec = city_record(city="München", region="Bayern", country=("DE", "Deutschland"),
                          continent=("EU", "Europa"), locale="de")
        dbs = GeoDatabases(FakeReader({"192.0.2.1": rec}), None, locale="de")
        facts = dbs.query_city("192.0.2.1")
        assert facts.city == "München"
        assert facts.region == "Bayern"
        assert facts.country_name == "Deutschland"

    def test_locale_missing_from_record(self):
        dbs = GeoDatabases(FakeReader({"192.0.2.1": city_record()}), None, locale="ja")
        facts = dbs.query_city("192.0.2.1")
        assert facts.city == ""
        assert facts.country_name == ""
        # Codes do not depend on the locale
        assert facts.country_code == "US"

    def test_missing_values_become_zero(self):
        rec = city_record(country=(None, "United States"), continent=(None, "North America"),
                          latitude=None, longitude=None, postal=None)
        dbs = GeoDatabases(FakeReader({"192.0.2.1": rec}), None)
        facts = dbs.query_city("192.0.2.1")
        assert facts.country_code == ""
        assert facts.continent_code == ""
        assert facts.latitude == 0.0
        assert facts.longitude == 0.0
        assert facts.postal == ""

    def test_not_found_returns_none_and_warns(self, databases, caplog):
        before = REGISTRY.get_sample_value("ipgeo_lookup_errors_total", {"dataset": "city"}) or 0
        with caplog.at_level(logging.WARNING, logger="ipgeo.lookup"):
            assert databases.query_city("192.0.2.200") is None
        assert any(r.getMessage() == "Unable to lookup in City database" and r.ip == "192.0.2.200"
                   for r in caplog.records)
        after = REGISTRY.get_sample_value("ipgeo_lookup_errors_total", {"dataset": "city"})
        assert after == before + 1

    def test_database_error_returns_none(self):
        reader = MagicMock()
        reader.city.side_effect = InvalidDatabaseError("corrupt search tree")
        assert GeoDatabases(reader, None).query_city("192.0.2.1") is None

class TestQueryASN:
    """Test ASN lookups"""

    def test_found(self, databases):
        assert databases.query_asn("8.8.8.8") == NetworkFacts(asn=15169, organization="GOOGLE")

    def test_not_found_returns_none_and_warns(self, databases, caplog):
        with caplog.at_level(logging.WARNING, logger="ipgeo.lookup"):
            assert databases.query_asn("198.51.100.7") is None
        assert any(r.getMessage() == "Unable to lookup in ASN database" for r in caplog.records)

    def test_absent_database_is_silent(self, city_reader, caplog):
        dbs = GeoDatabases(city_reader, None)
        assert not dbs.asn_loaded
        with caplog.at_level(logging.DEBUG, logger="ipgeo.lookup"):
            assert dbs.query_asn("8.8.8.8") is None
        assert caplog.records == []

    def test_missing_values_become_zero(self):
        dbs = GeoDatabases(FakeReader(), FakeReader({"192.0.2.1": asn_record(None, None)}))
        assert dbs.query_asn("192.0.2.1") == NetworkFacts(asn=0, organization="")

    def test_wrong_database_type(self):
        reader = MagicMock()
        reader.asn.side_effect = TypeError("The asn method cannot be used with the GeoLite2-City database")
        assert GeoDatabases(FakeReader(), reader).query_asn("192.0.2.1") is None

class TestOpen:
    """Test opening the databases from disk"""

    def test_open_both(self):
        city, asn = MagicMock(), MagicMock()
        with patch("ipgeo_api.services.geoip.geoip2.database.Reader", side_effect=[city, asn]) as reader:
            dbs = GeoDatabases.open("/geo/GeoLite2-City.mmdb", "/geo/GeoLite2-ASN.mmdb", locale="fr")
        assert reader.call_args_list[0].args == ("/geo/GeoLite2-City.mmdb",)
        assert reader.call_args_list[1].args == ("/geo/GeoLite2-ASN.mmdb",)
        assert dbs.asn_loaded
        assert dbs.locale == "fr"
        assert REGISTRY.get_sample_value("ipgeo_geoip_loaded") == 1
        assert REGISTRY.get_sample_value("ipgeo_asn_loaded") == 1

    def test_missing_asn_is_degraded(self, caplog):
        city = MagicMock()
        with patch("ipgeo_api.services.geoip.geoip2.database.Reader",
                   side_effect=[city, FileNotFoundError("GeoLite2-ASN.mmdb")]):
            with caplog.at_level(logging.WARNING, logger="ipgeo.lookup"):
                dbs = GeoDatabases.open("/geo/GeoLite2-City.mmdb", "/geo/GeoLite2-ASN.mmdb")
        assert not dbs.asn_loaded
        assert REGISTRY.get_sample_value("ipgeo_asn_loaded") == 0
        assert any("Unable to open ASN database" in r.getMessage() for r in caplog.records)

    def test_missing_city_is_fatal(self):
        with patch("ipgeo_api.services.geoip.geoip2.database.Reader",
                   side_effect=FileNotFoundError("GeoLite2-City.mmdb")):
            with pytest.raises(FileNotFoundError):
                GeoDatabases.open("/geo/GeoLite2-City.mmdb", "/geo/GeoLite2-ASN.mmdb")

    def test_close(self, city_reader, asn_reader):
        GeoDatabases(city_reader, asn_reader).close()
        assert city_reader.closed and asn_reader.closed
