"""
Tests for the request builder

Tests cover:
- Probe limit clamping and forced polling mode
- Per-type option defaults and fallbacks
- Location parsing from strings, lists and legacy mappings
- HTTP URL targets and public-target checks
"""

import pytest

from gpmeasure.errors import ValidationError
from gpmeasure.models import LocationSpec
from gpmeasure.request import build_request, check_public_target, parse_http_target, parse_locations

ALL_TYPES = ["ping", "traceroute", "dns", "mtr", "http"]


# ===== Limit and Payload Tests =====

class TestLimitAndPayload:
    """Tests for limit clamping and the submitted payload"""

    @pytest.mark.parametrize("limit, expected", [
        (None, 3),
        (0, 1),
        (-5, 1),
        (1, 1),
        (42, 42),
        (500, 500),
        (1000, 500),
        ("7", 7),
        ("lots", 3),
        (float("inf"), 3),
        (float("-inf"), 3),
        (float("nan"), 3),
    ])
    def test_limit_clamped(self, limit, expected):
        """Limits are clamped to [1, 500] and default to 3"""
        request = build_request("ping", "example.com", limit=limit)
        assert request.limit == expected
        assert request.to_payload()["limit"] == expected

    @pytest.mark.parametrize("mtype", ALL_TYPES)
    def test_in_progress_updates_forced_off(self, mtype):
        """Every payload disables streaming updates"""
        payload = build_request(mtype, "example.com", "US", 600).to_payload()
        assert payload["inProgressUpdates"] is False
        assert 1 <= payload["limit"] <= 500
        assert payload["type"] == mtype
        assert payload["target"] == "example.com"

    def test_locations_in_payload(self):
        """Locations serialize as magic objects"""
        payload = build_request("ping", "example.com", ["US", "Europe"]).to_payload()
        assert payload["locations"] == [{"magic": "US"}, {"magic": "Europe"}]

    def test_no_locations_key_when_absent(self):
        """Omitted locations are left to the API"""
        assert "locations" not in build_request("ping", "example.com").to_payload()

    def test_reuse_previous_measurement(self):
        """A prior measurement id replaces the location list"""
        payload = build_request("ping", "example.com", reuse_measurement_id="abc123").to_payload()
        assert payload["locations"] == "abc123"
        assert "limit" not in payload

    def test_type_is_case_insensitive(self):
        """Measurement type is normalized"""
        assert build_request("PING", "example.com").type == "ping"


# ===== Validation Tests =====

class TestValidation:
    """Tests for the inputs that are rejected"""

    @pytest.mark.parametrize("target", ["", "   ", None])
    def test_empty_target(self, target):
        """Empty targets are rejected"""
        with pytest.raises(ValidationError):
            build_request("ping", target)

    def test_unknown_type(self):
        """Unknown types are rejected"""
        with pytest.raises(ValidationError, match="Unknown measurement type"):
            build_request("smtp", "example.com")

    def test_other_bad_inputs_are_defaulted(self):
        """Bad options fall back instead of failing"""
        request = build_request("mtr", "example.com", limit="x", packets="many", protocol="carrier-pigeon", port="http")
        assert request.limit == 3
        assert request.options == {"protocol": "ICMP", "port": 80, "packets": 3}

    def test_target_is_trimmed(self):
        """Whitespace around the target is dropped"""
        assert build_request("ping", "  example.com ").target == "example.com"


# ===== Option Default Tests =====

class TestOptionDefaults:
    """Tests for per-type option defaults"""

    def test_ping(self):
        """Ping defaults to 3 packets"""
        assert build_request("ping", "example.com").options == {"packets": 3}

    @pytest.mark.parametrize("packets, expected", [(0, 1), (16, 16), (99, 16), (5, 5)])
    def test_packets_clamped(self, packets, expected):
        """Packet counts stay within 1-16"""
        assert build_request("ping", "example.com", packets=packets).options["packets"] == expected
        assert build_request("mtr", "example.com", packets=packets).options["packets"] == expected

    def test_infinite_numbers_are_defaulted(self):
        """Non-finite option values fall back like any other bad input"""
        options = build_request("mtr", "example.com", packets=float("inf"), port=float("-inf")).options
        assert options["packets"] == 3
        assert options["port"] == 80

    def test_traceroute(self):
        """Traceroute defaults to ICMP on port 80"""
        assert build_request("traceroute", "example.com").options == {"protocol": "ICMP", "port": 80}

    def test_traceroute_protocol_normalized(self):
        """Protocols are matched case-insensitively"""
        options = build_request("traceroute", "example.com", protocol="tcp", port=443).options
        assert options == {"protocol": "TCP", "port": 443}

    def test_mtr(self):
        """MTR defaults to ICMP, port 80, 3 packets"""
        assert build_request("mtr", "example.com").options == {"protocol": "ICMP", "port": 80, "packets": 3}

    def test_dns(self):
        """DNS defaults to an A query over UDP/53 without trace"""
        assert build_request("dns", "example.com").options == {
            "query": {"type": "A"},
            "protocol": "UDP",
            "port": 53,
            "trace": False,
        }

    def test_dns_overrides(self):
        """DNS query type, resolver and trace are passed through"""
        options = build_request("dns", "example.com", query_type="mx", resolver="1.1.1.1", trace=True).options
        assert options["query"] == {"type": "MX"}
        assert options["resolver"] == "1.1.1.1"
        assert options["trace"] is True

    def test_dns_unknown_query_type(self):
        """Unknown query types fall back to A"""
        assert build_request("dns", "example.com", query_type="BOGUS").options["query"] == {"type": "A"}

    def test_http(self):
        """HTTP defaults to HEAD over HTTPS/443"""
        assert build_request("http", "example.com").options == {
            "request": {"method": "HEAD"},
            "protocol": "HTTPS",
            "port": 443,
        }

    def test_http_plain_port(self):
        """Plain HTTP defaults to port 80"""
        options = build_request("http", "example.com", protocol="http").options
        assert options["protocol"] == "HTTP"
        assert options["port"] == 80

    def test_http_request_fields(self):
        """Method, path, query, host and headers nest under request"""
        options = build_request(
            "http", "example.com",
            method="get", path="/health", query="v=1", host="api.example.com",
            headers={"Accept": "text/plain"},
        ).options
        assert options["request"] == {
            "method": "GET",
            "path": "/health",
            "query": "v=1",
            "host": "api.example.com",
            "headers": {"Accept": "text/plain"},
        }

    def test_http_unknown_method(self):
        """Unsupported methods fall back to HEAD"""
        assert build_request("http", "example.com", method="DELETE").options["request"]["method"] == "HEAD"

    @pytest.mark.parametrize("version, present", [(4, True), (6, True), ("6", True), (5, False), ("x", False), (float("inf"), False)])
    def test_ip_version(self, version, present):
        """Only IPv4/IPv6 are passed through"""
        options = build_request("ping", "example.com", ip_version=version).options
        assert ("ipVersion" in options) is present


# ===== HTTP Target Tests =====

class TestHttpTargets:
    """Tests for URL targets"""

    def test_parse_http_target(self):
        """URLs split into host, protocol, path and query"""
        assert parse_http_target("https://example.com/a/b?x=1") == {
            "host": "example.com",
            "protocol": "HTTPS",
            "path": "/a/b",
            "query": "x=1",
        }

    def test_bare_host(self):
        """Bare hosts come back unchanged"""
        assert parse_http_target("example.com")["host"] == "example.com"
        assert parse_http_target("example.com")["protocol"] is None

    def test_url_target_lifts_options(self):
        """A URL target is reduced to its host"""
        request = build_request("http", "http://example.com/status?full=1")
        assert request.target == "example.com"
        assert request.options["protocol"] == "HTTP"
        assert request.options["port"] == 80
        assert request.options["request"]["path"] == "/status"
        assert request.options["request"]["query"] == "full=1"

    def test_explicit_options_win(self):
        """Explicit options take precedence over URL parts"""
        request = build_request("http", "http://example.com/status", protocol="HTTPS", path="/other")
        assert request.options["protocol"] == "HTTPS"
        assert request.options["request"]["path"] == "/other"


# ===== Location Parsing Tests =====

class TestParseLocations:
    """Tests for parse_locations"""

    def test_list_of_strings(self):
        assert parse_locations(["US", "EU"]) == [LocationSpec("US"), LocationSpec("EU")]

    def test_comma_string(self):
        assert parse_locations("US,EU") == [LocationSpec("US"), LocationSpec("EU")]

    def test_missing_and_empty(self):
        """None and empty input yield None"""
        assert parse_locations(None) is None
        assert parse_locations("") is None
        assert parse_locations("   ") is None
        assert parse_locations([]) is None

    def test_json_array_string(self):
        assert parse_locations('["US", "EU"]') == [LocationSpec("US"), LocationSpec("EU")]

    def test_json_array_of_objects(self):
        assert parse_locations('[{"magic": "AS13335"}, {"country": "DE"}]') == [
            LocationSpec("AS13335"),
            LocationSpec("DE"),
        ]

    def test_single_value(self):
        assert parse_locations("datacenter-network+US") == [LocationSpec("datacenter-network+US")]

    def test_comma_string_trimmed(self):
        """Entries are trimmed and blanks dropped"""
        assert parse_locations(" US , , Europe ") == [LocationSpec("US"), LocationSpec("Europe")]

    def test_no_usable_entries(self):
        """A string with no usable entries is used whole"""
        assert parse_locations(",") == [LocationSpec(",")]

    def test_malformed_json_falls_back_to_split(self):
        assert parse_locations('["US", "EU"') == [LocationSpec('["US"'), LocationSpec('"EU"')]

    def test_magic_mappings(self):
        assert parse_locations([{"magic": "aws", "limit": 2}]) == [LocationSpec("aws", limit=2)]

    def test_legacy_mappings(self):
        """Structured fields are joined with +"""
        assert parse_locations([
            {"country": "DE", "asn": 3320},
            {"continent": "EU", "tags": ["datacenter-network"]},
        ]) == [
            LocationSpec("DE+AS3320"),
            LocationSpec("EU+datacenter-network"),
        ]

    def test_empty_mapping_dropped(self):
        assert parse_locations([{}, "US"]) == [LocationSpec("US")]

    def test_never_raises(self):
        """Unexpected values are used verbatim"""
        assert parse_locations(42) == [LocationSpec("42")]

    def test_infinite_limit_is_dropped(self):
        """JSON 1e999 decodes to infinity; the limit falls back to none"""
        assert parse_locations('[{"magic": "US", "limit": 1e999}]') == [LocationSpec("US")]


# ===== Public Target Tests =====

class TestPublicTarget:
    """Tests for check_public_target"""

    @pytest.mark.parametrize("target", [
        "localhost",
        "api.localhost",
        "127.0.0.1",
        "10.1.2.3",
        "172.16.0.1",
        "192.168.1.1",
        "169.254.10.10",
        "::1",
        "[::1]:8080",
        "fd00::1",
        "fe80::1",
        "192.168.1.1:443",
    ])
    def test_rejected(self, target):
        with pytest.raises(ValidationError):
            check_public_target(target)

    @pytest.mark.parametrize("target", ["example.com", "1.1.1.1", "8.8.8.8:53", "2606:4700:4700::1111"])
    def test_accepted(self, target):
        check_public_target(target)

    def test_opt_in(self):
        """build_request only checks when asked"""
        assert build_request("ping", "10.0.0.1").target == "10.0.0.1"
        with pytest.raises(ValidationError):
            build_request("ping", "10.0.0.1", require_public=True)
