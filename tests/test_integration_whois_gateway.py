"""
Tests for the WHOIS gateway.
"""

import pytest
from unittest.mock import MagicMock, Mock, patch
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../src'))

import whois

from domain.account_checker import AccountChecker
from domain.cache import ExpiryCache
from domain.models import CheckError, DomainRecord, ErrorKind, ExpiryCheckError
from integrations.whois_gateway import WhoisGateway, parse_whois_text


COM_RESPONSE = """   Domain Name: EXAMPLE.COM
   Registry Domain ID: 2336799_DOMAIN_COM-VRSN
   Registrar WHOIS Server: whois.iana.org
   Updated Date: 2025-08-14T07:01:39Z
   Creation Date: 1995-08-14T04:00:00Z
   Registry Expiry Date: 2026-08-13T04:00:00Z
   Registrar: RESERVED-Internet Assigned Numbers Authority
   Name Server: A.IANA-SERVERS.NET
   Name Server: B.IANA-SERVERS.NET
   DNSSEC: signedDelegation
>>> Last update of whois database: 2025-09-01T12:00:00Z <<<
"""

RU_RESPONSE = """% TCI Whois Service. Terms of use:
% https://tcinet.ru/documents/whois_ru_rf.pdf

domain:        EXAMPLE.RU
nserver:       ns1.example.ru.
state:         REGISTERED, DELEGATED, VERIFIED
org:           Example LLC
registrar:     RU-CENTER-RU
created:       2005-03-01T21:00:00Z
paid-till:     2026-03-01T21:00:00Z
free-date:     2026-04-02
source:        TCI
"""


class TestParseWhoisText:
    """Test raw WHOIS response parsing."""

    def test_registry_expiry_date(self):
        kv = parse_whois_text(COM_RESPONSE)

        assert kv['registry expiry date'] == '2026-08-13T04:00:00Z'
        assert kv['domain name'] == 'EXAMPLE.COM'

    def test_paid_till(self):
        kv = parse_whois_text(RU_RESPONSE)

        assert kv['paid-till'] == '2026-03-01T21:00:00Z'
        assert kv['registrar'] == 'RU-CENTER-RU'

    def test_first_occurrence_wins(self):
        kv = parse_whois_text(COM_RESPONSE)

        assert kv['name server'] == 'A.IANA-SERVERS.NET'

    def test_comments_and_banners_skipped(self):
        kv = parse_whois_text(COM_RESPONSE + RU_RESPONSE)

        assert not any(key.startswith(('%', '>>>')) for key in kv)

    def test_lines_without_value_skipped(self):
        assert parse_whois_text("Registrant:\nNo colon here\n") == {}


class TestWhoisGateway:
    """Test WhoisGateway lookups with a mocked NIC client."""

    def test_get_whois_kv(self):
        client = Mock()
        client.whois_lookup.return_value = COM_RESPONSE
        gateway = WhoisGateway(client=client, timeout=None)

        kv = gateway.get_whois_kv("example.com")

        assert kv['registry expiry date'] == '2026-08-13T04:00:00Z'
        client.whois_lookup.assert_called_once_with(
            None, "example.com", 0, ignore_socket_errors=False, timeout=None
        )

    def test_idna_encoding(self):
        client = Mock()
        client.whois_lookup.return_value = RU_RESPONSE
        gateway = WhoisGateway(client=client, timeout=None)

        gateway.get_whois_kv("пример.рф")

        assert client.whois_lookup.call_args.args[1] == "xn--e1afmkfd.xn--p1ai"

    def test_client_error_is_lookup_failure(self):
        client = Mock()
        client.whois_lookup.side_effect = OSError("Connection refused")
        gateway = WhoisGateway(client=client, timeout=None)

        with pytest.raises(ExpiryCheckError) as exc_info:
            gateway.get_whois_kv("example.com")

        assert exc_info.value.kind == ErrorKind.LOOKUP_FAILURE
        assert "Connection refused" in exc_info.value.message

    def test_empty_response_is_lookup_failure(self):
        client = Mock()
        client.whois_lookup.return_value = "  \n"
        gateway = WhoisGateway(client=client, timeout=None)

        with pytest.raises(ExpiryCheckError) as exc_info:
            gateway.get_whois_kv("example.com")

        assert exc_info.value.kind == ErrorKind.LOOKUP_FAILURE

    def test_timeout_passed_to_client(self):
        client = Mock()
        client.whois_lookup.return_value = RU_RESPONSE
        gateway = WhoisGateway(client=client, timeout=3)

        gateway.get_whois_kv("example.ru")

        assert client.whois_lookup.call_args.kwargs['timeout'] == 3

    def test_default_timeout_from_environment(self):
        """Test WHOIS_TIMEOUT_SECONDS (set in conftest) is the default."""
        assert WhoisGateway(client=Mock()).timeout == 5.0


@pytest.fixture
def refused_socket():
    """Socket whose connect is refused, recording the timeouts applied."""
    sock = MagicMock()
    sock.__enter__.return_value = sock
    sock.connect.side_effect = ConnectionRefusedError("Connection refused")
    return sock


class TestWhoisGatewayNetworkFailures:
    """Test a real NICClient against a failing socket."""

    def test_socket_error_is_lookup_failure(self, refused_socket):
        gateway = WhoisGateway(timeout=3)

        with patch.object(whois.NICClient, 'get_socket', return_value=refused_socket):
            with pytest.raises(ExpiryCheckError) as exc_info:
                gateway.get_whois_kv("example.ru")

        assert exc_info.value.kind == ErrorKind.LOOKUP_FAILURE

    def test_timeout_reaches_socket(self, refused_socket):
        gateway = WhoisGateway(timeout=3)

        with patch.object(whois.NICClient, 'get_socket', return_value=refused_socket):
            with pytest.raises(ExpiryCheckError):
                gateway.get_whois_kv("example.ru")

        timeouts = [c.args[0] for c in refused_socket.settimeout.call_args_list]
        assert timeouts
        assert all(t == 3 for t in timeouts)

    def test_check_domain_reports_lookup_failure(self, refused_socket):
        cache = ExpiryCache()
        checker = AccountChecker(WhoisGateway(timeout=3), cache)

        with patch.object(whois.NICClient, 'get_socket', return_value=refused_socket):
            result = checker.check_domain(DomainRecord(domain="example.ru"))

        assert isinstance(result, CheckError)
        assert result.kind == ErrorKind.LOOKUP_FAILURE
        assert "example.ru" not in cache


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
