from types import SimpleNamespace

from boondit.shared.tracking import (
    anonymize_ip,
    client_ip,
    detect_device,
    tracking_session_id,
    view_session_id,
)

IPHONE_UA = "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"
MAC_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)"


def test_anonymize_ipv4_zeroes_last_octet():
    assert anonymize_ip("203.0.113.77") == "203.0.113.0"


def test_anonymize_ipv6_keeps_prefix():
    assert anonymize_ip("2001:db8:85a3:0:0:8a2e:370:7334") == "2001:db8:85a3:xxxx"


def test_detect_device_prefers_ios_over_mac():
    assert detect_device(IPHONE_UA) == "iOS"
    assert detect_device(MAC_UA) == "macOS"
    assert detect_device("Mozilla/5.0 (Linux; Android 14)") == "Android"
    assert detect_device("Mozilla/5.0 (Windows NT 10.0; Win64; x64)") == "Windows"
    assert detect_device("Googlebot/2.1") == "Bot"
    assert detect_device(None) == "Unknown"


def test_client_ip_uses_first_forwarded_address(app):
    with app.test_request_context(
        "/", headers={"X-Forwarded-For": "198.51.100.9, 10.0.0.1"}
    ) as ctx:
        assert client_ip(ctx.request) == "198.51.100.9"


def test_client_ip_normalizes_local_addresses(app):
    with app.test_request_context("/", environ_base={"REMOTE_ADDR": "127.0.0.1"}) as ctx:
        assert client_ip(ctx.request) == "local_dev"


def test_tracking_session_id_combines_network_and_device(app):
    with app.test_request_context(
        "/",
        headers={"X-Real-IP": "198.51.100.9", "User-Agent": IPHONE_UA},
    ) as ctx:
        assert tracking_session_id(ctx.request) == "198.51.100.0_iOS"


def test_view_session_id_for_signed_in_and_anonymous(app):
    viewer = SimpleNamespace(id="abc")
    with app.test_request_context(
        "/", headers={"X-Forwarded-For": "198.51.100.9"}
    ) as ctx:
        assert view_session_id(ctx.request, viewer) == "user_abc"
        assert view_session_id(ctx.request) == "anon_198.51.100.9"
