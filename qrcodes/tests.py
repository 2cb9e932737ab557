import json
from unittest.mock import MagicMock, patch

from django.test import RequestFactory, SimpleTestCase, TestCase, override_settings
from django.urls import reverse
from requests import RequestException

from .models import QRCode, Scan
from .services import QRCodeNotFound, client_ip, describe_user_agent, lookup_ip, record_scan

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_5 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.5 Mobile/15E148 Safari/604.1"
)
WINDOWS_CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class RecordScanTests(TestCase):
    def setUp(self):
        self.qr = QRCode.objects.create(qr_id="qr_1", owner_id="user_1", name="Menu", content="https://example.com")

    def test_increments_counter_and_appends_scan(self):
        scan = record_scan("qr_1", user_agent="Mozilla/5.0", referrer="https://t.co/x", ip="203.0.113.9")
        self.qr.refresh_from_db()
        self.assertEqual(self.qr.scans, 1)
        self.assertEqual(scan.qr_id, "qr_1")
        self.assertEqual(scan.user_agent, "Mozilla/5.0")
        self.assertEqual(scan.referrer, "https://t.co/x")
        self.assertEqual(scan.ip_info, {"ip": "203.0.113.9"})

    def test_counter_matches_scan_records(self):
        for _ in range(3):
            record_scan("qr_1")
        self.qr.refresh_from_db()
        self.assertEqual(self.qr.scans, 3)
        self.assertEqual(self.qr.scan_records.count(), 3)

    def test_missing_qr_code_writes_nothing(self):
        with self.assertRaises(QRCodeNotFound):
            record_scan("qr_missing", ip="203.0.113.9")
        self.assertFalse(Scan.objects.exists())

    def test_scan_without_ip(self):
        scan = record_scan("qr_1")
        self.assertIsNone(scan.ip_info)

    def test_user_agent_details_stored(self):
        scan = record_scan("qr_1", user_agent=IPHONE_UA)
        scan.refresh_from_db()
        self.assertEqual(scan.device["type"], "mobile")
        self.assertEqual(scan.os["name"], "iOS")
        self.assertEqual(scan.browser["version"], "16.5")


class DescribeUserAgentTests(SimpleTestCase):
    def test_mobile_browser(self):
        info = describe_user_agent(IPHONE_UA)
        self.assertEqual(info["browser"], {"name": "Mobile Safari", "version": "16.5"})
        self.assertEqual(info["os"], {"name": "iOS", "version": "16.5"})
        self.assertEqual(info["device"], {"type": "mobile", "vendor": "Apple", "model": "iPhone"})

    def test_desktop_browser(self):
        info = describe_user_agent(WINDOWS_CHROME_UA)
        self.assertEqual(info["browser"]["name"], "Chrome")
        self.assertTrue(info["browser"]["version"].startswith("120"))
        self.assertEqual(info["os"]["name"], "Windows")
        self.assertEqual(info["device"], {"type": "desktop", "vendor": None, "model": None})

    def test_unknown_agent_defaults_to_desktop(self):
        for ua in ("", None, "curl/8.4.0"):
            with self.subTest(ua=ua):
                info = describe_user_agent(ua)
                self.assertEqual(info["device"]["type"], "desktop")
                self.assertIsNone(info["os"]["name"])


class LookupIpTests(SimpleTestCase):
    def test_disabled_lookup_keeps_ip(self):
        with patch("qrcodes.services.requests.get") as get:
            self.assertEqual(lookup_ip("198.51.100.1"), {"ip": "198.51.100.1"})
        get.assert_not_called()

    @override_settings(QRCODES_GEO_LOOKUP=True, QRCODES_GEO_URL="https://geo.test/{ip}/json/")
    def test_lookup_maps_fields(self):
        resp = MagicMock(status_code=200)
        resp.json.return_value = {"city": "Pune", "region": "Maharashtra", "country_name": "India", "latitude": 18.5}
        with patch("qrcodes.services.requests.get", return_value=resp) as get:
            info = lookup_ip("198.51.100.1")
        self.assertEqual(get.call_args.args[0], "https://geo.test/198.51.100.1/json/")
        self.assertEqual(info["city"], "Pune")
        self.assertEqual(info["country"], "India")
        self.assertIsNone(info["org"])

    @override_settings(QRCODES_GEO_LOOKUP=True)
    def test_lookup_failure_degrades(self):
        with patch("qrcodes.services.requests.get", side_effect=RequestException("timeout")):
            self.assertEqual(lookup_ip("198.51.100.1"), {"ip": "198.51.100.1"})
        with patch("qrcodes.services.requests.get", return_value=MagicMock(status_code=429)):
            self.assertEqual(lookup_ip("198.51.100.1"), {"ip": "198.51.100.1"})


class ClientIpTests(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_forwarded_for_first_hop(self):
        request = self.factory.post("/", HTTP_X_FORWARDED_FOR="203.0.113.9, 10.0.0.1")
        self.assertEqual(client_ip(request), "203.0.113.9")

    def test_real_ip_then_remote_addr(self):
        self.assertEqual(client_ip(self.factory.post("/", HTTP_X_REAL_IP="198.51.100.7")), "198.51.100.7")
        self.assertEqual(client_ip(self.factory.post("/", REMOTE_ADDR="192.0.2.4")), "192.0.2.4")


class TrackViewTests(TestCase):
    url = reverse("qrcodes:track_view")

    def post(self, body, **extra):
        return self.client.post(self.url, data=json.dumps(body), content_type="application/json", **extra)

    def test_records_scan(self):
        QRCode.objects.create(qr_id="qr_1", owner_id="user_1")
        resp = self.post({"qrId": "qr_1"}, HTTP_USER_AGENT="curl/8", HTTP_X_FORWARDED_FOR="203.0.113.9")
        self.assertEqual(resp.status_code, 200)
        scan = Scan.objects.get()
        self.assertEqual(resp.json(), {"success": True, "scanId": scan.pk})
        self.assertEqual(scan.user_agent, "curl/8")
        self.assertEqual(scan.ip_info, {"ip": "203.0.113.9"})
        self.assertEqual(QRCode.objects.get(pk="qr_1").scans, 1)

    def test_qr_id_required(self):
        for body in ({}, {"qrId": ""}, {"qrId": 42}):
            with self.subTest(body=body):
                self.assertEqual(self.post(body).status_code, 400)

    def test_unknown_qr_code_is_404(self):
        resp = self.post({"qrId": "qr_missing"})
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(Scan.objects.exists())

    def test_unexpected_error_hides_details(self):
        with patch("qrcodes.views.record_scan", side_effect=RuntimeError("db down")):
            resp = self.post({"qrId": "qr_1"})
        self.assertEqual(resp.status_code, 500)
        self.assertNotIn("details", resp.json())

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)
