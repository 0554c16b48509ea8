import httpx
import pytest
from fastapi.testclient import TestClient

from iotfusion.config import Settings
from iotfusion.main import create_app

from conftest import KNOWN_HEX, pack_hex

UPSTREAM = "http://upstream.test/data"

RECORDS = [
    {"device": "42A6DA", "timestamp": "2024-05-01T10:00:00.000Z", "hexData": KNOWN_HEX},
    {
        "device": "42A6DA",
        "timestamp": "2024-05-01T10:00:01.500Z",
        "temperature": "7.25",
        "humidity": "99.9",
        "pressure": "1025.9465",
    },
    {"device": "42A6DA", "timestamp": "2024-05-01T09:00:00.000Z", "hexData": pack_hex(200.0, 50.0, 1000.0)},
    {"device": "OTHER", "timestamp": "2024-05-01T08:00:00.000Z", "hexData": "zz"},
]


class Upstream:
    def __init__(self, records=None, status_code=200):
        self.records = RECORDS if records is None else records
        self.status_code = status_code
        self.calls = 0

    def __call__(self, request):
        self.calls += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        return httpx.Response(200, json=self.records)


def _make_client(upstream):
    settings = Settings(sigfox_endpoint=UPSTREAM, retries=1, retry_backoff=0.0, log_level="WARNING")
    return TestClient(create_app(settings, transport=httpx.MockTransport(upstream)))


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def client(upstream):
    with _make_client(upstream) as c:
        yield c


def test_health(client):
    body = client.get("/health").json()

    assert body["success"] is True
    assert body["version"] == "1.0.0"


def test_decode_single(client):
    resp = client.post("/api/decoder/single", json={"hexData": KNOWN_HEX})

    assert resp.status_code == 200
    body = resp.json()
    assert body["decoded"] == {"temperature": 7.25, "humidity": 99.9, "pressure": 1025.9465}
    assert body["input"] == {"hexData": KNOWN_HEX, "hexLength": 24, "expectedBytes": 12}


@pytest.mark.parametrize(
    "hex_data, fragment",
    [
        ("abcd", "Expected 24 characters"),
        ("0000e840cdccc7424a3e804g", "Invalid hexadecimal format"),
        (pack_hex(20.0, 50.0, 50.0), "Invalid pressure"),
    ],
)
def test_decode_single_rejects_bad_payload(client, hex_data, fragment):
    resp = client.post("/api/decoder/single", json={"hexData": hex_data})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert fragment in body["error"]
    assert body["path"] == "/api/decoder/single"
    assert body["method"] == "POST"


@pytest.mark.parametrize("payload", [{}, {"hexData": 123}, {"hexData": ""}])
def test_decode_single_requires_hex_string(client, payload):
    resp = client.post("/api/decoder/single", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"].startswith("Validation Error")


def test_decode_hex_data_batch(client):
    body = client.get("/api/decoder/hex-data").json()

    assert [r["decodingSuccess"] for r in body["data"]] == [True, False, False]
    assert body["data"][0]["decoded"]["pressure"] == 1025.9465
    assert body["data"][0]["hexBytes"] == 12
    assert body["data"][1]["decoded"] is None
    assert body["metadata"]["totalDecoded"] == 3
    assert body["metadata"]["failedDecodings"] == 2


def test_validate(client):
    body = client.get("/api/decoder/validate").json()

    assert body["summary"]["totalValidations"] == 1
    assert body["summary"]["accuracyRate"] == "100.00%"
    result = body["validation"][0]
    assert result["isAccurate"] is True
    assert result["differences"] == {"temperature": 0.0, "humidity": 0.0, "pressure": 0.0}
    assert body["metadata"]["tolerance"] == 0.01


def test_validate_without_pairs_reports_zero_rate():
    with _make_client(Upstream(records=[])) as c:
        body = c.get("/api/decoder/validate").json()

    assert body["validation"] == []
    assert body["summary"]["accuracyRate"] == "0.00%"


def test_decoder_info(client):
    info = client.get("/api/decoder/info").json()["info"]

    assert info["totalBytes"] == 12
    assert info["validRanges"]["pressure"] == {"min": 300.0, "max": 1200.0, "unit": "hPa"}


def test_latest_data_is_cached_until_cleared(client, upstream):
    first = client.get("/api/data").json()
    second = client.get("/api/data").json()

    assert upstream.calls == 1
    assert [r["timestamp"] for r in first["data"]] == [
        "2024-05-01T10:00:01.500Z",
        "2024-05-01T10:00:00.000Z",
    ]
    assert second["metadata"]["cache"]["used"] is True

    assert client.post("/api/cache/clear").json()["success"] is True
    client.get("/api/data")
    assert upstream.calls == 2


def test_upstream_failure_returns_error_envelope():
    with _make_client(Upstream(status_code=500)) as c:
        resp = c.get("/api/decoder/hex-data")

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert "External API error: 500" in resp.json()["error"]


def test_status_reports_unhealthy_upstream():
    with _make_client(Upstream(status_code=404)) as c:
        resp = c.get("/api/status")

    assert resp.status_code == 200
    status = resp.json()["status"]
    assert status["externalApi"]["status"] == "unhealthy"
    assert status["externalApi"]["endpoint"] == UPSTREAM
    assert status["cache"]["hasData"] is False


def test_status_reports_healthy_upstream(client):
    status = client.get("/api/status").json()["status"]

    assert status["externalApi"]["status"] == "healthy"
    assert status["externalApi"]["latency"] is not None


def test_visualize(client):
    resp = client.post(
        "/api/visualize",
        json={"data": RECORDS[:2], "source": "dashboard", "options": {"chart": "line"}},
    )

    body = resp.json()
    assert resp.status_code == 200
    assert body["summary"]["devices"] == ["42A6DA"]
    assert body["metadata"]["source"] == "dashboard"
    assert body["metadata"]["processingOptions"] == {"chart": "line"}
    assert body["data"][0]["quality"] == "fair"
    assert body["data"][1]["quality"] == "excellent"


@pytest.mark.parametrize(
    "payload, message",
    [
        ({}, "Data field is required in request body"),
        ({"data": {"device": "A"}}, "Data must be an array of IoT records"),
        ({"data": []}, "Data array cannot be empty"),
        ({"data": [{"device": "A", "pressure": "high"}]}, "Invalid pressure value at record index 0"),
    ],
)
def test_visualize_rejects_bad_input(client, payload, message):
    resp = client.post("/api/visualize", json=payload)

    assert resp.status_code == 400
    assert resp.json()["error"] == message


def test_unknown_route_is_404_envelope(client):
    resp = client.get("/api/nope")

    assert resp.status_code == 404
    assert resp.json()["error"] == "Endpoint not found - /api/nope"
