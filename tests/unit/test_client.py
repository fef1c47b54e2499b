"""
Unit tests for the HTTP client's retry behaviour.
"""
import httpx
import pytest

from dashboard.client import POApiClient


def _client(test_config, responses: list[int], calls: list) -> POApiClient:
    """Client whose transport answers with the given status codes in turn."""
    test_config.client_backoff_seconds = 0
    test_config.client_max_retries = 2

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status = responses[min(len(calls), len(responses)) - 1]
        return httpx.Response(status, json={"status": status})

    return POApiClient(
        "http://po.test",
        config=test_config,
        transport=httpx.MockTransport(handler),
        user="ops@example.com",
    )


@pytest.mark.unit
class TestPOApiClient:
    """Tests for POApiClient."""

    def test_retries_server_errors(self, test_config):
        """Test 5xx responses are retried until one succeeds."""
        calls = []
        with _client(test_config, [503, 503, 200], calls) as client:
            result = client.list_pos(vendor="zepto", status=None)

        assert result == {"status": 200}
        assert len(calls) == 3
        assert calls[0].url.params["vendor"] == "zepto"
        assert "status" not in calls[0].url.params

    def test_client_errors_are_not_retried(self, test_config):
        """Test a 4xx response raises after a single attempt."""
        calls = []
        with _client(test_config, [400], calls) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.preview(b"a,b\n", "po.csv")
        assert len(calls) == 1

    def test_gives_up_after_max_retries(self, test_config):
        """Test persistent 5xx responses raise once retries are exhausted."""
        calls = []
        with _client(test_config, [503], calls) as client:
            with pytest.raises(httpx.HTTPStatusError):
                client.list_pos()
        assert len(calls) == 3

    def test_sends_user_header_and_import_body(self, test_config):
        """Test the acting user header and a header+lines import body."""
        calls = []
        with _client(test_config, [201], calls) as client:
            client.import_po("zepto", {
                "header": {"po_number": "ZP-1"},
                "lines": [{"quantity": 1}],
                "detectedVendor": "zepto",
            })

        request = calls[0]
        assert request.headers["X-User"] == "ops@example.com"
        assert request.url.path == "/api/po/import/zepto"
        assert b"detectedVendor" not in request.content
        assert b"ZP-1" in request.content
