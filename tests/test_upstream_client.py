import httpx
import pytest

from ai_proxy.config import Provider, USER_AGENT
from ai_proxy.errors import UpstreamConnectionFailed
from ai_proxy.upstream_client import (
    filter_query_params,
    is_json_content_type,
    join_url,
    redact_headers,
)

from conftest import UpstreamRecorder, build_settings


@pytest.fixture
def settings():
    return build_settings()


class TestBuildHeaders:
    def test_openai_with_body(self, settings):
        client = UpstreamRecorder().client(settings)
        headers = client.build_headers(Provider.OPENAI, "sk-test", has_body=True)
        assert headers == {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "Authorization": "Bearer sk-test",
        }

    def test_openai_without_body_has_no_content_type(self, settings):
        client = UpstreamRecorder().client(settings)
        headers = client.build_headers(Provider.OPENAI, "sk-test")
        assert "Content-Type" not in headers

    def test_inbound_content_type_is_kept(self, settings):
        client = UpstreamRecorder().client(settings)
        headers = client.build_headers(Provider.OPENAI, "sk-test", content_type="multipart/form-data; boundary=x")
        assert headers["Content-Type"] == "multipart/form-data; boundary=x"

    def test_anthropic(self, settings):
        client = UpstreamRecorder().client(settings)
        headers = client.build_headers(Provider.ANTHROPIC, "ak-test")
        assert headers["x-api-key"] == "ak-test"
        assert headers["anthropic-version"] == "2023-06-01"
        assert headers["Content-Type"] == "application/json"
        assert "Authorization" not in headers


class TestSend:
    async def test_relays_json_and_filtered_headers(self, settings):
        recorder = UpstreamRecorder(lambda request: httpx.Response(
            201,
            json={"ok": True},
            headers={"x-request-id": "req_1", "openai-processing-ms": "12", "set-cookie": "a=b"},
        ))
        client = recorder.client(settings)
        resp = await client.send("https://api.openai.com/v1/files", "POST", {"Authorization": "Bearer k"}, b"{}")

        assert resp.status_code == 201
        assert resp.is_json
        assert resp.data == {"ok": True}
        assert resp.headers == {"Content-Type": "application/json", "X-Request-ID": "req_1"}
        sent = recorder.requests[0]
        assert sent.method == "POST"
        assert sent.content == b"{}"

    async def test_non_json_body_passes_through(self, settings):
        recorder = UpstreamRecorder(lambda request: httpx.Response(
            200, content=b"raw-bytes", headers={"content-type": "application/octet-stream"}
        ))
        resp = await recorder.client(settings).send("https://api.openai.com/v1/files/f/content", "GET", {})
        assert not resp.is_json
        assert resp.content == b"raw-bytes"
        assert resp.headers == {"Content-Type": "application/octet-stream"}

    async def test_undecodable_json_is_relayed_raw(self, settings):
        recorder = UpstreamRecorder(lambda request: httpx.Response(
            200, content=b"{broken", headers={"content-type": "application/json"}
        ))
        resp = await recorder.client(settings).send("https://api.openai.com/v1/models", "GET", {})
        assert not resp.is_json
        assert resp.content == b"{broken"

    async def test_query_params_are_sent(self, settings):
        recorder = UpstreamRecorder()
        await recorder.client(settings).send(
            "https://api.openai.com/v1/files", "GET", {}, params=[("purpose", "assistants")]
        )
        assert recorder.requests[0].url.params["purpose"] == "assistants"

    @pytest.mark.parametrize("exc", [httpx.ConnectError, httpx.ReadTimeout])
    async def test_transport_failures_raise(self, settings, exc):
        def fail(request):
            raise exc("boom", request=request)

        client = UpstreamRecorder(fail).client(settings)
        with pytest.raises(UpstreamConnectionFailed) as info:
            await client.send("https://api.openai.com/v1/models", "GET", {})
        assert info.value.status_code == 502


class TestHelpers:
    def test_filter_query_params(self):
        params = [("limit", "5"), ("_envelope", "1"), ("_locale", "user"), ("limit", "6")]
        assert filter_query_params(params) == [("limit", "5"), ("limit", "6")]

    def test_join_url(self):
        assert join_url("https://api.openai.com/v1/", "chat/completions") == "https://api.openai.com/v1/chat/completions"
        assert join_url("https://api.openai.com/v1", "/models") == "https://api.openai.com/v1/models"

    @pytest.mark.parametrize("value, expected", [
        ("application/json", True),
        ("application/json; charset=utf-8", True),
        ("application/problem+json", True),
        ("text/plain", False),
        (None, False),
    ])
    def test_is_json_content_type(self, value, expected):
        assert is_json_content_type(value) is expected

    def test_redact_headers(self):
        assert redact_headers({"Authorization": "Bearer k", "x-api-key": "k", "Accept": "*/*"}) == {
            "Authorization": "****",
            "x-api-key": "****",
            "Accept": "*/*",
        }
