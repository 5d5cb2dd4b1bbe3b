"""钉钉通知测试"""

import json

import httpx
import pytest

from cts.common.exceptions import NotifierError
from cts.notify import DingTalkNotifier, LogNotifier


def _notifier(handler, **kwargs) -> DingTalkNotifier:
    return DingTalkNotifier("token123", transport=httpx.MockTransport(handler), **kwargs)


class TestDingTalkNotifier:
    """DingTalkNotifier 测试"""

    @pytest.mark.asyncio
    async def test_push_payload(self):
        sent = []

        def handler(request):
            sent.append(request)
            return httpx.Response(200, json={"errcode": 0, "errmsg": "ok"})

        notifier = _notifier(handler, at_all=True)
        await notifier.push("hello")
        await notifier.close()

        request = sent[0]
        assert request.url.host == "oapi.dingtalk.com"
        assert request.url.path == "/robot/send"
        assert request.url.params["access_token"] == "token123"
        assert json.loads(request.content) == {
            "msgtype": "text",
            "text": {"content": "hello"},
            "at": {"atMobiles": [], "isAtAll": True},
        }

    @pytest.mark.asyncio
    async def test_errcode_rejected(self):
        def handler(request):
            return httpx.Response(200, json={"errcode": 310000, "errmsg": "keywords not in content"})

        with pytest.raises(NotifierError, match="keywords not in content"):
            await _notifier(handler).push("hello")

    @pytest.mark.asyncio
    async def test_timeout_retried_three_attempts(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NotifierError):
            await _notifier(handler).push("hello")

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_timeout_then_success(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectTimeout("timed out", request=request)
            return httpx.Response(200, json={"errcode": 0, "errmsg": "ok"})

        await _notifier(handler).push("hello")

        assert len(attempts) == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        httpx.ConnectError,
        httpx.ReadError,
        httpx.RemoteProtocolError,
    ])
    async def test_connection_reset_retried(self, error):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise error("connection reset by peer", request=request)

        with pytest.raises(NotifierError):
            await _notifier(handler).push("hello")

        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_reset_then_success(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ReadError("connection reset by peer", request=request)
            return httpx.Response(200, json={"errcode": 0, "errmsg": "ok"})

        await _notifier(handler).push("hello")

        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_http_status_not_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500)

        with pytest.raises(NotifierError):
            await _notifier(handler).push("hello")

        assert len(attempts) == 1

    def test_empty_token(self):
        with pytest.raises(NotifierError):
            DingTalkNotifier("")


class TestLogNotifier:
    """LogNotifier 测试"""

    @pytest.mark.asyncio
    async def test_records_messages(self):
        notifier = LogNotifier()
        await notifier.push("a")
        await notifier.push("b")
        assert notifier.messages == ["a", "b"]
