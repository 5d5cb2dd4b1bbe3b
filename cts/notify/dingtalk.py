"""
CTS 杠杆交易代理 - 钉钉群机器人

文本消息，可选 @所有人。超时或连接被重置时自动重试，最多 3 次尝试。
"""

from typing import Any

import httpx

from cts.common.exceptions import NotifierError
from cts.common.logging import get_logger
from cts.common.retry import retry_with_backoff

from .base import Notifier

logger = get_logger(__name__)

DINGTALK_URL = "https://oapi.dingtalk.com/robot/send"


class DingTalkNotifier(Notifier):
    """钉钉群机器人通知"""

    def __init__(
        self,
        access_token: str,
        at_all: bool = False,
        timeout: float = 3.0,
        url: str = DINGTALK_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not access_token:
            raise NotifierError("钉钉 access_token 不能为空")

        self.access_token = access_token
        self.at_all = at_all
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    def _payload(self, text: str) -> dict[str, Any]:
        return {
            "msgtype": "text",
            "text": {"content": text},
            "at": {"atMobiles": [], "isAtAll": self.at_all},
        }

    @retry_with_backoff(
        max_retries=2,
        base_delay=0.2,
        max_delay=1.0,
        exceptions=(httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError),
    )
    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        return await self._client.post(
            self.url,
            params={"access_token": self.access_token},
            json=payload,
        )

    async def push(self, text: str) -> None:
        """
        推送文本消息

        Raises:
            NotifierError: 网络失败，或响应 errcode 不为 0
        """
        try:
            response = await self._post(self._payload(text))
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise NotifierError(f"钉钉推送失败: {e}", {"error_type": type(e).__name__}) from e
        except ValueError as e:
            raise NotifierError("钉钉响应不是合法 JSON") from e

        if result.get("errcode") != 0 or result.get("errmsg") != "ok":
            raise NotifierError(
                f"钉钉推送失败: {result.get('errmsg')}",
                {"errcode": result.get("errcode")},
            )

        logger.debug("钉钉推送成功")

    async def close(self) -> None:
        await self._client.aclose()
