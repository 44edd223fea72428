"""
执行边界：oauthflow 不自己实现 HTTP，只依赖一个 Transport。

任何实现了 `async send(HttpRequest) -> HttpResponse` 的对象都可以注入；
默认提供基于 httpx.AsyncClient 的 HttpxTransport。
重试、超时、连接池都属于 transport 自身的职责。
"""

import logging
from typing import Dict, Optional, Protocol, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field

from oauthflow.errors import TransportError

logger = logging.getLogger(__name__)


class HttpRequest(BaseModel):
    """一个完整组装好的 HTTP 请求。"""
    model_config = ConfigDict(frozen=True)

    method: str
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


class HttpResponse(BaseModel):
    """transport 返回的原始响应。"""
    model_config = ConfigDict(frozen=True)

    status_code: int
    body: bytes = b""
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


@runtime_checkable
class Transport(Protocol):
    """可注入的 HTTP 执行能力。失败时应抛出 TransportError (或任意异常，由调用方包装)。"""

    async def send(self, request: HttpRequest) -> HttpResponse:
        ...


class HttpxTransport:
    """
    基于 httpx.AsyncClient 的 Transport。

    如果传入了 client，则由调用方负责关闭；否则自行创建并在 aclose() 时关闭。
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = 30.0):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, request: HttpRequest) -> HttpResponse:
        try:
            resp = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                content=request.body,
            )
        except httpx.HTTPError as e:
            logger.error(f"[transport] {request.method} {request.url} 失败: {e}")
            raise TransportError(f"{request.method} {request.url} failed: {e}") from e

        logger.debug(f"[transport] {request.method} {request.url} -> {resp.status_code}")
        return HttpResponse(
            status_code=resp.status_code,
            body=resp.content,
            headers=dict(resp.headers),
        )

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
