"""
Token 请求构建与执行。

每种 grant type 由 Client.exchange_* 创建一个 TokenRequest：
组装阶段不访问网络，execute() 时通过注入的 Transport 发送一次 POST。
TokenRequest 只能执行一次。
"""

import base64
import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Type, TypeVar, Union
from urllib.parse import quote_plus, urlencode

from pydantic import SecretStr

from oauthflow.auth.oauth_types import (
    CONTENT_TYPE_FORM,
    CONTENT_TYPE_JSON,
    GrantType,
    OAuthParams,
    TokenEndpointAuthMethod,
)
from oauthflow.errors import ConfigurationError, OAuthError, TransportError
from oauthflow.response import parse_token_response
from oauthflow.secret_values import ClientSecret
from oauthflow.token import StandardToken
from oauthflow.transport import HttpRequest, Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")

ParamValue = Union[str, SecretStr]


def require(name: str, value: Optional[ParamValue]) -> ParamValue:
    """必填字段不能为空，否则抛出 ConfigurationError。"""
    raw = value.get_secret_value() if isinstance(value, SecretStr) else value
    if not raw:
        raise ConfigurationError(f"'{name}' is required and must not be empty")
    return value


def basic_auth_header(client_id: str, client_secret: Optional[ClientSecret]) -> str:
    """
    RFC 6749 §2.3.1: client_id 与 client_secret 需要先分别做 form-urlencode，
    再作为 HTTP Basic 的用户名和密码。
    """
    username = quote_plus(client_id)
    password = quote_plus(client_secret.get_secret_value()) if client_secret else ""
    credentials = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {credentials}"


class TokenRequest:
    """一个待执行的 Token 请求。"""

    def __init__(
        self,
        token_url: str,
        grant_type: GrantType,
        params: Sequence[Tuple[str, ParamValue]],
        client_id: str,
        client_secret: Optional[ClientSecret] = None,
        auth_method: TokenEndpointAuthMethod = TokenEndpointAuthMethod.CLIENT_SECRET_BASIC,
    ):
        self.token_url = token_url
        self.grant_type = grant_type
        self.auth_method = auth_method
        self._client_id = client_id
        self._client_secret = client_secret
        self._params: List[Tuple[str, ParamValue]] = [(OAuthParams.GRANT_TYPE, grant_type.value)]
        self._params.extend(params)
        self._extra: Dict[str, str] = {}
        self._executed = False

    def __repr__(self) -> str:
        return (
            f"TokenRequest(grant_type={self.grant_type.value!r}, token_url={self.token_url!r}, "
            f"auth_method={self.auth_method.value!r}, extra_params={list(self._extra)!r})"
        )

    # ── 参数 ──────────────────────────────────────────

    @property
    def required_fields(self) -> FrozenSet[str]:
        """不能被额外参数覆盖的字段。"""
        keys = {key for key, _ in self._params}
        if self.auth_method == TokenEndpointAuthMethod.CLIENT_SECRET_POST:
            keys.add(OAuthParams.CLIENT_ID)
            keys.add(OAuthParams.CLIENT_SECRET)
        return frozenset(keys)

    @property
    def extra_params(self) -> Dict[str, str]:
        return dict(self._extra)

    def param(self, key: str, value: str) -> "TokenRequest":
        """
        附加 Provider 特定的额外参数。同名额外参数后写覆盖前写。

        Raises:
            ConfigurationError: key 与必填字段同名
        """
        if key in self.required_fields:
            raise ConfigurationError(f"extra parameter '{key}' would override a required field")
        self._extra[key] = value
        return self

    # ── 组装 ──────────────────────────────────────────

    def _form(self) -> List[Tuple[str, str]]:
        form: List[Tuple[str, str]] = []
        if self.auth_method == TokenEndpointAuthMethod.CLIENT_SECRET_POST:
            form.append((OAuthParams.CLIENT_ID, self._client_id))
            if self._client_secret is not None:
                form.append((OAuthParams.CLIENT_SECRET, self._client_secret.get_secret_value()))

        for key, value in self._params:
            form.append((key, value.get_secret_value() if isinstance(value, SecretStr) else value))

        form.extend(self._extra.items())
        return form

    def build(self) -> HttpRequest:
        """组装 HTTP 请求 (不发送)。"""
        headers = {
            # RFC 6749 §5.1 只允许 JSON 响应，部分 Provider (如 GitHub) 默认返回其他格式
            "Accept": CONTENT_TYPE_JSON,
            "Content-Type": CONTENT_TYPE_FORM,
        }
        if self.auth_method == TokenEndpointAuthMethod.CLIENT_SECRET_BASIC:
            headers["Authorization"] = basic_auth_header(self._client_id, self._client_secret)

        return HttpRequest(
            method="POST",
            url=self.token_url,
            headers=headers,
            body=urlencode(self._form()).encode("utf-8"),
        )

    # ── 执行 ──────────────────────────────────────────

    async def execute(self, transport: Transport, token_cls: Type[T] = StandardToken) -> T:
        """
        发送请求并解析响应。

        Returns:
            token_cls 实例

        Raises:
            ConfigurationError: 请求已执行过
            TransportError: transport 失败
            ServerError: 服务器返回结构化错误
            ResponseFormatError: 响应无法解析
        """
        if self._executed:
            raise ConfigurationError("token request has already been executed")
        self._executed = True

        request = self.build()
        logger.info(f"[token_request] {self.grant_type.value} -> {self.token_url}")

        try:
            response = await transport.send(request)
        except OAuthError:
            raise
        except Exception as e:
            logger.error(f"[token_request] transport 失败: {e}")
            raise TransportError(str(e)) from e

        logger.info(f"[token_request] {self.grant_type.value} <- {response.status_code}")
        return parse_token_response(response.status_code, response.body, token_cls)
