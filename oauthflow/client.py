"""
OAuth 2.0 客户端配置。

Client 是不可变的配置值：with_* / add_scope 返回更新后的新 Client，
可以在多个并发流程之间安全共享。

    client = (
        Client.new("my-client", "https://auth.example.com/authorize", "https://auth.example.com/token")
        .with_client_secret("s3cret")
        .with_redirect_url("http://localhost:8080/callback")
        .add_scope("read")
    )
    state = State.new_random()
    url = client.authorize_url(state)
    ...
    verify_state(state, received_state)
    token = await client.exchange_code(code).execute(transport)
"""

from typing import Any, Iterable, List, Optional, Tuple, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from oauthflow.auth.authorize import ExtraParams, build_authorize_url
from oauthflow.auth.oauth_types import GrantType, OAuthParams, ResponseType, TokenEndpointAuthMethod
from oauthflow.auth.token_request import ParamValue, TokenRequest, require
from oauthflow.errors import ConfigurationError
from oauthflow.secret_values import (
    AuthorizationCode,
    ClientSecret,
    RefreshToken,
    ResourceOwnerPassword,
    State,
)


def validate_absolute_url(value: str, require_host: bool = True) -> str:
    """校验绝对 URL (必须带 scheme，默认还必须带 host)。"""
    try:
        url = httpx.URL(value)
    except (httpx.InvalidURL, TypeError) as e:
        raise ValueError(f"invalid URL {value!r}: {e}") from None
    if not url.scheme or (require_host and not url.host):
        raise ValueError(f"URL must be absolute: {value!r}")
    return value


def _normalize_scopes(scopes: Iterable[str]) -> Tuple[str, ...]:
    """按首次出现顺序去重。scope 中不能包含空格 (RFC 6749 §3.3)。"""
    result: List[str] = []
    for scope in scopes:
        if not isinstance(scope, str) or not scope or any(c.isspace() for c in scope):
            raise ValueError(f"invalid scope: {scope!r}")
        if scope not in result:
            result.append(scope)
    return tuple(result)


class Client(BaseModel):
    """OAuth2 客户端的静态身份与端点配置。"""
    model_config = ConfigDict(frozen=True)

    client_id: str = Field(min_length=1)
    client_secret: Optional[ClientSecret] = None
    auth_url: str
    token_url: str
    redirect_url: Optional[str] = None
    scopes: Tuple[str, ...] = ()
    # 默认使用 HTTP Basic，遵循 RFC 6749 §2.3.1 的推荐
    auth_method: TokenEndpointAuthMethod = TokenEndpointAuthMethod.CLIENT_SECRET_BASIC

    @field_validator("auth_url", "token_url")
    @classmethod
    def _endpoint_url(cls, value: str) -> str:
        return validate_absolute_url(value)

    @field_validator("redirect_url")
    @classmethod
    def _redirect_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        # 原生应用可以使用自定义 scheme (com.example.app:/callback)，不要求 host
        return validate_absolute_url(value, require_host=False)

    @field_validator("scopes", mode="before")
    @classmethod
    def _dedupe_scopes(cls, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = [value]
        return _normalize_scopes(value or ())

    # ── 构造与更新 ────────────────────────────────────

    @classmethod
    def new(cls, client_id: str, auth_url: str, token_url: str, **kwargs: Any) -> "Client":
        """
        创建 Client。

        Raises:
            ConfigurationError: URL 无法解析为绝对 URL，或缺少 client_id
        """
        try:
            return cls(client_id=client_id, auth_url=auth_url, token_url=token_url, **kwargs)
        except ValidationError as e:
            raise ConfigurationError(f"invalid client configuration: {e}") from e

    def _update(self, **changes: Any) -> "Client":
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        try:
            return type(self).model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"invalid client configuration: {e}") from e

    def with_client_secret(self, client_secret: Union[str, ClientSecret]) -> "Client":
        return self._update(client_secret=ClientSecret.coerce(client_secret))

    def with_redirect_url(self, redirect_url: str) -> "Client":
        return self._update(redirect_url=redirect_url)

    def with_auth_method(self, auth_method: Union[str, TokenEndpointAuthMethod]) -> "Client":
        """选择 Token Endpoint 的客户端认证方式 (Basic 或请求体参数)。"""
        try:
            method = TokenEndpointAuthMethod(auth_method)
        except ValueError as e:
            raise ConfigurationError(f"unsupported token endpoint auth method: {auth_method!r}") from e
        return self._update(auth_method=method)

    def add_scope(self, scope: str) -> "Client":
        """添加 scope。重复添加同一个 scope 不产生额外效果。"""
        return self._update(scopes=self.scopes + (scope,))

    def add_scopes(self, *scopes: str) -> "Client":
        return self._update(scopes=self.scopes + tuple(scopes))

    # ── 授权 URL ──────────────────────────────────────

    def authorize_url(self, state: State, extra_params: Optional[ExtraParams] = None) -> str:
        """
        Authorization Code Grant (RFC 6749 §4.1) 的授权 URL。

        每次授权都应使用新的 State，并在回调时用 verify_state() 校验。
        """
        return self._authorize_url(ResponseType.CODE, state, extra_params)

    def authorize_url_implicit(self, state: State, extra_params: Optional[ExtraParams] = None) -> str:
        """Implicit Grant (RFC 6749 §4.2) 的授权 URL。"""
        return self._authorize_url(ResponseType.TOKEN, state, extra_params)

    def _authorize_url(self, response_type: ResponseType, state: State, extra_params: Optional[ExtraParams]) -> str:
        return build_authorize_url(
            self.auth_url,
            self.client_id,
            response_type,
            state,
            redirect_url=self.redirect_url,
            scopes=self.scopes,
            extra_params=extra_params,
        )

    # ── Token 请求 ────────────────────────────────────

    def _request(self, grant_type: GrantType, params: List[Tuple[str, ParamValue]]) -> TokenRequest:
        return TokenRequest(
            token_url=self.token_url,
            grant_type=grant_type,
            params=params,
            client_id=self.client_id,
            client_secret=self.client_secret,
            auth_method=self.auth_method,
        )

    def _scope_param(self, scopes: Iterable[str]) -> List[Tuple[str, ParamValue]]:
        scopes = tuple(scopes)
        return [(OAuthParams.SCOPE, " ".join(scopes))] if scopes else []

    def exchange_code(self, code: Union[str, AuthorizationCode]) -> TokenRequest:
        """
        用授权码换取 Token (RFC 6749 §4.1.3)。
        如果配置了 redirect_url，会再次发送与授权时相同的 redirect_uri。
        """
        code = AuthorizationCode.coerce(require(OAuthParams.CODE, code))
        params: List[Tuple[str, ParamValue]] = [(OAuthParams.CODE, code)]
        if self.redirect_url:
            params.append((OAuthParams.REDIRECT_URI, self.redirect_url))
        return self._request(GrantType.AUTHORIZATION_CODE, params)

    def exchange_password(self, username: str, password: Union[str, ResourceOwnerPassword]) -> TokenRequest:
        """Resource Owner Password Credentials Grant (RFC 6749 §4.3.2)。"""
        require(OAuthParams.USERNAME, username)
        password = ResourceOwnerPassword.coerce(require(OAuthParams.PASSWORD, password))
        params: List[Tuple[str, ParamValue]] = [
            (OAuthParams.USERNAME, username),
            (OAuthParams.PASSWORD, password),
        ]
        return self._request(GrantType.PASSWORD, params + self._scope_param(self.scopes))

    def exchange_client_credentials(self) -> TokenRequest:
        """Client Credentials Grant (RFC 6749 §4.4.2)。"""
        return self._request(GrantType.CLIENT_CREDENTIALS, self._scope_param(self.scopes))

    def exchange_refresh_token(
        self,
        refresh_token: Union[str, RefreshToken],
        scopes: Optional[Iterable[str]] = None,
    ) -> TokenRequest:
        """
        刷新 Token (RFC 6749 §6)。

        scopes 可选；如果提供，必须是原授权 scope 的子集，这一点由调用方保证，这里不做校验。
        """
        refresh_token = RefreshToken.coerce(require(OAuthParams.REFRESH_TOKEN, refresh_token))
        params: List[Tuple[str, ParamValue]] = [(OAuthParams.REFRESH_TOKEN, refresh_token)]
        if scopes is not None:
            try:
                params += self._scope_param(_normalize_scopes(scopes))
            except ValueError as e:
                raise ConfigurationError(str(e)) from e
        return self._request(GrantType.REFRESH_TOKEN, params)
