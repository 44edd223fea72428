"""
授权 URL 构建器 (Authorization Code / Implicit)。

纯函数：不访问网络，相同输入得到完全相同的 URL。
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from oauthflow.auth.oauth_types import OAuthParams, ResponseType
from oauthflow.errors import ConfigurationError
from oauthflow.secret_values import State

logger = logging.getLogger(__name__)

ExtraParams = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def iter_params(extra_params: Optional[ExtraParams]) -> List[Tuple[str, str]]:
    """将 dict 或 (key, value) 序列统一为有序列表。"""
    if not extra_params:
        return []
    if isinstance(extra_params, Mapping):
        return [(str(k), str(v)) for k, v in extra_params.items()]
    return [(str(k), str(v)) for k, v in extra_params]


def build_authorize_url(
    auth_url: str,
    client_id: str,
    response_type: ResponseType,
    state: State,
    redirect_url: Optional[str] = None,
    scopes: Sequence[str] = (),
    extra_params: Optional[ExtraParams] = None,
) -> str:
    """
    生成授权 URL。

    参数顺序: response_type, client_id, redirect_uri (如有), scope (非空时), state,
    最后是调用方提供的额外参数 (如 PKCE 的 code_challenge)。
    auth_url 原有的 query 参数保留在最前面。

    Raises:
        ConfigurationError: 额外参数或 auth_url 原有的 query 参数与标准参数重名，或彼此重名
    """
    params: List[Tuple[str, str]] = [
        (OAuthParams.RESPONSE_TYPE, response_type.value),
        (OAuthParams.CLIENT_ID, client_id),
    ]
    if redirect_url:
        params.append((OAuthParams.REDIRECT_URI, redirect_url))
    if scopes:
        params.append((OAuthParams.SCOPE, " ".join(scopes)))
    params.append((OAuthParams.STATE, state.get_secret_value()))

    extras = iter_params(extra_params)
    parts = urlsplit(auth_url)
    used = {key for key, _ in parse_qsl(parts.query, keep_blank_values=True)}
    for key, _ in params + extras:
        if key in used:
            raise ConfigurationError(f"authorization parameter '{key}' is already set")
        used.add(key)
    params.extend(extras)

    query = urlencode(params)
    if parts.query:
        query = f"{parts.query}&{query}"

    logger.debug(f"[authorize] 已生成 {response_type.value} 授权 URL: {parts.scheme}://{parts.netloc}{parts.path}")
    return urlunsplit(parts._replace(query=query))
