"""
Token Endpoint 响应解析。

1. 空响应体 -> EmptyResponseError
2. 2xx -> 解析为 token_cls
3. 非 2xx，或 2xx 但 Token 解析失败 -> 尝试解析为 ServerErrorResponse -> ServerError
4. 都失败 -> ResponseFormatError (携带原始 status 与 body)
"""

import json
import logging
from typing import Any, Tuple, Type, TypeVar

from pydantic import ValidationError

from oauthflow.errors import EmptyResponseError, ResponseFormatError, ServerError, ServerErrorResponse
from oauthflow.token import StandardToken

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _load_json(body: bytes) -> Tuple[bool, Any]:
    try:
        return True, json.loads(body)
    except ValueError:
        return False, None


def parse_token_response(status_code: int, body: bytes, token_cls: Type[T] = StandardToken) -> T:
    """将 Token Endpoint 的响应解析为 token_cls 实例，否则抛出对应的错误。"""
    if not body:
        raise EmptyResponseError(status_code)

    is_json, data = _load_json(body)
    reason = "malformed server response" if is_json else "response body is not valid JSON"

    if is_json and 200 <= status_code < 300:
        try:
            return token_cls.from_json(data)
        except (ValueError, TypeError, OverflowError) as e:
            logger.warning(f"[response] {status_code} 响应无法解析为 {token_cls.__name__}: {e}")
            reason = f"invalid token response: {e}"

    if is_json:
        try:
            error = ServerErrorResponse.model_validate(data)
        except ValidationError:
            pass
        else:
            logger.info(f"[response] 服务器返回错误 ({status_code}): {error.code}")
            raise ServerError(status_code, error)

    raise ResponseFormatError(status_code, body, reason)
