"""
错误类型定义。

OAuthError
├── ConfigurationError   配置错误 / 缺少必填字段 / 额外参数与必填字段冲突
├── TransportError       网络或超时错误 (由注入的 transport 抛出)
├── ResponseFormatError  响应既不是 Token 也不是结构化错误
│   └── EmptyResponseError
├── ServerError          授权服务器返回的 RFC 6749 §5.2 错误
└── StateMismatch        CSRF state 不一致

所有错误都不会在内部重试。
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class ErrorCode(str, Enum):
    """RFC 6749 §5.2 定义的错误码。"""
    INVALID_REQUEST = "invalid_request"
    INVALID_CLIENT = "invalid_client"
    INVALID_GRANT = "invalid_grant"
    UNAUTHORIZED_CLIENT = "unauthorized_client"
    UNSUPPORTED_GRANT_TYPE = "unsupported_grant_type"
    INVALID_SCOPE = "invalid_scope"


class ServerErrorResponse(BaseModel):
    """
    Token Endpoint 返回的错误体。
    未知的 error 值原样保留为字符串。
    """
    model_config = ConfigDict(frozen=True, extra="ignore")

    error: Union[ErrorCode, str]
    error_description: Optional[str] = None
    error_uri: Optional[str] = None

    @field_validator("error")
    @classmethod
    def _known_code(cls, value: Union[ErrorCode, str]) -> Union[ErrorCode, str]:
        if isinstance(value, ErrorCode):
            return value
        try:
            return ErrorCode(value)
        except ValueError:
            return value

    @property
    def code(self) -> str:
        """错误码的字符串形式。"""
        return self.error.value if isinstance(self.error, ErrorCode) else self.error

    def __str__(self) -> str:
        formatted = self.code
        if self.error_description:
            formatted += f": {self.error_description}"
        if self.error_uri:
            formatted += f" / See {self.error_uri}"
        return formatted


class OAuthError(Exception):
    """所有 oauthflow 错误的基类。"""


class ConfigurationError(OAuthError, ValueError):
    """配置无效，总是在任何网络访问之前同步抛出。"""


class TransportError(OAuthError):
    """注入的 HTTP transport 失败 (网络错误、超时等)。原始异常通过 __cause__ 保留。"""


class ResponseFormatError(OAuthError):
    """响应体无法解析为 Token 或 ServerErrorResponse。"""

    def __init__(self, status_code: int, body: bytes, reason: str = "malformed server response"):
        self.status_code = status_code
        self.body = body
        self.reason = reason
        super().__init__(f"{reason}: {status_code}")


class EmptyResponseError(ResponseFormatError):
    """服务器返回了空响应体。"""

    def __init__(self, status_code: int):
        super().__init__(status_code, b"", "request resulted in empty response")


class ServerError(OAuthError):
    """授权服务器返回的结构化 OAuth2 错误。"""

    def __init__(self, status_code: int, response: ServerErrorResponse):
        self.status_code = status_code
        self.response = response
        super().__init__(f"request resulted in error response ({status_code}): {response}")

    @property
    def error(self) -> Union[ErrorCode, str]:
        return self.response.error

    @property
    def description(self) -> Optional[str]:
        return self.response.error_description

    @property
    def uri(self) -> Optional[str]:
        return self.response.error_uri


class StateMismatch(OAuthError):
    """回传的 state 与发起授权时生成的不一致。调用方必须中止当前流程。"""
