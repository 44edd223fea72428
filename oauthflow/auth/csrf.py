"""
CSRF state 校验。

发起授权前生成 State.new_random()，回调时将授权服务器回传的 state 与之比较。
不一致时抛出 StateMismatch，调用方必须中止流程，不能继续换取 Token。
"""

import hmac
import logging
from typing import Optional, Union

from pydantic import SecretStr

from oauthflow.errors import StateMismatch
from oauthflow.secret_values import State

logger = logging.getLogger(__name__)


def verify_state(expected: State, received: Optional[Union[str, SecretStr]]) -> bool:
    """精确比较 state，一致返回 True，否则抛出 StateMismatch。"""
    if received is None:
        logger.warning("[csrf] 回调中缺少 state 参数")
        raise StateMismatch("authorization response is missing the state parameter")

    received_value = received.get_secret_value() if isinstance(received, SecretStr) else received
    if not hmac.compare_digest(
        expected.get_secret_value().encode("utf-8"),
        received_value.encode("utf-8"),
    ):
        logger.warning("[csrf] state 不一致，已中止授权流程")
        raise StateMismatch("CSRF state mismatch")

    return True
