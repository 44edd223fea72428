"""
配置加载器：将 YAML 中的 Provider 定义解析为 Pydantic 模型，再转换为 Client。

    providers:
      - id: spotify
        client_id: ${SPOTIFY_CLIENT_ID}
        client_secret: ${SPOTIFY_CLIENT_SECRET}
        auth_url: https://accounts.spotify.com/authorize
        token_url: https://accounts.spotify.com/api/token
        redirect_url: http://localhost:8080/api/auth/redirect
        scopes: [user-read-private]

字符串中的 ${ENV_VAR} 占位符在 to_client() 时被替换为环境变量值。
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from oauthflow.auth.oauth_types import TokenEndpointAuthMethod
from oauthflow.client import Client
from oauthflow.errors import ConfigurationError
from oauthflow.secret_values import ClientSecret

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{(\w+)\}")


# ── Provider 配置 ─────────────────────────────────────

class ProviderConfig(BaseModel):
    id: str
    client_id: str
    client_secret: Optional[ClientSecret] = None
    auth_url: str
    token_url: str
    redirect_url: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    auth_method: TokenEndpointAuthMethod = TokenEndpointAuthMethod.CLIENT_SECRET_BASIC

    # 每次生成授权 URL 时附加的参数 (如 Google 的 access_type=offline)
    extra_authorize_params: Dict[str, str] = Field(default_factory=dict)

    # 创建 OAuth Client 的文档地址，配置错误时附在报错信息中
    doc_url: Optional[str] = None

    def to_client(self) -> Client:
        """
        转换为不可变的 Client。

        ${ENV_VAR} 占位符在这里才解析，未使用的 Provider 不要求设置环境变量。

        Raises:
            ConfigurationError: 环境变量缺失或字段校验失败，信息中带 Provider id 与 doc_url
        """
        try:
            secret = None
            if self.client_secret is not None:
                secret = ClientSecret(resolve_env(self.client_secret.get_secret_value()))
            return Client.new(
                resolve_env(self.client_id),
                resolve_env(self.auth_url),
                resolve_env(self.token_url),
                client_secret=secret,
                redirect_url=resolve_env(self.redirect_url) if self.redirect_url else None,
                scopes=substitute_env(self.scopes),
                auth_method=self.auth_method,
            )
        except ConfigurationError as e:
            message = f"provider '{self.id}': {e}"
            if self.doc_url:
                message += f" (create an OAuth client at {self.doc_url})"
            raise ConfigurationError(message) from e

    def authorize_params(self) -> Dict[str, str]:
        return substitute_env(self.extra_authorize_params)


class ProvidersConfig(BaseModel):
    providers: List[ProviderConfig] = Field(default_factory=list)

    def get_provider(self, provider_id: str) -> Optional[ProviderConfig]:
        for p in self.providers:
            if p.id == provider_id:
                return p
        return None

    def clients(self) -> Dict[str, Client]:
        """所有 Provider 对应的 Client，按 id 索引。"""
        return {p.id: p.to_client() for p in self.providers}


# ── Loading & Resolution ──────────────────────────────

_CONFIG_SEARCH_PATHS = [
    "config/providers.yaml",
    "providers.yaml",
]


def resolve_env(value: str) -> str:
    """解析 ${ENV_VAR} 占位符为环境变量值。"""
    def replacer(m: re.Match) -> str:
        env_val = os.getenv(m.group(1), "")
        if not env_val:
            raise ConfigurationError(f"environment variable {m.group(1)} is not set")
        return env_val
    return _ENV_PATTERN.sub(replacer, value)


def substitute_env(obj: Any) -> Any:
    """Recursively substitute ${ENV_VAR} placeholders in strings."""
    if isinstance(obj, str):
        return resolve_env(obj)
    elif isinstance(obj, dict):
        return {k: substitute_env(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [substitute_env(v) for v in obj]
    return obj


def find_config_root() -> Path:
    """Find the provider config file or directory."""
    env_path = os.getenv("OAUTHFLOW_CONFIG")
    if env_path:
        return Path(env_path)

    for p in _CONFIG_SEARCH_PATHS:
        path = Path(p)
        if path.exists():
            return path

    return Path("config")


def load_all_yamls(root: Path) -> dict:
    """Load and merge all YAML files under root."""
    combined: Dict[str, List[Any]] = {"providers": []}

    files: List[Path] = []
    if root.is_file():
        files.append(root)
    elif root.is_dir():
        files.extend(root.glob("**/*.yaml"))
        files.extend(root.glob("**/*.yml"))
        files.sort()
    else:
        logger.warning(f"配置路径不存在: {root}")

    for f in files:
        try:
            with open(f, "r", encoding="utf-8") as fp:
                content = yaml.safe_load(fp)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"failed to load {f}: {e}") from e

        if not content:
            continue
        if not isinstance(content, dict):
            raise ConfigurationError(f"{f}: top level must be a mapping")

        combined["providers"].extend(content.get("providers") or [])
        logger.debug(f"已读取配置文件: {f}")

    return combined


def load_config(path: Optional[str | Path] = None) -> ProvidersConfig:
    """
    Load, merge, and validate provider configuration from YAML files.

    Raises:
        ConfigurationError: YAML 无法解析、环境变量缺失或字段校验失败
    """
    if path is None:
        path = find_config_root()
    path = Path(path)

    raw = load_all_yamls(path)

    try:
        config = ProvidersConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"invalid provider configuration: {e}") from e

    logger.info(f"已加载 {len(config.providers)} 个 OAuth Provider 配置")
    return config
