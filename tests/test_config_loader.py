import textwrap

import pytest

from oauthflow.auth.oauth_types import TokenEndpointAuthMethod
from oauthflow.config_loader import find_config_root, load_config, resolve_env
from oauthflow.errors import ConfigurationError
from oauthflow.secret_values import ClientSecret

PROVIDERS_YAML = textwrap.dedent(
    """
    providers:
      - id: spotify
        client_id: ${TEST_SPOTIFY_ID}
        client_secret: ${TEST_SPOTIFY_SECRET}
        auth_url: https://accounts.spotify.com/authorize
        token_url: https://accounts.spotify.com/api/token
        redirect_url: http://localhost:8080/api/auth/redirect
        scopes: [user-read-email, user-read-email]
      - id: twitch
        client_id: ${TEST_TWITCH_ID}
        auth_url: https://id.twitch.tv/oauth2/authorize
        token_url: https://id.twitch.tv/oauth2/token
        auth_method: client_secret_post
        extra_authorize_params:
          force_verify: "true"
    """
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "providers.yaml"
    path.write_text(PROVIDERS_YAML, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_load_file(self, config_file):
        config = load_config(config_file)
        assert [p.id for p in config.providers] == ["spotify", "twitch"]
        twitch = config.get_provider("twitch")
        assert twitch.auth_method == TokenEndpointAuthMethod.CLIENT_SECRET_POST
        assert twitch.authorize_params() == {"force_verify": "true"}
        assert config.get_provider("google") is None

    def test_load_directory(self, tmp_path):
        (tmp_path / "a.yaml").write_text(PROVIDERS_YAML, encoding="utf-8")
        (tmp_path / "b.yml").write_text(
            "providers:\n  - id: other\n    client_id: x\n"
            "    auth_url: https://a.example.com\n    token_url: https://a.example.com/t\n",
            encoding="utf-8",
        )
        config = load_config(tmp_path)
        assert {p.id for p in config.providers} == {"spotify", "twitch", "other"}

    def test_to_client_resolves_env(self, config_file, monkeypatch):
        monkeypatch.setenv("TEST_SPOTIFY_ID", "spotify-id")
        monkeypatch.setenv("TEST_SPOTIFY_SECRET", "spotify-secret")

        client = load_config(config_file).get_provider("spotify").to_client()
        assert client.client_id == "spotify-id"
        assert client.client_secret == ClientSecret("spotify-secret")
        assert client.scopes == ("user-read-email",)
        assert client.redirect_url == "http://localhost:8080/api/auth/redirect"

    def test_missing_env_var(self, config_file, monkeypatch):
        monkeypatch.delenv("TEST_TWITCH_ID", raising=False)
        config = load_config(config_file)
        with pytest.raises(ConfigurationError, match="TEST_TWITCH_ID"):
            config.get_provider("twitch").to_client()

    def test_missing_env_var_points_at_doc_url(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TEST_GOOGLE_ID", raising=False)
        path = tmp_path / "google.yaml"
        path.write_text(
            "providers:\n  - id: google\n    client_id: ${TEST_GOOGLE_ID}\n"
            "    auth_url: https://accounts.google.com/o/oauth2/v2/auth\n"
            "    token_url: https://oauth2.googleapis.com/token\n"
            "    doc_url: https://console.cloud.google.com/apis/credentials\n",
            encoding="utf-8",
        )
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(path).get_provider("google").to_client()
        message = str(exc_info.value)
        assert "provider 'google'" in message
        assert "TEST_GOOGLE_ID" in message
        assert "https://console.cloud.google.com/apis/credentials" in message

    def test_invalid_url_surfaces_as_configuration_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(
            "providers:\n  - id: bad\n    client_id: x\n    auth_url: nope\n    token_url: https://a.example.com/t\n",
            encoding="utf-8",
        )
        with pytest.raises(ConfigurationError):
            load_config(path).get_provider("bad").to_client()

    def test_missing_required_field(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("providers:\n  - id: bad\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("providers: [\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_missing_path_gives_empty_config(self, tmp_path):
        assert load_config(tmp_path / "nothing-here").providers == []


class TestEnv:
    def test_resolve_env(self, monkeypatch):
        monkeypatch.setenv("TEST_TENANT", "acme")
        assert resolve_env("https://login.example.com/${TEST_TENANT}/token") == "https://login.example.com/acme/token"

    def test_find_config_root_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OAUTHFLOW_CONFIG", str(tmp_path))
        assert find_config_root() == tmp_path
