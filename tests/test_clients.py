"""
Tests for the outbound HTTP clients (Twitch auth, IGDB search, LibreTranslate).
"""

from unittest.mock import Mock, patch

import pytest
import requests

from gamematch.clients.auth import TOKEN_URL, Token, TwitchAuthClient
from gamematch.clients.igdb import IGDBSearchClient
from gamematch.clients.translate import LibreTranslateClient
from gamematch.errors import ConfigurationError, ExternalCallFailure, TranslationUnavailable


def make_response(json_data=None, status_code=200):
    """Mock requests.Response; non-2xx statuses raise on raise_for_status()."""
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=resp
        )
    return resp


class TestTwitchAuthClient:
    """Test the client-credentials token exchange."""

    @patch("gamematch.clients.auth.requests.post")
    def test_token_fetched_once_and_cached(self, mock_post):
        mock_post.return_value = make_response({"access_token": "tok", "expires_in": 5000})
        auth = TwitchAuthClient("cid", "secret")

        first = auth.get_token()
        second = auth.get_token()

        assert first is second
        assert first == Token(access_token="tok", client_id="cid", expires_in=5000)
        assert mock_post.call_count == 1
        args, kwargs = mock_post.call_args
        assert args[0] == TOKEN_URL
        assert kwargs["params"]["grant_type"] == "client_credentials"

    @patch("gamematch.clients.auth.requests.post")
    def test_credentials_from_environment(self, mock_post, monkeypatch):
        monkeypatch.setenv("TWITCH_CLIENT_ID", "env-id")
        monkeypatch.setenv("TWITCH_CLIENT_SECRET", "env-secret")
        mock_post.return_value = make_response({"access_token": "tok"})

        token = TwitchAuthClient().get_token()

        assert token.client_id == "env-id"
        assert mock_post.call_args[1]["params"]["client_secret"] == "env-secret"

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("TWITCH_CLIENT_ID", raising=False)
        monkeypatch.delenv("TWITCH_CLIENT_SECRET", raising=False)

        with pytest.raises(ConfigurationError):
            TwitchAuthClient().get_token()

    @patch("gamematch.clients.auth.requests.post")
    def test_rejected_credentials_not_retried(self, mock_post):
        mock_post.return_value = make_response({"message": "invalid client secret"}, 400)

        with pytest.raises(ConfigurationError):
            TwitchAuthClient("cid", "bad").get_token()

        assert mock_post.call_count == 1

    @patch("gamematch.retry.time.sleep")
    @patch("gamematch.clients.auth.requests.post")
    def test_transient_failure_retried(self, mock_post, mock_sleep):
        mock_post.side_effect = [
            make_response(status_code=503),
            requests.exceptions.Timeout("slow"),
            make_response({"access_token": "tok"}),
        ]

        token = TwitchAuthClient("cid", "secret").get_token()

        assert token.access_token == "tok"
        assert mock_post.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("gamematch.retry.time.sleep")
    @patch("gamematch.clients.auth.requests.post")
    def test_retries_exhausted(self, mock_post, mock_sleep):
        mock_post.return_value = make_response(status_code=503)

        with pytest.raises(ConfigurationError):
            TwitchAuthClient("cid", "secret").get_token()

        assert mock_post.call_count == 4

    @patch("gamematch.clients.auth.requests.post")
    def test_response_without_token(self, mock_post):
        mock_post.return_value = make_response({"status": 200})

        with pytest.raises(ConfigurationError):
            TwitchAuthClient("cid", "secret").get_token()

    @patch("gamematch.clients.auth.requests.post")
    def test_invalidate_forces_new_exchange(self, mock_post):
        mock_post.return_value = make_response({"access_token": "tok"})
        auth = TwitchAuthClient("cid", "secret")

        auth.get_token()
        auth.invalidate()
        auth.get_token()

        assert mock_post.call_count == 2


class TestIGDBSearchClient:
    """Test catalog search requests and failure handling."""

    @pytest.fixture
    def auth(self):
        auth = Mock()
        auth.get_token.return_value = Token(access_token="tok", client_id="cid")
        return auth

    @patch("gamematch.clients.common.requests.post")
    def test_search_posts_query_with_headers(self, mock_post, auth):
        mock_post.return_value = make_response([
            {"id": 1, "name": "Celeste", "cover": {"image_id": "co3byy"}},
        ])
        query = 'search "Celeste"; fields name, cover.image_id, alternative_names.name; limit 7;'

        candidates = IGDBSearchClient(auth).search(query)

        assert [c.image_id for c in candidates] == ["co3byy"]
        args, kwargs = mock_post.call_args
        assert args[0] == "https://api.igdb.com/v4/games"
        assert kwargs["data"] == query.encode("utf-8")
        assert kwargs["headers"]["Client-ID"] == "cid"
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_authenticate_fetches_token(self, auth):
        IGDBSearchClient(auth).authenticate()
        auth.get_token.assert_called_once()

    def test_authenticate_propagates_configuration_error(self, auth):
        auth.get_token.side_effect = ConfigurationError("missing")

        with pytest.raises(ConfigurationError):
            IGDBSearchClient(auth).authenticate()

    @patch("gamematch.clients.common.requests.post")
    def test_server_error_is_empty(self, mock_post, auth):
        mock_post.return_value = make_response({"message": "oops"}, 500)

        assert IGDBSearchClient(auth).search('search "x"; fields name; limit 1;') == []
        auth.invalidate.assert_not_called()

    @patch("gamematch.clients.common.requests.post")
    def test_unauthorized_drops_token(self, mock_post, auth):
        mock_post.return_value = make_response([{"message": "Authorization Failure"}], 401)

        assert IGDBSearchClient(auth).search('search "x"; fields name; limit 1;') == []
        auth.invalidate.assert_called_once()

    @patch("gamematch.clients.common.requests.post")
    def test_timeout_is_empty(self, mock_post, auth):
        mock_post.side_effect = requests.exceptions.Timeout("slow")

        assert IGDBSearchClient(auth).search('search "x"; fields name; limit 1;') == []

    @patch("gamematch.clients.common.requests.post")
    def test_non_list_body_is_empty(self, mock_post, auth):
        mock_post.return_value = make_response({"unexpected": True})

        assert IGDBSearchClient(auth).search('search "x"; fields name; limit 1;') == []

    @patch("gamematch.clients.common.requests.post")
    def test_invalid_json_is_empty(self, mock_post, auth):
        resp = make_response()
        resp.json.side_effect = ValueError("no json")
        mock_post.return_value = resp

        assert IGDBSearchClient(auth).search('search "x"; fields name; limit 1;') == []


class TestLibreTranslateClient:
    """Test translation requests and the circuit breaker."""

    @patch("gamematch.clients.common.requests.post")
    def test_translate_payload(self, mock_post):
        mock_post.return_value = make_response({"translatedText": "Escala la montaña."})
        client = LibreTranslateClient("https://lt.example.com/", api_key="k")

        assert client.translate("Climb the mountain.") == "Escala la montaña."
        args, kwargs = mock_post.call_args
        assert args[0] == "https://lt.example.com/translate"
        assert kwargs["json"] == {
            "q": "Climb the mountain.",
            "source": "auto",
            "target": "es",
            "format": "text",
            "api_key": "k",
        }

    @patch("gamematch.clients.common.requests.post")
    def test_no_api_key_omitted(self, mock_post):
        mock_post.return_value = make_response({"translatedText": "Hola"})

        LibreTranslateClient("https://lt.example.com").translate("Hello")

        assert "api_key" not in mock_post.call_args[1]["json"]

    @patch("gamematch.clients.common.requests.post")
    def test_output_capped(self, mock_post):
        mock_post.return_value = make_response({"translatedText": "a" * 50})

        assert LibreTranslateClient("https://lt.example.com", max_length=10).translate("x") == "a" * 10

    @patch("gamematch.clients.common.requests.post")
    def test_blank_text_not_sent(self, mock_post):
        assert LibreTranslateClient("https://lt.example.com").translate("  ") == "  "
        mock_post.assert_not_called()

    @patch("gamematch.clients.common.requests.post")
    def test_missing_translation(self, mock_post):
        mock_post.return_value = make_response({"error": "bad request"})

        with pytest.raises(TranslationUnavailable):
            LibreTranslateClient("https://lt.example.com").translate("Hello")

    @patch("gamematch.clients.common.requests.post")
    def test_http_error(self, mock_post):
        mock_post.return_value = make_response({"error": "down"}, 503)

        with pytest.raises(ExternalCallFailure) as exc:
            LibreTranslateClient("https://lt.example.com").translate("Hello")
        assert exc.value.status == 503

    @patch("gamematch.clients.common.requests.post")
    def test_circuit_opens_after_failures(self, mock_post):
        mock_post.return_value = make_response({"error": "down"}, 503)
        client = LibreTranslateClient("https://lt.example.com", failure_threshold=3)

        for _ in range(3):
            with pytest.raises(ExternalCallFailure):
                client.translate("Hello")
        with pytest.raises(TranslationUnavailable, match="Circuit breaker is OPEN"):
            client.translate("Hello")

        assert mock_post.call_count == 3

    def test_endpoint_from_environment(self, monkeypatch):
        monkeypatch.setenv("LIBRETRANSLATE_URL", "https://translate.internal/")
        monkeypatch.setenv("LIBRETRANSLATE_API_KEY", "secret")

        client = LibreTranslateClient()

        assert client.url == "https://translate.internal/translate"
        assert client.api_key == "secret"
