from typing import Optional

from ..env import translate_endpoint
from ..errors import ExternalCallFailure, TranslationUnavailable
from ..logger import get_logger
from ..retry import CircuitBreaker, CircuitOpenError
from .common import json_or_none, post_with_error_handling

logger = get_logger()


class LibreTranslateClient:
    """
    Plain-text translation through a LibreTranslate instance.

    Raises TranslationUnavailable (or ExternalCallFailure) on failure; the
    caller decides on the fallback. After `failure_threshold` consecutive
    failures the circuit opens and calls fail fast for `recovery_timeout`
    seconds.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        target: str = "es",
        max_length: int = 4000,
        timeout: float = 20,
        failure_threshold: int = 3,
        recovery_timeout: int = 300,
    ):
        if base_url is None:
            base_url, env_key = translate_endpoint()
            api_key = api_key or env_key
        self.url = f"{base_url.rstrip('/')}/translate"
        self.api_key = api_key
        self.target = target
        self.max_length = max_length
        self.timeout = timeout
        self.breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=ExternalCallFailure,
        )

    def translate(self, text: str) -> str:
        if not text or not text.strip():
            return text
        try:
            return self.breaker.call(self._translate, text)
        except CircuitOpenError as e:
            raise TranslationUnavailable(str(e))

    def _translate(self, text: str) -> str:
        payload = {"q": text, "source": "auto", "target": self.target, "format": "text"}
        if self.api_key:
            payload["api_key"] = self.api_key

        resp = post_with_error_handling(self.url, "translate", timeout=self.timeout, json=payload)
        data = json_or_none(resp)
        translated = data.get("translatedText") if isinstance(data, dict) else None
        if not isinstance(translated, str) or not translated.strip():
            raise TranslationUnavailable("response has no translatedText")
        return translated[: self.max_length]
