from __future__ import annotations
import logging
import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

import httpx

log = logging.getLogger(__name__)

MARKER_PREFIX = "<!-- mktdept-verify:"
MARKER_SUFFIX = " -->"
MARKER_PATTERN = re.compile(r"<!--\s*mktdept-verify:([a-zA-Z0-9]+)\s*-->")
CODE_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789"
CODE_LENGTH = 8
USER_AGENT = "MarketingDepartment/1.0"


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    warning: bool
    url: Optional[str]
    found_code: Optional[str]
    message: str

    @classmethod
    def ok(cls, url: str, code: Optional[str], message: str) -> "VerificationResult":
        return cls(True, False, url, code, message)

    @classmethod
    def warn(cls, url: str, code: Optional[str], message: str) -> "VerificationResult":
        return cls(True, True, url, code, message)

    @classmethod
    def failed(cls, message: str) -> "VerificationResult":
        return cls(False, False, None, None, message)

    @property
    def is_live(self) -> bool:
        return self.success


def generate_verification_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def embed_marker(code: str) -> str:
    return f"{MARKER_PREFIX}{code}{MARKER_SUFFIX}"


def extract_code(html: Optional[str]) -> Optional[str]:
    if not html:
        return None
    match = MARKER_PATTERN.search(html)
    return match.group(1) if match else None


def build_full_url(url_base: Optional[str], uri: str) -> Optional[str]:
    if url_base is None or not url_base.strip():
        return None
    base = url_base if url_base.endswith("/") else url_base + "/"
    path = uri[1:] if uri.startswith("/") else uri
    return base + path


class UrlVerificationService:
    """Checks that exported content is reachable and carries the expected deployment code."""

    def __init__(self, timeout: float = 30.0, transport: httpx.BaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    generate_verification_code = staticmethod(generate_verification_code)
    embed_marker = staticmethod(embed_marker)
    extract_code = staticmethod(extract_code)
    build_full_url = staticmethod(build_full_url)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=self.transport,
        )

    def verify(self, url: str, expected_code: Optional[str], require_code_match: bool) -> VerificationResult:
        started = time.monotonic()
        try:
            with self._client() as client:
                response = client.get(url)
        except httpx.TimeoutException:
            log.warning("Verification timed out for %s", url)
            return VerificationResult.failed(f"Connection failed: request timed out after {self.timeout:g}s")
        except httpx.InvalidURL as e:
            return VerificationResult.failed(f"Invalid URL: {e}")
        except httpx.UnsupportedProtocol as e:
            return VerificationResult.failed(f"Invalid URL: {e}")
        except httpx.HTTPError as e:
            log.warning("Verification request failed for %s: %s", url, e)
            return VerificationResult.failed(f"Connection failed: {e}")

        status = response.status_code
        log.info("GET %s -> %s (%.0f ms)", url, status, (time.monotonic() - started) * 1000)

        if status >= 400:
            return VerificationResult.failed(f"HTTP {status} response")
        if status >= 300:
            return VerificationResult.failed(f"Unexpected redirect (HTTP {status})")

        if expected_code is None or not require_code_match:
            return VerificationResult.ok(url, None, f"URL is live (HTTP {status})")

        found = extract_code(response.text)
        if found is None:
            return VerificationResult.warn(url, None, "URL is live but no verification code found")
        if found != expected_code:
            return VerificationResult.warn(
                url,
                found,
                f"URL is live but verification code mismatch (expected: {expected_code}, "
                f"found: {found}) - content may be stale",
            )
        return VerificationResult.ok(url, found, "URL is live and verification code matches")

    def check_liveness(self, url: str) -> VerificationResult:
        return self.verify(url, None, False)
