"""Log sanitization module for preventing secret leakage.

Access tokens borrowed from the Azure CLI and error bodies returned by the
Azure DevOps API can end up in log lines and exception messages. This module
redacts them before they are shown:
- Authorization headers
- accessToken fields in az CLI JSON output
- JWT-shaped bearer tokens
- Generic password/secret/token assignments

Design Philosophy:
- Security first: err on side of over-redaction
- Pattern-based: not brittle keyword matching
"""

import re
from re import Pattern


class LogSanitizer:
    """Sanitize sensitive data from logs and error messages.

    All methods are class methods and can be called without instantiation.
    """

    REDACTED = "[REDACTED]"
    MASKED = "****"

    # Order matters: more specific patterns should come first
    SECRET_PATTERNS: dict[str, Pattern] = {
        "authorization_bearer": re.compile(
            r"(Authorization[\"']?\s*[:=]\s*[\"']?Bearer\s+)([^\s\"',]+)", re.IGNORECASE
        ),
        "bearer": re.compile(r"(Bearer\s+)([A-Za-z0-9\-_\.=]+)"),
        "access_token_json": re.compile(r"(\"access_?token\"\s*:\s*\")([^\"]+)", re.IGNORECASE),
        "access_token": re.compile(
            r'(access[_-]?token["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE
        ),
        "password": re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE),
        "secret": re.compile(
            r'([^a-zA-Z]secret["\']?\s*[:=]\s*["\']?)([^\s"\'&,\)]+)', re.IGNORECASE
        ),
    }

    # Bare JWTs (header.payload.signature) as issued by Entra ID
    JWT_PATTERN: Pattern = re.compile(r"\beyJ[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+\.[A-Za-z0-9\-_]+")

    @classmethod
    def sanitize(cls, message: str) -> str:
        """Sanitize message by redacting sensitive patterns.

        Args:
            message: The message to sanitize

        Returns:
            Sanitized message with secrets replaced by [REDACTED]

        Examples:
            >>> LogSanitizer.sanitize("Authorization: Bearer abc.def")
            'Authorization: Bearer [REDACTED]'
            >>> LogSanitizer.sanitize('{"accessToken": "xyz"}')
            '{"accessToken": "[REDACTED]"}'
        """
        if not isinstance(message, str):
            message = str(message)

        result = message
        for pattern in cls.SECRET_PATTERNS.values():
            result = pattern.sub(r"\1" + cls.REDACTED, result)

        return cls.JWT_PATTERN.sub(cls.REDACTED, result)

    @classmethod
    def mask_value(cls, value: str, visible: int = 4) -> str:
        """Mask all but the first few characters of a value.

        Examples:
            >>> LogSanitizer.mask_value("supersecret")
            'supe****'
            >>> LogSanitizer.mask_value("abc")
            '****'
        """
        if len(value) <= visible:
            return cls.MASKED
        return value[:visible] + cls.MASKED

    @classmethod
    def sanitize_exception(cls, exc: Exception) -> str:
        """Sanitize exception message.

        Examples:
            >>> exc = ValueError("request failed: Bearer abc123")
            >>> LogSanitizer.sanitize_exception(exc)
            'request failed: Bearer [REDACTED]'
        """
        return cls.sanitize(str(exc))


__all__ = ["LogSanitizer"]
