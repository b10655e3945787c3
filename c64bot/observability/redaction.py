"""Redaction helpers for text that leaves the process.

Error details end up in chat replies, so they must never carry storage
credentials, bot tokens, signed URLs or local filesystem paths.

NOTE: This is *not* a perfect DLP system. It catches the credential formats
this bot actually handles (S3 keys, Telegram tokens, presigned query strings).
"""

from __future__ import annotations

import re

_REPLACEMENT = "[REDACTED]"
_TRUNC_SUFFIX = "…(truncated)"

_SENSITIVE_VALUE_RES: list[re.Pattern[str]] = [
    # URLs (Telegram file URLs embed the bot token, S3 URLs may be presigned)
    re.compile(r"\bhttps?://\S+", flags=re.IGNORECASE),
    # Telegram bot token
    re.compile(r"\b\d{6,}:[A-Za-z0-9_-]{30,}\b"),
    # AWS access key id
    re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b"),
    # Bearer tokens
    re.compile(r"\bBearer\s+[A-Za-z0-9._\-]+\b", flags=re.IGNORECASE),
    # Generic 'key=value' patterns
    re.compile(r"\b(?:password|passwd|pwd)\s*[:=]\s*\S+", flags=re.IGNORECASE),
    re.compile(r"\b(?:access[_-]?key|secret[_-]?key|aws_secret_access_key)\s*[:=]\s*\S+", flags=re.IGNORECASE),
    re.compile(r"\b(?:token|signature|credential)\s*[:=]\s*\S+", flags=re.IGNORECASE),
]

# Absolute POSIX paths with at least two segments, e.g. /tmp/c64bot-x/game.prg
_PATH_RE = re.compile(r"(?<![\w/])/(?:[\w.\-]+/)+[\w.\-]*")


def redact_text(text: str, *, max_chars: int = 300) -> str:
    """Redact sensitive substrings and local paths, then truncate."""
    if not text:
        return text

    out = text
    for rx in _SENSITIVE_VALUE_RES:
        out = rx.sub(_REPLACEMENT, out)
    out = _PATH_RE.sub("[path]", out)

    if max_chars and len(out) > max_chars:
        out = out[:max_chars] + _TRUNC_SUFFIX

    return out


def describe_error(exc: BaseException) -> str:
    """Short, user-presentable description of an exception."""
    detail = redact_text(str(exc).strip())
    return detail or type(exc).__name__
