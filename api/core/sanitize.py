"""
Input sanitization for text that ends up inside AI prompts.
"""

from __future__ import annotations

import re

NAME_MAX = 100
SHORT_TEXT_MAX = 200
MEDIUM_TEXT_MAX = 500
LONG_TEXT_MAX = 2000
NOTES_MAX = 5000

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_ZERO_WIDTH = re.compile("[\\u200B-\\u200D\\uFEFF]")
_NAME_DISALLOWED = re.compile("[^a-zA-Z\\s\\-'.\\u00C0-\\u024F\\u1E00-\\u1EFF]")

_SUSPICIOUS_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"ignore\s+(all\s+)?previous\s+instructions?",
        r"ignore\s+(all\s+)?above",
        r"disregard\s+(all\s+)?previous",
        r"forget\s+(all\s+)?previous",
        r"new\s+instructions?:",
        r"system\s*prompt",
        r"\[INST\]",
        r"\[/INST\]",
        r"<<SYS>>",
        r"<\|im_start\|>",
        r"assistant:",
        r"user:",
    )
]


def sanitize_for_ai(text: str | None, max_length: int = MEDIUM_TEXT_MAX) -> str:
    if not text:
        return ""

    sanitized = _CONTROL_CHARS.sub("", text)
    sanitized = sanitized.replace("\r\n", "\n").replace("\r", "\n")
    sanitized = _ZERO_WIDTH.sub("", sanitized).strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized


def detect_prompt_injection(text: str | None) -> bool:
    if not text:
        return False
    return any(pattern.search(text) for pattern in _SUSPICIOUS_PATTERNS)


def sanitize_name(name: str | None) -> str:
    if not name:
        return ""
    return _NAME_DISALLOWED.sub("", name).strip()[:NAME_MAX]


def sanitize_chat_messages(messages: list[dict[str, str]]) -> list[dict[str, str]]:
    return [
        {
            "role": msg.get("role") if msg.get("role") in {"user", "assistant"} else "user",
            "content": sanitize_for_ai(msg.get("content"), LONG_TEXT_MAX),
        }
        for msg in messages
    ]
