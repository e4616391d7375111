from __future__ import annotations

from typing import Any


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:
        return ""
    return str(value).replace("\ufeff", "").replace("\u00a0", " ").strip()


def normalize_key(value: Any) -> str:
    return clean_text(value).casefold()


def is_blank(value: Any) -> bool:
    return clean_text(value) == ""


def person_key(person_id: Any, first_name: Any, last_name: Any) -> tuple[str, str, str]:
    return normalize_key(person_id), normalize_key(first_name), normalize_key(last_name)


def display_name(first_name: Any, last_name: Any) -> str:
    return f"{clean_text(first_name)} {clean_text(last_name)}"
