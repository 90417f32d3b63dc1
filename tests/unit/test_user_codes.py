"""Tests for shareable user codes."""

import re

from homelearn.auth.user_codes import (
    USER_CODE_PREFIX,
    generate_user_code,
    normalize_user_code,
)


def test_code_format() -> None:
    for _ in range(50):
        code = generate_user_code()
        assert re.fullmatch(r"USER[A-Z0-9]{6}", code), code


def test_codes_are_random() -> None:
    codes = {generate_user_code() for _ in range(200)}
    assert len(codes) > 190


def test_normalize() -> None:
    assert normalize_user_code("  user7k2qxa ") == "USER7K2QXA"
    assert normalize_user_code(f"{USER_CODE_PREFIX}ABC123") == "USERABC123"
