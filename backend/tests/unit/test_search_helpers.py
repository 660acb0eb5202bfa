"""Unit tests for search input handling."""

import pytest

from services.search import escape_like


class TestEscapeLike:
    @pytest.mark.parametrize(
        "raw,escaped",
        [
            ("50%", "50\\%"),
            ("site_visit", "site\\_visit"),
            ("C:\\plans", "C:\\\\plans"),
            ("100%_done\\", "100\\%\\_done\\\\"),
        ],
    )
    def test_wildcards_escaped(self, raw, escaped):
        assert escape_like(raw) == escaped

    def test_plain_text_unchanged(self):
        assert escape_like("Harbour Street") == "Harbour Street"
