from pathlib import Path

import pytest

from app.services.templates import ListingTemplates, TemplateLoadError, from_mtimestamp, humanize_size
from app.tests.conftest import write_templates


class TestFromMtimestamp:
    @pytest.mark.parametrize(
        "value, expected",
        [(0, "1970-01-01 00:00:00"), (1_600_000_000, "2020-09-13 12:26:40"), ("86400", "1970-01-02 00:00:00")],
    )
    def test_formats_utc(self, value, expected: str) -> None:
        assert from_mtimestamp(value) == expected

    @pytest.mark.parametrize("value", [10**20, "soon", None])
    def test_invalid_timestamp(self, value) -> None:
        assert from_mtimestamp(value) == "Invalid timestamp"


class TestHumanizeSize:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.00 KiB"),
            (1536, "1.50 KiB"),
            (1 << 20, "1.00 MiB"),
            (5 * (1 << 30), "5.00 GiB"),
            (3 * (1 << 40), "3072.00 GiB"),
        ],
    )
    def test_units(self, size: int, expected: str) -> None:
        assert humanize_size(size) == expected


class TestListingTemplates:
    def test_missing_index_file(self, tmp_path: Path) -> None:
        with pytest.raises(TemplateLoadError, match="index template"):
            ListingTemplates(tmp_path / "absent.html")

    def test_missing_error_file(self, tmp_path: Path) -> None:
        write_templates(tmp_path)
        with pytest.raises(TemplateLoadError, match="error template"):
            ListingTemplates(tmp_path / "index.html", tmp_path / "absent.html")

    def test_syntax_error_is_reported_at_load(self, tmp_path: Path) -> None:
        write_templates(tmp_path, index="{% for e in entry %}")
        with pytest.raises(TemplateLoadError) as exc_info:
            ListingTemplates(tmp_path / "index.html")
        assert exc_info.value.component == "index"

    def test_error_page_is_optional(self, tmp_path: Path) -> None:
        write_templates(tmp_path)
        assert ListingTemplates(tmp_path / "index.html").has_error_page is False
        assert ListingTemplates(tmp_path / "index.html", tmp_path / "error.html").has_error_page is True
