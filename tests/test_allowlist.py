"""Tests for allow-list loading."""

import pytest

from core.allowlist import load_allowlist, parse_allowlist
from core.exceptions import ConfigurationException
from core.models import Allowlist


class TestParseAllowlist:
    """Tests for parse_allowlist."""

    def test_full_document(self):
        allowlist = parse_allowlist({
            "general": ["CVE-1", "CVE-2"],
            "images": {"library/alpine": ["CVE-3"]},
        })

        assert allowlist.general == {"CVE-1", "CVE-2"}
        assert allowlist.images["library/alpine"] == {"CVE-3"}

    def test_missing_sections(self):
        assert parse_allowlist({"general": ["CVE-1"]}).images == {}
        assert parse_allowlist({"images": {"a": ["CVE-1"]}}).general == frozenset()

    def test_none_document(self):
        assert parse_allowlist(None) == Allowlist.empty()

    @pytest.mark.parametrize("data", [
        ["CVE-1"],
        {"general": "CVE-1"},
        {"general": [1, 2]},
        {"images": ["CVE-1"]},
        {"images": {"alpine": "CVE-1"}},
    ])
    def test_wrong_shape(self, data):
        with pytest.raises(ConfigurationException):
            parse_allowlist(data)


class TestLoadAllowlist:
    """Tests for load_allowlist."""

    def test_no_path(self):
        assert load_allowlist(None) == Allowlist.empty()

    def test_load_file(self, allowlist_file):
        allowlist = load_allowlist(allowlist_file)

        assert allowlist.general == {"CVE-3"}
        assert allowlist.names_for("X") == {"CVE-3", "CVE-4"}

    def test_load_string_path(self, allowlist_file):
        assert load_allowlist(str(allowlist_file)).general == {"CVE-3"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationException, match="Could not read"):
            load_allowlist(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("general: [CVE-1\n")

        with pytest.raises(ConfigurationException, match="Could not parse"):
            load_allowlist(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_allowlist(path) == Allowlist.empty()
