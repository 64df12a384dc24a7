"""Tests for inventory rendering."""

import pytest

from webfleet.domain.entities.inventory import InventoryDocument
from webfleet.domain.errors import TemplateRenderError


class TestInventoryDocument:
    def test_default_template_is_newline_joined(self):
        doc = InventoryDocument(("A", "B", "C"))
        assert doc.render() == "A\nB\nC"

    def test_single_address(self):
        assert InventoryDocument(("54.0.0.1",)).render() == "54.0.0.1"

    def test_custom_template(self):
        doc = InventoryDocument(("10.0.0.1", "10.0.0.2"))
        rendered = doc.render("# $count hosts\n[webservers]\n$hosts\n")
        assert rendered == "# 2 hosts\n[webservers]\n10.0.0.1\n10.0.0.2\n"

    def test_unknown_variable(self):
        with pytest.raises(TemplateRenderError, match="'port'"):
            InventoryDocument(("A",)).render("$hosts:$port")

    def test_malformed_template(self):
        with pytest.raises(TemplateRenderError, match="Malformed"):
            InventoryDocument(("A",)).render("$")

    @pytest.mark.parametrize("address", ["", "10.0.0.1 10.0.0.2", "a\nb"])
    def test_rejects_bad_addresses(self, address):
        with pytest.raises(ValueError):
            InventoryDocument((address,))

    def test_write_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "build" / "hosts"
        written = InventoryDocument(("A", "B", "C")).write(target)
        assert written == target
        assert target.read_text() == "A\nB\nC"

    def test_write_does_not_touch_file_on_render_error(self, tmp_path):
        target = tmp_path / "hosts"
        with pytest.raises(TemplateRenderError):
            InventoryDocument(("A",)).write(target, "$nope")
        assert not target.exists()

    def test_len(self):
        assert len(InventoryDocument(("A", "B"))) == 2
