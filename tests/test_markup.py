"""Tests for the lxml parse/render pair."""

import codecs

import pytest

from folio.errors import ParseError
from folio.markup import HTML_FLAVOUR, XML_FLAVOUR, parse_markup, render_markup


def test_html_members_use_html_parser(sample_page):
    tree = parse_markup(sample_page, name="page.html")

    assert tree.flavour == HTML_FLAVOUR
    assert b"<p>Hi</p><p>  Bye  </p>" in render_markup(tree)


def test_xhtml_round_trip_keeps_declaration_and_doctype(sample_xhtml):
    tree = parse_markup(sample_xhtml, name="OEBPS/chapter.xhtml")
    rendered = render_markup(tree)

    assert tree.flavour == XML_FLAVOUR
    assert rendered.startswith(b"<?xml")
    assert b"<!DOCTYPE html>" in rendered
    assert b'xmlns="http://www.w3.org/1999/xhtml"' in rendered
    assert b"<em>second</em>" in rendered


def test_xml_declaration_selects_xml_parser_for_html_suffix(sample_xhtml):
    tree = parse_markup(sample_xhtml, name="chapter.html")
    assert tree.flavour == XML_FLAVOUR


def test_malformed_xhtml_raises_parse_error():
    with pytest.raises(ParseError):
        parse_markup(b"<html><body><p>unclosed</body></html>", name="bad.xhtml")


def test_invalid_utf8_html_raises_parse_error():
    with pytest.raises(ParseError):
        parse_markup(b"<p>\xff\xfe broken</p>", name="bad.html")


def test_empty_html_raises_parse_error():
    with pytest.raises(ParseError):
        parse_markup(b"", name="empty.html")


def test_non_ascii_text_survives_html_round_trip():
    payload = "<p>Café à la crème</p>".encode("utf-8")

    rendered = render_markup(parse_markup(payload, name="menu.html"))

    assert "Café à la crème".encode("utf-8") in rendered


def test_byte_order_mark_is_restored():
    payload = codecs.BOM_UTF8 + b"<p>Hi</p>"

    rendered = render_markup(parse_markup(payload, name="page.html"))

    assert rendered.startswith(codecs.BOM_UTF8)
