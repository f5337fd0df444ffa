"""lxml-backed parse/render pair for markup archive members."""

from __future__ import annotations

import codecs
from dataclasses import dataclass
from typing import Any, Optional

import lxml.html
from lxml import etree

from .errors import ParseError, RenderError

XML_FLAVOUR = "xml"
HTML_FLAVOUR = "html"


@dataclass
class MarkupTree:
    """A parsed markup member plus what is needed to serialize it back."""

    root: Any
    flavour: str
    encoding: str = "UTF-8"
    xml_declaration: bool = False
    byte_order_mark: bool = False


def local_name(element: Any) -> Optional[str]:
    """Return the lower-cased local tag name, or None for comments and PIs."""

    tag = element.tag
    if not isinstance(tag, str):
        return None
    return tag.rsplit("}", 1)[-1].lower()


def _has_xml_declaration(payload: bytes) -> bool:
    head = payload[:64]
    if head.startswith(codecs.BOM_UTF8):
        head = head[len(codecs.BOM_UTF8):]
    return head.lstrip().startswith(b"<?xml")


def _preview(payload: bytes) -> str:
    return payload[:80].decode("utf-8", "replace")


def parse_markup(payload: bytes, *, name: str = "") -> MarkupTree:
    """Parse a member's bytes, choosing the XML or HTML parser.

    Members named ``*.xhtml`` and members that open with an XML declaration
    are parsed as XML so that the declaration, DOCTYPE and namespaces survive
    re-serialization. Everything else goes through ``lxml.html``.
    """

    if name.lower().endswith(".xhtml") or _has_xml_declaration(payload):
        return _parse_xml(payload, name)
    return _parse_html(payload, name)


def _parse_xml(payload: bytes, name: str) -> MarkupTree:
    parser = etree.XMLParser(
        resolve_entities=False,
        remove_blank_text=False,
        strip_cdata=False,
        no_network=True,
    )
    try:
        root = etree.fromstring(payload, parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError(f"Could not parse {name or 'member'} as XML: {exc}") from exc
    if root is None:
        raise ParseError(f"{name or 'Member'} contains no XML document element.")

    docinfo = root.getroottree().docinfo
    return MarkupTree(
        root=root,
        flavour=XML_FLAVOUR,
        encoding=docinfo.encoding or "UTF-8",
        xml_declaration=_has_xml_declaration(payload),
    )


def _parse_html(payload: bytes, name: str) -> MarkupTree:
    byte_order_mark = payload.startswith(codecs.BOM_UTF8)
    try:
        text = payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError(
            f"{name or 'Member'} is not valid UTF-8 ({_preview(payload)!r}...)"
        ) from exc

    try:
        root = lxml.html.document_fromstring(text)
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
        raise ParseError(f"Could not parse {name or 'member'} as HTML: {exc}") from exc

    return MarkupTree(
        root=root,
        flavour=HTML_FLAVOUR,
        encoding="UTF-8",
        byte_order_mark=byte_order_mark,
    )


def render_markup(tree: MarkupTree) -> bytes:
    """Serialize a (possibly mutated) tree back to bytes."""

    document = tree.root.getroottree()
    try:
        if tree.flavour == XML_FLAVOUR:
            return etree.tostring(
                document,
                encoding=tree.encoding,
                xml_declaration=tree.xml_declaration,
            )
        rendered = etree.tostring(document, method="html", encoding="unicode")
        payload = rendered.encode(tree.encoding)
    except (etree.SerialisationError, LookupError, ValueError) as exc:
        raise RenderError(f"Error rendering modified markup: {exc}") from exc

    if tree.byte_order_mark:
        payload = codecs.BOM_UTF8 + payload
    return payload
