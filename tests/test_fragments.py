"""Tests for fragment extraction and reinsertion."""

import pytest
from lxml import etree

from folio.errors import RenderError
from folio.fragments import FragmentExtractor, reinject
from folio.markup import MarkupTree, parse_markup, render_markup
from folio.structures import TAIL_SLOT, TEXT_SLOT, TextFragment


def extract_texts(payload, name="page.html", tags=("p",)):
    tree = parse_markup(payload, name=name)
    return [fragment.text for fragment in FragmentExtractor(tags).extract(tree)]


class TestExtraction:
    def test_collects_paragraph_text_in_order(self, sample_page):
        assert extract_texts(sample_page) == ["Hi", "Bye"]

    def test_only_direct_children_of_eligible_elements(self):
        payload = b"<div>Outside</div><p>Before <b>bold</b> after</p>"
        assert extract_texts(payload) == ["Before", "after"]

    def test_whitespace_only_nodes_are_skipped(self):
        payload = b"<p>   </p><p>\n\t<span>inline</span>\r\n</p>"
        assert extract_texts(payload) == []

    def test_text_after_comment_is_a_direct_child(self):
        payload = b"<p><!-- note -->after the comment</p>"
        assert extract_texts(payload) == ["after the comment"]

    def test_nested_eligible_elements_follow_document_order(self):
        payload = b"<ul><li>A<p>B</p>C</li><li>D</li></ul>"
        assert extract_texts(payload, tags=("li", "p")) == ["A", "B", "C", "D"]

    def test_custom_tags(self):
        payload = b"<h1>Title</h1><p>Body</p>"
        assert extract_texts(payload, tags=("h1",)) == ["Title"]
        assert extract_texts(payload, tags=("H1", "p")) == ["Title", "Body"]

    def test_namespaced_xhtml(self, sample_xhtml):
        assert extract_texts(sample_xhtml, name="chapter.xhtml") == [
            "The first paragraph.",
            "A",
            "paragraph.",
        ]

    def test_order_is_stable_across_runs(self, sample_xhtml):
        first = parse_markup(sample_xhtml, name="chapter.xhtml")
        second = parse_markup(sample_xhtml, name="chapter.xhtml")
        extractor = FragmentExtractor()

        left = [(f.index, f.slot, f.original_text) for f in extractor.extract(first)]
        right = [(f.index, f.slot, f.original_text) for f in extractor.extract(second)]

        assert left == right
        assert [index for index, _, _ in left] == list(range(len(left)))

    def test_slots_address_text_and_tail(self):
        tree = parse_markup(b"<p>Lead <i>x</i> tail</p>", name="page.html")
        fragments = FragmentExtractor().extract(tree)

        assert [fragment.slot for fragment in fragments] == [TEXT_SLOT, TAIL_SLOT]
        assert fragments[0].element.tag == "p"
        assert fragments[1].element.tag == "i"

    def test_extraction_does_not_modify_tree(self, sample_xhtml):
        tree = parse_markup(sample_xhtml, name="chapter.xhtml")
        before = etree.tostring(tree.root)
        FragmentExtractor().extract(tree)
        assert etree.tostring(tree.root) == before

    def test_deep_nesting_does_not_hit_recursion_limit(self):
        root = etree.Element("html")
        parent = root
        for _ in range(3000):
            parent = etree.SubElement(parent, "div")
        etree.SubElement(parent, "p").text = "deep"

        fragments = FragmentExtractor().extract(MarkupTree(root=root, flavour="xml"))

        assert [fragment.text for fragment in fragments] == ["deep"]


class TestFragment:
    def test_whitespace_runs(self):
        fragment = TextFragment(0, None, TEXT_SLOT, "  Hello world  \n")
        assert fragment.text == "Hello world"
        assert fragment.leading_whitespace == "  "
        assert fragment.trailing_whitespace == "  \n"

    def test_non_breaking_space_is_content(self):
        fragment = TextFragment(0, None, TEXT_SLOT, "\u00a0Hi ")
        assert fragment.text == "\u00a0Hi"
        assert fragment.leading_whitespace == ""


class TestReinjection:
    def test_whitespace_is_preserved(self):
        element = etree.Element("p")
        element.text = "  Hello world  \n"
        fragment = TextFragment(0, element, TEXT_SLOT, element.text)

        reinject([fragment], ["Bonjour"])

        assert element.text == "  Bonjour  \n"

    def test_segment_i_lands_in_fragment_i(self):
        payload = b"<p>one</p><div><p>two <b>x</b> three</p></div><p>four</p>"
        tree = parse_markup(payload, name="page.html")
        fragments = FragmentExtractor().extract(tree)

        reinject(fragments, ["1", "2", "3", "4"])

        rendered = render_markup(tree)
        assert b"<p>1</p>" in rendered
        assert b"<p>2 <b>x</b> 3</p>" in rendered
        assert b"<p>4</p>" in rendered

    def test_tail_whitespace_is_preserved(self):
        tree = parse_markup(b"<p><br>\n  line two\n</p>", name="page.html")
        fragments = FragmentExtractor().extract(tree)

        reinject(fragments, ["ligne deux"])

        assert fragments[0].element.tail == "\n  ligne deux\n"

    def test_count_mismatch_is_a_programming_error(self):
        fragment = TextFragment(0, etree.Element("p"), TEXT_SLOT, "Hi")
        with pytest.raises(ValueError):
            reinject([fragment], ["a", "b"])

    def test_control_characters_raise_render_error(self):
        element = etree.Element("p")
        element.text = "Hi"
        fragment = TextFragment(0, element, TEXT_SLOT, element.text)

        with pytest.raises(RenderError):
            reinject([fragment], ["Sa\x00lut"])

        assert element.text == "Hi"
