"""
Tests for README conversion to HTML.
"""
import pytest

from atomic_builder.components.markdown import MarkdownService, convert_to_html


@pytest.mark.parametrize("text", ["", "   \n  ", None])
def test_empty_input(text):
    assert convert_to_html(text) == ""


def test_headings_and_paragraphs():
    html = convert_to_html("# Button\n\nUse it\nfor actions.\n\n### Usage ###")
    assert html == "<h1>Button</h1>\n<p>Use it for actions.</p>\n<h3>Usage</h3>"


def test_inline_markup():
    html = MarkdownService()._process_inline_markdown("Use **bold**, *it* and `a<b`")
    assert html == "Use <strong>bold</strong>, <em>it</em> and <code>a&lt;b</code>"


def test_raw_html_is_escaped():
    assert convert_to_html("<b onclick=\"x\">hi</b>") == "<p>&lt;b onclick=&#34;x&#34;&gt;hi&lt;/b&gt;</p>"


def test_links():
    assert convert_to_html("[docs](https://example.com)") == '<p><a href="https://example.com">docs</a></p>'
    assert convert_to_html("[bad](javascript:void)") == "<p>bad</p>"


def test_fenced_code_keeps_content_verbatim():
    html = convert_to_html("```twig\n{{ include('x') }}\n**not bold**\n```")
    assert html == (
        '<pre><code class="language-twig">{{ include(&#39;x&#39;) }}\n**not bold**</code></pre>'
    )


def test_lists():
    html = convert_to_html("- primary\n- secondary\n\n1. first\n2. second")
    assert html.count("<ul>") == 1
    assert html.count("<ol>") == 1
    assert "<li>primary" in html
    assert "<li>second" in html
    assert html.endswith("</li></ol>")


def test_table():
    html = convert_to_html("| Prop | Type |\n|------|:----:|\n| `label` | string |\n| short |")
    assert "<th>Prop</th><th>Type</th>" in html.replace("\n", "")
    assert "<td><code>label</code></td>" in html
    # Short rows are padded to the header width.
    assert "<td>short</td>\n<td></td>" in html


def test_horizontal_rule():
    assert convert_to_html("above\n\n---\n\nbelow") == "<p>above</p>\n<hr>\n<p>below</p>"
