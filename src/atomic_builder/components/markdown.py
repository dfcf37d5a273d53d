"""
Markdown to HTML conversion for component README files.

Covers what component documentation uses: ATX headings, paragraphs, fenced
code blocks, bullet and ordered lists, pipe tables, and inline code, bold,
italic and links. All text is HTML-escaped before inline markup is applied.
"""

import re
from typing import List

from markupsafe import escape

_HEADING = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
_FENCE = re.compile(r"^\s*(```|~~~)\s*([\w+-]*)\s*$")
_BULLET = re.compile(r"^(\s*)[*+-]\s+(.*)$")
_ORDERED = re.compile(r"^(\s*)\d+[.)]\s+(.*)$")
_TABLE_SEPARATOR = re.compile(r"^\s*\|?\s*:?-+:?\s*(\|\s*:?-+:?\s*)*\|?\s*$")
_HR = re.compile(r"^\s*([-*_])(\s*\1){2,}\s*$")


class MarkdownService:
    """Stateless converter; one instance is shared by the routes."""

    def _process_inline_markdown(self, text: str) -> str:
        """Escape the text, then apply code spans, links, bold and italic."""
        code_spans: List[str] = []

        def stash_code(match):
            code_spans.append(f"<code>{escape(match.group(1))}</code>")
            return f"\x00{len(code_spans) - 1}\x00"

        text = re.sub(r"`([^`]+)`", stash_code, text)
        text = str(escape(text))
        text = re.sub(
            r"\[([^\]]+)\]\(([^)\s]+)\)",
            lambda m: f'<a href="{m.group(2)}">{m.group(1)}</a>'
            if not m.group(2).lower().startswith("javascript:") else m.group(1),
            text,
        )
        text = re.sub(r"(\*\*|__)(?=\S)(.+?)(?<=\S)\1", r"<strong>\2</strong>", text)
        text = re.sub(r"(?<![*\w])([*_])(?=\S)(.+?)(?<=\S)\1(?![*\w])", r"<em>\2</em>", text)
        return re.sub(r"\x00(\d+)\x00", lambda m: code_spans[int(m.group(1))], text)

    @staticmethod
    def _parse_table_row(line: str) -> List[str]:
        return [cell.strip() for cell in line.strip().strip("|").split("|")]

    def convert_to_html(self, markdown: str) -> str:
        if not isinstance(markdown, str) or not markdown.strip():
            return ""

        lines = markdown.replace("\r\n", "\n").split("\n")
        html_output: List[str] = []
        paragraph: List[str] = []
        list_stack: List[str] = []

        def flush_paragraph():
            if paragraph:
                html_output.append(f"<p>{self._process_inline_markdown(' '.join(paragraph))}</p>")
                paragraph.clear()

        def close_lists():
            while list_stack:
                html_output.append(f"</li></{list_stack.pop()}>")

        i = 0
        while i < len(lines):
            line = lines[i]
            stripped = line.strip()

            # --- Fenced code ---
            fence = _FENCE.match(line)
            if fence:
                flush_paragraph()
                close_lists()
                marker, lang = fence.group(1), fence.group(2)
                code: List[str] = []
                i += 1
                while i < len(lines) and lines[i].strip() != marker:
                    code.append(lines[i])
                    i += 1
                css_class = f' class="language-{escape(lang)}"' if lang else ""
                html_output.append(f"<pre><code{css_class}>{escape(chr(10).join(code))}</code></pre>")
                i += 1
                continue

            if not stripped:
                flush_paragraph()
                close_lists()
                i += 1
                continue

            # --- Headings / rules ---
            heading = _HEADING.match(stripped)
            if heading:
                flush_paragraph()
                close_lists()
                level = len(heading.group(1))
                html_output.append(f"<h{level}>{self._process_inline_markdown(heading.group(2))}</h{level}>")
                i += 1
                continue

            if _HR.match(stripped):
                flush_paragraph()
                close_lists()
                html_output.append("<hr>")
                i += 1
                continue

            # --- Tables ---
            if "|" in stripped and i + 1 < len(lines) and _TABLE_SEPARATOR.match(lines[i + 1]):
                flush_paragraph()
                close_lists()
                headers = self._parse_table_row(stripped)
                html_output.append("<table><thead><tr>")
                html_output.extend(f"<th>{self._process_inline_markdown(h)}</th>" for h in headers)
                html_output.append("</tr></thead><tbody>")
                i += 2
                while i < len(lines) and "|" in lines[i] and lines[i].strip():
                    cells = self._parse_table_row(lines[i])
                    cells += [""] * (len(headers) - len(cells))
                    html_output.append("<tr>")
                    html_output.extend(
                        f"<td>{self._process_inline_markdown(c)}</td>" for c in cells[: len(headers)]
                    )
                    html_output.append("</tr>")
                    i += 1
                html_output.append("</tbody></table>")
                continue

            # --- Lists ---
            bullet = _BULLET.match(line)
            ordered = _ORDERED.match(line)
            if bullet or ordered:
                flush_paragraph()
                tag = "ul" if bullet else "ol"
                content = (bullet or ordered).group(2)
                if list_stack and list_stack[-1] == tag:
                    html_output.append("</li>")
                else:
                    close_lists()
                    html_output.append(f"<{tag}>")
                    list_stack.append(tag)
                html_output.append(f"<li>{self._process_inline_markdown(content)}")
                i += 1
                continue

            if list_stack and line.startswith((" ", "\t")):
                html_output.append(f" {self._process_inline_markdown(stripped)}")
                i += 1
                continue

            close_lists()
            paragraph.append(stripped)
            i += 1

        flush_paragraph()
        close_lists()
        return "\n".join(html_output)


_markdown_service = MarkdownService()


def convert_to_html(markdown: str) -> str:
    return _markdown_service.convert_to_html(markdown)
