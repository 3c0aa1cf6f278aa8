"""HTML adapter for verse-annotated Bible pages."""

from __future__ import annotations

from pathlib import Path
import re

from bs4 import BeautifulSoup, NavigableString, Tag

from versicle.formats.base import BaseFormatAdapter, DetectResult
from versicle.ir.models import Corpus, LossClass
from versicle.ir.normalization import escape_markup, normalize_whitespace
from versicle.structure.emitter import MarkupDialect, StructuralEmitter
from versicle.structure.parser import parse_tree
from versicle.structure.tree import MarkupNode, NodeKind

_CHAPTER_HEADING_RE = re.compile(r"^chapter\s+(\d+)$", re.IGNORECASE)
_HTML_SUFFIXES = {".html", ".htm", ".xhtml"}

_STYLE = """  <style>
    body { font-family: Georgia, serif; max-width: 800px; margin: 0 auto; padding: 20px; }
    h1 { text-align: center; }
    h2 { margin-top: 2em; border-bottom: 1px solid #ccc; }
    .verse { margin: 0.5em 0; }
    .verse-num { font-weight: bold; color: #666; margin-right: 0.5em; }
  </style>"""


def _html_header(corpus: Corpus) -> str:
    title = escape_markup(corpus.title or corpus.id)
    return "\n".join(
        [
            "<!DOCTYPE html>",
            f'<html lang="{escape_markup(corpus.language or "en")}">',
            "<head>",
            '  <meta charset="UTF-8">',
            '  <meta name="viewport" content="width=device-width, initial-scale=1.0">',
            f"  <title>{title}</title>",
            _STYLE,
            "</head>",
            "<body>",
            f"<h1>{title}</h1>",
        ]
    )


HTML_DIALECT = MarkupDialect(
    name="html",
    header=_html_header,
    footer="</body>\n</html>",
    book_open='<article id="{id}">',
    book_title="<h2>{title}</h2>",
    book_close="</article>",
    chapter_open='<section class="chapter" id="ch{chapter}">\n<h3>Chapter {chapter}</h3>',
    chapter_close="</section>",
    paragraph=(
        '<p class="verse" data-verse="{verse}"><span class="verse-num">{verse}</span>'
        '<span class="verse-text">{text}</span></p>'
    ),
    verse_marker="",
    ungrouped_paragraph="<p>{text}</p>",
    indent="",
)


def _classes(element: Tag) -> list[str]:
    raw = element.get("class") or []
    return raw.split() if isinstance(raw, str) else list(raw)


def _number(raw: object) -> int:
    try:
        return int(str(raw).strip())
    except ValueError:
        return 0


class HTMLAdapter(BaseFormatAdapter):
    """Extract verses from HTML markup and regenerate a simple reading page."""

    name = "html"
    inputs = ("file",)
    output_suffix = ".html"
    raw_key = "_html_raw"
    extract_loss = LossClass.L1
    extract_warnings = ("HTML styling and unrecognized markup are not represented in IR",)

    def _build_emitter(self) -> StructuralEmitter:
        return StructuralEmitter(self.raw_key, HTML_DIALECT)

    def _recognize(self, path: Path, data: bytes) -> DetectResult:
        if path.suffix.lower() not in _HTML_SUFFIXES:
            return DetectResult(detected=False, reason="not a .html file")
        return DetectResult(detected=True, format=self.name, reason="HTML file detected")

    def _build_corpus(self, data: bytes, path: Path) -> Corpus:
        soup = BeautifulSoup(data, "lxml")
        html = soup.find("html")
        corpus = Corpus(
            id=path.stem,
            title=normalize_whitespace(soup.title.get_text(" ")) if soup.title else "",
            language=str(html.get("lang") or "") if isinstance(html, Tag) else "",
        )

        tree = MarkupNode(kind=NodeKind.GROUP)
        articles = soup.find_all("article")
        if articles:
            for article in articles:
                tree.append(self._convert_scope(article, str(article.get("id") or path.stem)))
        else:
            tree.append(self._convert_scope(soup.body or soup, path.stem))
        return parse_tree(tree, data, corpus, fallback_id=path.stem)

    def _convert_scope(self, scope: Tag, book_id: str) -> MarkupNode:
        book = MarkupNode(kind=NodeKind.BOOK, identifier=book_id)
        chapter = 1
        for element in scope.find_all(True):
            if element.name in {"h2", "h3"}:
                heading = normalize_whitespace(element.get_text(" "))
                match = _CHAPTER_HEADING_RE.match(heading)
                if match:
                    chapter = int(match.group(1))
                elif element.name == "h2" and book.title is None and heading:
                    book.title = heading
                continue

            verse = self._verse(element)
            if verse is None:
                continue
            number, text = verse
            if text.strip():
                book.append(MarkupNode(kind=NodeKind.VERSE, identifier=f"{book_id}.{chapter}.{number}", text=text))
        return book

    def _verse(self, element: Tag) -> tuple[int, str] | None:
        """Recognize the supported verse markup patterns; ``None`` for anything else."""

        classes = _classes(element)
        if element.name == "p" and "verse" in classes and element.has_attr("data-verse"):
            body = element.find("span", class_="verse-text")
            if body is not None:
                return _number(element["data-verse"]), body.get_text(" ")
            parts = [
                child.get_text(" ") if isinstance(child, Tag) else str(child)
                for child in element.children
                if not (isinstance(child, Tag) and "verse-num" in _classes(child))
            ]
            return _number(element["data-verse"]), " ".join(parts)

        if element.name == "span" and "verse" in classes and element.has_attr("data-verse"):
            return _number(element["data-verse"]), element.get_text(" ")

        if element.name == "span" and "v" in classes:
            parts: list[str] = []
            for sibling in element.next_siblings:
                if isinstance(sibling, Tag):
                    if "v" in _classes(sibling):
                        break
                    parts.append(sibling.get_text(" "))
                elif isinstance(sibling, NavigableString):
                    parts.append(str(sibling))
            return _number(element.get_text()), " ".join(parts)

        return None
