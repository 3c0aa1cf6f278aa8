"""Canonical ``Book.Chapter.Verse[-VerseEnd]`` locators and book-code lookups.

Parsing is permissive: a chapter or verse component that is not a
non-negative integer becomes ``0`` instead of raising, as does a range end
that precedes its start, so one bad locator degrades a single span
rather than aborting a whole conversion. ``0`` is the universal "unset" value.
"""

from __future__ import annotations

from dataclasses import replace

from versicle.ir.models import Ref

# Protestant canon in canonical order; position + 1 is the book number.
CANONICAL_BOOKS: tuple[str, ...] = (
    "Gen", "Exod", "Lev", "Num", "Deut", "Josh", "Judg", "Ruth",
    "1Sam", "2Sam", "1Kgs", "2Kgs", "1Chr", "2Chr", "Ezra", "Neh",
    "Esth", "Job", "Ps", "Prov", "Eccl", "Song", "Isa", "Jer",
    "Lam", "Ezek", "Dan", "Hos", "Joel", "Amos", "Obad", "Jonah",
    "Mic", "Nah", "Hab", "Zeph", "Hag", "Zech", "Mal",
    "Matt", "Mark", "Luke", "John", "Acts", "Rom", "1Cor", "2Cor",
    "Gal", "Eph", "Phil", "Col", "1Thess", "2Thess", "1Tim", "2Tim",
    "Titus", "Phlm", "Heb", "Jas", "1Pet", "2Pet", "1John", "2John",
    "3John", "Jude", "Rev",
)

_BOOK_NUMBERS: dict[str, int] = {code: index for index, code in enumerate(CANONICAL_BOOKS, start=1)}


def _to_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        return 0
    return max(value, 0)


def parse_ref(locator: str) -> Ref:
    """Parse a locator such as ``Gen.1.1`` or ``Matt.5.3-12`` into a :class:`Ref`.

    Only the first element after a dash is kept as ``verse_end``; any further
    dash-separated segments (``Gen.1.1-5-9``) are ignored.
    """

    parts = locator.split(".")[:3]
    book = parts[0]
    chapter = _to_int(parts[1]) if len(parts) > 1 else 0
    verse = 0
    verse_end = 0
    if len(parts) > 2:
        verse_part = parts[2]
        if "-" in verse_part:
            range_parts = verse_part.split("-")
            verse = _to_int(range_parts[0])
            verse_end = _to_int(range_parts[1])
            if verse_end < verse:
                verse_end = 0
        else:
            verse = _to_int(verse_part)

    return Ref(book=book, chapter=chapter, verse=verse, verse_end=verse_end, osis_id=locator)


def format_ref(ref: Ref) -> str:
    """Render a :class:`Ref` back into its canonical locator string."""

    text = ref.book
    if ref.chapter != 0:
        text += f".{ref.chapter}"
    if ref.verse != 0:
        text += f".{ref.verse}"
        if ref.verse_end != 0:
            text += f"-{ref.verse_end}"
    return text


def make_ref(book: str, chapter: int = 0, verse: int = 0, verse_end: int = 0) -> Ref:
    """Build a :class:`Ref` from components, deriving its canonical ``osis_id``."""

    ref = Ref(book=book, chapter=chapter, verse=verse, verse_end=verse_end)
    return replace(ref, osis_id=format_ref(ref))


def is_book_code(token: str) -> bool:
    return token in _BOOK_NUMBERS


def book_number(code: str) -> int:
    """Canonical 1-based position of a book code, or ``0`` when unknown."""

    return _BOOK_NUMBERS.get(code, 0)


def book_code(number: int) -> str | None:
    if 1 <= number <= len(CANONICAL_BOOKS):
        return CANONICAL_BOOKS[number - 1]
    return None
