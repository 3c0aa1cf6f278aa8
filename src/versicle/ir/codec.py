"""JSON persistence for the IR graph and raw-payload preservation helpers."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Mapping

from versicle.errors import MalformedIR
from versicle.ir.models import Anchor, ContentBlock, Corpus, Document, LossClass, Ref, Span

IR_SUFFIX = ".ir.json"
_RAW_ENCODING_SUFFIX = "_encoding"


def _ref_to_dict(ref: Ref | None) -> dict[str, Any] | None:
    if ref is None:
        return None
    return {
        "book": ref.book,
        "chapter": ref.chapter,
        "verse": ref.verse,
        "verse_end": ref.verse_end,
        "osis_id": ref.osis_id,
    }


def _block_to_dict(block: ContentBlock) -> dict[str, Any]:
    return {
        "id": block.id,
        "sequence": block.sequence,
        "text": block.text,
        "hash": block.hash,
        "attributes": dict(block.attributes),
        "anchors": [
            {
                "id": anchor.id,
                "position": anchor.position,
                "content_block_id": anchor.content_block_id,
                "spans": [
                    {
                        "id": span.id,
                        "type": span.type,
                        "start_anchor_id": span.start_anchor_id,
                        "ref": _ref_to_dict(span.ref),
                    }
                    for span in anchor.spans
                ],
            }
            for anchor in block.anchors
        ],
    }


def corpus_to_dict(corpus: Corpus) -> dict[str, Any]:
    return {
        "id": corpus.id,
        "version": corpus.version,
        "module_type": corpus.module_type,
        "title": corpus.title,
        "language": corpus.language,
        "versification": corpus.versification,
        "description": corpus.description,
        "publisher": corpus.publisher,
        "rights": corpus.rights,
        "source_format": corpus.source_format,
        "source_hash": corpus.source_hash,
        "loss_class": corpus.loss_class.value,
        "attributes": dict(corpus.attributes),
        "documents": [
            {
                "id": document.id,
                "title": document.title,
                "order": document.order,
                "attributes": dict(document.attributes),
                "content_blocks": [_block_to_dict(block) for block in document.content_blocks],
            }
            for document in corpus.documents
        ],
    }


def dumps_corpus(corpus: Corpus) -> str:
    """Serialize a corpus deterministically: same graph, same text."""

    return json.dumps(corpus_to_dict(corpus), ensure_ascii=False, indent=2) + "\n"


def _string_map(raw: Any, where: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise TypeError(f"{where}.attributes must be an object")
    return {str(key): str(value) for key, value in raw.items()}


def _list(raw: Any, where: str) -> list[Any]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TypeError(f"{where} must be an array")
    return raw


def _ref_from_dict(raw: Any) -> Ref | None:
    if raw is None:
        return None
    return Ref(
        book=str(raw["book"]),
        chapter=int(raw.get("chapter") or 0),
        verse=int(raw.get("verse") or 0),
        verse_end=int(raw.get("verse_end") or 0),
        osis_id=str(raw.get("osis_id") or ""),
    )


def _block_from_dict(raw: Mapping[str, Any]) -> ContentBlock:
    block_id = str(raw["id"])
    anchors: list[Anchor] = []
    for raw_anchor in _list(raw.get("anchors"), f"{block_id}.anchors"):
        spans = [
            Span(
                id=str(raw_span["id"]),
                type=str(raw_span["type"]),
                start_anchor_id=str(raw_span.get("start_anchor_id") or raw_anchor["id"]),
                ref=_ref_from_dict(raw_span.get("ref")),
            )
            for raw_span in _list(raw_anchor.get("spans"), f"{block_id}.spans")
        ]
        anchors.append(
            Anchor(
                id=str(raw_anchor["id"]),
                content_block_id=str(raw_anchor.get("content_block_id") or block_id),
                position=int(raw_anchor.get("position") or 0),
                spans=spans,
            )
        )

    return ContentBlock(
        id=block_id,
        sequence=int(raw["sequence"]),
        text=str(raw["text"]),
        hash=str(raw.get("hash") or ""),
        anchors=anchors,
        attributes=_string_map(raw.get("attributes"), block_id),
    )


def corpus_from_dict(raw: Any) -> Corpus:
    """Rebuild a corpus graph, raising :class:`MalformedIR` on missing or mistyped fields."""

    if not isinstance(raw, Mapping):
        raise MalformedIR("failed to parse IR", problems=["top-level value must be an object"])

    try:
        documents = [
            Document(
                id=str(raw_doc["id"]),
                title=str(raw_doc.get("title") or ""),
                order=int(raw_doc.get("order") or 0),
                attributes=_string_map(raw_doc.get("attributes"), str(raw_doc["id"])),
                content_blocks=[
                    _block_from_dict(raw_block)
                    for raw_block in _list(raw_doc.get("content_blocks"), f"{raw_doc['id']}.content_blocks")
                ],
            )
            for raw_doc in _list(raw.get("documents"), "documents")
        ]
        return Corpus(
            id=str(raw["id"]),
            version=str(raw.get("version") or ""),
            module_type=str(raw.get("module_type") or ""),
            title=str(raw.get("title") or ""),
            language=str(raw.get("language") or ""),
            versification=str(raw.get("versification") or ""),
            description=str(raw.get("description") or ""),
            publisher=str(raw.get("publisher") or ""),
            rights=str(raw.get("rights") or ""),
            source_format=str(raw.get("source_format") or ""),
            source_hash=str(raw.get("source_hash") or ""),
            loss_class=LossClass(raw.get("loss_class") or LossClass.L0.value),
            attributes=_string_map(raw.get("attributes"), "corpus"),
            documents=documents,
        )
    except KeyError as exc:
        raise MalformedIR("failed to parse IR", problems=[f"missing required field {exc}"]) from exc
    except (TypeError, ValueError, AttributeError) as exc:
        raise MalformedIR("failed to parse IR", problems=[str(exc)]) from exc


def loads_corpus(text: str) -> Corpus:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedIR("failed to parse IR", problems=[f"invalid JSON: {exc}"]) from exc
    return corpus_from_dict(raw)


def attach_raw_payload(attributes: dict[str, str], key: str, payload: bytes) -> None:
    """Store original bytes in a string map so they can be replayed byte-for-byte."""

    try:
        attributes[key] = payload.decode("utf-8")
    except UnicodeDecodeError:
        attributes[key] = base64.b64encode(payload).decode("ascii")
        attributes[key + _RAW_ENCODING_SUFFIX] = "base64"


def raw_payload(attributes: Mapping[str, str], key: str) -> bytes | None:
    """Recover bytes stored by :func:`attach_raw_payload`; ``None`` when absent or empty."""

    value = attributes.get(key)
    if not value:
        return None
    if attributes.get(key + _RAW_ENCODING_SUFFIX) == "base64":
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as exc:
            raise MalformedIR("failed to parse IR", problems=[f"{key} is not valid base64"]) from exc
    return value.encode("utf-8")
