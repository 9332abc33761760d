"""Labeled retrieval examples and their directional prompt strings."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

PASSAGE_DELIMITER = "\x16"
QUERY_DELIMITER = "\x17"
POSITIVE_MARKER = "+"
NEGATIVE_MARKER = "-"


class MalformedRecordError(ValueError):
    """Raised when a JSON record does not describe a labeled example."""


def _text_list(record: dict[str, Any], key: str) -> tuple[str, ...]:
    if key not in record:
        raise MalformedRecordError(f"missing '{key}'")
    values = record[key]
    if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
        raise MalformedRecordError(f"'{key}' must be a list of strings")
    return tuple(values)


@dataclass(frozen=True)
class LabeledExample:
    query: str
    positives: tuple[str, ...] = ()
    negatives: tuple[str, ...] = ()

    @classmethod
    def from_record(cls, record: Any) -> LabeledExample:
        if not isinstance(record, dict):
            raise MalformedRecordError(f"expected a JSON object, got {type(record).__name__}")
        query = record.get("query")
        if not isinstance(query, str):
            raise MalformedRecordError("'query' must be a string")
        return cls(
            query=query,
            positives=_text_list(record, "pos"),
            negatives=_text_list(record, "neg"),
        )


def format_prompt(passage: str, query: str, marker: str) -> str:
    return f"{passage}{PASSAGE_DELIMITER}{query}{QUERY_DELIMITER}{marker}"


def format_prompts(example: LabeledExample) -> list[str]:
    """Positives first, then negatives, each group in input order."""

    prompts = [format_prompt(p, example.query, POSITIVE_MARKER) for p in example.positives]
    prompts.extend(format_prompt(n, example.query, NEGATIVE_MARKER) for n in example.negatives)
    return prompts


def iter_file_prompts(examples: Iterable[LabeledExample]) -> Iterator[str]:
    for example in examples:
        yield from format_prompts(example)
