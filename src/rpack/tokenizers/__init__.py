"""Tokenization utilities for rpack."""

from __future__ import annotations

import json
from pathlib import Path

from .hf_tokenizer import HFTokenizer
from .tokenizer import TokenizationError, Tokenizer, load_vocab, save_vocab
from .vocab import PAD_TOKEN, Vocabulary


def load_tokenizer(path: Path) -> Tokenizer | HFTokenizer:
    """Load a byte vocabulary or a Hugging Face ``tokenizer.json``."""

    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and "model" in data and "added_tokens" in data:
        return HFTokenizer.from_file(path)
    return Tokenizer.from_file(path)


__all__ = [
    "HFTokenizer",
    "PAD_TOKEN",
    "TokenizationError",
    "Tokenizer",
    "Vocabulary",
    "load_tokenizer",
    "load_vocab",
    "save_vocab",
]
