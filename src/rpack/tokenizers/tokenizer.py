"""Greedy longest-match tokenizer over a byte vocabulary."""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from .vocab import Vocabulary, token_to_bytes


class TokenizationError(ValueError):
    """Raised when a byte string contains a span no vocabulary token matches."""


def _dump_token(raw: bytes) -> str | list[int]:
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError:
        return list(raw)
    if token_to_bytes(text) != raw:
        return list(raw)
    return text


def save_vocab(vocab: Vocabulary, path: Path) -> None:
    ids = sorted(vocab.id_to_token)
    if ids != list(range(len(ids))):
        raise ValueError("save_vocab requires contiguous token ids starting at 0")
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {
        "tokens": [_dump_token(vocab.decode(idx)) for idx in ids],
        "special": sorted(vocab.special),
    }
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2))


def _load_native(data: dict[str, Any]) -> Vocabulary:
    vocab = Vocabulary()
    special = set(data.get("special", []))
    for idx, token in enumerate(data["tokens"]):
        raw = bytes(token) if isinstance(token, list) else token_to_bytes(token)
        vocab.add(raw, idx, special=idx in special)
    return vocab


def _load_world(data: dict[str, Any]) -> Vocabulary:
    # RWKV "world" vocabularies: {"<id>": "<utf-8 text>" | [byte, ...]}
    vocab = Vocabulary()
    for key, token in data.items():
        raw = bytes(token) if isinstance(token, list) else str(token).encode("utf-8")
        vocab.add(raw, int(key))
    return vocab


def load_vocab(path: Path) -> Vocabulary:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Unsupported vocabulary layout in {path}")
    if "tokens" in data:
        return _load_native(data)
    return _load_world(data)


class Tokenizer:
    def __init__(self, vocab: Vocabulary) -> None:
        self.vocab = vocab
        self._lookup = {
            raw: idx
            for raw, idx in vocab.token_to_id.items()
            if not vocab.is_special(idx)
        }
        self._max_token_len = max((len(raw) for raw in self._lookup), default=0)

    @property
    def vocab_size(self) -> int:
        return self.vocab.next_id

    @property
    def fingerprint(self) -> str:
        digest = hashlib.sha256()
        for idx in sorted(self.vocab.id_to_token):
            digest.update(f"{idx}:".encode())
            digest.update(self.vocab.id_to_token[idx])
            digest.update(b"\x00")
        return digest.hexdigest()

    def can_emit(self, idx: int) -> bool:
        return idx in self.vocab and not self.vocab.is_special(idx)

    def encode_bytes(self, data: bytes) -> list[int]:
        ids: list[int] = []
        i = 0
        length = len(data)
        while i < length:
            span = min(self._max_token_len, length - i)
            while span > 0:
                idx = self._lookup.get(data[i : i + span])
                if idx is not None:
                    ids.append(idx)
                    i += span
                    break
                span -= 1
            else:
                raise TokenizationError(f"No token matches byte {data[i]:#04x} at offset {i}")
        return ids

    def encode(self, text: str) -> list[int]:
        return self.encode_bytes(text.encode("utf-8"))

    def decode(self, ids: list[int]) -> str:
        raw = b"".join(self.vocab.decode(idx) for idx in ids if not self.vocab.is_special(idx))
        return raw.decode("utf-8", errors="replace")

    @classmethod
    def from_file(cls, path: Path) -> Tokenizer:
        return cls(load_vocab(path))
