"""Vocabulary utilities for byte-level tokenizers."""

from __future__ import annotations

from collections.abc import Iterable

BYTE_SIZE = 256
PAD_TOKEN = "<pad>"


def token_to_bytes(token: str) -> bytes:
    """Map a stored token string to the raw bytes it matches.

    Single characters below 256 stand for one raw byte, everything else is
    matched by its UTF-8 encoding.
    """

    if len(token) == 1 and ord(token) < BYTE_SIZE:
        return bytes([ord(token)])
    return token.encode("utf-8")


class Vocabulary:
    """Byte token vocabulary with optional sparse ids and special tokens."""

    def __init__(self) -> None:
        self.token_to_id: dict[bytes, int] = {}
        self.id_to_token: dict[int, bytes] = {}
        self.special: set[int] = set()

    def add(self, token: str | bytes, idx: int | None = None, *, special: bool = False) -> int:
        raw = token if isinstance(token, bytes) else token_to_bytes(token)
        if raw in self.token_to_id:
            return self.token_to_id[raw]
        if idx is None:
            idx = self.next_id
        if idx in self.id_to_token:
            raise ValueError(f"Token id {idx} already assigned to {self.id_to_token[idx]!r}")
        self.token_to_id[raw] = idx
        self.id_to_token[idx] = raw
        if special:
            self.special.add(idx)
        return idx

    def extend(self, tokens: Iterable[str | bytes]) -> None:
        for token in tokens:
            self.add(token)

    @property
    def next_id(self) -> int:
        return max(self.id_to_token, default=-1) + 1

    def __len__(self) -> int:
        return len(self.id_to_token)

    def __contains__(self, idx: object) -> bool:
        return idx in self.id_to_token

    def encode(self, token: bytes) -> int:
        return self.token_to_id[token]

    def decode(self, idx: int) -> bytes:
        return self.id_to_token[idx]

    def is_special(self, idx: int) -> bool:
        return idx in self.special

    @classmethod
    def byte_fallback(cls) -> Vocabulary:
        vocab = cls()
        vocab.extend([bytes([i]) for i in range(BYTE_SIZE)])
        return vocab

    @classmethod
    def with_padding(cls) -> Vocabulary:
        """Byte fallback vocabulary with a reserved padding token at id 0."""

        vocab = cls()
        vocab.add(PAD_TOKEN, 0, special=True)
        vocab.extend([bytes([i]) for i in range(BYTE_SIZE)])
        return vocab
