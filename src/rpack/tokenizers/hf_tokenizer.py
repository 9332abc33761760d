"""Hugging Face tokenizers wrapper exposing the byte encoding interface."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING

from .tokenizer import TokenizationError

if TYPE_CHECKING:  # pragma: no cover
    from tokenizers import Tokenizer as HFTokenizerImpl


class HFTokenizer:
    def __init__(self, tokenizer: HFTokenizerImpl, fingerprint: str) -> None:
        self._tokenizer = tokenizer
        self._fingerprint = fingerprint
        # Added tokens, special ones included, are matched in raw input text.
        self._added_ids = {int(idx) for idx in tokenizer.get_added_tokens_decoder()}

    @classmethod
    def from_file(cls, path: Path) -> HFTokenizer:
        raw = Path(path).read_bytes()
        fingerprint = hashlib.sha256(raw).hexdigest()
        try:
            import tokenizers  # type: ignore
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "Missing dependency: install `tokenizers` (pip install tokenizers) "
                "or reinstall with `pip install -e '.[hf]'`."
            ) from exc
        tokenizer = tokenizers.Tokenizer.from_file(str(path))
        return cls(tokenizer, fingerprint)

    @property
    def vocab_size(self) -> int:
        return int(self._tokenizer.get_vocab_size(with_added_tokens=True))

    @property
    def fingerprint(self) -> str:
        return self._fingerprint

    def can_emit(self, idx: int) -> bool:
        return 0 <= idx < self.vocab_size or idx in self._added_ids

    def encode_bytes(self, data: bytes) -> list[int]:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TokenizationError(str(exc)) from exc
        return self.encode(text)

    def encode(self, text: str) -> list[int]:
        encoding = self._tokenizer.encode(text, add_special_tokens=False)
        return list(encoding.ids)

    def decode(self, ids: list[int]) -> str:
        return str(self._tokenizer.decode(ids))
