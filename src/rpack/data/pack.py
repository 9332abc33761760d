"""Greedy first-fit-append packing of token sequences into fixed buffers."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

UINT16_MAX = np.iinfo(np.uint16).max


def token_dtype(vocab_size: int, pad_id: int = 0) -> type[np.unsignedinteger]:
    if max(vocab_size - 1, pad_id) <= UINT16_MAX:
        return np.uint16
    return np.uint32


class GreedyPacker:
    """Online packer: append to the current buffer while the sequence fits.

    A sequence is never split. When it would overflow the current buffer a new
    buffer of ``max_len`` padding ids is opened and the cursor reset to zero.
    """

    def __init__(self, max_len: int, *, pad_id: int = 0, dtype: type = np.uint32) -> None:
        if max_len <= 0:
            raise ValueError("max_len must be positive")
        self.max_len = max_len
        self.pad_id = pad_id
        self.dtype = dtype
        self.buffers: list[np.ndarray] = []
        self.sequences = 0
        self._current: np.ndarray | None = None
        self._start = 0

    def add(self, ids: Sequence[int]) -> None:
        length = len(ids)
        if length > self.max_len:
            raise ValueError(f"sequence of length {length} exceeds buffer capacity {self.max_len}")
        if self._current is None or self._start + length > self.max_len:
            self._current = np.full(self.max_len, self.pad_id, dtype=self.dtype)
            self.buffers.append(self._current)
            self._start = 0
        self._current[self._start : self._start + length] = ids
        self._start += length
        self.sequences += 1

    def extend(self, sequences: Iterable[Sequence[int]]) -> GreedyPacker:
        for ids in sequences:
            self.add(ids)
        return self

    def finish(self) -> np.ndarray:
        if not self.buffers:
            return np.empty((0, self.max_len), dtype=self.dtype)
        return np.stack(self.buffers)


def pack_sequences(
    sequences: Iterable[Sequence[int]],
    *,
    max_len: int,
    pad_id: int = 0,
    dtype: type = np.uint32,
) -> np.ndarray:
    """Pack ``sequences`` into an array of shape ``(num_buffers, max_len)``."""

    return GreedyPacker(max_len, pad_id=pad_id, dtype=dtype).extend(sequences).finish()
