"""Immutable in-memory collection of packed token buffers."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np


class PackedDataset:
    """Read-only ``(n, max_len)`` token array with O(1) row access."""

    def __init__(self, buffers: np.ndarray, *, pad_id: int = 0) -> None:
        if buffers.ndim != 2:
            raise ValueError(f"expected a 2-D buffer array, got shape {buffers.shape}")
        self._buffers = buffers
        self._buffers.setflags(write=False)
        self.pad_id = pad_id

    @classmethod
    def empty(cls, max_len: int, *, pad_id: int = 0, dtype: type = np.uint32) -> PackedDataset:
        return cls(np.empty((0, max_len), dtype=dtype), pad_id=pad_id)

    @classmethod
    def concatenate(
        cls,
        parts: Sequence[np.ndarray],
        *,
        max_len: int,
        pad_id: int = 0,
        dtype: type = np.uint32,
    ) -> PackedDataset:
        non_empty = [part for part in parts if len(part)]
        if not non_empty:
            return cls.empty(max_len, pad_id=pad_id, dtype=dtype)
        for part in non_empty:
            if part.shape[1] != max_len:
                raise ValueError(f"buffer width {part.shape[1]} does not match max_len {max_len}")
        return cls(np.concatenate(non_empty).astype(dtype, copy=False), pad_id=pad_id)

    @property
    def max_len(self) -> int:
        return int(self._buffers.shape[1])

    @property
    def dtype(self) -> np.dtype:
        return self._buffers.dtype

    @property
    def num_tokens(self) -> int:
        return int(np.count_nonzero(self._buffers != self.pad_id))

    @property
    def buffers(self) -> np.ndarray:
        return self._buffers

    def __len__(self) -> int:
        return int(self._buffers.shape[0])

    def __getitem__(self, idx: int) -> np.ndarray:
        if isinstance(idx, bool) or not isinstance(idx, (int, np.integer)):
            raise TypeError(f"dataset indices must be integers, not {type(idx).__name__}")
        if idx < 0 or idx >= len(self):
            raise IndexError(idx)
        return self._buffers[idx]

    def tolist(self, idx: int) -> list[int]:
        return self[idx].tolist()
