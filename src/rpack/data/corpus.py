"""Drive formatting, encoding and packing across a set of JSON-lines files."""

from __future__ import annotations

import glob
import json
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from multiprocessing.pool import Pool
from pathlib import Path
from typing import Any

import numpy as np
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .config import PackConfig
from .dataset import PackedDataset
from .encode import EncodeStats, create_pool, iter_encoded, resolve_workers
from .format import LabeledExample, MalformedRecordError, iter_file_prompts
from .pack import GreedyPacker, token_dtype


class CorpusError(RuntimeError):
    """An input file could not be read as labeled example records."""


@dataclass
class FileResult:
    path: Path
    buffers: np.ndarray
    stats: EncodeStats = field(default_factory=EncodeStats)


def iter_examples(path: Path) -> Iterator[LabeledExample]:
    with Path(path).open("r", encoding="utf-8") as handle:
        for lineno, line in enumerate(handle, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield LabeledExample.from_record(json.loads(line))
            except (json.JSONDecodeError, MalformedRecordError) as exc:
                raise CorpusError(f"{path}:{lineno}: {exc}") from exc


def expand_inputs(patterns: Sequence[str], *, sort: bool = True) -> list[Path]:
    paths: list[Path] = []
    for pattern in patterns:
        matches = glob.glob(pattern, recursive=True)
        paths.extend(Path(match) for match in (sorted(matches) if sort else matches))
    return paths


def validate_pad_id(tokenizer: Any, pad_id: int) -> None:
    if pad_id < 0:
        raise ValueError(f"pad_id must be non-negative, got {pad_id}")
    if tokenizer.can_emit(pad_id):
        raise ValueError(
            f"pad_id {pad_id} is a real token id for this tokenizer; choose an id that is "
            f"reserved or outside the vocabulary (vocab_size={tokenizer.vocab_size})"
        )


def pack_file(
    path: Path,
    tokenizer: Any,
    config: PackConfig,
    pool: Pool | None = None,
) -> FileResult:
    stats = EncodeStats()
    dtype = token_dtype(tokenizer.vocab_size, config.pad_id)
    packer = GreedyPacker(config.max_len, pad_id=config.pad_id, dtype=dtype)
    # Whole file is parsed before the first prompt is encoded.
    prompts = list(iter_file_prompts(iter_examples(path)))
    sequences = iter_encoded(
        prompts,
        tokenizer,
        max_len=config.max_len,
        stats=stats,
        workers=config.workers,
        chunk_size=config.chunk_size,
        pool=pool,
    )
    packer.extend(sequences)
    return FileResult(path=Path(path), buffers=packer.finish(), stats=stats)


def build_dataset(
    paths: Sequence[Path],
    tokenizer: Any,
    config: PackConfig | None = None,
) -> PackedDataset:
    """Pack every file in listing order and fold the results into one dataset.

    Any unreadable or malformed file aborts the whole build.
    """

    config = config or PackConfig()
    validate_pad_id(tokenizer, config.pad_id)
    dtype = token_dtype(tokenizer.vocab_size, config.pad_id)
    workers = resolve_workers(config.workers)
    total = len(paths)
    parts: list[np.ndarray] = []
    totals = EncodeStats()
    buffers = 0
    start_time = time.perf_counter()

    progress: Progress | None = None
    task_id: int | None = None
    if config.show_progress:
        progress = Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            TextColumn("files={task.completed}/{task.total}"),
            TextColumn("seq={task.fields[sequences]:,}"),
            TextColumn("buffers={task.fields[buffers]:,}"),
            refresh_per_second=5,
            transient=False,
        )
        progress.start()
        task_id = progress.add_task("packing", total=total, sequences=0, buffers=0)

    pool = create_pool(tokenizer, workers) if workers > 1 else None
    try:
        for index, path in enumerate(paths):
            result = pack_file(path, tokenizer, config, pool=pool)
            parts.append(result.buffers)
            totals.merge(result.stats)
            buffers += len(result.buffers)
            print(
                f"[pack] {path}\tdata: {result.stats.accepted}\t{index}/{total}"
                f"\tdropped: {result.stats.failed} unencodable, {result.stats.oversize} oversize",
                flush=True,
            )
            if progress and task_id is not None:
                progress.update(task_id, advance=1, sequences=totals.accepted, buffers=buffers)
    finally:
        if pool is not None:
            pool.terminate()
            pool.join()
        if progress:
            progress.stop()

    dataset = PackedDataset.concatenate(
        parts, max_len=config.max_len, pad_id=config.pad_id, dtype=dtype
    )
    elapsed = time.perf_counter() - start_time
    print(
        f"[pack] {total} files, {totals.accepted:,} sequences -> {len(dataset):,} buffers "
        f"(max_len={config.max_len}, {elapsed:.1f}s)",
        flush=True,
    )
    return dataset
