import json
from pathlib import Path

import pytest

from rpack.data.config import PackConfig
from rpack.data.corpus import (
    CorpusError,
    build_dataset,
    expand_inputs,
    iter_examples,
    pack_file,
    validate_pad_id,
)
from rpack.tokenizers import Tokenizer, Vocabulary


def write_jsonl(path: Path, records: list[dict]) -> Path:
    path.write_text("\n".join(json.dumps(record) for record in records) + "\n")
    return path


def make_config(**overrides) -> PackConfig:
    settings = {"max_len": 64, "workers": 1, "show_progress": False}
    settings.update(overrides)
    return PackConfig(**settings)


def test_two_examples_pack_into_one_buffer(tmp_path: Path) -> None:
    path = write_jsonl(
        tmp_path / "part.jsonl",
        [
            {"query": "q1", "pos": ["p1"], "neg": []},
            {"query": "q2", "pos": [], "neg": ["n1", "n2"]},
        ],
    )
    tokenizer = Tokenizer(Vocabulary.with_padding())
    dataset = build_dataset([path], tokenizer, make_config())
    expected = (
        tokenizer.encode("p1\x16q1\x17+")
        + tokenizer.encode("n1\x16q2\x17-")
        + tokenizer.encode("n2\x16q2\x17-")
    )
    assert len(dataset) == 1
    row = dataset.tolist(0)
    assert len(row) == 64
    assert row[: len(expected)] == expected
    assert row[len(expected) :] == [0] * (64 - len(expected))


def test_oversize_prompts_leave_no_trace(tmp_path: Path) -> None:
    path = write_jsonl(tmp_path / "part.jsonl", [{"query": "q", "pos": ["p" * 40], "neg": ["n"]}])
    tokenizer = Tokenizer(Vocabulary.with_padding())
    result = pack_file(path, tokenizer, make_config(max_len=32))
    assert result.stats.oversize == 1
    assert result.stats.accepted == 1
    assert result.buffers.shape == (1, 32)
    p_id = tokenizer.encode("p")[0]
    assert p_id not in result.buffers[0].tolist()


def test_files_concatenate_in_listing_order(tmp_path: Path) -> None:
    write_jsonl(tmp_path / "b.jsonl", [{"query": "b", "pos": ["b" * 20], "neg": []}])
    write_jsonl(tmp_path / "a.jsonl", [{"query": "a", "pos": ["a" * 20], "neg": []}])
    (tmp_path / "c.jsonl").write_text("")
    tokenizer = Tokenizer(Vocabulary.with_padding())
    paths = expand_inputs([str(tmp_path / "*.jsonl")])
    assert [path.name for path in paths] == ["a.jsonl", "b.jsonl", "c.jsonl"]
    dataset = build_dataset(paths, tokenizer, make_config(max_len=32))
    assert len(dataset) == 2
    assert dataset.tolist(0)[0] == tokenizer.encode("a")[0]
    assert dataset.tolist(1)[0] == tokenizer.encode("b")[0]


def test_empty_corpus_builds_empty_dataset(tmp_path: Path) -> None:
    empty = tmp_path / "empty.jsonl"
    empty.write_text("\n\n")
    tokenizer = Tokenizer(Vocabulary.with_padding())
    dataset = build_dataset([empty], tokenizer, make_config())
    assert len(dataset) == 0
    assert dataset.max_len == 64


def test_malformed_file_aborts_build(tmp_path: Path) -> None:
    good = write_jsonl(tmp_path / "a.jsonl", [{"query": "q", "pos": ["p"], "neg": []}])
    bad = tmp_path / "b.jsonl"
    bad.write_text('{"query": "q", "pos": ["p"], "neg": []}\n{"query": \n')
    tokenizer = Tokenizer(Vocabulary.with_padding())
    with pytest.raises(CorpusError, match="b.jsonl:2"):
        build_dataset([good, bad], tokenizer, make_config())


def test_missing_file_aborts_build(tmp_path: Path) -> None:
    tokenizer = Tokenizer(Vocabulary.with_padding())
    with pytest.raises(FileNotFoundError):
        build_dataset([tmp_path / "missing.jsonl"], tokenizer, make_config())


def test_iter_examples_reports_bad_records(tmp_path: Path) -> None:
    path = write_jsonl(tmp_path / "bad.jsonl", [{"pos": ["p"]}])
    with pytest.raises(CorpusError):
        list(iter_examples(path))


def test_pad_id_must_not_be_emittable() -> None:
    with pytest.raises(ValueError):
        validate_pad_id(Tokenizer(Vocabulary.byte_fallback()), 0)
    validate_pad_id(Tokenizer(Vocabulary.byte_fallback()), 256)
    validate_pad_id(Tokenizer(Vocabulary.with_padding()), 0)


def test_out_of_vocab_pad_id_is_used_for_padding(tmp_path: Path) -> None:
    path = write_jsonl(tmp_path / "part.jsonl", [{"query": "q", "pos": ["p"], "neg": []}])
    tokenizer = Tokenizer(Vocabulary.byte_fallback())
    dataset = build_dataset([path], tokenizer, make_config(max_len=8, pad_id=256))
    assert dataset.tolist(0) == list(b"p\x16q\x17+") + [256, 256, 256]


def write_shards(tmp_path: Path) -> list[Path]:
    paths = []
    for shard in range(3):
        records = [
            {"query": f"q{shard}-{i}", "pos": ["p" * (i % 7 + 1)], "neg": [f"n{i}", "x" * 30]}
            for i in range(12)
        ]
        paths.append(write_jsonl(tmp_path / f"shard{shard}.jsonl", records))
    return paths


def test_pooled_build_matches_serial_build(tmp_path: Path) -> None:
    paths = write_shards(tmp_path)
    tokenizer = Tokenizer(Vocabulary.with_padding())
    serial = build_dataset(paths, tokenizer, make_config(max_len=32, workers=1))
    pooled = build_dataset(paths, tokenizer, make_config(max_len=32, workers=2, chunk_size=1))
    assert len(serial) > 3
    assert pooled.dtype == serial.dtype
    assert pooled.buffers.tobytes() == serial.buffers.tobytes()


def test_pack_file_uses_configured_workers(tmp_path: Path) -> None:
    path = write_shards(tmp_path)[0]
    tokenizer = Tokenizer(Vocabulary.with_padding())
    serial = pack_file(path, tokenizer, make_config(max_len=32, workers=1))
    pooled = pack_file(path, tokenizer, make_config(max_len=32, workers=2, chunk_size=2))
    assert pooled.stats == serial.stats
    assert pooled.stats.oversize == 12
    assert pooled.buffers.tobytes() == serial.buffers.tobytes()
