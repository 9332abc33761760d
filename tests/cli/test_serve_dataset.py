import json
from pathlib import Path

import pytest

from rpack.tokenizers import Vocabulary, save_vocab
from scripts import inspect_dataset, serve_dataset


def prepare_inputs(tmp_path: Path) -> tuple[Path, Path]:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "part.jsonl").write_text(
        json.dumps({"query": "hello", "pos": ["world"], "neg": ["moon"]}) + "\n"
    )
    tok_path = tmp_path / "tok.json"
    save_vocab(Vocabulary.with_padding(), tok_path)
    return data_dir, tok_path


def test_cli_flags_override_config(tmp_path: Path) -> None:
    config_yaml = tmp_path / "run.yaml"
    config_yaml.write_text(
        "tokenizer: vocab.json\ninputs: [a/*.jsonl]\npack:\n  max_len: 128\nserve:\n  port: 1234\n"
    )
    args = serve_dataset.parse_args(
        ["--config", str(config_yaml), "--max-len", "64", "--port", "4321", "--no-progress"]
    )
    config = serve_dataset.resolve_config(args)
    assert config.tokenizer == "vocab.json"
    assert config.inputs == ["a/*.jsonl"]
    assert config.pack.max_len == 64
    assert config.pack.show_progress is False
    assert config.serve.port == 4321


def test_main_builds_then_serves(tmp_path: Path, monkeypatch) -> None:
    data_dir, tok_path = prepare_inputs(tmp_path)
    served = {}

    def fake_serve(dataset, host, port):
        served.update(dataset=dataset, host=host, port=port)

    monkeypatch.setattr(serve_dataset, "serve", fake_serve)
    serve_dataset.main(
        [
            "--path",
            str(data_dir / "*.jsonl"),
            "--tokenizer",
            str(tok_path),
            "--max-len",
            "32",
            "--workers",
            "1",
            "--no-progress",
        ]
    )
    assert len(served["dataset"]) == 1
    assert served["dataset"].max_len == 32
    assert served["port"] == 9961


def test_malformed_input_exits(tmp_path: Path) -> None:
    data_dir, tok_path = prepare_inputs(tmp_path)
    (data_dir / "part.jsonl").write_text("not json\n")
    args = serve_dataset.parse_args(
        ["--path", str(data_dir / "*.jsonl"), "--tokenizer", str(tok_path), "--workers", "1"]
    )
    with pytest.raises(SystemExit):
        serve_dataset.build_from_config(serve_dataset.resolve_config(args))


def test_inspect_prints_summary(tmp_path: Path, capsys) -> None:
    data_dir, tok_path = prepare_inputs(tmp_path)
    inspect_dataset.main(
        [
            "--path",
            str(data_dir / "*.jsonl"),
            "--tokenizer",
            str(tok_path),
            "--max-len",
            "64",
            "--workers",
            "1",
            "--no-progress",
        ]
    )
    out = capsys.readouterr().out
    assert '"buffers": 1' in out
    assert "world\\x16hello\\x17+" in out
