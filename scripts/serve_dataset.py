#!/usr/bin/env python3
"""Pack labeled retrieval JSONL files and serve the buffers over HTTP."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path

from rpack.data import (
    CorpusError,
    PackedDataset,
    RunConfig,
    build_dataset,
    expand_inputs,
    load_run_config,
)
from rpack.serve import serve
from rpack.tokenizers import load_tokenizer


def add_pack_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="Optional YAML run configuration")
    parser.add_argument(
        "--path",
        dest="paths",
        action="append",
        help="Glob pattern for input JSONL files (repeatable)",
    )
    parser.add_argument("--tokenizer", help="Path to vocabulary or tokenizer JSON")
    parser.add_argument("--max-len", type=int, help="Buffer length; longer prompts are dropped")
    parser.add_argument("--pad-id", type=int, help="Token id used for padding")
    parser.add_argument("--workers", type=int, help="Number of encoding workers")
    parser.add_argument("--chunk-size", type=int, help="Prompts per worker batch")
    parser.add_argument(
        "--unsorted",
        action="store_true",
        help="Keep glob order instead of sorting matched files",
    )
    parser.add_argument("--no-progress", action="store_true", help="Disable live progress display")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pack retrieval data and serve it by index")
    add_pack_arguments(parser)
    parser.add_argument("--host", help="Bind address")
    parser.add_argument("--port", type=int, help="Bind port")
    return parser.parse_args(argv)


def resolve_config(args: argparse.Namespace) -> RunConfig:
    config = load_run_config(Path(args.config)) if args.config else RunConfig()
    pack = config.pack
    overrides = {
        "max_len": args.max_len,
        "pad_id": args.pad_id,
        "workers": args.workers,
        "chunk_size": args.chunk_size,
    }
    pack = replace(pack, **{key: value for key, value in overrides.items() if value is not None})
    if args.unsorted:
        pack = replace(pack, sort_files=False)
    if args.no_progress:
        pack = replace(pack, show_progress=False)
    serve_cfg = config.serve
    if getattr(args, "host", None):
        serve_cfg = replace(serve_cfg, host=args.host)
    if getattr(args, "port", None):
        serve_cfg = replace(serve_cfg, port=args.port)
    return RunConfig(
        tokenizer=args.tokenizer or config.tokenizer,
        inputs=args.paths or config.inputs,
        pack=pack,
        serve=serve_cfg,
    )


def build_from_config(config: RunConfig) -> PackedDataset:
    if not config.tokenizer:
        raise SystemExit("No tokenizer given (use --tokenizer or set 'tokenizer' in the config)")
    if not config.inputs:
        raise SystemExit("No input patterns given (use --path or set 'inputs' in the config)")
    tokenizer = load_tokenizer(Path(config.tokenizer))
    paths = expand_inputs(config.inputs, sort=config.pack.sort_files)
    try:
        return build_dataset(paths, tokenizer, config.pack)
    except (CorpusError, OSError, ValueError) as exc:
        raise SystemExit(f"[pack] aborted: {exc}") from exc


def main(argv: list[str] | None = None) -> None:
    config = resolve_config(parse_args(argv))
    dataset = build_from_config(config)
    serve(dataset, host=config.serve.host, port=config.serve.port)


if __name__ == "__main__":
    main()
