#!/usr/bin/env python3
"""Build a packed dataset without serving it and print summary statistics."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from rpack.tokenizers import load_tokenizer

try:
    from scripts.serve_dataset import add_pack_arguments, build_from_config, resolve_config
except ModuleNotFoundError:  # pragma: no cover - executed as a plain script
    from serve_dataset import add_pack_arguments, build_from_config, resolve_config


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect a packed retrieval dataset")
    add_pack_arguments(parser)
    parser.add_argument("--show", type=int, default=1, help="Number of buffers to decode")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = resolve_config(args)
    dataset = build_from_config(config)
    summary = {
        "buffers": len(dataset),
        "max_len": dataset.max_len,
        "dtype": str(dataset.dtype),
        "tokens": dataset.num_tokens,
        "fill": dataset.num_tokens / max(len(dataset) * dataset.max_len, 1),
    }
    print(json.dumps(summary, indent=2))
    tokenizer = load_tokenizer(Path(config.tokenizer))
    for idx in range(min(args.show, len(dataset))):
        ids = [tok for tok in dataset.tolist(idx) if tok != dataset.pad_id]
        print(f"--- buffer {idx} ({len(ids)} tokens)")
        print(repr(tokenizer.decode(ids)))


if __name__ == "__main__":
    main()
