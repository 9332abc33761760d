"""Dataclasses and loader for pack/serve configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import List, Optional

import yaml

from .encode import MAX_LEN


@dataclass
class PackConfig:
    max_len: int = MAX_LEN
    pad_id: int = 0
    workers: Optional[int] = None
    chunk_size: int = 512
    sort_files: bool = True
    show_progress: bool = True


@dataclass
class ServeConfig:
    host: str = "0.0.0.0"
    port: int = 9961


@dataclass
class RunConfig:
    tokenizer: Optional[str] = None
    inputs: List[str] = field(default_factory=list)
    pack: PackConfig = field(default_factory=PackConfig)
    serve: ServeConfig = field(default_factory=ServeConfig)


def _expand_path(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if value.startswith("${") and value.endswith("}"):
        body = value[2:-1]
        if ":-" in body:
            var, default = body.split(":-", 1)
            return os.environ.get(var, default)
        return os.environ.get(body, "")
    return os.path.expanduser(os.path.expandvars(value))


def load_run_config(path: Path) -> RunConfig:
    data = yaml.safe_load(Path(path).read_text()) or {}
    inputs = data.get("inputs", [])
    if isinstance(inputs, str):
        inputs = [inputs]
    return RunConfig(
        tokenizer=_expand_path(data.get("tokenizer")),
        inputs=[_expand_path(pattern) or pattern for pattern in inputs],
        pack=PackConfig(**data.get("pack", {})),
        serve=ServeConfig(**data.get("serve", {})),
    )
