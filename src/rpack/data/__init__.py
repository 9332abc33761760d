"""Formatting, encoding and packing of labeled retrieval corpora."""

from .config import PackConfig, RunConfig, ServeConfig, load_run_config
from .corpus import CorpusError, FileResult, build_dataset, expand_inputs, iter_examples, pack_file
from .dataset import PackedDataset
from .encode import MAX_LEN, EncodeStats, iter_encoded
from .format import LabeledExample, MalformedRecordError, format_prompts
from .pack import GreedyPacker, pack_sequences

__all__ = [
    "MAX_LEN",
    "CorpusError",
    "EncodeStats",
    "FileResult",
    "GreedyPacker",
    "LabeledExample",
    "MalformedRecordError",
    "PackConfig",
    "PackedDataset",
    "RunConfig",
    "ServeConfig",
    "build_dataset",
    "expand_inputs",
    "format_prompts",
    "iter_encoded",
    "iter_examples",
    "load_run_config",
    "pack_file",
    "pack_sequences",
]
