"""
Model persistence format.

A saved model is a JSON record:

    {
      "metadata": {"kind": ..., "input_size": ..., "layer_sizes": [...],
                   "activations": [...], "total_parameters": ...},
      "parameters": [float, ...]
    }

layer_sizes lists every layer's width (hidden layers then output layer) and
parameters is the flat list in the exact order of model.parameters(). Loading
rebuilds the architecture from the metadata and only then copies values in
positionally; any mismatch fails the whole load.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Union

from scalargrad.core.activations import Activation
from scalargrad.core.nn import (
    BinaryClassifier,
    MultiClassClassifier,
    Network,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ModelLoadError(Exception):
    """Raised when a saved model can't be read back into a network."""


@dataclass
class ModelMetadata:
    kind: str
    input_size: int
    layer_sizes: list[int]
    total_parameters: int
    activations: list[str] = field(default_factory=list)

    @property
    def hidden_sizes(self) -> list[int]:
        return self.layer_sizes[:-1]


def model_metadata(model: Network) -> ModelMetadata:
    return ModelMetadata(
        kind=getattr(model, "kind", "network"),
        input_size=model.n_inputs,
        layer_sizes=model.layer_sizes(),
        total_parameters=model.num_parameters(),
        activations=[layer.activation.value for layer in model.layers],
    )


def to_record(model: Network) -> dict:
    """JSON-friendly record of the architecture and parameter values."""
    return {
        "metadata": asdict(model_metadata(model)),
        "parameters": [p.data for p in model.parameters()],
    }


def build_from_metadata(metadata: ModelMetadata) -> Network:
    """Fresh network with the architecture described by metadata."""
    if metadata.kind == BinaryClassifier.kind:
        return BinaryClassifier(metadata.input_size, metadata.hidden_sizes)
    if metadata.kind == MultiClassClassifier.kind:
        return MultiClassClassifier(
            metadata.input_size, metadata.hidden_sizes, metadata.layer_sizes[-1]
        )
    if metadata.kind == "network":
        if len(metadata.activations) != len(metadata.layer_sizes):
            raise ModelLoadError("network metadata needs one activation per layer")
        specs = [(size, Activation(act)) for size, act in zip(metadata.layer_sizes, metadata.activations)]
        return Network(metadata.input_size, specs)
    raise ModelLoadError(f"Unknown model kind {metadata.kind!r}")


def _parse_metadata(meta: dict) -> ModelMetadata:
    return ModelMetadata(
        kind=meta["kind"],
        input_size=int(meta["input_size"]),
        layer_sizes=[int(s) for s in meta["layer_sizes"]],
        total_parameters=int(meta["total_parameters"]),
        activations=list(meta.get("activations", [])),
    )


def from_record(record: dict) -> Network:
    """Rebuild a network from a record produced by to_record()."""
    try:
        metadata = _parse_metadata(record["metadata"])
        values = [float(v) for v in record["parameters"]]
    except (KeyError, TypeError, ValueError) as e:
        raise ModelLoadError(f"Malformed model record: {e}") from e

    try:
        model = build_from_metadata(metadata)
    except (ValueError, IndexError) as e:
        raise ModelLoadError(f"Invalid architecture in metadata: {e}") from e

    params = model.parameters()
    if len(values) != len(params) or metadata.total_parameters != len(params):
        raise ModelLoadError(
            f"Parameter count mismatch: file has {len(values)} parameters "
            f"(metadata says {metadata.total_parameters}) but model has {len(params)}"
        )

    for p, v in zip(params, values):
        p.data = v
    return model


def save_model(model: Network, path: PathLike) -> Path:
    path = Path(path)
    path.write_text(json.dumps(to_record(model)))
    logger.info(f"[Serialization] Saved {model.num_parameters()} parameters to {path}")
    return path


def load_metadata(path: PathLike) -> ModelMetadata:
    """Read only the metadata block of a saved model."""
    record = _read_record(path)
    try:
        return _parse_metadata(record["metadata"])
    except (KeyError, TypeError, ValueError) as e:
        raise ModelLoadError(f"Malformed metadata in {path}: {e}") from e


def load_model(path: PathLike) -> Network:
    model = from_record(_read_record(path))
    logger.info(f"[Serialization] Loaded {model!r} from {path}")
    return model


def _read_record(path: PathLike) -> dict:
    path = Path(path)
    try:
        return json.loads(path.read_text())
    except FileNotFoundError as e:
        raise ModelLoadError(f"Model file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"[Serialization] Failed to read {path}", exc_info=True)
        raise ModelLoadError(f"Could not read model file {path}: {e}") from e
