"""Library-agnostic parameter checkpoints.

A checkpoint is a JSON document::

    {"format": "onlinerl-params", "version": 1,
     "tensors": {name: {"shape": [...], "data": [...]}}}

where data is the tensor flattened in row-major order.
"""

import json
from pathlib import Path
from typing import Dict, Mapping, Union

import numpy as np
import torch
import torch.nn as nn

from onlinerl.common.errors import ConfigurationError, ShapeMismatchError

FORMAT = "onlinerl-params"
VERSION = 1


def save_parameters(path: Union[str, Path], tensors: Mapping[str, np.ndarray]) -> None:
    """Write named tensors to a checkpoint file."""
    encoded = {}
    for name, value in tensors.items():
        array = np.asarray(value, dtype=np.float64)
        encoded[name] = {
            "shape": list(array.shape),
            "data": array.ravel().tolist()
        }

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        json.dump({"format": FORMAT, "version": VERSION, "tensors": encoded}, f)


def load_parameters(path: Union[str, Path]) -> Dict[str, np.ndarray]:
    """Read named tensors from a checkpoint file."""
    with open(path, 'r') as f:
        doc = json.load(f)

    if doc.get("format") != FORMAT:
        raise ConfigurationError(f"{path}: not a parameter checkpoint")
    if doc.get("version") != VERSION:
        raise ConfigurationError(
            f"{path}: unsupported checkpoint version {doc.get('version')}"
        )

    tensors = {}
    for name, entry in doc["tensors"].items():
        data = np.asarray(entry["data"], dtype=np.float64)
        shape = tuple(entry["shape"])
        if data.size != int(np.prod(shape, dtype=np.int64)):
            raise ShapeMismatchError(
                f"{path}: tensor {name} has {data.size} values for shape {shape}"
            )
        tensors[name] = data.reshape(shape)
    return tensors


def module_tensors(module: nn.Module) -> Dict[str, np.ndarray]:
    return {
        name: value.detach().cpu().numpy()
        for name, value in module.state_dict().items()
    }


def load_module_tensors(module: nn.Module, tensors: Mapping[str, np.ndarray]) -> None:
    """Copy checkpoint tensors into a module whose shapes must match exactly."""
    state = module.state_dict()
    if set(state) != set(tensors):
        raise ShapeMismatchError(
            f"checkpoint tensors {sorted(tensors)} do not match module {sorted(state)}"
        )
    for name, current in state.items():
        if tuple(current.shape) != tuple(tensors[name].shape):
            raise ShapeMismatchError(
                f"tensor {name}: checkpoint shape {tuple(tensors[name].shape)} "
                f"!= module shape {tuple(current.shape)}"
            )
    module.load_state_dict({
        name: torch.as_tensor(tensors[name], dtype=current.dtype)
        for name, current in state.items()
    })


def save_module(path: Union[str, Path], module: nn.Module) -> None:
    save_parameters(path, module_tensors(module))


def load_module(path: Union[str, Path], module: nn.Module) -> None:
    load_module_tensors(module, load_parameters(path))
