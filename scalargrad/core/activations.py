"""
Activation functions: ReLU, Sigmoid, Softmax

ReLU and sigmoid are single-input nodes (see Value.relu / Value.sigmoid).
Softmax is joint over a whole vector: each output node lists every input as
a parent, since its value depends on all of them through the normalizer.
"""

import math
from enum import Enum
from typing import Callable, Optional, Sequence

from scalargrad.core.autograd import Value, _as_value


class Activation(str, Enum):
    LINEAR = "linear"
    RELU = "relu"
    SIGMOID = "sigmoid"
    SOFTMAX = "softmax"


def identity(x: Value) -> Value:
    return x


def relu(x) -> Value:
    return _as_value(x).relu()


def sigmoid(x) -> Value:
    return _as_value(x).sigmoid()


def softmax(values: Sequence) -> list[Value]:
    """Probability distribution over `values`.

    Subtracts the max logit before exponentiating. For output i with upstream
    gradient g_i, every input j receives p_i * (1[i == j] - p_j) * g_i.
    """
    if len(values) == 0:
        raise ValueError("softmax of an empty vector")

    logits = [_as_value(v) for v in values]
    max_logit = max(v.data for v in logits)
    exps = [math.exp(v.data - max_logit) for v in logits]
    total = sum(exps)
    probs = [e / total for e in exps]

    outputs = []
    for i, p_i in enumerate(probs):
        out = Value(p_i, logits, 'softmax')
        out._backward = _softmax_backward(out, i, logits, probs)
        outputs.append(out)
    return outputs


def _softmax_backward(out: Value, i: int, logits: list[Value], probs: list[float]):
    p_i = probs[i]

    def _backward():
        for j, logit in enumerate(logits):
            indicator = 1.0 if i == j else 0.0
            logit.grad += p_i * (indicator - probs[j]) * out.grad
    return _backward


# Per-neuron activation, resolved once when a neuron is built. SOFTMAX has no
# per-neuron form: the layer applies it jointly to the raw sums.
_NEURON_ACTIVATIONS: dict[Activation, Callable[[Value], Value]] = {
    Activation.LINEAR: identity,
    Activation.RELU: relu,
    Activation.SIGMOID: sigmoid,
    Activation.SOFTMAX: identity,
}

_LAYER_ACTIVATIONS: dict[Activation, Optional[Callable[[Sequence[Value]], list[Value]]]] = {
    Activation.LINEAR: None,
    Activation.RELU: None,
    Activation.SIGMOID: None,
    Activation.SOFTMAX: softmax,
}


def neuron_activation(activation: Activation) -> Callable[[Value], Value]:
    return _NEURON_ACTIVATIONS[Activation(activation)]


def layer_activation(activation: Activation) -> Optional[Callable[[Sequence[Value]], list[Value]]]:
    return _LAYER_ACTIVATIONS[Activation(activation)]
