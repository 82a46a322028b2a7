"""
Neuron -> Layer -> Network composition on top of the autograd engine.

Parameters are leaf Values that live as long as the model. parameters() is
flattened in a stable order at every level: the optimizer, the trainer's
gradient accumulator and the serializer all index into it positionally.
"""

import math
import random
from typing import Optional, Sequence

from scalargrad.core.activations import Activation, layer_activation, neuron_activation
from scalargrad.core.autograd import Value, _as_value


class Module:
    """Base class for anything that owns parameters."""

    def zero_grad(self):
        for p in self.parameters():
            p.grad = 0.0

    def parameters(self) -> list[Value]:
        return []

    def num_parameters(self) -> int:
        return len(self.parameters())


def _inputs(x: Sequence) -> list[Value]:
    return [_as_value(v) for v in x]


class Neuron(Module):
    """Weighted sum of its inputs plus a bias, followed by an activation."""

    def __init__(self, n_inputs: int, activation: Activation = Activation.RELU,
                 rng: Optional[random.Random] = None):
        if n_inputs < 1:
            raise ValueError(f"neuron needs at least one input, got {n_inputs}")
        rng = rng or random.Random()
        self.activation = Activation(activation)
        self._activate = neuron_activation(self.activation)

        # N(0, 1/sqrt(n)) keeps the weighted sum from saturating sigmoid units
        scale = 1.0 / math.sqrt(n_inputs)
        self.weights = [Value(rng.gauss(0, scale)) for _ in range(n_inputs)]
        self.bias = Value(rng.gauss(0, 1.0))

    def __call__(self, x: Sequence) -> Value:
        if len(x) != len(self.weights):
            raise ValueError(f"neuron expects {len(self.weights)} inputs, got {len(x)}")
        s = self.bias
        for w, xi in zip(self.weights, _inputs(x)):
            s = s + w * xi
        return self._activate(s)

    def parameters(self) -> list[Value]:
        return self.weights + [self.bias]

    def __repr__(self):
        return f"Neuron({len(self.weights)}, {self.activation.value})"


class Layer(Module):
    """A row of neurons sharing the same input vector."""

    def __init__(self, n_inputs: int, n_outputs: int, activation: Activation = Activation.RELU,
                 rng: Optional[random.Random] = None):
        if n_outputs < 1:
            raise ValueError(f"layer needs at least one neuron, got {n_outputs}")
        rng = rng or random.Random()
        self.activation = Activation(activation)
        self.n_inputs = n_inputs
        # Softmax layers keep raw sums per neuron and normalize them jointly
        self._post = layer_activation(self.activation)
        neuron_act = Activation.LINEAR if self._post is not None else self.activation
        self.neurons = [Neuron(n_inputs, neuron_act, rng) for _ in range(n_outputs)]

    @property
    def n_outputs(self) -> int:
        return len(self.neurons)

    def __call__(self, x: Sequence) -> list[Value]:
        x = _inputs(x)
        out = [n(x) for n in self.neurons]
        if self._post is not None:
            out = self._post(out)
        return out

    def parameters(self) -> list[Value]:
        return [p for n in self.neurons for p in n.parameters()]

    def __repr__(self):
        return f"Layer of [{', '.join(str(n) for n in self.neurons)}]"


class Network(Module):
    """Ordered stack of layers, each consuming the previous layer's outputs.

    layer_specs is a list of (width, activation) pairs, one per layer.
    """

    def __init__(self, n_inputs: int, layer_specs: Sequence[tuple[int, Activation]],
                 rng: Optional[random.Random] = None):
        if n_inputs < 1:
            raise ValueError(f"network needs at least one input, got {n_inputs}")
        if not layer_specs:
            raise ValueError("network needs at least one layer")
        rng = rng or random.Random()
        self.n_inputs = n_inputs
        self.layers = []
        width = n_inputs
        for n_out, act in layer_specs:
            self.layers.append(Layer(width, n_out, act, rng))
            width = n_out

    @property
    def n_outputs(self) -> int:
        return self.layers[-1].n_outputs

    def __call__(self, x: Sequence) -> list[Value]:
        if len(x) != self.n_inputs:
            raise ValueError(f"network expects {self.n_inputs} inputs, got {len(x)}")
        out = _inputs(x)
        for layer in self.layers:
            out = layer(out)
        return out

    def parameters(self) -> list[Value]:
        return [p for layer in self.layers for p in layer.parameters()]

    def layer_sizes(self) -> list[int]:
        return [layer.n_outputs for layer in self.layers]

    def predict_proba(self, features: Sequence[float]) -> list[float]:
        """Forward pass returning plain floats; nothing is kept for backward."""
        return [v.data for v in self(features)]

    def predict(self, features: Sequence[float]) -> int:
        return predicted_class(self.predict_proba(features))

    def __repr__(self):
        return f"{type(self).__name__} of [{', '.join(str(layer) for layer in self.layers)}]"


def predicted_class(outputs: Sequence[float]) -> int:
    """0.5 threshold for a single output, arg-max otherwise."""
    if len(outputs) == 1:
        return 1 if outputs[0] >= 0.5 else 0
    best = 0
    for i in range(1, len(outputs)):
        if outputs[i] > outputs[best]:
            best = i
    return best


class BinaryClassifier(Network):
    """ReLU hidden layers and a single sigmoid output unit."""

    kind = "binary"

    def __init__(self, n_inputs: int, hidden_sizes: Sequence[int],
                 rng: Optional[random.Random] = None):
        specs = [(h, Activation.RELU) for h in hidden_sizes]
        specs.append((1, Activation.SIGMOID))
        super().__init__(n_inputs, specs, rng)
        self.hidden_sizes = list(hidden_sizes)


class MultiClassClassifier(Network):
    """ReLU hidden layers and a softmax output over n_classes."""

    kind = "multiclass"

    def __init__(self, n_inputs: int, hidden_sizes: Sequence[int], n_classes: int,
                 rng: Optional[random.Random] = None):
        if n_classes < 2:
            raise ValueError(f"multi-class classifier needs at least 2 classes, got {n_classes}")
        specs = [(h, Activation.RELU) for h in hidden_sizes]
        specs.append((n_classes, Activation.SOFTMAX))
        super().__init__(n_inputs, specs, rng)
        self.hidden_sizes = list(hidden_sizes)


MODEL_KINDS = {
    BinaryClassifier.kind: BinaryClassifier,
    MultiClassClassifier.kind: MultiClassClassifier,
}


def build_classifier(kind: str, n_inputs: int, hidden_sizes: Sequence[int],
                     n_classes: int = 2, rng: Optional[random.Random] = None) -> Network:
    """Construct a classifier by kind name ("binary" or "multiclass")."""
    if kind == BinaryClassifier.kind:
        return BinaryClassifier(n_inputs, hidden_sizes, rng)
    if kind == MultiClassClassifier.kind:
        return MultiClassClassifier(n_inputs, hidden_sizes, n_classes, rng)
    raise ValueError(f"Unknown model kind {kind!r}. Available: {', '.join(sorted(MODEL_KINDS))}")
