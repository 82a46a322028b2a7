"""
Loss functions built out of graph operations, so gradients flow through them
like any other node.
"""

from typing import Sequence

from scalargrad.core.autograd import DEFAULT_LOG_EPSILON, Value, _as_value


def binary_cross_entropy(prediction, target: float, epsilon: float = DEFAULT_LOG_EPSILON) -> Value:
    """-[y*log(p) + (1-y)*log(1-p)] for a single probability p."""
    if not 0.0 <= target <= 1.0:
        raise ValueError(f"binary target must be in [0, 1], got {target}")

    p = _as_value(prediction)
    term1 = p.log(epsilon) * (-target)
    term2 = (1 - p).log(epsilon) * (-(1.0 - target))
    return term1 + term2


def categorical_cross_entropy(probabilities: Sequence[Value], target_class,
                              epsilon: float = DEFAULT_LOG_EPSILON) -> Value:
    """-log(p[target_class]).

    Only the target probability enters the forward value, but it is a softmax
    output whose parents are every logit, so all logits receive gradient.
    """
    if len(probabilities) == 0:
        raise ValueError("probabilities cannot be empty")

    index = int(target_class)
    if index != target_class or not 0 <= index < len(probabilities):
        raise IndexError(
            f"target class {target_class} out of range for {len(probabilities)} classes"
        )

    return -_as_value(probabilities[index]).log(epsilon)


def _bce_loss(predictions: Sequence[Value], target: float) -> Value:
    if len(predictions) != 1:
        raise ValueError(f"binary cross-entropy expects 1 prediction, got {len(predictions)}")
    return binary_cross_entropy(predictions[0], target)


def _cce_loss(predictions: Sequence[Value], target: float) -> Value:
    return categorical_cross_entropy(predictions, target)


# Adapters with the (predictions, target) -> loss signature the trainer uses
LOSSES = {
    "binary_cross_entropy": _bce_loss,
    "categorical_cross_entropy": _cce_loss,
}


def get_loss(name: str):
    loss = LOSSES.get(name)
    if loss is None:
        raise ValueError(f"Unknown loss {name!r}. Available: {', '.join(sorted(LOSSES))}")
    return loss
