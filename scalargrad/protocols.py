"""
Capability protocols.

Anything that owns parameters satisfies ParameterModule, and any callable
with the (predictions, target) -> loss signature can be handed to the
trainer as its loss function.
"""

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from scalargrad.core.autograd import Value


@runtime_checkable
class ParameterModule(Protocol):
    """A unit exposing a flattened, order-stable parameter list."""

    def parameters(self) -> list["Value"]:
        """
        All trainable leaf Values owned by this unit, transitively.

        The order must not change between calls: optimizers and gradient
        accumulators index into it positionally.
        """
        ...

    def zero_grad(self) -> None:
        ...


@runtime_checkable
class LossFunction(Protocol):
    """Loss adapter consumed by the trainer."""

    def __call__(self, predictions: Sequence["Value"], target: float) -> "Value":
        """
        Build the loss node for one sample.

        Args:
            predictions: Output nodes of the model's forward pass
            target: The sample's label (class index or 0/1)

        Returns:
            A scalar Value to call backward() on.
        """
        ...
