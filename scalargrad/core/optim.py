"""Parameter update rules."""

from typing import Iterable

from scalargrad.core.autograd import Value


class SGD:
    """Plain stochastic gradient descent: p.data -= lr * p.grad.

    Reads whatever each parameter's grad currently holds (e.g. a batch
    average written by the trainer) and never resets it.
    """

    def __init__(self, learning_rate: float = 0.01):
        self.learning_rate = learning_rate

    @property
    def learning_rate(self) -> float:
        return self._lr

    @learning_rate.setter
    def learning_rate(self, lr: float):
        if not lr > 0:
            raise ValueError(f"learning rate must be positive, got {lr}")
        self._lr = float(lr)

    def step(self, parameters: Iterable[Value]):
        for p in parameters:
            p.data -= self._lr * p.grad
