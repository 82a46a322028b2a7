"""
Scalar reverse-mode autograd engine.

Every arithmetic operation on a Value creates a new Value that remembers its
parents and a closure applying the local derivative rule. Calling backward()
on a root walks the graph in reverse topological order and accumulates
d(root)/d(node) into each node's grad.
"""

import math

DEFAULT_LOG_EPSILON = 1e-7

# Largest argument math.exp accepts without overflowing
EXP_MAX = 709.0


def _as_value(x) -> "Value":
    if isinstance(x, Value):
        return x
    if isinstance(x, (int, float)) and not isinstance(x, bool):
        return Value(x)
    raise TypeError(f"unsupported operand type for Value: {type(x).__name__}")


def _check_number(x, op: str):
    if isinstance(x, bool) or not isinstance(x, (int, float)):
        raise TypeError(f"'{op}' expects an int or float, got {type(x).__name__}")


def _nonzero(x: float, epsilon: float = DEFAULT_LOG_EPSILON) -> float:
    """x with its magnitude clamped to at least epsilon, sign kept (0.0 -> +epsilon)."""
    if abs(x) >= epsilon:
        return x
    return math.copysign(epsilon, x)


class Value:
    """Scalar value with automatic gradient computation."""

    __slots__ = ('data', 'grad', '_backward', '_prev', '_op')

    def __init__(self, data, _children=(), _op=''):
        self.data = float(data)
        self.grad = 0.0
        self._backward = lambda: None
        self._prev = tuple(_children)
        self._op = _op

    def __repr__(self):
        return f"Value(data={self.data:.4f}, grad={self.grad:.4f})"

    @property
    def is_leaf(self) -> bool:
        return not self._prev

    # ------------------------------------------------------------------
    # arithmetic
    # ------------------------------------------------------------------

    def __add__(self, other):
        other = _as_value(other)
        out = Value(self.data + other.data, (self, other), '+')

        def _backward():
            self.grad += out.grad
            other.grad += out.grad
        out._backward = _backward
        return out

    def __radd__(self, other):
        return self + other

    def __mul__(self, other):
        other = _as_value(other)
        out = Value(self.data * other.data, (self, other), '*')

        def _backward():
            self.grad += other.data * out.grad
            other.grad += self.data * out.grad
        out._backward = _backward
        return out

    def __rmul__(self, other):
        return self * other

    def __neg__(self):
        return self * -1

    def __sub__(self, other):
        return self + (-_as_value(other))

    def __rsub__(self, other):
        return (-self) + other

    def __truediv__(self, other):
        if isinstance(other, Value):
            divisor = _nonzero(other.data)
            out = Value(self.data / divisor, (self, other), '/')

            def _backward():
                self.grad += (1.0 / divisor) * out.grad
                other.grad += (-self.data / (divisor * divisor)) * out.grad
            out._backward = _backward
            return out

        _check_number(other, '/')
        divisor = _nonzero(float(other))
        out = Value(self.data / divisor, (self,), '/')

        def _backward():
            self.grad += (1.0 / divisor) * out.grad
        out._backward = _backward
        return out

    def __rtruediv__(self, other):
        _check_number(other, '/')
        numerator = float(other)
        divisor = _nonzero(self.data)
        out = Value(numerator / divisor, (self,), '/')

        def _backward():
            self.grad += (-numerator / (divisor * divisor)) * out.grad
        out._backward = _backward
        return out

    def __pow__(self, other):
        _check_number(other, '**')
        # Negative powers of zero are clamped like division
        base = _nonzero(self.data) if other < 0 else self.data
        out = Value(base ** other, (self,), f'**{other}')

        def _backward():
            grad_base = _nonzero(self.data) if other < 1 else self.data
            self.grad += other * (grad_base ** (other - 1)) * out.grad
        out._backward = _backward
        return out

    # ------------------------------------------------------------------
    # elementary functions
    # ------------------------------------------------------------------

    def log(self, epsilon: float = DEFAULT_LOG_EPSILON):
        # Clamp so exact zeros (or float underflow) never produce -inf/NaN
        clamped = max(self.data, epsilon)
        out = Value(math.log(clamped), (self,), 'log')

        def _backward():
            self.grad += (1.0 / clamped) * out.grad
        out._backward = _backward
        return out

    def exp(self):
        # Saturates at e**EXP_MAX instead of overflowing
        out = Value(math.exp(min(self.data, EXP_MAX)), (self,), 'exp')

        def _backward():
            self.grad += out.data * out.grad
        out._backward = _backward
        return out

    def relu(self):
        out = Value(0.0 if self.data < 0 else self.data, (self,), 'ReLU')

        def _backward():
            # Gated on the output, so x == 0 passes no gradient
            self.grad += (1.0 if out.data > 0 else 0.0) * out.grad
        out._backward = _backward
        return out

    def sigmoid(self):
        # Numerically stable sigmoid
        if self.data >= 0:
            s = 1.0 / (1.0 + math.exp(-self.data))
        else:
            e = math.exp(self.data)
            s = e / (1.0 + e)
        out = Value(s, (self,), 'sigmoid')

        def _backward():
            self.grad += s * (1.0 - s) * out.grad
        out._backward = _backward
        return out

    # ------------------------------------------------------------------
    # backpropagation
    # ------------------------------------------------------------------

    def topological_order(self) -> list["Value"]:
        """Every node reachable from self, parents before children.

        Iterative post-order DFS so long weighted-sum chains don't hit the
        recursion limit.
        """
        topo = []
        visited = set()
        stack = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                topo.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            for parent in reversed(node._prev):
                if id(parent) not in visited:
                    stack.append((parent, False))
        return topo

    def backward(self):
        """Compute gradients via reverse-mode autodiff (backpropagation).

        Gradients are accumulated, never reset. Zero the parameters (or call
        zero_grad on the owning module) before running a new pass.
        """
        topo = self.topological_order()
        self.grad = 1.0
        for v in reversed(topo):
            v._backward()
