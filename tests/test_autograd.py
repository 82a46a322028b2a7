"""
Tests for the autograd engine: arithmetic rules, log clamping, topological
ordering, shared sub-expressions and repeated backward passes.
"""

import math

import pytest


# ============================================================================
# ARITHMETIC
# ============================================================================

class TestArithmetic:
    def test_addition(self):
        from scalargrad.core.autograd import Value
        a = Value(2.0)
        b = Value(3.0)
        c = a + b
        assert c.data == 5.0
        c.backward()
        assert a.grad == 1.0
        assert b.grad == 1.0

    @pytest.mark.parametrize("x, y", [(0.0, 0.0), (-1.5, 2.25), (1e6, -3.0)])
    def test_addition_pairs(self, x, y):
        from scalargrad.core.autograd import Value
        a, b = Value(x), Value(y)
        c = a + b
        assert c.data == x + y
        c.backward()
        assert (a.grad, b.grad) == (1.0, 1.0)

    def test_multiplication(self):
        from scalargrad.core.autograd import Value
        a = Value(3.0)
        b = Value(4.0)
        c = a * b
        assert c.data == 12.0
        c.backward()
        assert a.grad == 4.0
        assert b.grad == 3.0

    @pytest.mark.parametrize("x, y", [(0.5, -2.0), (-7.0, 0.0), (3.0, 3.0)])
    def test_multiplication_pairs(self, x, y):
        from scalargrad.core.autograd import Value
        a, b = Value(x), Value(y)
        (a * b).backward()
        assert a.grad == b.data
        assert b.grad == a.data

    def test_subtraction(self):
        from scalargrad.core.autograd import Value
        a = Value(5.0)
        b = Value(3.0)
        c = a - b
        assert c.data == 2.0
        c.backward()
        assert a.grad == 1.0
        assert b.grad == -1.0

    def test_negation(self):
        from scalargrad.core.autograd import Value
        a = Value(2.5)
        c = -a
        assert c.data == -2.5
        c.backward()
        assert a.grad == -1.0

    def test_division_node_by_node(self):
        from scalargrad.core.autograd import Value
        a = Value(6.0)
        b = Value(3.0)
        c = a / b
        assert abs(c.data - 2.0) < 1e-12
        assert c._prev == (a, b)
        c.backward()
        assert abs(a.grad - 1.0 / 3.0) < 1e-12
        assert abs(b.grad - (-6.0 / 9.0)) < 1e-12

    def test_division_node_by_scalar(self):
        from scalargrad.core.autograd import Value
        a = Value(6.0)
        c = a / 4
        assert c.data == 1.5
        assert c._prev == (a,)
        c.backward()
        assert a.grad == 0.25

    def test_division_scalar_by_node(self):
        from scalargrad.core.autograd import Value
        b = Value(2.0)
        c = 6 / b
        assert c.data == 3.0
        assert c._prev == (b,)
        c.backward()
        assert b.grad == -6.0 / 4.0

    def test_division_by_zero_node(self):
        from scalargrad.core.autograd import DEFAULT_LOG_EPSILON, Value
        a = Value(1.0)
        b = Value(0.0)
        c = a / b
        assert c.data == pytest.approx(1.0 / DEFAULT_LOG_EPSILON)
        c.backward()
        assert math.isfinite(a.grad)
        assert math.isfinite(b.grad)
        assert b.grad < 0

    def test_division_by_zero_scalar(self):
        from scalargrad.core.autograd import Value
        a = Value(1.0)
        c = a / 0
        assert math.isfinite(c.data)
        c.backward()
        assert math.isfinite(a.grad)

    def test_division_of_scalar_by_zero_node(self):
        from scalargrad.core.autograd import Value
        b = Value(0.0)
        c = 1 / b
        assert math.isfinite(c.data)
        c.backward()
        assert math.isfinite(b.grad)

    def test_division_near_zero_keeps_sign(self):
        from scalargrad.core.autograd import DEFAULT_LOG_EPSILON, Value
        c = Value(1.0) / Value(-1e-12)
        assert c.data == pytest.approx(-1.0 / DEFAULT_LOG_EPSILON)

    def test_negative_power_of_zero(self):
        from scalargrad.core.autograd import Value
        x = Value(0.0)
        y = x ** -1
        assert math.isfinite(y.data)
        y.backward()
        assert math.isfinite(x.grad)

    def test_fractional_power_of_zero_gradient(self):
        from scalargrad.core.autograd import Value
        x = Value(0.0)
        y = x ** 0.5
        assert y.data == 0.0
        y.backward()
        assert math.isfinite(x.grad)

    def test_power_rule(self):
        from scalargrad.core.autograd import Value
        x = Value(4.0)
        y = x ** 3
        assert y.data == 64.0
        y.backward()
        assert x.grad == 48.0  # 3 * 4^2

    def test_power_rejects_value_exponent(self):
        from scalargrad.core.autograd import Value
        with pytest.raises(TypeError):
            Value(2.0) ** Value(3.0)

    def test_unsupported_operand(self):
        from scalargrad.core.autograd import Value
        with pytest.raises(TypeError):
            Value(1.0) + "1"

    def test_scalar_ops(self):
        """Plain numbers on either side of an operator."""
        from scalargrad.core.autograd import Value
        a = Value(3.0)
        assert (a + 2).data == 5.0
        assert (2 + a).data == 5.0
        assert (a * 3).data == 9.0
        assert (3 * a).data == 9.0
        assert (10 - a).data == 7.0
        assert (a - 1).data == 2.0

    def test_op_labels(self):
        from scalargrad.core.autograd import Value
        a, b = Value(1.0), Value(2.0)
        assert (a + b)._op == '+'
        assert (a * b)._op == '*'
        assert (a / b)._op == '/'
        assert (a ** 2)._op == '**2'
        assert a.log()._op == 'log'
        assert a.is_leaf
        assert not (a + b).is_leaf


# ============================================================================
# ELEMENTARY FUNCTIONS
# ============================================================================

class TestFunctions:
    def test_log(self):
        from scalargrad.core.autograd import Value
        a = Value(math.e)
        c = a.log()
        assert abs(c.data - 1.0) < 1e-12
        c.backward()
        assert abs(a.grad - 1.0 / math.e) < 1e-12

    def test_log_clamps_zero(self):
        from scalargrad.core.autograd import Value
        zero = Value(0.0)
        c = zero.log(1e-7)
        assert c.data == pytest.approx(math.log(1e-7), abs=1e-9)
        assert math.isfinite(c.data)
        c.backward()
        assert zero.grad == pytest.approx(1e7)

    def test_log_clamps_negative(self):
        from scalargrad.core.autograd import Value
        c = Value(-1e-20).log()
        assert c.data == pytest.approx(math.log(1e-7))

    def test_exp(self):
        from scalargrad.core.autograd import Value
        a = Value(1.0)
        c = a.exp()
        assert c.data == pytest.approx(math.e)
        c.backward()
        assert a.grad == pytest.approx(math.e)

    def test_exp_saturates(self):
        from scalargrad.core.autograd import EXP_MAX, Value
        a = Value(1000.0)
        c = a.exp()
        assert c.data == pytest.approx(math.exp(EXP_MAX))
        c.backward()
        assert math.isfinite(a.grad)

    def test_chain(self):
        from scalargrad.core.autograd import Value
        x = Value(2.0)
        y = Value(3.0)
        z = (x * y + Value(1.0)).relu()
        assert z.data == 7.0
        z.backward()
        assert x.grad == 3.0
        assert y.grad == 2.0


# ============================================================================
# BACKWARD PASS
# ============================================================================

class TestBackward:
    def test_shared_subexpression_accumulates(self):
        from scalargrad.core.autograd import Value
        x = Value(1.5)
        y = Value(-0.5)
        s = x + y
        z = s * s
        z.backward()
        expected = 2 * (x.data + y.data)
        assert x.grad == expected
        assert y.grad == expected

    def test_same_node_twice(self):
        from scalargrad.core.autograd import Value
        x = Value(3.0)
        y = x * x
        y.backward()
        assert x.grad == 6.0

    def test_diamond(self):
        from scalargrad.core.autograd import Value
        x = Value(2.0)
        a = x * 3
        b = x ** 2
        out = a + b
        out.backward()
        assert x.grad == 3 + 2 * 2.0

    def test_topological_order_parents_first(self):
        from scalargrad.core.autograd import Value
        x = Value(1.0)
        y = Value(2.0)
        a = x * y
        b = a + x
        c = b * a
        topo = c.topological_order()
        position = {id(v): i for i, v in enumerate(topo)}
        assert len(topo) == 5
        for node in topo:
            for parent in node._prev:
                assert position[id(parent)] < position[id(node)]
        assert topo[-1] is c

    def test_repeated_backward_with_reset_is_identical(self):
        from scalargrad.core.autograd import Value
        x = Value(0.7)
        y = Value(-1.3)
        z = ((x * y).sigmoid() + (x / y)) ** 2
        nodes = z.topological_order()

        z.backward()
        first = (x.grad, y.grad)

        for v in nodes:
            v.grad = 0.0
        z.backward()
        assert (x.grad, y.grad) == first

    def test_repeated_backward_without_reset_double_counts(self):
        from scalargrad.core.autograd import Value
        x = Value(2.0)
        y = x * 5
        y.backward()
        y.backward()
        assert x.grad == 10.0

    def test_deep_chain_does_not_recurse(self):
        from scalargrad.core.autograd import Value
        x = Value(1.0)
        s = x
        for _ in range(5000):
            s = s + x
        s.backward()
        assert x.grad == 5001.0
