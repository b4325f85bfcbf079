import time
import unittest

import numpy as np

from src.layerkit.domain._errors import UnsupportedDTypeError
from src.layerkit.domain._module import IModule
from src.layerkit.infrastructure._module import Module, TensorModule
from src.layerkit.infrastructure.layers._table_ops import CAddTable
from src.layerkit.infrastructure.tensor._table import Table
from src.layerkit.infrastructure.tensor._tensor import Tensor


def _t(values, dtype=np.float32) -> Tensor:
    return Tensor.from_numpy(np.asarray(values, dtype=dtype))


class _Identity(TensorModule):
    def update_grad_input(self, input, grad_output):
        self.grad_input = grad_output
        return self.grad_input


class _Slow(TensorModule):
    def update_output(self, input):
        time.sleep(0.001)
        return super().update_output(input)

    def update_grad_input(self, input, grad_output):
        time.sleep(0.001)
        self.grad_input = grad_output
        return self.grad_input


class _Recorder(TensorModule):
    """Records the order in which the backward hooks are invoked."""

    def __init__(self):
        super().__init__()
        self.calls = []

    def update_grad_input(self, input, grad_output):
        self.calls.append(("update_grad_input", input, grad_output))
        self.grad_input = grad_output
        return self.grad_input

    def acc_grad_parameters(self, input, grad_output, scale=1.0):
        self.calls.append(("acc_grad_parameters", input, grad_output, scale))


class _OtherIdentity(_Identity):
    pass


class TestModuleContract(unittest.TestCase):
    def test_base_module_is_abstract(self):
        with self.assertRaises(TypeError):
            Module()

    def test_layer_without_update_grad_input_cannot_be_built(self):
        class Incomplete(Module):
            pass

        with self.assertRaises(TypeError):
            Incomplete()

    def test_conforms_to_imodule(self):
        self.assertIsInstance(_Identity(), IModule)

    def test_initial_activities_are_empty_tensors(self):
        m = _Identity()
        self.assertIsInstance(m.output, Tensor)
        self.assertEqual(m.output.n_element(), 0)
        self.assertEqual(m.grad_input.n_element(), 0)

    def test_activity_factories_are_used(self):
        class TableOut(Module):
            def __init__(self):
                super().__init__(output_factory=Table.empty)

            def update_grad_input(self, input, grad_output):
                return self.grad_input

        m = TableOut()
        self.assertIsInstance(m.output, Table)
        self.assertIsInstance(m.grad_input, Tensor)

    def test_forward_stores_and_returns_identity_output(self):
        m = _Identity()
        x = _t([1, 2, 3])
        y = m.forward(x)
        self.assertIs(y, x)
        self.assertIs(m.output, x)

    def test_backward_calls_hooks_in_order_with_same_arguments(self):
        m = _Recorder()
        x, g = _t([1]), _t([2])

        out = m.backward(x, g)

        self.assertIs(out, g)
        self.assertEqual([c[0] for c in m.calls], ["update_grad_input", "acc_grad_parameters"])
        self.assertIs(m.calls[0][1], x)
        self.assertIs(m.calls[1][1], x)
        self.assertIs(m.calls[0][2], g)
        self.assertIs(m.calls[1][2], g)
        self.assertEqual(m.calls[1][3], 1.0)

    def test_default_hooks_are_noops(self):
        m = _Identity()
        m.acc_grad_parameters(_t([1]), _t([1]))
        m.zero_grad_parameters()
        m.update_parameters(0.1)
        m.reset()
        self.assertIsNone(m.parameters())

    def test_training_mode_toggles(self):
        m = _Identity()
        self.assertTrue(m.is_training())
        self.assertIs(m.evaluate(), m)
        self.assertFalse(m.is_training())
        self.assertIs(m.training(), m)
        self.assertTrue(m.is_training())

    def test_name_defaults_to_class_name(self):
        m = _Identity()
        self.assertTrue(m.get_name().endswith("_Identity"))
        self.assertIs(m.set_name("encoder"), m)
        self.assertEqual(m.get_name(), "encoder")

    def test_clear_state_detaches_activities(self):
        m = _Identity()
        m.forward(_t([1, 2]))
        m.backward(_t([1, 2]), _t([3, 4]))

        self.assertIs(m.clear_state(), m)

        self.assertIsNone(m.output.storage())
        self.assertIsNone(m.grad_input.storage())

    def test_setup_returns_self(self):
        m = _Identity()
        self.assertIs(m.setup(), m)

    def test_unsupported_dtype_is_rejected(self):
        with self.assertRaises(UnsupportedDTypeError):
            _Identity(dtype=np.int64)

    def test_float64_module(self):
        m = _Identity(dtype=np.float64)
        self.assertEqual(m.dtype, np.float64)
        self.assertEqual(m.dtype_name, "float64")
        self.assertEqual(m.output.dtype, np.float64)


class TestModuleTiming(unittest.TestCase):
    def test_forward_time_accumulates(self):
        m = _Slow()
        x = _t([1])

        m.forward(x)
        first = m.forward_time
        m.forward(x)
        second = m.forward_time

        self.assertGreater(first, 0)
        self.assertGreater(second, first)
        self.assertEqual(m.backward_time, 0)

    def test_backward_time_accumulates_and_reset_zeroes_both(self):
        m = _Slow()
        x = _t([1])
        m.forward(x)
        m.backward(x, x)
        self.assertGreater(m.backward_time, 0)

        m.reset_times()

        self.assertEqual(m.forward_time, 0)
        self.assertEqual(m.backward_time, 0)

    def test_leaf_get_times_has_one_entry(self):
        m = _Slow()
        m.forward(_t([1]))
        times = m.get_times()
        self.assertEqual(len(times), 1)
        module, fwd, bwd = times[0]
        self.assertIs(module, m)
        self.assertEqual(fwd, m.forward_time)
        self.assertEqual(bwd, 0)


class TestModuleEquality(unittest.TestCase):
    def test_fresh_modules_of_same_type_are_equal(self):
        a, b = _Identity(), _Identity()
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))

    def test_equal_buffers_compare_equal(self):
        a, b = _Identity(), _Identity()
        a.forward(_t([1, 2]))
        b.forward(_t([1, 2]))
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))

    def test_differing_output_breaks_equality(self):
        a, b = _Identity(), _Identity()
        a.forward(_t([1, 2]))
        b.forward(_t([1, 3]))
        self.assertNotEqual(a, b)

    def test_differing_type_breaks_equality(self):
        self.assertNotEqual(_Identity(), _OtherIdentity())

    def test_hash_mixes_output_grad_input_and_type(self):
        m = _Identity()
        expected = 0
        for h in (hash(m.output), hash(m.grad_input), hash(_Identity)):
            expected = 31 * expected + h
        self.assertEqual(hash(m), hash(expected))

    def test_table_activities_in_any_key_order_hash_equal(self):
        a, b, g = _t([1, 2]), _t([3, 4]), _t([1, 1])
        first, second = CAddTable(), CAddTable()

        first.forward(Table(x=a, y=b))
        first.backward(Table(x=a, y=b), g)
        second.forward(Table(y=b, x=a))
        second.backward(Table(y=b, x=a), g)

        self.assertEqual(list(first.grad_input.keys()), ["x", "y"])
        self.assertEqual(list(second.grad_input.keys()), ["y", "x"])
        self.assertEqual(first, second)
        self.assertEqual(hash(first), hash(second))

    def test_name_and_mode_do_not_affect_equality(self):
        a, b = _Identity(), _Identity()
        a.set_name("x").evaluate()
        self.assertEqual(a, b)


if __name__ == "__main__":
    unittest.main()
