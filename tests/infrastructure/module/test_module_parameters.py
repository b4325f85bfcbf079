import unittest

import numpy as np

from src.layerkit.domain._errors import EmptyParameterListError
from src.layerkit.infrastructure.layers._activations import ReLU
from src.layerkit.infrastructure.layers._linear import Linear
from src.layerkit.infrastructure.models._sequential import Sequential
from src.layerkit.infrastructure.tensor._tensor import Tensor


def _t(values) -> Tensor:
    return Tensor.from_numpy(np.asarray(values, dtype=np.float32))


class TestGetParameters(unittest.TestCase):
    def setUp(self) -> None:
        np.random.seed(0)

    def test_parameter_free_module_has_no_parameter_set(self):
        relu = ReLU()
        self.assertIsNone(relu.parameters())
        with self.assertRaises(EmptyParameterListError):
            relu.get_parameters()

    def test_layer_parameters_are_flattened_in_order(self):
        lin = Linear(3, 2)
        w_before = lin.weight.to_numpy()
        b_before = lin.bias.to_numpy()

        weights, grads = lin.get_parameters()

        self.assertEqual(weights.n_element(), 8)
        self.assertEqual(grads.n_element(), 8)
        np.testing.assert_array_equal(
            weights.to_numpy(), np.concatenate([w_before.reshape(-1), b_before])
        )
        self.assertIs(lin.weight.storage(), weights.storage())
        self.assertIs(lin.bias.storage(), weights.storage())
        self.assertIs(lin.grad_weight.storage(), grads.storage())
        self.assertIs(lin.grad_bias.storage(), grads.storage())
        np.testing.assert_array_equal(lin.weight.to_numpy(), w_before)

    def test_network_parameters_share_one_buffer(self):
        model = Sequential(Linear(4, 3), ReLU(), Linear(3, 2, bias=False))

        weights, grads = model.get_parameters()

        self.assertEqual(weights.n_element(), 4 * 3 + 3 + 3 * 2)
        for w in model.parameters()[0]:
            self.assertIs(w.storage(), weights.storage())
        for g in model.parameters()[1]:
            self.assertIs(g.storage(), grads.storage())

    def test_get_parameters_twice_does_not_copy(self):
        lin = Linear(2, 2)
        w1, g1 = lin.get_parameters()
        w2, g2 = lin.get_parameters()
        self.assertIs(w1.storage(), w2.storage())
        self.assertIs(g1.storage(), g2.storage())

    def test_layer_keeps_training_after_flattening(self):
        lin = Linear(2, 1, bias=False)
        lin.weight.copy_from_numpy(np.array([[1.0, 1.0]], dtype=np.float32))
        weights, grads = lin.get_parameters()

        x = _t([1.0, 2.0])
        lin.forward(x)
        lin.backward(x, _t([1.0]))

        np.testing.assert_allclose(grads.to_numpy(), [1.0, 2.0])

        lin.update_parameters(0.5)

        np.testing.assert_allclose(weights.to_numpy(), [0.5, 0.0])


class TestGradientAccumulation(unittest.TestCase):
    def _layer(self) -> Linear:
        lin = Linear(3, 2)
        lin.weight.copy_from_numpy(
            np.array([[1.0, 0.0, -1.0], [0.5, 2.0, 1.0]], dtype=np.float32)
        )
        lin.bias.copy_from_numpy(np.array([0.1, -0.2], dtype=np.float32))
        lin.zero_grad_parameters()
        return lin

    def test_two_backward_calls_double_the_gradients(self):
        x = _t([[1.0, 2.0, 3.0], [0.0, -1.0, 1.0]])
        g = _t([[1.0, -1.0], [0.5, 2.0]])

        once = self._layer()
        once.forward(x)
        once.backward(x, g)

        twice = self._layer()
        twice.forward(x)
        twice.backward(x, g)
        twice.backward(x, g)

        np.testing.assert_allclose(
            twice.grad_weight.to_numpy(), 2 * once.grad_weight.to_numpy(), rtol=1e-6
        )
        np.testing.assert_allclose(
            twice.grad_bias.to_numpy(), 2 * once.grad_bias.to_numpy(), rtol=1e-6
        )

    def test_zero_grad_parameters_between_calls_resets(self):
        x = _t([[1.0, 2.0, 3.0]])
        g = _t([[1.0, 1.0]])

        once = self._layer()
        once.backward(x, g)

        lin = self._layer()
        lin.backward(x, g)
        lin.zero_grad_parameters()
        np.testing.assert_array_equal(lin.grad_weight.to_numpy(), np.zeros((2, 3)))
        lin.backward(x, g)

        np.testing.assert_allclose(
            lin.grad_weight.to_numpy(), once.grad_weight.to_numpy()
        )

    def test_scale_multiplies_the_contribution(self):
        x = _t([1.0, 2.0, 3.0])
        g = _t([1.0, -1.0])

        lin = self._layer()
        lin.acc_grad_parameters(x, g, scale=0.5)

        np.testing.assert_allclose(
            lin.grad_weight.to_numpy(), 0.5 * np.outer([1.0, -1.0], [1.0, 2.0, 3.0])
        )
        np.testing.assert_allclose(lin.grad_bias.to_numpy(), [0.5, -0.5])


if __name__ == "__main__":
    unittest.main()
