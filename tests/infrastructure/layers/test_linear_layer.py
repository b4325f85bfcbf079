import unittest

import numpy as np

from src.layerkit.infrastructure.layers._linear import Linear
from src.layerkit.infrastructure.tensor._tensor import Tensor


class TestLinear(unittest.TestCase):
    def setUp(self) -> None:
        np.random.seed(0)
        self.lin = Linear(3, 2)
        self.W = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]], dtype=np.float32)
        self.b = np.array([0.5, -1.5], dtype=np.float32)
        self.lin.weight.copy_from_numpy(self.W)
        self.lin.bias.copy_from_numpy(self.b)

    def test_invalid_features_raise(self):
        with self.assertRaises(ValueError):
            Linear(0, 2)

    def test_reset_draws_within_bounds(self):
        lin = Linear(16, 4)
        bound = 1.0 / np.sqrt(16)
        self.assertTrue(np.all(np.abs(lin.weight.to_numpy()) <= bound))
        self.assertTrue(np.all(np.abs(lin.bias.to_numpy()) <= bound))
        np.testing.assert_array_equal(lin.grad_weight.to_numpy(), np.zeros((4, 16)))

    def test_forward_batch(self):
        x = np.array([[1.0, 0.0, -1.0], [2.0, 1.0, 0.5]], dtype=np.float32)
        y = self.lin.forward(Tensor.from_numpy(x))
        np.testing.assert_allclose(y.to_numpy(), x @ self.W.T + self.b, rtol=1e-6)
        self.assertIs(y, self.lin.output)

    def test_forward_single_sample(self):
        x = np.array([1.0, 1.0, 1.0], dtype=np.float32)
        y = self.lin.forward(Tensor.from_numpy(x))
        np.testing.assert_allclose(y.to_numpy(), [6.5, 13.5])

    def test_wrong_input_width_raises(self):
        with self.assertRaises(ValueError):
            self.lin.forward(Tensor.zeros((2, 4)))

    def test_backward_gradients(self):
        x = np.array([[1.0, 0.0, -1.0], [2.0, 1.0, 0.5]], dtype=np.float32)
        g = np.array([[1.0, 0.0], [0.0, 1.0]], dtype=np.float32)
        xt, gt = Tensor.from_numpy(x), Tensor.from_numpy(g)

        self.lin.forward(xt)
        gx = self.lin.backward(xt, gt)

        np.testing.assert_allclose(gx.to_numpy(), g @ self.W)
        np.testing.assert_allclose(self.lin.grad_weight.to_numpy(), g.T @ x)
        np.testing.assert_allclose(self.lin.grad_bias.to_numpy(), g.sum(axis=0))

    def test_update_parameters(self):
        self.lin.grad_weight.fill_(1.0)
        self.lin.grad_bias.fill_(2.0)
        self.lin.update_parameters(0.5)
        np.testing.assert_allclose(self.lin.weight.to_numpy(), self.W - 0.5)
        np.testing.assert_allclose(self.lin.bias.to_numpy(), self.b - 1.0)

    def test_without_bias(self):
        lin = Linear(2, 2, bias=False)
        self.assertIsNone(lin.bias)
        weights, grads = lin.parameters()
        self.assertEqual(len(weights), 1)
        self.assertEqual(len(grads), 1)
        self.assertEqual(lin.get_config()["bias"], False)

    def test_repr_includes_name(self):
        self.lin.set_name("fc1")
        self.assertEqual(
            repr(self.lin), "Linear(name='fc1', in_features=3, out_features=2, bias=True)"
        )

    def test_config_round_trip(self):
        clone = Linear.from_config(self.lin.get_config())
        self.assertEqual(clone.in_features, 3)
        self.assertEqual(clone.out_features, 2)
        self.assertIsNotNone(clone.bias)


if __name__ == "__main__":
    unittest.main()
