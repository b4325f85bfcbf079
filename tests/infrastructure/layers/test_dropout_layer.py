import unittest

import numpy as np

from src.layerkit.infrastructure.layers._dropout import Dropout
from src.layerkit.infrastructure.tensor._tensor import Tensor


class TestDropout(unittest.TestCase):
    def test_invalid_p_raises(self):
        with self.assertRaises(ValueError):
            Dropout(p=-0.1)
        with self.assertRaises(ValueError):
            Dropout(p=1.0)

        Dropout(p=0.0)
        Dropout(p=0.999)

    def test_eval_mode_is_identity(self):
        drop = Dropout(0.5).evaluate()
        x_np = np.random.randn(4, 5).astype(np.float32)
        x = Tensor.from_numpy(x_np)

        np.testing.assert_array_equal(drop.forward(x).to_numpy(), x_np)
        np.testing.assert_array_equal(drop.backward(x, x).to_numpy(), x_np)

    def test_train_mode_masks_and_rescales(self):
        np.random.seed(3)
        drop = Dropout(0.5)
        x = Tensor.from_numpy(np.ones((50, 50), dtype=np.float32))

        y = drop.forward(x).to_numpy()

        self.assertTrue(set(np.unique(y)).issubset({0.0, 2.0}))
        self.assertTrue(0.3 < np.mean(y == 0.0) < 0.7)

    def test_backward_reuses_mask(self):
        np.random.seed(4)
        drop = Dropout(0.25)
        x = Tensor.from_numpy(np.ones((8, 8), dtype=np.float32))
        y = drop.forward(x).to_numpy()
        gx = drop.backward(x, x).to_numpy()
        np.testing.assert_array_equal(gx, y)

    def test_clear_state_drops_noise(self):
        drop = Dropout(0.5)
        drop.forward(Tensor.from_numpy(np.ones((2, 2), dtype=np.float32)))
        drop.clear_state()
        self.assertIsNone(drop.noise.storage())
        self.assertIsNone(drop.output.storage())


if __name__ == "__main__":
    unittest.main()
