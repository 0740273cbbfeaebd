import unittest

import numpy as np

from core.closed_loop import ClosedLoopStandardForm, ClosedLoopTransferFunction
from core.exceptions import ImproperSystemError, InvalidParameterError
from core.transfer_function import TransferFunction, exp, s


class TestClosedLoopTransferFunction(unittest.TestCase):
    """
    Unit Tests for closed loops with dead time in the disturbance path and in the loop.
    """

    def setUp(self):
        self.g_d = 3 / (s + 1) * exp(-5 * s)
        self.g_ol = 18 / (100 * s + 1) * exp(-s)
        self.cl = ClosedLoopTransferFunction(self.g_d, self.g_ol)

    def test_standard_form(self):
        form = self.cl.standard_form()
        self.assertIsInstance(form, ClosedLoopStandardForm)

        np.testing.assert_allclose(form.p_a.coef, [3.0, 300.0])
        np.testing.assert_allclose(form.p_b.coef, [1.0, 101.0, 100.0])
        np.testing.assert_allclose(form.p_c.coef, [18.0, 18.0])
        self.assertEqual(form.theta, 5.0)
        self.assertEqual(form.phi, 1.0)

    def test_order_and_properness(self):
        self.assertEqual(self.cl.order(), 2)
        self.assertTrue(self.cl.strictly_proper())

    def test_not_strictly_proper(self):
        cl = ClosedLoopTransferFunction(self.g_d, self.g_ol * (4 * s + 1))
        self.assertFalse(cl.strictly_proper())
        with self.assertRaises(ImproperSystemError):
            cl.to_state_space()

    def test_state_space(self):
        A, B, A_delay, D = self.cl.to_state_space()

        np.testing.assert_allclose(A, [[0.0, 1.0], [-0.01, -1.01]])
        np.testing.assert_allclose(B, [[0.0], [1.0]])
        np.testing.assert_allclose(A_delay, [[0.0, 0.0], [-0.18, -0.18]])
        np.testing.assert_allclose(D, [[0.03, 3.0]])

    def test_algebra_only_changes_top(self):
        cl2 = self.cl * 4 / s
        self.assertIsInstance(cl2, ClosedLoopTransferFunction)
        self.assertEqual(cl2.g_ol, self.g_ol)
        self.assertTrue(cl2.top.isapprox(self.g_d * 4 / s))

        cl3 = (1 / (s + 2)) * self.cl
        self.assertEqual(cl3.g_ol, self.g_ol)
        self.assertTrue(cl3.top.isapprox(self.g_d / (s + 2)))

    def test_scalar_top(self):
        cl = ClosedLoopTransferFunction(1, self.g_ol)
        self.assertEqual(cl.top, TransferFunction([1], [1]))

    def test_invalid_arguments(self):
        with self.assertRaises(InvalidParameterError):
            ClosedLoopTransferFunction(self.g_d, 3.0)
        with self.assertRaises(InvalidParameterError):
            ClosedLoopTransferFunction("g", self.g_ol)

    def test_evaluate(self):
        z = 0.3j
        expected = self.g_d.evaluate(z) / (1 + self.g_ol.evaluate(z))
        self.assertAlmostEqual(self.cl.evaluate(z), expected)

        omega = np.array([0.1, 1.0])
        np.testing.assert_allclose(
            self.cl.frequency_response(omega),
            [self.cl.evaluate(1j * w) for w in omega],
        )

    def test_equality(self):
        other = ClosedLoopTransferFunction(self.g_d, self.g_ol)
        self.assertEqual(self.cl, other)
        self.assertEqual(hash(self.cl), hash(other))
        self.assertNotEqual(self.cl, self.cl * 2)

    def test_str_shows_both_parts(self):
        text = str(self.cl)
        self.assertIn("1 + g_ol", text)
        self.assertIn("e^(-5*s)", text)
        self.assertIn("e^(-1*s)", text)


if __name__ == "__main__":
    unittest.main()
