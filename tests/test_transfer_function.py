import unittest

import numpy as np

from core.exceptions import (
    DegenerateTransferFunctionError,
    ImproperSystemError,
    InvalidExponentialError,
    InvalidParameterError,
    TimeDelayMismatchError,
)
from core.transfer_function import TransferFunction, exp, s, zeros_poles_k


class TestConstruction(unittest.TestCase):
    """
    Unit Tests for building TransferFunction values.
    """

    def test_coefficients_highest_power_first(self):
        tf = TransferFunction([1, 2], [1, 3, 2])
        np.testing.assert_array_equal(tf.num, [1.0, 2.0])
        np.testing.assert_array_equal(tf.den, [1.0, 3.0, 2.0])
        np.testing.assert_array_equal(tf.numerator.coef, [2.0, 1.0])
        self.assertEqual(tf.time_delay, 0.0)

    def test_leading_zeros_are_trimmed(self):
        tf = TransferFunction([0, 0, 1], [0, 1, 1])
        np.testing.assert_array_equal(tf.num, [1.0])
        np.testing.assert_array_equal(tf.den, [1.0, 1.0])

    def test_degenerate_denominator(self):
        with self.assertRaises(DegenerateTransferFunctionError):
            TransferFunction([1], [0])
        with self.assertRaises(DegenerateTransferFunctionError):
            TransferFunction([1], [0, 0, 0])
        with self.assertRaises(ValueError):
            TransferFunction([1], [])

    def test_degenerate_numerator(self):
        with self.assertRaises(DegenerateTransferFunctionError):
            TransferFunction([], [1, 1])
        with self.assertRaises(DegenerateTransferFunctionError):
            TransferFunction([np.nan], [1, 1])

    def test_negative_delay_rejected(self):
        with self.assertRaises(InvalidParameterError):
            TransferFunction([1], [1, 1], -0.5)

    def test_coefficients_are_read_only(self):
        tf = TransferFunction([1], [1, 1])
        with self.assertRaises(ValueError):
            tf.numerator.coef[0] = 5.0

    def test_frequency_variable(self):
        np.testing.assert_array_equal(s.num, [1.0, 0.0])
        np.testing.assert_array_equal(s.den, [1.0])

    def test_equality_and_hash(self):
        a = TransferFunction([1], [1, 1])
        b = TransferFunction([1.0], [1.0, 1.0])
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, TransferFunction([1], [1, 1], 2.0))
        self.assertNotEqual(a, TransferFunction([2], [1, 1]))

    def test_repr_and_str(self):
        tf = TransferFunction([1], [1, 1], 2.0)
        self.assertIn("time_delay=2.0", repr(tf))
        text = str(tf)
        self.assertIn("e^(-2*s)", text)
        self.assertIn("1*s + 1", text)


class TestAlgebra(unittest.TestCase):
    def setUp(self):
        self.g1 = 1 / (s + 1)
        self.g2 = 2 / (s + 3)

    def test_scenario_zeros_poles_k(self):
        g = (5 * s + 1) / (s**2 + 4 * s + 5)
        z, p, k = g.zeros_poles_k()

        np.testing.assert_allclose(z, [-0.2], atol=1e-10)
        p = p[np.argsort(p.imag)]
        np.testing.assert_allclose(p, [-2 - 1j, -2 + 1j], atol=1e-10)
        self.assertAlmostEqual(k, 5.0)

    def test_zeros_poles_k_round_trip(self):
        z = np.array([-3.2, 4.0])
        p = np.array([-3.0, -3.0, 0.0, 2.0])
        g = zeros_poles_k(z, p, 23.2)

        z_rec, p_rec, k_rec = g.zeros_poles_k()
        np.testing.assert_allclose(np.sort(z_rec), np.sort(z), atol=1e-6)
        np.testing.assert_allclose(np.sort_complex(p_rec), np.sort(p), atol=1e-6)
        self.assertAlmostEqual(k_rec, 23.2)

    def test_zeros_poles_k_conjugate_pairs(self):
        g = zeros_poles_k([], [-1 + 2j, -1 - 2j], 5.0, time_delay=0.5)
        self.assertTrue(g.isapprox(TransferFunction([5], [1, 2, 5], 0.5)))

        with self.assertRaises(InvalidParameterError):
            zeros_poles_k([], [-1 + 2j], 1.0)

    def test_multiply_divide(self):
        g = self.g1 * self.g2 / self.g2
        self.assertTrue(g.isapprox(self.g1))

    def test_add_subtract(self):
        g = self.g1 + self.g2 - self.g2
        self.assertTrue(g.isapprox(self.g1))

    def test_scalar_operations(self):
        self.assertTrue((2 * self.g1).isapprox(TransferFunction([2], [1, 1])))
        self.assertTrue((self.g1 * 2).isapprox(TransferFunction([2], [1, 1])))
        self.assertTrue((self.g1 / 2).isapprox(TransferFunction([0.5], [1, 1])))
        self.assertTrue((1 + self.g1).isapprox(TransferFunction([1, 2], [1, 1])))
        self.assertTrue((1 - self.g1).isapprox(TransferFunction([1, 0], [1, 1])))
        self.assertTrue((-self.g1).isapprox(TransferFunction([-1], [1, 1])))

    def test_numpy_scalar_on_the_left(self):
        g = np.float64(2.0) * self.g1
        self.assertIsInstance(g, TransferFunction)
        self.assertTrue(g.isapprox(TransferFunction([2], [1, 1])))

    def test_division_by_zero(self):
        with self.assertRaises(ZeroDivisionError):
            self.g1 / 0
        with self.assertRaises(ZeroDivisionError):
            self.g1 / TransferFunction([0], [1])

    def test_power(self):
        self.assertTrue(((s + 1) ** 2).isapprox(TransferFunction([1, 2, 1], [1])))
        self.assertEqual(self.g1**0, TransferFunction([1], [1]))
        self.assertEqual(self.g1**1, self.g1)
        with self.assertRaises(InvalidParameterError):
            self.g1**-1
        with self.assertRaises(InvalidParameterError):
            self.g1**1.5

    def test_zpk_form(self):
        g = TransferFunction([2], [2, 4]).zpk_form()
        self.assertEqual(g, TransferFunction([1], [1, 2]))

    def test_isapprox_checks_delay(self):
        self.assertTrue(TransferFunction([2], [2, 2]).isapprox(self.g1))
        self.assertFalse(self.g1.isapprox(self.g1 * exp(-1 * s)))


class TestTimeDelay(unittest.TestCase):
    def test_exp_builds_pure_delay(self):
        g = exp(-2.5 * s)
        self.assertEqual(g, TransferFunction([1], [1], 2.5))

    def test_delay_additivity(self):
        g = exp(-2 * s) * exp(-3 * s)
        self.assertAlmostEqual(g.time_delay, 5.0)

    def test_delay_with_rational_part(self):
        g = 2 * exp(-s) / (5 * s + 1)
        self.assertEqual(g.time_delay, 1.0)
        np.testing.assert_allclose(g.den, [5.0, 1.0])

    def test_exp_zero_is_one(self):
        self.assertEqual(exp(0 * s), TransferFunction([1], [1]))

    def test_exp_of_number(self):
        self.assertAlmostEqual(exp(1.0), np.e)

    def test_invalid_exponents(self):
        for arg in (2 * s, s**2, s + 1, 1 / (s + 1), exp(-s) * s):
            with self.assertRaises(InvalidExponentialError):
                exp(arg)

    def test_add_mismatched_delays(self):
        with self.assertRaises(TimeDelayMismatchError):
            exp(-s) / (s + 1) + 1 / (s + 2)
        with self.assertRaises(ValueError):
            exp(-s) / (s + 1) - exp(-2 * s) / (s + 2)

    def test_add_equal_delays(self):
        g = exp(-s) / (s + 1) + exp(-s) / (s + 2)
        self.assertEqual(g.time_delay, 1.0)
        self.assertTrue(g.isapprox(TransferFunction([2, 3], [1, 3, 2], 1.0)))

    def test_negative_delay_from_division(self):
        with self.assertRaises(InvalidParameterError):
            1 / exp(-s)


class TestPoleZeroCancellation(unittest.TestCase):
    def test_repeated_zero(self):
        g = (s - 1) ** 2 / (s - 1)
        self.assertTrue(g.isapprox(s - 1))

    def test_zeros_at_origin(self):
        g = s**5 / s
        self.assertTrue(g.isapprox(s**4))
        self.assertEqual(g.system_order(), (4, 0))

    def test_mixed_cancellation(self):
        g = (s * (s + 1)) / ((s + 3) * s * (s + 1) ** 2)
        self.assertTrue(g.isapprox(1 / ((s + 3) * (s + 1))))

    def test_idempotent(self):
        g = TransferFunction([1, 3, 2], [1, 4, 3])
        once = g.pole_zero_cancellation()
        twice = once.pole_zero_cancellation()
        self.assertTrue(once.isapprox(TransferFunction([1, 2], [1, 3])))
        self.assertTrue(twice.isapprox(once))

    def test_nothing_to_cancel_returns_same(self):
        g = TransferFunction([1, 2], [1, 4, 3])
        self.assertIs(g.pole_zero_cancellation(), g)

    def test_keeps_gain_and_delay(self):
        g = TransferFunction([3, 3], [2, 4, 2], 0.7).pole_zero_cancellation()
        self.assertAlmostEqual(g.time_delay, 0.7)
        self.assertTrue(g.isapprox(TransferFunction([1.5], [1, 1], 0.7)))


class TestEvaluation(unittest.TestCase):
    def test_evaluate(self):
        g = 1 / (s + 1)
        self.assertAlmostEqual(g.evaluate(0.0), 1.0)
        self.assertAlmostEqual(g.evaluate(1j), 0.5 - 0.5j)

    def test_evaluate_with_delay(self):
        g = exp(-s) / (s + 1)
        self.assertAlmostEqual(g.evaluate(1j), (0.5 - 0.5j) * np.exp(-1j))

    def test_evaluate_at_pole(self):
        self.assertEqual((1 / s).evaluate(0.0), np.inf)
        self.assertTrue(np.isnan(TransferFunction([1, 0], [1, 0]).evaluate(0.0)))

    def test_zero_frequency_gain(self):
        self.assertAlmostEqual((4 / (3 * s + 1)).zero_frequency_gain(), 4.0)
        self.assertAlmostEqual(TransferFunction([1, 0], [1, 0]).zero_frequency_gain(), 1.0)
        self.assertEqual((1 / s).zero_frequency_gain(), np.inf)

        z, p, K = (4 / (3 * s + 1)).zeros_poles_gain()
        self.assertEqual(z.size, 0)
        np.testing.assert_allclose(p, [-1 / 3])
        self.assertAlmostEqual(K, 4.0)

    def test_k_factor_is_not_the_gain(self):
        g = 4 / (3 * s + 1)
        self.assertAlmostEqual(g.k_factor(), 4 / 3)

    def test_frequency_and_bode_response(self):
        g = 1 / (s + 1)
        resp = g.frequency_response([1.0])
        self.assertAlmostEqual(resp[0], 0.5 - 0.5j)

        mags, phases = g.bode_response(np.array([1.0, 1000.0]))
        self.assertAlmostEqual(mags[0], -3.0103, places=3)
        self.assertAlmostEqual(phases[0], -45.0)
        self.assertAlmostEqual(phases[1], -90.0, delta=0.1)


class TestStructure(unittest.TestCase):
    def test_properness(self):
        biproper = TransferFunction([1, 2], [1, 3])
        self.assertTrue(biproper.proper())
        self.assertFalse(biproper.strictly_proper())

        improper = TransferFunction([1, 0, 0], [1, 1])
        self.assertFalse(improper.proper())

        self.assertTrue((1 / (s + 1)).strictly_proper())

    def test_system_order(self):
        self.assertEqual(TransferFunction([1, 1], [1, 2, 3]).system_order(), (1, 2))

    def test_state_space_third_order(self):
        tf = TransferFunction([13, 26], [1, 7, 19, 13])
        A, B, C, D = tf.to_state_space()

        np.testing.assert_array_equal(A, [[0, 1, 0], [0, 0, 1], [-13, -19, -7]])
        np.testing.assert_array_equal(B, [[0], [0], [1]])
        np.testing.assert_array_equal(C, [[26, 13, 0]])
        self.assertEqual(D, 0.0)

    def test_state_space_second_order(self):
        _, _, C, D = TransferFunction([1, 3], [1, 3, 2]).to_state_space()
        np.testing.assert_array_equal(C, [[3, 1]])
        self.assertEqual(D, 0.0)

        _, _, C, D = TransferFunction([1, 1, 6], [1, 6, 11, 6]).to_state_space()
        np.testing.assert_array_equal(C, [[6, 1, 1]])

        _, _, C, _ = TransferFunction([1], [1, 6, 11, 6]).to_state_space()
        np.testing.assert_array_equal(C, [[1, 0, 0]])

    def test_state_space_biproper(self):
        _, _, C, D = TransferFunction([1, 3, 3], [1, 2, 1]).to_state_space()
        np.testing.assert_array_equal(C, [[2, 1]])
        self.assertEqual(D, 1.0)

    def test_state_space_normalizes_leading_coefficient(self):
        A, _, C, D = TransferFunction([4], [2, 2]).to_state_space()
        np.testing.assert_array_equal(A, [[-1]])
        np.testing.assert_array_equal(C, [[2]])
        self.assertEqual(D, 0.0)

    def test_state_space_improper(self):
        with self.assertRaises(ImproperSystemError):
            TransferFunction([1, 0, 0], [1, 1]).to_state_space()


if __name__ == "__main__":
    unittest.main()
