from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
import unittest

from binengine.domain.exceptions import InvalidParameterError
from binengine.domain.services.bin_math import (
    REFERENCE_BIN_ID,
    bin_for_price,
    normalize_amount,
    price_for_bin,
    price_from_per_token,
    price_per_token,
)


class BinPriceConversionTests(unittest.TestCase):
    def test_reference_bin_has_unit_price(self):
        self.assertEqual(price_for_bin(REFERENCE_BIN_ID, 25), Decimal(1))

    def test_next_bin_grows_by_bin_step(self):
        self.assertEqual(price_for_bin(REFERENCE_BIN_ID + 1, 25), Decimal("1.0025"))
        self.assertEqual(price_for_bin(REFERENCE_BIN_ID + 2, 100), Decimal("1.0201"))

    def test_round_trip_is_exact_across_wide_range(self):
        for bin_step in (1, 10, 25, 100):
            for offset in (-20000, -4321, -1, 0, 1, 70, 4321, 20000):
                bin_id = REFERENCE_BIN_ID + offset
                price = price_for_bin(bin_id, bin_step)
                self.assertEqual(bin_for_price(price, bin_step), bin_id, (bin_step, offset))
                self.assertEqual(bin_for_price(price, bin_step, round_up=True), bin_id, (bin_step, offset))

    def test_price_is_strictly_increasing(self):
        previous = price_for_bin(REFERENCE_BIN_ID - 500, 25)
        for bin_id in range(REFERENCE_BIN_ID - 499, REFERENCE_BIN_ID + 500, 37):
            current = price_for_bin(bin_id, 25)
            self.assertGreater(current, previous)
            previous = current

    def test_price_between_bins_rounds_down_or_up(self):
        bin_id = REFERENCE_BIN_ID + 12
        low = price_for_bin(bin_id, 25)
        high = price_for_bin(bin_id + 1, 25)
        mid = (low + high) / 2

        self.assertEqual(bin_for_price(mid, 25), bin_id)
        self.assertEqual(bin_for_price(mid, 25, round_up=True), bin_id + 1)

    def test_precision_is_the_same_on_any_thread(self):
        bin_id = REFERENCE_BIN_ID - 1000
        with ThreadPoolExecutor(max_workers=1) as executor:
            from_worker = executor.submit(price_for_bin, bin_id, 25).result()

        self.assertEqual(from_worker, price_for_bin(bin_id, 25))
        self.assertEqual(len(from_worker.as_tuple().digits), 50)
        with ThreadPoolExecutor(max_workers=1) as executor:
            self.assertEqual(executor.submit(bin_for_price, from_worker, 25).result(), bin_id)

    def test_accepts_float_and_string_prices(self):
        self.assertEqual(bin_for_price("1", 25), REFERENCE_BIN_ID)
        self.assertEqual(bin_for_price(1.0, 25), REFERENCE_BIN_ID)

    def test_invalid_inputs_raise(self):
        with self.assertRaises(InvalidParameterError):
            bin_for_price(0, 25)
        with self.assertRaises(InvalidParameterError):
            bin_for_price(Decimal("-1"), 25)
        with self.assertRaises(InvalidParameterError):
            bin_for_price("NaN", 25)
        with self.assertRaises(InvalidParameterError):
            bin_for_price("not-a-price", 25)
        with self.assertRaises(InvalidParameterError):
            price_for_bin(REFERENCE_BIN_ID, 0)
        with self.assertRaises(InvalidParameterError):
            price_for_bin(REFERENCE_BIN_ID, -5)
        with self.assertRaises(InvalidParameterError):
            bin_for_price(1, True)


class TokenUnitTests(unittest.TestCase):
    def test_price_per_token_applies_decimal_difference(self):
        self.assertEqual(price_per_token(Decimal("0.15"), 9, 6), Decimal("150.00"))
        self.assertEqual(price_from_per_token(Decimal("150"), 9, 6), Decimal("0.15"))

    def test_normalize_amount(self):
        self.assertEqual(normalize_amount(1_500_000, 6), Decimal("1.5"))
        self.assertEqual(normalize_amount(0, 9), Decimal(0))
        with self.assertRaises(InvalidParameterError):
            normalize_amount(1, -1)


if __name__ == "__main__":
    unittest.main()
