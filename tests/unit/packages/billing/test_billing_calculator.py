import pytest

from packages.billing.services.billing_calculator import BillingCalculator, calculate_charge


class TestCalculateCharge:
    @pytest.mark.parametrize(
        "char_count,rate,expected",
        [
            (0, 0.01, 0),
            (1, 0.01, 1),
            (100, 0.01, 1),
            (100, 0.25, 25),
            (150, 1.0, 150),
            (300, 0.01, 3),
            (101, 0.01, 2),
            (1000, 0.07, 70),
        ],
    )
    def test_charge_in_cents(self, char_count, rate, expected):
        assert calculate_charge(char_count, rate) == expected

    def test_zero_rate_is_free(self):
        assert calculate_charge(5000, 0) == 0

    def test_negative_char_count_rejected(self):
        with pytest.raises(ValueError):
            calculate_charge(-1, 0.01)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            calculate_charge(10, -0.01)


class TestBillingCalculator:
    def test_price_counts_characters(self):
        calculator = BillingCalculator(rate_per_hundred_chars=0.01)

        charge = calculator.price("a" * 250)

        assert charge.char_count == 250
        assert charge.amount_cents == 3
        assert charge.rate_per_hundred_chars == 0.01

    def test_multibyte_text_counts_code_points(self):
        calculator = BillingCalculator(rate_per_hundred_chars=1.0)

        assert calculator.price("héllo").char_count == 5

    def test_defaults_to_configured_rate(self):
        calculator = BillingCalculator()

        assert calculator.calculate_charge(100) == calculate_charge(
            100, calculator.rate_per_hundred_chars
        )
