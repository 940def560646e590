"""
Tests for the pure odds mathematics.
Run with: pytest tests/test_odds_math.py -v
"""

import math

import pytest

from btb.core.odds_math import (
    DEFAULT_TARGET_VIG,
    EVFormula,
    InvalidOddsError,
    counter_odds,
    earnings_per_100,
    expected_value,
    implied_prob,
    market_width,
    validate_american,
)


class TestImpliedProb:
    """American odds → vig-inclusive probability"""

    def test_favourite(self):
        assert implied_prob(-110) == pytest.approx(0.5238, abs=1e-4)

    def test_underdog(self):
        assert implied_prob(150) == pytest.approx(0.4)

    def test_even_money_both_signs(self):
        assert implied_prob(100) == pytest.approx(0.5)
        assert implied_prob(-100) == pytest.approx(0.5)

    @pytest.mark.parametrize("price", [-10000, -450, -101, -1])
    def test_negative_formula(self, price):
        assert implied_prob(price) == pytest.approx(abs(price) / (abs(price) + 100))

    @pytest.mark.parametrize("price", [1, 101, 450, 10000])
    def test_positive_formula(self, price):
        assert implied_prob(price) == pytest.approx(100 / (100 + price))

    def test_float_price_accepted(self):
        assert implied_prob(-112.5) == pytest.approx(112.5 / 212.5)


class TestEarnings:
    """Profit on a 100-unit stake"""

    def test_favourite(self):
        assert earnings_per_100(-110) == pytest.approx(90.909, abs=1e-3)

    def test_underdog(self):
        assert earnings_per_100(150) == 150

    def test_favourite_is_10000_over_price(self):
        assert earnings_per_100(-250) == pytest.approx(40.0)


class TestValidation:
    """Prices that are not American odds are rejected, never computed"""

    @pytest.mark.parametrize("bad", [0, 0.0, None, "abc", "-110", True, False, float("nan"), float("inf")])
    def test_invalid_prices_raise(self, bad):
        with pytest.raises(InvalidOddsError):
            validate_american(bad)

    def test_invalid_odds_error_is_value_error(self):
        with pytest.raises(ValueError):
            implied_prob(0)

    def test_zero_rejected_by_every_entry_point(self):
        for fn in (implied_prob, earnings_per_100, counter_odds):
            with pytest.raises(InvalidOddsError):
                fn(0)
        with pytest.raises(InvalidOddsError):
            expected_value(0, -110)
        with pytest.raises(InvalidOddsError):
            expected_value(-110, 0)


class TestCounterOdds:
    """Synthetic other-side price with a 4% target vig"""

    def test_default_target_vig(self):
        assert DEFAULT_TARGET_VIG == 0.04

    def test_favourite_reference_gives_underdog_counter(self):
        # p = 0.6, q = 1.04 - 0.6 = 0.44 → 100/0.44 - 100
        assert counter_odds(-150) == pytest.approx(100 / 0.44 - 100)
        assert counter_odds(-150) > 0

    def test_underdog_reference_gives_favourite_counter(self):
        p = 100 / 230
        q = 1.04 - p
        assert counter_odds(130) == pytest.approx(-(100 * q) / (1 - q))
        assert counter_odds(130) < 0

    def test_target_vig_override(self):
        # p = 0.6, q = 1.0 - 0.6 = 0.4 → 150
        assert counter_odds(-150, target_vig=0.0) == pytest.approx(150.0)

    def test_larger_vig_shortens_counter(self):
        assert counter_odds(-150, target_vig=0.08) < counter_odds(-150)


class TestExpectedValue:
    """EV of a book price measured against the reference probability"""

    def test_positive_edge(self):
        # p_ref = 100/230; (150 * p_ref - 100 * (1 - p_ref)) / 100
        p_ref = 100 / 230
        expected = (150 * p_ref - 100 * (1 - p_ref)) / 100
        assert expected_value(150, 130) == pytest.approx(expected)
        assert expected_value(150, 130) > 0

    def test_negative_edge(self):
        assert expected_value(-160, -150) < 0

    @pytest.mark.parametrize("price", [-300, -110, 100, 145, 600])
    def test_same_price_is_fixed_constant(self, price):
        p = implied_prob(price)
        expected = (earnings_per_100(price) * p - 100 * (1 - p)) / 100
        first = expected_value(price, price)
        assert first == pytest.approx(expected)
        assert first == pytest.approx(0.0, abs=1e-12)
        assert all(expected_value(price, price) == first for _ in range(5))

    def test_no_vig_difference_variant(self):
        p_ref = implied_prob(-150)
        p_book = implied_prob(-140)
        result = expected_value(-140, -150, EVFormula.NO_VIG_DIFFERENCE)
        assert result == pytest.approx((p_ref - p_book) / p_book)

    def test_formula_accepts_string(self):
        assert expected_value(-140, -150, "no_vig_difference") == pytest.approx(
            expected_value(-140, -150, EVFormula.NO_VIG_DIFFERENCE)
        )

    @pytest.mark.parametrize("book, ref", [(-140, -150), (150, 130), (-105, 110), (250, -120)])
    def test_variants_agree(self, book, ref):
        # Both reduce to p_ref * decimal(book) - 1
        assert expected_value(book, ref) == pytest.approx(
            expected_value(book, ref, EVFormula.NO_VIG_DIFFERENCE)
        )

    def test_unknown_formula_rejected(self):
        with pytest.raises(ValueError):
            expected_value(-110, -110, "kelly")


class TestMarketWidth:
    """Four sign cases, absolute result, explicit None for missing input"""

    def test_favourite_reference_underdog_counter(self):
        assert market_width(-150, 130) == pytest.approx(20.0)

    def test_underdog_reference_favourite_counter(self):
        assert market_width(120, -140) == pytest.approx(20.0)

    def test_both_negative(self):
        assert market_width(-110, -120) == pytest.approx(10.0)
        assert market_width(-120, -110) == pytest.approx(10.0)

    def test_both_positive(self):
        assert market_width(110, 130) == pytest.approx(20.0)
        assert market_width(130, 110) == pytest.approx(20.0)

    def test_result_never_negative(self):
        # |R| < |X| in the mixed-sign case would otherwise be negative
        assert market_width(-120, 150) == pytest.approx(30.0)

    @pytest.mark.parametrize("r, x", [(None, -140), (-140, None), (None, None)])
    def test_missing_input_is_unavailable(self, r, x):
        assert market_width(r, x) is None

    def test_non_finite_is_unavailable(self):
        assert market_width(-110, float("inf")) is None
        assert market_width(float("nan"), 120) is None

    def test_reference_with_its_counter(self):
        counter = counter_odds(-150)
        width = market_width(-150, counter)
        assert width == pytest.approx(abs(150 - counter))
        assert not math.isnan(width)
