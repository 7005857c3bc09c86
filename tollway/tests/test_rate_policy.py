"""
Rate Policy Tests.

Pricing is pure, so most checks here are properties over generated
weights and rates.
"""

from decimal import Decimal

from hypothesis import given, settings, strategies as st, HealthCheck

from tollway.app.domain.tolling import rate_policy
from tollway.app.models.enums import CapacityClass, VehicleType
from tollway.app.models.toll_gate import TollGate

money = st.decimals(min_value=0, max_value=100000, places=2, allow_nan=False, allow_infinity=False)
weights = st.decimals(min_value=0, max_value=50000, places=2, allow_nan=False, allow_infinity=False)
paying_types = st.sampled_from([t for t in VehicleType if t != VehicleType.GOVERNMENT])
capacity = st.sampled_from(list(CapacityClass))

fixture_safe = settings(suppress_health_check=[HealthCheck.function_scoped_fixture], deadline=None)


def make_gate(toll="500.00", fine="1000.00", limit="5000.00") -> TollGate:
    return TollGate(
        name="Gate",
        gate_identifier="GATE-X",
        base_toll_rate=Decimal(toll),
        overweight_fine_rate=Decimal(fine),
        weight_limit_kg=Decimal(limit),
    )


def test_standard_passage():
    quote = rate_policy.evaluate(make_gate(), Decimal("4500"), CapacityClass.LIGHT, VehicleType.CAR)
    assert quote.toll_amount == Decimal("500.00")
    assert quote.fine_amount == Decimal("0.00")
    assert quote.total_amount == Decimal("500.00")
    assert not quote.is_overweight
    assert not quote.is_exempt


def test_overweight_adds_flat_fine():
    quote = rate_policy.evaluate(make_gate(), Decimal("6000"), CapacityClass.HEAVY, VehicleType.TRUCK)
    assert quote.is_overweight
    assert quote.fine_amount == Decimal("1000.00")
    assert quote.total_amount == Decimal("1500.00")


def test_weight_equal_to_limit_is_not_overweight():
    quote = rate_policy.evaluate(make_gate(), Decimal("5000.00"), CapacityClass.HEAVY, VehicleType.TRUCK)
    assert not quote.is_overweight
    assert quote.total_amount == Decimal("500.00")


def test_fraction_above_limit_is_overweight():
    assert rate_policy.is_overweight(Decimal("5000.01"), Decimal("5000"))


def test_missing_or_zero_weight_is_not_overweight():
    assert not rate_policy.is_overweight(None, Decimal("5000"))
    assert not rate_policy.is_overweight(Decimal("0"), Decimal("5000"))


def test_government_vehicle_is_exempt_but_overweight_is_reported():
    quote = rate_policy.evaluate(make_gate(), Decimal("9000"), CapacityClass.HEAVY, VehicleType.GOVERNMENT)
    assert quote.is_exempt
    assert quote.is_overweight
    assert quote.total_amount == Decimal("0.00")
    assert quote.fine_amount == Decimal("0.00")


def test_exempt_account_overrides_vehicle_category():
    quote = rate_policy.evaluate(make_gate(), Decimal("100"), CapacityClass.LIGHT, VehicleType.CAR, account_exempt=True)
    assert quote.is_exempt
    assert quote.total_amount == Decimal("0.00")


def test_breakdown_renders_strings():
    quote = rate_policy.evaluate(make_gate(), Decimal("6000"), CapacityClass.HEAVY, VehicleType.TRUCK)
    assert quote.breakdown() == {
        "toll_amount": "500.00",
        "fine_amount": "1000.00",
        "total_amount": "1500.00",
        "is_overweight": True,
        "is_exempt": False,
    }


@fixture_safe
@given(toll=money, fine=money, limit=weights, weight=weights, category=paying_types, cls=capacity)
def test_total_is_toll_plus_fine(toll, fine, limit, weight, category, cls):
    gate = make_gate(str(toll), str(fine), str(limit))
    quote = rate_policy.evaluate(gate, weight, cls, category)

    assert quote.total_amount == quote.toll_amount + quote.fine_amount
    assert quote.toll_amount == toll
    assert quote.is_overweight == (weight > limit)
    assert quote.fine_amount == (fine if weight > limit else Decimal("0"))
    assert quote.total_amount.as_tuple().exponent == -2


@fixture_safe
@given(toll=money, fine=money, weight=weights, category=paying_types)
def test_capacity_class_does_not_change_amounts(toll, fine, weight, category):
    gate = make_gate(str(toll), str(fine))
    quotes = {rate_policy.evaluate(gate, weight, cls, category) for cls in CapacityClass}
    assert len(quotes) == 1


@fixture_safe
@given(toll=money, fine=money, weight=weights, cls=capacity)
def test_government_always_free(toll, fine, weight, cls):
    quote = rate_policy.evaluate(make_gate(str(toll), str(fine)), weight, cls, VehicleType.GOVERNMENT)
    assert quote.total_amount == Decimal("0")
    assert quote.is_exempt


@fixture_safe
@given(weight=weights, category=paying_types, cls=capacity)
def test_same_inputs_same_quote(weight, category, cls):
    gate = make_gate()
    assert rate_policy.evaluate(gate, weight, cls, category) == rate_policy.evaluate(gate, weight, cls, category)
