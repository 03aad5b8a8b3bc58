"""Sub-input purchases and marketing spend."""
import pytest

from agi_factory.errors import InsufficientFunds
from agi_factory.events import INSUFFICIENT_FUNDS
from agi_factory.game_engine import GameEngine


def test_five_purchases_escalate_cost(engine):
    state = engine.state
    costs = []
    for _ in range(5):
        result = engine.perform_action('allocate_money', {'resource_type': 'compute', 'sub_input': 'money'})
        costs.append(result['cost'])

    expected = [100 * 1.15 ** k for k in range(5)]
    assert costs == pytest.approx(expected)
    assert state.compute_inputs['money'] == 6
    assert state.money == pytest.approx(1000 - sum(expected))


def test_insufficient_funds_leaves_state_unchanged(engine):
    state = engine.state
    state.money = 50
    levels = dict(state.levels)
    invest_costs = dict(state.invest_costs)

    with pytest.raises(InsufficientFunds) as excinfo:
        engine.perform_action('allocate_money', {'resource_type': 'compute', 'sub_input': 'hardware'})

    assert excinfo.value.cost == pytest.approx(150)
    assert state.money == 50
    assert state.levels == levels
    assert state.invest_costs == invest_costs
    assert state.compute_inputs['hardware'] == 1
    events = [payload for name, payload in engine.events.history if name == INSUFFICIENT_FUNDS]
    assert events == [{'action': 'allocate_money', 'cost': pytest.approx(150), 'available': 50}]


def test_amount_below_cost_is_rejected(engine):
    with pytest.raises(InsufficientFunds):
        engine.allocate_money('data', 'quality', amount=10)
    assert engine.state.money == 1000
    assert engine.state.data_inputs['quality'] == 1


def test_amount_covering_cost_charges_only_cost(engine):
    result = engine.allocate_money('data', 'quality', amount=500)
    assert result['cost'] == pytest.approx(75)
    assert engine.state.money == pytest.approx(925)


def test_unknown_sub_input_raises_value_error(engine):
    with pytest.raises(ValueError):
        engine.allocate_money('compute', 'quality')
    with pytest.raises(ValueError):
        engine.allocate_money('energy', 'money')


def test_purchase_raises_production(engine):
    before = engine.state.production['data']
    engine.allocate_money('data', 'quantity')
    assert engine.state.production['data'] == pytest.approx(before * 1.15)


def test_regulation_attracts_investors(engine):
    result = engine.allocate_money('compute', 'regulation')
    state = engine.state
    assert result['investor_funding'] == 200
    assert state.money == pytest.approx(1000 - 120 + 200)
    assert state.revenue.investors == 200
    assert state.revenue.total_earned == 200


def test_hardware_raises_capacity(engine):
    engine.allocate_money('compute', 'hardware')
    engine.tick()
    assert engine.state.compute_capacity.max_capacity == pytest.approx(125)


def test_marketing_cost_escalates(engine):
    first = engine.advertise()
    second = engine.advertise()
    assert first['cost'] == pytest.approx(150)
    assert second['cost'] == pytest.approx(150 * 1.3)
    assert engine.state.revenue.advertising == 2

    engine.state.money = 0
    with pytest.raises(InsufficientFunds):
        engine.improve_developer_tools()
    assert engine.state.revenue.developer_tools == 0


def test_hardware_capacity_is_usable_immediately(engine):
    result = engine.allocate_money('compute', 'hardware')
    assert result['max_capacity'] == pytest.approx(125)
    assert engine.state.compute_capacity.free_compute == pytest.approx(125)

    engine.start_training(duration=10, compute_cost=110, money_cost=0)
    assert engine.state.training.active


def test_purchase_grows_cross_bonuses(engine):
    result = engine.allocate_money('algorithm', 'architectures')
    bonuses = engine.state.bonuses

    assert result['bonuses'] == {
        'algorithm_to_compute': pytest.approx(1.05),
        'algorithm_to_data': pytest.approx(1.05),
        'algorithm_to_intelligence': pytest.approx(1.07),
    }
    assert bonuses['compute_to_data'] == 1.0
    assert bonuses['data_to_intelligence'] == 1.0


def test_cross_bonus_raises_other_resources(engine):
    before = dict(engine.state.production)
    engine.allocate_money('data', 'quality')
    production = engine.state.production

    assert production['data'] == pytest.approx(before['data'] * 1.1)
    assert production['compute'] == pytest.approx(before['compute'] * 1.05)
    # Only the level-based part of algorithm production is boosted
    free_compute_part = engine.state.compute_capacity.free_compute * engine.ledger.free_compute_research_rate
    assert production['algorithm'] - free_compute_part == pytest.approx((before['algorithm'] - free_compute_part) * 1.05)


def spend(engine, purchases):
    spent = 0.0
    for resource_type, sub_input in purchases:
        spent += engine.allocate_money(resource_type, sub_input)['cost']
    return spent


EVEN = [('compute', 'money'), ('data', 'quality'), ('algorithm', 'architectures')]
CONCENTRATED = [('compute', 'money'), ('compute', 'money'), ('compute', 'electricity')]


def test_even_spend_beats_concentrated_spend():
    even = GameEngine()
    concentrated = GameEngine()
    even.start()
    concentrated.start()

    assert spend(even, EVEN) == pytest.approx(300)
    assert spend(concentrated, CONCENTRATED) == pytest.approx(300)
    assert even.aggregator.rate(even.state) > concentrated.aggregator.rate(concentrated.state)

    even.advance(300)
    concentrated.advance(300)
    assert even.state.intelligence >= concentrated.state.intelligence


def test_bonuses_survive_full_state_round_trip(engine):
    spend(engine, EVEN)
    restored = GameEngine.from_state(engine.get_state())
    assert restored.state.bonuses == pytest.approx(engine.state.bonuses)
    assert restored.state.production == pytest.approx(engine.state.production)
