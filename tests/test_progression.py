"""Leveling, intelligence aggregation, breakthroughs and narrative notices."""
import itertools

import pytest

from agi_factory.errors import InvalidTransition
from agi_factory.events import BREAKTHROUGH_UNLOCKED, LEVEL_UP, NARRATIVE_NOTICE, EventBus
from agi_factory.game_data_loader import get_game_data_loader
from agi_factory.game_state import create_initial_state
from agi_factory.intelligence import aggregate_score
from agi_factory.leveling import LevelingEngine, invest_cost_for


@pytest.fixture
def loader():
    return get_game_data_loader()


@pytest.fixture
def state(loader):
    return create_initial_state(loader)


def test_level_up_consumes_threshold(loader, state):
    events = EventBus()
    leveling = LevelingEngine(loader, events)
    state.resources['compute'] = 100

    leveled = leveling.apply(state)

    assert [e['resource_type'] for e in leveled] == ['compute']
    assert state.levels['compute'] == 2
    assert state.resources['compute'] == 0
    assert state.invest_costs['compute'] == pytest.approx(180)
    # Data and algorithm are still at level 1, so no tier bonus yet
    assert state.intelligence == 100
    assert [name for name, _ in events.history] == [LEVEL_UP]


def test_tier_bonus_when_lowest_level_rises(loader, state):
    leveling = LevelingEngine(loader, EventBus())
    state.resources.update({'compute': 100, 'data': 80})
    leveling.apply(state)
    assert state.intelligence == 100

    state.resources['algorithm'] = 120
    leveling.apply(state)
    assert min(state.levels.values()) == 2
    assert state.intelligence == 160


def test_level_capped_at_five(loader, state):
    leveling = LevelingEngine(loader, EventBus())
    state.resources['data'] = 1e6
    leveling.apply(state)

    assert state.levels['data'] == 5
    spent = sum(80 * 1.8 ** k for k in range(4))
    assert state.resources['data'] == pytest.approx(1e6 - spent)

    # Nothing more is consumed at the cap
    leveling.apply(state)
    assert state.resources['data'] == pytest.approx(1e6 - spent)


def test_invest_cost_for_level(loader, state):
    assert invest_cost_for(100, 1.8, 1) == 100
    assert invest_cost_for(100, 1.8, 3) == pytest.approx(324)
    state.levels['algorithm'] = 4
    LevelingEngine(loader, EventBus()).recompute_invest_costs(state)
    assert state.invest_costs['algorithm'] == pytest.approx(120 * 1.8 ** 3)


def test_balanced_levels_beat_lopsided_ones():
    resources = {'compute': 0, 'data': 0, 'algorithm': 0}
    balanced = aggregate_score({'compute': 3, 'data': 3, 'algorithm': 3}, resources)
    for levels in itertools.permutations((5, 3, 1)):
        lopsided = aggregate_score(dict(zip(('compute', 'data', 'algorithm'), levels)), resources)
        assert balanced > lopsided


def test_score_grows_with_levels_and_stock():
    low = aggregate_score({'compute': 1, 'data': 1, 'algorithm': 1}, {'compute': 0, 'data': 0, 'algorithm': 0})
    more_stock = aggregate_score({'compute': 1, 'data': 1, 'algorithm': 1}, {'compute': 100, 'data': 0, 'algorithm': 0})
    more_level = aggregate_score({'compute': 2, 'data': 1, 'algorithm': 1}, {'compute': 0, 'data': 0, 'algorithm': 0})
    assert low == pytest.approx(3.2)
    assert more_stock > low
    assert more_level > low


def test_score_follows_weakest_development():
    levels = {'compute': 1, 'data': 1, 'algorithm': 1}
    resources = {'compute': 0, 'data': 0, 'algorithm': 0}
    base = aggregate_score(levels, resources)

    lopsided = aggregate_score(levels, resources, development={'compute': 1.5, 'data': 1.0, 'algorithm': 1.0})
    spread = aggregate_score(levels, resources, development={'compute': 1.1, 'data': 1.1, 'algorithm': 1.1})
    assert lopsided == pytest.approx(base)
    assert spread == pytest.approx(base * 1.1)

    boosted = aggregate_score(levels, resources, bonuses={'algorithm_to_intelligence': 1.21})
    assert boosted == pytest.approx(base + 1.2 * (1.1 - 1))


def test_breakthroughs_unlock_in_catalog_order(engine):
    state = engine.state
    state.levels.update({'compute': 5, 'data': 5, 'algorithm': 5})
    state.resources.update({'compute': 200, 'data': 200, 'algorithm': 200})
    state.intelligence = 950

    unlocked = engine.breakthroughs.apply(state)

    catalog = [b['id'] for b in get_game_data_loader().load_breakthroughs()]
    assert unlocked == catalog
    assert state.unlocked_breakthroughs == catalog
    assert state.current_goal is None
    assert {'multimodal', 'tool_use'} <= state.capabilities
    emitted = [p['id'] for name, p in engine.events.history if name == BREAKTHROUGH_UNLOCKED]
    assert emitted == catalog


def test_breakthrough_unlocks_once(engine):
    state = engine.state
    assert engine.breakthroughs.force_unlock(state, 'transformer_architecture') is True
    intelligence = state.intelligence
    multiplier = state.multipliers['algorithm']

    assert engine.breakthroughs.force_unlock(state, 'transformer_architecture') is False
    engine.advance(2)

    assert state.unlocked_breakthroughs.count('transformer_architecture') == 1
    assert state.multipliers['algorithm'] == multiplier
    assert state.get_breakthrough('transformer_architecture').unlocked is True
    assert state.current_goal == 'unsupervised_pretraining'
    assert state.intelligence >= intelligence


def test_force_unlock_unknown_id(engine):
    with pytest.raises(ValueError):
        engine.force_unlock_breakthrough('time_travel')


def test_force_unlock_outside_session_catalog(engine):
    engine.state.breakthroughs = [b for b in engine.state.breakthroughs if b.id != 'self_improvement']
    with pytest.raises(InvalidTransition):
        engine.force_unlock_breakthrough('self_improvement')


def test_breakthrough_investor_funding(engine):
    engine.force_unlock_breakthrough('massive_parameter_scaling')
    assert engine.state.money == pytest.approx(1300)
    assert engine.state.revenue.investors == 300


def test_narrative_notices_fire_once(engine):
    engine.set_revenue_stream('b2b', True)
    engine.state.levels['compute'] = 4
    engine.advance(2)
    engine.advance(2)

    notices = [p['id'] for name, p in engine.events.history if name == NARRATIVE_NOTICE]
    assert notices.count('first_revenue') == 1
    assert notices.count('resource_imbalance') == 1
    assert engine.state.narrative_flags['has_seen_first_revenue'] is True
