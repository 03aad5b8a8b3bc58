"""Training runs: reservation, completion and era runs."""
import pytest

from agi_factory.errors import AlreadyRunning, InsufficientCapacity, InsufficientFunds, InvalidTransition
from agi_factory.events import INSUFFICIENT_CAPACITY, TRAINING_COMPLETED, TRAINING_STARTED
from agi_factory.game_state import TrainingStatus


def load_customers(engine, compute):
    """Put ``compute`` units of B2B traffic on the cluster."""
    state = engine.state
    state.revenue.b2b_enabled = True
    state.revenue.b2b_usage = compute / engine.revenue.compute_per_unit('b2b')
    engine.allocator.apply(state)


def test_insufficient_capacity_keeps_training_idle(engine):
    load_customers(engine, 70)
    state = engine.state
    assert state.compute_capacity.max_capacity == pytest.approx(100)
    assert state.compute_capacity.customer_usage == pytest.approx(70)

    with pytest.raises(InsufficientCapacity):
        engine.start_training(duration=60, compute_cost=40, money_cost=0)

    assert state.training.status == TrainingStatus.IDLE
    assert state.money == 1000
    assert INSUFFICIENT_CAPACITY in [name for name, _ in engine.events.history]


def test_insufficient_funds(engine):
    with pytest.raises(InsufficientFunds):
        engine.start_training(duration=10, compute_cost=10, money_cost=5000)
    assert engine.state.training.status == TrainingStatus.IDLE


def test_second_run_is_rejected(engine):
    engine.start_training(duration=10, compute_cost=30, money_cost=100)
    with pytest.raises(AlreadyRunning):
        engine.start_training(duration=10, compute_cost=30, money_cost=100)
    assert engine.state.money == pytest.approx(900)


def test_bad_arguments(engine):
    with pytest.raises(ValueError):
        engine.start_training(duration=0, compute_cost=10, money_cost=0)
    with pytest.raises(ValueError):
        engine.start_training(duration=5, compute_cost=-1, money_cost=0)


def test_run_completes_and_pays_out(engine):
    state = engine.state
    result = engine.start_training(duration=10, compute_cost=40, money_cost=100, intelligence_gain=50)
    assert result['intelligence_gain'] == 50
    assert state.training.status == TrainingStatus.RUNNING
    assert state.compute_capacity.training_granted == pytest.approx(40)
    assert state.money == pytest.approx(900)

    intelligence = state.intelligence
    engine.advance(10.5)

    names = [name for name, _ in engine.events.history]
    assert names.count(TRAINING_STARTED) == 1
    assert names.count(TRAINING_COMPLETED) == 1
    assert state.training.status == TrainingStatus.IDLE
    assert state.compute_capacity.training_granted == 0
    assert state.intelligence >= intelligence + 50


def test_default_gain(engine):
    result = engine.start_training(duration=20, compute_cost=10, money_cost=0)
    assert result['intelligence_gain'] == pytest.approx(10 * 20 * 0.1)


def test_squeezed_reservation_slows_progress(engine):
    engine.start_training(duration=10, compute_cost=40, money_cost=0)
    load_customers(engine, 80)
    state = engine.state
    assert state.compute_capacity.training_granted == pytest.approx(20)
    assert state.training.progress_factor == pytest.approx(0.5)
    assert state.compute_capacity.used <= state.compute_capacity.max_capacity


def test_free_compute_feeds_research(engine):
    engine.advance(5)
    assert engine.state.training.algorithm_research_progress > 0


def test_era_run_needs_prerequisites(engine):
    with pytest.raises(InvalidTransition):
        engine.start_era_training()

    state = engine.state
    state.levels.update({'compute': 2, 'data': 2, 'algorithm': 2})
    state.training.algorithm_research_progress = 30
    result = engine.start_era_training()

    assert result['run_id'] == 'gnt3_run'
    assert state.money == pytest.approx(700)

    engine.advance(31)
    assert state.training.completed_runs == ['gnt3_run']
    assert engine.training.next_era_run(state)['id'] == 'gnt4_run'


def test_era_run_requested_by_era(engine):
    state = engine.state
    state.levels.update({'compute': 2, 'data': 2, 'algorithm': 2})
    state.training.algorithm_research_progress = 30

    with pytest.raises(ValueError):
        engine.start_era_training('GNT-9')
    with pytest.raises(InvalidTransition):
        engine.start_era_training('GNT-4')
    assert not state.training.active

    result = engine.perform_action('start_era_training', {'era': 'GNT-3'})
    assert result['run_id'] == 'gnt3_run'

    engine.advance(31)
    with pytest.raises(InvalidTransition):
        engine.start_era_training('GNT-3')


def test_restored_run_resumes(engine):
    from agi_factory.game_engine import GameEngine

    engine.start_training(duration=10, compute_cost=40, money_cost=0, intelligence_gain=5)
    engine.advance(4)
    restored = GameEngine.from_state(engine.get_state())
    assert restored.state.training.status == TrainingStatus.RUNNING
    assert restored.state.compute_capacity.training_granted == pytest.approx(40)

    restored.advance(6.5)
    assert restored.state.training.status == TrainingStatus.IDLE
