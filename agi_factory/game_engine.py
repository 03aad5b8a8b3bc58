"""Core game engine for simulation."""
import logging
from collections import deque
from functools import wraps

from agi_factory.breakthroughs import BreakthroughEngine
from agi_factory.compute_capacity import ComputeCapacityAllocator
from agi_factory.config import Config
from agi_factory.eras import EraStateMachine
from agi_factory.errors import GameError, InsufficientCapacity, InsufficientFunds
from agi_factory.events import INSUFFICIENT_CAPACITY, INSUFFICIENT_FUNDS, TICK, EventBus
from agi_factory.game_data_loader import get_game_data_loader
from agi_factory.game_state import Era, apply_saved_state, create_initial_state
from agi_factory.intelligence import IntelligenceAggregator
from agi_factory.investment import InvestmentModel
from agi_factory.leveling import LevelingEngine
from agi_factory.narrative import NarrativeRules
from agi_factory.persistence import PersistenceDispatcher
from agi_factory.resources import ResourceLedger
from agi_factory.revenue import RevenueModel
from agi_factory.training import TrainingRunController

logger = logging.getLogger(__name__)

def command(action_name):
    """Report rejected player commands on the event bus before re-raising."""
    def decorator(f):
        @wraps(f)
        def decorated_function(self, *args, **kwargs):
            try:
                return f(self, *args, **kwargs)
            except InsufficientFunds as e:
                self.events.emit(INSUFFICIENT_FUNDS, {'action': action_name, 'cost': e.cost, 'available': e.available})
                raise
            except InsufficientCapacity as e:
                self.events.emit(INSUFFICIENT_CAPACITY, {'action': action_name, 'required': e.required, 'available': e.available})
                raise
        return decorated_function
    return decorator

class GameEngine:
    """Core game simulation engine.

    Owns the GameState and advances every component once per tick in a fixed
    order. Player commands either run immediately (``perform_action``) or are
    queued for the next tick boundary (``queue_action``).
    """

    def __init__(self, session_id=None, config=None, persistence=None, data_loader=None):
        """Initialize game engine."""
        self.session_id = session_id
        self.config = config or {}
        self.data_loader = data_loader or get_game_data_loader()
        self.events = EventBus()
        self.persistence = persistence or PersistenceDispatcher()

        self.tick_interval = float(self.config.get('tick_interval', Config.TICK_INTERVAL))
        self.snapshot_interval = float(self.config.get('snapshot_interval', Config.SNAPSHOT_INTERVAL))
        self.player_name = self.config.get('player_name')

        # Components, leaf to root
        self.ledger = ResourceLedger(self.data_loader)
        self.investment = InvestmentModel(self.data_loader, self.ledger)
        self.leveling = LevelingEngine(self.data_loader, self.events)
        self.revenue = RevenueModel(self.data_loader)
        self.allocator = ComputeCapacityAllocator(self.data_loader, self.revenue)
        self.aggregator = IntelligenceAggregator(self.data_loader, self.ledger)
        self.breakthroughs = BreakthroughEngine(self.data_loader, self.events)
        self.eras = EraStateMachine(self.data_loader, self.events)
        self.training = TrainingRunController(self.data_loader, self.allocator, self.events)
        self.narrative = NarrativeRules(self.data_loader, self.training, self.events)

        self.is_running = False
        self.leaderboard_submitted = False
        self._pending_actions = deque()
        self._last_snapshot_at = 0.0

        self.state = create_initial_state(self.data_loader, self.config)
        self.eras.validate(self.state)
        self._refresh_derived()

    @classmethod
    def from_state(cls, saved, session_id=None, config=None, persistence=None, data_loader=None):
        """Rebuild an engine from ``get_state()`` output or a compact ``snapshot()``."""
        engine = cls(session_id, config, persistence=persistence, data_loader=data_loader)
        saved = saved or {}
        state = apply_saved_state(engine.state, saved)

        # Compact snapshots carry only the unlocked ids and levels
        if 'multipliers' not in saved:
            engine.breakthroughs.reapply_permanent_effects(state)
        if 'invest_costs' not in saved:
            engine.leveling.recompute_invest_costs(state)

        engine.is_running = bool(saved.get('is_running', False))
        engine.leaderboard_submitted = bool(saved.get('leaderboard_submitted', False))
        # Compact snapshots carry no snapshot clock
        engine._last_snapshot_at = float(saved.get('last_snapshot_at', state.elapsed))
        engine._refresh_derived()
        return engine

    from_snapshot = from_state

    @classmethod
    def load_from_session(cls, session, persistence=None):
        """Load game engine from a GameSession row."""
        config = dict(session.game_config or {})
        if session.player_name and not config.get('player_name'):
            config['player_name'] = session.player_name
        return cls.from_state(session.game_state, session.id, config, persistence=persistence)

    def _refresh_derived(self):
        """Recompute rates and capacity without advancing time."""
        self.ledger.update_production(self.state)
        self.allocator.apply(self.state)

    # Clock control

    def start(self):
        """Start (or resume) ticking."""
        self.is_running = True

    def pause(self):
        """Stop ticking; nothing is buffered while paused."""
        self.is_running = False

    def reset(self):
        """Replace the state with a fresh one and stop the clock."""
        self.is_running = False
        self._pending_actions.clear()
        self.state = create_initial_state(self.data_loader, self.config)
        self.leaderboard_submitted = False
        self._last_snapshot_at = 0.0
        self._refresh_derived()
        logger.info("Game %s reset", self.session_id)

    def tick(self, delta_time=None):
        """Advance game simulation by one tick.

        Returns False without doing anything while paused.
        """
        if not self.is_running:
            return False
        delta_time = self.tick_interval if delta_time is None else float(delta_time)
        if delta_time <= 0:
            raise ValueError("Tick delta must be positive")

        self._drain_actions()

        state = self.state
        state.tick_count += 1
        state.elapsed += delta_time

        self.ledger.apply(state, delta_time)
        self.leveling.apply(state)
        self.revenue.ramp(state, delta_time)
        self.allocator.apply(state, delta_time)
        self.revenue.book_income(state, delta_time)
        self.training.apply(state, delta_time)
        self.aggregator.apply(state, delta_time)
        self.breakthroughs.apply(state)
        transitions = self.eras.apply(state)
        self.narrative.apply(state)

        if Era.AGI in transitions:
            self._on_agi_reached()
        elif state.elapsed - self._last_snapshot_at >= self.snapshot_interval:
            self.save_snapshot()

        if self.events.has_subscribers(TICK):
            self.events.emit(TICK, self.get_state())
        return True

    def advance(self, seconds):
        """Run fixed-size ticks covering ``seconds`` of game time. Returns ticks run."""
        ticks = int(round(float(seconds) / self.tick_interval))
        ran = 0
        for _ in range(ticks):
            if not self.tick():
                break
            ran += 1
        return ran

    def _on_agi_reached(self):
        """Terminal bookkeeping: final snapshot and one leaderboard submission."""
        logger.info("AGI reached in game %s after %ss", self.session_id, self.state.time_elapsed)
        self.save_snapshot()
        if self.player_name and not self.leaderboard_submitted:
            self.submit_to_leaderboard(self.player_name)

    # Persistence

    def snapshot(self):
        """Compact snapshot pushed to the persistence collaborator."""
        state = self.state
        return {
            'intelligence': state.intelligence,
            'money': state.money,
            'time_elapsed': state.time_elapsed,
            'time': state.elapsed,
            'levels': dict(state.levels),
            'resources': dict(state.resources),
            'revenue': {
                'b2b': state.revenue.b2b,
                'b2c': state.revenue.b2c,
                'investors': state.revenue.investors
            },
            'unlocked_breakthroughs': list(state.unlocked_breakthroughs),
            'current_era': state.current_era.value,
            'agi_achieved': state.agi_achieved
        }

    def save_snapshot(self):
        """Push a snapshot now (best-effort)."""
        self._last_snapshot_at = self.state.elapsed
        return self.persistence.push_snapshot(self.snapshot())

    def leaderboard_entry(self, player_name=None):
        """Leaderboard record for the current run."""
        state = self.state
        return {
            'player_name': player_name or self.player_name or 'Anonymous',
            'final_intelligence': state.intelligence,
            'total_time_elapsed': state.time_elapsed,
            'peak_money': state.peaks['money'],
            'total_money_earned': state.revenue.total_earned,
            'peak_b2b_subscribers': state.peaks['b2b_usage'],
            'peak_b2c_subscribers': state.peaks['b2c_subscribers'],
            'breakthroughs_unlocked': len(state.unlocked_breakthroughs),
            'eras_reached': len(state.eras_reached),
            'has_achieved_agi': state.agi_achieved
        }

    def submit_to_leaderboard(self, player_name=None):
        """Submit once per run; later calls return None."""
        if self.leaderboard_submitted:
            return None
        entry = self.leaderboard_entry(player_name)
        self.leaderboard_submitted = True
        self.persistence.submit_leaderboard(entry)
        return entry

    def get_state(self):
        """Get current game state as dictionary."""
        data = self.state.to_dict()
        next_run = self.training.next_era_run(self.state)
        data.update({
            'session_id': self.session_id,
            'is_running': self.is_running,
            'leaderboard_submitted': self.leaderboard_submitted,
            'last_snapshot_at': self._last_snapshot_at,
            'intelligence_rate': self.aggregator.rate(self.state),
            'sub_input_costs': self.investment.get_all_costs(self.state),
            'marketing_costs': {
                'advertise': self.investment.marketing_cost(self.state.revenue.advertising),
                'improve_developer_tools': self.investment.marketing_cost(self.state.revenue.developer_tools)
            },
            'next_training_run': dict(next_run, unmet_prerequisites=self.training.unmet_prerequisites(self.state, next_run)) if next_run else None
        })
        return data

    def get_time(self):
        """Get current game time in seconds."""
        return self.state.elapsed

    # Player commands

    @command('allocate_money')
    def allocate_money(self, resource_type, sub_input, amount=None):
        result = self.investment.allocate_money(self.state, resource_type, sub_input, amount)
        # Hardware and electricity change capacity right away, not at the next tick
        self._refresh_derived()
        result['max_capacity'] = self.state.compute_capacity.max_capacity
        return result

    @command('advertise')
    def advertise(self):
        return self.investment.advertise(self.state)

    @command('improve_developer_tools')
    def improve_developer_tools(self):
        return self.investment.improve_developer_tools(self.state)

    @command('set_revenue_stream')
    def set_revenue_stream(self, stream, enabled):
        result = self.revenue.set_stream(self.state, stream, enabled)
        self.allocator.apply(self.state)
        return result

    @command('set_revenue_rate')
    def set_revenue_rate(self, stream, rate):
        return self.revenue.set_rate(self.state, stream, rate)

    @command('start_training')
    def start_training(self, duration, compute_cost, money_cost, intelligence_gain=None):
        return self.training.start(self.state, duration, compute_cost, money_cost, intelligence_gain)

    @command('start_era_training')
    def start_era_training(self, era=None):
        return self.training.start_era_run(self.state, era)

    def force_unlock_breakthrough(self, breakthrough_id):
        """Debug helper: unlock a breakthrough regardless of its requirements."""
        unlocked = self.breakthroughs.force_unlock(self.state, breakthrough_id)
        self._refresh_derived()
        return {'breakthrough_id': breakthrough_id, 'unlocked': unlocked}

    def perform_action(self, action_type, action_data=None):
        """Perform a game action immediately."""
        action_data = action_data or {}
        if action_type == 'allocate_money':
            return self.allocate_money(
                action_data.get('resource_type'),
                action_data.get('sub_input'),
                action_data.get('amount')
            )
        elif action_type == 'advertise':
            return self.advertise()
        elif action_type == 'improve_developer_tools':
            return self.improve_developer_tools()
        elif action_type == 'set_revenue_stream':
            return self.set_revenue_stream(action_data.get('stream'), action_data.get('enabled', True))
        elif action_type == 'set_revenue_rate':
            return self.set_revenue_rate(action_data.get('stream'), action_data.get('rate', 0))
        elif action_type == 'start_training':
            return self.start_training(
                action_data.get('duration', 0),
                action_data.get('compute_cost', 0),
                action_data.get('money_cost', 0),
                action_data.get('intelligence_gain')
            )
        elif action_type == 'start_era_training':
            return self.start_era_training(action_data.get('era'))
        elif action_type == 'force_unlock_breakthrough':
            return self.force_unlock_breakthrough(action_data.get('breakthrough_id'))
        else:
            raise ValueError(f"Unknown action type: {action_type}")

    def queue_action(self, action_type, action_data=None):
        """Defer an action to the next tick boundary (safe from other threads)."""
        self._pending_actions.append((action_type, action_data or {}))

    def _drain_actions(self):
        while self._pending_actions:
            action_type, action_data = self._pending_actions.popleft()
            try:
                self.perform_action(action_type, action_data)
            except (GameError, ValueError) as e:
                logger.warning("Queued action %s rejected: %s", action_type, e)
