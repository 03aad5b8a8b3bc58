"""Game state data model.

A single mutable GameState is owned by the engine and handed to every
component. Nested structures are plain dicts keyed by resource name, matching
the JSON shape the front end receives from ``GameEngine.get_state()``.
"""
from dataclasses import dataclass, field
from enum import Enum

from agi_factory.config import Config
from agi_factory.game_data_loader import RESOURCE_TYPES


class Era(str, Enum):
    """Capability tiers, in progression order."""
    GNT2 = 'GNT-2'
    GNT3 = 'GNT-3'
    GNT4 = 'GNT-4'
    AGI = 'AGI'


ERA_ORDER = [Era.GNT2, Era.GNT3, Era.GNT4, Era.AGI]

BONUS_TARGETS = RESOURCE_TYPES + ('intelligence',)


def bonus_key(source, target):
    """Key of a cross-resource bonus, e.g. ``compute_to_data``."""
    return f'{source}_to_{target}'


def initial_bonuses():
    """Every cross-resource bonus starts neutral."""
    return {
        bonus_key(source, target): 1.0
        for source in RESOURCE_TYPES
        for target in BONUS_TARGETS
        if source != target
    }


class TrainingStatus(str, Enum):
    IDLE = 'idle'
    RESERVED = 'reserved'
    RUNNING = 'running'
    COMPLETED = 'completed'


@dataclass
class Breakthrough:
    """One-shot unlock from the catalog. ``unlocked`` only ever flips to True."""
    id: str
    name: str
    description: str
    type: str
    requirements: dict = field(default_factory=dict)
    effect: dict = field(default_factory=dict)
    era: str = None
    real_world_parallel: str = ''
    unlocked: bool = False

    @classmethod
    def from_catalog(cls, entry):
        """Build a locked breakthrough from a catalog entry."""
        return cls(
            id=entry['id'],
            name=entry['name'],
            description=entry.get('description', ''),
            type=entry.get('type', 'combined'),
            requirements=dict(entry.get('requirements', {})),
            effect=dict(entry.get('effect', {})),
            era=entry.get('era'),
            real_world_parallel=entry.get('real_world_parallel', ''),
        )

    def unlock_condition(self, state):
        """Check level, resource and intelligence requirements against state."""
        requirements = self.requirements
        for resource_type, level in requirements.get('levels', {}).items():
            if state.levels.get(resource_type, 0) < level:
                return False
        for resource_type, amount in requirements.get('resources', {}).items():
            if state.resources.get(resource_type, 0.0) < amount:
                return False
        if state.intelligence < requirements.get('intelligence', 0):
            return False
        return True

    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'type': self.type,
            'requirements': self.requirements,
            'effect': self.effect,
            'era': self.era,
            'real_world_parallel': self.real_world_parallel,
            'unlocked': self.unlocked
        }


@dataclass
class ComputeCapacity:
    max_capacity: float = 100.0
    used: float = 0.0
    customer_usage: float = 0.0
    free_compute: float = 100.0
    b2b_usage: float = 0.0
    b2c_usage: float = 0.0
    training_granted: float = 0.0


@dataclass
class TrainingState:
    status: TrainingStatus = TrainingStatus.IDLE
    run_id: str = None
    compute_reserved: float = 0.0
    duration: float = 0.0
    remaining: float = 0.0
    money_cost: float = 0.0
    intelligence_gain: float = 0.0
    progress_factor: float = 1.0  # share of the reservation actually granted this tick
    algorithm_research_progress: float = 0.0  # 0..100, fed by free compute
    completed_runs: list = field(default_factory=list)

    @property
    def active(self):
        return self.status in (TrainingStatus.RESERVED, TrainingStatus.RUNNING)

    @property
    def progress(self):
        if self.duration <= 0:
            return 0.0
        return (self.duration - self.remaining) / self.duration


@dataclass
class RevenueState:
    b2b_enabled: bool = False
    b2c_enabled: bool = False
    b2b_rate: float = 1.0  # money per API usage unit per second
    b2c_rate: float = 0.5  # money per subscriber per second
    b2b_usage: float = 0.0
    b2c_subscribers: float = 0.0
    developer_tools: int = 0  # B2B marketing level
    advertising: int = 0  # B2C marketing level
    # Cumulative income per stream
    b2b: float = 0.0
    b2c: float = 0.0
    investors: float = 0.0
    total_earned: float = 0.0


@dataclass
class GameState:
    """Root aggregate for one game session."""
    money: float
    intelligence: float
    resources: dict
    production: dict
    levels: dict
    invest_costs: dict
    compute_inputs: dict
    data_inputs: dict
    algorithm_inputs: dict
    breakthroughs: list
    agi_threshold: float = Config.AGI_THRESHOLD
    elapsed: float = 0.0  # seconds, float accumulator
    tick_count: int = 0
    compute_capacity: ComputeCapacity = field(default_factory=ComputeCapacity)
    training: TrainingState = field(default_factory=TrainingState)
    revenue: RevenueState = field(default_factory=RevenueState)
    multipliers: dict = field(default_factory=lambda: {r: 1.0 for r in RESOURCE_TYPES})
    capabilities: set = field(default_factory=set)
    unlocked_breakthroughs: list = field(default_factory=list)
    current_goal: str = None
    current_era: Era = Era.GNT2
    eras_reached: list = field(default_factory=lambda: [Era.GNT2])
    agi_achieved: bool = False
    peaks: dict = field(default_factory=lambda: {'money': 0.0, 'b2b_usage': 0.0, 'b2c_subscribers': 0.0})
    narrative_flags: dict = field(default_factory=dict)
    # Grown by purchases; see InvestmentModel.grow_bonuses
    bonuses: dict = field(default_factory=initial_bonuses)

    @property
    def time_elapsed(self):
        """Whole seconds of simulated time."""
        # Tolerate float drift from summing 0.1 s steps
        return int(self.elapsed + 1e-9)

    def inputs_for(self, resource_type):
        """Sub-input levels owned by a resource."""
        return {
            'compute': self.compute_inputs,
            'data': self.data_inputs,
            'algorithm': self.algorithm_inputs,
        }[resource_type]

    def get_breakthrough(self, breakthrough_id):
        for breakthrough in self.breakthroughs:
            if breakthrough.id == breakthrough_id:
                return breakthrough
        return None

    def to_dict(self):
        """Convert the full state to a JSON-serializable dictionary."""
        capacity = self.compute_capacity
        training = self.training
        revenue = self.revenue
        return {
            'tick': self.tick_count,
            'time': self.elapsed,
            'time_elapsed': self.time_elapsed,
            'money': self.money,
            'intelligence': self.intelligence,
            'resources': dict(self.resources),
            'production': dict(self.production),
            'levels': dict(self.levels),
            'invest_costs': dict(self.invest_costs),
            'compute_inputs': dict(self.compute_inputs),
            'data_inputs': dict(self.data_inputs),
            'algorithm_inputs': dict(self.algorithm_inputs),
            'compute_capacity': {
                'max_capacity': capacity.max_capacity,
                'used': capacity.used,
                'customer_usage': capacity.customer_usage,
                'free_compute': capacity.free_compute,
                'b2b_usage': capacity.b2b_usage,
                'b2c_usage': capacity.b2c_usage,
                'training_granted': capacity.training_granted
            },
            'training': {
                'status': training.status.value,
                'active': training.active,
                'run_id': training.run_id,
                'compute_reserved': training.compute_reserved,
                'duration': training.duration,
                'remaining': training.remaining,
                'progress': training.progress,
                'money_cost': training.money_cost,
                'intelligence_gain': training.intelligence_gain,
                'progress_factor': training.progress_factor,
                'algorithm_research_progress': training.algorithm_research_progress,
                'completed_runs': list(training.completed_runs)
            },
            'revenue': {
                'b2b_enabled': revenue.b2b_enabled,
                'b2c_enabled': revenue.b2c_enabled,
                'b2b_rate': revenue.b2b_rate,
                'b2c_rate': revenue.b2c_rate,
                'b2b_usage': revenue.b2b_usage,
                'b2c_subscribers': revenue.b2c_subscribers,
                'developer_tools': revenue.developer_tools,
                'advertising': revenue.advertising,
                'b2b': revenue.b2b,
                'b2c': revenue.b2c,
                'investors': revenue.investors,
                'total_earned': revenue.total_earned
            },
            'multipliers': dict(self.multipliers),
            'capabilities': sorted(self.capabilities),
            'breakthroughs': [b.to_dict() for b in self.breakthroughs],
            'unlocked_breakthroughs': list(self.unlocked_breakthroughs),
            'current_goal': self.current_goal,
            'current_era': self.current_era.value,
            'eras_reached': [era.value for era in self.eras_reached],
            'agi_threshold': self.agi_threshold,
            'agi_achieved': self.agi_achieved,
            'peaks': dict(self.peaks),
            'narrative_flags': dict(self.narrative_flags),
            'bonuses': dict(self.bonuses)
        }


def create_initial_state(data_loader, config=None):
    """Build a fresh GameState from economic rules and optional per-session overrides."""
    config = config or {}
    rules = data_loader.load_economic_rules()
    starting = rules.get('starting', {})
    leveling = rules.get('leveling', {})
    revenue_rules = rules.get('revenue', {})

    resources = {r: float(starting.get('resources', {}).get(r, 0.0)) for r in RESOURCE_TYPES}
    resources.update({r: float(v) for r, v in config.get('initial_resources', {}).items()})

    sub_inputs = rules.get('sub_inputs', {})
    breakthroughs = [Breakthrough.from_catalog(entry) for entry in data_loader.load_breakthroughs()]

    state = GameState(
        money=float(config.get('initial_money', starting.get('money', Config.INITIAL_MONEY))),
        intelligence=float(config.get('initial_intelligence', starting.get('intelligence', Config.INITIAL_INTELLIGENCE))),
        resources=resources,
        production={r: 0.0 for r in RESOURCE_TYPES},
        levels={r: int(starting.get('levels', {}).get(r, 1)) for r in RESOURCE_TYPES},
        invest_costs={r: float(leveling.get('base_costs', {}).get(r, 100.0)) for r in RESOURCE_TYPES},
        # All sub-inputs start at level 1 (no upgrades bought)
        compute_inputs={name: 1 for name in sub_inputs.get('compute', {})},
        data_inputs={name: 1 for name in sub_inputs.get('data', {})},
        algorithm_inputs={name: 1 for name in sub_inputs.get('algorithm', {})},
        breakthroughs=breakthroughs,
        agi_threshold=float(config.get('agi_threshold', Config.AGI_THRESHOLD)),
    )
    state.revenue.b2b_rate = float(revenue_rules.get('b2b', {}).get('rate', state.revenue.b2b_rate))
    state.revenue.b2c_rate = float(revenue_rules.get('b2c', {}).get('rate', state.revenue.b2c_rate))
    state.current_goal = breakthroughs[0].id if breakthroughs else None
    state.peaks['money'] = state.money
    return state


def apply_saved_state(state, saved):
    """Overlay a saved state dictionary (full or compact snapshot) onto a fresh state.

    Missing keys keep the fresh defaults so older snapshots still load.
    """
    state.elapsed = float(saved.get('time', saved.get('time_elapsed', state.elapsed)))
    state.tick_count = int(saved.get('tick', state.tick_count))
    state.money = float(saved.get('money', state.money))
    state.intelligence = float(saved.get('intelligence', state.intelligence))
    state.agi_threshold = float(saved.get('agi_threshold', state.agi_threshold))

    for key in ('resources', 'production', 'multipliers', 'invest_costs', 'bonuses'):
        target = getattr(state, key)
        for name, value in saved.get(key, {}).items():
            if name in target:
                target[name] = float(value)
    for resource_type, level in saved.get('levels', {}).items():
        if resource_type in state.levels:
            state.levels[resource_type] = int(level)
    for key in ('compute_inputs', 'data_inputs', 'algorithm_inputs'):
        target = getattr(state, key)
        for name, level in saved.get(key, {}).items():
            if name in target:
                target[name] = int(level)

    capacity = saved.get('compute_capacity', {})
    for name, value in capacity.items():
        if hasattr(state.compute_capacity, name):
            setattr(state.compute_capacity, name, float(value))

    training = saved.get('training', {})
    if training:
        t = state.training
        t.status = TrainingStatus(training.get('status', t.status.value))
        # Transient statuses are not resumed as-is
        if t.status == TrainingStatus.RESERVED:
            t.status = TrainingStatus.RUNNING
        elif t.status == TrainingStatus.COMPLETED:
            t.status = TrainingStatus.IDLE
        t.run_id = training.get('run_id')
        t.compute_reserved = float(training.get('compute_reserved', 0.0))
        t.duration = float(training.get('duration', 0.0))
        t.remaining = float(training.get('remaining', 0.0))
        t.money_cost = float(training.get('money_cost', 0.0))
        t.intelligence_gain = float(training.get('intelligence_gain', 0.0))
        t.progress_factor = float(training.get('progress_factor', 1.0))
        t.algorithm_research_progress = float(training.get('algorithm_research_progress', 0.0))
        t.completed_runs = list(training.get('completed_runs', []))

    revenue = saved.get('revenue', {})
    for name, value in revenue.items():
        if hasattr(state.revenue, name):
            current = getattr(state.revenue, name)
            if isinstance(current, bool):
                setattr(state.revenue, name, bool(value))
            elif isinstance(current, int):
                setattr(state.revenue, name, int(value))
            else:
                setattr(state.revenue, name, float(value))

    state.capabilities = set(saved.get('capabilities', state.capabilities))
    state.peaks.update({k: float(v) for k, v in saved.get('peaks', {}).items()})
    state.narrative_flags.update({k: bool(v) for k, v in saved.get('narrative_flags', {}).items()})

    unlocked = list(saved.get('unlocked_breakthroughs', []))
    for breakthrough in state.breakthroughs:
        breakthrough.unlocked = breakthrough.id in unlocked
    state.unlocked_breakthroughs = [b_id for b_id in unlocked if state.get_breakthrough(b_id) is not None]
    next_locked = next((b for b in state.breakthroughs if not b.unlocked), None)
    state.current_goal = next_locked.id if next_locked else None

    if 'current_era' in saved:
        state.current_era = Era(saved['current_era'])
        reached = saved.get('eras_reached')
        if reached:
            state.eras_reached = [Era(value) for value in reached]
        else:
            state.eras_reached = ERA_ORDER[:ERA_ORDER.index(state.current_era) + 1]
    state.agi_achieved = bool(saved.get('agi_achieved', state.current_era == Era.AGI))
    return state
