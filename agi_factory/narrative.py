"""One-shot narrative notices.

Each rule is (notice_id, flag, condition). A notice fires the first time its
condition holds and sets its flag so it never fires again in the session.
The presentation layer owns the wording; the engine only emits the id.
"""
from agi_factory.events import NARRATIVE_NOTICE
from agi_factory.game_data_loader import RESOURCE_TYPES


def _compute_warning(state, rules, training):
    capacity = state.compute_capacity
    if capacity.max_capacity <= 0:
        return False
    return capacity.used / capacity.max_capacity > rules.get('compute_warning_ratio', 0.9)


def _first_revenue(state, rules, training):
    return state.revenue.b2b + state.revenue.b2c > 0


def _first_breakthrough(state, rules, training):
    return bool(state.unlocked_breakthroughs)


def _resource_imbalance(state, rules, training):
    levels = [state.levels[r] for r in RESOURCE_TYPES]
    return max(levels) - min(levels) > rules.get('imbalance_spread', 2)


def _training_ready(state, rules, training):
    return training.can_start_next(state)


NARRATIVE_RULES = [
    ('compute_warning_high', 'has_seen_compute_warning', _compute_warning),
    ('first_revenue', 'has_seen_first_revenue', _first_revenue),
    ('first_breakthrough', 'has_seen_first_breakthrough', _first_breakthrough),
    ('resource_imbalance', 'has_seen_imbalance_warning', _resource_imbalance),
    ('training_ready', 'has_seen_training_ready', _training_ready),
]


class NarrativeRules:
    """Evaluates the notice table after the rest of the tick."""

    def __init__(self, data_loader, training, events):
        self.rules = data_loader.get_rules('narrative')
        self.training = training
        self.events = events

    def apply(self, state):
        fired = []
        for notice_id, flag, condition in NARRATIVE_RULES:
            if state.narrative_flags.get(flag):
                continue
            if condition(state, self.rules, self.training):
                state.narrative_flags[flag] = True
                fired.append(notice_id)
                self.events.emit(NARRATIVE_NOTICE, {'id': notice_id, 'time_elapsed': state.time_elapsed})
        return fired
