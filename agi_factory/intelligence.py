"""Intelligence aggregation.

The score combines levels and stocks of the three resources:

    term_r = level_r * (1 + log10(1 + resources_r)) * bonus_r
    score  = sum(weight_r * sqrt(term_r))
             * (1 + synergy * (min_level - 1))
             * min(development_r)

``bonus_r`` is the ``<r>_to_intelligence`` entry of the cross-resource
bonus matrix and ``development_r`` is how far purchases have multiplied
the resource's production (see ``ResourceLedger.investment_multiplier``).

The square root makes each resource's contribution concave. The synergy and
development factors only pay for the weakest resource, so money spread
across all three beats the same money piled into one. Intelligence accrues
at ``accrual_rate * score`` per second; the score is never negative, which
keeps intelligence non-decreasing between resets.
"""
import math

from agi_factory.game_data_loader import RESOURCE_TYPES
from agi_factory.game_state import bonus_key

DEFAULT_WEIGHTS = {'compute': 1.0, 'data': 1.0, 'algorithm': 1.2}

def resource_scale(amount):
    """Diminishing-returns scale for a resource stock."""
    return 1.0 + math.log10(1.0 + max(0.0, amount))

def aggregate_score(levels, resources, weights=None, synergy=0.05, bonuses=None, development=None):
    """Weighted, balance-rewarding score for a set of levels and stocks."""
    weights = weights or DEFAULT_WEIGHTS
    bonuses = bonuses or {}
    total = 0.0
    for resource_type in RESOURCE_TYPES:
        term = levels[resource_type] * resource_scale(resources.get(resource_type, 0.0))
        term *= bonuses.get(bonus_key(resource_type, 'intelligence'), 1.0)
        total += weights.get(resource_type, 1.0) * math.sqrt(max(0.0, term))
    min_level = min(levels[r] for r in RESOURCE_TYPES)
    score = total * (1.0 + synergy * (min_level - 1))
    if development:
        score *= max(0.0, min(development.values()))
    return score

class IntelligenceAggregator:
    """Accrues intelligence from the aggregate score each tick."""

    def __init__(self, data_loader, ledger):
        """Initialize aggregator from intelligence rules."""
        rules = data_loader.get_rules('intelligence')
        self.ledger = ledger
        self.weights = rules.get('weights', DEFAULT_WEIGHTS)
        self.synergy = rules.get('synergy', 0.05)
        self.accrual_rate = rules.get('accrual_rate', 0.2)

    def score(self, state):
        return aggregate_score(
            state.levels,
            state.resources,
            self.weights,
            self.synergy,
            bonuses=state.bonuses,
            development=self.ledger.development(state)
        )

    def rate(self, state):
        """Intelligence gained per second at the current state."""
        return max(0.0, self.accrual_rate * self.score(state))

    def apply(self, state, delta_time):
        gain = self.rate(state) * delta_time
        state.intelligence += gain
        return gain
