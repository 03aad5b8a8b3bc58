"""Leveling engine: converts accumulated resources into resource levels."""
import logging

from agi_factory.config import Config
from agi_factory.events import LEVEL_UP
from agi_factory.game_data_loader import RESOURCE_TYPES

logger = logging.getLogger(__name__)

def invest_cost_for(base_cost, growth, level):
    """Resource cost to go from ``level`` to ``level + 1``."""
    return base_cost * growth ** (level - 1)

class LevelingEngine:
    """Levels resources 1..max_level when their stock reaches the threshold."""

    def __init__(self, data_loader, events):
        """Initialize leveling engine."""
        rules = data_loader.get_rules('leveling')
        self.events = events
        self.max_level = rules.get('max_level', Config.MAX_LEVEL)
        self.cost_growth = rules.get('cost_growth', 1.8)
        self.base_costs = rules.get('base_costs', {})
        self.tier_bonus = rules.get('tier_bonus', 0)

    def recompute_invest_costs(self, state):
        """Derive every threshold from the current level (used after restoring a snapshot)."""
        for resource_type in RESOURCE_TYPES:
            base = self.base_costs.get(resource_type, 100.0)
            state.invest_costs[resource_type] = invest_cost_for(base, self.cost_growth, state.levels[resource_type])
        return state.invest_costs

    def apply(self, state):
        """Level up every resource whose stock covers its threshold.

        Intelligence gets ``tier_bonus`` for each step the lowest of the three
        levels rises, not for each level-up.
        """
        lowest = min(state.levels[r] for r in RESOURCE_TYPES)
        leveled = []
        for resource_type in RESOURCE_TYPES:
            # A large production burst can cover more than one level
            while (state.levels[resource_type] < self.max_level
                   and state.resources[resource_type] >= state.invest_costs[resource_type]):
                cost = state.invest_costs[resource_type]
                state.resources[resource_type] = max(0.0, state.resources[resource_type] - cost)
                state.levels[resource_type] += 1
                state.invest_costs[resource_type] = cost * self.cost_growth

                logger.info("%s reached level %d", resource_type, state.levels[resource_type])
                event = {
                    'resource_type': resource_type,
                    'level': state.levels[resource_type],
                    'cost': cost,
                    'next_cost': state.invest_costs[resource_type]
                }
                leveled.append(event)
                self.events.emit(LEVEL_UP, event)

        tiers = min(state.levels[r] for r in RESOURCE_TYPES) - lowest
        if tiers > 0:
            state.intelligence += self.tier_bonus * tiers
            logger.info("All resources reached level %d", lowest + tiers)
        return leveled
