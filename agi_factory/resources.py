"""Resource ledger: production rates and per-tick accumulation."""
from agi_factory.game_data_loader import RESOURCE_TYPES
from agi_factory.game_state import bonus_key

class ResourceLedger:
    """Owns the production-rate formula and applies production every tick."""

    def __init__(self, data_loader):
        """Initialize ledger from production rules."""
        self.production_rules = data_loader.get_rules('production')
        self.sub_input_rules = data_loader.get_rules('sub_inputs')
        self.base_rates = self.production_rules.get('base_rates', {})
        self.level_bonus = self.production_rules.get('level_bonus', 0.5)
        self.free_compute_research_rate = self.production_rules.get('free_compute_research_rate', 0.0)

    def sub_input_multiplier(self, resource_type, sub_input, level):
        """Linear multiplier for a sub-input: 1 + bonus * (level - 1)."""
        bonus = self.sub_input_rules.get(resource_type, {}).get(sub_input, {}).get('bonus', 0.0)
        return 1.0 + bonus * max(0, level - 1)

    def level_multiplier(self, level):
        """Multiplier from the resource's own level."""
        return 1.0 + self.level_bonus * max(0, level - 1)

    def cross_multiplier(self, state, resource_type):
        """Product of the bonuses the other two resources pass to this one."""
        multiplier = 1.0
        for source in RESOURCE_TYPES:
            if source != resource_type:
                multiplier *= state.bonuses.get(bonus_key(source, resource_type), 1.0)
        return multiplier

    def investment_multiplier(self, state, resource_type):
        """How far money has developed a resource: sub-inputs times cross bonuses."""
        multiplier = self.cross_multiplier(state, resource_type)
        for sub_input, level in state.inputs_for(resource_type).items():
            multiplier *= self.sub_input_multiplier(resource_type, sub_input, level)
        return multiplier

    def development(self, state):
        return {r: self.investment_multiplier(state, r) for r in RESOURCE_TYPES}

    def calculate_production_rate(self, state, resource_type):
        """Production per second for one resource.

        base rate x investment multiplier (sub-inputs and cross bonuses) x
        level multiplier x breakthrough multiplier; algorithm also gains a
        bonus from free compute.
        """
        rate = self.base_rates.get(resource_type, 0.0)
        rate *= self.investment_multiplier(state, resource_type)
        rate *= self.level_multiplier(state.levels[resource_type])
        rate *= state.multipliers.get(resource_type, 1.0)

        if resource_type == 'algorithm':
            # Research runs on spare cycles
            rate += state.compute_capacity.free_compute * self.free_compute_research_rate
        return rate

    def update_production(self, state):
        """Recompute all production rates on the state."""
        for resource_type in RESOURCE_TYPES:
            state.production[resource_type] = self.calculate_production_rate(state, resource_type)
        return state.production

    def apply(self, state, delta_time):
        """Add one tick of production to every resource."""
        self.update_production(state)
        for resource_type in RESOURCE_TYPES:
            produced = state.production[resource_type] * delta_time
            state.resources[resource_type] = max(0.0, state.resources[resource_type] + produced)
