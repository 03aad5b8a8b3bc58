"""Investment model: turning money into sub-input levels and marketing."""
from agi_factory.errors import InsufficientFunds
from agi_factory.game_data_loader import RESOURCE_TYPES
from agi_factory.game_state import BONUS_TARGETS, bonus_key
from agi_factory.revenue import credit_investor_funding

class InvestmentModel:
    """Spends money on sub-inputs (electricity, hardware, data quality, ...).

    Each purchase raises the sub-input level by one. The price of the next
    level grows geometrically: base_cost * growth ** (level - 1).

    A purchase also grows the bonuses its resource passes to the other two
    resources and to intelligence, so spending spread over all three
    resources compounds while spending piled into one does not.
    """

    def __init__(self, data_loader, ledger):
        """Initialize investment model."""
        self.data_loader = data_loader
        self.ledger = ledger
        rules = data_loader.load_economic_rules()
        self.cost_growth = rules.get('sub_input_cost_growth', 1.15)
        cross_rules = rules.get('cross_bonuses', {})
        self.bonus_growth = cross_rules.get('growth', 1.05)
        self.intelligence_growth = cross_rules.get('intelligence_growth', {})
        revenue_rules = data_loader.get_rules('revenue')
        self.marketing_base_cost = revenue_rules.get('marketing_base_cost', 150)
        self.marketing_cost_growth = revenue_rules.get('marketing_cost_growth', 1.3)

    def _sub_input_config(self, resource_type, sub_input):
        if resource_type not in RESOURCE_TYPES:
            raise ValueError(f"Unknown resource type: {resource_type}")
        sub_config = self.data_loader.get_sub_input_config(resource_type, sub_input)
        if sub_config is None:
            raise ValueError(f"Unknown sub-input for {resource_type}: {sub_input}")
        return sub_config

    def get_cost(self, state, resource_type, sub_input):
        """Price of the next level of a sub-input."""
        sub_config = self._sub_input_config(resource_type, sub_input)
        level = state.inputs_for(resource_type)[sub_input]
        return sub_config['base_cost'] * self.cost_growth ** (level - 1)

    def get_all_costs(self, state):
        """Next-level prices for every sub-input, keyed by resource."""
        costs = {}
        for resource_type in RESOURCE_TYPES:
            costs[resource_type] = {
                sub_input: self.get_cost(state, resource_type, sub_input)
                for sub_input in state.inputs_for(resource_type)
            }
        return costs

    def grow_bonuses(self, state, resource_type):
        """Grow every bonus the resource passes on; returns the new values."""
        grown = {}
        for target in BONUS_TARGETS:
            if target == resource_type:
                continue
            key = bonus_key(resource_type, target)
            growth = self.bonus_growth
            if target == 'intelligence':
                growth = self.intelligence_growth.get(resource_type, growth)
            state.bonuses[key] = state.bonuses.get(key, 1.0) * growth
            grown[key] = state.bonuses[key]
        return grown

    def allocate_money(self, state, resource_type, sub_input, amount=None):
        """Buy one level of a sub-input.

        ``amount`` is the most the caller is willing to pay; when given it must
        cover the current cost. On failure nothing on the state changes.
        """
        sub_config = self._sub_input_config(resource_type, sub_input)
        cost = self.get_cost(state, resource_type, sub_input)
        action = f"allocate_money:{resource_type}.{sub_input}"

        if state.money < cost:
            raise InsufficientFunds(action, cost, state.money)
        if amount is not None and amount < cost:
            raise InsufficientFunds(action, cost, amount)

        state.money -= cost
        inputs = state.inputs_for(resource_type)
        inputs[sub_input] += 1
        bonuses = self.grow_bonuses(state, resource_type)

        # Regulatory standing attracts investors
        funding = sub_config.get('investor_funding', 0)
        if funding:
            credit_investor_funding(state, funding)

        self.ledger.update_production(state)

        return {
            'resource_type': resource_type,
            'sub_input': sub_input,
            'cost': cost,
            'level': inputs[sub_input],
            'production': state.production[resource_type],
            'investor_funding': funding,
            'bonuses': bonuses,
            'next_cost': self.get_cost(state, resource_type, sub_input)
        }

    def marketing_cost(self, level):
        """Price of the next marketing level."""
        return self.marketing_base_cost * self.marketing_cost_growth ** level

    def _buy_marketing(self, state, attribute, action):
        level = getattr(state.revenue, attribute)
        cost = self.marketing_cost(level)
        if state.money < cost:
            raise InsufficientFunds(action, cost, state.money)
        state.money -= cost
        setattr(state.revenue, attribute, level + 1)
        return {'cost': cost, 'level': level + 1, 'next_cost': self.marketing_cost(level + 1)}

    def advertise(self, state):
        """Run an advertising campaign (raises B2C subscriber demand)."""
        return self._buy_marketing(state, 'advertising', 'advertise')

    def improve_developer_tools(self, state):
        """Improve SDKs and docs (raises B2B API demand)."""
        return self._buy_marketing(state, 'developer_tools', 'improve_developer_tools')
