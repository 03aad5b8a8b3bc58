"""Revenue model: B2B API usage, B2C subscriptions and investor funding."""
import logging

logger = logging.getLogger(__name__)

STREAMS = ('b2b', 'b2c')

def credit_investor_funding(state, amount):
    """Credit a one-off investor payment."""
    state.money += amount
    state.revenue.investors += amount
    state.revenue.total_earned += amount
    state.peaks['money'] = max(state.peaks['money'], state.money)

class RevenueModel:
    """Two independently toggleable income streams.

    Each stream keeps a usage counter (API usage units for B2B, subscribers
    for B2C) that ramps toward a demand target driven by intelligence,
    marketing level and unlocked capabilities.
    """

    def __init__(self, data_loader):
        """Initialize revenue model."""
        self.rules = data_loader.get_rules('revenue')
        self.ramp_rate = self.rules.get('ramp_rate', 0.2)
        self.marketing_bonus = self.rules.get('marketing_bonus', 0.25)
        self.capability_bonus = self.rules.get('capability_bonus', 1.25)

    def _check_stream(self, stream):
        if stream not in STREAMS:
            raise ValueError(f"Unknown revenue stream: {stream}")

    def stream_rules(self, stream):
        self._check_stream(stream)
        return self.rules.get(stream, {})

    def set_stream(self, state, stream, enabled):
        """Toggle a stream. Both directions restart the counter at zero."""
        self._check_stream(stream)
        revenue = state.revenue
        setattr(revenue, f'{stream}_enabled', bool(enabled))
        # Off drops usage at once; on ramps up from nothing
        if stream == 'b2b':
            revenue.b2b_usage = 0.0
        else:
            revenue.b2c_subscribers = 0.0
        logger.info("Revenue stream %s %s", stream, 'enabled' if enabled else 'disabled')
        return {'stream': stream, 'enabled': bool(enabled)}

    def set_rate(self, state, stream, rate):
        """Set API price (b2b) or subscription fee (b2c)."""
        self._check_stream(stream)
        rate = float(rate)
        if rate < 0:
            raise ValueError("Revenue rate cannot be negative")
        setattr(state.revenue, f'{stream}_rate', rate)
        return {'stream': stream, 'rate': rate}

    def demand_target(self, state, stream):
        """Usage level the stream converges to at the current intelligence."""
        rules = self.stream_rules(stream)
        marketing = state.revenue.developer_tools if stream == 'b2b' else state.revenue.advertising
        target = rules.get('base_demand', 0.0) * (state.intelligence / 100.0)
        target *= 1.0 + self.marketing_bonus * marketing
        if rules.get('capability') in state.capabilities:
            target *= self.capability_bonus
        return target

    def compute_per_unit(self, stream):
        return self.stream_rules(stream).get('compute_per_unit', 0.0)

    def served_units(self, state, stream):
        """Usage actually served this tick, after the capacity clamp."""
        served_compute = getattr(state.compute_capacity, f'{stream}_usage')
        per_unit = self.compute_per_unit(stream)
        if per_unit <= 0:
            return state.revenue.b2b_usage if stream == 'b2b' else state.revenue.b2c_subscribers
        return served_compute / per_unit

    def ramp(self, state, delta_time):
        """Move usage counters toward their demand targets."""
        revenue = state.revenue
        step = min(1.0, self.ramp_rate * delta_time)

        if revenue.b2b_enabled:
            revenue.b2b_usage += (self.demand_target(state, 'b2b') - revenue.b2b_usage) * step
        else:
            revenue.b2b_usage = 0.0
        if revenue.b2c_enabled:
            revenue.b2c_subscribers += (self.demand_target(state, 'b2c') - revenue.b2c_subscribers) * step
        else:
            revenue.b2c_subscribers = 0.0

    def book_income(self, state, delta_time):
        """Book one tick of income for the usage capacity could serve.

        Runs after the allocator has clamped customer compute, so demand
        beyond capacity earns nothing.
        """
        revenue = state.revenue
        b2b_income = revenue.b2b_rate * self.served_units(state, 'b2b') * delta_time
        b2c_income = revenue.b2c_rate * self.served_units(state, 'b2c') * delta_time
        income = b2b_income + b2c_income

        state.money += income
        revenue.b2b += b2b_income
        revenue.b2c += b2c_income
        revenue.total_earned += income

        state.peaks['money'] = max(state.peaks['money'], state.money)
        state.peaks['b2b_usage'] = max(state.peaks['b2b_usage'], revenue.b2b_usage)
        state.peaks['b2c_subscribers'] = max(state.peaks['b2c_subscribers'], revenue.b2c_subscribers)
        return income
