"""Compute capacity allocation between customers, training and research."""

class ComputeCapacityAllocator:
    """Partitions max capacity every tick.

    Customer traffic is served first and is never throttled here; a training
    reservation only gets what is left, and whatever remains after both is
    free compute for algorithm research.
    """

    def __init__(self, data_loader, revenue_model):
        """Initialize allocator."""
        self.rules = data_loader.get_rules('capacity')
        self.revenue_model = revenue_model
        self.base_capacity = self.rules.get('base_capacity', 100.0)
        self.hardware_bonus = self.rules.get('hardware_bonus', 0.25)
        self.electricity_bonus = self.rules.get('electricity_bonus', 0.10)
        self.compute_level_bonus = self.rules.get('compute_level_bonus', 0.5)

    def calculate_max_capacity(self, state):
        """Total compute capacity from hardware, electricity and compute level."""
        inputs = state.compute_inputs
        infrastructure = (1.0
                          + self.hardware_bonus * (inputs.get('hardware', 1) - 1)
                          + self.electricity_bonus * (inputs.get('electricity', 1) - 1))
        level_factor = 1.0 + self.compute_level_bonus * (state.levels['compute'] - 1)
        return self.base_capacity * infrastructure * level_factor

    def calculate_customer_demand(self, state):
        """Compute wanted by each revenue stream, before clamping."""
        revenue = state.revenue
        b2b = revenue.b2b_usage * self.revenue_model.compute_per_unit('b2b') if revenue.b2b_enabled else 0.0
        b2c = revenue.b2c_subscribers * self.revenue_model.compute_per_unit('b2c') if revenue.b2c_enabled else 0.0
        return b2b, b2c

    def available_for_reservation(self, state):
        """Capacity a new training reservation could claim right now."""
        capacity = state.compute_capacity
        reserved = state.training.compute_reserved if state.training.active else 0.0
        return max(0.0, capacity.max_capacity - capacity.customer_usage - reserved)

    def apply(self, state, delta_time=None):
        """Recompute max capacity, customer usage, training grant and free compute."""
        capacity = state.compute_capacity
        training = state.training
        capacity.max_capacity = self.calculate_max_capacity(state)

        b2b, b2c = self.calculate_customer_demand(state)
        demand = b2b + b2c
        if demand > capacity.max_capacity:
            # Both streams draw proportionally from what exists
            scale = capacity.max_capacity / demand
            b2b *= scale
            b2c *= scale
        capacity.b2b_usage = b2b
        capacity.b2c_usage = b2c
        capacity.customer_usage = min(capacity.max_capacity, b2b + b2c)

        reserved = training.compute_reserved if training.active else 0.0
        granted = max(0.0, min(reserved, capacity.max_capacity - capacity.customer_usage))
        training.progress_factor = granted / reserved if reserved > 0 else 1.0
        capacity.training_granted = granted

        capacity.used = min(capacity.max_capacity, capacity.customer_usage + granted)
        capacity.free_compute = max(0.0, capacity.max_capacity - capacity.used)
        return capacity
