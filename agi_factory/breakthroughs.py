"""Breakthrough engine: one-shot unlocks evaluated in catalog order."""
import logging

from agi_factory.errors import InvalidTransition
from agi_factory.events import BREAKTHROUGH_UNLOCKED
from agi_factory.revenue import credit_investor_funding

logger = logging.getLogger(__name__)

class BreakthroughEngine:
    """Checks every locked breakthrough each tick and applies unlock effects.

    Evaluation follows catalog order, so when several conditions become true
    on the same tick the earlier catalog entry unlocks first.
    """

    def __init__(self, data_loader, events):
        """Initialize breakthrough engine."""
        self.data_loader = data_loader
        self.events = events

    def apply(self, state):
        """Unlock every breakthrough whose condition now holds."""
        unlocked = []
        for breakthrough in state.breakthroughs:
            if breakthrough.unlocked:
                continue
            if breakthrough.unlock_condition(state):
                self.unlock(state, breakthrough)
                unlocked.append(breakthrough.id)
        return unlocked

    def unlock(self, state, breakthrough):
        """Flip a breakthrough to unlocked and apply its effect.

        Returns False when it was already unlocked; re-unlocking is ignored.
        """
        if breakthrough.unlocked:
            logger.debug("Ignoring repeated unlock of %s", breakthrough.id)
            return False

        breakthrough.unlocked = True
        state.unlocked_breakthroughs.append(breakthrough.id)
        self.apply_effect(state, breakthrough, one_shot=True)

        next_locked = next((b for b in state.breakthroughs if not b.unlocked), None)
        state.current_goal = next_locked.id if next_locked else None

        logger.info("Breakthrough unlocked: %s", breakthrough.name)
        self.events.emit(BREAKTHROUGH_UNLOCKED, breakthrough.to_dict())
        return True

    def force_unlock(self, state, breakthrough_id):
        """Unlock by id regardless of its condition."""
        if self.data_loader.get_breakthrough_by_id(breakthrough_id) is None:
            raise ValueError(f"Breakthrough not found: {breakthrough_id}")
        breakthrough = state.get_breakthrough(breakthrough_id)
        if breakthrough is None:
            # Catalog entry added after this session started
            raise InvalidTransition(f"Breakthrough {breakthrough_id} is not part of this session", action='force_unlock_breakthrough')
        return self.unlock(state, breakthrough)

    def apply_effect(self, state, breakthrough, one_shot=True):
        """Apply permanent multipliers and capabilities; one-shot bonuses only when asked."""
        effect = breakthrough.effect
        for resource_type, factor in effect.get('multipliers', {}).items():
            state.multipliers[resource_type] = state.multipliers.get(resource_type, 1.0) * factor
        capability = effect.get('capability')
        if capability:
            state.capabilities.add(capability)

        if one_shot:
            state.intelligence += effect.get('intelligence_bonus', 0)
            funding = effect.get('investor_funding', 0)
            if funding:
                credit_investor_funding(state, funding)

    def reapply_permanent_effects(self, state):
        """Rebuild multipliers and capabilities from the unlocked set."""
        state.multipliers = {r: 1.0 for r in state.multipliers}
        state.capabilities = set()
        for breakthrough in state.breakthroughs:
            if breakthrough.unlocked:
                self.apply_effect(state, breakthrough, one_shot=False)
