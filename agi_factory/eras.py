"""Era state machine: GNT-2 -> GNT-3 -> GNT-4 -> AGI."""
import logging

from agi_factory.events import AGI_REACHED, ERA_ADVANCED
from agi_factory.game_state import ERA_ORDER, Era

logger = logging.getLogger(__name__)

class EraStateMachine:
    """Advances the era when intelligence crosses the next threshold.

    Transitions are one-directional. If a single tick jumps over several
    thresholds, every intermediate era still fires once, in order.
    """

    def __init__(self, data_loader, events):
        """Initialize era thresholds from game data."""
        self.events = events
        self.base_thresholds = {}
        for entry in data_loader.load_eras():
            self.base_thresholds[Era(entry['id'])] = entry.get('threshold')

    def thresholds(self, state):
        """Intelligence threshold per era; AGI uses the state's threshold."""
        thresholds = {}
        for era in ERA_ORDER:
            value = self.base_thresholds.get(era)
            thresholds[era] = state.agi_threshold if era == Era.AGI or value is None else float(value)
        return thresholds

    def validate(self, state):
        """Raise ValueError unless thresholds strictly increase."""
        thresholds = self.thresholds(state)
        values = [thresholds[era] for era in ERA_ORDER]
        if any(b <= a for a, b in zip(values, values[1:])):
            raise ValueError(f"Era thresholds must strictly increase: {values}")

    def next_era(self, state):
        index = ERA_ORDER.index(state.current_era)
        if index + 1 < len(ERA_ORDER):
            return ERA_ORDER[index + 1]
        return None

    def apply(self, state):
        """Fire every era transition the current intelligence allows."""
        thresholds = self.thresholds(state)
        transitions = []
        next_era = self.next_era(state)
        while next_era is not None and state.intelligence >= thresholds[next_era]:
            previous = state.current_era
            state.current_era = next_era
            state.eras_reached.append(next_era)
            transitions.append(next_era)
            logger.info("Era advanced %s -> %s at intelligence %.1f", previous.value, next_era.value, state.intelligence)
            self.events.emit(ERA_ADVANCED, {
                'era': next_era.value,
                'previous': previous.value,
                'intelligence': state.intelligence,
                'time_elapsed': state.time_elapsed
            })

            if next_era == Era.AGI:
                state.agi_achieved = True
                self.events.emit(AGI_REACHED, {
                    'intelligence': state.intelligence,
                    'time_elapsed': state.time_elapsed
                })
            next_era = self.next_era(state)
        return transitions
