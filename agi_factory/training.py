"""Training run controller.

States: idle -> reserved -> running -> completed -> idle. A run reserves
compute for its whole duration and pays out a lump intelligence gain when it
finishes. When customer traffic squeezes the reservation, the run progresses
at the granted fraction instead of full speed.
"""
import logging

from agi_factory.errors import AlreadyRunning, InsufficientCapacity, InsufficientFunds, InvalidTransition
from agi_factory.events import TRAINING_COMPLETED, TRAINING_STARTED
from agi_factory.game_state import TrainingStatus

logger = logging.getLogger(__name__)

class TrainingRunController:
    """Starts, advances and completes training runs."""

    def __init__(self, data_loader, allocator, events):
        """Initialize training controller."""
        self.data_loader = data_loader
        self.allocator = allocator
        self.events = events
        self.default_gain_factor = data_loader.get_rules('training').get('default_gain_factor', 0.1)
        self.research_rate = data_loader.get_rules('research').get('progress_per_free_compute', 0.0)

    def start(self, state, duration, compute_cost, money_cost, intelligence_gain=None, run_id=None):
        """Reserve compute and pay for a run. Raises without touching state on failure."""
        duration = float(duration)
        compute_cost = float(compute_cost)
        money_cost = float(money_cost)
        if duration <= 0:
            raise ValueError("Training duration must be positive")
        if compute_cost < 0 or money_cost < 0:
            raise ValueError("Training costs cannot be negative")

        training = state.training
        if training.active:
            raise AlreadyRunning("A training run is already active", action='start_training')
        if state.money < money_cost:
            raise InsufficientFunds('start_training', money_cost, state.money)
        available = self.allocator.available_for_reservation(state)
        if available < compute_cost:
            raise InsufficientCapacity('start_training', compute_cost, available)

        if intelligence_gain is None:
            intelligence_gain = compute_cost * duration * self.default_gain_factor

        state.money -= money_cost
        training.status = TrainingStatus.RESERVED
        training.run_id = run_id
        training.compute_reserved = compute_cost
        training.duration = duration
        training.remaining = duration
        training.money_cost = money_cost
        training.intelligence_gain = float(intelligence_gain)
        training.progress_factor = 1.0

        # The reservation fits (checked above), so it is granted in full right away
        capacity = state.compute_capacity
        capacity.training_granted = compute_cost
        capacity.used = capacity.customer_usage + compute_cost
        capacity.free_compute = max(0.0, capacity.max_capacity - capacity.used)

        training.status = TrainingStatus.RUNNING
        logger.info("Training run %s started: %.0fs, %.1f compute", run_id, duration, compute_cost)
        event = {
            'run_id': run_id,
            'duration': duration,
            'compute_reserved': compute_cost,
            'money_cost': money_cost,
            'intelligence_gain': training.intelligence_gain
        }
        self.events.emit(TRAINING_STARTED, event)
        return event

    def next_era_run(self, state):
        """First catalog run that has not been completed yet."""
        for run in self.data_loader.get_training_runs():
            if run['id'] not in state.training.completed_runs:
                return run
        return None

    def unmet_prerequisites(self, state, run):
        """List human-readable prerequisites the state does not satisfy."""
        unmet = []
        prerequisites = run.get('prerequisites', {})
        for resource_type, level in prerequisites.get('levels', {}).items():
            if state.levels.get(resource_type, 0) < level:
                unmet.append(f"{resource_type} level {level}")
        research = prerequisites.get('research_progress', 0)
        if state.training.algorithm_research_progress < research:
            unmet.append(f"algorithm research {research}%")
        return unmet

    def can_start_next(self, state):
        run = self.next_era_run(state)
        if run is None or state.training.active:
            return False
        if self.unmet_prerequisites(state, run):
            return False
        return (state.money >= run['money_cost']
                and self.allocator.available_for_reservation(state) >= run['compute_required'])

    def start_era_run(self, state, era=None):
        """Start the next catalog run after checking its prerequisites.

        ``era`` names the era the caller expects to train for; runs cannot be
        skipped, so it must be the era of the next uncompleted run.
        """
        run = self.next_era_run(state)
        if era is not None:
            requested = self.data_loader.get_training_run_for_era(era)
            if requested is None:
                raise ValueError(f"No training run leads into era {era}")
            if requested['id'] in state.training.completed_runs:
                raise InvalidTransition(f"{requested['name']} is already complete", action='start_era_training')
            if requested['id'] != run['id']:
                raise InvalidTransition(f"{requested['name']} must wait for {run['name']}", action='start_era_training')
        if run is None:
            raise InvalidTransition("All era training runs are complete", action='start_era_training')
        unmet = self.unmet_prerequisites(state, run)
        if unmet:
            raise InvalidTransition(f"{run['name']} needs {', '.join(unmet)}", action='start_era_training')
        return self.start(
            state,
            duration=run['duration'],
            compute_cost=run['compute_required'],
            money_cost=run['money_cost'],
            intelligence_gain=run['intelligence_gain'],
            run_id=run['id'],
        )

    def apply(self, state, delta_time):
        """Advance research progress and the active run. Returns a completion event or None."""
        training = state.training
        if self.research_rate:
            progress = training.algorithm_research_progress
            progress += state.compute_capacity.free_compute * self.research_rate * delta_time
            training.algorithm_research_progress = min(100.0, progress)

        if training.status != TrainingStatus.RUNNING:
            return None

        training.remaining = max(0.0, training.remaining - delta_time * training.progress_factor)
        if training.remaining > 0:
            return None

        training.status = TrainingStatus.COMPLETED
        state.intelligence += training.intelligence_gain
        event = {
            'run_id': training.run_id,
            'intelligence_gain': training.intelligence_gain,
            'time_elapsed': state.time_elapsed
        }
        if training.run_id:
            training.completed_runs.append(training.run_id)

        # Release the reservation
        capacity = state.compute_capacity
        capacity.used = max(0.0, capacity.used - capacity.training_granted)
        capacity.free_compute = max(0.0, capacity.max_capacity - capacity.used)
        capacity.training_granted = 0.0
        training.compute_reserved = 0.0
        training.run_id = None
        training.status = TrainingStatus.IDLE

        logger.info("Training run completed: +%.1f intelligence", event['intelligence_gain'])
        self.events.emit(TRAINING_COMPLETED, event)
        return event
