"""Engine error taxonomy.

Commands raise these with the game state left untouched. None of them is
fatal to the simulation: the engine logs and drops failures of queued
actions, and the HTTP layer turns them into 4xx responses.
"""


class GameError(Exception):
    """Base class for recoverable engine errors."""

    error_type = 'game_error'

    def __init__(self, message, action=None):
        super().__init__(message)
        self.action = action

    def to_dict(self):
        return {'error': str(self), 'type': self.error_type, 'action': self.action}


class InsufficientFunds(GameError):
    """Money is below the cost of the action."""

    error_type = 'insufficient_funds'

    def __init__(self, action, cost, available):
        super().__init__(f"Not enough money for {action}: need ${cost:,.2f}, have ${available:,.2f}", action)
        self.cost = cost
        self.available = available


class InsufficientCapacity(GameError):
    """Free compute capacity is below a reservation requirement."""

    error_type = 'insufficient_capacity'

    def __init__(self, action, required, available):
        super().__init__(f"Not enough compute capacity for {action}: need {required:,.1f}, have {available:,.1f}", action)
        self.required = required
        self.available = available


class InvalidTransition(GameError):
    """A state machine was asked to make a transition it does not allow."""

    error_type = 'invalid_transition'


class AlreadyRunning(InvalidTransition):
    """A training run is already active."""

    error_type = 'already_running'


class PersistenceFailure(GameError):
    """A snapshot save or leaderboard submission failed."""

    error_type = 'persistence_failure'
