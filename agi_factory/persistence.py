"""Snapshot and leaderboard collaborators.

The engine only knows two methods: ``save_snapshot(snapshot)`` on a snapshot
sink and ``submit(entry)`` on a leaderboard. Dispatch is best-effort: every
failure is logged and dropped so persistence can never stall or stop the
simulation.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

from agi_factory.errors import PersistenceFailure

logger = logging.getLogger(__name__)

class PersistenceDispatcher:
    """Forwards snapshots and leaderboard entries to optional collaborators.

    With ``background=True`` calls run on a single worker thread so a slow
    store never delays a tick.
    """

    def __init__(self, snapshot_sink=None, leaderboard=None, background=False):
        """Initialize dispatcher."""
        self.snapshot_sink = snapshot_sink
        self.leaderboard = leaderboard
        self.failures = 0
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='persistence') if background else None

    def push_snapshot(self, snapshot):
        """Save a snapshot if a sink is attached."""
        if self.snapshot_sink is None:
            return None
        return self._dispatch('snapshot', self.snapshot_sink.save_snapshot, snapshot)

    def submit_leaderboard(self, entry):
        """Submit a leaderboard entry if a leaderboard is attached."""
        if self.leaderboard is None:
            return None
        return self._dispatch('leaderboard', self.leaderboard.submit, entry)

    def _dispatch(self, what, func, payload):
        if self._executor is not None:
            future = self._executor.submit(self._call, what, func, payload)
            return future
        return self._call(what, func, payload)

    def _call(self, what, func, payload):
        try:
            return func(payload)
        except Exception as e:
            self.failures += 1
            failure = PersistenceFailure(f"{what} failed: {e}", action=what)
            logger.warning("Persistence failure (dropped): %s", failure)
            return None

    def shutdown(self, wait=True):
        """Stop the background worker, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)

class MemoryStorage:
    """In-process snapshot sink and leaderboard for headless runs."""

    def __init__(self):
        self.snapshots = []
        self.entries = []

    def save_snapshot(self, snapshot):
        self.snapshots.append(dict(snapshot))
        return snapshot

    def latest_snapshot(self):
        return self.snapshots[-1] if self.snapshots else None

    def submit(self, entry):
        self.entries.append(dict(entry))
        return entry

    def top(self, limit=10, offset=0):
        ranked = sorted(
            self.entries,
            key=lambda e: (not e['has_achieved_agi'], e['total_time_elapsed'], -e['final_intelligence'])
        )
        return ranked[offset:offset + limit]

class DatabaseSnapshotSink:
    """Writes compact snapshots as SavedGame rows."""

    def __init__(self, session_id=None, app=None):
        """Bind to a session; pass ``app`` when saving from a worker thread."""
        self.session_id = session_id
        self.app = app

    def save_snapshot(self, snapshot):
        from agi_factory.models import db, SavedGame
        if self.app is not None:
            with self.app.app_context():
                row = SavedGame.from_snapshot(snapshot, self.session_id)
                db.session.add(row)
                db.session.commit()
                return row.id
        row = SavedGame.from_snapshot(snapshot, self.session_id)
        db.session.add(row)
        # Committed together with the session state by the caller
        return row

class DatabaseLeaderboard:
    """Leaderboard backed by the LeaderboardEntry table."""

    def __init__(self, session_id=None, app=None):
        self.session_id = session_id
        self.app = app

    def _write(self, entry):
        from agi_factory.models import db, LeaderboardEntry
        existing = None
        if self.session_id is not None:
            existing = LeaderboardEntry.query.filter_by(session_id=self.session_id).first()
        if existing is not None:
            # Write-once per session
            return existing
        row = LeaderboardEntry(session_id=self.session_id, **{k: entry[k] for k in LeaderboardEntry.FIELDS})
        db.session.add(row)
        return row

    def submit(self, entry):
        from agi_factory.models import db
        if self.app is not None:
            with self.app.app_context():
                row = self._write(entry)
                db.session.commit()
                return row.id
        return self._write(entry)

    def top(self, limit=10, offset=0):
        from agi_factory.models import LeaderboardEntry
        return [row.to_dict() for row in LeaderboardEntry.ranked().offset(offset).limit(limit).all()]
