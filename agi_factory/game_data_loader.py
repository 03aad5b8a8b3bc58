"""Game data loader for loading JSON configuration files."""
import json
from pathlib import Path

RESOURCE_TYPES = ('compute', 'data', 'algorithm')

class GameDataLoader:
    """Loads and caches game data from JSON files."""

    def __init__(self, data_dir=None):
        """Initialize the data loader."""
        if data_dir is None:
            # Game data ships inside the package
            self.data_dir = Path(__file__).parent / 'game_data'
        else:
            self.data_dir = Path(data_dir)

        self._economic_rules = None
        self._breakthroughs = None
        self._eras = None
        self._training_runs = None

    def _read_json(self, filename):
        file_path = self.data_dir / filename
        with open(file_path, 'r') as f:
            return json.load(f)

    def load_economic_rules(self):
        """Load economic rules data."""
        if self._economic_rules is None:
            file_path = self.data_dir / 'economic_rules.json'
            if file_path.exists():
                self._economic_rules = self._read_json('economic_rules.json')
            else:
                self._economic_rules = {}
        return self._economic_rules

    def load_breakthroughs(self):
        """Load the ordered breakthrough catalog."""
        if self._breakthroughs is None:
            data = self._read_json('breakthroughs.json')
            self._breakthroughs = list(data.get('breakthroughs', []))
        return self._breakthroughs

    def get_breakthrough_by_id(self, breakthrough_id):
        """Get breakthrough catalog entry by ID."""
        for entry in self.load_breakthroughs():
            if entry['id'] == breakthrough_id:
                return entry
        return None

    def load_eras(self):
        """Load era table and training run catalog."""
        if self._eras is None:
            data = self._read_json('eras.json')
            self._eras = list(data.get('eras', []))
            self._training_runs = list(data.get('training_runs', []))
        return self._eras

    def get_training_runs(self):
        """Get all era training runs in era order."""
        if self._training_runs is None:
            self.load_eras()
        return self._training_runs

    def get_training_run_for_era(self, era_id):
        """Get the training run that leads into the given era."""
        for run in self.get_training_runs():
            if run['era'] == era_id:
                return run
        return None

    def get_rules(self, section, default=None):
        """Get one section of the economic rules."""
        rules = self.load_economic_rules()
        return rules.get(section, {} if default is None else default)

    def get_sub_input_config(self, resource_type, sub_input):
        """Get cost/bonus settings for a sub-input of a resource."""
        sub_inputs = self.get_rules('sub_inputs').get(resource_type, {})
        return sub_inputs.get(sub_input)

    def validate_data(self):
        """Validate loaded data structure."""
        errors = []

        rules = self.load_economic_rules()
        if not rules:
            errors.append("No economic rules loaded")

        for resource_type in RESOURCE_TYPES:
            if resource_type not in rules.get('sub_inputs', {}):
                errors.append(f"No sub-inputs defined for {resource_type}")

        # Validate breakthroughs
        breakthroughs = self.load_breakthroughs()
        if not breakthroughs:
            errors.append("No breakthroughs loaded")

        breakthrough_ids = [b['id'] for b in breakthroughs]
        if len(breakthrough_ids) != len(set(breakthrough_ids)):
            errors.append("Duplicate breakthrough IDs found")

        # Era thresholds must be strictly increasing (AGI uses the engine threshold)
        eras = self.load_eras()
        thresholds = [e['threshold'] for e in eras if e.get('threshold') is not None]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            errors.append("Era thresholds are not strictly increasing")

        return errors

# Global instance
_game_data_loader = None

def get_game_data_loader(data_dir=None):
    """Get or create the global game data loader instance."""
    global _game_data_loader
    if _game_data_loader is None:
        _game_data_loader = GameDataLoader(data_dir)
    return _game_data_loader
