"""
Save and load MRF runs as JSON summaries plus .npy label images.

Each saved run produces two files in the data directory:

    mrf_{run_id}_{timestamp}.json   metadata, parameters and results
    mrf_{run_id}_{timestamp}.npy    final label image
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple, Union

import numpy as np

from ..icm.config import MRFConfig
from ..icm.controller import MRFResult
from .snapshot import RunParameters, RunResults, RunSnapshot


logger = logging.getLogger(__name__)

_PREFIX = "mrf_"
_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
_TIMESTAMP_LENGTH = len("20250101_000000_000000")


class DataLoader:
    """
    Store of saved MRF runs in a directory.

    Example:
        >>> loader = DataLoader(Path('results'), create=True)
        >>> loader.save_result('brain_t1', result, config)
        >>> snapshot = loader.load_result('brain_t1')
        >>> print(snapshot.results.n_passes, snapshot.results.state)
        >>> labels = loader.load_labels('brain_t1')

    Args:
        data_dir: Directory holding the saved runs
        create: Create data_dir if it doesn't exist

    Raises:
        FileNotFoundError: If data_dir doesn't exist and create is False
    """

    def __init__(self, data_dir: Union[str, Path], create: bool = False):
        self.data_dir = Path(data_dir)
        if create:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        if not self.data_dir.exists():
            raise FileNotFoundError(f"Data directory does not exist: {self.data_dir}")

    @staticmethod
    def _parse_run_id(path: Path) -> Optional[str]:
        stem = path.stem
        if not stem.startswith(_PREFIX) or len(stem) <= len(_PREFIX) + _TIMESTAMP_LENGTH + 1:
            return None
        return stem[len(_PREFIX):-(_TIMESTAMP_LENGTH + 1)]

    def _find_json_for_run(self, run_id: str) -> Optional[Path]:
        """Most recent summary for run_id, or None."""
        candidates = [
            p for p in self.data_dir.glob(f"{_PREFIX}{run_id}_*.json")
            if self._parse_run_id(p) == run_id
        ]
        if not candidates:
            return None
        # Timestamps in the name sort chronologically.
        return sorted(candidates, key=lambda p: p.name)[-1]

    def save_result(
        self,
        run_id: str,
        result: MRFResult,
        config: MRFConfig,
        description: str = ""
    ) -> Tuple[Path, Path]:
        """
        Save a finished run.

        Args:
            run_id: Identifier used to find the run again
            result: Result returned by MRFImageFilter.run
            config: Configuration used for the run
            description: Free text stored in the metadata

        Returns:
            (json_path, labels_path)
        """
        now = datetime.now()
        stem = f"{_PREFIX}{run_id}_{now.strftime(_TIMESTAMP_FORMAT)}"
        json_path = self.data_dir / f"{stem}.json"
        labels_path = self.data_dir / f"{stem}.npy"

        snapshot = RunSnapshot(
            metadata={
                'run_id': run_id,
                'timestamp': now.isoformat(),
                'description': description,
                'labels_file': labels_path.name,
            },
            parameters=RunParameters.from_dict(config.describe()),
            results=RunResults(
                state=result.state.value,
                n_passes=int(result.n_passes),
                changed_count=int(result.changed_count),
                error=float(result.error),
                n_elements=int(result.n_elements),
                label_shape=list(result.labels.shape),
                history=[
                    {
                        'pass_index': r.pass_index,
                        'n_evaluated': r.n_evaluated,
                        'changed_count': r.changed_count,
                        'error': r.error,
                        'energy': r.energy,
                    }
                    for r in result.history
                ],
                initial_energy=result.initial_energy,
            ),
        )

        np.save(labels_path, np.asarray(result.labels))
        with open(json_path, 'w') as f:
            json.dump(snapshot.to_dict(), f, indent=2)

        logger.info("Saved run '%s' to %s", run_id, json_path)
        return json_path, labels_path

    def load_result(self, run_id: str) -> RunSnapshot:
        """
        Load the most recent summary saved for run_id.

        Raises:
            FileNotFoundError: If no run with that id exists
            KeyError: If the JSON lacks an expected field
        """
        json_path = self._find_json_for_run(run_id)
        if json_path is None:
            raise FileNotFoundError(
                f"No saved run '{run_id}' in {self.data_dir}. "
                f"Available runs: {self.get_available_runs()}"
            )

        with open(json_path, 'r') as f:
            data = json.load(f)

        try:
            return RunSnapshot.from_dict(data)
        except KeyError as e:
            raise KeyError(f"Unexpected structure in {json_path}: missing field {e}")

    def load_labels(self, run_id: str) -> np.ndarray:
        """Label image of the most recent run saved for run_id."""
        snapshot = self.load_result(run_id)
        labels_path = self.data_dir / snapshot.metadata['labels_file']
        if not labels_path.exists():
            raise FileNotFoundError(f"Label file missing for run '{run_id}': {labels_path}")
        return np.load(labels_path)

    def get_available_runs(self) -> List[str]:
        """Sorted ids of all saved runs."""
        run_ids = {self._parse_run_id(p) for p in self.data_dir.glob(f"{_PREFIX}*.json")}
        run_ids.discard(None)
        return sorted(run_ids)
