"""
Dataclasses describing a saved MRF run.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RunParameters:
    """Configuration the run was made with (see MRFConfig.describe)."""
    n_classes: int
    max_iterations: int
    error_tolerance: float
    neighborhood_radius: Any
    neighborhood_weights: Optional[List[float]]
    error_policy: str
    record_energy: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunParameters':
        return cls(
            n_classes=data['n_classes'],
            max_iterations=data['max_iterations'],
            error_tolerance=data['error_tolerance'],
            neighborhood_radius=data['neighborhood_radius'],
            neighborhood_weights=data.get('neighborhood_weights'),
            error_policy=data['error_policy'],
            record_energy=data.get('record_energy', False),
        )


@dataclass
class RunResults:
    """Summary statistics of a finished run."""
    state: str
    n_passes: int
    changed_count: int
    error: float
    n_elements: int
    label_shape: List[int]
    history: List[Dict[str, Any]] = field(default_factory=list)
    initial_energy: Optional[float] = None

    @property
    def changed_ratio(self) -> float:
        return self.changed_count / self.n_elements if self.n_elements else 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunResults':
        return cls(
            state=data['state'],
            n_passes=data['n_passes'],
            changed_count=data['changed_count'],
            error=data['error'],
            n_elements=data['n_elements'],
            label_shape=list(data['label_shape']),
            history=list(data.get('history', [])),
            initial_energy=data.get('initial_energy'),
        )


@dataclass
class RunSnapshot:
    """Metadata, parameters and results of one saved run."""
    metadata: Dict[str, Any]
    parameters: RunParameters
    results: RunResults

    def to_dict(self) -> Dict[str, Any]:
        return {
            'metadata': dict(self.metadata),
            'parameters': asdict(self.parameters),
            'results': asdict(self.results),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RunSnapshot':
        return cls(
            metadata=dict(data['metadata']),
            parameters=RunParameters.from_dict(data['parameters']),
            results=RunResults.from_dict(data['results']),
        )
