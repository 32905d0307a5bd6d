import numpy as np
import pytest

from mrf_icm.classifier import DistanceMapClassifier
from mrf_icm.data_loader import DataLoader
from mrf_icm.icm import MRFConfig, MRFImageFilter

from conftest import FOUR_CONNECTED


@pytest.fixture
def finished_run(two_region_problem):
    _, distance_map, seed = two_region_problem
    config = MRFConfig(
        n_classes=2, neighborhood_weights=(0.5 * FOUR_CONNECTED).ravel(), record_energy=True
    )
    result = MRFImageFilter(config, classifier=DistanceMapClassifier(distance_map)).run(
        np.zeros((4, 4)), seed
    )
    return config, result


def test_save_and_load_run(tmp_path, finished_run):
    config, result = finished_run
    loader = DataLoader(tmp_path)
    json_path, labels_path = loader.save_result('two_regions', result, config, description='4x4')

    assert json_path.exists() and labels_path.exists()
    assert loader.get_available_runs() == ['two_regions']

    snapshot = loader.load_result('two_regions')
    assert snapshot.metadata['description'] == '4x4'
    assert snapshot.parameters.n_classes == 2
    assert snapshot.parameters.error_policy == 'ratio'
    assert snapshot.results.state == 'converged'
    assert snapshot.results.n_passes == result.n_passes
    assert snapshot.results.label_shape == [4, 4]
    assert len(snapshot.results.history) == result.n_passes
    assert snapshot.results.initial_energy == pytest.approx(result.initial_energy)

    np.testing.assert_array_equal(loader.load_labels('two_regions'), result.labels)


def test_load_result_picks_most_recent(tmp_path, finished_run):
    config, result = finished_run
    loader = DataLoader(tmp_path)
    loader.save_result('run', result, config, description='first')
    loader.save_result('run', result, config, description='second')
    loader.save_result('run_b', result, config)

    assert loader.get_available_runs() == ['run', 'run_b']
    assert loader.load_result('run').metadata['description'] == 'second'


def test_missing_run_and_directory(tmp_path):
    loader = DataLoader(tmp_path)
    with pytest.raises(FileNotFoundError):
        loader.load_result('nope')
    with pytest.raises(FileNotFoundError):
        DataLoader(tmp_path / 'missing')
    assert DataLoader(tmp_path / 'created', create=True).data_dir.exists()


def test_numpy_integer_radius_is_saved_as_plain_ints(tmp_path, two_region_problem):
    _, distance_map, seed = two_region_problem
    scalar = MRFConfig(
        n_classes=2, neighborhood_radius=np.int64(1), neighborhood_weights=FOUR_CONNECTED.ravel()
    )
    assert scalar.describe()['neighborhood_radius'] == 1
    assert type(scalar.describe()['neighborhood_radius']) is int

    config = MRFConfig(
        n_classes=2,
        neighborhood_radius=(np.int64(1), np.int64(1)),
        neighborhood_weights=FOUR_CONNECTED.ravel(),
    )
    result = MRFImageFilter(config, classifier=DistanceMapClassifier(distance_map)).run(
        np.zeros((4, 4)), seed
    )
    loader = DataLoader(tmp_path)
    loader.save_result('numpy_radius', result, config)

    assert loader.load_result('numpy_radius').parameters.neighborhood_radius == [1, 1]
