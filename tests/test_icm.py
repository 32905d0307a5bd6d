import numpy as np
import pytest

from mrf_icm.classifier import DistanceMapClassifier, GaussianClassifier
from mrf_icm.errors import ConfigurationError, DimensionMismatchError, NumericalError
from mrf_icm.energy import EnergyEvaluator
from mrf_icm.icm import ErrorPolicy, ICMController, ICMState, MRFConfig, MRFImageFilter, MRFResult
from mrf_icm.neighborhood import uniform_weights

from conftest import FOUR_CONNECTED


def run_filter(distance_map, initial_labels=None, **config_kwargs):
    config = MRFConfig(n_classes=distance_map.shape[0], **config_kwargs)
    mrf = MRFImageFilter(config, classifier=DistanceMapClassifier(distance_map))
    return mrf.run(np.zeros(distance_map.shape[1:]), initial_labels)


# =============================================================================
# 1. Testable properties of the ICM loop
# =============================================================================
def test_uniform_image_converges_in_one_pass():
    labels = np.zeros((3, 4, 4), dtype=np.int64)
    result = run_filter(np.zeros((2, 3, 4, 4)), labels)

    assert result.state is ICMState.CONVERGED
    assert result.converged
    assert result.n_passes == 1
    assert result.changed_count == 0
    np.testing.assert_array_equal(result.labels, labels)


def test_iteration_cap_on_checkerboard(checkerboard):
    result = run_filter(
        np.zeros((2, 4, 4)),
        checkerboard,
        max_iterations=1,
        neighborhood_weights=(10 * FOUR_CONNECTED).ravel(),
    )

    assert result.state is ICMState.MAX_ITERATIONS_REACHED
    assert result.n_passes == 1
    assert result.changed_count == 16
    assert result.error == 1.0
    assert result.error > MRFConfig(n_classes=2).error_tolerance
    np.testing.assert_array_equal(result.labels, 1 - checkerboard)


def test_tie_break_with_zero_distances_and_weights():
    labels = np.ones((4, 4), dtype=np.int64)
    result = run_filter(np.zeros((2, 4, 4)), labels, neighborhood_weights=[0.0] * 9)

    assert result.history[0].changed_count == 16
    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 2
    assert not result.labels.any()


def test_total_energy_never_increases(two_region_problem):
    truth, distance_map, seed = two_region_problem
    result = run_filter(
        distance_map,
        seed,
        neighborhood_weights=(0.5 * FOUR_CONNECTED).ravel(),
        record_energy=True,
    )

    energies = [result.initial_energy] + [r.energy for r in result.history]
    assert energies[1] < energies[0]
    assert all(later <= earlier for earlier, later in zip(energies, energies[1:]))

    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 2
    assert result.history[0].changed_count == 2
    np.testing.assert_array_equal(result.labels, truth)


def test_energy_not_recorded_by_default(two_region_problem):
    _, distance_map, seed = two_region_problem
    result = run_filter(distance_map, seed, neighborhood_weights=FOUR_CONNECTED.ravel())
    assert result.initial_energy is None
    assert all(r.energy is None for r in result.history)


def test_runs_are_deterministic(rng):
    distance_map = rng.uniform(0.0, 3.0, size=(3, 8, 9))
    weights = rng.uniform(0.0, 1.0, size=9)

    first = run_filter(distance_map, neighborhood_weights=weights)
    second = run_filter(distance_map, neighborhood_weights=weights)

    np.testing.assert_array_equal(first.labels, second.labels)
    assert first.n_passes == second.n_passes
    assert first.state is second.state


def test_unaffected_region_is_not_re_evaluated():
    distance_map = np.zeros((2, 5, 10))
    distance_map[:, 2, 1] = [10.0, 0.0]
    masks = {}

    config = MRFConfig(n_classes=2, neighborhood_weights=[1.0] * 4 + [0.0] + [1.0] * 4)
    mrf = MRFImageFilter(
        config,
        classifier=DistanceMapClassifier(distance_map),
        on_evaluate=lambda pass_index, mask: masks.setdefault(pass_index, mask.copy()),
    )
    result = mrf.run(np.zeros((5, 10)), np.zeros((5, 10), dtype=np.int64))

    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 2
    assert result.labels[2, 1] == 1
    assert masks[1].all()

    expected = np.zeros((5, 10), dtype=bool)
    expected[1:4, 0:3] = True
    np.testing.assert_array_equal(masks[2], expected)
    assert not masks[2][:, 3:].any()
    assert [r.n_evaluated for r in result.history] == [50, 9]


def test_count_error_policy(two_region_problem):
    _, distance_map, seed = two_region_problem
    result = run_filter(
        distance_map,
        seed,
        neighborhood_weights=(0.5 * FOUR_CONNECTED).ravel(),
        error_policy=ErrorPolicy.COUNT,
        error_tolerance=2,
    )
    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 1
    assert result.error == 2.0
    assert result.changed_ratio == pytest.approx(2 / 16)


def test_stop_request_leaves_last_committed_labels(checkerboard):
    config = MRFConfig(
        n_classes=2, max_iterations=10, neighborhood_weights=(10 * FOUR_CONNECTED).ravel()
    )
    mrf = MRFImageFilter(config, classifier=DistanceMapClassifier(np.zeros((2, 4, 4))))
    reports = []

    def on_pass(report):
        reports.append(report)
        if report.pass_index == 2:
            mrf.stop()

    mrf.on_pass = on_pass
    result = mrf.run(np.zeros((4, 4)), checkerboard)

    assert result.state is ICMState.STOPPED
    assert mrf.state is ICMState.STOPPED
    assert result.n_passes == 2
    assert len(reports) == 2
    # Flipped twice
    np.testing.assert_array_equal(result.labels, checkerboard)


def test_result_labels_are_read_only(two_region_problem):
    _, distance_map, seed = two_region_problem
    result = run_filter(distance_map, seed, neighborhood_weights=FOUR_CONNECTED.ravel())
    assert not result.labels.flags.writeable
    assert isinstance(result, MRFResult)


def test_controller_does_not_modify_seed(two_region_problem):
    _, distance_map, seed = two_region_problem
    original = seed.copy()
    run_filter(distance_map, seed, neighborhood_weights=FOUR_CONNECTED.ravel())
    np.testing.assert_array_equal(seed, original)


def test_narrow_seed_dtype_holds_every_class():
    # 200 classes; class 150 is at distance 0 everywhere.
    distance_map = np.ones((200, 2, 3))
    distance_map[150] = 0.0
    seed = np.zeros((2, 3), dtype=np.int8)

    result = run_filter(distance_map, seed, neighborhood_weights=[0.0] * 9)

    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 2
    assert result.history[0].changed_count == 6
    assert (result.labels == 150).all()
    assert seed.dtype == np.int8 and (seed == 0).all()


def test_controller_handles_empty_region():
    evaluator = EnergyEvaluator(uniform_weights((1, 1)), n_classes=2)
    controller = ICMController(evaluator, MRFConfig(n_classes=2))
    result = controller.minimize(np.zeros((0, 4), dtype=np.int64), np.zeros((2, 0, 4)))

    assert result.state is ICMState.CONVERGED
    assert result.error == 0.0
    assert result.labels.shape == (0, 4)


class StopDuringSetupClassifier(DistanceMapClassifier):
    """Calls stop on the filter while run() is still computing distances."""

    def __init__(self, distance_map):
        super().__init__(distance_map)
        self.mrf = None

    def distance_map(self, image):
        if self.mrf is not None:
            self.mrf.stop()
        return super().distance_map(image)


def test_stop_requested_during_setup_is_kept(two_region_problem):
    truth, distance_map, seed = two_region_problem
    config = MRFConfig(n_classes=2, neighborhood_weights=(0.5 * FOUR_CONNECTED).ravel())
    classifier = StopDuringSetupClassifier(distance_map)
    mrf = MRFImageFilter(config, classifier=classifier)
    classifier.mrf = mrf

    result = mrf.run(np.zeros((4, 4)), seed)
    assert result.state is ICMState.STOPPED
    assert result.n_passes == 1
    np.testing.assert_array_equal(result.labels, truth)

    # The next run starts with the request cleared.
    classifier.mrf = None
    result = mrf.run(np.zeros((4, 4)), seed)
    assert result.state is ICMState.CONVERGED
    assert result.n_passes == 2


# =============================================================================
# 2. Seeding from the classifier
# =============================================================================
def test_labels_seeded_from_classifier_and_noise_removed():
    image = np.zeros((6, 6))
    image[:, 3:] = 10.0
    image[2, 1] = 6.0  # closer to the bright class

    classifier = GaussianClassifier(means=[[0.0], [10.0]], covariances=[[[4.0]], [[4.0]]])
    assert classifier.initial_labels(image)[2, 1] == 1

    config = MRFConfig(n_classes=2, neighborhood_weights=[1.0] * 4 + [0.0] + [1.0] * 4)
    result = MRFImageFilter(config, classifier=classifier).run(image)

    expected = np.zeros((6, 6), dtype=np.int64)
    expected[:, 3:] = 1
    np.testing.assert_array_equal(result.labels, expected)
    assert result.state is ICMState.CONVERGED


def test_custom_minimizer_factory(two_region_problem):
    _, distance_map, seed = two_region_problem
    built = []

    def factory(evaluator, config):
        controller = ICMController(evaluator, config)
        built.append(controller)
        return controller

    config = MRFConfig(n_classes=2, neighborhood_weights=FOUR_CONNECTED.ravel())
    mrf = MRFImageFilter(
        config, classifier=DistanceMapClassifier(distance_map), minimizer_factory=factory
    )
    result = mrf.run(np.zeros((4, 4)), seed)
    assert len(built) == 1
    assert built[0].state is result.state
    assert mrf.weight_table.radius == (1, 1)


# =============================================================================
# 3. Configuration errors
# =============================================================================
@pytest.mark.parametrize("kwargs", [
    {'n_classes': 0},
    {'n_classes': 2, 'max_iterations': 0},
    {'n_classes': 2, 'error_tolerance': -0.1},
    {'n_classes': 2, 'error_policy': 'bogus'},
])
def test_invalid_config(kwargs):
    with pytest.raises(ConfigurationError):
        MRFConfig(**kwargs)


def test_error_policy_accepts_string():
    assert MRFConfig(n_classes=2, error_policy='count').error_policy is ErrorPolicy.COUNT


def test_missing_classifier():
    mrf = MRFImageFilter(MRFConfig(n_classes=2))
    assert mrf.state is ICMState.INITIALIZING
    with pytest.raises(RuntimeError):
        mrf.weight_table
    with pytest.raises(ConfigurationError):
        mrf.run(np.zeros((3, 3, 3)))


def test_classifier_class_count_must_match():
    mrf = MRFImageFilter(MRFConfig(n_classes=3), classifier=DistanceMapClassifier(np.zeros((2, 3, 3))))
    with pytest.raises(ConfigurationError):
        mrf.run(np.zeros((3, 3)))


def test_2d_image_needs_explicit_weights():
    with pytest.raises(ConfigurationError):
        run_filter(np.zeros((2, 4, 4)))


def test_radius_dimension_mismatch():
    with pytest.raises(DimensionMismatchError):
        run_filter(np.zeros((2, 4, 4)), neighborhood_radius=(1, 1, 1))


def test_weight_length_mismatch():
    with pytest.raises(ConfigurationError):
        run_filter(np.zeros((2, 4, 4)), neighborhood_weights=[1.0] * 27)


def test_initial_labels_validation():
    distance_map = np.zeros((2, 4, 4))
    weights = FOUR_CONNECTED.ravel()
    with pytest.raises(ConfigurationError):
        run_filter(distance_map, np.zeros((4, 5), dtype=np.int64), neighborhood_weights=weights)
    with pytest.raises(ConfigurationError):
        run_filter(distance_map, np.full((4, 4), 2), neighborhood_weights=weights)
    with pytest.raises(ConfigurationError):
        run_filter(distance_map, np.zeros((4, 4)), neighborhood_weights=weights)


def test_empty_region_is_rejected():
    config = MRFConfig(n_classes=2, neighborhood_weights=[1.0] * 9)
    mrf = MRFImageFilter(config, classifier=DistanceMapClassifier(np.zeros((2, 0, 4))))
    with pytest.raises(ConfigurationError):
        mrf.run(np.zeros((0, 4)))


def test_image_shape_must_match_region():
    config = MRFConfig(n_classes=2, neighborhood_weights=FOUR_CONNECTED.ravel())
    mrf = MRFImageFilter(config, classifier=DistanceMapClassifier(np.zeros((2, 4, 4))))
    with pytest.raises(ConfigurationError):
        mrf.run(np.zeros((5, 4)))


def test_non_finite_distances_raise():
    distance_map = np.zeros((2, 4, 4))
    distance_map[1, 2, 2] = np.nan
    with pytest.raises(NumericalError):
        run_filter(distance_map, neighborhood_weights=FOUR_CONNECTED.ravel())
