import numpy as np
import pytest

from qsample.models.perceptron import WeightStore, Perceptron, UpdateType, BIAS
from qsample.utils.exceptions import UnknownUpdateType


class NaiveStore:
    """ Keeps every weight vector we've ever had. The average is a plain mean over them. """

    def __init__(self):
        self.weights = {}
        self.history = []

    def update(self, feature, delta):
        self.weights[feature] = self.weights.get(feature, 0.0) + delta
        self.history.append(dict(self.weights))

    def get_avg(self, feature):
        return sum(snapshot.get(feature, 0.0) for snapshot in self.history) / len(self.history)


def test_unseen_features_are_zero():
    store = WeightStore()
    assert store.get('nope') == 0.0
    assert store.get_avg('nope') == 0.0


def test_averaging_matches_naive_reference():
    rng = np.random.default_rng(0)
    store, naive = WeightStore(), NaiveStore()
    features = ['a', 'b', 'c', 'd']

    for _ in range(500):
        feature = features[rng.integers(len(features))]
        delta = float(rng.normal())
        store.update(feature, delta)
        naive.update(feature, delta)

    for feature in features:
        assert store.get(feature) == pytest.approx(naive.weights[feature])
        assert store.get_avg(feature) == pytest.approx(naive.get_avg(feature))


def test_average_of_a_single_update_is_the_weight():
    store = WeightStore()
    store.update('a', 2.0)
    assert store.get_avg('a') == 2.0

    store.update('b', 1.0)
    # 'a' held 2.0 for both steps, 'b' was 0 for the first one
    assert store.get_avg('a') == pytest.approx(2.0)
    assert store.get_avg('b') == pytest.approx(0.5)


def test_without_averaging_avg_is_raw():
    store = WeightStore(averaging=False)
    store.update('a', 1.0)
    store.update('a', 3.0)
    assert store.get_avg('a') == store.get('a') == 4.0


def test_counters_are_per_store():
    one, two = WeightStore(), WeightStore()
    one.update('a', 1.0)
    one.update('a', 1.0)
    two.update('a', 1.0)
    assert one.n_updates == 2
    assert two.n_updates == 1


def test_reset():
    store = WeightStore()
    store.update('a', 1.0)
    store.reset()
    assert len(store) == 0 and store.n_updates == 0
    assert store.get_avg('a') == 0.0


def test_margin_training_converges():
    perceptron = Perceptron(margin_positive=1)
    features = ['a', 'b']

    for _ in range(100):
        perceptron.train(features, True, 0.1)

    # bias + a + b move 0.1 each per update: 0.3, 0.6, 0.9, 1.2
    assert perceptron.num_updates == 4
    assert perceptron.score(features) > perceptron.margin_positive

    before = dict(perceptron.weights.weights)
    perceptron.train(features, True, 0.1)
    assert perceptron.weights.weights == before


def test_negative_example_within_margin_is_updated():
    perceptron = Perceptron(margin_negative=1)
    perceptron.train(['a'], False, 0.5)
    assert perceptron.score(['a']) == pytest.approx(-1.0)

    # -1.0 + 1 > 0 is false: margin satisfied
    perceptron.train(['a'], False, 0.5)
    assert perceptron.num_updates == 1


def test_update_moves_bias_and_features():
    perceptron = Perceptron()
    perceptron.update(['x', 'y'], 0.25)
    assert perceptron.weights.get(BIAS) == 0.25
    assert perceptron.weights.get('x') == 0.25
    assert perceptron.score(['x', 'y']) == pytest.approx(0.75)


def test_fixed_bias_only_for_averaged_scores():
    perceptron = Perceptron(fixed_bias=3.0)
    perceptron.update(['x'], 1.0)
    assert perceptron.score(['x']) == pytest.approx(2.0)
    # averaged: bias 1.0, x 0.5 (it was 0 for the first of the two updates)
    assert perceptron.score(['x'], average=True) == pytest.approx(1.0 + 0.5 + 3.0)


def test_logistic_regression_step():
    perceptron = Perceptron(update_type=UpdateType.LR)
    perceptron.train(['a'], True, 1.0)
    # score was 0, sigmoid(0) = 0.5, so the step is 0.5
    assert perceptron.weights.get('a') == pytest.approx(0.5)

    perceptron.train(['a'], False, 1.0)
    assert perceptron.weights.get('a') < 0.5


def test_update_type_from_string():
    assert Perceptron(update_type='LR').update_type is UpdateType.LR
    with pytest.raises(UnknownUpdateType):
        Perceptron(update_type='SVM')


def test_dump_weights_sorted_by_magnitude():
    perceptron = Perceptron()
    perceptron.update(['small'], 0.1)
    perceptron.update(['big'], -2.0)
    top = perceptron.dump_weights(n=2, average=False)
    # bias: 0.1 - 2.0
    assert [feature for feature, _ in top] == ['big', BIAS]
