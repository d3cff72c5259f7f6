"""
    Averaged perceptron (and its logistic regression sibling) over sparse string features.

    The averaging uses the usual trick: instead of keeping a running sum of every weight vector we have ever had,
        every update of feature f by delta at global step c also adds `delta * c` to a cache.
        The averaged weight is then `w[f] - cache[f] / c_total`, computable in O(1) whenever it is asked for.
"""
from enum import Enum
from typing import Dict, Iterable, List, Tuple, Union

# Local imports
from qsample.utils.exceptions import UnknownUpdateType
from qsample.utils.misc import sigmoid

BIAS: str = 'BIAS'


class UpdateType(Enum):
    PERCEPTRON = 'PERCEPTRON'
    LR = 'LR'


class WeightStore:
    """
        Maps a feature to its latest (raw) weight and, lazily, its averaged weight.
        The update counter belongs to this store alone, i.e. two perceptrons never share a counter.
    """

    def __init__(self, averaging: bool = True):
        self.averaging: bool = averaging
        self.weights: Dict[str, float] = {}
        self.cache: Dict[str, float] = {}
        self.n_updates: int = 0

    def __len__(self) -> int:
        return len(self.weights)

    def __contains__(self, feature: str) -> bool:
        return feature in self.weights

    def get(self, feature: str) -> float:
        return self.weights.get(feature, 0.0)

    def get_avg(self, feature: str) -> float:
        if feature not in self.weights:
            return 0.0

        # Nothing has been averaged yet; the raw weight is all we know.
        if self.n_updates == 0:
            return self.weights[feature]

        return self.weights[feature] - self.cache.get(feature, 0.0) / self.n_updates

    def update(self, feature: str, delta: float):
        self.weights[feature] = self.weights.get(feature, 0.0) + delta
        if self.averaging:
            self.cache[feature] = self.cache.get(feature, 0.0) + delta * self.n_updates
        self.n_updates += 1

    def reset(self):
        self.weights = {}
        self.cache = {}
        self.n_updates = 0


class Perceptron:
    """
        A linear scorer with a bias feature, trained either with a (margin) perceptron rule or logistic regression.

        The two margins are independent: a positive example asks for `score > margin_positive`,
            a negative one for `score <= -margin_negative`.
        `fixed_bias` is an external offset which is only added when scoring with averaged weights, i.e. at test time.
    """

    def __init__(
            self,
            update_type: Union[str, UpdateType] = UpdateType.PERCEPTRON,
            averaging: bool = True,
            margin_positive: float = 1,
            margin_negative: float = 1,
            fixed_bias: float = 0.0,
    ):
        try:
            self.update_type: UpdateType = UpdateType(update_type)
        except ValueError as e:
            raise UnknownUpdateType(f"Update type: {update_type} is unknown.") from e

        self.weights = WeightStore(averaging=averaging)
        self.margin_positive: float = margin_positive
        self.margin_negative: float = margin_negative
        self.fixed_bias: float = fixed_bias

        # Debug counter
        self.num_updates: int = 0

    def score(self, features: Iterable[str], average: bool = False) -> float:
        if average:
            score = self.weights.get_avg(BIAS) + self.fixed_bias
            for feature in features:
                score += self.weights.get_avg(feature)
        else:
            score = self.weights.get(BIAS)
            for feature in features:
                score += self.weights.get(feature)

        return score

    def train(self, features: Iterable[str], is_positive: bool, rate: float):
        if self.update_type is UpdateType.PERCEPTRON:
            self.train_perceptron(features, is_positive, rate)
        else:
            self.train_lr(features, is_positive, rate)

    def train_perceptron(self, features: Iterable[str], is_positive: bool, rate: float):
        """ Update only if the example is on the wrong side of its margin """
        features = list(features)
        score = self.score(features)

        if is_positive and score - self.margin_positive <= 0:
            self.update(features, rate)
        elif not is_positive and score + self.margin_negative > 0:
            self.update(features, -rate)

    def train_lr(self, features: Iterable[str], is_positive: bool, rate: float):
        """ One step of stochastic gradient ascent on the log likelihood """
        features = list(features)
        step = rate * ((1.0 if is_positive else 0.0) - sigmoid(self.score(features)))
        self.update(features, step)

    def update(self, features: Iterable[str], rate: float):
        """ No questions asked: the bias and every active feature move by `rate`. """
        self.weights.update(BIAS, rate)
        for feature in features:
            self.weights.update(feature, rate)

        self.num_updates += 1

    def dump_weights(self, n: int = 20, average: bool = True) -> List[Tuple[str, float]]:
        """ The n features with the largest absolute weight. Handy when you want to know what the model learned. """
        get = self.weights.get_avg if average else self.weights.get
        ranked = sorted(((feature, get(feature)) for feature in self.weights.weights),
                        key=lambda item: abs(item[1]), reverse=True)
        return ranked[:n]

    def reset(self):
        self.weights.reset()
        self.num_updates = 0
