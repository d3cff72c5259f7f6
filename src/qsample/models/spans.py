"""
    The span level model: a higher order scorer over candidate spans.
    It is simply the sum of three perceptrons, looking at the first token, the last token and the span as a whole.
"""
from typing import Union

# Local imports
from qsample.models.perceptron import Perceptron, UpdateType
from qsample.utils.data import Span


class SpanLevelModel:

    def __init__(self, update_type: Union[str, UpdateType] = UpdateType.PERCEPTRON):
        self.begin_model = Perceptron(update_type=update_type)
        self.end_model = Perceptron(update_type=update_type)
        self.span_model = Perceptron(update_type=update_type)

    def score(self, span: Span, average: bool = False) -> float:
        """ Expects the span features to be attached already (see qsample.features). """
        score = self.begin_model.score(span.first().features, average=average)
        score += self.end_model.score(span.last().features, average=average)
        score += self.span_model.score(span.features or (), average=average)
        return score

    def train(self, span: Span, is_positive: bool, rate: float):
        """
            The caller already decided that this span needs an update (the margin check happens in the sampler),
                so we skip the margin checks of the sub models and go straight to `update`.
        """
        rate = rate if is_positive else -rate
        self.begin_model.update(span.first().features, rate)
        self.end_model.update(span.last().features, rate)
        self.span_model.update(span.features or (), rate)

    def reset(self):
        self.begin_model.reset()
        self.end_model.reset()
        self.span_model.reset()
