from typing import Sequence

import numpy as np

# Local imports
from qsample.utils.misc import sigmoid

NOT_FOUND: int = -1


class CategoricalSampler:
    """
        Draw an index out of a list of scores, with probabilities proportional to sigmoid((score + bias) / temperature).
        Low temperatures make this close to an argmax, high ones close to uniform.

        Every call consumes exactly one uniform draw from the generator (none if there is nothing to sample from).
    """

    def __init__(self, seed: int):
        self.random = np.random.default_rng(seed)

    def sample_one(self, scores: Sequence[float], temperature: float, bias: float = 0.0) -> int:
        if len(scores) == 0:
            return NOT_FOUND

        values = [sigmoid((score + bias) / temperature) for score in scores]
        norm = sum(values)
        if norm == 0:
            # Every score underflowed. They are equally (un)likely.
            values, norm = [1.0] * len(values), float(len(values))

        r = self.random.random()
        cumsum = 0.0
        for i, value in enumerate(values):
            cumsum += value / norm
            if cumsum > r:
                return i

        # Floating point rounding left the cumulative sum a hair below r
        return len(values) - 1
