"""
    Its a good idea to keep custom exceptions together.
"""
from pathlib import Path


class BadParameters(Exception):
    """
    This exception is supposed to indicate that the cli params passed did not meet the standards for some reason.
    Not particularly helpful in figuring out why on its own. Look closely at the error message generated.
    """
    pass


class ImproperDumpDir(Exception):
    """
        A broad family invoked when some items are missing/improperly dumped in a dir.
    """

    def __init__(self, reason: Path, *args):
        super().__init__(*args)
        self.reason = reason

    def __str__(self):
        return f"The location: {self.reason} does not contain a saved run (config.json and model.pkl)."


class MismatchedConfig(Exception):
    """ Raised when a dumped config has keys we do not know about. """
    ...


class UnknownOverlapCriterion(ValueError):
    """ Raised when the overlap aggregation policy is not one of SUM, MEAN, MAX """
    ...


class UnknownUpdateType(ValueError):
    """ Raised when a perceptron is asked to train with an update rule it does not know """
    ...


class SpanOutOfBounds(IndexError):
    """ A span was constructed with a begin or an end outside the document, or with begin > end. """

    def __init__(self, begin: int, end: int, length: int, *args):
        super().__init__(*args)
        self.begin = begin
        self.end = end
        self.length = length

    def __str__(self):
        return f"Span [{self.begin}, {self.end}] is not valid in a document of {self.length} tokens."


class MultipleGoldMatches(Exception):
    """ More than one gold span sits at the exact same position as a candidate. We can't train on that. """
    ...


class EvaluationError(ValueError):
    """ The evaluation counts went haywire (e.g. more correct spans than predicted ones). """
    ...
