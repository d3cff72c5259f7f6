"""
    Evaluation of predicted spans (exact and partial matches) and of the token level classifiers.

    Every evaluator follows the same cycle: `update` it with documents, `compute` a dict of results, `reset` it.
    `run` does all three for a list of documents. Results of many runs (e.g. one per epoch)
        can be collected with `aggregate_reports`, which appends every metric to a list.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

# Local imports
from qsample.utils.data import Document, SpanType, Span, CONTENT_LABEL
from qsample.utils.exceptions import MultipleGoldMatches, EvaluationError


class PRF:
    """
        Counts for precision, recall and f1. The correct counts are floats since partial matches give partial credit.
        If nothing is predicted, precision is 1. If nothing is gold, recall is 1.
    """

    def __init__(self):
        self.n_true: int = 0
        self.n_predicted: int = 0
        self.correct_p: float = 0.0
        self.correct_r: float = 0.0

    def accumulate(self, other: 'PRF'):
        self.n_true += other.n_true
        self.n_predicted += other.n_predicted
        self.correct_p += other.correct_p
        self.correct_r += other.correct_r

    @property
    def precision(self) -> float:
        return 1.0 if self.n_predicted == 0 else self.correct_p / float(self.n_predicted)

    @property
    def recall(self) -> float:
        return 1.0 if self.n_true == 0 else self.correct_r / float(self.n_true)

    @property
    def f1(self) -> float:
        p, r = self.precision, self.recall
        return 0.0 if p + r == 0 else 2.0 * p * r / (p + r)

    def compute(self) -> Dict[str, float]:
        return {'p': self.precision, 'r': self.recall, 'f1': self.f1}

    def __repr__(self):
        return f"{self.precision:.2f} {self.recall:.2f} {self.f1:.2f}"


def eval_spans(doc: Document, label: str = CONTENT_LABEL, partial: bool = False,
               span_type: Optional[SpanType] = None) -> PRF:
    """
        Compare the predicted and gold spans of one document.

    :param doc: the document with gold spans and predicted spans
    :param label: only spans with this label are considered
    :param partial: if True, a prediction gets credit for the fraction of tokens it shares with gold spans
    :param span_type: if given, only spans of this type (direct, indirect, mixed) count
    """
    stats = PRF()
    predicted = doc.predicted_spans_of_label(label)
    gold = doc.gold_spans_of_label(label)

    if span_type is not None:
        predicted_of_interest = Span.of_type(predicted, span_type)
        gold_of_interest = [span for span in gold if span.span_type == span_type]
    else:
        predicted_of_interest, gold_of_interest = predicted, gold

    stats.n_true = len(gold_of_interest)
    stats.n_predicted = len(predicted_of_interest)

    # Precision: how much of each predicted span is right
    for pred in predicted_of_interest:
        if partial:
            for match in pred.overlapping_spans(gold):
                stats.correct_p += pred.compute_overlap(match) / float(pred.length)
        else:
            matches = pred.matching_spans(gold)
            if len(matches) > 1:
                raise MultipleGoldMatches(f"More than one gold span matches [{pred.begin}, {pred.end}] "
                                          f"in {doc.docname}.")
            stats.correct_p += len(matches)

    # Recall: how much of each gold span is found
    for pred in predicted:
        matches = pred.overlapping_spans(gold) if partial else pred.matching_spans(gold)
        if span_type is not None:
            matches = [match for match in matches if match.span_type == span_type]
        if not partial and len(matches) > 1:
            raise MultipleGoldMatches(f"More than one gold span matches [{pred.begin}, {pred.end}] "
                                      f"in {doc.docname}.")
        for match in matches:
            stats.correct_r += pred.compute_overlap(match) / float(match.length) if partial else 1

    if int(stats.correct_p) > stats.n_predicted or int(stats.correct_r) > stats.n_true:
        raise EvaluationError(f"More correct spans than there are spans in {doc.docname}: "
                              f"{stats.correct_p}/{stats.n_predicted} (p), {stats.correct_r}/{stats.n_true} (r).")

    return stats


def eval_classifier(doc: Document, position: str) -> PRF:
    """ Token level evaluation of either the 'begin', the 'end' or the 'cue' classifier """
    stats = PRF()
    for token in doc.tokens:
        if position == 'begin':
            is_true, is_pred = token.gold_begin, token.begin_score > 0
        elif position == 'end':
            is_true, is_pred = token.gold_end, token.end_score > 0
        elif position == 'cue':
            is_true, is_pred = token.gold_cue, token.is_predicted_cue
        else:
            raise ValueError(f"Unknown position: {position}. Try one of begin, end, cue.")

        stats.n_true += int(is_true)
        stats.n_predicted += int(is_pred)
        if is_true and is_pred:
            stats.correct_p += 1
            stats.correct_r += 1

    return stats


class CustomEvaluator(ABC):

    def __init__(self):
        self.stats: Dict[str, PRF] = {}
        self.reset()

    @abstractmethod
    def update(self, doc: Document):
        """ Count this document in. Results go to self.stats """
        ...

    @abstractmethod
    def reset(self):
        ...

    def compute(self) -> Dict[str, Dict[str, float]]:
        return {nm: stat.compute() for nm, stat in self.stats.items()}

    def run(self, docs: List[Document]) -> Dict[str, Dict[str, float]]:
        self.reset()
        for doc in docs:
            self.update(doc)
        return self.compute()

    @staticmethod
    def aggregate_reports(aggregate: dict, current: dict) -> dict:
        """ expect every value in 'current' to also be there in the aggregate """
        for split, results in current.items():
            if split not in aggregate:
                aggregate[split] = {}

            for eval_nm, metrics in results.items():
                if eval_nm not in aggregate[split]:
                    aggregate[split][eval_nm] = {}

                for metric_nm, metric_vl in metrics.items():
                    aggregate[split][eval_nm][metric_nm] = aggregate[split][eval_nm].get(metric_nm, []) + [metric_vl]

        return aggregate


class SpanEvaluator(CustomEvaluator):
    """ Exact and partial match, over all spans and over each span type. """

    def __init__(self, label: str = CONTENT_LABEL):
        self.label = label
        super().__init__()

    def reset(self):
        self.stats = {'strict': PRF(), 'partial': PRF()}
        for span_type in SpanType:
            self.stats[f"strict_{span_type.value}"] = PRF()
            self.stats[f"partial_{span_type.value}"] = PRF()

    def update(self, doc: Document):
        self.stats['strict'].accumulate(eval_spans(doc, self.label, partial=False))
        self.stats['partial'].accumulate(eval_spans(doc, self.label, partial=True))
        for span_type in SpanType:
            self.stats[f"strict_{span_type.value}"].accumulate(
                eval_spans(doc, self.label, partial=False, span_type=span_type))
            self.stats[f"partial_{span_type.value}"].accumulate(
                eval_spans(doc, self.label, partial=True, span_type=span_type))


class ClassifierEvaluator(CustomEvaluator):

    def reset(self):
        self.stats = {'begin': PRF(), 'end': PRF(), 'cue': PRF()}

    def update(self, doc: Document):
        for position, stat in self.stats.items():
            stat.accumulate(eval_classifier(doc, position))


def format_report(prefix: str, report: Dict[str, Dict[str, Dict[str, float]]],
                  keys: tuple = ('strict', 'partial')) -> str:
    """ One line per split: `<prefix> <split> | strict p r f1 | partial p r f1` """
    lines = []
    for split, results in report.items():
        cells = [f"{nm} {results[nm]['p']:.3f} {results[nm]['r']:.3f} {results[nm]['f1']:.3f}"
                 for nm in keys if nm in results]
        lines.append(f"{prefix} {split:6s} | " + " | ".join(cells))
    return '\n'.join(lines)
