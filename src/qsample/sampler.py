"""
    The span sampler: propose candidate spans, score them with the span level model,
        decide whether they replace whatever they overlap in the predicted spans, and (when training) learn from it.

    Works in two modes, selected per call:
        - training: raw weights are used for scoring, and every scored span is checked against the gold spans.
        - prediction: averaged weights are used, and the model is left untouched.

    Randomness: one generator per role (document shuffle, direction coin, begin draws, end draws).
        Each sampling decision consumes exactly one draw from its generator, so a fixed seed
        and a fixed document order reproduce a run exactly.
"""
from typing import List, Optional, Set

import numpy as np
from tqdm.auto import tqdm

# Local imports
from qsample.config import SamplerConfig, DEFAULTS, SEED_SPAN_SHUFFLE, SEED_DIRECTION, SEED_BEGIN, SEED_END
from qsample.features import SpanFeatureExtractor, SpanFeatureFn, add_span_features
from qsample.heuristic import find_next_begin_from_cue, find_prev_end_from_cue
from qsample.models.spans import SpanLevelModel
from qsample.sampling import CategoricalSampler, NOT_FOUND
from qsample.utils.data import Document, Span, CONTENT_LABEL
from qsample.utils.exceptions import MultipleGoldMatches


class SpanSampler:

    def __init__(
            self,
            span_model: SpanLevelModel,
            config: SamplerConfig = DEFAULTS,
            feature_fn: Optional[SpanFeatureFn] = None,
    ):
        self.span_model = span_model
        self.config = config
        self.feature_fn: SpanFeatureFn = feature_fn if feature_fn is not None else SpanFeatureExtractor()

        self.shuffle_random = np.random.default_rng(SEED_SPAN_SHUFFLE)
        self.direction_random = np.random.default_rng(SEED_DIRECTION)
        self.begin_sampling = CategoricalSampler(SEED_BEGIN)
        self.end_sampling = CategoricalSampler(SEED_END)

    def _go_forward_(self) -> bool:
        """ The coin: True means we draw the begin first. """
        return bool(self.direction_random.random() < 0.5)

    def sample_begin(self, doc: Document, end: Optional[int] = None) -> int:
        """
            Draw a begin position proportional to the begin scores.
            If an end is given, only look at [end - max_length_sampling, end], closest to the end first.
        """
        if end is None:
            positions = list(range(len(doc)))
        else:
            positions = list(range(end, max(0, end - self.config.max_length_sampling) - 1, -1))

        i = self.begin_sampling.sample_one([doc.tokens[pos].begin_score for pos in positions],
                                           temperature=self.config.begin_temperature, bias=0)
        if i == NOT_FOUND:
            return NOT_FOUND

        position = positions[i]
        doc.tokens[position].n_sampled_begin += 1
        return position

    def sample_end(self, doc: Document, begin: Optional[int] = None) -> int:
        """
            Draw an end position proportional to the end scores.
            If a begin is given, only look at [begin, begin + max_length_sampling].
        """
        if begin is None:
            positions = list(range(len(doc)))
        else:
            positions = list(range(begin, min(len(doc) - 1, begin + self.config.max_length_sampling) + 1))

        i = self.end_sampling.sample_one([doc.tokens[pos].end_score for pos in positions],
                                         temperature=self.config.end_temperature, bias=0)
        if i == NOT_FOUND:
            return NOT_FOUND

        position = positions[i]
        doc.tokens[position].n_sampled_end += 1
        return position

    def sample_begin_end_randomly(self, doc: Document) -> List[Span]:
        """ Flip a coin for the direction, then draw both boundaries. Retry up to max_num_trials times. """
        begin, end = NOT_FOUND, NOT_FOUND
        n_trials = 0

        while n_trials < self.config.max_num_trials and (begin == NOT_FOUND or end == NOT_FOUND):
            if self._go_forward_():
                begin = self.sample_begin(doc)
                end = self.sample_end(doc, begin) if begin != NOT_FOUND else NOT_FOUND
            else:
                end = self.sample_end(doc)
                begin = self.sample_begin(doc, end) if end != NOT_FOUND else NOT_FOUND
            n_trials += 1

        if begin == NOT_FOUND or end == NOT_FOUND:
            return []

        return [Span(doc, begin, end, CONTENT_LABEL)]

    def sample_begin_end_cue_linear(self, doc: Document) -> List[Span]:
        """
            For every predicted cue, flip a coin for the direction.
            Forward: take the nearest begin after the cue and draw an end for it.
            Backward: take the nearest end before the cue and draw a begin for it.
        """
        candidates = []
        for cue in doc.tokens:
            if not cue.is_predicted_cue:
                continue

            begin, end = NOT_FOUND, NOT_FOUND
            if self._go_forward_():
                begin = find_next_begin_from_cue(doc, cue.position, self.config.max_cue_distance_sampling)
                if begin != NOT_FOUND:
                    end = self.sample_end(doc, begin)
            else:
                end = find_prev_end_from_cue(doc, cue.position, self.config.max_cue_distance_sampling)
                if end != NOT_FOUND:
                    begin = self.sample_begin(doc, end)

            if begin != NOT_FOUND and end != NOT_FOUND:
                candidates.append(Span(doc, begin, end, CONTENT_LABEL))

        return candidates

    def sample_candidates(self, doc: Document) -> List[Span]:
        if self.config.linear_sampling:
            return self.sample_begin_end_cue_linear(doc)
        return self.sample_begin_end_randomly(doc)

    def score(self, span: Span, average: bool) -> float:
        if span.features is None:
            add_span_features(span, self.feature_fn)
        span.score = self.span_model.score(span, average=average)
        return span.score

    def aggregate(self, spans: List[Span]) -> float:
        """ Combine the scores of the predicted spans which a candidate would replace """
        criterion = self.config.overlap_criterion
        if criterion == 'MAX':
            # Starts at zero: a bunch of negative spans never beat an empty slot.
            return max([0.0] + [span.score for span in spans])

        total = sum(span.score for span in spans)
        if criterion == 'MEAN' and spans:
            total /= len(spans)
        return total

    def try_accept(self, doc: Document, candidate: Span, average: bool) -> bool:
        """
            A candidate with a positive score replaces every predicted span it overlaps,
                if it scores higher than their aggregate (see `aggregate`). Else, it is dropped.
        """
        if candidate.score <= 0:
            return False

        existing = candidate.overlapping_spans(doc.predicted_spans)
        for span in existing:
            self.score(span, average)

        if candidate.score <= self.aggregate(existing):
            return False

        doc.predicted_spans.add(candidate)
        for span in existing:
            doc.predicted_spans.remove(span)

        return True

    def update_against_gold(self, doc: Document, candidate: Span):
        """
            Push the span model in the right direction if the candidate violates its margin:
                - wrong spans should score at most -sampler_margin_negative
                - correct spans should score more than sampler_margin_positive
        """
        matches = candidate.matching_spans(doc.gold_spans)
        if len(matches) > 1:
            raise MultipleGoldMatches(f"Document {doc.docname} has {len(matches)} gold spans at "
                                      f"[{candidate.begin}, {candidate.end}].")

        is_correct = len(matches) == 1
        rate = self.config.learning_rate

        if not is_correct and candidate.score > -self.config.sampler_margin_negative:
            self.span_model.train(candidate, False, rate)

            if self.config.update_for_gold_span:
                # Whatever gold span we trampled over was probably scored too low
                for gold in candidate.overlapping_spans(doc.gold_spans):
                    if gold.features is None:
                        add_span_features(gold, self.feature_fn)
                    self.span_model.train(gold, True, rate)

        elif is_correct and candidate.score <= self.config.sampler_margin_positive:
            self.span_model.train(candidate, True, rate)

    def sample_and_score(self, doc: Document, is_training: bool, n_iter: int):
        """ One sampling pass over a document: n_iter rounds of propose, score, accept (and learn). """
        average = not is_training
        proposed: Set[Span] = set()

        for _ in range(n_iter):
            for candidate in self.sample_candidates(doc):

                # Sampling without replacement within a pass
                if candidate in doc.predicted_spans or candidate in proposed:
                    continue
                proposed.add(candidate)

                self.score(candidate, average)
                self.try_accept(doc, candidate, average)

                if is_training:
                    self.update_against_gold(doc, candidate)

    def remove_bad_spans(self, doc: Document, is_training: bool):
        """ Rescore every predicted span. Those with a non positive score are dropped. """
        average = not is_training

        for span in sorted(doc.predicted_spans, key=lambda sp: (sp.begin, sp.end)):
            self.score(span, average)
            if span.score <= 0:
                doc.predicted_spans.remove(span)

            if is_training:
                self.update_against_gold(doc, span)

    def sample_and_score_all(self, docs: List[Document], is_training: bool, n_iter: int):
        """ Shuffle the documents, then for each: a cleanup pass followed by a sampling pass. """
        order = self.shuffle_random.permutation(len(docs))

        for i in tqdm(order, desc="Training" if is_training else "Predicting"):
            doc = docs[int(i)]
            self.remove_bad_spans(doc, is_training)
            self.sample_and_score(doc, is_training, n_iter)
