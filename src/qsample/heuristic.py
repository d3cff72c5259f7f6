"""
    Greedy bootstrap: look around every predicted cue for the nearest plausible begin and end tokens.
    The spans it finds seed the predicted span set before the sampler starts refining it.

    The search helpers below are shared with the cue anchored candidate generator of the sampler.
    All of them return NOT_FOUND (-1) when the window holds no suitable token.
"""
from typing import List

import numpy as np
from tqdm.auto import tqdm

# Local imports
from qsample.config import SEED_HEURISTIC
from qsample.sampling import NOT_FOUND
from qsample.utils.data import Document, Span, CONTENT_LABEL


def find_next_begin_from_cue(doc: Document, cue_position: int, max_dist: int) -> int:
    for i in range(cue_position + 1, min(cue_position + max_dist, len(doc) - 1) + 1):
        if doc.tokens[i].begin_score > 0:
            return i
    return NOT_FOUND


def find_prev_end_from_cue(doc: Document, cue_position: int, max_dist: int) -> int:
    for i in range(cue_position - 1, max(cue_position - max_dist, 0) - 1, -1):
        if doc.tokens[i].end_score > 0:
            return i
    return NOT_FOUND


def find_next_end_from_begin(doc: Document, begin_position: int, max_dist: int) -> int:
    for i in range(begin_position + 1, min(begin_position + max_dist, len(doc) - 1) + 1):
        if doc.tokens[i].end_score > 0:
            return i
    return NOT_FOUND


def find_prev_begin_from_end(doc: Document, end_position: int, max_dist: int) -> int:
    for i in range(end_position - 1, max(end_position - max_dist, 0) - 1, -1):
        if doc.tokens[i].begin_score > 0:
            return i
    return NOT_FOUND


class HeuristicSampler:
    """ Deterministic unless `shuffle_tokens` is on, in which case the cue order comes from a seeded generator. """

    def __init__(self, shuffle_tokens: bool = False, seed: int = SEED_HEURISTIC):
        self.shuffle_tokens: bool = shuffle_tokens
        self.random = np.random.default_rng(seed)

    def _token_order_(self, doc: Document) -> List[int]:
        if self.shuffle_tokens:
            return [int(i) for i in self.random.permutation(len(doc))]
        return list(range(len(doc)))

    def sample_greedy(self, doc: Document, max_dist_from_cue: int, max_span_length: int):
        """
            For every predicted cue, search forward for a begin then an end, and backward for an end then a begin.
            A pair becomes a new predicted span unless either of its tokens already sits inside one.
            Nothing is ever removed from the predicted spans.
        """
        for position in self._token_order_(doc):
            if not doc.tokens[position].is_predicted_cue:
                continue

            # Forward: cue ... begin ... end
            begin = find_next_begin_from_cue(doc, position, max_dist_from_cue)
            if begin != NOT_FOUND and not doc.is_in_predicted_span(begin):
                end = find_next_end_from_begin(doc, begin, max_span_length)
                if end != NOT_FOUND and not doc.is_in_predicted_span(end):
                    doc.predicted_spans.add(Span(doc, begin, end, CONTENT_LABEL))

            # Backward: begin ... end ... cue
            end = find_prev_end_from_cue(doc, position, max_dist_from_cue)
            if end != NOT_FOUND and not doc.is_in_predicted_span(end):
                begin = find_prev_begin_from_end(doc, end, max_span_length)
                if begin != NOT_FOUND and not doc.is_in_predicted_span(begin):
                    doc.predicted_spans.add(Span(doc, begin, end, CONTENT_LABEL))

    def sample_greedy_all(self, docs: List[Document], max_dist_from_cue: int, max_span_length: int):
        for doc in tqdm(docs, desc="Greedy seeding"):
            self.sample_greedy(doc, max_dist_from_cue, max_span_length)
