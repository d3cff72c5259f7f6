from qsample.heuristic import (HeuristicSampler, find_next_begin_from_cue, find_prev_end_from_cue,
                               find_next_end_from_begin, find_prev_begin_from_end)
from qsample.sampling import NOT_FOUND
from qsample.utils.data import Span


def _setup_(doc, cue, begins=(), ends=()):
    doc.tokens[cue].is_predicted_cue = True
    for i in begins:
        doc.tokens[i].begin_score = 1.0
    for i in ends:
        doc.tokens[i].end_score = 1.0
    return doc


def test_greedy_forward_scenario(doc10):
    _setup_(doc10, cue=4, begins=[6], ends=[8])

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == {Span(doc10, 6, 8)}
    assert next(iter(doc10.predicted_spans)).label == 'content'


def test_greedy_backward(doc10):
    _setup_(doc10, cue=8, begins=[2], ends=[5])

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == {Span(doc10, 2, 5)}


def test_greedy_respects_windows(doc10):
    _setup_(doc10, cue=0, begins=[7], ends=[8])

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == set()


def test_greedy_does_not_touch_existing_spans(doc10):
    _setup_(doc10, cue=4, begins=[6], ends=[8])
    existing = Span(doc10, 5, 7)
    doc10.predicted_spans.add(existing)

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == {existing}


def test_greedy_without_cues_does_nothing(doc10):
    for token in doc10.tokens:
        token.begin_score = token.end_score = 1.0

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == set()


def test_shuffled_greedy_is_reproducible(doc20):
    from conftest import make_doc

    other = make_doc(20)
    for doc in (doc20, other):
        _setup_(doc, cue=3, begins=[5, 12], ends=[7, 14])
        doc.tokens[10].is_predicted_cue = True

    HeuristicSampler(shuffle_tokens=True).sample_greedy(doc20, 5, 5)
    HeuristicSampler(shuffle_tokens=True).sample_greedy(other, 5, 5)

    assert {(sp.begin, sp.end) for sp in doc20.predicted_spans} == {(sp.begin, sp.end) for sp in other.predicted_spans}


def test_search_helpers_stop_at_document_borders(doc10):
    _setup_(doc10, cue=8, begins=[0], ends=[9])

    assert find_next_begin_from_cue(doc10, 8, 30) == NOT_FOUND
    assert find_prev_end_from_cue(doc10, 8, 30) == NOT_FOUND
    assert find_next_end_from_begin(doc10, 8, 30) == 9
    assert find_prev_begin_from_end(doc10, 8, 30) == 0
    assert find_prev_begin_from_end(doc10, 8, 7) == NOT_FOUND


def test_blocked_forward_search_still_looks_backward(doc10):
    # Forward from the cue, the begin at 6 sits inside an existing span. Backward, [0, 2] is free.
    _setup_(doc10, cue=4, begins=[0, 6], ends=[2, 8])
    existing = Span(doc10, 5, 7)
    doc10.predicted_spans.add(existing)

    HeuristicSampler().sample_greedy(doc10, max_dist_from_cue=5, max_span_length=5)

    assert doc10.predicted_spans == {existing, Span(doc10, 0, 2)}
