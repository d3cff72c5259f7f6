import itertools

import pytest

from qsample.utils.data import Span, SpanType, Document
from qsample.utils.exceptions import SpanOutOfBounds

from conftest import make_quote_doc


def test_span_identity_ignores_label(doc10):
    content = Span(doc10, 2, 5, 'content')
    quote = Span(doc10, 2, 5, 'quote')

    assert content == quote
    assert hash(content) == hash(quote)
    assert len({content, quote}) == 1
    assert Span(doc10, 2, 5) != Span(doc10, 2, 6)


def test_span_identity_ignores_score(doc10):
    one, two = Span(doc10, 1, 3), Span(doc10, 1, 3)
    one.score = 10.0
    assert one == two
    assert two in {one}


@pytest.mark.parametrize('begin, end', [(-1, 3), (0, 10), (10, 10), (5, 4), (3, -1)])
def test_span_out_of_bounds(doc10, begin, end):
    with pytest.raises(SpanOutOfBounds):
        Span(doc10, begin, end)


def test_span_out_of_bounds_is_an_index_error(doc10):
    with pytest.raises(IndexError):
        Span(doc10, 0, 99)


def test_single_token_spans_are_fine(doc10):
    assert Span(doc10, 0, 0).length == 1
    assert Span(doc10, 9, 9).length == 1


def test_overlap_is_symmetric_and_bounded(doc10):
    spans = [Span(doc10, b, e) for b in range(0, 10, 2) for e in range(b, 10, 3)]

    for a, b in itertools.product(spans, repeat=2):
        assert a.overlaps(b) == b.overlaps(a)
        assert 0 <= a.compute_overlap(b) <= min(a.length, b.length)
        assert (a.compute_overlap(b) > 0) == a.overlaps(b)


def test_overlap_cases(doc20):
    outer = Span(doc20, 2, 10)
    assert outer.overlaps(Span(doc20, 4, 6))  # contains
    assert Span(doc20, 4, 6).overlaps(outer)  # contained
    assert outer.overlaps(Span(doc20, 10, 12))  # shares the end token
    assert not outer.overlaps(Span(doc20, 11, 12))
    assert outer.compute_overlap(Span(doc20, 8, 15)) == 3


def test_matching_and_contains(doc20):
    span = Span(doc20, 3, 7)
    others = [Span(doc20, 3, 7, 'quote'), Span(doc20, 3, 9), Span(doc20, 1, 7), Span(doc20, 12, 14)]

    assert span.matching_spans(others) == [others[0]]
    assert span.semi_matching_spans(others) == others[:3]
    assert span.overlapping_spans(others) == others[:3]
    assert Span(doc20, 3, 9).contains(span)
    assert not span.contains(Span(doc20, 3, 9))


def test_any_begins_and_ends_at(doc20):
    spans = [Span(doc20, 3, 7), Span(doc20, 10, 12)]
    assert Span.any_begins_at(spans, 10)
    assert not Span.any_begins_at(spans, 7)
    assert Span.any_ends_at(spans, 7)


def test_span_type():
    doc = make_quote_doc(0)
    assert Span(doc, 6, 10).span_type == SpanType.DIRECT
    assert Span(doc, 7, 11).span_type == SpanType.MIXED
    assert Span(doc, 12, 16).span_type == SpanType.INDIRECT


def test_document_gold_flags_and_predicted_membership():
    doc = make_quote_doc(0)
    assert doc.tokens[6].gold_begin and doc.tokens[10].gold_end
    assert not doc.tokens[7].gold_begin

    doc.predicted_spans.add(Span(doc, 12, 14))
    assert doc.is_in_predicted_span(13)
    assert not doc.is_in_predicted_span(15)


def test_document_from_dict():
    doc = Document.from_dict({
        'docname': 'x',
        'tokens': [{'features': ['a']}, {'features': ['b'], 'cue': True}, {'features': []}],
        'spans': [[0, 2, 'content']],
    })
    assert len(doc) == 3
    assert doc.tokens[1].gold_cue
    assert doc.tokens[0].features == frozenset({'a'})
    assert doc.gold_spans == [Span(doc, 0, 2)]

    doc.predicted_spans.add(Span(doc, 1, 2, score=0.5))
    assert doc.to_dict()['predicted'] == [[1, 2, 'content', 0.5]]
