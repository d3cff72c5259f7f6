"""
    Span level features. The sampler only needs a callable which, given a span, returns an iterable of strings.
    What's below is a small default one which works with nothing but the token annotations we read from disk.
"""
from typing import Callable, Iterable, FrozenSet, List

# Local imports
from qsample.utils.data import Span, SpanType
from qsample.utils.misc import distance_bins

SpanFeatureFn = Callable[[Span], Iterable[str]]


class SpanFeatureExtractor:

    def __call__(self, span: Span) -> FrozenSet[str]:
        features: List[str] = []
        features += self.span_type(span)
        features += self.length(span)
        features += self.sentences(span)
        features += self.overlaps_cue(span)
        return frozenset(features)

    @staticmethod
    def span_type(span: Span) -> List[str]:
        return {
            SpanType.DIRECT: ['SPANTYPE-DIRECT'],
            SpanType.MIXED: ['SPANTYPE-MIXED'],
            SpanType.INDIRECT: ['SPANTYPE-INDIRECT'],
        }[span.span_type]

    @staticmethod
    def length(span: Span) -> List[str]:
        features = distance_bins(span.length, 'SPAN-LENGTH')
        if span.length <= 5:
            features.append(f"SPAN-LENGTH={span.length}")
        return features

    @staticmethod
    def sentences(span: Span) -> List[str]:
        n_sentences = len({token.sentence for token in span.tokens})
        return [f"NUMBER-OF-SENTENCES={n_sentences}"]

    @staticmethod
    def overlaps_cue(span: Span) -> List[str]:
        n_cues = sum(1 for token in span.tokens if token.is_predicted_cue)
        if n_cues == 0:
            return []
        return ['OVERLAPS-CUE', f"OVERLAPS-CUE,NUMBER={n_cues}"]


def add_span_features(span: Span, extractor: SpanFeatureFn) -> Span:
    span.features = frozenset(extractor(span))
    return span
