"""
    Contain the dataclasses the sampler works on: tokens, documents and the spans over them.

    A document is a flat list of tokens. Tokens never point to each other or to their document,
        neighbours are simply `doc.tokens[token.position - 1]` and `doc.tokens[token.position + 1]`.
    A span is a closed interval [begin, end] over the token list of ONE document.

    ```py
    doc = Document.from_dict({
        "docname": "wsj_0001",
        "tokens": [{"features": ["WORD=He", "POS=PRP"]}, {"features": ["WORD=said"], "cue": True}, ...],
        "spans": [[3, 9, "content"]]
    })
    doc.gold_spans          # [Span(begin=3, end=9, label='content', score=0.0)]
    doc.tokens[3].gold_begin  # True
    ```
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Set, FrozenSet, Optional, Iterable, Collection

# Local imports
from qsample.utils.exceptions import SpanOutOfBounds

CONTENT_LABEL: str = 'content'


class SpanType(Enum):
    DIRECT = 'direct'
    INDIRECT = 'indirect'
    MIXED = 'mixed'


@dataclass
class Token:
    """
        Everything in here up to `gold_end` is read-only to the sampler. It comes from upstream (the corpus + features).
        The scores and counters after that are written by the boundary models and the span sampler.
    """
    position: int
    features: FrozenSet[str] = field(default_factory=frozenset)
    gold_cue: bool = False
    sentence: int = 0
    is_quote: bool = False

    # Filled in by Document.add_gold_span
    gold_begin: bool = False
    gold_end: bool = False

    # Written by the models
    is_predicted_cue: bool = False
    begin_score: float = 0.0
    end_score: float = 0.0
    cue_score: float = 0.0

    # Diagnostics
    n_sampled_begin: int = 0
    n_sampled_end: int = 0


@dataclass
class Document:
    docname: str
    tokens: List[Token]
    gold_spans: List['Span'] = field(default_factory=list)
    predicted_spans: Set['Span'] = field(default_factory=set)

    def __post_init__(self):
        for i, token in enumerate(self.tokens):
            assert token.position == i, f"Token at index {i} claims to be at position {token.position}."

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, item: int) -> Token:
        return self.tokens[item]

    @property
    def isempty(self) -> bool:
        return len(self.tokens) == 0

    def add_gold_span(self, begin: int, end: int, label: str = CONTENT_LABEL) -> 'Span':
        span = Span(self, begin, end, label)
        self.gold_spans.append(span)
        self.tokens[begin].gold_begin = True
        self.tokens[end].gold_end = True
        return span

    def is_in_predicted_span(self, position: int) -> bool:
        return any(span.begin <= position <= span.end for span in self.predicted_spans)

    def gold_spans_of_label(self, label: str) -> List['Span']:
        return [span for span in self.gold_spans if span.label == label]

    def predicted_spans_of_label(self, label: str) -> Set['Span']:
        return {span for span in self.predicted_spans if span.label == label}

    def reset_counters(self):
        for token in self.tokens:
            token.n_sampled_begin = 0
            token.n_sampled_end = 0

    @classmethod
    def from_dict(cls, raw: dict) -> 'Document':
        tokens = [
            Token(
                position=i,
                features=frozenset(tok.get('features', [])),
                gold_cue=bool(tok.get('cue', False)),
                sentence=int(tok.get('sentence', 0)),
                is_quote=bool(tok.get('quote', False)),
            )
            for i, tok in enumerate(raw['tokens'])
        ]
        doc = cls(docname=raw.get('docname', ''), tokens=tokens)
        for span in raw.get('spans', []):
            doc.add_gold_span(*span)
        return doc

    def to_dict(self) -> dict:
        """ The predictions (and nothing else) in a json friendly format """
        return {
            'docname': self.docname,
            'predicted': [[span.begin, span.end, span.label, span.score]
                          for span in sorted(self.predicted_spans, key=lambda sp: (sp.begin, sp.end))],
            'n_sampled_begin': [token.n_sampled_begin for token in self.tokens],
            'n_sampled_end': [token.n_sampled_end for token in self.tokens],
        }


@dataclass(unsafe_hash=True)
class Span:
    """
        A closed interval [begin, end] over the tokens of a document.

        NOTE: a span is identified by its position alone. The label, the score and the features play no role in
            equality or hashing. So `Span(d, 2, 5, 'content') == Span(d, 2, 5, 'quote')`.
            Sets of spans (predicted spans, the proposed spans in one sampling pass) rely on this.
    """
    document: Document = field(compare=False, repr=False)
    begin: int
    end: int
    label: str = field(default=CONTENT_LABEL, compare=False)
    score: float = field(default=0.0, compare=False)
    features: Optional[FrozenSet[str]] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        n = len(self.document)
        if not (0 <= self.begin < n and 0 <= self.end < n) or self.begin > self.end:
            raise SpanOutOfBounds(self.begin, self.end, n)

    @property
    def length(self) -> int:
        return self.end - self.begin + 1

    def first(self) -> Token:
        return self.document.tokens[self.begin]

    def last(self) -> Token:
        return self.document.tokens[self.end]

    @property
    def tokens(self) -> List[Token]:
        return self.document.tokens[self.begin: self.end + 1]

    def matches(self, other: 'Span') -> bool:
        return self.begin == other.begin and self.end == other.end

    def semi_matches(self, other: 'Span') -> bool:
        return self.begin == other.begin or self.end == other.end

    def matching_spans(self, others: Iterable['Span']) -> List['Span']:
        return [other for other in others if self.matches(other)]

    def semi_matching_spans(self, others: Iterable['Span']) -> List['Span']:
        return [other for other in others if self.semi_matches(other)]

    def contains(self, other: 'Span') -> bool:
        return self.begin <= other.begin and self.end >= other.end

    def overlaps(self, other: 'Span') -> bool:
        if other.begin <= self.begin <= other.end:
            return True
        if other.begin <= self.end <= other.end:
            return True
        return self.contains(other)

    def overlaps_any(self, others: Iterable['Span']) -> bool:
        return any(self.overlaps(other) for other in others)

    def overlapping_spans(self, others: Iterable['Span']) -> List['Span']:
        return [other for other in others if self.overlaps(other)]

    def compute_overlap(self, other: 'Span') -> int:
        """ Number of tokens shared by both spans """
        return max(0, min(self.end, other.end) - max(self.begin, other.begin) + 1)

    @property
    def span_type(self) -> SpanType:
        """ Direct if the span is wrapped in quotation marks, mixed if there is a quote somewhere inside. """
        if self.first().is_quote and self.last().is_quote:
            return SpanType.DIRECT
        if any(token.is_quote for token in self.tokens):
            return SpanType.MIXED
        return SpanType.INDIRECT

    @staticmethod
    def any_begins_at(spans: Collection['Span'], position: int) -> bool:
        return any(span.begin == position for span in spans)

    @staticmethod
    def any_ends_at(spans: Collection['Span'], position: int) -> bool:
        return any(span.end == position for span in spans)

    @staticmethod
    def of_type(spans: Iterable['Span'], span_type: SpanType) -> Set['Span']:
        return {span for span in spans if span.span_type == span_type}
