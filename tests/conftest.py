"""Shared fixtures: small documents built by hand."""
from typing import List

import pytest

from qsample.utils.data import Document, Token


def make_doc(n: int, docname: str = 'doc') -> Document:
    return Document(docname=docname, tokens=[Token(position=i, features=frozenset({f"W={i}"})) for i in range(n)])


def make_quote_doc(k: int) -> Document:
    """
        ... he said << a b c >> . ...
        A cue at 5, a direct quotation (gold span) from 6 to 10.
    """
    words = ['the', 'man', 'in', 'the', 'hat', 'said', '<<', 'it', 'is', 'late', '>>', '.',
             'then', 'he', 'left', 'the', 'room', '.']
    tokens = []
    for i, word in enumerate(words):
        tokens.append(Token(
            position=i,
            features=frozenset({f"W={word}", f"DOC={k % 2}"}),
            gold_cue=word == 'said',
            sentence=0 if i < 12 else 1,
            is_quote=word in ('<<', '>>'),
        ))
    doc = Document(docname=f"quote_{k}", tokens=tokens)
    doc.add_gold_span(6, 10)
    return doc


@pytest.fixture
def doc10() -> Document:
    return make_doc(10)


@pytest.fixture
def doc20() -> Document:
    return make_doc(20)


@pytest.fixture
def corpus() -> List[Document]:
    return [make_quote_doc(k) for k in range(6)]
