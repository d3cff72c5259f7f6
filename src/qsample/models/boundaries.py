"""
    The token level models: three perceptrons deciding, for each token, whether it is a cue,
        whether a content span begins there, and whether one ends there.
    Their (averaged) scores are what the greedy heuristic and the span sampler look at.
"""
from typing import List, Optional

import numpy as np
from termcolor import colored

# Local imports
from qsample.config import SamplerConfig, DEFAULTS, SEED_BOUNDARY, SEED_DOC_SHUFFLE
from qsample.eval import ClassifierEvaluator
from qsample.models.perceptron import Perceptron
from qsample.models.spans import SpanLevelModel
from qsample.utils.data import Document
from qsample.utils.misc import cv_test_offsets, train_split, test_split

# Fixed rate for token level training
BOUNDARY_LEARNING_RATE: float = 0.1


class BoundaryModels:

    def __init__(
            self,
            begin: Optional[Perceptron] = None,
            end: Optional[Perceptron] = None,
            cue: Optional[Perceptron] = None,
            span_model: Optional[SpanLevelModel] = None,
    ):
        self.begin = begin if begin is not None else Perceptron()
        self.end = end if end is not None else Perceptron()
        self.cue = cue if cue is not None else Perceptron()

        # The span model which is trained on top of these. Kept here so that both travel (and get pickled) together.
        self.span_model = span_model if span_model is not None else SpanLevelModel()

        self.random = np.random.default_rng(SEED_BOUNDARY)

    def _shuffled_tokens_(self, doc: Document):
        return [doc.tokens[int(i)] for i in self.random.permutation(len(doc))]

    @staticmethod
    def _shuffled_docs_(docs: List[Document]) -> List[Document]:
        # A fresh generator every time: each training run sees the documents in the same order
        order = np.random.default_rng(SEED_DOC_SHUFFLE).permutation(len(docs))
        return [docs[int(i)] for i in order]

    def score_cues(self, doc: Document, is_training: bool):
        tokens = self._shuffled_tokens_(doc)

        if is_training:
            for token in tokens:
                self.cue.train(token.features, token.gold_cue, BOUNDARY_LEARNING_RATE)

        for token in tokens:
            token.cue_score = self.cue.score(token.features, average=True)

    def score_begin_end(self, doc: Document, is_training: bool):
        tokens = self._shuffled_tokens_(doc)

        if is_training:
            for token in tokens:
                self.begin.train(token.features, token.gold_begin, BOUNDARY_LEARNING_RATE)
                self.end.train(token.features, token.gold_end, BOUNDARY_LEARNING_RATE)

        for token in tokens:
            token.begin_score = self.begin.score(token.features, average=True)
            token.end_score = self.end.score(token.features, average=True)

    def train_cue(self, docs: List[Document], epochs: int):
        print(colored("Training the cue perceptron", "blue", attrs=['bold']))
        docs = self._shuffled_docs_(docs)
        for e in range(epochs):
            for doc in docs:
                self.score_cues(doc, is_training=True)
            print(f"\tEpoch: {e + 1:3d} | updates: {self.cue.num_updates}")

    def train_begin_end(self, docs: List[Document], epochs: int):
        print(colored("Training the begin and end perceptrons", "blue", attrs=['bold']))
        docs = self._shuffled_docs_(docs)
        for e in range(epochs):
            for doc in docs:
                self.score_begin_end(doc, is_training=True)
            print(f"\tEpoch: {e + 1:3d} | updates: {self.begin.num_updates} (begin), {self.end.num_updates} (end)")

    def predict_cues(self, docs: List[Document]):
        for doc in docs:
            self.score_cues(doc, is_training=False)

    def predict_begin_end(self, docs: List[Document]):
        for doc in docs:
            self.score_begin_end(doc, is_training=False)

    @staticmethod
    def cue_score_to_label(docs: List[Document]):
        for doc in docs:
            for token in doc.tokens:
                token.is_predicted_cue = token.cue_score > 0

    def predict(self, docs: List[Document]):
        """ Use the trained models on new documents: cue scores and labels, then begin and end scores. """
        self.predict_cues(docs)
        self.cue_score_to_label(docs)
        self.predict_begin_end(docs)

    def jackknife_cue(self, docs: List[Document], folds: int, epochs: int, cue_margin: float):
        """
            Give every training document a cue prediction from a model which has not seen it.
            Otherwise the cues on the training data are way better than anything we'll see at test time.
        """
        print(colored(f"Jackknifing the cue perceptron over {folds} folds", "blue", attrs=['bold']))
        for fold, (begin, end) in enumerate(cv_test_offsets(len(docs), folds)):
            fold_train = train_split(docs, begin, end)
            fold_test = test_split(docs, begin, end)

            self.cue = Perceptron(update_type=self.cue.update_type, margin_positive=cue_margin)
            self.train_cue(fold_train, epochs)

            self.predict_cues(fold_test)
            self.cue_score_to_label(fold_test)
            report = ClassifierEvaluator().run(fold_test)
            print(f"\tFold {fold}: cue f1 {report['cue']['f1']:.3f}")

        report = ClassifierEvaluator().run(docs)
        print(f"\tOverall: cue f1 {report['cue']['f1']:.3f}")

    @classmethod
    def train_all_and_apply(
            cls,
            train_docs: List[Document],
            other_docs: List[List[Document]],
            config: SamplerConfig = DEFAULTS,
    ) -> 'BoundaryModels':
        """
            Train the cue, begin and end perceptrons on the training documents and label every split with them.

        :param train_docs: documents with gold annotations
        :param other_docs: the held out splits (test, dev, ...). They get predictions and nothing else.
        :param config: margins, epochs and whether to jackknife the cue model
        """

        if config.jackknifing:
            # Cues for the train docs come from the folds. A fresh set of models is then trained on everything.
            cls(cue=Perceptron(update_type=config.update_type)).jackknife_cue(
                train_docs, config.cv_folds, config.cue_epochs, config.cue_margin)

        models = cls(
            begin=Perceptron(update_type=config.update_type, margin_positive=config.begin_margin),
            end=Perceptron(update_type=config.update_type, margin_positive=config.end_margin),
            cue=Perceptron(update_type=config.update_type, margin_positive=config.cue_margin),
            span_model=SpanLevelModel(update_type=config.update_type),
        )

        models.train_cue(train_docs, config.cue_epochs)
        labelled = other_docs if config.jackknifing else [train_docs] + other_docs
        for docs in labelled:
            models.predict_cues(docs)
            models.cue_score_to_label(docs)

        models.train_begin_end(train_docs, config.boundary_epochs)
        for docs in [train_docs] + other_docs:
            models.predict_begin_end(docs)

        return models
