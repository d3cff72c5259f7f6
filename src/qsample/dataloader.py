"""
    Here be loaders.

    The corpus lives in JSON lines files. One line is one document:
        {"docname": "...", "tokens": [{"features": [...], "cue": false, "sentence": 0, "quote": false}, ...],
         "spans": [[begin, end, "content"], ...]}
    Features are whatever the upstream feature extraction produced. We treat them as opaque strings.
"""
import warnings
from pathlib import Path
from typing import List, Iterable, Union

import jsonlines

# Local imports
from qsample.utils.data import Document


class DataLoader:
    """
        Provide a file, and we load it for you.
        Empty documents are skipped (with a warning) since there is nothing to sample from.
    """

    def __init__(self, path: Union[str, Path]):
        self.path: Path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"The file: {self.path} does not exist.")
        self._n_: int = -1

    def __len__(self) -> int:
        """ Count the documents once; don't reopen the file after that """
        if self._n_ < 0:
            with jsonlines.open(self.path) as reader:
                self._n_ = sum(1 for _ in reader)
        return self._n_

    def all(self) -> Iterable[Document]:
        with jsonlines.open(self.path) as reader:
            for i, raw in enumerate(reader):
                doc = Document.from_dict(raw)
                if doc.isempty:
                    warnings.warn(f"Document #{i} ({doc.docname}) in {self.path} has no tokens. Skipping it.")
                    continue
                yield doc

    def __iter__(self):
        """ This function enables simply calling iter(dl) instead of dl.all(). """
        return self.all()

    def load(self) -> List[Document]:
        return list(self.all())


def write_predictions(docs: List[Document], path: Union[str, Path]):
    with jsonlines.open(Path(path), mode='w') as writer:
        writer.write_all(doc.to_dict() for doc in docs)
