import json
import math
from pathlib import Path
from typing import List, Tuple, Union

# Local imports
from qsample.utils.exceptions import BadParameters


def sigmoid(x: float) -> float:
    # math.exp overflows for very negative x, so flip the formula around there.
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def distance_bins(distance: int, prefix: str) -> List[str]:
    """ Interval bins from 0 to 100. A distance of zero (or above 100) falls in no bin. """
    bins = [(0, 5), (5, 10), (10, 20), (20, 40), (40, 60), (60, 80)]
    for lo, hi in bins:
        if max(lo, 1) <= distance < hi:
            return [f"{prefix}_in_[{lo},{hi})"]
    if 80 <= distance <= 100:
        return [f"{prefix}_in_[80,100]"]
    return []


def cv_test_offsets(n: int, folds: int) -> List[Tuple[int, int]]:
    """
        Split n items in `folds` disjoint closed intervals [begin, end] which are used as test data for each fold.
        The last interval also takes the remainder, so every item is tested exactly once.
    """
    if folds <= 0 or folds > n:
        raise BadParameters(f"Can not split {n} items in {folds} folds.")

    fold_size = n // folds
    offsets = [(i * fold_size, (i + 1) * fold_size - 1) for i in range(folds)]
    offsets[-1] = (offsets[-1][0], n - 1)
    return offsets


def train_split(items: list, begin: int, end: int) -> list:
    """ Everything outside of [begin, end] """
    return [item for i, item in enumerate(items) if i < begin or i > end]


def test_split(items: list, begin: int, end: int) -> list:
    """ Everything inside [begin, end] """
    return [item for i, item in enumerate(items) if begin <= i <= end]


def check_dumped_config(config: dict, old: Union[dict, Path], verbose: bool = True) -> bool:
    """
        If the config stored in the dir mismatches the config passed as param, find out places where it does mismatch.
        Some keys we're okay to be different e.g. the iteration counts, since you may want to resume for longer.

    :param config: a dict (see SamplerConfig.to_dict)
    :param old: the directory where we expect this config to be stored OR the actual dict pulled already.
    :param verbose: if true, we print out the differences in the given and stored config
    """
    if isinstance(old, Path):
        with (old / 'config.json').open('r', encoding='utf8') as f:
            old = json.load(f)

    keys_to_ignore = ['outer_iter', 'inner_iter', 'prediction_iter', 'predict_every']
    mismatches = {}
    for k, v in config.items():
        if k in keys_to_ignore:
            continue
        if k not in old or old[k] != v:
            mismatches[k] = (v, old.get(k, None))

    if verbose:
        for k, (new_v, old_v) in mismatches.items():
            print(f"\tConfig mismatch at {k}: given {new_v}, stored {old_v}")

    return len(mismatches) == 0


def get_save_dir(parentdir: Path) -> Path:
    """ Make a new folder inside parentdir, named one more than the largest numbered folder in there (starting at 0) """
    parentdir = Path(parentdir)
    parentdir.mkdir(parents=True, exist_ok=True)
    existing = [int(child.name) for child in parentdir.iterdir() if child.is_dir() and child.name.isdigit()]
    save_dir = parentdir / str(max(existing) + 1 if existing else 0)
    save_dir.mkdir()
    return save_dir
