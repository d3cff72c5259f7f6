import json
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Dict

# Local imports
from qsample.utils.exceptions import MismatchedConfig, UnknownOverlapCriterion, BadParameters

# Random seeds. Every role in the sampler gets its own generator so that runs stay reproducible.
_SEED_ = 42
SEED_SPAN_SHUFFLE: int = 171789909  # shuffling documents in every sampling epoch
SEED_DIRECTION: int = 171789909  # coin flip: begin first or end first
SEED_BEGIN: int = 123
SEED_END: int = 313
SEED_HEURISTIC: int = 181178  # only used if the greedy heuristic shuffles tokens
SEED_BOUNDARY: int = 123121  # token order when training the begin, end and cue perceptrons
SEED_DOC_SHUFFLE: int = 123  # document order when training the begin, end and cue perceptrons

ROOT_LOC: Path = Path("..") if str(Path().cwd()).split("/")[-1] == "src" else Path(".")
LOCATIONS: Dict[str, Path] = {
    "root": ROOT_LOC,
    "data": ROOT_LOC / "data",
    "runs": ROOT_LOC / "data" / "runs",
}

KNOWN_OVERLAP_CRITERIA = ['SUM', 'MEAN', 'MAX']
KNOWN_UPDATE_TYPES = ['PERCEPTRON', 'LR']


@dataclass(frozen=True)
class SamplerConfig:
    """
        Every knob of the sampler and its boundary models. Immutable: make a new one with `config.replace(...)`.
    """
    # Iterations
    outer_iter: int = 30  # epochs of sampling over the training docs
    inner_iter: int = 50  # sampling iterations per document per epoch
    prediction_iter: int = 1000  # sampling iterations per document when predicting
    predict_every: int = 10  # run a prediction over held-out splits every n epochs
    max_num_trials: int = 10  # attempts at drawing a begin/end pair
    cue_epochs: int = 10
    boundary_epochs: int = 10

    # Search windows
    max_cue_distance_heuristic: int = 30
    max_length_heuristic: int = 50
    max_cue_distance_sampling: int = 30
    max_length_sampling: int = 75

    # Margins
    begin_margin: float = 25
    end_margin: float = 25
    cue_margin: float = 25
    sampler_margin_positive: float = 15
    sampler_margin_negative: float = 1

    # Temperatures
    begin_temperature: float = 10
    end_temperature: float = 10

    # Sampler behaviour
    learning_rate: float = 0.1
    linear_sampling: bool = False  # if True, candidates come from cue-anchored scans instead of random draws
    update_for_gold_span: bool = False  # also push gold spans up when a wrong candidate overlaps them
    overlap_criterion: str = 'SUM'  # how to aggregate scores of predicted spans which overlap a candidate
    update_type: str = 'PERCEPTRON'
    shuffle_tokens: bool = False  # the greedy heuristic visits cues in a shuffled order

    # Cross validation for the cue model
    jackknifing: bool = False
    cv_folds: int = 10

    def __post_init__(self):
        if self.overlap_criterion not in KNOWN_OVERLAP_CRITERIA:
            raise UnknownOverlapCriterion(f"Overlap criterion: {self.overlap_criterion} is unknown. "
                                          f"Try one of {KNOWN_OVERLAP_CRITERIA}.")
        if self.update_type not in KNOWN_UPDATE_TYPES:
            raise BadParameters(f"Update type: {self.update_type} is unknown. Try one of {KNOWN_UPDATE_TYPES}.")
        if self.predict_every <= 0:
            raise BadParameters(f"predict_every must be positive. Got {self.predict_every}.")
        if self.begin_temperature <= 0 or self.end_temperature <= 0:
            raise BadParameters(f"Temperatures must be positive. Got {self.begin_temperature} (begin), "
                                f"{self.end_temperature} (end).")

    def replace(self, **kwargs) -> 'SamplerConfig':
        return replace(self, **kwargs)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict) -> 'SamplerConfig':
        known = {f.name for f in fields(cls)}
        unknown = [k for k in raw if k not in known]
        if unknown:
            raise MismatchedConfig(f"The config has keys we don't know about: {unknown}")
        return cls(**raw)

    def save(self, path: Path):
        with Path(path).open('w+', encoding='utf8') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'SamplerConfig':
        with Path(path).open('r', encoding='utf8') as f:
            raw = json.load(f)
        return cls.from_dict(raw)


DEFAULTS: SamplerConfig = SamplerConfig()
