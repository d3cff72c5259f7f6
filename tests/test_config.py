import dataclasses
import json

import pytest

from qsample.config import SamplerConfig, DEFAULTS
from qsample.utils.exceptions import MismatchedConfig, UnknownOverlapCriterion, BadParameters
from qsample.utils.misc import check_dumped_config, get_save_dir


def test_defaults():
    assert DEFAULTS.outer_iter == 30 and DEFAULTS.inner_iter == 50
    assert DEFAULTS.overlap_criterion == 'SUM'
    assert DEFAULTS.sampler_margin_positive == 15 and DEFAULTS.sampler_margin_negative == 1
    assert not DEFAULTS.linear_sampling and not DEFAULTS.jackknifing


def test_config_is_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        DEFAULTS.outer_iter = 3


def test_replace_makes_a_new_config():
    config = DEFAULTS.replace(outer_iter=3, overlap_criterion='MAX')
    assert config.outer_iter == 3 and config.overlap_criterion == 'MAX'
    assert DEFAULTS.outer_iter == 30


@pytest.mark.parametrize('kwargs, error', [
    ({'overlap_criterion': 'MEDIAN'}, UnknownOverlapCriterion),
    ({'update_type': 'SVM'}, BadParameters),
    ({'predict_every': 0}, BadParameters),
    ({'begin_temperature': 0}, BadParameters),
    ({'end_temperature': -1.0}, BadParameters),
])
def test_bad_values(kwargs, error):
    with pytest.raises(error):
        SamplerConfig(**kwargs)


def test_save_and_load(tmp_path):
    config = SamplerConfig(inner_iter=7, linear_sampling=True)
    config.save(tmp_path / 'sampler.json')
    assert SamplerConfig.load(tmp_path / 'sampler.json') == config


def test_unknown_keys_are_rejected():
    with pytest.raises(MismatchedConfig):
        SamplerConfig.from_dict({**DEFAULTS.to_dict(), 'dropout': 0.5})


def test_check_dumped_config(tmp_path):
    stored = DEFAULTS.to_dict()
    with (tmp_path / 'config.json').open('w') as f:
        json.dump(stored, f)

    # Iteration counts may differ, e.g. when running longer
    assert check_dumped_config(DEFAULTS.replace(outer_iter=100).to_dict(), tmp_path)
    assert not check_dumped_config(DEFAULTS.replace(learning_rate=1.0).to_dict(), stored, verbose=False)


def test_save_dirs_are_numbered(tmp_path):
    assert get_save_dir(tmp_path / 'runs').name == '0'
    assert get_save_dir(tmp_path / 'runs').name == '1'
