import atexit
import json
import pickle
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import wandb
from termcolor import colored

# Local imports
from qsample.config import SamplerConfig, DEFAULTS
from qsample.dataloader import write_predictions
from qsample.eval import SpanEvaluator, ClassifierEvaluator, format_report
from qsample.features import SpanFeatureFn, add_span_features, SpanFeatureExtractor
from qsample.heuristic import HeuristicSampler
from qsample.models.boundaries import BoundaryModels
from qsample.sampler import SpanSampler
from qsample.utils.data import Document
from qsample.utils.exceptions import ImproperDumpDir


def goodbye(loc: Path):
    prefix = colored("loops.py", "green", attrs=['bold'])
    value = colored(f"{loc}", "green", attrs=['bold'])
    print(prefix, f"Find the summary of this run at ", value)


def evaluate(splits: Dict[str, List[Document]]) -> Dict[str, dict]:
    return {split_nm: SpanEvaluator().run(docs) for split_nm, docs in splits.items()}


def predict(sampler: SpanSampler, heuristic: HeuristicSampler, docs: List[Document], config: SamplerConfig):
    """ Forget whatever was predicted, seed greedily, then refine by sampling with the averaged model. """
    for doc in docs:
        doc.predicted_spans.clear()
        doc.reset_counters()

    heuristic.sample_greedy_all(docs, config.max_cue_distance_heuristic, config.max_length_heuristic)
    sampler.sample_and_score_all(docs, is_training=False, n_iter=config.prediction_iter)


def add_features_to_gold_spans(docs: List[Document], feature_fn: SpanFeatureFn):
    for doc in docs:
        for span in doc.gold_spans:
            add_span_features(span, feature_fn)


def save_models(models: BoundaryModels, save_dir: Path):
    with (Path(save_dir) / 'model.pkl').open('wb+') as f:
        pickle.dump(models, f)


def load_models(save_dir: Path) -> Tuple[BoundaryModels, SamplerConfig]:
    save_dir = Path(save_dir)
    if not (save_dir / 'model.pkl').exists() or not (save_dir / 'config.json').exists():
        raise ImproperDumpDir(save_dir)

    with (save_dir / 'config.json').open('r', encoding='utf8') as f:
        config = SamplerConfig.from_dict(json.load(f)['sampler'])

    with (save_dir / 'model.pkl').open('rb') as f:
        models: BoundaryModels = pickle.load(f)

    return models, config


def training_loop(
        train_docs: List[Document],
        held_out: Dict[str, List[Document]],
        config: SamplerConfig = DEFAULTS,
        feature_fn: Optional[SpanFeatureFn] = None,
        flag_wandb: bool = False,
        flag_save: bool = False,
        save_dir: Optional[Path] = None,
        save_config: dict = None,
) -> Tuple[BoundaryModels, dict]:
    """
        The whole pipeline. Token level models first, then greedy seeding, then epochs of sampling.

    :param train_docs: documents with gold spans and gold cues. The span model learns from these.
    :param held_out: named splits (e.g. {'test': [...], 'val': [...]}) which are only predicted on and evaluated.
    :param config: a SamplerConfig with all the hyperparameters
    :param feature_fn: turns a span into span level features. Defaults to qsample.features.SpanFeatureExtractor
    :param flag_wandb: if True, every evaluation is also logged to wandb (expects wandb.init to have been called).
    :param flag_save: if True, config, traces, the models and predictions are dumped in save_dir at the end.
    :param save_dir: where to dump things
    :param save_config: anything else which should go in config.json alongside the sampler config (e.g. wandb id)
    :return: the trained models and the traces (every evaluation report, aggregated over iterations)
    """
    if flag_save and save_config is None:
        save_config = {}
    if flag_save:
        atexit.register(goodbye, save_dir)

    feature_fn = feature_fn if feature_fn is not None else SpanFeatureExtractor()
    all_splits = {'train': train_docs, **held_out}
    traces = {}

    # Token level models
    models = BoundaryModels.train_all_and_apply(train_docs, list(held_out.values()), config)
    classifier_report = {split_nm: ClassifierEvaluator().run(docs) for split_nm, docs in all_splits.items()}
    print(format_report("BOUNDARY", classifier_report, keys=('begin', 'end', 'cue')))

    # Greedy seeding
    heuristic = HeuristicSampler(shuffle_tokens=config.shuffle_tokens)
    for docs in all_splits.values():
        heuristic.sample_greedy_all(docs, config.max_cue_distance_heuristic, config.max_length_heuristic)

    report = evaluate(all_splits)
    traces = SpanEvaluator.aggregate_reports(traces, report)
    print(format_report("INIT", report))

    sampler = SpanSampler(models.span_model, config=config, feature_fn=feature_fn)
    add_features_to_gold_spans(train_docs, feature_fn)

    # Sampling epochs
    for i in range(config.outer_iter):
        sampler.sample_and_score_all(train_docs, is_training=True, n_iter=config.inner_iter)

        # Predict on held out data every once in a while
        if i != 0 and i % config.predict_every == 0:
            for docs in held_out.values():
                predict(sampler, heuristic, docs, config)

        report = evaluate(all_splits)
        traces = SpanEvaluator.aggregate_reports(traces, report)
        print(f"\nIteration: {i:5d}")
        print(format_report(f"{i:5d}", report))

        if flag_wandb:
            wandb.log(report, step=i)

    # Final predictions
    print(colored("Predicting", "blue", attrs=['bold']))
    for docs in held_out.values():
        predict(sampler, heuristic, docs, config)

    report = evaluate(all_splits)
    traces = SpanEvaluator.aggregate_reports(traces, report)
    print(format_report("FINAL", report))
    if flag_wandb:
        wandb.log({'final': report})

    print("Span model weights (top 10):")
    for feature, weight in models.span_model.span_model.dump_weights(10):
        print(f"\t{weight:+.4f}  {feature}")

    if flag_save:
        save_dir = Path(save_dir)
        save_dir.mkdir(parents=True, exist_ok=True)

        # Save config
        with (save_dir / 'config.json').open('w+', encoding='utf8') as f:
            json.dump({**save_config, 'sampler': config.to_dict(), 'iterations_last_run': config.outer_iter}, f)

        # Save Traces
        with (save_dir / 'traces.pkl').open('wb+') as f:
            pickle.dump([classifier_report, traces], f)

        # Save Model
        save_models(models, save_dir)

        # Save predictions
        for split_nm, docs in all_splits.items():
            write_predictions(docs, save_dir / f"predictions.{split_nm}.jsonl")

        print(f"Model saved after {config.outer_iter} iterations at {save_dir}.")

    return models, traces


def prediction_loop(
        models: BoundaryModels,
        splits: Dict[str, List[Document]],
        config: SamplerConfig = DEFAULTS,
        feature_fn: Optional[SpanFeatureFn] = None,
        save_dir: Optional[Path] = None,
) -> dict:
    """ Apply saved models to new documents: token level predictions, then greedy seeding and sampling. """
    feature_fn = feature_fn if feature_fn is not None else SpanFeatureExtractor()
    heuristic = HeuristicSampler(shuffle_tokens=config.shuffle_tokens)
    sampler = SpanSampler(models.span_model, config=config, feature_fn=feature_fn)

    for docs in splits.values():
        models.predict(docs)
        predict(sampler, heuristic, docs, config)

    report = evaluate(splits)
    print(format_report("PREDICT", report))

    if save_dir is not None:
        for split_nm, docs in splits.items():
            write_predictions(docs, Path(save_dir) / f"predictions.{split_nm}.jsonl")

    return report
