import random
from pathlib import Path
from typing import Optional

import click
import numpy as np
import wandb

# Local imports
from qsample.config import LOCATIONS as LOC, DEFAULTS, KNOWN_OVERLAP_CRITERIA, _SEED_ as SEED
from qsample.dataloader import DataLoader
from qsample.loops import training_loop, prediction_loop, load_models
from qsample.utils.exceptions import BadParameters
from qsample.utils.misc import get_save_dir, check_dumped_config

random.seed(SEED)
np.random.seed(SEED)


# noinspection PyDefaultArgument
@click.group()
@click.pass_context
@click.option("--train-file", "-trn", type=click.Path(exists=True, dir_okay=False), default=None,
              help="A JSON lines file with annotated documents to train on.")
@click.option("--test-file", "-tst", type=click.Path(exists=True, dir_okay=False), required=True,
              help="A JSON lines file with documents to predict on (and evaluate against, if they have gold spans).")
@click.option("--val-file", "-val", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Another held out split. Optional.")
@click.option("--outer-iter", "-e", type=int, default=DEFAULTS.outer_iter,
              help="Number of sampling epochs over the training documents.")
@click.option("--inner-iter", type=int, default=DEFAULTS.inner_iter,
              help="Number of sampling iterations per document per epoch.")
@click.option("--prediction-iter", type=int, default=DEFAULTS.prediction_iter,
              help="Number of sampling iterations per document when predicting.")
@click.option("--predict-every", type=int, default=DEFAULTS.predict_every,
              help="Predict on held out splits every n epochs.")
@click.option("--linear-sampling", is_flag=True, default=DEFAULTS.linear_sampling,
              help="If True, candidates are found by scanning around predicted cues instead of random draws.")
@click.option("--update-for-gold-span", is_flag=True, default=DEFAULTS.update_for_gold_span,
              help="If True, gold spans which overlap a wrong candidate also get a positive update.")
@click.option("--overlap-criterion", "-oc", type=click.Choice(KNOWN_OVERLAP_CRITERIA), default=DEFAULTS.overlap_criterion,
              help="How to aggregate scores of predicted spans a candidate overlaps with.")
@click.option("--jackknifing", is_flag=True, default=DEFAULTS.jackknifing,
              help="If True, cue predictions on the train split come from models which did not see the document.")
@click.option("--update-type", type=click.Choice(['PERCEPTRON', 'LR']), default=DEFAULTS.update_type,
              help="Train the perceptrons with the (margin) perceptron rule or logistic regression.")
@click.option('--save', '-s', is_flag=True, default=False, help="If true, the models are dumped to disk.")
@click.option('--save-dir', type=click.Path(file_okay=False), default=None,
              help="Where to save things. Defaults to a new numbered folder in data/runs. "
                   "When predicting, this is the folder the models are loaded from.")
@click.option('--debug', is_flag=True,
              help="If True, we keep at most 10 documents per split and run very few iterations.")
@click.option('--use-wandb', '-wb', is_flag=True, default=False,
              help="If True, we report this run to WandB")
@click.option('--wandb-name', '-wbname', type=str, default=None,
              help="You can specify a short name for the run here as well. ")
def run(
        ctx,  # The ctx obj click uses to pass things around in commands
        train_file: Optional[str],
        test_file: str,
        val_file: Optional[str],
        outer_iter: int,
        inner_iter: int,
        prediction_iter: int,
        predict_every: int,
        linear_sampling: bool,
        update_for_gold_span: bool,
        overlap_criterion: str,
        jackknifing: bool,
        update_type: str,
        save: bool,
        save_dir: Optional[str],
        debug: bool,
        use_wandb: bool,
        wandb_name: Optional[str],
):
    ctx.ensure_object(dict)

    """
        Sanity Checks
        -> Iteration counts are not negative
    """
    if outer_iter < 0 or inner_iter < 0 or prediction_iter < 0:
        raise BadParameters(f"Iteration counts can not be negative. "
                            f"Got {outer_iter}, {inner_iter}, {prediction_iter}.")

    config = DEFAULTS.replace(
        outer_iter=outer_iter,
        inner_iter=inner_iter,
        prediction_iter=prediction_iter,
        predict_every=predict_every,
        linear_sampling=linear_sampling,
        update_for_gold_span=update_for_gold_span,
        overlap_criterion=overlap_criterion,
        jackknifing=jackknifing,
        update_type=update_type,
    )
    if debug:
        config = config.replace(outer_iter=min(outer_iter, 2), inner_iter=min(inner_iter, 5),
                                prediction_iter=min(prediction_iter, 10), cue_epochs=2, boundary_epochs=2)

    held_out = {'test': DataLoader(test_file).load()}
    if val_file:
        held_out['val'] = DataLoader(val_file).load()
    if debug:
        held_out = {split_nm: docs[:10] for split_nm, docs in held_out.items()}

    """
        Prepare Context Object
        Depending on the command (train or predict) the rest happens in the respective function.
    """
    ctx.obj['config'] = config
    ctx.obj['train_file'] = train_file
    ctx.obj['held_out'] = held_out
    ctx.obj['save'] = save
    ctx.obj['save_dir'] = Path(save_dir) if save_dir else None
    ctx.obj['debug'] = debug
    ctx.obj['use_wandb'] = use_wandb
    ctx.obj['wandb_name'] = wandb_name


@run.command()
@click.pass_context
def train(ctx):
    """
        This is the default function. We train the token level models, then the span sampler, and evaluate everything.
    """
    # Unpacking the context (courtesy of click)
    config = ctx.obj['config']
    train_file = ctx.obj['train_file']
    held_out = ctx.obj['held_out']
    save = ctx.obj['save']
    save_dir = ctx.obj['save_dir']
    debug = ctx.obj['debug']
    use_wandb = ctx.obj['use_wandb']
    wandb_name = ctx.obj['wandb_name']

    if train_file is None:
        raise BadParameters("You can't train without specifying a --train-file.")

    train_docs = DataLoader(train_file).load()
    if debug:
        train_docs = train_docs[:10]

    save_config = {}
    if save:
        save_dir = save_dir if save_dir is not None else get_save_dir(LOC['runs'])
        save_config['train_file'] = str(train_file)

    if use_wandb:
        save_config['wandbid'] = wandb.util.generate_id()
        wandb.init(project="qsample", name=wandb_name, id=save_config['wandbid'], resume="allow",
                   group="trial" if debug else "main", config=config.to_dict())

    print(config)
    print(f"Training commences on {len(train_docs)} documents!")

    training_loop(
        train_docs=train_docs,
        held_out=held_out,
        config=config,
        flag_wandb=use_wandb,
        flag_save=save,
        save_dir=save_dir,
        save_config=save_config,
    )


@run.command()
@click.pass_context
def predict(ctx):
    """ Load models from --save-dir and predict on the held out files """
    config = ctx.obj['config']
    held_out = ctx.obj['held_out']
    save_dir = ctx.obj['save_dir']

    if save_dir is None:
        raise BadParameters("Tell us where the models are with --save-dir.")

    models, saved_config = load_models(save_dir)

    # The saved models were trained under the saved config. Only the sampling knobs may change.
    if not check_dumped_config(config.to_dict(), saved_config.to_dict()):
        print("Going ahead with the sampling settings given in the command line.")

    prediction_loop(models=models, splits=held_out, config=config, save_dir=save_dir)


if __name__ == "__main__":
    run()
