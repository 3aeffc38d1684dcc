import pandas as pd
import numpy as np
import os

from eobscreen.analysis.hierarchical.eob_model import EobModel
from eobscreen.analysis.hierarchical.eob_model.model_class import ESTIMATE_COLUMNS
from eobscreen.process_raw import STAGES
from eobscreen.util import (
    check_columns,
    read_dataframe,
    generalized_main
)


def add_dropped_cells(estimates, dropped):
    """
    Add a "missing" row for every (combination_condition, stage) cell whose
    records were all dropped and that is therefore absent from the model
    grid.

    Parameters
    ----------
    estimates : pandas.DataFrame
        output of EobModel.extract_estimates
    dropped : pandas.DataFrame or None
        dropped-records report with `combination_condition` and `stage`
        columns

    Returns
    -------
    pandas.DataFrame
        copy of estimates with the extra rows appended, ordered by
        combination_condition then stage
    """

    if dropped is None or len(dropped) == 0:
        return estimates.copy()

    check_columns(dropped, ["combination_condition", "stage"])

    seen = set(zip(estimates["combination_condition"].astype(str),
                   estimates["stage"].astype(str)))

    cells = (dropped[["combination_condition", "stage"]]
             .astype(str)
             .drop_duplicates())

    rows = []
    for condition, stage in zip(cells["combination_condition"], cells["stage"]):
        if (condition, stage) in seen:
            continue
        rows.append([condition, stage, np.nan, np.nan, np.nan, 0, np.nan, "missing"])

    if len(rows) == 0:
        return estimates.copy()

    extra = pd.DataFrame(rows, columns=ESTIMATE_COLUMNS)
    out = pd.concat([estimates, extra], ignore_index=True)

    # Keep the biological stage order when sorting
    stage_rank = {s: i for i, s in enumerate(STAGES)}
    out["_stage_rank"] = out["stage"].astype(str).map(stage_rank)
    out = (out.sort_values(["combination_condition", "_stage_rank"], kind="stable")
              .drop(columns=["_stage_rank"])
              .reset_index(drop=True))

    return out


def summarize_posteriors(posterior_file,
                         config_file,
                         out_root="eob"):
    """
    Summarize posterior samples from an eob model run.

    This function loads the model configuration and posterior samples,
    extracts the per-cell estimates and the hyperparameters, and saves them
    as CSV files.

    Parameters
    ----------
    posterior_file : str
        Path to the .npz file containing posterior samples grouped by chain.
    config_file : str
        Path to the YAML configuration file.
    out_root : str, optional
        Root filename for output CSV files (default "eob").

    Returns
    -------
    estimates : pandas.DataFrame
        per-cell estimates
    hyperparameters : pandas.DataFrame
        summaries of the scalar model parameters
    """

    records_df, dropped_df, settings = EobModel.load_config(config_file)

    # Initialize the model with the settings from the config
    em = EobModel(records_df,
                  cell_means=settings["cell_means"],
                  priors=settings.get("priors", None))

    # Load posteriors
    if not os.path.exists(posterior_file):
        raise FileNotFoundError(f"Posterior file not found: {posterior_file}")

    with np.load(posterior_file) as loaded:
        posteriors = {k: loaded[k] for k in loaded.files}

    credible_interval = settings.get("credible_interval", 0.95)
    max_r_hat = settings.get("max_r_hat", 1.1)

    print(f"Extracting estimates to {out_root}_estimates.csv...", flush=True)
    estimates = em.extract_estimates(posteriors,
                                     credible_interval=credible_interval,
                                     max_r_hat=max_r_hat)

    dropped = None
    if dropped_df is not None and os.path.exists(dropped_df):
        dropped = read_dataframe(dropped_df)
    estimates = add_dropped_cells(estimates, dropped)
    estimates.to_csv(f"{out_root}_estimates.csv", index=False)

    print(f"Extracting hyperparameters to {out_root}_hyperparameters.csv...", flush=True)
    diagnostics = em.get_posterior_diagnostics(posteriors)
    hyperparameters = em.extract_hyperparameters(posteriors,
                                                 credible_interval=credible_interval,
                                                 diagnostics=diagnostics)
    hyperparameters.to_csv(f"{out_root}_hyperparameters.csv", index=False)

    print("Summarization complete.", flush=True)

    return estimates, hyperparameters


def main():
    """CLI entry point for summarizing posteriors."""
    generalized_main(summarize_posteriors)

if __name__ == "__main__":
    main()
