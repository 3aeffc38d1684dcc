from eobscreen.process_raw import read_measurements
from eobscreen.normalize import normalize_replicates
from eobscreen.combination import (
    get_label_parser,
    build_combination_records
)
from eobscreen.analysis.settings import load_settings
from eobscreen.analysis.pooling_comparison import compare_pooling
from eobscreen.analysis.hierarchical.eob_model import EobModel
from eobscreen.analysis.hierarchical.run_inference import RunMCMC
from eobscreen.analysis.hierarchical.summarize_posteriors import add_dropped_cells
from eobscreen.util import generalized_main


def prepare_records(measurements,
                    settings,
                    replicate_columns=None):
    """
    Read raw measurements, normalize each replicate to its vehicle and build
    the combination records.

    Parameters
    ----------
    measurements : pandas.DataFrame or str
        raw measurements (or a path to them) in long or wide form
    settings : dict
        validated settings (see `load_settings`)
    replicate_columns : list of str, optional
        replicate columns when `measurements` is in wide form

    Returns
    -------
    normalized : pandas.DataFrame
        normalized measurements without vehicle rows
    records : pandas.DataFrame
        combination records with eob values and grid codes
    dropped : pandas.DataFrame
        combinations dropped because a single-agent counterpart was missing
    """

    df = read_measurements(measurements, replicate_columns=replicate_columns)

    normalized = normalize_replicates(df,
                                      policy=settings["normalization_policy"],
                                      vehicle_label=settings["vehicle_label"])

    label_parser = get_label_parser(settings["label_parser"],
                                    separator=settings["label_separator"])

    records, dropped = build_combination_records(normalized,
                                                 label_parser=label_parser,
                                                 index_order=settings["index_order"],
                                                 vehicle_label=settings["vehicle_label"])

    return normalized, records, dropped


def fit_eob_model(records, settings):
    """
    Build the eob model for a set of combination records and sample its
    posterior.

    Returns
    -------
    em : EobModel
        model object used for the fit
    mcmc : RunMCMC
        sampler used for the fit
    samples : dict
        chain-grouped posterior samples
    diagnostics : dict
        convergence diagnostics
    converged : bool
        whether the diagnostics were within tolerance
    """

    em = EobModel(records,
                  cell_means=settings["cell_means"],
                  priors=settings["priors"])

    mcmc = RunMCMC(em, seed=settings["seed"])
    samples, diagnostics, converged = mcmc.run_chains(
        num_chains=settings["num_chains"],
        num_warmup=settings["num_warmup"],
        num_samples=settings["num_samples"],
        target_accept_prob=settings["target_accept_prob"],
        max_tree_depth=settings["max_tree_depth"],
        chain_timeout=settings["chain_timeout"],
        parallel=settings["parallel"],
        max_r_hat=settings["max_r_hat"]
    )

    return em, mcmc, samples, diagnostics, converged


def estimate_eob(measurements,
                 settings=None,
                 replicate_columns=None):
    """
    Run the full pipeline in memory: normalize replicates, build combination
    records and estimate the mean eob of every (combination, stage) cell.

    Parameters
    ----------
    measurements : pandas.DataFrame or str
        raw measurements (or a path to them) in long or wide form
    settings : dict or str, optional
        settings (or a path to a YAML settings file). Missing keys take
        their default values.
    replicate_columns : list of str, optional
        replicate columns when `measurements` is in wide form

    Returns
    -------
    dict
        - normalized, records, dropped: tables from `prepare_records`
        - estimates: per-cell estimates with status "ok", "degraded" or
          "missing"
        - hyperparameters: summaries of the scalar model parameters
        - comparison: partially pooled means beside the no-pooling and
          complete-pooling reference estimates
        - samples, diagnostics, converged: raw output of the sampler
        - model, settings: the EobModel and the validated settings

    Raises
    ------
    ConfigError
        if a setting is invalid. Raised before any data are read.
    DataError
        if the measurements are malformed
    ModelFitError
        if fewer than two chains complete
    """

    settings = load_settings(settings)

    print("Normalizing replicates and building combination records...", flush=True)
    normalized, records, dropped = prepare_records(measurements,
                                                   settings,
                                                   replicate_columns=replicate_columns)

    print(f"Sampling posterior for {len(records)} combination records...", flush=True)
    em, mcmc, samples, diagnostics, converged = fit_eob_model(records, settings)

    credible_interval = settings["credible_interval"]
    estimates = em.extract_estimates(samples,
                                     credible_interval=credible_interval,
                                     diagnostics=diagnostics,
                                     max_r_hat=settings["max_r_hat"])
    estimates = add_dropped_cells(estimates, dropped)

    hyperparameters = em.extract_hyperparameters(samples,
                                                 credible_interval=credible_interval,
                                                 diagnostics=diagnostics)

    comparison = compare_pooling(estimates, records,
                                 credible_interval=credible_interval)

    return {"normalized":normalized,
            "records":records,
            "dropped":dropped,
            "estimates":estimates,
            "hyperparameters":hyperparameters,
            "comparison":comparison,
            "samples":samples,
            "diagnostics":diagnostics,
            "converged":converged,
            "model":em,
            "mcmc":mcmc,
            "settings":settings}


def analyze_eob(measurements,
                config_file=None,
                out_root="eob",
                replicate_columns=None,
                normalization_policy=None,
                label_parser=None,
                cell_means=None,
                seed=None,
                num_chains=None,
                num_warmup=None,
                num_samples=None,
                chain_timeout=None,
                serial=False):
    """
    Estimate the excess over Bliss (eob) of drug combinations for each cell
    death stage, pooling information across combinations and stages.

    Writes the following files:

        {out_root}_normalized.csv       normalized measurements
        {out_root}_combinations.csv     combination records with eob values
        {out_root}_dropped.csv          combinations that could not be built
        {out_root}_estimates.csv        per-cell posterior estimates
        {out_root}_hyperparameters.csv  summaries of the scalar parameters
        {out_root}_comparison.csv       pooled vs. unpooled estimates
        {out_root}_posterior.npz        posterior draws grouped by chain
        {out_root}_config.yaml          settings used for the run

    Parameters
    ----------
    measurements : str
        path to a long-form (condition, stage, replicate, value) or
        wide-form measurement table
    config_file : str, optional
        YAML file with analysis settings. Keys not given keep their defaults.
    out_root : str, optional
        root for output files (default "eob")
    replicate_columns : list of str, optional
        replicate columns of a wide-form table
    normalization_policy : str, optional
        "scale-to-max", "scale-to-min" or "scale-to-mean"
    label_parser : str, optional
        "dose_tokens" or "separator"
    cell_means : str, optional
        "hierarchical", "independent" or "pooled"
    seed : int, optional
        random seed for the sampler
    num_chains : int, optional
        number of chains (at least 2)
    num_warmup : int, optional
        warm-up iterations per chain
    num_samples : int, optional
        post-warm-up draws per chain
    chain_timeout : float, optional
        seconds after which unfinished chains are discarded
    serial : bool, optional
        run chains one after another rather than in separate processes

    Returns
    -------
    dict
        output of `estimate_eob`
    """

    override_keys = {"normalization_policy":normalization_policy,
                     "label_parser":label_parser,
                     "cell_means":cell_means,
                     "seed":seed,
                     "num_chains":num_chains,
                     "num_warmup":num_warmup,
                     "num_samples":num_samples,
                     "chain_timeout":chain_timeout}
    override_keys = {k: v for k, v in override_keys.items() if v is not None}
    if serial:
        override_keys["parallel"] = False

    # Validate everything before touching the data
    settings = load_settings(config_file, override_keys=override_keys)

    results = estimate_eob(measurements,
                           settings=settings,
                           replicate_columns=replicate_columns)

    normalized_file = f"{out_root}_normalized.csv"
    records_file = f"{out_root}_combinations.csv"
    dropped_file = f"{out_root}_dropped.csv"

    print(f"Writing results to {out_root}_*...", flush=True)
    results["normalized"].to_csv(normalized_file, index=False)
    results["records"].to_csv(records_file, index=False)
    results["dropped"].to_csv(dropped_file, index=False)
    results["estimates"].to_csv(f"{out_root}_estimates.csv", index=False)
    results["hyperparameters"].to_csv(f"{out_root}_hyperparameters.csv", index=False)
    results["comparison"].to_csv(f"{out_root}_comparison.csv", index=False)

    results["mcmc"].write_posteriors(results["samples"],
                                     results["diagnostics"],
                                     out_root=out_root)
    results["model"].write_config(records_file,
                                  results["settings"],
                                  out_root=out_root,
                                  dropped_df_path=dropped_file)

    # Write convergence information to stdout
    if results["converged"]:
        print("MCMC run converged.", flush=True)
    else:
        print("MCMC run did not converge. See warnings above.", flush=True)

    return results


def main():
    """CLI entry point for eob analysis."""
    generalized_main(analyze_eob,
                     manual_arg_types={"seed":int,
                                       "num_chains":int,
                                       "num_warmup":int,
                                       "num_samples":int,
                                       "chain_timeout":float},
                     manual_arg_nargs={"replicate_columns":"+"})

if __name__ == "__main__":
    main()
