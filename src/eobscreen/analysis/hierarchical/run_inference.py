from eobscreen.errors import (
    ConfigError,
    ModelFitError,
    ModelFitWarning
)
from eobscreen.util import check_number
from eobscreen.analysis.hierarchical.diagnostics import (
    get_diagnostics,
    check_diagnostics,
    MIN_TOTAL_DRAWS
)

import jax
from jax import random

from numpyro.infer import (
    MCMC,
    NUTS,
    init_to_uniform
)
import numpy as np
from tqdm.auto import tqdm

from concurrent.futures import (
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    as_completed,
    TimeoutError as FuturesTimeoutError
)
import multiprocessing
import warnings

# Chains needed before a fit can be reported
MIN_COMPLETE_CHAINS = 2


def _run_chain(jax_model,
               data,
               priors,
               chain_key,
               num_warmup,
               num_samples,
               target_accept_prob,
               max_tree_depth):
    """
    Run a single NUTS chain. This is the unit of work handed to the executor,
    so everything it receives must be picklable.

    Returns
    -------
    samples : dict
        site name -> numpy array with shape (num_samples, ...)
    num_divergent : int
        number of divergent transitions after warm-up
    """

    kernel = NUTS(jax_model,
                  target_accept_prob=target_accept_prob,
                  max_tree_depth=max_tree_depth,
                  init_strategy=init_to_uniform)

    mcmc = MCMC(kernel,
                num_warmup=num_warmup,
                num_samples=num_samples,
                num_chains=1,
                progress_bar=False)

    mcmc.run(jax.numpy.asarray(chain_key),
             data=data,
             priors=priors,
             extra_fields=("diverging",))

    samples = {k: np.asarray(v) for k, v in mcmc.get_samples().items()}
    diverging = np.asarray(mcmc.get_extra_fields()["diverging"])

    return samples, int(np.sum(diverging))


class RunMCMC:
    """
    Manages NUTS sampling for a model.

    Each chain is an independent unit of work with its own PRNG key, split
    deterministically from the seed. With `parallel=True` every chain runs in
    its own process. numpyro keeps its effect-handler stack in module-level
    state, so chains must not be traced concurrently on threads of a single
    process; with `parallel=False` chains run one after another on a single
    worker thread. Chains are joined when all have finished (or timed out),
    their draws are stacked in chain order, and convergence diagnostics are
    calculated on the combined draws.
    """

    def __init__(self,model,seed):
        """
        Initialize the RunMCMC class.

        Parameters
        ----------
        model : object
            A model object that must expose the following attributes:
            - `data` (flax.struct.dataclass): Data object.
            - `priors` (flax.struct.dataclass): Data object holding model priors
            - `jax_model` (callable): The Numpyro model. Must be picklable
              (a module-level function or a functools.partial of one) to run
              chains in parallel.
        seed : int
            Random seed for JAX PRNG key generation.
        """

        required_attr = ["data",
                         "priors",
                         "jax_model"]
        for attr in required_attr:
            if not hasattr(model,attr):
                raise ValueError(f"`model` must have attribute {attr}")

        self.model = model
        self._seed = check_number(seed, param_name="seed", cast_type=int)
        self._main_key = random.PRNGKey(self._seed)

    def _get_executor(self, parallel, num_chains):
        """
        Build the executor that runs the chains.
        """

        if parallel:
            # Start fresh interpreters; forking a process that has already
            # initialized jax is not safe.
            return ProcessPoolExecutor(max_workers=num_chains,
                                       mp_context=multiprocessing.get_context("spawn"))

        return ThreadPoolExecutor(max_workers=1)

    def run_chains(self,
                   num_chains=4,
                   num_warmup=1000,
                   num_samples=1000,
                   target_accept_prob=0.9,
                   max_tree_depth=10,
                   chain_timeout=None,
                   parallel=True,
                   max_r_hat=1.1,
                   min_total_draws=MIN_TOTAL_DRAWS):
        """
        Sample the posterior with several independent chains.

        Parameters
        ----------
        num_chains : int, default=4
            number of chains. Must be at least 2.
        num_warmup : int, default=1000
            warm-up (adaptation) iterations per chain
        num_samples : int, default=1000
            post-warm-up draws per chain
        target_accept_prob : float, default=0.9
            NUTS target acceptance probability
        max_tree_depth : int, default=10
            NUTS maximum tree depth
        chain_timeout : float, optional
            wall-clock seconds, measured from launch, after which chains that
            have not finished are abandoned. None means no timeout.
        parallel : bool, default=True
            run chains in separate processes (True) or one after another on
            a worker thread (False)
        max_r_hat : float, default=1.1
            R-hat at or above this is reported as non-convergence
        min_total_draws : int, default=1000
            fewer post-warm-up draws (summed over chains) are reported as
            non-convergence

        Returns
        -------
        samples : dict
            site name -> numpy array with shape
            (num_completed_chains, num_samples, ...)
        diagnostics : dict
            output of `get_diagnostics`
        converged : bool
            False if any diagnostic is out of tolerance. A ModelFitWarning
            describing the problems is issued in that case.

        Raises
        ------
        ConfigError
            if the sampler settings are invalid
        ModelFitError
            if fewer than two chains finish
        """

        num_chains = check_number(num_chains, param_name="num_chains",
                                  cast_type=int, min_allowed=MIN_COMPLETE_CHAINS)
        num_warmup = check_number(num_warmup, param_name="num_warmup",
                                  cast_type=int, min_allowed=0)
        num_samples = check_number(num_samples, param_name="num_samples",
                                   cast_type=int, min_allowed=1)
        target_accept_prob = check_number(target_accept_prob,
                                          param_name="target_accept_prob",
                                          min_allowed=0, max_allowed=1,
                                          inclusive_min=False,
                                          inclusive_max=False)
        max_tree_depth = check_number(max_tree_depth,
                                      param_name="max_tree_depth",
                                      cast_type=int, min_allowed=1)
        chain_timeout = check_number(chain_timeout,
                                     param_name="chain_timeout",
                                     min_allowed=0, inclusive_min=False,
                                     allow_none=True)

        chain_keys = np.asarray(random.split(self._main_key, num_chains))

        # Ship plain numpy arrays to the workers
        data = jax.tree_util.tree_map(np.asarray, self.model.data)
        priors = jax.tree_util.tree_map(np.asarray, self.model.priors)

        results = [None for _ in range(num_chains)]
        failures = {}

        executor = self._get_executor(parallel, num_chains)
        try:
            futures = {}
            for i in range(num_chains):
                f = executor.submit(_run_chain,
                                    self.model.jax_model,
                                    data,
                                    priors,
                                    chain_keys[i],
                                    num_warmup,
                                    num_samples,
                                    target_accept_prob,
                                    max_tree_depth)
                futures[f] = i

            try:
                for future in tqdm(as_completed(futures, timeout=chain_timeout),
                                   total=num_chains,
                                   desc="chains"):
                    i = futures[future]
                    try:
                        results[i] = future.result()
                    except Exception as e:
                        failures[i] = f"{type(e).__name__}: {e}"

            except FuturesTimeoutError:
                for future, i in futures.items():
                    if results[i] is None and i not in failures:
                        future.cancel()
                        failures[i] = f"did not finish within {chain_timeout} s"

        finally:
            # Do not block on abandoned chains; their results are discarded.
            executor.shutdown(wait=len(failures) == 0, cancel_futures=True)

        completed = [i for i in range(num_chains) if results[i] is not None]

        if len(failures) > 0:
            msg = "\n".join(f"    chain {i}: {failures[i]}" for i in sorted(failures))
            warnings.warn(f"{len(failures)} chain(s) discarded:\n{msg}\n",
                          ModelFitWarning)

        if len(completed) < MIN_COMPLETE_CHAINS:
            raise ModelFitError(
                f"Only {len(completed)} of {num_chains} chain(s) completed. "
                f"At least {MIN_COMPLETE_CHAINS} are needed to report a fit."
            )

        # Stack draws in chain order: (num_chains, num_samples, ...)
        sites = list(results[completed[0]][0].keys())
        samples = {}
        for site in sites:
            samples[site] = np.stack([results[i][0][site] for i in completed])

        num_divergent = sum(results[i][1] for i in completed)

        diagnostics = get_diagnostics(samples, num_divergent=num_divergent)
        problems = check_diagnostics(diagnostics,
                                     max_r_hat=max_r_hat,
                                     min_total_draws=min_total_draws)

        converged = len(problems) == 0
        if not converged:
            msg = "\n".join(f"    {p}" for p in problems)
            warnings.warn(
                f"Posterior sampling did not pass convergence checks:\n{msg}\n"
                f"Estimates should not be treated as reliable.",
                ModelFitWarning
            )

        return samples, diagnostics, converged

    def write_posteriors(self,
                         samples,
                         diagnostics,
                         out_root):
        """
        Save chain-grouped posterior samples to {out_root}_posterior.npz.

        The number of divergent transitions is stored under "num_divergent".

        Returns
        -------
        str
            path to the .npz file
        """

        if "num_divergent" in samples:
            raise ConfigError("'num_divergent' cannot be used as a site name.")

        out_file = f"{out_root}_posterior.npz"
        np.savez(out_file,
                 num_divergent=np.array(diagnostics["num_divergent"]),
                 **samples)

        return out_file
