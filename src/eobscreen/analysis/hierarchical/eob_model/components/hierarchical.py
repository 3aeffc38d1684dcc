import jax.numpy as jnp
import numpyro as pyro
import numpyro.distributions as dist
from flax.struct import dataclass

from eobscreen.analysis.hierarchical.eob_model.data_class import EobData

@dataclass(frozen=True)
class ModelPriors:
    """
    JAX Pytree holding hyperparameters for the partially pooled cell means.
    """

    mu_eob_loc: float
    mu_eob_scale: float
    sigma_eob_scale: float


def define_model(name: str,
                 data: EobData,
                 priors: ModelPriors) -> jnp.ndarray:
    """
    Cell means with partial pooling toward a global mean.

        mu_eob ~ Normal(mu_eob_loc, mu_eob_scale)
        sigma_eob ~ HalfCauchy(sigma_eob_scale)
        mu[j,k] ~ Normal(mu_eob, sigma_eob)

    The cell means are sampled directly (centered). Cells with few
    observations are shrunk toward mu_eob.

    Priors
    ------
    priors.mu_eob_loc
    priors.mu_eob_scale
    priors.sigma_eob_scale

    Data
    ----
    data.num_condition
    data.num_stage

    Returns
    -------
    jnp.ndarray
        (num_condition, num_stage) grid of cell means
    """

    mu_eob = pyro.sample(
        "mu_eob",
        dist.Normal(priors.mu_eob_loc, priors.mu_eob_scale)
    )
    sigma_eob = pyro.sample(
        "sigma_eob",
        dist.HalfCauchy(priors.sigma_eob_scale)
    )

    with pyro.plate(f"{name}_condition", data.num_condition, dim=-2):
        with pyro.plate(f"{name}_stage", data.num_stage, dim=-1):
            mu = pyro.sample(name, dist.Normal(mu_eob, sigma_eob))

    return mu


def get_hyperparameters():
    """
    Get default values for the model hyperparameters.
    """

    parameters = {}
    parameters["mu_eob_loc"] = 0.0
    parameters["mu_eob_scale"] = 10.0
    parameters["sigma_eob_scale"] = 2.5

    return parameters


def get_priors(**overrides):
    """
    Build ModelPriors from the defaults, replacing any values passed as
    keyword arguments.
    """
    parameters = get_hyperparameters()
    parameters.update(overrides)
    return ModelPriors(**parameters)
