import jax.numpy as jnp
import numpyro as pyro
import numpyro.distributions as dist
from flax.struct import dataclass

from eobscreen.analysis.hierarchical.eob_model.data_class import EobData

@dataclass(frozen=True)
class ModelPriors:
    """
    JAX Pytree holding hyperparameters for independent (unpooled) cell means.
    """

    mu_loc: float
    mu_scale: float


def define_model(name: str,
                 data: EobData,
                 priors: ModelPriors) -> jnp.ndarray:
    """
    No pooling. Every cell mean gets its own fixed prior,
    mu[j,k] ~ Normal(mu_loc, mu_scale), so no information is shared between
    cells.

    Returns
    -------
    jnp.ndarray
        (num_condition, num_stage) grid of cell means
    """

    with pyro.plate(f"{name}_condition", data.num_condition, dim=-2):
        with pyro.plate(f"{name}_stage", data.num_stage, dim=-1):
            mu = pyro.sample(name, dist.Normal(priors.mu_loc, priors.mu_scale))

    return mu


def get_hyperparameters():
    """
    Get default values for the model hyperparameters.
    """

    parameters = {}
    parameters["mu_loc"] = 0.0
    parameters["mu_scale"] = 10.0

    return parameters


def get_priors(**overrides):
    parameters = get_hyperparameters()
    parameters.update(overrides)
    return ModelPriors(**parameters)
