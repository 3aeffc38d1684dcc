import jax.numpy as jnp
import numpyro as pyro
import numpyro.distributions as dist
from flax.struct import dataclass

from eobscreen.analysis.hierarchical.eob_model.data_class import EobData

@dataclass(frozen=True)
class ModelPriors:
    """
    JAX Pytree holding hyperparameters for a single, fully pooled mean.
    """

    mu_eob_loc: float
    mu_eob_scale: float


def define_model(name: str,
                 data: EobData,
                 priors: ModelPriors) -> jnp.ndarray:
    """
    Complete pooling. All cells share one mean, mu_eob ~ Normal(loc, scale),
    broadcast over the (num_condition, num_stage) grid.
    """

    mu_eob = pyro.sample(
        "mu_eob",
        dist.Normal(priors.mu_eob_loc, priors.mu_eob_scale)
    )

    mu = jnp.full((data.num_condition, data.num_stage), 1.0)*mu_eob
    pyro.deterministic(name, mu)

    return mu


def get_hyperparameters():
    """
    Get default values for the model hyperparameters.
    """

    parameters = {}
    parameters["mu_eob_loc"] = 0.0
    parameters["mu_eob_scale"] = 10.0

    return parameters


def get_priors(**overrides):
    parameters = get_hyperparameters()
    parameters.update(overrides)
    return ModelPriors(**parameters)
