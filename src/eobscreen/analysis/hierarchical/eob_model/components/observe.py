import jax.numpy as jnp
import numpyro as pyro
import numpyro.distributions as dist
from flax.struct import dataclass

from eobscreen.analysis.hierarchical.eob_model.data_class import EobData

@dataclass(frozen=True)
class ModelPriors:
    """
    JAX Pytree holding the hyperparameter of the shared observation noise.
    """

    sigma_scale: float


def define_model(name: str,
                 data: EobData,
                 priors: ModelPriors,
                 mu: jnp.ndarray) -> None:
    """
    Homoscedastic normal likelihood,

        sigma ~ HalfCauchy(sigma_scale)
        eob_i ~ Normal(mu[map_condition_i, map_stage_i], sigma)

    Data
    ----
    data.eob
    data.map_condition
    data.map_stage
    data.num_obs
    """

    sigma = pyro.sample("sigma", dist.HalfCauchy(priors.sigma_scale))

    pred = mu[data.map_condition, data.map_stage]
    with pyro.plate(f"{name}_plate", data.num_obs):
        pyro.sample(name, dist.Normal(pred, sigma), obs=data.eob)


def get_hyperparameters():
    """
    Get default values for the model hyperparameters.
    """

    parameters = {}
    parameters["sigma_scale"] = 2.5

    return parameters


def get_priors(**overrides):
    parameters = get_hyperparameters()
    parameters.update(overrides)
    return ModelPriors(**parameters)
