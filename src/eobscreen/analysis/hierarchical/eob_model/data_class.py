import jax.numpy as jnp
from flax.struct import (
    dataclass,
    field
)
from typing import Any


@dataclass(frozen=True)
class EobData:
    """
    A container holding the observations needed by the eob model, treated as
    a JAX Pytree.

    The latent cell means live on a (num_condition, num_stage) grid.
    `map_condition` and `map_stage` give the grid coordinates of each
    observation.
    """

    # Observations
    eob: jnp.ndarray

    # Grid coordinates of each observation
    map_condition: jnp.ndarray
    map_stage: jnp.ndarray

    # Tensor shape
    num_obs: int = field(pytree_node=False)
    num_condition: int = field(pytree_node=False)
    num_stage: int = field(pytree_node=False)


@dataclass(frozen=True)
class PriorsClass:

    # ModelPriors pytrees from the selected components
    cell_means: Any
    observe: Any
