"""
Estimates the mean excess over Bliss (eob) of each (combination, stage) cell.

The core model is:

    eob_i ~ Normal(mu[condition_i, stage_i], sigma)

where mu is a (num_condition, num_stage) grid of latent cell means. How the
cell means share information is selected from `model_registry`:

+ hierarchical: mu[j,k] ~ Normal(mu_eob, sigma_eob), with hyperpriors
  mu_eob ~ Normal(0, 10) and sigma_eob ~ HalfCauchy(2.5). Sparse cells are
  shrunk toward the global mean.
+ independent: mu[j,k] ~ Normal(0, 10), no pooling.
+ pooled: mu[j,k] = mu_eob for every cell, complete pooling.

The observation noise sigma ~ HalfCauchy(2.5) is shared by all cells.
"""

from .model import jax_model
from .registry import model_registry
from .model_class import EobModel
