from .data_class import (
    EobData,
    PriorsClass,
)

def jax_model(data: EobData,
              priors: PriorsClass,
              **control):
    """
    Joint model for excess-over-Bliss observations.

    Parameters
    ----------
    data : EobData
        pytree holding the observed eob values and their grid coordinates
    priors : PriorsClass
        pytree holding the priors for each model component
    control : dict
        model components, selected from the registry. Expects:
        - cell_means: define_model function returning the
          (num_condition, num_stage) grid of latent cell means as the
          deterministic/sample site "mu"
        - observe: define_model function for the likelihood
    """

    cell_means_model = control["cell_means"]
    observer = control["observe"]

    mu = cell_means_model("mu",
                          data,
                          priors.cell_means)

    observer("eob_obs",
             data,
             priors.observe,
             mu)
