import numpy as np

def compute_eob(f_ab, f_a, f_b):
    """
    Excess over Bliss for a two-agent combination.

    Under Bliss independence the expected combined fraction is
    f_a + f_b - f_a*f_b, so

        eob = f_ab - (f_a + f_b - f_a*f_b) = f_ab + (1 - f_a)*(1 - f_b) - 1

    Positive values indicate synergy, zero additivity and negative values
    antagonism. The expression is symmetric in the two agents. For fractions
    in [0, 1] the result lies in [-1, 1].

    Parameters
    ----------
    f_ab : float or array_like
        fraction observed for the combination
    f_a, f_b : float or array_like
        fractions observed for each agent alone (same stage and replicate)

    Returns
    -------
    float or np.ndarray
        eob value(s)
    """

    f_ab = np.asarray(f_ab, dtype=float)
    f_a = np.asarray(f_a, dtype=float)
    f_b = np.asarray(f_b, dtype=float)

    eob = f_ab + (1 - f_a)*(1 - f_b) - 1
    if eob.ndim == 0:
        return float(eob)

    return eob
