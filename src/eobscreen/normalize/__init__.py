from .normalize_replicates import (
    NORMALIZATION_POLICIES,
    get_scale_factors,
    normalize_replicates
)
