from .settings import (
    DEFAULT_SETTINGS,
    validate_settings,
    load_settings
)

from .pooling_comparison import (
    no_pooling_estimates,
    complete_pooling_estimate,
    compare_pooling
)
