from .validation import (
    check_number,
    check_choice
)

from .io import (
    read_yaml,
    read_dataframe
)

from .dataframe import (
    check_columns,
    add_group_columns,
    get_group_mean_std
)

from .cli import (
    generalized_main
)
