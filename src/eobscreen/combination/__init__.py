from .label_parsers import (
    DOSE_UNITS,
    is_dose_token,
    parse_dose_label,
    make_separator_parser,
    get_label_parser
)

from .compute_eob import (
    compute_eob
)

from .build_combination_records import (
    RECORD_COLUMNS,
    DROPPED_COLUMNS,
    build_combination_records
)
