from .stages import (
    STAGES,
    STAGE_DTYPE,
    VEHICLE_LABEL,
    MEASUREMENT_COLUMNS
)

from .check_measurements import (
    check_measurements
)

from .wide_to_long import (
    wide_to_long
)

from .read_measurements import (
    read_measurements
)
