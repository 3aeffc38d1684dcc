from eobscreen.errors import DataError
from eobscreen.util import check_columns
from eobscreen.process_raw.stages import (
    STAGES,
    STAGE_DTYPE,
    MEASUREMENT_COLUMNS
)

import numpy as np
import pandas as pd


def check_measurements(df):
    """
    Validate and standardize a long-form table of measurements.

    Parameters
    ----------
    df : pandas.DataFrame
        dataframe with columns `condition`, `stage`, `replicate` and `value`.
        Other columns are dropped.

    Returns
    -------
    pandas.DataFrame
        copy of df with whitespace-normalized `condition` labels, `stage` as an
        ordered categorical, `replicate` as strings and `value` as floats.

    Raises
    ------
    DataError
        If columns are missing, a condition label is empty, a stage is not
        one of the known apoptosis stages, a value is missing, non-numeric,
        non-finite or negative, or the same (condition, stage, replicate)
        appears more than once.
    """

    check_columns(df, MEASUREMENT_COLUMNS)

    df = df.loc[:, MEASUREMENT_COLUMNS].copy().reset_index(drop=True)

    # Collapse runs of whitespace so "300nM  CX" and "300nM CX" are the same
    df["condition"] = df["condition"].astype(str).map(lambda s: " ".join(s.split()))
    if np.any(df["condition"] == ""):
        raise DataError("condition labels cannot be empty.")

    stage = df["stage"].astype(str).str.strip()
    bad_stages = sorted(set(stage) - set(STAGES))
    if len(bad_stages) > 0:
        raise DataError(
            f"Unrecognized stage(s): {bad_stages}. Stage must be one of {list(STAGES)}."
        )
    df["stage"] = stage.astype(STAGE_DTYPE)

    df["replicate"] = df["replicate"].astype(str).str.strip()

    value = pd.to_numeric(df["value"], errors="coerce").astype(float)
    bad = ~np.isfinite(value.to_numpy())
    if np.any(bad):
        rows = df.loc[bad, ["condition", "stage", "replicate"]]
        raise DataError(
            f"Missing, non-numeric or non-finite values in {int(np.sum(bad))} "
            f"row(s):\n{rows.to_string(index=False)}\n"
        )
    if np.any(value < 0):
        rows = df.loc[value < 0, ["condition", "stage", "replicate"]]
        raise DataError(
            f"Negative values are not allowed:\n{rows.to_string(index=False)}\n"
        )
    df["value"] = value

    dup = df.duplicated(subset=["condition", "stage", "replicate"], keep=False)
    if np.any(dup):
        rows = df.loc[dup, ["condition", "stage", "replicate"]].drop_duplicates()
        raise DataError(
            f"Each (condition, stage, replicate) must be measured once. "
            f"Duplicates:\n{rows.to_string(index=False)}\n"
        )

    return df
