"""
Replicate normalization against the vehicle control.

Different replicates show different baseline (vehicle) effects. Within each
stage, every replicate is rescaled so that its vehicle measurement lands on a
common reference value:

    scale(stage, replicate) = reference(stage) / vehicle(stage, replicate)

The reference is the max (default), min or mean of the vehicle values of that
stage across replicates. The scale factor multiplies every measurement that
shares the (stage, replicate), and the vehicle rows are then dropped.
"""

from eobscreen.errors import DataError
from eobscreen.util import check_choice
from eobscreen.process_raw import (
    check_measurements,
    VEHICLE_LABEL
)

import numpy as np

# policy name -> groupby aggregation that defines the per-stage reference
NORMALIZATION_POLICIES = {
    "scale-to-max":"max",
    "scale-to-min":"min",
    "scale-to-mean":"mean",
}


def get_scale_factors(df,
                      policy="scale-to-max",
                      vehicle_label=VEHICLE_LABEL):
    """
    Calculate the per-(stage, replicate) scale factors from the vehicle rows.

    Parameters
    ----------
    df : pandas.DataFrame
        long-form measurements (see `check_measurements`)
    policy : str, default="scale-to-max"
        one of "scale-to-max", "scale-to-min", "scale-to-mean"
    vehicle_label : str, default="Vehicle"
        condition label of the control

    Returns
    -------
    pandas.DataFrame
        one row per vehicle measurement with columns `stage`, `replicate`,
        `vehicle_value`, `reference_value` and `scale_factor`

    Raises
    ------
    ConfigError
        if policy is not recognized
    DataError
        if there are no vehicle rows or a vehicle value is zero
    """

    check_choice(policy, "normalization_policy", NORMALIZATION_POLICIES)

    vehicle = df.loc[df["condition"] == vehicle_label,
                     ["stage", "replicate", "value"]]
    if len(vehicle) == 0:
        raise DataError(
            f"No '{vehicle_label}' rows found. These are needed to normalize replicates."
        )

    is_zero = vehicle["value"].to_numpy() == 0
    if np.any(is_zero):
        rows = vehicle.loc[is_zero, ["stage", "replicate"]]
        raise DataError(
            f"'{vehicle_label}' value is zero for the following (stage, replicate), "
            f"so it cannot be used as a normalization anchor:\n"
            f"{rows.to_string(index=False)}\n"
        )

    factors = vehicle.rename(columns={"value":"vehicle_value"}).copy()

    agg = NORMALIZATION_POLICIES[policy]
    factors["reference_value"] = factors.groupby("stage",
                                                 observed=True)["vehicle_value"].transform(agg)
    factors["scale_factor"] = factors["reference_value"]/factors["vehicle_value"]

    return factors.reset_index(drop=True)


def normalize_replicates(df,
                         policy="scale-to-max",
                         vehicle_label=VEHICLE_LABEL,
                         keep_vehicle=False):
    """
    Rescale every replicate relative to its own vehicle measurement.

    Parameters
    ----------
    df : pandas.DataFrame
        long-form measurements with columns `condition`, `stage`,
        `replicate` and `value`
    policy : str, default="scale-to-max"
        how to choose the per-stage reference vehicle value. "scale-to-max"
        scales all replicates up to the replicate with the largest vehicle
        value, so no replicate is scaled down.
    vehicle_label : str, default="Vehicle"
        condition label of the control
    keep_vehicle : bool, default=False
        if True, keep the (rescaled) vehicle rows in the output. After
        scaling, all vehicle values of a stage equal the reference value.

    Returns
    -------
    pandas.DataFrame
        normalized measurements with the rescaled `value` and the
        `scale_factor` that was applied

    Raises
    ------
    ConfigError
        if policy is not recognized
    DataError
        if the measurements are malformed, a vehicle value is zero, or a
        (stage, replicate) has measurements but no vehicle row
    """

    df = check_measurements(df)
    factors = get_scale_factors(df, policy=policy, vehicle_label=vehicle_label)

    out = df.merge(factors[["stage", "replicate", "scale_factor"]],
                   on=["stage", "replicate"],
                   how="left",
                   sort=False)

    no_anchor = np.isnan(out["scale_factor"].to_numpy())
    if np.any(no_anchor):
        rows = out.loc[no_anchor, ["stage", "replicate"]].drop_duplicates()
        raise DataError(
            f"No '{vehicle_label}' measurement for the following (stage, replicate):\n"
            f"{rows.to_string(index=False)}\n"
        )

    out["value"] = out["value"]*out["scale_factor"]

    if not keep_vehicle:
        out = out[out["condition"] != vehicle_label]

    return out.reset_index(drop=True)
