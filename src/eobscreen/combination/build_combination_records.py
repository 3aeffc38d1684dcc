from eobscreen.errors import DataError, DataWarning
from eobscreen.util import (
    check_choice,
    add_group_columns
)
from eobscreen.process_raw import (
    check_measurements,
    VEHICLE_LABEL
)
from eobscreen.combination.label_parsers import parse_dose_label
from eobscreen.combination.compute_eob import compute_eob

import numpy as np
import pandas as pd

import warnings

RECORD_COLUMNS = ["stage",
                  "replicate",
                  "combination_condition",
                  "agent_a",
                  "agent_b",
                  "f_ab",
                  "f_a",
                  "f_b",
                  "eob",
                  "map_condition",
                  "map_stage"]

DROPPED_COLUMNS = ["stage",
                   "replicate",
                   "combination_condition",
                   "reason"]


def _classify_conditions(conditions, label_parser):
    """
    Run the label parser over every unique condition. Returns a dict mapping
    each combination label to its (label_a, label_b) pair and a list of
    single-agent labels. Any DataError from the parser propagates, rejecting
    the whole input.
    """

    combos = {}
    singles = []
    for c in conditions:
        parsed = label_parser(c)
        if parsed is None:
            singles.append(c)
            continue

        if len(parsed) != 2:
            raise DataError(
                f"label parser returned {len(parsed)} components for '{c}'. "
                f"Expected None or a pair."
            )
        combos[c] = (parsed[0], parsed[1])

    return combos, singles


def build_combination_records(df,
                              label_parser=parse_dose_label,
                              index_order="sorted",
                              vehicle_label=VEHICLE_LABEL):
    """
    Build one excess-over-Bliss record per (stage, replicate, combination).

    Each combination measurement f_ab is joined to the single-agent
    measurements f_a and f_b of its two components at the same stage and
    replicate, and eob = f_ab + (1 - f_a)*(1 - f_b) - 1 is calculated.

    Combination measurements whose single-agent counterpart is missing are
    skipped. They are returned in a separate dataframe (with the reason) and
    reported with a DataWarning.

    Parameters
    ----------
    df : pandas.DataFrame
        normalized measurements with columns `condition`, `stage`,
        `replicate` and `value`. Vehicle rows, if present, are ignored.
    label_parser : callable, default=parse_dose_label
        function mapping a condition label to None (single agent) or a
        (label_a, label_b) pair (combination). Should raise DataError for
        labels it cannot parse.
    index_order : str, default="sorted"
        how combination conditions are numbered in `map_condition`: "sorted"
        (lexical order) or "first_seen" (order of appearance in the records).
        Stages are always numbered in their biological order.
    vehicle_label : str, default="Vehicle"
        condition label of the control

    Returns
    -------
    records : pandas.DataFrame
        one row per combination record with columns `stage`, `replicate`,
        `combination_condition`, `agent_a`, `agent_b`, `f_ab`, `f_a`, `f_b`,
        `eob`, `map_condition` and `map_stage`
    dropped : pandas.DataFrame
        combination measurements that could not be used, with columns
        `stage`, `replicate`, `combination_condition` and `reason`

    Raises
    ------
    DataError
        if the measurements are malformed (see `check_measurements`), a
        condition label cannot be parsed, there are no combination
        conditions in df, or every combination measurement was dropped
    ConfigError
        if index_order is not recognized
    """

    check_choice(index_order, "index_order", ["sorted", "first_seen"])
    df = check_measurements(df)

    df = df.loc[df["condition"] != vehicle_label,
                ["condition", "stage", "replicate", "value"]]

    combos, singles = _classify_conditions(pd.unique(df["condition"]),
                                           label_parser)
    if len(combos) == 0:
        raise DataError("No combination conditions found in the data.")

    combo_df = df[df["condition"].isin(list(combos))]
    combo_df = combo_df.rename(columns={"condition":"combination_condition",
                                        "value":"f_ab"})
    combo_df["agent_a"] = combo_df["combination_condition"].map(lambda c: combos[c][0])
    combo_df["agent_b"] = combo_df["combination_condition"].map(lambda c: combos[c][1])

    # Self-join against the single-agent measurements, once per component
    single_df = df[df["condition"].isin(singles)]
    for agent_col, f_col in [("agent_a", "f_a"), ("agent_b", "f_b")]:
        lookup = single_df.rename(columns={"condition":agent_col,
                                           "value":f_col})
        combo_df = combo_df.merge(lookup,
                                  on=[agent_col, "stage", "replicate"],
                                  how="left",
                                  sort=False)

    missing_a = pd.isna(combo_df["f_a"]).to_numpy()
    missing_b = pd.isna(combo_df["f_b"]).to_numpy()
    missing = missing_a | missing_b

    # Record why each dropped measurement could not be used
    reasons = []
    for a, b, miss_a, miss_b in zip(combo_df["agent_a"],
                                    combo_df["agent_b"],
                                    missing_a,
                                    missing_b):
        absent = [label for label, m in [(a, miss_a), (b, miss_b)] if m]
        if len(absent) == 0:
            reasons.append(None)
        else:
            quoted = " and ".join(f"'{x}'" for x in absent)
            reasons.append(f"no single-agent measurement for {quoted} at this stage and replicate")

    dropped = combo_df.loc[missing, ["stage", "replicate", "combination_condition"]].copy()
    dropped["reason"] = [r for r, m in zip(reasons, missing) if m]
    dropped = dropped.reset_index(drop=True)

    if len(dropped) > 0:
        warnings.warn(
            f"{len(dropped)} combination measurement(s) dropped because a "
            f"single-agent counterpart was missing:\n"
            f"{dropped.to_string(index=False)}\n",
            DataWarning
        )

    records = combo_df.loc[~missing].copy()
    if len(records) == 0:
        cells = (dropped[["combination_condition", "stage", "reason"]]
                 .astype(str)
                 .drop_duplicates()
                 .to_string(index=False))
        raise DataError(
            "No combination records could be built: every combination "
            "measurement is missing a single-agent counterpart. Dropped "
            f"cells:\n{cells}\n"
        )

    records["eob"] = compute_eob(records["f_ab"].to_numpy(),
                                 records["f_a"].to_numpy(),
                                 records["f_b"].to_numpy())

    out_of_range = np.abs(records["eob"].to_numpy()) > 1
    if np.any(out_of_range):
        warnings.warn(
            f"{int(np.sum(out_of_range))} eob value(s) fall outside [-1, 1]. "
            f"This happens when input fractions fall outside [0, 1].",
            DataWarning
        )

    records, _ = add_group_columns(records,
                                   "combination_condition",
                                   "map_condition",
                                   sort=(index_order == "sorted"))
    records, _ = add_group_columns(records,
                                   "stage",
                                   "map_stage",
                                   sort=True)

    return records.loc[:, RECORD_COLUMNS].reset_index(drop=True), dropped
