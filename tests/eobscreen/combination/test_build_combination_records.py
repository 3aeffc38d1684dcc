import pytest
import numpy as np
import pandas as pd

from eobscreen.errors import DataError, DataWarning, ConfigError
from eobscreen.combination.build_combination_records import (
    RECORD_COLUMNS,
    DROPPED_COLUMNS,
    build_combination_records
)
from eobscreen.combination.label_parsers import make_separator_parser

def _make_df(rows):
    return pd.DataFrame(rows, columns=["condition", "stage", "replicate", "value"])

@pytest.fixture
def normalized_df():
    """
    Two replicates and two stages of one combination plus its single agents.
    """

    rows = []
    for rep in ["r1", "r2"]:
        for stage, f_a, f_b, f_ab in [("alive", 0.6, 0.7, 0.3),
                                      ("dead_debris", 0.2, 0.1, 0.5)]:
            rows.append(["Vehicle", stage, rep, 1.0])
            rows.append(["300nM CX", stage, rep, f_a])
            rows.append(["2nM Dina", stage, rep, f_b])
            rows.append(["300nM CX 2nM Dina", stage, rep, f_ab])

    return _make_df(rows)

def test_build_combination_records(normalized_df):

    records, dropped = build_combination_records(normalized_df)

    assert list(records.columns) == RECORD_COLUMNS
    assert list(dropped.columns) == DROPPED_COLUMNS
    assert len(records) == 4
    assert len(dropped) == 0

    assert set(records["agent_a"]) == {"300nM CX"}
    assert set(records["agent_b"]) == {"2nM Dina"}

    expected = records["f_ab"] + (1 - records["f_a"])*(1 - records["f_b"]) - 1
    assert np.allclose(records["eob"], expected)

    dead = records[records["stage"] == "dead_debris"]
    assert np.allclose(dead["eob"], 0.5 - (0.2 + 0.1 - 0.02))

    # Vehicle is not a record of its own
    assert "Vehicle" not in set(records["combination_condition"])

def test_stage_codes_follow_biological_order(normalized_df):

    # Present dead_debris before alive
    shuffled = normalized_df.iloc[::-1].reset_index(drop=True)
    records, _ = build_combination_records(shuffled)

    codes = dict(zip(records["stage"].astype(str), records["map_stage"]))
    assert codes == {"alive": 0, "dead_debris": 1}

def test_condition_codes_deterministic(normalized_df):

    extra = normalized_df[normalized_df["condition"].str.contains("300nM CX")].copy()
    extra["condition"] = extra["condition"].str.replace("300nM CX", "100nM AZ")
    df = pd.concat([normalized_df, extra], ignore_index=True)

    records, _ = build_combination_records(df, index_order="sorted")
    codes = dict(zip(records["combination_condition"], records["map_condition"]))
    assert codes == {"100nM AZ 2nM Dina": 0, "300nM CX 2nM Dina": 1}

    records, _ = build_combination_records(df, index_order="first_seen")
    codes = dict(zip(records["combination_condition"], records["map_condition"]))
    assert codes == {"300nM CX 2nM Dina": 0, "100nM AZ 2nM Dina": 1}

    # Same input always gives the same codes
    again, _ = build_combination_records(df, index_order="first_seen")
    assert np.array_equal(again["map_condition"], records["map_condition"])

def test_missing_single_agent_dropped(normalized_df):

    # Remove the Dina measurement for r2, dead_debris
    mask = ((normalized_df["condition"] == "2nM Dina") &
            (normalized_df["replicate"] == "r2") &
            (normalized_df["stage"] == "dead_debris"))
    df = normalized_df[~mask]

    with pytest.warns(DataWarning, match="dropped"):
        records, dropped = build_combination_records(df)

    assert len(records) == 3
    assert len(dropped) == 1

    row = dropped.iloc[0]
    assert row["replicate"] == "r2"
    assert str(row["stage"]) == "dead_debris"
    assert row["combination_condition"] == "300nM CX 2nM Dina"
    assert "'2nM Dina'" in row["reason"]
    assert "'300nM CX'" not in row["reason"]

def test_all_combinations_dropped(normalized_df):

    # No Dina measurements at all
    df = normalized_df[normalized_df["condition"] != "2nM Dina"]

    with pytest.warns(DataWarning, match="dropped"):
        with pytest.raises(DataError) as excinfo:
            build_combination_records(df)

    # The error names the cells and the missing agent
    msg = str(excinfo.value)
    assert "No combination records" in msg
    assert "300nM CX 2nM Dina" in msg
    assert "alive" in msg
    assert "dead_debris" in msg
    assert "'2nM Dina'" in msg

def test_out_of_range_warning():

    # Unclamped normalized values can exceed 1
    df = _make_df([["Vehicle", "dead_debris", "r1", 0.29],
                   ["1nM A", "dead_debris", "r1", 0.1],
                   ["1nM B", "dead_debris", "r1", 0.1],
                   ["1nM A 1nM B", "dead_debris", "r1", 3.17]])

    with pytest.warns(DataWarning, match="outside"):
        records, _ = build_combination_records(df)

    assert records["eob"].iloc[0] > 1

def test_no_combinations():

    df = _make_df([["Vehicle", "alive", "r1", 1.0],
                   ["1nM A", "alive", "r1", 0.5]])
    with pytest.raises(DataError, match="No combination"):
        build_combination_records(df)

def test_unparseable_label(normalized_df):

    normalized_df.loc[0, "condition"] = "mystery drug"
    normalized_df.loc[0, "stage"] = "early_apoptotic"
    with pytest.raises(DataError, match="mystery drug"):
        build_combination_records(normalized_df)

def test_custom_label_parser():

    df = _make_df([["Vehicle", "alive", "r1", 1.0],
                   ["CX", "alive", "r1", 0.5],
                   ["Dina", "alive", "r1", 0.4],
                   ["CX + Dina", "alive", "r1", 0.1]])

    records, _ = build_combination_records(df, label_parser=make_separator_parser(" + "))
    assert len(records) == 1
    assert np.isclose(records["eob"].iloc[0], 0.1 + 0.5*0.6 - 1)

def test_bad_index_order(normalized_df):
    with pytest.raises(ConfigError):
        build_combination_records(normalized_df, index_order="random")
