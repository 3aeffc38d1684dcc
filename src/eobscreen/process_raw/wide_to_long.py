from eobscreen.util import check_columns

import pandas as pd


def wide_to_long(df, replicate_columns=None):
    """
    Reshape a wide table with one row per (condition, stage) and one column
    per replicate slot into the long form used by the rest of the pipeline.

    Empty replicate slots (NaN) are dropped, so conditions measured in fewer
    replicates than there are slots are handled naturally.

    Parameters
    ----------
    df : pandas.DataFrame
        wide dataframe with `condition` and `stage` columns.
    replicate_columns : list of str, optional
        columns holding replicate values. The column name becomes the replicate
        id. If None, every column other than `condition` and `stage` is used.

    Returns
    -------
    pandas.DataFrame
        long dataframe with columns `condition`, `stage`, `replicate`, `value`

    Examples
    --------
    >>> wide = pd.DataFrame({"condition": ["Vehicle"], "stage": ["alive"],
    ...                      "rep1": [0.9], "rep2": [None]})
    >>> wide_to_long(wide)
      condition  stage replicate  value
    0   Vehicle  alive      rep1    0.9
    """

    id_columns = ["condition", "stage"]
    check_columns(df, id_columns)

    if replicate_columns is None:
        replicate_columns = [c for c in df.columns if c not in id_columns]
    else:
        replicate_columns = list(replicate_columns)
        check_columns(df, replicate_columns)

    long_df = df.melt(id_vars=id_columns,
                      value_vars=replicate_columns,
                      var_name="replicate",
                      value_name="value")

    long_df = long_df[~pd.isna(long_df["value"])]
    long_df["replicate"] = long_df["replicate"].astype(str)

    return long_df.reset_index(drop=True)
